from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from shared.exceptions import UnauthorizedError
from .jwt_handler import TokenIdentity, TokenIssuer

# Declares the bearer scheme in the OpenAPI docs; parsing errors are reported by get_current_user
bearer_scheme = HTTPBearer(auto_error=False)


def get_token_issuer(request: Request) -> TokenIssuer:
    return request.app.state.token_issuer


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> TokenIdentity:
    """Dependency to validate the bearer JWT and return the decoded identity."""
    if not request.headers.get("Authorization"):
        raise UnauthorizedError("No authorization header")

    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("No token provided")

    # Raises TokenExpiredError / TokenInvalidError with distinct messages
    identity = issuer.verify_access_token(credentials.credentials)

    # Store in request state for downstream use (like rate limiting)
    request.state.user = identity
    return identity
