from .jwt_handler import (
    TokenExpiredError,
    TokenIdentity,
    TokenInvalidError,
    TokenIssuer,
    TokenPair,
)
from .dependencies import get_current_user, get_token_issuer
from .rate_limiter import limiter, user_id_or_ip

__all__ = [
    "TokenExpiredError",
    "TokenIdentity",
    "TokenInvalidError",
    "TokenIssuer",
    "TokenPair",
    "get_current_user",
    "get_token_issuer",
    "limiter",
    "user_id_or_ip"
]
