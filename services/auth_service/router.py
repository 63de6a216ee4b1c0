import structlog
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db
from shared.config.settings import AUTH_RATE_LIMIT
from shared.exceptions import AppError, InternalError
from shared.responses import api_response
from shared.security.dependencies import get_token_issuer
from shared.security.jwt_handler import TokenIssuer
from shared.security.rate_limiter import limiter

from .schemas import RefreshTokenRequest, UserCreate, UserLogin, UserResponse
from .service import AuthService

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


@router.post(
    "/signup",
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user account",
    responses={400: {"description": "Missing fields"}, 409: {"description": "Username or email taken"}},
)
@limiter.limit(AUTH_RATE_LIMIT)
async def signup(request: Request, payload: UserCreate, db: AsyncSession = Depends(get_db)):
    try:
        user = await AuthService.signup(db, payload)
    except AppError:
        raise
    except Exception as exc:
        logger.exception("signup_failed")
        raise InternalError("Something went wrong during signup") from exc

    return api_response(
        "User created successfully",
        UserResponse.model_validate(user),
        status_code=status.HTTP_201_CREATED,
    )


@router.post(
    "/login",
    summary="Authenticate and receive an access/refresh token pair",
)
@limiter.limit(AUTH_RATE_LIMIT)
async def login(
    request: Request,
    payload: UserLogin,
    db: AsyncSession = Depends(get_db),
    issuer: TokenIssuer = Depends(get_token_issuer),
):
    try:
        result = await AuthService.login(db, issuer, payload)
    except AppError:
        raise
    except Exception as exc:
        logger.exception("login_failed")
        raise InternalError("Something went wrong during login") from exc

    return api_response("Login successful", result)


@router.post(
    "/refresh-token",
    summary="Exchange a refresh token for a new token pair",
)
@limiter.limit(AUTH_RATE_LIMIT)
async def refresh_token(
    request: Request,
    payload: RefreshTokenRequest,
    db: AsyncSession = Depends(get_db),
    issuer: TokenIssuer = Depends(get_token_issuer),
):
    try:
        result = await AuthService.refresh(db, issuer, payload.refresh_token)
    except AppError:
        raise
    except Exception as exc:
        logger.exception("token_refresh_failed")
        raise InternalError("Something went wrong during token refresh") from exc

    return api_response("Token refreshed successfully", result)
