import structlog
from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from shared.exceptions import ConflictError, UnauthorizedError, ValidationError
from shared.observability.metrics import bebr_signups_total
from shared.security.jwt_handler import TokenExpiredError, TokenIdentity, TokenIssuer

from .models import User
from .repository import UserRepository
from .schemas import LoginResponse, TokenResponse, UserCreate, UserLogin, UserSummary

logger = structlog.get_logger(__name__)

_pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
MAX_BCRYPT_BYTES = 72  # bcrypt limit


def _identity(user: User) -> TokenIdentity:
    return TokenIdentity(id=user.id, username=user.username, email=user.email)


class AuthService:

    @staticmethod
    def _hash_password(password: str) -> str:
        if len(password.encode("utf-8")) > MAX_BCRYPT_BYTES:
            raise ValidationError(f"Password too long. Max {MAX_BCRYPT_BYTES} bytes allowed.")
        return _pwd_context.hash(password)

    @staticmethod
    def _verify_password(plain: str, hashed: str) -> bool:
        if len(plain.encode("utf-8")) > MAX_BCRYPT_BYTES:
            return False
        return _pwd_context.verify(plain, hashed)

    @staticmethod
    async def signup(db: AsyncSession, data: UserCreate) -> User:
        existing = await UserRepository.get_by_username_or_email(db, data.username, data.email)
        if existing:
            raise ConflictError("User with this username or email already exists")

        user = User(
            username=data.username,
            email=data.email,
            first_name=data.first_name,
            last_name=data.last_name,
            password_hash=AuthService._hash_password(data.password),
        )
        try:
            user = await UserRepository.create(db, user)
        except IntegrityError:
            # Lost a race against a concurrent signup for the same username/email
            raise ConflictError("User with this username or email already exists")

        bebr_signups_total.inc()
        logger.info("user_signed_up", user_id=user.id)
        return user

    @staticmethod
    async def login(db: AsyncSession, issuer: TokenIssuer, data: UserLogin) -> LoginResponse:
        user = await UserRepository.get_by_email(db, data.email)
        if not user or not AuthService._verify_password(data.password, user.password_hash):
            raise UnauthorizedError("Invalid credentials")

        pair = issuer.issue_token_pair(_identity(user))
        logger.info("user_logged_in", user_id=user.id)
        return LoginResponse(
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
            user=UserSummary.model_validate(user),
        )

    @staticmethod
    async def refresh(db: AsyncSession, issuer: TokenIssuer, refresh_token: str) -> TokenResponse:
        try:
            identity = issuer.verify_refresh_token(refresh_token)
        except TokenExpiredError:
            raise UnauthorizedError("Refresh token expired. Please login again.")
        except UnauthorizedError:
            raise UnauthorizedError("Invalid refresh token. Please login again.")

        # The account must still exist; its current username/email go into the new pair
        user = await UserRepository.get_by_id(db, identity.id)
        if not user:
            raise UnauthorizedError("Invalid refresh token")

        pair = issuer.issue_token_pair(_identity(user))
        return TokenResponse(access_token=pair.access_token, refresh_token=pair.refresh_token)
