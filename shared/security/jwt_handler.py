import re
from datetime import datetime, timedelta, timezone

from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import BaseModel
from pydantic import ValidationError as SchemaError

from shared.config import settings
from shared.exceptions import UnauthorizedError

ALGORITHM = "HS256"

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$")
_UNITS = {"": "seconds", "s": "seconds", "m": "minutes", "h": "hours", "d": "days"}


class TokenExpiredError(UnauthorizedError):
    default_message = "Token expired"


class TokenInvalidError(UnauthorizedError):
    default_message = "Invalid token"


class TokenIdentity(BaseModel):
    id: str
    username: str
    email: str


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str


def parse_duration(value: str) -> timedelta:
    """Parses '1h', '7d', '30m', '45s' or a bare number of seconds."""
    match = _DURATION_RE.match(str(value))
    if not match:
        raise ValueError(f"Invalid duration: {value!r}")
    amount, unit = match.groups()
    return timedelta(**{_UNITS[unit]: int(amount)})


class TokenIssuer:
    """Signs and verifies access/refresh JWTs carrying the user identity triple."""

    def __init__(
        self,
        access_secret: str | None,
        refresh_secret: str | None,
        access_expires_in: str = "1h",
        refresh_expires_in: str = "7d",
    ):
        if not access_secret or not refresh_secret:
            raise ValueError("FATAL ERROR: JWT_SECRET and JWT_REFRESH_SECRET must be set in the environment!")
        self.access_secret = access_secret
        self.refresh_secret = refresh_secret
        self.access_ttl = parse_duration(access_expires_in)
        self.refresh_ttl = parse_duration(refresh_expires_in)

    @classmethod
    def from_settings(cls) -> "TokenIssuer":
        return cls(
            settings.JWT_SECRET,
            settings.JWT_REFRESH_SECRET,
            settings.JWT_EXPIRES_IN,
            settings.JWT_REFRESH_EXPIRES_IN,
        )

    @staticmethod
    def _sign(identity: TokenIdentity, secret: str, ttl: timedelta) -> str:
        now = datetime.now(timezone.utc)
        to_encode = identity.model_dump()
        to_encode.update({"sub": identity.id, "iat": now, "exp": now + ttl})
        return jwt.encode(to_encode, secret, algorithm=ALGORITHM)

    def issue_token_pair(self, identity: TokenIdentity) -> TokenPair:
        return TokenPair(
            access_token=self._sign(identity, self.access_secret, self.access_ttl),
            refresh_token=self._sign(identity, self.refresh_secret, self.refresh_ttl),
        )

    @staticmethod
    def verify(token: str, secret: str) -> TokenIdentity:
        """Decodes a token. Raises TokenExpiredError or TokenInvalidError."""
        try:
            payload = jwt.decode(token, secret, algorithms=[ALGORITHM])
        except ExpiredSignatureError:
            raise TokenExpiredError()
        except JWTError:
            raise TokenInvalidError()

        try:
            return TokenIdentity(id=payload["id"], username=payload["username"], email=payload["email"])
        except (KeyError, TypeError, SchemaError):
            raise TokenInvalidError()

    def verify_access_token(self, token: str) -> TokenIdentity:
        return self.verify(token, self.access_secret)

    def verify_refresh_token(self, token: str) -> TokenIdentity:
        return self.verify(token, self.refresh_secret)
