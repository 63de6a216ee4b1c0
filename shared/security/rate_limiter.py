from slowapi import Limiter
from slowapi.util import get_remote_address
from fastapi import Request

from shared.config.settings import RATE_LIMIT_ENABLED


def user_id_or_ip(request: Request) -> str:
    """
    Key function for SlowAPI.
    Uses the identity attached by get_current_user when the route is authenticated.
    Falls back to the client's IP address otherwise.
    """
    user = getattr(request.state, "user", None)
    if user is not None:
        return f"user:{user.id}"

    return f"ip:{get_remote_address(request)}"

limiter = Limiter(key_func=user_id_or_ip, enabled=RATE_LIMIT_ENABLED)
