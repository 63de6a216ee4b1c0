import os
from dotenv import load_dotenv

load_dotenv()


def _flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


APP_ENV = os.getenv("APP_ENV", "development")
PORT = int(os.getenv("PORT", "3000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# --- JWT ---
JWT_SECRET = os.getenv("JWT_SECRET")
JWT_REFRESH_SECRET = os.getenv("JWT_REFRESH_SECRET")
JWT_EXPIRES_IN = os.getenv("JWT_EXPIRES_IN", "1h")
JWT_REFRESH_EXPIRES_IN = os.getenv("JWT_REFRESH_EXPIRES_IN", "7d")

# --- Midtrans ---
MIDTRANS_SERVER_KEY = os.getenv("MIDTRANS_SERVER_KEY")
MIDTRANS_CLIENT_KEY = os.getenv("MIDTRANS_CLIENT_KEY")
MIDTRANS_WEBHOOK_URL = os.getenv("MIDTRANS_WEBHOOK_URL")
MIDTRANS_IS_PRODUCTION = _flag("MIDTRANS_IS_PRODUCTION", APP_ENV == "production")
MIDTRANS_VERIFY_SIGNATURE = _flag("MIDTRANS_VERIFY_SIGNATURE", True)

# --- Shopify ---
SHOPIFY_SHOP_NAME = os.getenv("SHOPIFY_SHOP_NAME", "")
SHOPIFY_API_KEY = os.getenv("SHOPIFY_API_KEY", "")
SHOPIFY_API_SECRET = os.getenv("SHOPIFY_API_SECRET", "")
SHOPIFY_API_VERSION = os.getenv("SHOPIFY_API_VERSION", "2023-10")
SHOPIFY_WEBHOOK_SECRET = os.getenv("SHOPIFY_WEBHOOK_SECRET")

# --- HTTP ---
DEFAULT_ALLOWED_ORIGINS = [
    "http://localhost:3000",
    "https://demo.beyond-running.com",
    "https://beyond-running.vercel.app",
    "https://beyond-running.com",
    "https://www.beyond-running.com",
]
_origins = os.getenv("CORS_ALLOWED_ORIGINS")
CORS_ALLOWED_ORIGINS = (
    [o.strip() for o in _origins.split(",") if o.strip()] if _origins else DEFAULT_ALLOWED_ORIGINS
)

RATE_LIMIT_ENABLED = _flag("RATE_LIMIT_ENABLED", True)
AUTH_RATE_LIMIT = os.getenv("AUTH_RATE_LIMIT", "20/minute")
CHECKOUT_RATE_LIMIT = os.getenv("CHECKOUT_RATE_LIMIT", "30/minute")

# Tracing is exported only when a collector endpoint is configured
OTLP_ENDPOINT = os.getenv("OTLP_ENDPOINT")
