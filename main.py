import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from shared.config.cors import configure_cors
from shared.config.database import Base, engine
from shared.config.settings import PORT
from shared.exceptions import AppError
from shared.observability.setup import setup_observability
from shared.responses import error_response
from shared.security.jwt_handler import TokenIssuer
from shared.security.rate_limiter import limiter

# IMPORTANT: import models so they register with Base
from services.auth_service import models as auth_models  # noqa: F401
from services.payment_service import models as payment_models  # noqa: F401
from services.order_history_service import models as order_history_models  # noqa: F401

from services.auth_service.router import router as auth_router
from services.payment_service.gateway import MidtransClient
from services.payment_service.router import router as midtrans_router
from services.shopify_service.client import ShopifyClient
from services.shopify_service.router import router as shopify_router
from services.order_history_service.router import router as order_history_router

logger = structlog.get_logger(__name__)

app = FastAPI(
    title="BEBR API",
    version="1.0.0",
    description="Authentication, Midtrans payments, Shopify checkout and order history.",
    docs_url="/api-docs",
)

setup_observability(app, "bebr_api")
configure_cors(app)

# Missing JWT or Midtrans secrets abort startup here, before any traffic is served
app.state.token_issuer = TokenIssuer.from_settings()
app.state.midtrans_client = MidtransClient.from_settings()
app.state.shopify_client = ShopifyClient.from_settings()
app.state.limiter = limiter

app.include_router(auth_router)
app.include_router(midtrans_router)
app.include_router(shopify_router)
app.include_router(order_history_router)


@app.get("/health", include_in_schema=False)
async def health_check():
    return {"status": "ok"}


# --- Error envelope ---

@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("request_failed", path=request.url.path, error=exc.message)
    return error_response(exc.message, exc.status_code)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    missing = sorted({str(e["loc"][-1]) for e in errors if e.get("type") == "missing"})
    if missing:
        message = f"Missing required fields: {', '.join(missing)}"
    elif errors:
        first = errors[0]
        message = f"Invalid {first['loc'][-1]}: {first['msg']}"
    else:
        message = "Invalid request"
    return error_response(message, 400)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return error_response(str(exc.detail), exc.status_code, headers=getattr(exc, "headers", None))


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return error_response(f"Rate limit exceeded: {exc.detail}", 429)


@app.on_event("startup")
async def startup_event():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("startup_complete")


@app.on_event("shutdown")
async def shutdown_event():
    await app.state.midtrans_client.aclose()
    await app.state.shopify_client.aclose()
    await engine.dispose()


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=PORT)
