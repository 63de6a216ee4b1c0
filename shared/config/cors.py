from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .settings import CORS_ALLOWED_ORIGINS

CORS_OPTIONS = {
    "allow_origins": CORS_ALLOWED_ORIGINS,
    "allow_credentials": True,
    "allow_methods": ["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    "allow_headers": ["Content-Type", "Authorization", "Accept", "Origin", "X-Requested-With"],
    "expose_headers": ["Content-Length", "X-Total-Count"],
    "max_age": 86400,  # preflight cache, 24h
}


def configure_cors(app: FastAPI) -> None:
    # Disallowed origins get no CORS headers; requests without Origin pass through
    app.add_middleware(CORSMiddleware, **CORS_OPTIONS)
