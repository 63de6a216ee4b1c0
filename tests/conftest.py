import base64
import hashlib
import hmac
import json
import os
from datetime import datetime, timezone
from functools import lru_cache

# Settings are read at import time, so the environment must be in place first
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["JWT_REFRESH_SECRET"] = "test-refresh-secret"
os.environ["JWT_EXPIRES_IN"] = "1h"
os.environ["JWT_REFRESH_EXPIRES_IN"] = "7d"
os.environ["MIDTRANS_SERVER_KEY"] = "test-server-key"
os.environ["MIDTRANS_CLIENT_KEY"] = "test-client-key"
os.environ["MIDTRANS_WEBHOOK_URL"] = "https://example.com/payment/finish"
os.environ["SHOPIFY_WEBHOOK_SECRET"] = "test-shopify-secret"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["AUTH_RATE_LIMIT"] = "5/minute"
os.environ["CHECKOUT_RATE_LIMIT"] = "3/minute"
os.environ.pop("OTLP_ENDPOINT", None)

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from main import app as fastapi_app
from services.auth_service.models import User
from services.auth_service.service import AuthService
from services.order_history_service.models import OrderHistory
from services.payment_service.gateway import MidtransClient, get_midtrans_client
from services.shopify_service.client import ShopifyClient, get_shopify_client
from shared.config.database import Base, get_db
from shared.security.jwt_handler import TokenIdentity

SHOPIFY_SECRET = "test-shopify-secret"
MIDTRANS_SERVER_KEY = "test-server-key"
PASSWORD = "password123"


@lru_cache(maxsize=1)
def password_hash() -> str:
    return AuthService._hash_password(PASSWORD)


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def midtrans_client():
    client = MidtransClient(
        server_key=MIDTRANS_SERVER_KEY,
        client_key="test-client-key",
        webhook_url="https://example.com/payment/finish",
    )
    yield client
    await client.aclose()


@pytest_asyncio.fixture
async def shopify_client():
    client = ShopifyClient(
        shop_name="test-shop",
        api_key="test-api-key",
        api_secret="test-api-secret",
        webhook_secret=SHOPIFY_SECRET,
    )
    yield client
    await client.aclose()


@pytest_asyncio.fixture
async def client(session_factory, midtrans_client, shopify_client):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    fastapi_app.dependency_overrides[get_db] = override_get_db
    fastapi_app.dependency_overrides[get_midtrans_client] = lambda: midtrans_client
    fastapi_app.dependency_overrides[get_shopify_client] = lambda: shopify_client

    transport = httpx.ASGITransport(app=fastapi_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def token_issuer():
    return fastapi_app.state.token_issuer


@pytest.fixture
def make_user(session_factory):
    async def _make_user(username="runner", email="runner@example.com") -> User:
        async with session_factory() as session:
            user = User(username=username, email=email, password_hash=password_hash())
            session.add(user)
            await session.commit()
            await session.refresh(user)
            return user
    return _make_user


@pytest_asyncio.fixture
async def user(make_user):
    return await make_user()


@pytest.fixture
def auth_headers(token_issuer):
    def _auth_headers(user: User) -> dict:
        pair = token_issuer.issue_token_pair(
            TokenIdentity(id=user.id, username=user.username, email=user.email)
        )
        return {"Authorization": f"Bearer {pair.access_token}"}
    return _auth_headers


@pytest.fixture
def add_order(session_factory):
    async def _add_order(order_id, status="paid", user_id=None, email=None, created_at=None) -> OrderHistory:
        created_at = created_at or datetime.now(timezone.utc)
        async with session_factory() as session:
            order = OrderHistory(
                order_id=order_id,
                status=status,
                user_id=user_id,
                email=email,
                order_data={"id": order_id},
                created_at=created_at,
                updated_at=created_at,
            )
            session.add(order)
            await session.commit()
            await session.refresh(order)
            return order
    return _add_order


def shopify_signature(raw_body: bytes, secret: str = SHOPIFY_SECRET) -> str:
    return base64.b64encode(hmac.new(secret.encode(), raw_body, hashlib.sha256).digest()).decode()


def shopify_delivery(topic: str, payload: dict, secret: str = SHOPIFY_SECRET) -> dict:
    """Builds request kwargs for a signed Shopify webhook delivery."""
    raw_body = json.dumps(payload).encode()
    return {
        "content": raw_body,
        "headers": {
            "Content-Type": "application/json",
            "X-Shopify-Topic": topic,
            "X-Shopify-Hmac-Sha256": shopify_signature(raw_body, secret),
        },
    }


def midtrans_notification(order_id: str, transaction_status: str, gross_amount="150000.00", status_code="200") -> dict:
    raw = f"{order_id}{status_code}{gross_amount}{MIDTRANS_SERVER_KEY}"
    return {
        "order_id": order_id,
        "transaction_status": transaction_status,
        "status_code": status_code,
        "gross_amount": gross_amount,
        "signature_key": hashlib.sha512(raw.encode()).hexdigest(),
        "transaction_id": "9aed5972-5b6a-401e-894b-a32c91ed1a3a",
        "payment_type": "bank_transfer",
    }
