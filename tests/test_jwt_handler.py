from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from shared.security.jwt_handler import (
    ALGORITHM,
    TokenExpiredError,
    TokenIdentity,
    TokenInvalidError,
    TokenIssuer,
    parse_duration,
)

IDENTITY = TokenIdentity(id="user-1", username="runner", email="runner@example.com")


@pytest.fixture
def issuer():
    return TokenIssuer("access-secret", "refresh-secret", "1h", "7d")


def test_issued_tokens_round_trip_identity(issuer):
    pair = issuer.issue_token_pair(IDENTITY)

    assert issuer.verify_access_token(pair.access_token) == IDENTITY
    assert issuer.verify_refresh_token(pair.refresh_token) == IDENTITY


def test_access_and_refresh_tokens_use_distinct_secrets(issuer):
    pair = issuer.issue_token_pair(IDENTITY)

    with pytest.raises(TokenInvalidError):
        issuer.verify_access_token(pair.refresh_token)
    with pytest.raises(TokenInvalidError):
        issuer.verify_refresh_token(pair.access_token)


def test_expiries_follow_configuration(issuer):
    pair = issuer.issue_token_pair(IDENTITY)
    access = jwt.get_unverified_claims(pair.access_token)
    refresh = jwt.get_unverified_claims(pair.refresh_token)

    assert access["exp"] - access["iat"] == 3600
    assert refresh["exp"] - refresh["iat"] == 7 * 24 * 3600


def test_expired_token_is_distinguished_from_invalid(issuer):
    expired = jwt.encode(
        {**IDENTITY.model_dump(), "exp": datetime.now(timezone.utc) - timedelta(minutes=5)},
        "access-secret",
        algorithm=ALGORITHM,
    )

    with pytest.raises(TokenExpiredError) as exc_info:
        issuer.verify_access_token(expired)
    assert exc_info.value.message == "Token expired"

    with pytest.raises(TokenInvalidError) as exc_info:
        issuer.verify_access_token("not-a-jwt")
    assert exc_info.value.message == "Invalid token"


def test_token_without_identity_claims_is_invalid(issuer):
    token = jwt.encode({"sub": "user-1"}, "access-secret", algorithm=ALGORITHM)

    with pytest.raises(TokenInvalidError):
        issuer.verify_access_token(token)


@pytest.mark.parametrize("access, refresh", [(None, "refresh"), ("access", None), ("", "")])
def test_missing_secrets_are_fatal(access, refresh):
    with pytest.raises(ValueError):
        TokenIssuer(access, refresh)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("1h", timedelta(hours=1)),
        ("7d", timedelta(days=7)),
        ("15m", timedelta(minutes=15)),
        ("30s", timedelta(seconds=30)),
        ("3600", timedelta(seconds=3600)),
    ],
)
def test_parse_duration(raw, expected):
    assert parse_duration(raw) == expected


def test_parse_duration_rejects_garbage():
    with pytest.raises(ValueError):
        parse_duration("soon")
