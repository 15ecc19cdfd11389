"""Password hashing and access token tests."""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from genstudio.services.auth import (
    TokenClaims,
    create_access_token,
    decode_access_token,
    extract_bearer_token,
    hash_password,
    verify_password,
)
from genstudio.services.exceptions import AuthenticationError

SECRET = "unit-test-secret-0123456789abcdef0123"


@pytest.mark.asyncio
async def test_password_hash_round_trip():
    password_hash = await hash_password("secret123", rounds=4)

    assert password_hash != "secret123"
    assert password_hash.startswith("$2")
    assert await verify_password("secret123", password_hash)
    assert not await verify_password("secret124", password_hash)


@pytest.mark.asyncio
async def test_hashes_are_salted():
    first = await hash_password("secret123", rounds=4)
    second = await hash_password("secret123", rounds=4)

    assert first != second


@pytest.mark.asyncio
async def test_malformed_hash_does_not_verify():
    assert not await verify_password("secret123", "not-a-bcrypt-hash")


def test_token_carries_identity_and_seven_day_expiry():
    issued_at = datetime.now(timezone.utc).replace(microsecond=0)
    token = create_access_token(7, "alice@example.com", SECRET, now=issued_at)

    claims = decode_access_token(token, SECRET)
    payload = jwt.decode(token, SECRET, algorithms=["HS256"])

    assert claims == TokenClaims(user_id=7, email="alice@example.com")
    assert payload["exp"] - payload["iat"] == 7 * 24 * 3600


def test_expired_token_rejected():
    token = create_access_token(
        7, "alice@example.com", SECRET, now=datetime.now(timezone.utc) - timedelta(days=8)
    )

    with pytest.raises(AuthenticationError, match="Token expired"):
        decode_access_token(token, SECRET)


def test_wrong_secret_rejected():
    token = create_access_token(7, "alice@example.com", "another-secret-0123456789abcdef012")

    with pytest.raises(AuthenticationError, match="Invalid token"):
        decode_access_token(token, SECRET)


def test_tampered_payload_rejected():
    header, _, signature = create_access_token(7, "alice@example.com", SECRET).split(".")
    forged_payload = create_access_token(1, "admin@example.com", SECRET).split(".")[1]

    with pytest.raises(AuthenticationError, match="Invalid token"):
        decode_access_token(f"{header}.{forged_payload}.{signature}", SECRET)


def test_token_without_identity_claims_rejected():
    now = datetime.now(timezone.utc)
    token = jwt.encode(
        {"sub": "7", "iat": now, "exp": now + timedelta(hours=1)}, SECRET, algorithm="HS256"
    )

    with pytest.raises(AuthenticationError, match="Invalid token"):
        decode_access_token(token, SECRET)


def test_token_without_expiry_rejected():
    token = jwt.encode({"user_id": 7, "email": "alice@example.com"}, SECRET, algorithm="HS256")

    with pytest.raises(AuthenticationError, match="Invalid token"):
        decode_access_token(token, SECRET)


@pytest.mark.parametrize("header", [None, "", "Bearer", "Bearer   ", "Token abc", "abc"])
def test_bearer_token_required(header):
    with pytest.raises(AuthenticationError, match="Access token required"):
        extract_bearer_token(header)


def test_bearer_token_extracted():
    assert extract_bearer_token("Bearer abc.def.ghi") == "abc.def.ghi"
    assert extract_bearer_token("bearer abc.def.ghi") == "abc.def.ghi"
