"""Password hashing and bearer token handling.

Passwords are hashed with bcrypt (salted, cost-factored). Tokens are HS256
JWTs carrying the user id and email with a fixed expiry.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import bcrypt
import jwt

from genstudio.services.exceptions import AuthenticationError

JWT_ALGORITHM = "HS256"


@dataclass(frozen=True)
class TokenClaims:
    """Identity carried by a verified access token."""

    user_id: int
    email: str


async def hash_password(password: str, rounds: int = 12) -> str:
    """Hash a password with a fresh salt.

    bcrypt is CPU-bound, so it runs in a worker thread to keep the event loop
    responsive.
    """

    def _hash() -> str:
        salt = bcrypt.gensalt(rounds=rounds)
        return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")

    return await asyncio.to_thread(_hash)


async def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against a stored bcrypt hash."""

    def _verify() -> bool:
        try:
            return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
        except ValueError:
            # Malformed stored hash
            return False

    return await asyncio.to_thread(_verify)


def create_access_token(
    user_id: int,
    email: str,
    secret: str,
    expires_in: timedelta = timedelta(days=7),
    now: datetime | None = None,
) -> str:
    """Issue a signed access token.

    Args:
        user_id: Authenticated user's ID
        email: Authenticated user's email
        secret: HMAC signing secret
        expires_in: Token lifetime (default: 7 days)
        now: Issue time override, for tests

    Returns:
        Encoded JWT string
    """
    issued_at = now or datetime.now(timezone.utc)
    payload = {
        "user_id": user_id,
        "email": email,
        "iat": issued_at,
        "exp": issued_at + expires_in,
    }
    return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str, secret: str) -> TokenClaims:
    """Verify a token's signature and expiry.

    Raises:
        AuthenticationError: "Token expired" or "Invalid token"
    """
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[JWT_ALGORITHM],
            options={"require": ["exp", "iat"]},
        )
    except jwt.ExpiredSignatureError as e:
        raise AuthenticationError("Token expired") from e
    except jwt.InvalidTokenError as e:
        raise AuthenticationError("Invalid token") from e

    user_id = payload.get("user_id")
    email = payload.get("email")
    if not isinstance(user_id, int) or not isinstance(email, str):
        raise AuthenticationError("Invalid token")

    return TokenClaims(user_id=user_id, email=email)


def extract_bearer_token(authorization: str | None) -> str:
    """Pull the token out of an `Authorization: Bearer <token>` header.

    Raises:
        AuthenticationError: If the header is missing or not a bearer credential
    """
    if not authorization:
        raise AuthenticationError("Access token required")

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError("Access token required")

    return token.strip()
