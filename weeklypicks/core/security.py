"""Bearer token verification.

Tokens are issued by the managed auth provider; this service only verifies
them and reads the ``sub`` (user id) and ``is_admin`` claims.
"""

from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from pydantic import BaseModel

from .config import settings
from .exceptions import AuthenticationError


JWT_ALGORITHM = "HS256"


class TokenData(BaseModel):
    """Decoded JWT token data."""

    sub: str  # user id
    exp: datetime
    iat: datetime
    iss: str
    aud: str
    jti: str
    is_admin: bool = False


def create_access_token(
    subject: str,
    is_admin: bool = False,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Create a signed JWT access token (used by tooling and tests)."""
    now = datetime.now(timezone.utc)
    expires = now + (expires_delta or timedelta(hours=1))

    payload = {
        "sub": subject,
        "exp": expires,
        "iat": now,
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "jti": secrets.token_urlsafe(16),
        "is_admin": is_admin,
    }

    return jwt.encode(payload, settings.auth_secret, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> TokenData:
    """Decode and validate JWT access token."""
    try:
        payload = jwt.decode(
            token,
            settings.auth_secret,
            algorithms=[JWT_ALGORITHM],
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience,
            options={
                "require": ["exp", "iat", "sub", "iss", "aud", "jti"],
            },
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError(message="Token has expired", error_code="unauthorized")
    except jwt.InvalidTokenError:
        raise AuthenticationError(message="Invalid token", error_code="unauthorized")

    return TokenData(
        sub=payload["sub"],
        exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        iat=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
        iss=payload["iss"],
        aud=payload["aud"],
        jti=payload["jti"],
        is_admin=bool(payload.get("is_admin", False)),
    )
