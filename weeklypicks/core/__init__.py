"""Core infrastructure: settings, security, logging, exceptions."""

from .client_identity import get_client_ip
from .config import settings
from .exceptions import (
    AppException,
    AuthenticationError,
    AuthorizationError,
    BadRequestError,
    NotFoundError,
    RateLimitError,
)
from .rate_limiter import (
    AllowAllRateLimiter,
    FixedWindowRateLimiter,
    RateLimiter,
    create_rate_limiter,
)
from .security import TokenData, create_access_token, decode_access_token


__all__ = [
    "AllowAllRateLimiter",
    "AppException",
    "AuthenticationError",
    "AuthorizationError",
    "BadRequestError",
    "FixedWindowRateLimiter",
    "NotFoundError",
    "RateLimitError",
    "RateLimiter",
    "TokenData",
    "create_access_token",
    "create_rate_limiter",
    "decode_access_token",
    "get_client_ip",
    "settings",
]
