"""API dependencies for authentication, rate limiting and query parsing."""

from __future__ import annotations

from typing import Any, TypeVar

from fastapi import Depends, Header, Request, Response
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from weeklypicks.core.client_identity import get_client_ip
from weeklypicks.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    BadRequestError,
    RateLimitError,
)
from weeklypicks.core.logging import get_logger
from weeklypicks.core.rate_limiter import RateLimiter
from weeklypicks.core.security import TokenData, decode_access_token
from weeklypicks.services.import_pipeline import ImportPipeline


__all__ = [
    "build_query",
    "get_admin_imports_limiter",
    "get_import_pipeline",
    "no_store",
    "rate_limit_admin_imports",
    "require_admin",
    "require_user",
]

logger = get_logger("api.dependencies")

QueryModel = TypeVar("QueryModel", bound=BaseModel)


def _extract_token(authorization: str | None) -> str | None:
    """Extract JWT token from the Authorization header."""
    if authorization:
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() == "bearer" and token:
            return token
    return None


async def require_user(
    authorization: str | None = Header(default=None),
) -> TokenData:
    """
    Require authenticated user.

    Raises AuthenticationError if the bearer token is missing or invalid.
    """
    token = _extract_token(authorization)
    if not token:
        raise AuthenticationError(message="Authentication required")
    return decode_access_token(token)


async def require_admin(
    user: TokenData = Depends(require_user),
) -> TokenData:
    """
    Require admin user.

    Raises AuthorizationError if not admin.
    """
    if not user.is_admin:
        raise AuthorizationError(message="Admin privileges required")
    return user


def get_admin_imports_limiter(request: Request) -> RateLimiter:
    """Limiter for the admin import endpoints, installed on ``app.state``."""
    return request.app.state.admin_imports_limiter


async def rate_limit_admin_imports(
    request: Request,
    user: TokenData = Depends(require_admin),
    limiter: RateLimiter = Depends(get_admin_imports_limiter),
) -> None:
    """Apply the per-admin limit to the import endpoints."""
    if not limiter.allow(f"admin:imports:{user.sub}"):
        logger.warning(
            f"Rate limit hit on {request.url.path}",
            extra={"user": user.sub, "client_ip": get_client_ip(request)},
        )
        raise RateLimitError(message="Rate limit exceeded for admin imports")


def get_import_pipeline() -> ImportPipeline:
    return ImportPipeline()


def no_store(response: Response) -> None:
    """Mark a response as uncacheable."""
    response.headers["Cache-Control"] = "no-store"


def build_query(model: type[QueryModel], **params: Any) -> QueryModel:
    """Build a list-query model, reporting cross-field errors as 400."""
    try:
        return model(**{k: v for k, v in params.items() if v is not None})
    except PydanticValidationError as e:
        message = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'query'}: {err['msg']}" for err in e.errors()
        )
        raise BadRequestError(message=message) from None
