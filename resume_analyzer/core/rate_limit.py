from __future__ import annotations

from typing import Callable

from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request

from resume_analyzer.core.security import extract_token
from resume_analyzer.core.config import settings


def caller_key(request: Request) -> str:
    """Bucket signed-in callers by token, anonymous ones by address."""
    token = extract_token(request.headers.get("authorization"))
    if token:
        return f"token:{token}"
    return get_remote_address(request)


limiter = Limiter(key_func=caller_key)


def rate_limit(limit: str | None = None) -> Callable:
    if settings.rate_limit_enabled:
        return limiter.limit(limit or settings.rate_limit)

    def decorator(func):
        return func

    return decorator
