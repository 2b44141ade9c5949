"""Rate limiting with slowapi for the model-backed endpoints."""

import json
from typing import Any, Callable, List

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from docextract.config import get_settings


def _trusted_proxies() -> List[str]:
    raw = get_settings().trusted_proxies
    return [ip.strip() for ip in raw.split(",") if ip.strip()]


def get_client_ip(request: Request) -> str:
    """
    Get the client IP address used as the rate limit key.

    X-Forwarded-For is honoured only when the direct peer is a configured
    trusted proxy, so clients cannot spoof their address.
    """
    direct_ip: str = get_remote_address(request)

    if direct_ip in _trusted_proxies():
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()

    return direct_ip


# In-memory storage, keyed by client IP
limiter = Limiter(key_func=get_client_ip, default_limits=["200/minute"])

RATE_LIMITS = {
    "extract": "10/minute",     # POST /api/extract, /api/extract-url - model calls
    "evaluate": "30/minute",    # POST /api/evaluate - optional model call
    "documents": "100/minute",  # GET /api/documents*, /api/stats - reads
}


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """
    Return 429 Too Many Requests with Retry-After and X-RateLimit-* headers.
    """
    retry_after = getattr(exc, "retry_after", 60)

    error_body = {
        "detail": "Rate limit exceeded",
        "message": f"Too many requests. Please retry after {retry_after} seconds.",
        "retry_after": retry_after,
    }

    response = Response(
        content=json.dumps(error_body),
        status_code=429,
        media_type="application/json",
    )
    response.headers["Retry-After"] = str(retry_after)
    response.headers["X-RateLimit-Remaining"] = "0"
    if getattr(exc, "detail", None):
        response.headers["X-RateLimit-Limit"] = str(exc.detail)

    return response


def get_limiter() -> Limiter:
    return limiter


def limit_extract(func: Callable[..., Any]) -> Callable[..., Any]:
    """Apply rate limit for extraction endpoints (10/minute)."""
    decorated: Callable[..., Any] = limiter.limit(RATE_LIMITS["extract"])(func)
    return decorated


def limit_evaluate(func: Callable[..., Any]) -> Callable[..., Any]:
    """Apply rate limit for the evaluate endpoint (30/minute)."""
    decorated: Callable[..., Any] = limiter.limit(RATE_LIMITS["evaluate"])(func)
    return decorated


def limit_documents(func: Callable[..., Any]) -> Callable[..., Any]:
    """Apply rate limit for document read endpoints (100/minute)."""
    decorated: Callable[..., Any] = limiter.limit(RATE_LIMITS["documents"])(func)
    return decorated
