"""Logging setup and request logging middleware."""

import json
import logging
import sys
import time
import uuid
from typing import Any, Awaitable, Callable, Dict

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

CLI_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO", fmt: str = "%(message)s") -> None:
    """Configure root logging once for the process.

    The HTTP service logs bare messages (request lines are JSON already);
    the CLI passes ``CLI_LOG_FORMAT``.
    """
    logging.basicConfig(level=level, format=fmt, stream=sys.stdout)
    logging.getLogger().setLevel(level)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware that logs one structured JSON line per request.

    Logs include:
    - Request ID (UUID)
    - HTTP method and path
    - Status code
    - Processing time
    - Client IP
    - Document id, type and quality score (from response headers, when set)

    Security notes:
    - Does NOT log API keys, file contents, or extracted field values
    - Does NOT log request/response bodies
    """

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        request_id = getattr(request.state, "request_id", None) or str(uuid.uuid4())
        request.state.request_id = request_id

        start_time = time.time()

        log_data: Dict[str, Any] = {
            "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "user_ip": request.client.host if request.client else "unknown",
        }

        try:
            response = await call_next(request)
        except Exception as e:
            error_log = {
                **log_data,
                "status_code": 500,
                "processing_time_ms": round((time.time() - start_time) * 1000, 2),
                "error": str(e),
                "error_type": type(e).__name__,
                "message": f"Request failed: {request.method} {request.url.path}",
            }
            logger.error(json.dumps(error_log), exc_info=True)
            raise

        log_data.update({
            "status_code": response.status_code,
            "processing_time_ms": round((time.time() - start_time) * 1000, 2),
        })

        for header, key in (("X-Document-ID", "document_id"), ("X-Doc-Type", "doc_type")):
            if header in response.headers:
                log_data[key] = response.headers[header]
        if "X-Quality-Score" in response.headers:
            try:
                log_data["quality_score"] = float(response.headers["X-Quality-Score"])
            except ValueError:
                logger.debug("Ignoring malformed X-Quality-Score header")

        logger.info(json.dumps(log_data))

        response.headers["X-Request-ID"] = request_id
        return response


def get_request_id(request: Request) -> str:
    """Return the request ID stored by the middleware, or "unknown"."""
    return getattr(request.state, "request_id", "unknown")
