"""Per-request access log and request id.

    INFO [POST] /api/v1/orders/123/confirm-delivery → 200 (18ms) req_a1b2c3d4e5f6

A well-formed inbound X-Request-ID (the checkout client forwards one) is kept
so a submission can be traced across both sides; otherwise a fresh id is
minted. Either way it lands on request.state.request_id, in the ApiResponse
envelope and in the X-Request-ID response header.
"""

import logging
import re
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("mk.request")

_INBOUND_ID = re.compile(r"^[A-Za-z0-9_\-]{8,64}$")


def resolve_request_id(inbound: str | None) -> str:
    if inbound and _INBOUND_ID.match(inbound):
        return inbound
    return f"req_{uuid.uuid4().hex[:12]}"


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = resolve_request_id(request.headers.get("X-Request-ID"))
        request.state.request_id = request_id

        started = time.perf_counter()
        response: Response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        logger.log(
            level,
            "[%s] %s → %d (%.0fms) %s",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            request_id,
        )
        response.headers["X-Request-ID"] = request_id
        return response
