"""Unified API response envelope.

Every endpoint, success or failure, answers with:
{
    "code": 0,           // 0 = success, otherwise the AppError code
    "message": "success",
    "data": { ... },     // null on AppError; {"fields": {...}} on validation failure
    "timestamp": "...",
    "request_id": "..."  // same id as the X-Request-ID response header
}
"""

import uuid
from datetime import datetime, timezone
from typing import Any

from fastapi import Request
from pydantic import BaseModel, Field

VALIDATION_ERROR_CODE = 9004


def _new_request_id() -> str:
    return f"req_{uuid.uuid4().hex[:12]}"


class ApiResponse(BaseModel):
    code: int = 0
    message: str = "success"
    data: Any = None
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    request_id: str = Field(default_factory=_new_request_id)


def _stamp(resp: ApiResponse, request: Request | None) -> ApiResponse:
    if request is not None:
        resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


def success_response(data: Any = None, request: Request | None = None) -> ApiResponse:
    return _stamp(ApiResponse(data=data), request)


def error_response(code: int, message: str, request: Request | None = None) -> ApiResponse:
    return _stamp(ApiResponse(code=code, message=message, data=None), request)


def validation_error_response(
    errors: list[dict[str, Any]], request: Request | None = None
) -> ApiResponse:
    """Field-scoped messages keyed by dotted location, body prefix dropped.

    The first field's message doubles as the envelope message.
    """
    fields: dict[str, str] = {}
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        msg = str(err.get("msg", "Invalid value")).removeprefix("Value error, ")
        fields.setdefault(".".join(loc) or "request", msg)
    first = next(iter(fields.items()), ("request", "Invalid request"))
    resp = ApiResponse(
        code=VALIDATION_ERROR_CODE, message=f"{first[0]}: {first[1]}", data={"fields": fields}
    )
    return _stamp(resp, request)
