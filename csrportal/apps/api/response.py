"""Wire envelopes for the CSR portal API.

Successful calls return ``{"data": ..., "meta": {...}}``; failures return
``{"error": {"code", "message", "details"?}, "meta": {...}}``. Both carry the
request id echoed in the ``X-Request-Id`` header.
"""

from __future__ import annotations

from typing import Any, Generic, TypeVar
from uuid import uuid4

from fastapi import Request
from pydantic import BaseModel, ConfigDict, Field

from csrportal.persistence.mapping import to_camel


API_VERSION = "v1"

T = TypeVar("T")


class ApiModel(BaseModel):
    # Payload fields are snake_case in Python and camelCase on the wire.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ResponseMeta(BaseModel):
    request_id: str
    api_version: str = Field(default=API_VERSION)


class ErrorDetail(BaseModel):
    code: str
    message: str
    details: dict[str, Any] | None = None


class SuccessEnvelope(BaseModel, Generic[T]):
    data: T
    meta: ResponseMeta


class ErrorEnvelope(BaseModel):
    error: ErrorDetail
    meta: ResponseMeta


def get_request_id(request: Request) -> str:
    # The middleware stamps request.state; handlers reached without it fall back.
    request_id = getattr(request.state, "request_id", None) or request.headers.get(
        "X-Request-Id"
    )
    if not request_id:
        request_id = str(uuid4())
    request.state.request_id = request_id
    return request_id


def _meta(request: Request) -> dict[str, Any]:
    return ResponseMeta(request_id=get_request_id(request)).model_dump()


def success_response(*, request: Request, data: Any) -> dict[str, Any]:
    return {"data": data, "meta": _meta(request)}


def error_response(
    *,
    request: Request,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    error = ErrorDetail(code=code, message=message, details=details)
    return {"error": error.model_dump(exclude_none=True), "meta": _meta(request)}
