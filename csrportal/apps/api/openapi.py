from __future__ import annotations

from typing import Any

from csrportal.apps.api.response import API_VERSION, ErrorEnvelope


def _error_example(*, code: str, message: str, details: dict[str, Any] | None = None) -> dict[str, Any]:
    # Build a consistent error envelope example for OpenAPI docs.
    payload: dict[str, Any] = {
        "error": {"code": code, "message": message},
        "meta": {"request_id": "req_example", "api_version": API_VERSION},
    }
    if details:
        payload["error"]["details"] = details
    return payload


def _response(description: str, example: dict[str, Any]) -> dict[str, Any]:
    return {
        "model": ErrorEnvelope,
        "description": description,
        "content": {"application/json": {"example": example}},
    }


DEFAULT_ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    404: _response(
        "Not found",
        _error_example(
            code="NOT_FOUND",
            message="member not found",
            details={"entity": "member", "id": "42"},
        ),
    ),
    422: _response(
        "Validation error",
        _error_example(
            code="VALIDATION_ERROR",
            message="Illegal subscription transition cancelled -> active",
            details={"field": "status", "current": "cancelled", "target": "active"},
        ),
    ),
    500: _response(
        "Internal server error",
        _error_example(code="INTERNAL_ERROR", message="Internal server error"),
    ),
    503: _response(
        "Store unavailable",
        _error_example(
            code="STORE_TIMEOUT",
            message="Store call timed out",
            details={"operation": "members.list", "timeout_ms": 5000, "retryable": True},
        ),
    ),
}
