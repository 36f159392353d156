from __future__ import annotations

from typing import Any


class CsrPortalError(Exception):
    """Base error for the CSR portal service layer."""

    code = "CSR_PORTAL_ERROR"

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = {key: value for key, value in details.items() if value is not None}


class ValidationError(CsrPortalError):
    """Malformed filter, pagination or update input, or an illegal status transition."""

    code = "VALIDATION_ERROR"


class NotFoundError(CsrPortalError):
    """Lookup by id matched no row."""

    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: str) -> None:
        super().__init__(f"{entity} not found", entity=entity, id=entity_id)
        self.entity = entity
        self.entity_id = entity_id


class StoreError(CsrPortalError):
    """Transient store failure; callers may re-issue the same call."""

    code = "STORE_UNAVAILABLE"


class StoreTimeoutError(StoreError):
    """Store call exceeded its per-call timeout and was cancelled."""

    code = "STORE_TIMEOUT"


class ConstraintViolationError(StoreError):
    """Store rejected a write on a uniqueness or foreign-key constraint."""

    code = "STORE_CONSTRAINT"


class DataIntegrityError(StoreError):
    """Row references a member or vehicle that does not exist."""

    code = "DATA_INTEGRITY_ERROR"
