from __future__ import annotations

from typing import Any, Dict, Optional


class HallPassError(Exception):
    """Base class for failures surfaced to API callers.

    Each subclass carries a ``kind`` tag and the HTTP status the boundary maps it to,
    so routers never translate errors themselves.
    """

    kind = "internal"
    status_code = 500

    def __init__(self, message: str, extra: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.extra = extra or {}


class ValidationError(HallPassError):
    kind = "validation"
    status_code = 400


class NotFoundError(HallPassError):
    kind = "not_found"
    status_code = 404

    def __init__(self, entity: str, message: Optional[str] = None) -> None:
        super().__init__(message or f"{entity.capitalize()} not found", {"entity": entity})
        self.entity = entity


class ConflictError(HallPassError):
    kind = "conflict"
    status_code = 409


class InternalFailure(HallPassError):
    kind = "internal"
    status_code = 500

    def __init__(self, message: str = "Internal server error") -> None:
        super().__init__(message)


class ConstraintViolation(InternalFailure):
    """A statement was rejected by a store-level constraint (unique, check, foreign key)."""
