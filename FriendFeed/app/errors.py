"""Domain errors raised by the service layer.

The HTTP layer maps ``NotFound`` to 404 and the other two to 400; nothing in
the core retries on any of them.
"""

from __future__ import annotations

from typing import Any, Optional


class ServiceError(Exception):
    def __init__(self, message: str, *, field: Optional[str] = None, value: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field
        self.value = value

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"detail": self.message}
        if self.field is not None:
            payload["field"] = self.field
            payload["value"] = self.value
        return payload


class NotFound(ServiceError):
    pass


class InvalidOperation(ServiceError):
    pass


class Conflict(ServiceError):
    pass
