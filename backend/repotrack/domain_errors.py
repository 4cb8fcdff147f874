"""Domain-level exception primitives with stable machine-readable codes."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(eq=False)
class DomainError(Exception):
    """Use-case level error with stable code and HTTP mapping."""

    code: str
    http_status: int
    message: str
    details: dict[str, Any] | None = None

    def __str__(self) -> str:
        return self.message


class ValidationError(DomainError):
    """Missing or invalid input field."""

    def __init__(self, code: str, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(code=code, http_status=400, message=message, details=details)


class Forbidden(DomainError):
    """Caller's area or identity may not perform the transition."""

    def __init__(self, code: str, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(code=code, http_status=403, message=message, details=details)


class NotFound(DomainError):
    def __init__(self, code: str, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(code=code, http_status=404, message=message, details=details)


class InvalidState(DomainError):
    """Operation not valid for the current status; client should refresh."""

    def __init__(self, code: str, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(code=code, http_status=409, message=message, details=details)


class ConflictError(DomainError):
    """Lost a race on a uniqueness or state guard; safe to retry."""

    def __init__(self, code: str, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(code=code, http_status=409, message=message, details=details)


class RateLimited(DomainError):
    """Transfer cooldown active."""

    def __init__(self, code: str, message: str, remaining_minutes: int) -> None:
        super().__init__(
            code=code,
            http_status=429,
            message=message,
            details={"remainingMinutes": remaining_minutes},
        )
        self.remaining_minutes = remaining_minutes
