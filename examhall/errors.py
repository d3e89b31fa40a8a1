"""Typed errors raised by the exam engine.

Services raise these and never deal with HTTP. The application registers a
single handler that renders ``kind``/``reason``/``detail`` with the class
``status_code``.
"""
from __future__ import annotations

from typing import Any


class ExamError(Exception):
    """Base class for all engine errors."""

    kind = "error"
    status_code = 400

    def __init__(self, detail: str, reason: str | None = None, **extra: Any) -> None:
        super().__init__(detail)
        self.detail = detail
        self.reason = reason
        self.extra = extra

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "error": self.kind,
            "reason": self.reason,
            "detail": self.detail,
        }
        payload.update(self.extra)
        return payload


class NotFound(ExamError):
    kind = "not_found"
    status_code = 404


class InvalidState(ExamError):
    """Operation is illegal in the current state."""

    kind = "invalid_state"
    status_code = 409

    ALREADY_STARTED = "already_started"
    ALREADY_COMPLETED = "already_completed"
    NOT_STARTED = "not_started"
    NOT_COMPLETED = "not_completed"
    CANNOT_RESET_COMPLETED = "cannot_reset_completed"
    WINDOW_ALREADY_OPEN = "window_already_open"
    WINDOW_ALREADY_CLOSED = "window_already_closed"
    FIELDS_LOCKED = "fields_locked"


class OutOfSequence(ExamError):
    kind = "out_of_sequence"
    status_code = 409

    def __init__(self, expected: int, received: int) -> None:
        super().__init__(
            f"Answer for position {received} rejected, next position is {expected}",
            expected=expected,
            received=received,
        )
        self.expected = expected
        self.received = received


class WindowClosed(ExamError):
    kind = "window_closed"
    status_code = 403


class WindowExpired(ExamError):
    kind = "window_expired"
    status_code = 403


class TimeExpired(ExamError):
    kind = "time_expired"
    status_code = 403


class InsufficientContent(ExamError):
    kind = "insufficient_content"
    status_code = 422


class InvalidConfig(ExamError):
    kind = "invalid_config"
    status_code = 422


class Conflict(ExamError):
    kind = "conflict"
    status_code = 409


class StaleWrite(Conflict):
    """A concurrent writer changed the session first."""

    kind = "stale_write"
