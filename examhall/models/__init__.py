"""Pydantic models."""
from examhall.models.sessions import (
    AnswerResult,
    AnswerSubmitRequest,
    AnswerSubmitResponse,
    BulkGenerateRequest,
    Progress,
    SessionResetRequest,
)
from examhall.models.window import WindowOpenRequest, WindowUpdateRequest

__all__ = [
    "AnswerResult",
    "AnswerSubmitRequest",
    "AnswerSubmitResponse",
    "BulkGenerateRequest",
    "Progress",
    "SessionResetRequest",
    "WindowOpenRequest",
    "WindowUpdateRequest",
]
