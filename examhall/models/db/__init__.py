"""Database models."""
from examhall.models.db.exam_session import (
    CompletionReason,
    ExamSession,
    SessionAnswer,
    SessionState,
)
from examhall.models.db.exam_settings import GLOBAL_KEY, ExamSettings
from examhall.models.db.question import Difficulty, Question

__all__ = [
    "CompletionReason",
    "Difficulty",
    "ExamSession",
    "ExamSettings",
    "GLOBAL_KEY",
    "Question",
    "SessionAnswer",
    "SessionState",
]
