"""Global window Pydantic models."""
from pydantic import BaseModel, Field

from examhall.config import (
    MAX_DURATION_MINUTES,
    MAX_INSTRUCTIONS_LENGTH,
    MAX_QUESTIONS_PER_SESSION,
    MAX_WELCOME_MESSAGE_LENGTH,
    MIN_DURATION_MINUTES,
    MIN_QUESTIONS_PER_SESSION,
)


class WindowOpenRequest(BaseModel):
    """Model for opening the testing window."""

    duration_minutes: int | None = Field(
        None, ge=MIN_DURATION_MINUTES, le=MAX_DURATION_MINUTES
    )
    questions_per_session: int | None = Field(
        None, ge=MIN_QUESTIONS_PER_SESSION, le=MAX_QUESTIONS_PER_SESSION
    )


class WindowUpdateRequest(BaseModel):
    """Partial settings update; unset fields are left alone."""

    duration_minutes: int | None = Field(
        None, ge=MIN_DURATION_MINUTES, le=MAX_DURATION_MINUTES
    )
    questions_per_session: int | None = Field(
        None, ge=MIN_QUESTIONS_PER_SESSION, le=MAX_QUESTIONS_PER_SESSION
    )
    stratified_sampling: bool | None = None
    show_correct_answers: bool | None = None
    show_results_immediately: bool | None = None
    passing_percentage: int | None = Field(None, ge=0, le=100)
    instructions: str | None = Field(None, max_length=MAX_INSTRUCTIONS_LENGTH)
    welcome_message: str | None = Field(None, max_length=MAX_WELCOME_MESSAGE_LENGTH)
