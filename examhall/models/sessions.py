"""Session-related Pydantic models."""
from pydantic import BaseModel, Field


class AnswerSubmitRequest(BaseModel):
    """Model for submitting one answer."""

    position: int = Field(..., ge=0)
    selected_option: int = Field(..., ge=0)


class AnswerResult(BaseModel):
    """Outcome of an accepted answer."""

    isCorrect: bool
    points: int
    correctAnswer: int | None = None
    explanation: str | None = None


class Progress(BaseModel):
    current: int
    total: int
    answered: int


class AnswerSubmitResponse(BaseModel):
    """Model for the answer submission response."""

    message: str
    answerResult: AnswerResult
    progress: Progress
    score: int
    isCompleted: bool
    nextQuestion: dict[str, object] | None = None
    timeRemaining: int | None = None
    results: dict[str, object] | None = None
    detailedResults: list[dict[str, object]] | None = None


class SessionResetRequest(BaseModel):
    """Model for an administrative reset."""

    reason: str | None = Field(None, max_length=500)


class BulkGenerateRequest(BaseModel):
    """Model for pre-generating sessions."""

    candidateIds: list[str] = Field(..., min_length=1)
