"""
ExamSession and SessionAnswer database models.
"""

from __future__ import annotations

import enum
import json
from datetime import datetime, timezone

import sqlalchemy as sa
from sqlalchemy import ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from examhall.database import Base


class SessionState(str, enum.Enum):
    """Lifecycle of one candidate's attempt."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class CompletionReason(str, enum.Enum):
    """Why a session reached COMPLETED."""

    SUBMITTED = "submitted"
    ALL_ANSWERED = "all_answered"
    TIME_EXPIRED = "time_expired"
    WINDOW_CLOSED = "window_closed"
    ADMIN = "admin"


class ExamSession(Base):
    """
    One candidate's single exam attempt.
    The question list is fixed at creation; answers are appended strictly
    by position.
    """

    __tablename__ = "exam_sessions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, index=True)
    candidate_id: Mapped[str] = mapped_column(
        String(64), unique=True, index=True, nullable=False
    )

    # Ordered question ids (stored as JSON string)
    question_ids_json: Mapped[str] = mapped_column(Text, nullable=False)

    # Scoring
    score: Mapped[int] = mapped_column(default=0, nullable=False)
    max_score: Mapped[int] = mapped_column(default=0, nullable=False)
    answered_count: Mapped[int] = mapped_column(default=0, nullable=False)

    # Timing
    started_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )
    time_spent_seconds: Mapped[int] = mapped_column(default=0, nullable=False)

    # Status
    is_completed: Mapped[bool] = mapped_column(default=False, nullable=False, index=True)
    completion_reason: Mapped[str | None] = mapped_column(String(20), nullable=True)
    generation_strategy: Mapped[str] = mapped_column(String(32), nullable=False)

    version: Mapped[int] = mapped_column(nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    # Relationships
    answers: Mapped[list["SessionAnswer"]] = relationship(
        "SessionAnswer",
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="SessionAnswer.position",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version}

    @property
    def question_ids(self) -> list[int]:
        """Parse question ids from JSON."""
        if not self.question_ids_json:
            return []
        try:
            return [int(item) for item in json.loads(self.question_ids_json)]
        except (json.JSONDecodeError, TypeError, ValueError):
            return []

    @question_ids.setter
    def question_ids(self, value: list[int]) -> None:
        """Serialize question ids to JSON."""
        self.question_ids_json = json.dumps([int(item) for item in value])

    @property
    def current_position(self) -> int:
        """Only position the next answer may target."""
        return len(self.answers)

    @property
    def total_questions(self) -> int:
        return len(self.question_ids)

    @property
    def state(self) -> SessionState:
        if self.is_completed:
            return SessionState.COMPLETED
        if self.started_at is None:
            return SessionState.NOT_STARTED
        return SessionState.IN_PROGRESS

    def __repr__(self) -> str:
        return (
            f"<ExamSession(id='{self.id}', candidate_id='{self.candidate_id}', "
            f"state='{self.state.value}')>"
        )


class SessionAnswer(Base):
    """
    Answer to the question at one position of a session.
    Written once, never updated.
    """

    __tablename__ = "session_answers"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    session_id: Mapped[str] = mapped_column(
        ForeignKey("exam_sessions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(nullable=False)

    # Weak reference: no FK so deleting a question leaves the answer intact
    question_id: Mapped[int] = mapped_column(nullable=False)

    selected_option: Mapped[int] = mapped_column(nullable=False)
    is_correct: Mapped[bool] = mapped_column(nullable=False)
    points_awarded: Mapped[int] = mapped_column(default=0, nullable=False)
    answered_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("session_id", "position", name="uq_session_position"),
    )

    session: Mapped["ExamSession"] = relationship("ExamSession", back_populates="answers")
