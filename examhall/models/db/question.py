"""Question database model."""
from __future__ import annotations

import enum
import json
from datetime import datetime, timezone

import sqlalchemy as sa
from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column, validates

from examhall.config import MAX_OPTIONS, MIN_OPTIONS, QUESTION_FIELD_LIMITS
from examhall.database import Base


class Difficulty(str, enum.Enum):
    """Difficulty tier used for stratified sampling."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class Question(Base):
    """
    Multiple-choice question in the shared bank.
    Sessions reference questions by id only, so rows may be edited,
    deactivated or deleted without touching existing sessions.
    """

    __tablename__ = "questions"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    options_json: Mapped[str] = mapped_column(Text, nullable=False)
    correct_answer: Mapped[int] = mapped_column(nullable=False)
    difficulty: Mapped[str] = mapped_column(
        String(16), default=Difficulty.MEDIUM.value, nullable=False, index=True
    )
    topic: Mapped[str] = mapped_column(String(100), nullable=False, default="general")
    points: Mapped[int] = mapped_column(default=1, nullable=False)
    explanation: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False, index=True)
    usage_count: Mapped[int] = mapped_column(default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    def __init__(self, **kwargs) -> None:
        # options must be in place before correct_answer is validated
        options = kwargs.pop("options", None)
        if options is not None:
            self.options = options
        super().__init__(**kwargs)

    @property
    def options(self) -> list[str]:
        """Parse options from JSON."""
        if not self.options_json:
            return []
        try:
            return json.loads(self.options_json)
        except (json.JSONDecodeError, TypeError):
            return []

    @options.setter
    def options(self, value: list[str]) -> None:
        """Serialize options to JSON."""
        if not MIN_OPTIONS <= len(value) <= MAX_OPTIONS:
            raise ValueError(
                f"Question must have between {MIN_OPTIONS} and {MAX_OPTIONS} options"
            )
        self.options_json = json.dumps(list(value), ensure_ascii=False)

    @validates("correct_answer")
    def _validate_correct_answer(self, key: str, value: int) -> int:
        if value < 0 or value >= len(self.options):
            raise ValueError("Correct answer index must be less than options length")
        return value

    @validates("title", "description", "topic", "explanation")
    def _validate_length(self, key: str, value: str | None) -> str | None:
        if value is not None and len(value) > QUESTION_FIELD_LIMITS[key]:
            raise ValueError(f"{key.capitalize()} cannot exceed {QUESTION_FIELD_LIMITS[key]} characters")
        return value

    @validates("points")
    def _validate_points(self, key: str, value: int) -> int:
        if value < 1:
            raise ValueError("Points must be at least 1")
        return value

    @validates("difficulty")
    def _validate_difficulty(self, key: str, value: str | Difficulty) -> str:
        return Difficulty(value).value

    def __repr__(self) -> str:
        return f"<Question(id={self.id}, difficulty='{self.difficulty}', active={self.is_active})>"
