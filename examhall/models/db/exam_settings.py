"""
Global testing window database model.
"""

from __future__ import annotations

from datetime import datetime, timezone

import sqlalchemy as sa
from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from examhall.config import (
    DEFAULT_DURATION_MINUTES,
    DEFAULT_INSTRUCTIONS,
    DEFAULT_PASSING_PERCENTAGE,
    DEFAULT_QUESTIONS_PER_SESSION,
    DEFAULT_WELCOME_MESSAGE,
)
from examhall.database import Base

GLOBAL_KEY = "global"


class ExamSettings(Base):
    """
    Process-wide testing window.
    Exactly one row exists, keyed by ``singleton_key``; the unique constraint
    makes the initial insert race-free.
    """

    __tablename__ = "exam_settings"

    id: Mapped[int] = mapped_column(primary_key=True)
    singleton_key: Mapped[str] = mapped_column(
        String(16), unique=True, default=GLOBAL_KEY, nullable=False
    )

    # Window state
    is_open: Mapped[bool] = mapped_column(default=False, nullable=False)
    window_start: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )
    window_end: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )

    # Structural fields, frozen while the window is open
    duration_minutes: Mapped[int] = mapped_column(
        default=DEFAULT_DURATION_MINUTES, nullable=False
    )
    questions_per_session: Mapped[int] = mapped_column(
        default=DEFAULT_QUESTIONS_PER_SESSION, nullable=False
    )
    stratified_sampling: Mapped[bool] = mapped_column(default=True, nullable=False)
    show_correct_answers: Mapped[bool] = mapped_column(default=True, nullable=False)
    passing_percentage: Mapped[int] = mapped_column(
        default=DEFAULT_PASSING_PERCENTAGE, nullable=False
    )

    # Cosmetic fields, editable at any time
    show_results_immediately: Mapped[bool] = mapped_column(default=False, nullable=False)
    instructions: Mapped[str] = mapped_column(
        Text, default=DEFAULT_INSTRUCTIONS, nullable=False
    )
    welcome_message: Mapped[str] = mapped_column(
        String(500), default=DEFAULT_WELCOME_MESSAGE, nullable=False
    )

    updated_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
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

    def __repr__(self) -> str:
        return (
            f"<ExamSettings(is_open={self.is_open}, duration={self.duration_minutes}, "
            f"questions={self.questions_per_session})>"
        )
