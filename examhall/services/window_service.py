"""Service layer for the global testing window."""
import logging
import threading
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session as DbSession

from examhall.config import (
    MAX_DURATION_MINUTES,
    MAX_INSTRUCTIONS_LENGTH,
    MAX_QUESTIONS_PER_SESSION,
    MAX_WELCOME_MESSAGE_LENGTH,
    MIN_DURATION_MINUTES,
    MIN_QUESTIONS_PER_SESSION,
)
from examhall.errors import InsufficientContent, InvalidConfig, InvalidState, NotFound
from examhall.models.db.exam_settings import GLOBAL_KEY, ExamSettings
from examhall.services import question_pool
from examhall.utils import as_utc, utc_now

logger = logging.getLogger(__name__)

# Window mutations are rare and admin-driven
_window_lock = threading.Lock()

# Fields that may change while the window is open
COSMETIC_FIELDS = frozenset({"instructions", "welcome_message", "show_results_immediately"})

# Fields frozen while the window is open
STRUCTURAL_FIELDS = frozenset({
    "duration_minutes",
    "questions_per_session",
    "stratified_sampling",
    "show_correct_answers",
    "passing_percentage",
})

UPDATABLE_FIELDS = COSMETIC_FIELDS | STRUCTURAL_FIELDS


def ensure_window(db: DbSession) -> ExamSettings:
    """
    Create the default window row exactly once.
    Concurrent callers race on the unique singleton key; the loser re-reads.
    """
    window = _load(db)
    if window:
        return window

    db.add(ExamSettings(singleton_key=GLOBAL_KEY))
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info("Default window created concurrently, re-reading")
    window = _load(db)
    if window is None:
        raise NotFound("Exam settings could not be initialised")
    return window


def _load(db: DbSession) -> ExamSettings | None:
    return db.execute(
        select(ExamSettings).where(ExamSettings.singleton_key == GLOBAL_KEY)
    ).scalar_one_or_none()


def get_window(db: DbSession) -> ExamSettings:
    """Get the global window. ``ensure_window`` must have run first."""
    window = _load(db)
    if window is None:
        raise NotFound("Exam settings are not initialised")
    return window


def window_deadline(window: ExamSettings) -> datetime | None:
    start = as_utc(window.window_start)
    if start is None:
        return None
    return start + timedelta(minutes=window.duration_minutes)


def is_expired(window: ExamSettings, now: datetime | None = None) -> bool:
    """True once the open window has run past start + duration."""
    if not window.is_open:
        return False
    deadline = window_deadline(window)
    if deadline is None:
        return False
    return (now or utc_now()) > deadline


def remaining_seconds(window: ExamSettings, now: datetime | None = None) -> int:
    """Seconds left in the calendar window, 0 when closed or expired."""
    if not window.is_open:
        return 0
    deadline = window_deadline(window)
    if deadline is None:
        return 0
    return max(0, int((deadline - (now or utc_now())).total_seconds()))


def status(window: ExamSettings, now: datetime | None = None) -> str:
    if not window.is_open:
        return "NOT_STARTED"
    if is_expired(window, now):
        return "EXPIRED"
    return "ACTIVE"


def formatted_duration(minutes: int) -> str:
    hours, mins = divmod(minutes, 60)
    if hours > 0:
        return f"{hours}h {mins}min"
    return f"{mins}min"


def client_config(window: ExamSettings, now: datetime | None = None) -> dict[str, object]:
    """Candidate-visible view of the window."""
    start = as_utc(window.window_start)
    return {
        "isOpen": window.is_open,
        "durationMinutes": window.duration_minutes,
        "questionsPerSession": window.questions_per_session,
        "windowStart": start.isoformat() if start else None,
        "showResultsImmediately": window.show_results_immediately,
        "showCorrectAnswers": window.show_correct_answers,
        "passingPercentage": window.passing_percentage,
        "instructions": window.instructions,
        "welcomeMessage": window.welcome_message,
        "remainingSeconds": remaining_seconds(window, now),
        "status": status(window, now),
        "formattedDuration": formatted_duration(window.duration_minutes),
    }


def _validate(changes: dict[str, Any]) -> None:
    unknown = set(changes) - UPDATABLE_FIELDS
    if unknown:
        raise InvalidConfig(
            f"Unknown settings: {', '.join(sorted(unknown))}", fields=sorted(unknown)
        )

    duration = changes.get("duration_minutes")
    if duration is not None and not MIN_DURATION_MINUTES <= duration <= MAX_DURATION_MINUTES:
        raise InvalidConfig(
            f"Duration must be between {MIN_DURATION_MINUTES} and {MAX_DURATION_MINUTES} minutes"
        )

    count = changes.get("questions_per_session")
    if count is not None and not MIN_QUESTIONS_PER_SESSION <= count <= MAX_QUESTIONS_PER_SESSION:
        raise InvalidConfig(
            f"Questions per session must be between {MIN_QUESTIONS_PER_SESSION} "
            f"and {MAX_QUESTIONS_PER_SESSION}"
        )

    passing = changes.get("passing_percentage")
    if passing is not None and not 0 <= passing <= 100:
        raise InvalidConfig("Passing percentage must be between 0 and 100")

    instructions = changes.get("instructions")
    if instructions is not None and len(instructions) > MAX_INSTRUCTIONS_LENGTH:
        raise InvalidConfig(f"Instructions cannot exceed {MAX_INSTRUCTIONS_LENGTH} characters")

    welcome = changes.get("welcome_message")
    if welcome is not None and len(welcome) > MAX_WELCOME_MESSAGE_LENGTH:
        raise InvalidConfig(f"Welcome message cannot exceed {MAX_WELCOME_MESSAGE_LENGTH} characters")


def open_window(
    db: DbSession,
    duration_minutes: int | None = None,
    questions_per_session: int | None = None,
    actor: str | None = None,
    now: datetime | None = None,
) -> ExamSettings:
    """Open the testing window, optionally resizing it first."""
    with _window_lock:
        window = get_window(db)
        if window.is_open:
            raise InvalidState("Testing is already in progress", InvalidState.WINDOW_ALREADY_OPEN)

        changes: dict[str, Any] = {}
        if duration_minutes is not None:
            changes["duration_minutes"] = duration_minutes
        if questions_per_session is not None:
            changes["questions_per_session"] = questions_per_session
        _validate(changes)

        if question_pool.count_active(db) == 0:
            raise InsufficientContent("No active questions available, cannot open testing")

        for key, value in changes.items():
            setattr(window, key, value)
        window.is_open = True
        window.window_start = now or utc_now()
        window.window_end = None
        window.updated_by = actor
        db.commit()
        db.refresh(window)

    logger.info(
        f"Testing window opened by {actor or 'system'}: "
        f"{window.duration_minutes} min, {window.questions_per_session} questions"
    )
    return window


def close_window(
    db: DbSession,
    actor: str | None = None,
    now: datetime | None = None,
) -> tuple[ExamSettings, int]:
    """
    Close the testing window and force-complete every unfinished session.
    Returns the window and the number of sessions completed by the sweep.
    """
    # session_service depends on this module
    from examhall.services import session_service

    now = now or utc_now()
    with _window_lock:
        window = get_window(db)
        if not window.is_open:
            raise InvalidState("Testing is not currently active", InvalidState.WINDOW_ALREADY_CLOSED)

        window.is_open = False
        window.window_end = now
        window.updated_by = actor
        db.commit()
        db.refresh(window)

    logger.info(f"Testing window closed by {actor or 'system'}")
    completed = session_service.force_complete_open_sessions(db, now=now)
    return window, completed


def update_window(
    db: DbSession,
    changes: dict[str, Any],
    actor: str | None = None,
) -> ExamSettings:
    """
    Apply a partial settings update.
    While the window is open only cosmetic fields may change.
    """
    with _window_lock:
        window = get_window(db)
        _validate(changes)

        if window.is_open:
            locked = sorted(set(changes) & STRUCTURAL_FIELDS)
            if locked:
                raise InvalidState(
                    "Cannot modify these settings while testing is active",
                    InvalidState.FIELDS_LOCKED,
                    locked=locked,
                    allowed=sorted(COSMETIC_FIELDS),
                )

        for key, value in changes.items():
            setattr(window, key, value)
        window.updated_by = actor
        db.commit()
        db.refresh(window)

    logger.info(f"Settings updated by {actor or 'system'}: {', '.join(sorted(changes)) or 'nothing'}")
    return window
