"""
Exam session state machine.

NOT_STARTED -> IN_PROGRESS -> COMPLETED. Every mutating operation for a
candidate runs under that candidate's lock; the optimistic version column
on ``exam_sessions`` rejects writers from other processes.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session as DbSession
from sqlalchemy.orm.exc import StaleDataError

from examhall.errors import (
    InvalidState,
    NotFound,
    OutOfSequence,
    StaleWrite,
    TimeExpired,
    WindowClosed,
    WindowExpired,
)
from examhall.models.db.exam_session import (
    CompletionReason,
    ExamSession,
    SessionAnswer,
    SessionState,
)
from examhall.models.db.exam_settings import ExamSettings
from examhall.services import question_pool, window_service
from examhall.utils import KeyedLock, as_utc, elapsed_seconds, utc_now

logger = logging.getLogger(__name__)

candidate_locks = KeyedLock()


@dataclass
class AnswerOutcome:
    """Result of one accepted submission."""

    position: int
    question_id: int
    selected_option: int
    is_correct: bool
    points: int
    correct_answer: int | None
    explanation: str | None
    score: int
    answered: int
    total: int
    is_completed: bool


def get_session(db: DbSession, candidate_id: str) -> ExamSession:
    """Get a candidate's session or raise NotFound."""
    session = db.execute(
        select(ExamSession).where(ExamSession.candidate_id == candidate_id)
    ).scalar_one_or_none()
    if session is None:
        raise NotFound(f"No test assigned to candidate {candidate_id}")
    return session


def _reload(db: DbSession, candidate_id: str) -> ExamSession:
    # Drop anything cached in this unit of work so the lock holder sees the
    # latest committed row.
    db.expire_all()
    return get_session(db, candidate_id)


def state(session: ExamSession) -> SessionState:
    return session.state


def current_position(session: ExamSession) -> int:
    """Index of the only question the next submission may target."""
    return session.current_position


def deadline(session: ExamSession, window: ExamSettings) -> datetime | None:
    started = as_utc(session.started_at)
    if started is None:
        return None
    return started + timedelta(minutes=window.duration_minutes)


def is_time_expired(session: ExamSession, window: ExamSettings, now: datetime) -> bool:
    """True once the candidate's own elapsed time exceeds the duration."""
    end = deadline(session, window)
    return end is not None and now > end


def time_remaining(
    session: ExamSession,
    window: ExamSettings,
    now: datetime | None = None,
) -> int:
    """Seconds the candidate has left, 0 when not running."""
    if session.state is not SessionState.IN_PROGRESS:
        return 0
    end = deadline(session, window)
    return max(0, int((end - (now or utc_now())).total_seconds()))


def _finalize(session: ExamSession, reason: CompletionReason, now: datetime) -> bool:
    """Move to COMPLETED in memory. Returns False when already completed."""
    if session.is_completed:
        return False
    session.is_completed = True
    session.completed_at = now
    session.time_spent_seconds = elapsed_seconds(session.started_at, now)
    session.completion_reason = reason.value
    return True


def _commit(db: DbSession, session: ExamSession) -> None:
    try:
        db.commit()
    except (StaleDataError, IntegrityError) as e:
        db.rollback()
        logger.warning(f"Stale write rejected for session {session.id}: {e}")
        raise StaleWrite("Session was modified concurrently, reload and retry") from e


def _force_complete_locked(
    db: DbSession,
    session: ExamSession,
    reason: CompletionReason,
    now: datetime,
) -> bool:
    if not _finalize(session, reason, now):
        return False
    _commit(db, session)
    logger.info(
        f"Session {session.id} of candidate {session.candidate_id} force-completed: "
        f"{reason.value}, {session.answered_count}/{session.total_questions} answered"
    )
    return True


def start(
    db: DbSession,
    candidate_id: str,
    now: datetime | None = None,
) -> ExamSession:
    """Begin the attempt. Only from NOT_STARTED and only inside an open window."""
    now = now or utc_now()
    with candidate_locks.hold(candidate_id):
        session = _reload(db, candidate_id)
        if session.is_completed:
            raise InvalidState("Test has already been completed", InvalidState.ALREADY_COMPLETED)
        if session.started_at is not None:
            raise InvalidState("You have already started the test", InvalidState.ALREADY_STARTED)

        window = window_service.get_window(db)
        if not window.is_open:
            raise WindowClosed("Testing has not been started by administrator")
        if window_service.is_expired(window, now):
            raise WindowExpired("The testing window has expired")

        session.started_at = now
        _commit(db, session)
        db.refresh(session)

    logger.info(f"Candidate {candidate_id} started session {session.id}")
    return session


def _check_running(db: DbSession, session: ExamSession, now: datetime) -> ExamSettings:
    """
    Gate for operations on an IN_PROGRESS session. Closed windows and
    expired time finalize the session before the error is raised.
    """
    if session.is_completed:
        raise InvalidState("Test has already been completed", InvalidState.ALREADY_COMPLETED)
    if session.started_at is None:
        raise InvalidState("You have not started the test yet", InvalidState.NOT_STARTED)

    window = window_service.get_window(db)
    if not window.is_open:
        _force_complete_locked(db, session, CompletionReason.WINDOW_CLOSED, now)
        raise WindowClosed("Testing has been closed by administrator")
    if is_time_expired(session, window, now):
        _force_complete_locked(db, session, CompletionReason.TIME_EXPIRED, now)
        raise TimeExpired(
            "Your test time has expired", timeSpent=session.time_spent_seconds
        )
    return window


def current_question(
    db: DbSession,
    candidate_id: str,
    now: datetime | None = None,
) -> dict[str, object] | None:
    """
    View of the question at the current position, without the correct
    answer. Returns None (and completes the session) when nothing remains.
    """
    now = now or utc_now()
    with candidate_locks.hold(candidate_id):
        session = _reload(db, candidate_id)
        window = _check_running(db, session, now)

        position = session.current_position
        if position >= session.total_questions:
            _force_complete_locked(db, session, CompletionReason.ALL_ANSWERED, now)
            return None

        question_id = session.question_ids[position]
        question = question_pool.get_question(db, question_id)
        view: dict[str, object] = {
            "index": position,
            "id": question_id,
            "total": session.total_questions,
            "timeRemaining": time_remaining(session, window, now),
        }
        if question is None:
            logger.warning(
                f"Question {question_id} of session {session.id} no longer exists"
            )
            view.update({
                "title": "Unavailable question",
                "description": "",
                "options": [],
                "difficulty": "unknown",
                "topic": "unknown",
                "points": 0,
                "missing": True,
            })
            return view

        view.update({
            "title": question.title,
            "description": question.description,
            "options": question.options,
            "difficulty": question.difficulty,
            "topic": question.topic,
            "points": question.points,
            "missing": False,
        })
        return view


def submit_answer(
    db: DbSession,
    candidate_id: str,
    position: int,
    selected_option: int,
    now: datetime | None = None,
) -> AnswerOutcome:
    """
    Record the answer for ``position``. Positions must be answered strictly
    in order, once each. The last answer completes the session.
    """
    now = now or utc_now()
    with candidate_locks.hold(candidate_id):
        session = _reload(db, candidate_id)
        _check_running(db, session, now)

        expected = session.current_position
        if position != expected:
            raise OutOfSequence(expected=expected, received=position)
        if expected >= session.total_questions:
            # Everything answered but not yet finalized
            _force_complete_locked(db, session, CompletionReason.ALL_ANSWERED, now)
            raise InvalidState("Test has already been completed", InvalidState.ALREADY_COMPLETED)

        question_id = session.question_ids[position]
        question = question_pool.get_question(db, question_id)
        if question is None:
            logger.warning(
                f"Question {question_id} of session {session.id} no longer exists, "
                f"recording answer as incorrect"
            )
            is_correct = False
            points = 0
        else:
            is_correct = selected_option == question.correct_answer
            points = question.points if is_correct else 0

        session.answers.append(
            SessionAnswer(
                position=position,
                question_id=question_id,
                selected_option=selected_option,
                is_correct=is_correct,
                points_awarded=points,
                answered_at=now,
            )
        )
        session.score += points
        session.answered_count = len(session.answers)

        completed = session.current_position == session.total_questions
        if completed:
            _finalize(session, CompletionReason.ALL_ANSWERED, now)
        _commit(db, session)

        outcome = AnswerOutcome(
            position=position,
            question_id=question_id,
            selected_option=selected_option,
            is_correct=is_correct,
            points=points,
            correct_answer=question.correct_answer if question else None,
            explanation=question.explanation if question else None,
            score=session.score,
            answered=session.answered_count,
            total=session.total_questions,
            is_completed=session.is_completed,
        )

    if completed:
        logger.info(f"Session {session.id} completed after last answer, score {outcome.score}")
    question_pool.increment_usage(db, question_id)
    return outcome


def complete(
    db: DbSession,
    candidate_id: str,
    now: datetime | None = None,
) -> ExamSession:
    """
    Candidate submits the test. Idempotent: a completed session is
    returned unchanged.
    """
    now = now or utc_now()
    with candidate_locks.hold(candidate_id):
        session = _reload(db, candidate_id)
        if session.is_completed:
            return session
        if session.started_at is None:
            raise InvalidState("You have not started the test yet", InvalidState.NOT_STARTED)
        _finalize(session, CompletionReason.SUBMITTED, now)
        _commit(db, session)
        db.refresh(session)

    logger.info(f"Candidate {candidate_id} submitted session {session.id}")
    return session


def force_complete(
    db: DbSession,
    candidate_id: str,
    reason: CompletionReason,
    now: datetime | None = None,
) -> ExamSession:
    """System-initiated completion from any non-terminal state. Idempotent."""
    now = now or utc_now()
    with candidate_locks.hold(candidate_id):
        session = _reload(db, candidate_id)
        _force_complete_locked(db, session, reason, now)
        db.refresh(session)
    return session


def force_complete_open_sessions(db: DbSession, now: datetime | None = None) -> int:
    """
    Sweep run when the window closes. Each candidate is handled under its
    own lock, so a racing submission lands either before or after.
    """
    now = now or utc_now()
    candidate_ids = db.execute(
        select(ExamSession.candidate_id).where(ExamSession.is_completed.is_(False))
    ).scalars().all()

    completed = 0
    for candidate_id in candidate_ids:
        try:
            with candidate_locks.hold(candidate_id):
                session = _reload(db, candidate_id)
                if _force_complete_locked(db, session, CompletionReason.WINDOW_CLOSED, now):
                    completed += 1
        except StaleWrite:
            # Another process changed it; completion there or on next access
            logger.warning(f"Sweep skipped candidate {candidate_id} after concurrent write")
        except NotFound:
            continue

    logger.info(f"Window close sweep completed {completed} session(s)")
    return completed


def reset(
    db: DbSession,
    candidate_id: str,
    reason: str | None = None,
    actor: str | None = None,
) -> ExamSession:
    """
    Administrative reset of an unfinished session: clears answers, score
    and start time. The question list is kept.
    """
    with candidate_locks.hold(candidate_id):
        session = _reload(db, candidate_id)
        if session.is_completed:
            raise InvalidState(
                "Cannot reset a completed test", InvalidState.CANNOT_RESET_COMPLETED
            )
        session.answers.clear()
        session.score = 0
        session.answered_count = 0
        session.started_at = None
        session.time_spent_seconds = 0
        _commit(db, session)
        db.refresh(session)

    logger.warning(
        f"Admin {actor or 'unknown'} reset test for candidate {candidate_id}. "
        f"Reason: {reason or 'Not specified'}"
    )
    return session
