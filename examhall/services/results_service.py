"""Service layer for results and statistics.

``summary`` and ``detailed`` are pure functions of a session (and, for
``detailed``, of already-resolved questions); the ``load_*`` helpers and the
aggregate queries are the only parts that touch the database.
"""
from collections.abc import Mapping

from sqlalchemy import func, select
from sqlalchemy.orm import Session as DbSession

from examhall.models.db.exam_session import ExamSession
from examhall.models.db.exam_settings import ExamSettings
from examhall.models.db.question import Question
from examhall.services import question_pool
from examhall.utils import iso, round2

UNKNOWN = "unknown"


def summary(session: ExamSession) -> dict[str, object]:
    """Results so far; legal at any point of the session."""
    total = session.total_questions
    answered = len(session.answers)
    correct = sum(1 for answer in session.answers if answer.is_correct)
    score = sum(answer.points_awarded for answer in session.answers)
    max_score = session.max_score

    return {
        "total": total,
        "answered": answered,
        "correct": correct,
        "score": score,
        "maxScore": max_score,
        "percentage": round2(correct / total * 100) if total > 0 else 0,
        "scorePercentage": round2(score / max_score * 100) if max_score > 0 else 0,
        "timeSpent": session.time_spent_seconds,
        "isCompleted": session.is_completed,
        "startedAt": iso(session.started_at),
        "completedAt": iso(session.completed_at),
    }


def is_passed(result: Mapping[str, object], window: ExamSettings) -> bool:
    return result["percentage"] >= window.passing_percentage


def detailed(
    session: ExamSession,
    questions: Mapping[int, Question],
) -> list[dict[str, object]]:
    """
    Per-answer breakdown in position order. Questions missing from
    ``questions`` (deleted since) get sentinel values.
    """
    rows = []
    for answer in session.answers:
        question = questions.get(answer.question_id)
        rows.append({
            "position": answer.position,
            "questionId": answer.question_id,
            "questionTitle": question.title if question else "Unknown",
            "selectedAnswer": answer.selected_option,
            "correctAnswer": question.correct_answer if question else None,
            "isCorrect": answer.is_correct,
            "points": answer.points_awarded,
            "difficulty": question.difficulty if question else UNKNOWN,
            "topic": question.topic if question else UNKNOWN,
            "answeredAt": iso(answer.answered_at),
        })
    return rows


def load_detailed(db: DbSession, session: ExamSession) -> list[dict[str, object]]:
    """Resolve the session's answered questions and build the breakdown."""
    questions = question_pool.get_questions(
        db, [answer.question_id for answer in session.answers]
    )
    return detailed(session, questions)


def overall_stats(db: DbSession) -> dict[str, object]:
    """Aggregate statistics across all sessions."""
    row = db.execute(
        select(
            func.count(ExamSession.id),
            func.avg(ExamSession.score),
            func.max(ExamSession.score),
            func.min(ExamSession.score),
            func.avg(ExamSession.time_spent_seconds),
        )
    ).one()
    completed = db.execute(
        select(func.count(ExamSession.id)).where(ExamSession.is_completed.is_(True))
    ).scalar() or 0

    total, avg_score, max_score, min_score, avg_time = row
    return {
        "totalTests": total or 0,
        "completedTests": completed,
        "averageScore": round2(avg_score) if avg_score is not None else 0,
        "maxScore": max_score or 0,
        "minScore": min_score or 0,
        "averageTime": round2(avg_time) if avg_time is not None else 0,
    }


def top_results(db: DbSession, limit: int = 10) -> list[dict[str, object]]:
    """Best completed sessions: highest score first, faster first on ties."""
    sessions = db.execute(
        select(ExamSession)
        .where(ExamSession.is_completed.is_(True))
        .order_by(ExamSession.score.desc(), ExamSession.time_spent_seconds.asc())
        .limit(limit)
    ).scalars().all()
    return [
        {
            "candidateId": s.candidate_id,
            "score": s.score,
            "maxScore": s.max_score,
            "timeSpent": s.time_spent_seconds,
            "completedAt": iso(s.completed_at),
        }
        for s in sessions
    ]


def list_sessions(
    db: DbSession,
    completed: bool | None = None,
    min_score: int | None = None,
    max_score: int | None = None,
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[ExamSession], int]:
    """Filtered page of sessions, newest completion first, plus total count."""
    query = select(ExamSession)
    if completed is not None:
        query = query.where(ExamSession.is_completed.is_(completed))
    if min_score is not None:
        query = query.where(ExamSession.score >= min_score)
    if max_score is not None:
        query = query.where(ExamSession.score <= max_score)

    total = db.execute(select(func.count()).select_from(query.subquery())).scalar() or 0
    query = query.order_by(
        ExamSession.completed_at.desc(), ExamSession.created_at.desc()
    ).limit(limit).offset(offset)
    return list(db.execute(query).scalars().all()), total


def format_time(seconds: int) -> str:
    """``m:ss`` or ``h:mm:ss``."""
    if not seconds:
        return "0:00"
    hours, rest = divmod(int(seconds), 3600)
    minutes, secs = divmod(rest, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def export_row(session: ExamSession) -> dict[str, object]:
    percentage = (
        round(session.score / session.max_score * 100) if session.max_score > 0 else 0
    )
    return {
        "Candidate ID": session.candidate_id,
        "Session ID": session.id,
        "Score": session.score,
        "Max Score": session.max_score,
        "Percentage": percentage,
        "Questions Total": session.total_questions,
        "Questions Answered": session.answered_count,
        "Is Completed": "Yes" if session.is_completed else "No",
        "Completion Reason": session.completion_reason or "",
        "Started At": iso(session.started_at) or "",
        "Completed At": iso(session.completed_at) or "",
        "Time Spent (seconds)": session.time_spent_seconds,
        "Time Spent (formatted)": format_time(session.time_spent_seconds),
        "Created At": iso(session.created_at) or "",
    }


def export_rows(db: DbSession, completed: bool | None = None) -> list[dict[str, object]]:
    """Flat rows for CSV/JSON export."""
    query = select(ExamSession)
    if completed is not None:
        query = query.where(ExamSession.is_completed.is_(completed))
    query = query.order_by(ExamSession.completed_at.desc(), ExamSession.created_at.desc())
    return [export_row(s) for s in db.execute(query).scalars().all()]
