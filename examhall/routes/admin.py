"""Administrative endpoints: window control, session management, results."""
import csv
import io
import json
from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session as DbSession

from examhall.database import get_db
from examhall.dependencies.auth import require_admin
from examhall.errors import NotFound
from examhall.models import (
    BulkGenerateRequest,
    SessionResetRequest,
    WindowOpenRequest,
    WindowUpdateRequest,
)
from examhall.models.db.exam_settings import ExamSettings
from examhall.services import (
    results_service,
    session_service,
    test_generator,
    window_service,
)
from examhall.services.auth_service import Principal
from examhall.utils import iso

router = APIRouter(prefix="/api/admin", tags=["admin"])


def _full_settings(window: ExamSettings) -> dict[str, object]:
    return {
        "isOpen": window.is_open,
        "windowStart": iso(window.window_start),
        "windowEnd": iso(window.window_end),
        "durationMinutes": window.duration_minutes,
        "questionsPerSession": window.questions_per_session,
        "stratifiedSampling": window.stratified_sampling,
        "showCorrectAnswers": window.show_correct_answers,
        "showResultsImmediately": window.show_results_immediately,
        "passingPercentage": window.passing_percentage,
        "instructions": window.instructions,
        "welcomeMessage": window.welcome_message,
        "updatedBy": window.updated_by,
        "updatedAt": iso(window.updated_at),
    }


@router.get("/window")
def get_settings(
    admin: Annotated[Principal, Depends(require_admin)],
    db: Annotated[DbSession, Depends(get_db)],
) -> dict[str, object]:
    """Current window configuration."""
    window = window_service.get_window(db)
    return {
        "settings": window_service.client_config(window),
        "fullSettings": _full_settings(window),
    }


@router.patch("/window")
def update_settings(
    payload: WindowUpdateRequest,
    admin: Annotated[Principal, Depends(require_admin)],
    db: Annotated[DbSession, Depends(get_db)],
) -> dict[str, object]:
    """Partial settings update. Structural fields are locked while open."""
    changes = {
        key: value
        for key, value in payload.model_dump(exclude_unset=True).items()
        if value is not None
    }
    window = window_service.update_window(db, changes, actor=admin.candidate_id)
    return {
        "message": "Settings updated successfully",
        "settings": window_service.client_config(window),
    }


@router.post("/window/open")
def open_window(
    payload: WindowOpenRequest,
    admin: Annotated[Principal, Depends(require_admin)],
    db: Annotated[DbSession, Depends(get_db)],
) -> dict[str, object]:
    """Open testing."""
    window = window_service.open_window(
        db,
        duration_minutes=payload.duration_minutes,
        questions_per_session=payload.questions_per_session,
        actor=admin.candidate_id,
    )
    validation = test_generator.validate_generation(db, window.questions_per_session)
    return {
        "message": "Testing started successfully",
        "settings": window_service.client_config(window),
        "stats": {
            "questionsAvailable": validation["totalQuestions"],
            "questionsPerSession": window.questions_per_session,
            "shortfall": validation["shortfall"],
        },
    }


@router.post("/window/close")
def close_window(
    admin: Annotated[Principal, Depends(require_admin)],
    db: Annotated[DbSession, Depends(get_db)],
) -> dict[str, object]:
    """Close testing and finish every open session."""
    window, completed = window_service.close_window(db, actor=admin.candidate_id)
    return {
        "message": "Testing stopped successfully",
        "settings": window_service.client_config(window),
        "completedTests": completed,
    }


@router.get("/sessions/{candidate_id}")
def get_candidate_session(
    candidate_id: str,
    admin: Annotated[Principal, Depends(require_admin)],
    db: Annotated[DbSession, Depends(get_db)],
) -> dict[str, object]:
    """Full view of one candidate's session."""
    session = session_service.get_session(db, candidate_id)
    return {
        "id": session.id,
        "candidateId": session.candidate_id,
        "state": session.state.value,
        "questionIds": session.question_ids,
        "generationStrategy": session.generation_strategy,
        "completionReason": session.completion_reason,
        "results": results_service.summary(session),
        "detailedResults": results_service.load_detailed(db, session),
    }


@router.post("/sessions/{candidate_id}/reset")
def reset_candidate_session(
    candidate_id: str,
    payload: SessionResetRequest,
    admin: Annotated[Principal, Depends(require_admin)],
    db: Annotated[DbSession, Depends(get_db)],
) -> dict[str, object]:
    """Reset an unfinished session (emergency use only)."""
    session = session_service.reset(
        db, candidate_id, reason=payload.reason, actor=admin.candidate_id
    )
    return {
        "message": "Candidate test reset successfully",
        "session": {"id": session.id, "state": session.state.value},
    }


@router.post("/sessions/{candidate_id}/regenerate")
def regenerate_candidate_session(
    candidate_id: str,
    admin: Annotated[Principal, Depends(require_admin)],
    db: Annotated[DbSession, Depends(get_db)],
) -> dict[str, object]:
    """Draw a new question list for a session that was never started."""
    session = test_generator.regenerate(db, candidate_id)
    return {
        "message": "Candidate test regenerated",
        "session": {"id": session.id, "questionsCount": session.total_questions},
    }


@router.post("/sessions/generate")
def generate_sessions(
    payload: BulkGenerateRequest,
    admin: Annotated[Principal, Depends(require_admin)],
    db: Annotated[DbSession, Depends(get_db)],
) -> dict[str, object]:
    """Pre-generate sessions for a list of candidates."""
    sessions, errors = test_generator.generate_many(db, payload.candidateIds)
    return {
        "generated": [{"candidateId": s.candidate_id, "sessionId": s.id} for s in sessions],
        "errors": errors,
    }


@router.get("/results")
def list_results(
    admin: Annotated[Principal, Depends(require_admin)],
    db: Annotated[DbSession, Depends(get_db)],
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    completed: bool | None = None,
    min_score: int | None = Query(None, alias="minScore"),
    max_score: int | None = Query(None, alias="maxScore"),
) -> dict[str, object]:
    """Paginated session results with overall statistics."""
    sessions, total = results_service.list_sessions(
        db,
        completed=completed,
        min_score=min_score,
        max_score=max_score,
        limit=limit,
        offset=(page - 1) * limit,
    )
    total_pages = (total + limit - 1) // limit
    return {
        "tests": [
            {"candidateId": s.candidate_id, "sessionId": s.id, **results_service.summary(s)}
            for s in sessions
        ],
        "pagination": {
            "currentPage": page,
            "totalPages": total_pages,
            "totalItems": total,
            "itemsPerPage": limit,
            "hasNext": page < total_pages,
            "hasPrev": page > 1,
        },
        "overallStats": results_service.overall_stats(db),
    }


@router.get("/results/top")
def top_results(
    admin: Annotated[Principal, Depends(require_admin)],
    db: Annotated[DbSession, Depends(get_db)],
    limit: int = Query(10, ge=1, le=100),
) -> list[dict[str, object]]:
    """Best completed sessions."""
    return results_service.top_results(db, limit)


@router.get("/results/export")
def export_results(
    admin: Annotated[Principal, Depends(require_admin)],
    db: Annotated[DbSession, Depends(get_db)],
    export_format: str = Query("csv", alias="format", pattern="^(csv|json)$"),
    completed: bool | None = None,
) -> Response:
    """Download results as CSV or JSON."""
    rows = results_service.export_rows(db, completed=completed)
    if not rows:
        raise NotFound("No test results match the specified criteria")

    filename = f"test_results_{date.today().isoformat()}.{export_format}"
    headers = {"Content-Disposition": f'attachment; filename="{filename}"'}
    if export_format == "json":
        body = json.dumps(rows, ensure_ascii=False, indent=2)
        return Response(body, media_type="application/json", headers=headers)

    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=list(rows[0]), quoting=csv.QUOTE_ALL)
    writer.writeheader()
    writer.writerows(rows)
    return Response(buffer.getvalue(), media_type="text/csv", headers=headers)


@router.get("/generation-stats")
def get_generation_stats(
    admin: Annotated[Principal, Depends(require_admin)],
    db: Annotated[DbSession, Depends(get_db)],
) -> dict[str, object]:
    """How well the question pool supports session generation."""
    return test_generator.generation_stats(db)
