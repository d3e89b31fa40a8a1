"""Candidate session endpoints."""
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session as DbSession

from examhall.database import get_db
from examhall.dependencies.auth import get_current_principal
from examhall.errors import ExamError, InvalidState
from examhall.models import (
    AnswerResult,
    AnswerSubmitRequest,
    AnswerSubmitResponse,
    Progress,
)
from examhall.models.db.exam_session import ExamSession, SessionState
from examhall.services import (
    results_service,
    session_service,
    test_generator,
    window_service,
)
from examhall.services.auth_service import Principal
from examhall.utils import iso

router = APIRouter(prefix="/api/session", tags=["session"])


def _session_info(session: ExamSession) -> dict[str, object]:
    return {
        "id": session.id,
        "state": session.state.value,
        "questionsCount": session.total_questions,
        "answeredCount": session.answered_count,
        "maxScore": session.max_score,
        "isCompleted": session.is_completed,
        "startedAt": iso(session.started_at),
        "completedAt": iso(session.completed_at),
    }


@router.post("")
def generate_session(
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[DbSession, Depends(get_db)],
) -> dict[str, object]:
    """Get or create the caller's session (first login)."""
    session = test_generator.generate(db, principal.candidate_id)
    return {"test": _session_info(session)}


@router.get("")
def get_my_session(
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[DbSession, Depends(get_db)],
) -> dict[str, object]:
    """Session overview with the window configuration."""
    session = session_service.get_session(db, principal.candidate_id)
    window = window_service.get_window(db)

    info = _session_info(session)
    if session.is_completed:
        info["score"] = session.score
        info["timeSpent"] = session.time_spent_seconds
        info["results"] = results_service.summary(session)
        if window.show_correct_answers:
            info["detailedResults"] = results_service.load_detailed(db, session)

    in_progress = session.state is SessionState.IN_PROGRESS
    return {
        "test": info,
        "testConfig": window_service.client_config(window),
        "canStart": session.state is SessionState.NOT_STARTED and window.is_open,
        "canContinue": in_progress and session_service.time_remaining(session, window) > 0,
    }


@router.post("/start")
def start_session(
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[DbSession, Depends(get_db)],
) -> dict[str, object]:
    """Start the caller's test and return the first question."""
    session = session_service.start(db, principal.candidate_id)
    window = window_service.get_window(db)
    current = session_service.current_question(db, principal.candidate_id)
    return {
        "message": "Test started successfully",
        "test": _session_info(session),
        "currentQuestion": current,
        "timeRemaining": window.duration_minutes * 60,
        "testConfig": window_service.client_config(window),
    }


@router.get("/question")
def get_current_question(
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[DbSession, Depends(get_db)],
) -> dict[str, object]:
    """Current question, or final results once everything is answered."""
    current = session_service.current_question(db, principal.candidate_id)
    session = session_service.get_session(db, principal.candidate_id)
    if current is None:
        return {
            "message": "All questions answered, test completed",
            "isCompleted": True,
            "results": results_service.summary(session),
        }
    return {
        "currentQuestion": current,
        "progress": {
            "current": session.answered_count + 1,
            "total": session.total_questions,
            "answered": session.answered_count,
        },
        "timeRemaining": current["timeRemaining"],
        "score": session.score,
    }


@router.post("/answers", response_model=AnswerSubmitResponse)
def submit_answer(
    payload: AnswerSubmitRequest,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[DbSession, Depends(get_db)],
) -> AnswerSubmitResponse:
    """Submit the answer for the current position."""
    outcome = session_service.submit_answer(
        db, principal.candidate_id, payload.position, payload.selected_option
    )
    window = window_service.get_window(db)

    answer_result = AnswerResult(isCorrect=outcome.is_correct, points=outcome.points)
    if window.show_correct_answers:
        answer_result.correctAnswer = outcome.correct_answer
        answer_result.explanation = outcome.explanation

    response = AnswerSubmitResponse(
        message="Answer submitted successfully",
        answerResult=answer_result,
        progress=Progress(current=outcome.answered, total=outcome.total, answered=outcome.answered),
        score=outcome.score,
        isCompleted=outcome.is_completed,
    )

    if outcome.is_completed:
        session = session_service.get_session(db, principal.candidate_id)
        response.results = results_service.summary(session)
        if window.show_results_immediately:
            response.detailedResults = results_service.load_detailed(db, session)
        return response

    try:
        response.nextQuestion = session_service.current_question(db, principal.candidate_id)
    except ExamError:
        # Finalized between the two calls (window sweep or time limit)
        response.nextQuestion = None
    if response.nextQuestion:
        response.timeRemaining = response.nextQuestion["timeRemaining"]
    return response


@router.post("/submit")
def submit_test(
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[DbSession, Depends(get_db)],
) -> dict[str, object]:
    """Finish the test early."""
    session = session_service.complete(db, principal.candidate_id)
    window = window_service.get_window(db)

    response: dict[str, object] = {
        "message": "Test submitted successfully",
        "results": results_service.summary(session),
    }
    if window.show_results_immediately:
        response["detailedResults"] = results_service.load_detailed(db, session)
    return response


@router.get("/results")
def get_results(
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[DbSession, Depends(get_db)],
) -> dict[str, object]:
    """Final results of a completed test."""
    session = session_service.get_session(db, principal.candidate_id)
    if not session.is_completed:
        raise InvalidState("Test has not been completed yet", InvalidState.NOT_COMPLETED)

    window = window_service.get_window(db)
    results = results_service.summary(session)
    response: dict[str, object] = {
        "results": results,
        "isPassed": results_service.is_passed(results, window),
    }
    if window.show_correct_answers:
        response["detailedResults"] = results_service.load_detailed(db, session)
    return response
