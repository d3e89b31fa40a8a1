import csv
import io

import pytest
from fastapi.testclient import TestClient

from conftest import add_questions
from examhall.app import app
from examhall.database import get_db
from examhall.services.auth_service import ROLE_ADMIN, create_access_token


@pytest.fixture
def client(session_factory, db):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def _auth(candidate_id: str, role: str = "candidate") -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(candidate_id, role)}"}


ADMIN = _auth("admin-1", ROLE_ADMIN)


def test_requires_token(client) -> None:
    assert client.get("/api/session").status_code == 401
    response = client.get("/api/session", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


def test_admin_routes_reject_candidates(client) -> None:
    response = client.get("/api/admin/window", headers=_auth("cand-1"))
    assert response.status_code == 403


def test_window_status_is_public(client) -> None:
    response = client.get("/api/window/status")
    assert response.status_code == 200
    assert response.json()["status"] == "NOT_STARTED"


def test_open_window_with_empty_pool(client) -> None:
    response = client.post("/api/admin/window/open", json={}, headers=ADMIN)

    assert response.status_code == 422
    assert response.json()["error"] == "insufficient_content"


def test_missing_session_is_404(client) -> None:
    response = client.get("/api/session", headers=_auth("cand-1"))

    assert response.status_code == 404
    assert response.json()["error"] == "not_found"


def test_candidate_flow(client, db) -> None:
    add_questions(db, count=3)
    response = client.post(
        "/api/admin/window/open", json={"questions_per_session": 3}, headers=ADMIN
    )
    assert response.status_code == 200
    assert response.json()["settings"]["isOpen"] is True

    me = _auth("cand-1")
    created = client.post("/api/session", headers=me).json()["test"]
    assert created["questionsCount"] == 3
    assert created["state"] == "not_started"

    overview = client.get("/api/session", headers=me).json()
    assert overview["canStart"] is True

    started = client.post("/api/session/start", headers=me)
    assert started.status_code == 200
    assert started.json()["currentQuestion"]["index"] == 0

    again = client.post("/api/session/start", headers=me)
    assert again.status_code == 409
    assert again.json()["reason"] == "already_started"

    early = client.get("/api/session/results", headers=me)
    assert early.status_code == 409
    assert early.json()["reason"] == "not_completed"

    skipped = client.post("/api/session/answers", json={"position": 1, "selected_option": 0}, headers=me)
    assert skipped.status_code == 409
    assert skipped.json()["expected"] == 0
    assert skipped.json()["received"] == 1

    for position in range(3):
        answered = client.post(
            "/api/session/answers",
            json={"position": position, "selected_option": 0},
            headers=me,
        )
        assert answered.status_code == 200
        body = answered.json()
        assert body["answerResult"]["isCorrect"] is True
        assert body["answerResult"]["correctAnswer"] == 0

    assert body["isCompleted"] is True
    assert body["results"]["score"] == 3

    results = client.get("/api/session/results", headers=me).json()
    assert results["isPassed"] is True
    assert len(results["detailedResults"]) == 3


def test_question_view_never_leaks_answer(client, db) -> None:
    add_questions(db, count=2)
    client.post("/api/admin/window/open", json={}, headers=ADMIN)
    me = _auth("cand-1")
    client.post("/api/session", headers=me)
    client.post("/api/session/start", headers=me)

    current = client.get("/api/session/question", headers=me).json()["currentQuestion"]

    assert "correctAnswer" not in current
    assert "correct_answer" not in current
    assert "explanation" not in current


def test_locked_settings_while_open(client, db) -> None:
    add_questions(db, count=2)
    client.post("/api/admin/window/open", json={}, headers=ADMIN)

    locked = client.patch("/api/admin/window", json={"duration_minutes": 90}, headers=ADMIN)
    assert locked.status_code == 409
    assert locked.json()["locked"] == ["duration_minutes"]

    allowed = client.patch("/api/admin/window", json={"instructions": "Quiet please"}, headers=ADMIN)
    assert allowed.status_code == 200
    assert allowed.json()["settings"]["instructions"] == "Quiet please"


def test_close_window_completes_sessions(client, db) -> None:
    add_questions(db, count=2)
    client.post("/api/admin/window/open", json={}, headers=ADMIN)
    me = _auth("cand-1")
    client.post("/api/session", headers=me)
    client.post("/api/session/start", headers=me)

    closed = client.post("/api/admin/window/close", headers=ADMIN)
    assert closed.status_code == 200
    assert closed.json()["completedTests"] == 1

    again = client.post("/api/admin/window/close", headers=ADMIN)
    assert again.status_code == 409

    detail = client.get("/api/admin/sessions/cand-1", headers=ADMIN).json()
    assert detail["state"] == "completed"
    assert detail["completionReason"] == "window_closed"


def test_bulk_generate_and_export(client, db) -> None:
    add_questions(db, count=4)

    generated = client.post(
        "/api/admin/sessions/generate", json={"candidateIds": ["a", "b"]}, headers=ADMIN
    ).json()
    assert {item["candidateId"] for item in generated["generated"]} == {"a", "b"}

    exported = client.get("/api/admin/results/export", headers=ADMIN)
    assert exported.status_code == 200
    assert exported.headers["content-type"].startswith("text/csv")
    rows = list(csv.DictReader(io.StringIO(exported.text)))
    assert sorted(row["Candidate ID"] for row in rows) == ["a", "b"]

    as_json = client.get("/api/admin/results/export", params={"format": "json"}, headers=ADMIN)
    assert len(as_json.json()) == 2

    bad = client.get("/api/admin/results/export", params={"format": "xml"}, headers=ADMIN)
    assert bad.status_code == 422


def test_export_with_no_rows_is_404(client) -> None:
    response = client.get("/api/admin/results/export", headers=ADMIN)
    assert response.status_code == 404


def test_admin_results_listing(client, db) -> None:
    add_questions(db, count=2)
    client.post("/api/admin/sessions/generate", json={"candidateIds": ["a", "b", "c"]}, headers=ADMIN)

    listing = client.get("/api/admin/results", params={"limit": 2}, headers=ADMIN).json()

    assert len(listing["tests"]) == 2
    assert listing["pagination"]["totalItems"] == 3
    assert listing["pagination"]["hasNext"] is True
    assert listing["overallStats"]["totalTests"] == 3
