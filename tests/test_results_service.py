from datetime import timedelta

from conftest import T0, add_questions, configure_window
from examhall.models.db import Question
from examhall.services import results_service, session_service, test_generator, window_service


def _start(db, candidate_id: str = "cand-1", questions: int = 10) -> None:
    window_service.open_window(db, questions_per_session=questions, now=T0)
    test_generator.generate(db, candidate_id)
    session_service.start(db, candidate_id, now=T0)


def test_summary_of_unstarted_session(db) -> None:
    add_questions(db, count=5)
    configure_window(db, questions_per_session=5)
    session = test_generator.generate(db, "cand-1")

    result = results_service.summary(session)

    assert result["total"] == 5
    assert result["answered"] == 0
    assert result["score"] == 0
    assert result["maxScore"] == 5
    assert result["percentage"] == 0
    assert result["isCompleted"] is False
    assert result["startedAt"] is None


def test_partial_summary_and_detail(db) -> None:
    add_questions(db, count=6)
    _start(db, questions=6)
    session_service.submit_answer(db, "cand-1", 0, 0, now=T0)
    session_service.submit_answer(db, "cand-1", 1, 2, now=T0)
    session_service.submit_answer(db, "cand-1", 2, 0, now=T0)

    session = session_service.get_session(db, "cand-1")
    result = results_service.summary(session)
    assert result["answered"] == 3
    assert result["correct"] == 2
    assert result["percentage"] == 33.33
    assert result["scorePercentage"] == 33.33

    rows = results_service.load_detailed(db, session)
    assert [row["position"] for row in rows] == [0, 1, 2]
    assert [row["isCorrect"] for row in rows] == [True, False, True]
    assert rows[1]["selectedAnswer"] == 2
    assert rows[1]["correctAnswer"] == 0
    assert rows[0]["difficulty"] == "medium"


def test_detail_of_deleted_question_uses_sentinels(db) -> None:
    add_questions(db, count=3)
    _start(db, questions=3)
    session_service.submit_answer(db, "cand-1", 0, 0, now=T0)
    session = session_service.get_session(db, "cand-1")
    db.delete(db.get(Question, session.question_ids[0]))
    db.commit()

    rows = results_service.load_detailed(db, session_service.get_session(db, "cand-1"))

    assert rows[0]["difficulty"] == results_service.UNKNOWN
    assert rows[0]["topic"] == results_service.UNKNOWN
    assert rows[0]["correctAnswer"] is None
    assert rows[0]["isCorrect"] is True


def test_window_close_mid_test(db) -> None:
    add_questions(db, count=10)
    _start(db, questions=10)
    session_service.submit_answer(db, "cand-1", 0, 0, now=T0 + timedelta(minutes=1))
    session_service.submit_answer(db, "cand-1", 1, 0, now=T0 + timedelta(minutes=2))

    window_service.close_window(db, now=T0 + timedelta(minutes=3))

    result = results_service.summary(session_service.get_session(db, "cand-1"))
    assert result["answered"] == 2
    assert result["total"] == 10
    assert result["isCompleted"] is True
    assert result["timeSpent"] == 180
    assert result["percentage"] == 20


def test_is_passed_uses_window_threshold(db) -> None:
    window = configure_window(db, passing_percentage=60)

    assert results_service.is_passed({"percentage": 60}, window) is True
    assert results_service.is_passed({"percentage": 59.99}, window) is False


def test_overall_and_top_results(db) -> None:
    add_questions(db, count=2)
    window_service.open_window(db, questions_per_session=2, now=T0)
    for candidate_id, answers, minutes in (("a", [0, 0], 10), ("b", [0, 1], 5), ("c", [0, 0], 4)):
        test_generator.generate(db, candidate_id)
        session_service.start(db, candidate_id, now=T0)
        for position, option in enumerate(answers):
            session_service.submit_answer(
                db, candidate_id, position, option, now=T0 + timedelta(minutes=minutes)
            )
    test_generator.generate(db, "d")

    stats = results_service.overall_stats(db)
    assert stats["totalTests"] == 4
    assert stats["completedTests"] == 3
    assert stats["maxScore"] == 2
    assert stats["minScore"] == 0

    top = results_service.top_results(db, limit=2)
    assert [row["candidateId"] for row in top] == ["c", "a"]

    sessions, total = results_service.list_sessions(db, completed=True, min_score=2)
    assert total == 2
    assert {s.candidate_id for s in sessions} == {"a", "c"}


def test_export_rows(db) -> None:
    add_questions(db, count=2)
    _start(db, questions=2)
    session_service.complete(db, "cand-1", now=T0 + timedelta(seconds=3725))

    rows = results_service.export_rows(db)

    assert len(rows) == 1
    assert rows[0]["Candidate ID"] == "cand-1"
    assert rows[0]["Is Completed"] == "Yes"
    assert rows[0]["Completion Reason"] == "submitted"
    assert rows[0]["Time Spent (formatted)"] == "1:02:05"


def test_format_time() -> None:
    assert results_service.format_time(0) == "0:00"
    assert results_service.format_time(65) == "1:05"
    assert results_service.format_time(3600) == "1:00:00"
