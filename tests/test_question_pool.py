import random

import pytest
from sqlalchemy.exc import SQLAlchemyError

from conftest import add_questions
from examhall.models.db import Difficulty, Question
from examhall.services import question_pool


def test_sample_by_difficulty_returns_distinct_questions(db) -> None:
    add_questions(db, Difficulty.EASY, count=8)
    add_questions(db, Difficulty.HARD, count=3)

    sample = question_pool.sample_by_difficulty(db, Difficulty.EASY, 5, rng=random.Random(1))

    assert len(sample.ids) == 5
    assert len(set(sample.ids)) == 5
    assert all(q.difficulty == "easy" for q in sample.questions)
    assert sample.shortfall == 0


def test_sample_reports_shortfall_instead_of_failing(db) -> None:
    add_questions(db, Difficulty.HARD, count=2)

    sample = question_pool.sample_by_difficulty(db, Difficulty.HARD, 6)

    assert len(sample.questions) == 2
    assert sample.shortfall == 4


def test_sample_any_honours_exclusions(db) -> None:
    questions = add_questions(db, Difficulty.MEDIUM, count=4)
    excluded = [questions[0].id, questions[1].id]

    sample = question_pool.sample_any(db, 10, exclude=excluded)

    assert sorted(sample.ids) == sorted(q.id for q in questions[2:])
    assert sample.shortfall == 8


def test_inactive_questions_are_never_sampled(db) -> None:
    questions = add_questions(db, Difficulty.EASY, count=3)
    questions[1].is_active = False
    db.commit()

    sample = question_pool.sample_any(db, 3)

    assert questions[1].id not in sample.ids
    assert question_pool.count_active(db) == 2


def test_same_seed_gives_same_sample(db) -> None:
    add_questions(db, Difficulty.MEDIUM, count=20)

    first = question_pool.sample_any(db, 7, rng=random.Random(42)).ids
    second = question_pool.sample_any(db, 7, rng=random.Random(42)).ids

    assert first == second


def test_count_by_difficulty_splits_active_and_total(db) -> None:
    add_questions(db, Difficulty.EASY, count=2)
    hard = add_questions(db, Difficulty.HARD, count=3)
    hard[0].is_active = False
    db.commit()

    stats = question_pool.count_by_difficulty(db)

    assert stats["easy"] == {"total": 2, "active": 2}
    assert stats["medium"] == {"total": 0, "active": 0}
    assert stats["hard"] == {"total": 3, "active": 2}


def test_get_questions_skips_deleted_ids(db) -> None:
    questions = add_questions(db, count=2)
    gone_id = questions[0].id
    db.delete(questions[0])
    db.commit()

    found = question_pool.get_questions(db, [gone_id, questions[1].id])

    assert list(found) == [questions[1].id]
    assert question_pool.get_question(db, gone_id) is None


def test_increment_usage(db) -> None:
    question = add_questions(db, count=1)[0]

    assert question_pool.increment_usage(db, question.id) is True
    assert question_pool.increment_usage(db, question.id) is True

    db.refresh(question)
    assert question.usage_count == 2


def test_increment_usage_failure_is_swallowed(db, monkeypatch) -> None:
    question_id = add_questions(db, count=1)[0].id

    def broken_execute(*args, **kwargs):
        raise SQLAlchemyError("database is locked")

    monkeypatch.setattr(db, "execute", broken_execute)

    assert question_pool.increment_usage(db, question_id) is False


def test_question_validates_options_and_answer() -> None:
    with pytest.raises(ValueError):
        Question(title="t", options=["only one"], correct_answer=0)
    with pytest.raises(ValueError):
        Question(title="t", options=["a", "b"], correct_answer=2)
    with pytest.raises(ValueError):
        Question(title="t", options=["a", "b"], correct_answer=0, difficulty="impossible")
    with pytest.raises(ValueError):
        Question(title="t" * 201, options=["a", "b"], correct_answer=0)
