from datetime import datetime, timezone
from pathlib import Path

import pytest
from sqlalchemy.orm import sessionmaker

from examhall.database import init_db, make_engine
from examhall.models.db import Difficulty, ExamSettings, Question
from examhall.services import window_service

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def engine(tmp_path: Path):
    engine = make_engine(f"sqlite:///{tmp_path / 'exam.db'}")
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    window_service.ensure_window(session)
    try:
        yield session
    finally:
        session.close()


def add_questions(db, difficulty=Difficulty.MEDIUM, count=1, points=1, topic="general"):
    """Insert ``count`` active questions whose correct answer is option 0."""
    questions = [
        Question(
            title=f"{Difficulty(difficulty).value} question {i}",
            description="Pick the first option",
            options=["right", "wrong", "also wrong"],
            correct_answer=0,
            difficulty=difficulty,
            topic=topic,
            points=points,
            explanation="The first option is right",
        )
        for i in range(count)
    ]
    db.add_all(questions)
    db.commit()
    return questions


def configure_window(db, **changes) -> ExamSettings:
    """Set window fields directly, bypassing the open-window lock."""
    window = window_service.get_window(db)
    for key, value in changes.items():
        setattr(window, key, value)
    db.commit()
    return window
