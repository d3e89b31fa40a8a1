"""Question pool: sampling primitives over active questions."""
import logging
import random
from dataclasses import dataclass, field
from typing import Iterable

from sqlalchemy import case, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session as DbSession

from examhall.models.db.question import Difficulty, Question

logger = logging.getLogger(__name__)


@dataclass
class PoolSample:
    """Result of a sampling call; a short result is not an error."""

    requested: int
    questions: list[Question] = field(default_factory=list)

    @property
    def ids(self) -> list[int]:
        return [q.id for q in self.questions]

    @property
    def shortfall(self) -> int:
        return max(0, self.requested - len(self.questions))


def _sample(
    db: DbSession,
    n: int,
    difficulty: Difficulty | None = None,
    exclude: Iterable[int] = (),
    rng: random.Random | None = None,
) -> PoolSample:
    if n <= 0:
        return PoolSample(requested=max(n, 0))

    query = select(Question.id).where(Question.is_active.is_(True))
    if difficulty is not None:
        query = query.where(Question.difficulty == Difficulty(difficulty).value)
    excluded = set(exclude)
    if excluded:
        query = query.where(Question.id.not_in(excluded))

    candidate_ids = sorted(db.execute(query).scalars().all())
    chosen = (rng or random).sample(candidate_ids, min(n, len(candidate_ids)))

    by_id = get_questions(db, chosen)
    return PoolSample(requested=n, questions=[by_id[qid] for qid in chosen if qid in by_id])


def sample_by_difficulty(
    db: DbSession,
    difficulty: Difficulty,
    n: int,
    exclude: Iterable[int] = (),
    rng: random.Random | None = None,
) -> PoolSample:
    """Draw up to ``n`` distinct active questions of one tier."""
    return _sample(db, n, difficulty=difficulty, exclude=exclude, rng=rng)


def sample_any(
    db: DbSession,
    n: int,
    exclude: Iterable[int] = (),
    rng: random.Random | None = None,
) -> PoolSample:
    """Draw up to ``n`` distinct active questions of any tier."""
    return _sample(db, n, exclude=exclude, rng=rng)


def count_active(db: DbSession) -> int:
    """Count active questions."""
    return db.execute(
        select(func.count(Question.id)).where(Question.is_active.is_(True))
    ).scalar() or 0


def count_by_difficulty(db: DbSession) -> dict[str, dict[str, int]]:
    """Total and active question counts per tier."""
    rows = db.execute(
        select(
            Question.difficulty,
            func.count(Question.id),
            func.sum(case((Question.is_active.is_(True), 1), else_=0)),
        ).group_by(Question.difficulty)
    ).all()

    stats = {d.value: {"total": 0, "active": 0} for d in Difficulty}
    for difficulty, total, active in rows:
        stats[difficulty] = {"total": total, "active": int(active or 0)}
    return stats


def get_question(db: DbSession, question_id: int) -> Question | None:
    """Get question by id, active or not."""
    return db.get(Question, question_id)


def get_questions(db: DbSession, question_ids: Iterable[int]) -> dict[int, Question]:
    """Load questions by id; ids that no longer exist are simply absent."""
    ids = set(question_ids)
    if not ids:
        return {}
    rows = db.execute(select(Question).where(Question.id.in_(ids))).scalars().all()
    return {q.id: q for q in rows}


def increment_usage(db: DbSession, question_id: int) -> bool:
    """Bump the global usage counter. Best effort, never raises."""
    try:
        db.execute(
            update(Question)
            .where(Question.id == question_id)
            .values(usage_count=Question.usage_count + 1)
        )
        db.commit()
        return True
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning(f"Failed to increment usage for question {question_id}: {e}")
        return False
