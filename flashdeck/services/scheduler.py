import datetime
from typing import NamedTuple, Optional

from ..models.card import Card, MAX_LEVEL, MIN_LEVEL, as_utc

STREAK_CAP = 5


class ReviewGrade(NamedTuple):
    learned_difficulty: int
    streak_count: int
    interval_days: int
    next_review_date: datetime.datetime


def review_interval(learned_difficulty: int, streak_count: int) -> int:
    """Days until the next review: ``difficulty * (1 + min(streak, 5))``."""
    return learned_difficulty * (1 + min(streak_count, STREAK_CAP))


def grade_review(
    card: Card,
    was_correct: bool,
    now: Optional[datetime.datetime] = None,
) -> ReviewGrade:
    """
    Grade one review outcome for ``card``.

    A correct answer extends the streak and raises the learned difficulty
    by one (capped at 5); a wrong answer resets the streak to 0 and lowers
    the learned difficulty by one (floored at 1). The next review is
    scheduled ``review_interval(...)`` days after ``now``.

    This is deliberately not SM-2: the formula is part of the stored data
    contract and must stay as is.

    Returns:
        ReviewGrade(learned_difficulty, streak_count, interval_days, next_review_date)
    """
    if now is None:
        now = datetime.datetime.now(datetime.timezone.utc)
    now = as_utc(now)

    if was_correct:
        streak = card.streak_count + 1
        level = min(MAX_LEVEL, card.learned_difficulty + 1)
    else:
        streak = 0
        level = max(MIN_LEVEL, card.learned_difficulty - 1)

    interval = review_interval(level, streak)
    next_review = now + datetime.timedelta(days=interval)
    return ReviewGrade(level, streak, interval, next_review)


def apply_review(card: Card, was_correct: bool, now: Optional[datetime.datetime] = None) -> Card:
    """Return a copy of ``card`` with the graded learning state applied."""
    if now is None:
        now = datetime.datetime.now(datetime.timezone.utc)
    now = as_utc(now)
    grade = grade_review(card, was_correct, now)
    return card.evolve(
        learned_difficulty=grade.learned_difficulty,
        streak_count=grade.streak_count,
        review_count=card.review_count + 1,
        last_reviewed=now,
        next_review_date=grade.next_review_date,
    )
