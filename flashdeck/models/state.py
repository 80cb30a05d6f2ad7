from __future__ import annotations
from dataclasses import dataclass, field
import datetime as _dt

ALL_CATEGORY = "All"
FAVORITES_CATEGORY = "Favorites"


@dataclass(slots=True)
class QuizScore:
    correct: int = 0
    total: int = 0

    @property
    def accuracy(self) -> float:
        return (self.correct / self.total * 100.0) if self.total else 0.0


@dataclass(slots=True)
class StudyReport:
    total_cards: int
    favorite_cards: int
    seen_cards: int
    unseen_cards: int
    categories: list[str] = field(default_factory=list)
    average_difficulty: float = 0.0
    last_updated: _dt.datetime = field(default_factory=lambda: _dt.datetime.now(_dt.timezone.utc))

    @property
    def completion_percentage(self) -> float:
        if self.total_cards <= 0:
            return 0.0
        return self.seen_cards / self.total_cards * 100.0
