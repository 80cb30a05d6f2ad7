from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional, Sequence
import random

from ..config import Config
from ..models.card import Card

PINYIN = "pinyin"
MEANING = "meaning"
OPTION_COUNT = 4


def question_kind(index: int) -> str:
    # even positions ask for the transcription, odd ones for the translation
    return PINYIN if index % 2 == 0 else MEANING


def expected_answer(card: Card, kind: str) -> str:
    return card.pinyin if kind == PINYIN else card.english


def select_quiz_cards(seen: Sequence[Card], fallback: Sequence[Card], size: int,
                      rng: Optional[random.Random] = None) -> list[Card]:
    """Pick up to ``size`` cards, preferring seen ones.

    With enough seen cards, ``size`` of them are sampled. Otherwise all
    seen cards are used and the rest is filled from ``fallback`` (cards
    already seen are skipped). A short fallback just yields a smaller set.
    """
    rng = rng or random
    if size <= 0:
        return []
    seen = list(seen)
    if len(seen) >= size:
        return rng.sample(seen, size)
    picked = list(seen)
    rng.shuffle(picked)
    taken = {c.id for c in picked}
    pool = [c for c in fallback if c.id not in taken]
    rng.shuffle(pool)
    return picked + pool[: size - len(picked)]


def build_options(card: Card, kind: str, all_cards: Sequence[Card],
                  rng: Optional[random.Random] = None) -> list[str]:
    rng = rng or random
    correct = expected_answer(card, kind)
    # sorted first so a seeded rng gives the same options every run
    distractors = sorted({expected_answer(c, kind) for c in all_cards} - {correct})
    rng.shuffle(distractors)
    options = distractors[: OPTION_COUNT - 1] + [correct]
    rng.shuffle(options)
    return options


@dataclass
class QuizQuestion:
    card: Card
    kind: str
    options: list[str]
    answer: str
    chosen: Optional[str] = None

    @property
    def answered(self) -> bool:
        return self.chosen is not None

    @property
    def is_correct(self) -> bool:
        return self.chosen == self.answer


@dataclass
class QuizSession:
    store: object
    cards: list[Card] = field(default_factory=list)
    index: int = 0
    rng: Optional[random.Random] = None
    _questions: dict = field(default_factory=dict, init=False, repr=False)

    @classmethod
    def build(cls, store, size: Optional[int] = None, rng: Optional[random.Random] = None) -> "QuizSession":
        size = Config.QUIZ_SIZE if size is None else size
        seen = store.seen_cards()
        seen_ids = {c.id for c in seen}
        fallback = [c for c in store.basic_word_cards() if c.id not in seen_ids]
        session = cls(store=store, cards=select_quiz_cards(seen, fallback, size, rng), rng=rng)
        store.reset_quiz()
        return session

    def __len__(self):
        return len(self.cards)

    @property
    def is_empty(self) -> bool:
        return not self.cards

    @property
    def is_complete(self) -> bool:
        if not self.cards:
            return False
        return all(i in self._questions and self._questions[i].answered for i in range(len(self.cards)))

    def question(self, index: int) -> QuizQuestion:
        q = self._questions.get(index)
        if q is None:
            card = self.cards[index]
            kind = question_kind(index)
            q = QuizQuestion(
                card=card,
                kind=kind,
                options=build_options(card, kind, self.store.cards, self.rng),
                answer=expected_answer(card, kind),
            )
            self._questions[index] = q
        return q

    @property
    def current(self) -> Optional[QuizQuestion]:
        if not self.cards:
            return None
        return self.question(self.index)

    def answer(self, choice: str) -> bool:
        """Grade ``choice`` for the current question (once per question)."""
        q = self.current
        if q is None:
            return False
        if q.answered:
            return q.is_correct
        q.chosen = choice
        correct = q.is_correct
        self.store.register_quiz_answer(correct)
        self.store.record_review_outcome(q.card.id, correct)
        return correct

    def next(self) -> bool:
        if self.index < len(self.cards) - 1:
            self.index += 1
            return True
        return False

    def previous(self) -> bool:
        if self.index > 0:
            self.index -= 1
            return True
        return False

    def restart(self, size: Optional[int] = None) -> "QuizSession":
        return QuizSession.build(self.store, size, self.rng)
