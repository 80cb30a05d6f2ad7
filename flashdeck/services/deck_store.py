from __future__ import annotations
from pathlib import Path
from typing import Callable, Iterable, Optional, Sequence
import datetime as _dt
import random

from kivy.event import EventDispatcher
from kivy.logger import Logger
from kivy.properties import ListProperty, NumericProperty

from ..config import Config
from ..models.card import Card, as_utc
from ..models.state import ALL_CATEGORY, FAVORITES_CATEGORY, QuizScore, StudyReport
from ..persistence.deck_file import DeckFile
from ..persistence.exchange import load_seed_cards
from .scheduler import apply_review

SEARCH_FIELDS = ("chinese", "pinyin", "english", "french", "pronunciation")


class DeckStore(EventDispatcher):
    """Owner of the card collection.

    All mutation goes through the methods below. Cards are immutable
    values: a mutator swaps in an updated copy, bumps ``generation`` and
    drops every derived view. Views (favorites, seen, per-category, basic
    words) are rebuilt lazily on the next read and reused until the next
    mutation.

    Events:
        on_card_changed(card): favorite, seen or review state of one card changed
        on_deck_changed(): the collection itself changed
    """

    categories = ListProperty([ALL_CATEGORY])
    card_count = NumericProperty(0)
    favorite_count = NumericProperty(0)
    seen_count = NumericProperty(0)
    quiz_correct = NumericProperty(0)
    quiz_total = NumericProperty(0)

    __events__ = ("on_card_changed", "on_deck_changed")

    def __init__(self, path=None, *, seed_file=None, save_delay: Optional[float] = None,
                 basic_category: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self.path = Path(path) if path is not None else Config.deck_path()
        self.seed_file = seed_file or Config.SEED_FILE
        self.basic_category = basic_category or Config.BASIC_CATEGORY
        self.generation = 0
        self._cards: list[Card] = []
        self._index: dict[str, int] = {}
        self._views: dict = {}
        self._extra_categories: set[str] = set()
        self._seed_order: Optional[dict] = None
        self._file = DeckFile(self, self.path, Config.SAVE_DELAY if save_delay is None else save_delay)
        self._load()

    # ---- Events (default handlers) ----
    def on_card_changed(self, card):
        pass

    def on_deck_changed(self):
        pass

    # ---- Loading ----
    def _load(self):
        cards = self._file.load()
        if cards is None:
            cards = self.seed_cards()
            Logger.info(f"FlashDeck: starting from {len(cards)} default cards")
            self._set_cards(cards)
            try:
                self._file.save_sync()
            except OSError as e:
                Logger.error(f"FlashDeck: could not write {self.path}: {e}")
        else:
            Logger.info(f"FlashDeck: loaded {len(cards)} cards from {self.path}")
            self._set_cards(cards)

    def reload(self):
        """Re-read the deck file, falling back to the defaults like at startup."""
        self._file.cancel()
        self._file.wait()
        self._load()
        self.dispatch("on_deck_changed")

    def seed_cards(self) -> list[Card]:
        return load_seed_cards(self.seed_file)

    # ---- Internal state handling ----
    def _set_cards(self, cards: Iterable[Card]):
        unique, index = [], {}
        for c in cards:
            if c.id in index:
                Logger.warning(f"FlashDeck: dropping duplicate card id {c.id}")
                continue
            index[c.id] = len(unique)
            unique.append(c)
        self._cards = unique
        self._index = index
        self.favorite_count = sum(1 for c in unique if c.is_favorite)
        self.seen_count = sum(1 for c in unique if c.seen)
        self._invalidate()
        self._update_categories()

    def _invalidate(self):
        self.generation += 1
        self._views.clear()
        self.card_count = len(self._cards)

    def _update_categories(self):
        names = {c.category for c in self._cards} | self._extra_categories
        names.discard(ALL_CATEGORY)
        self.categories = [ALL_CATEGORY] + sorted(names)

    def _view(self, key, build: Callable[[], Iterable[Card]]) -> tuple[Card, ...]:
        view = self._views.get(key)
        if view is None:
            view = self._views[key] = tuple(build())
        return view

    def _count(self, old: Optional[Card], new: Card):
        fav = int(new.is_favorite) - int(bool(old and old.is_favorite))
        seen = int(new.seen) - int(bool(old and old.seen))
        if fav:
            self.favorite_count += fav
        if seen:
            self.seen_count += seen

    def _replace_card(self, card: Card):
        i = self._index[card.id]
        self._count(self._cards[i], card)
        self._cards[i] = card
        self._invalidate()
        self._file.save_async()
        self.dispatch("on_card_changed", card)

    def _collection_changed(self):
        self._invalidate()
        self._update_categories()
        self._file.save_async()
        self.dispatch("on_deck_changed")

    # ---- Accessors ----
    @property
    def cards(self) -> tuple[Card, ...]:
        return self._view(ALL_CATEGORY, lambda: self._cards)

    @property
    def file(self) -> DeckFile:
        return self._file

    def get_card(self, card_id: str) -> Optional[Card]:
        i = self._index.get(card_id)
        return self._cards[i] if i is not None else None

    def favorite_cards(self) -> tuple[Card, ...]:
        return self._view(FAVORITES_CATEGORY, lambda: (c for c in self._cards if c.is_favorite))

    def seen_cards(self) -> tuple[Card, ...]:
        return self._view("seen", lambda: (c for c in self._cards if c.seen))

    def basic_word_cards(self) -> tuple[Card, ...]:
        return self.cards_for_category(self.basic_category)

    def cards_for_category(self, category: str) -> tuple[Card, ...]:
        if category == ALL_CATEGORY:
            return self.cards
        if category == FAVORITES_CATEGORY:
            return self.favorite_cards()
        return self._view(("category", category), lambda: (c for c in self._cards if c.category == category))

    def due_for_review(self, as_of: Optional[_dt.datetime] = None) -> list[Card]:
        if as_of is None:
            as_of = _dt.datetime.now(_dt.timezone.utc)
        as_of = as_utc(as_of)
        return [c for c in self.seen_cards() if c.next_review_date is None or as_utc(c.next_review_date) <= as_of]

    def search(self, query: str, category: str = ALL_CATEGORY) -> list[Card]:
        pool = self.cards_for_category(category)
        q = (query or "").strip().lower()
        if not q:
            return list(pool)
        return [c for c in pool if any(q in getattr(c, f).lower() for f in SEARCH_FIELDS)]

    def study_report(self) -> StudyReport:
        total = len(self._cards)
        seen = len(self.seen_cards())
        avg = (sum(c.difficulty for c in self._cards) / total) if total else 0.0
        return StudyReport(
            total_cards=total,
            favorite_cards=len(self.favorite_cards()),
            seen_cards=seen,
            unseen_cards=total - seen,
            categories=sorted({c.category for c in self._cards}),
            average_difficulty=avg,
        )

    # ---- Card mutators ----
    def add_card(self, chinese: str, pinyin: str, english: str, french: str, pronunciation: str,
                 category: str, difficulty: int = 1, example_sentence: str = "",
                 example_pinyin: str = "", example_translation: str = "") -> Card:
        card = Card.create(
            chinese=chinese, pinyin=pinyin, english=english, french=french,
            pronunciation=pronunciation, category=category, difficulty=difficulty,
            example_sentence=example_sentence, example_pinyin=example_pinyin,
            example_translation=example_translation,
        )
        self._index[card.id] = len(self._cards)
        self._cards.append(card)
        self._count(None, card)
        self._collection_changed()
        return card

    def toggle_favorite(self, card_id: str) -> Optional[Card]:
        card = self.get_card(card_id)
        if card is None:
            return None
        card = card.evolve(is_favorite=not card.is_favorite)
        self._replace_card(card)
        return card

    def mark_seen(self, card_id: str) -> Optional[Card]:
        card = self.get_card(card_id)
        if card is None or card.seen:
            return card
        card = card.evolve(seen=True)
        self._replace_card(card)
        return card

    def record_review_outcome(self, card_id: str, was_correct: bool,
                              now: Optional[_dt.datetime] = None) -> Optional[Card]:
        card = self.get_card(card_id)
        if card is None:
            return None
        card = apply_review(card, was_correct, now)
        self._replace_card(card)
        return card

    # ---- Collection mutators ----
    def delete_cards(self, card_ids: Iterable[str]) -> int:
        doomed = set(card_ids)
        keep = [c for c in self._cards if c.id not in doomed]
        removed = len(self._cards) - len(keep)
        if removed:
            self._set_cards(keep)
            self._file.save_async()
            self.dispatch("on_deck_changed")
        return removed

    def add_category(self, name: str) -> bool:
        name = (name or "").strip()
        if not name or name in self.categories or name == FAVORITES_CATEGORY:
            return False
        self._extra_categories.add(name)
        self._update_categories()
        return True

    def import_cards(self, new_cards: Sequence[Card]) -> int:
        """Append ``new_cards``; cards whose id is already present are skipped."""
        added = 0
        for c in new_cards:
            if c.id in self._index:
                continue
            self._index[c.id] = len(self._cards)
            self._cards.append(c)
            self._count(None, c)
            added += 1
        if not added:
            return 0
        self._collection_changed()
        Logger.info(f"FlashDeck: imported {added} cards")
        return added

    def replace_all(self, new_cards: Iterable[Card]):
        self._set_cards(new_cards)
        self._file.save_async()
        self.dispatch("on_deck_changed")

    def reset_all_progress(self):
        self.replace_all([c.reset_progress() for c in self._cards])

    def reset_to_default_cards(self):
        self._extra_categories.clear()
        self.replace_all(self.seed_cards())

    def shuffle(self, rng: Optional[random.Random] = None):
        cards = list(self._cards)
        (rng or random).shuffle(cards)
        self.replace_all(cards)

    def restore_default_order(self):
        if self._seed_order is None:
            self._seed_order = {c.content_key(): i for i, c in enumerate(self.seed_cards())}
        order = self._seed_order
        seeded = sorted((c for c in self._cards if c.content_key() in order), key=lambda c: order[c.content_key()])
        user = [c for c in self._cards if c.content_key() not in order]
        self.replace_all(seeded + user)

    # ---- Quiz score ----
    @property
    def quiz_score(self) -> QuizScore:
        return QuizScore(int(self.quiz_correct), int(self.quiz_total))

    def reset_quiz(self):
        self.quiz_correct = 0
        self.quiz_total = 0

    def register_quiz_answer(self, correct: bool):
        if correct:
            self.quiz_correct += 1
        self.quiz_total += 1

    # ---- Persistence ----
    def flush(self):
        self._file.flush()

    def save_now(self):
        self._file.save_sync()

    def export_to_file(self, target, fmt: str = "json") -> bool:
        return self._file.export_to_file(target, fmt)

    def create_backup(self, only_if_changed: bool = False) -> Optional[Path]:
        return self._file.create_backup(only_if_changed)

    def list_backups(self) -> list[Path]:
        return self._file.list_backups()

    def restore_backup(self, backup) -> bool:
        if not self._file.restore_backup(backup):
            return False
        self.reload()
        return True
