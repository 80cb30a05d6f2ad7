from __future__ import annotations
from pathlib import Path
from typing import Iterable, Optional
import csv
import io
import json

from kivy.logger import Logger

from ..models.card import Card, CardDecodeError

CSV_HEADER = ("Chinese", "Pinyin", "English", "French", "Category", "Difficulty", "IsFavorite", "Seen")


def dump_cards(cards: Iterable[Card], *, indent: Optional[int] = 2) -> str:
    return json.dumps([c.to_dict() for c in cards], ensure_ascii=False, indent=indent)


def decode_cards(obj, *, new_ids: bool = False) -> list[Card]:
    """Decode a JSON array of card records, raising CardDecodeError on bad input."""
    if not isinstance(obj, list):
        raise CardDecodeError("expected a JSON array of cards")
    out, ids = [], set()
    for item in obj:
        card = Card.from_dict(item, new_id=new_ids)
        if card.id in ids:
            raise CardDecodeError(f"duplicate card id: {card.id}")
        ids.add(card.id)
        out.append(card)
    return out


def export_cards_to_json(cards: Iterable[Card]) -> str:
    return dump_cards(cards)


def import_cards_from_json(text: str) -> Optional[list[Card]]:
    if not text or not text.strip():
        return None
    try:
        return decode_cards(json.loads(text))
    except (ValueError, TypeError) as e:
        # json.JSONDecodeError and CardDecodeError are both ValueErrors
        Logger.warning(f"FlashDeck: import failed: {e}")
        return None


def _csv_bool(v: bool) -> str:
    return "true" if v else "false"


def export_cards_to_csv(cards: Iterable[Card]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for c in cards:
        writer.writerow([
            c.chinese, c.pinyin, c.english, c.french, c.category,
            c.difficulty, _csv_bool(c.is_favorite), _csv_bool(c.seen),
        ])
    return buf.getvalue()


def load_seed_cards(json_path) -> list[Card]:
    p = Path(json_path)
    if not p.exists():
        Logger.error(f"FlashDeck: seed file not found: {p}")
        return []
    try:
        with open(p, "r", encoding="utf-8") as f:
            obj = json.load(f)
        items = obj.get("cards", []) if isinstance(obj, dict) else obj
        return decode_cards(items, new_ids=True)
    except (OSError, ValueError) as e:
        Logger.error(f"FlashDeck: seed file unreadable ({p}): {e}")
        return []
