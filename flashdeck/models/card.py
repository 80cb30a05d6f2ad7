from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Any, Optional
import datetime as _dt
import uuid


class CardDecodeError(ValueError):
    pass


# On-disk key order (older files may lack everything after "seen")
FIELD_ORDER = (
    "id", "chinese", "pinyin", "english", "french", "pronunciation",
    "category", "difficulty", "isFavorite", "seen",
    "exampleSentence", "examplePinyin", "exampleTranslation",
    "reviewCount", "lastReviewed", "nextReviewDate", "learnedDifficulty", "streakCount",
)
REQUIRED_TEXT = ("chinese", "pinyin", "english", "french", "pronunciation", "category")

MIN_LEVEL = 1
MAX_LEVEL = 5


def _clamp(v: int, lo: int, hi: int) -> int:
    return max(lo, min(hi, v))


def as_utc(ts: Optional[_dt.datetime]) -> Optional[_dt.datetime]:
    """Naive datetimes are taken to be UTC."""
    if ts is None:
        return None
    if ts.tzinfo is None:
        return ts.replace(tzinfo=_dt.timezone.utc)
    return ts.astimezone(_dt.timezone.utc)


def parse_timestamp(value: Any) -> Optional[_dt.datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return _dt.datetime.fromtimestamp(float(value), _dt.timezone.utc)
        except (OverflowError, OSError, ValueError) as e:
            raise CardDecodeError(f"invalid timestamp: {value!r}") from e
    if not isinstance(value, str):
        raise CardDecodeError(f"invalid timestamp: {value!r}")
    s = value.strip()
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    try:
        ts = _dt.datetime.fromisoformat(s)
    except ValueError as e:
        raise CardDecodeError(f"invalid timestamp: {value!r}") from e
    return as_utc(ts)


def format_timestamp(ts: Optional[_dt.datetime]) -> Optional[str]:
    if ts is None:
        return None
    return as_utc(ts).isoformat().replace("+00:00", "Z")


def _as_int(data: dict, key: str, default: int) -> int:
    v = data.get(key, default)
    if v is None:
        return default
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        raise CardDecodeError(f"{key} must be a number, got {v!r}")
    try:
        return int(v)
    except (OverflowError, ValueError) as e:
        # json accepts Infinity and NaN
        raise CardDecodeError(f"{key} out of range: {v!r}") from e


def _as_bool(data: dict, key: str) -> bool:
    v = data.get(key, False)
    if v is None:
        return False
    if not isinstance(v, bool):
        raise CardDecodeError(f"{key} must be a boolean, got {v!r}")
    return v


def _as_text(data: dict, key: str, required: bool) -> str:
    v = data.get(key)
    if v is None:
        if required:
            raise CardDecodeError(f"missing field: {key}")
        return ""
    if not isinstance(v, str):
        raise CardDecodeError(f"{key} must be a string, got {v!r}")
    return v


@dataclass(frozen=True, slots=True, eq=False)
class Card:
    """One vocabulary entry: static content plus learning state.

    Cards are immutable values. The deck store replaces a card with an
    updated copy (see ``evolve``) instead of mutating it, so references
    handed out to callers never change under them. Equality and hashing
    use ``id`` only.
    """

    id: str
    chinese: str
    pinyin: str
    english: str
    french: str
    pronunciation: str
    category: str
    difficulty: int = 1
    example_sentence: str = ""
    example_pinyin: str = ""
    example_translation: str = ""

    # learning state
    is_favorite: bool = False
    seen: bool = False
    review_count: int = 0
    last_reviewed: Optional[_dt.datetime] = None
    next_review_date: Optional[_dt.datetime] = None
    learned_difficulty: int = MIN_LEVEL
    streak_count: int = 0

    @classmethod
    def create(cls, chinese: str, pinyin: str, english: str, french: str, pronunciation: str,
               category: str, difficulty: int = 1, example_sentence: str = "",
               example_pinyin: str = "", example_translation: str = "") -> "Card":
        return cls(
            id=str(uuid.uuid4()),
            chinese=chinese or "",
            pinyin=pinyin or "",
            english=english or "",
            french=french or "",
            pronunciation=pronunciation or "",
            category=category or "",
            difficulty=_clamp(int(difficulty or MIN_LEVEL), MIN_LEVEL, MAX_LEVEL),
            example_sentence=example_sentence or "",
            example_pinyin=example_pinyin or "",
            example_translation=example_translation or "",
        )

    def __eq__(self, other):
        if not isinstance(other, Card):
            return NotImplemented
        return self.id == other.id

    def __hash__(self):
        return hash(self.id)

    def evolve(self, **changes) -> "Card":
        if "id" in changes:
            raise TypeError("card id is immutable")
        return replace(self, **changes)

    def reset_progress(self) -> "Card":
        return replace(
            self,
            is_favorite=False,
            seen=False,
            review_count=0,
            last_reviewed=None,
            next_review_date=None,
            learned_difficulty=MIN_LEVEL,
            streak_count=0,
        )

    def content_key(self) -> tuple[str, str]:
        return (self.chinese, self.category)

    def same_fields(self, other: "Card") -> bool:
        return self.to_dict() == other.to_dict()

    # ---- Serialization ----
    def to_dict(self) -> dict:
        values = {
            "id": self.id,
            "chinese": self.chinese,
            "pinyin": self.pinyin,
            "english": self.english,
            "french": self.french,
            "pronunciation": self.pronunciation,
            "category": self.category,
            "difficulty": self.difficulty,
            "isFavorite": self.is_favorite,
            "seen": self.seen,
            "exampleSentence": self.example_sentence,
            "examplePinyin": self.example_pinyin,
            "exampleTranslation": self.example_translation,
            "reviewCount": self.review_count,
            "lastReviewed": format_timestamp(self.last_reviewed),
            "nextReviewDate": format_timestamp(self.next_review_date),
            "learnedDifficulty": self.learned_difficulty,
            "streakCount": self.streak_count,
        }
        return {k: values[k] for k in FIELD_ORDER}

    @classmethod
    def from_dict(cls, data: Any, *, new_id: bool = False) -> "Card":
        """Decode one record, defaulting everything an older schema may lack.

        ``new_id`` assigns a fresh identifier, used for seed records which
        carry content only.
        """
        if not isinstance(data, dict):
            raise CardDecodeError(f"card record must be an object, got {type(data).__name__}")
        if new_id:
            card_id = str(uuid.uuid4())
        else:
            raw_id = data.get("id")
            if not isinstance(raw_id, str) or not raw_id.strip():
                raise CardDecodeError("missing field: id")
            card_id = raw_id.strip()

        text = {k: _as_text(data, k, required=True) for k in REQUIRED_TEXT}
        if "difficulty" not in data:
            raise CardDecodeError("missing field: difficulty")

        last_reviewed = parse_timestamp(data.get("lastReviewed"))
        next_review = parse_timestamp(data.get("nextReviewDate"))
        if last_reviewed and next_review and next_review < last_reviewed:
            next_review = last_reviewed

        return cls(
            id=card_id,
            difficulty=_clamp(_as_int(data, "difficulty", MIN_LEVEL), MIN_LEVEL, MAX_LEVEL),
            example_sentence=_as_text(data, "exampleSentence", required=False),
            example_pinyin=_as_text(data, "examplePinyin", required=False),
            example_translation=_as_text(data, "exampleTranslation", required=False),
            is_favorite=_as_bool(data, "isFavorite"),
            seen=_as_bool(data, "seen"),
            review_count=max(0, _as_int(data, "reviewCount", 0)),
            last_reviewed=last_reviewed,
            next_review_date=next_review,
            learned_difficulty=_clamp(_as_int(data, "learnedDifficulty", MIN_LEVEL), MIN_LEVEL, MAX_LEVEL),
            streak_count=max(0, _as_int(data, "streakCount", 0)),
            **text,
        )
