"""Global settings and configuration."""

import os
from dataclasses import dataclass
from pathlib import Path


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.environ.get(name, default))
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.environ.get(name, default))
    except ValueError:
        return default


@dataclass
class Config:
    """Application-wide configuration.

    Values come from the environment at import time. A ``DeckStore`` takes
    each of them as an explicit constructor argument as well, so tests and
    embedding apps never need to touch these class attributes.
    """

    # Package resources
    PACKAGE_DIR: Path = Path(__file__).parent.resolve()
    SEED_FILE: str = os.environ.get("FLASHDECK_SEED_FILE", str(PACKAGE_DIR / "res" / "default_cards.json"))

    # Persisted deck
    DATA_DIR: str = os.environ.get("FLASHDECK_DATA_DIR", str(Path.home() / ".flashdeck"))
    DECK_FILE: str = os.environ.get("FLASHDECK_DECK_FILE", "flashcards.json")

    # Debounce window for autosave (seconds)
    SAVE_DELAY: float = _env_float("FLASHDECK_SAVE_DELAY", 0.5)

    # Quiz
    QUIZ_SIZE: int = _env_int("FLASHDECK_QUIZ_SIZE", 10)
    BASIC_CATEGORY: str = os.environ.get("FLASHDECK_BASIC_CATEGORY", "Basic Words")

    @classmethod
    def deck_path(cls) -> Path:
        return Path(cls.DATA_DIR) / cls.DECK_FILE
