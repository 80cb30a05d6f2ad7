import json
import os
import tempfile
import time

# Kivy reads these at import time
os.environ.setdefault("KIVY_NO_ARGS", "1")
os.environ.setdefault("KIVY_NO_CONFIG", "1")
os.environ.setdefault("KIVY_NO_FILELOG", "1")
os.environ.setdefault("KIVY_NO_CONSOLELOG", "1")
os.environ.setdefault("KIVY_HOME", tempfile.mkdtemp(prefix="flashdeck-kivy-"))

import pytest
from kivy.clock import Clock

from flashdeck.services.deck_store import DeckStore


def drain(store, timeout=5.0):
    """Run the Kivy clock until the debounced save has fired and landed."""
    deadline = time.monotonic() + timeout
    while store.file.pending and time.monotonic() < deadline:
        Clock.tick()
    assert not store.file.pending, "debounced save never fired"
    assert store.file.wait(timeout), "save worker did not finish"


def seed_record(chinese, category="Basic Words", **extra):
    rec = {
        "chinese": chinese,
        "pinyin": f"py-{chinese}",
        "english": f"en-{chinese}",
        "french": f"fr-{chinese}",
        "pronunciation": f"pr-{chinese}",
        "category": category,
        "difficulty": 1,
        "exampleSentence": "",
        "examplePinyin": "",
        "exampleTranslation": "",
    }
    rec.update(extra)
    return rec


@pytest.fixture
def seed_file(tmp_path):
    records = [seed_record(f"b{i}") for i in range(20)]
    records += [seed_record(f"h{i}", category="HSK 1") for i in range(5)]
    path = tmp_path / "seed.json"
    path.write_text(json.dumps(records, ensure_ascii=False), encoding="utf-8")
    return path


@pytest.fixture
def deck_path(tmp_path):
    return tmp_path / "data" / "flashcards.json"


@pytest.fixture
def store(deck_path, seed_file):
    s = DeckStore(deck_path, seed_file=seed_file, save_delay=0.01)
    yield s
    s.file.cancel()
    s.file.wait()
