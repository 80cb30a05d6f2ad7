import json

from flashdeck.app import DeckApp
from flashdeck.services.deck_store import DeckStore


class _App(DeckApp):
    def __init__(self, store, **kwargs):
        super().__init__(**kwargs)
        self._store = store

    def build_deck(self):
        return self._store


def test_stop_flushes_pending_changes_and_backs_up(store, deck_path):
    app = _App(store)
    assert app.build() is None
    assert app.deck is store

    cid = store.cards[0].id
    store.toggle_favorite(cid)
    assert store.file.pending
    app.on_stop()

    assert not store.file.pending
    on_disk = {r["id"]: r for r in json.loads(deck_path.read_text(encoding="utf-8"))}
    assert on_disk[cid]["isFavorite"] is True
    assert len(store.list_backups()) == 1

    # nothing changed since, so no second backup
    app.on_stop()
    assert len(store.list_backups()) == 1


def test_pause_saves_without_backup(store):
    app = _App(store)
    app.build()
    store.mark_seen(store.cards[0].id)
    assert app.on_pause() is True
    assert not store.file.pending
    assert store.list_backups() == []


def test_default_deck_location(tmp_path, seed_file):
    class _PathApp(DeckApp):
        deck_path = tmp_path / "deck.json"

        def build_deck(self):
            return DeckStore(self.deck_path, seed_file=seed_file, save_delay=0.01)

    app = _PathApp()
    app.build()
    assert app.deck.path == tmp_path / "deck.json"
    assert (tmp_path / "deck.json").exists()
