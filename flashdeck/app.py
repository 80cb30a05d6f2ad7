from kivy.app import App
from kivy.logger import Logger

from flashdeck.config import Config
from flashdeck.services.deck_store import DeckStore


class DeckApp(App):
    """Kivy app shell owning the deck for the lifetime of the process.

    Screens are provided by subclasses through ``build_root``; this class
    only wires the deck into the app lifecycle.
    """

    deck_path = None

    def build_deck(self) -> DeckStore:
        return DeckStore(self.deck_path or Config.deck_path())

    def build_root(self, deck: DeckStore):
        return None

    def build(self):
        self.deck = self.build_deck()
        return self.build_root(self.deck)

    def on_pause(self):
        # mobile: the process may be killed while paused
        self._persist(backup=False)
        return True

    def on_stop(self):
        # final synchronous save + backup only when something changed
        self._persist(backup=True)

    def _persist(self, backup: bool):
        deck = getattr(self, "deck", None)
        if deck is None:
            return
        try:
            deck.flush()
        except OSError as e:
            Logger.error(f"FlashDeck: final save failed: {e}")
            return
        if backup:
            deck.create_backup(only_if_changed=True)


if __name__ == "__main__":
    DeckApp().run()
