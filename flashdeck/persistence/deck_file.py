from __future__ import annotations
from pathlib import Path
from typing import Optional
import datetime as _dt
import json
import os
import shutil
import threading
import uuid

from kivy.clock import Clock
from kivy.logger import Logger

from ..models.card import Card
from .exchange import decode_cards, dump_cards, export_cards_to_csv


class DeckFile:
    """JSON file behind a ``DeckStore``.

    Autosaves are debounced on the Kivy clock: every ``save_async`` call
    cancels the pending timer and starts a new one, so a burst of
    mutations produces a single write. The snapshot is taken on the clock
    thread when the timer fires; the file write itself runs on a worker
    thread. Each snapshot carries a generation number and a write is
    dropped if a newer generation already reached the disk.
    """

    def __init__(self, store, path: Path, delay: float = 0.5):
        self.store = store
        self.path = Path(path)
        self.delay = delay
        self.write_count = 0
        self._pending = False
        self._generation = 0
        self._written_generation = 0
        self._write_lock = threading.Lock()
        self._worker: Optional[threading.Thread] = None
        self._trigger = Clock.create_trigger(self._do_save_async, delay)

    @property
    def pending(self) -> bool:
        return self._pending

    # ---- Snapshot ----
    def build_snapshot(self) -> str:
        return dump_cards(self.store.cards)

    # ---- IO ----
    def _write_text(self, text: str, path: Optional[Path] = None) -> None:
        path = Path(path or self.path)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(f"{path.name}.{uuid.uuid4().hex[:8]}.tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                f.write(text)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
        except OSError:
            tmp_path.unlink(missing_ok=True)
            raise

    def _commit(self, text: str, generation: int) -> bool:
        with self._write_lock:
            if generation <= self._written_generation:
                return False
            self._write_text(text)
            self._written_generation = generation
            self.write_count += 1
            return True

    def save_async(self):
        self._trigger.cancel()
        self._pending = True
        self._trigger()

    def _do_save_async(self, *_):
        self._pending = False
        self._generation += 1
        generation = self._generation
        text = self.build_snapshot()

        def worker():
            try:
                if self._commit(text, generation):
                    Logger.debug(f"FlashDeck: saved {self.path.name} (generation {generation})")
            except OSError as e:
                Logger.error(f"FlashDeck: autosave of {self.path} failed: {e}")

        self._worker = threading.Thread(target=worker, daemon=True)
        self._worker.start()

    def save_sync(self):
        """Write the current state now. Raises OSError on failure."""
        self._trigger.cancel()
        self._pending = False
        self._generation += 1
        self._commit(self.build_snapshot(), self._generation)

    def flush(self):
        if self._pending:
            self.save_sync()
        self.wait()

    def cancel(self):
        self._trigger.cancel()
        self._pending = False

    def wait(self, timeout: Optional[float] = None) -> bool:
        w = self._worker
        if w is not None and w.is_alive():
            w.join(timeout)
            return not w.is_alive()
        return True

    def load(self) -> Optional[list[Card]]:
        if not self.path.exists():
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return decode_cards(data)
        except (OSError, ValueError) as e:
            Logger.warning(f"FlashDeck: could not load {self.path}: {e}")
            return None

    # ---- Export ----
    def export_to_file(self, target, fmt: str = "json") -> bool:
        cards = self.store.cards
        if fmt == "json":
            text = dump_cards(cards)
        elif fmt == "csv":
            text = export_cards_to_csv(cards)
        else:
            raise ValueError(f"unknown export format: {fmt}")
        try:
            self._write_text(text, Path(target))
        except OSError as e:
            Logger.error(f"FlashDeck: export to {target} failed: {e}")
            return False
        Logger.info(f"FlashDeck: exported {len(cards)} cards to {target}")
        return True

    # ---- Backups ----
    def _backup_pattern(self) -> str:
        return f"{self.path.stem}_backup_*{self.path.suffix}"

    def list_backups(self) -> list[Path]:
        if not self.path.parent.exists():
            return []
        return sorted(self.path.parent.glob(self._backup_pattern()), key=lambda p: p.name, reverse=True)

    def _canonical_str(self, path: Path) -> Optional[str]:
        try:
            with open(path, "r", encoding="utf-8") as f:
                obj = json.load(f)
        except (OSError, ValueError):
            return None
        return json.dumps(obj, ensure_ascii=False, separators=(",", ":"), sort_keys=True)

    def create_backup(self, only_if_changed: bool = False) -> Optional[Path]:
        try:
            self.flush()
            if not self.path.exists():
                self.save_sync()
        except OSError as e:
            Logger.error(f"FlashDeck: backup aborted, could not save {self.path}: {e}")
            return None

        backups = self.list_backups()
        if only_if_changed and backups:
            last_backup = backups[0]
            current = self._canonical_str(self.path)
            if current is not None and current == self._canonical_str(last_backup):
                Logger.debug(f"FlashDeck: no changes since {last_backup.name}")
                return last_backup

        ts = _dt.datetime.now().strftime("%Y%m%d-%H%M%S-%f")
        backup = self.path.with_name(f"{self.path.stem}_backup_{ts}{self.path.suffix}")
        try:
            shutil.copy2(self.path, backup)
        except OSError as e:
            Logger.error(f"FlashDeck: backup to {backup} failed: {e}")
            return None
        Logger.info(f"FlashDeck: backup created at {backup.name}")
        return backup

    def restore_backup(self, backup) -> bool:
        """Overwrite the deck file with ``backup``. The caller reloads."""
        backup = Path(backup)
        try:
            with open(backup, "r", encoding="utf-8") as f:
                text = f.read()
            decode_cards(json.loads(text))
        except (OSError, ValueError) as e:
            Logger.error(f"FlashDeck: cannot restore from {backup}: {e}")
            return False

        self.cancel()
        self.wait()
        try:
            with self._write_lock:
                self._write_text(text)
                self._generation += 1
                self._written_generation = self._generation
        except OSError as e:
            Logger.error(f"FlashDeck: restore from {backup} failed: {e}")
            return False
        Logger.info(f"FlashDeck: restored {self.path.name} from {backup.name}")
        return True
