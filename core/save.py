"""core/save.py — Progress persistence.

The only state that survives a session is the highest level the player
has reached.  It is stored as a tiny JSON document::

    {"format_version": 1, "high_level": 7}

The store is created once at startup and kept on the World as a
resource, so nothing reaches for a global key-value store::

    store = HighLevelStore(SAVES_DIR / "progress.json")
    world.set_res(store)
    store.record(level)          # only writes when it beats the record

Passing ``path=None`` keeps everything in memory (tests, demo mode).
"""

from __future__ import annotations
import json
from pathlib import Path


SAVES_DIR = Path("saves")
DEFAULT_LEVEL = 1


class HighLevelStore:
    """get / set / clear of a single "highest level reached" integer."""

    def __init__(self, path: str | Path | None = None):
        self.path = Path(path) if path is not None else None
        self._value = self._read()

    # ── Public API ───────────────────────────────────────────────────

    def get(self) -> int:
        return self._value

    def set(self, level: int) -> None:
        self._value = int(level)
        self._write()

    def record(self, level: int) -> bool:
        """Store *level* if it beats the current record.  Returns True if so."""
        if level > self._value:
            self.set(level)
            return True
        return False

    def clear(self) -> None:
        """Forget all progress (menu "reset" button)."""
        self._value = DEFAULT_LEVEL
        if self.path is not None and self.path.exists():
            self.path.unlink()

    # ── Disk I/O ─────────────────────────────────────────────────────

    def _read(self) -> int:
        if self.path is None or not self.path.exists():
            return DEFAULT_LEVEL
        try:
            with open(self.path, "r") as f:
                data = json.load(f)
            return max(DEFAULT_LEVEL, int(data.get("high_level", DEFAULT_LEVEL)))
        except (OSError, ValueError, TypeError, AttributeError) as ex:
            print(f"[SAVE] Error loading progress file: {ex}")
            return DEFAULT_LEVEL

    def _write(self) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump({"format_version": 1, "high_level": self._value}, f, indent=2)

    def __repr__(self) -> str:
        return f"HighLevelStore(high_level={self._value}, path={self.path})"
