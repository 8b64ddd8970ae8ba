"""components.dev_log — Why-did-the-guard-do-that log.

A bounded list of timestamped entries written whenever a guard changes
state, a path request fails, a takedown lands or a level starts or
ends.  TAB in game shows the newest entries; tests read it back to
check the transitions a guard went through.

Each entry is a dict:
    {"t": float, "eid": int, "cat": str, "msg": str, "details": dict | None}

``eid`` is -1 for level-wide entries.
"""

from __future__ import annotations
from dataclasses import dataclass, field


@dataclass
class DevLog:
    entries: list[dict] = field(default_factory=list)
    max_entries: int = 500

    def record(self, eid: int, cat: str, msg: str, *,
               t: float = 0.0, details: dict | None = None) -> None:
        self.entries.append({"t": t, "eid": eid, "cat": cat, "msg": msg,
                             "details": details})
        if len(self.entries) > self.max_entries:
            del self.entries[:-self.max_entries]

    def recent(self, n: int = 50) -> list[dict]:
        """Newest *n* entries, oldest first."""
        return self.entries[-n:]

    def for_eid(self, eid: int, n: int = 30) -> list[dict]:
        return [e for e in self.entries if e["eid"] == eid][-n:]


def dev_log(world, eid: int, cat: str, msg: str, **details) -> None:
    """Append to the world's DevLog, stamped with the game clock.

        dev_log(world, gid, "guard", "IDLE → PATROL", goal=(5, 3))

    Does nothing when the world has no DevLog.
    """
    log = world.res(DevLog)
    if log is None:
        return
    from components.resources import GameClock
    clock = world.res(GameClock)
    log.record(eid, cat, msg, t=clock.time if clock else 0.0,
               details=details or None)
