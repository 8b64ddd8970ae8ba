"""core/events.py — Gameplay events and the bus that carries them.

The simulation announces what happened (a takedown, a noise, an alert,
a level clear) as small dataclass events; the stealth scene turns them
into rings and banners, and the guard brain listens for ``SoundPulse``.
The bus is a World resource::

    bus = world.res(EventBus)
    bus.emit(SoundPulse(x=352.0, y=352.0, radius=200.0))
    bus.subscribe("SoundPulse", on_sound)

Events queue up during a tick and ``logic.tick`` drains them once at
the end, in emission order.  An event emitted by a handler is delivered
in the same drain.  A failing handler is logged and counted in
``errors``; it never stops the tick or the other handlers.
"""

from __future__ import annotations
import traceback
from dataclasses import dataclass
from typing import Any, Callable
from collections import defaultdict


# ═══════════════════════════════════════════════════════════════════
#  Event definitions
# ═══════════════════════════════════════════════════════════════════

@dataclass
class GuardKilled:
    """A guard was removed by a stealth takedown."""
    eid: int
    x: float = 0.0
    y: float = 0.0
    score: int = 0


@dataclass
class SoundPulse:
    """Noise that sends nearby non-alert guards to investigate."""
    x: float = 0.0
    y: float = 0.0
    radius: float = 200.0


@dataclass
class GemBurst:
    """Loot gems spilled at a kill site."""
    x: float = 0.0
    y: float = 0.0
    count: int = 0


@dataclass
class GemCollected:
    eid: int = 0
    value: int = 0


@dataclass
class FootstepRing:
    """Player footstep (visual noise only)."""
    x: float = 0.0
    y: float = 0.0


@dataclass
class TargetMarked:
    """Click feedback at an accepted move / attack target."""
    x: float = 0.0
    y: float = 0.0
    attack: bool = False


@dataclass
class AlertRaised:
    """A guard just spotted the player (rising edge)."""
    eid: int = 0
    x: float = 0.0
    y: float = 0.0


@dataclass
class GameOver:
    level: int = 1
    score: int = 0


@dataclass
class LevelCleared:
    """Roster emptied; the next level starts after the transition delay."""
    level: int = 1
    next_level: int = 2
    new_record: bool = False


@dataclass
class LevelStarted:
    level: int = 1
    guards: int = 0


# ═══════════════════════════════════════════════════════════════════
#  Event Bus
# ═══════════════════════════════════════════════════════════════════

class EventBus:
    """FIFO event queue with name-keyed subscribers."""

    # Handler-emits-event chains longer than this are cut off
    MAX_ROUNDS = 1000

    def __init__(self):
        self._queue: list[Any] = []
        self._subs: dict[str, list[Callable]] = defaultdict(list)
        self.errors = 0

    def emit(self, event) -> None:
        self._queue.append(event)

    def subscribe(self, event_type: str, handler: Callable) -> None:
        """Call *handler(event)* for every event whose class name is *event_type*."""
        self._subs[event_type].append(handler)

    def drain(self) -> int:
        """Deliver everything queued.  Returns how many events were delivered."""
        delivered = 0
        rounds = 0
        while self._queue and rounds < self.MAX_ROUNDS:
            batch, self._queue = self._queue, []
            for event in batch:
                name = type(event).__name__
                for handler in self._subs.get(name, ()):
                    try:
                        handler(event)
                    except Exception as exc:
                        self.errors += 1
                        print(f"[EVENT] {name} handler failed: {exc}")
                        traceback.print_exc()
            delivered += len(batch)
            rounds += 1
        return delivered

    def pending(self, event_type: str | None = None) -> list[Any]:
        """Queued, undelivered events, optionally only those named *event_type*."""
        if event_type is None:
            return list(self._queue)
        return [e for e in self._queue if type(e).__name__ == event_type]

    def clear(self) -> None:
        """Drop everything queued (level restart)."""
        self._queue.clear()

    def __repr__(self) -> str:
        return f"EventBus(pending={len(self._queue)}, errors={self.errors})"
