"""components.resources — Player, tags, collectibles, and world singletons."""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum, auto


class PlayerState(Enum):
    IDLE          = auto()
    MANUAL_MOVE   = auto()   # keyboard steering, collision-tested
    MOVING        = auto()   # following a click path
    ASSASSINATING = auto()   # lunging at a locked guard
    DEAD          = auto()


@dataclass
class Player:
    """Marks the player entity and holds its steering state.

    ``max_speed``   — run speed for pathing and manual movement (u/s).
    ``lunge_speed`` — straight-line attack dash speed (u/s).
    ``target``      — guard eid locked by a lunge, else ``None``.
    """
    state: PlayerState = PlayerState.IDLE
    max_speed: float = 220.0
    lunge_speed: float = 550.0
    target: int | None = None
    footstep_timer: float = 0.0


@dataclass
class Identity:
    """Tagged-variant marker: ``kind`` is "player", "guard" or "gem"."""
    kind: str = ""
    name: str = ""


@dataclass
class Collectible:
    """Loot gem: bursts outward, then homes in on the player."""
    value: int = 15
    vx: float = 0.0
    vy: float = 0.0
    phase: str = "burst"       # "burst" → "seek"
    burst_time: float = 0.0


# ── World singletons (stored with world.set_res) ─────────────────────

@dataclass
class GameClock:
    time: float = 0.0          # s of simulated time


@dataclass
class Difficulty:
    """Per-level modifiers, owned by the level, read-only to actors."""
    level: int = 1
    max_guards: int = 4
    speed_mult: float = 1.0
    vision_mult: float = 1.0
    max_detection_time: float = 1.5    # s


@dataclass
class EncounterState:
    """Per-session bookkeeping for the encounter coordinator."""
    level: int = 1
    score: int = 0
    detection_time: float = 0.0        # s
    game_over: bool = False
    game_over_timer: float = 0.0       # s since game over
    transitioning: bool = False
    transition_timer: float = 0.0      # s left before the next level starts
    hit_stop: float = 0.0              # s of frozen simulation left
    spawn: tuple[int, int] = (1, 1)    # player spawn cell of this level
