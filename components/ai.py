"""components.ai — Guard brain state, vision cone, and path following."""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum, auto


class GuardState(Enum):
    IDLE        = auto()   # dwelling, waiting to pick a patrol target
    PATROL      = auto()   # walking a patrol path
    INVESTIGATE = auto()   # walking to a sound, then looking around
    ALERT       = auto()   # player in sight: halt and track


@dataclass
class PathFollow:
    """An actor's current waypoint path.

    ``path``    — grid cells, start excluded, goal included.
    ``index``   — next waypoint to steer toward.
    ``seq``     — bumped on every new request *and* every clear, so a
                  late result from a superseded request can be recognised
                  and dropped (see ``logic.pathfinding.issue_request``).
    ``pending`` — a request has been issued and its result not yet seen.
    """
    path: list[tuple[int, int]] = field(default_factory=list)
    index: int = 0
    seq: int = 0
    pending: bool = False

    def set(self, path: list[tuple[int, int]]) -> None:
        self.path = list(path)
        self.index = 0

    def clear(self) -> None:
        self.path = []
        self.index = 0
        self.seq += 1
        self.pending = False

    @property
    def active(self) -> bool:
        return self.index < len(self.path)

    def current(self) -> tuple[int, int] | None:
        return self.path[self.index] if self.active else None


@dataclass
class Guard:
    """Guard FSM state.

    ``cell``             — last grid cell reached (patrol search origin).
    ``speed``            — patrol speed, already difficulty-scaled (u/s).
    ``idle_timer``       — seconds spent idle so far.
    ``idle_duration``    — randomised dwell before the next patrol (s).
    ``investigate_timer``— remaining look-around time at a sound (s).
    """
    state: GuardState = GuardState.IDLE
    cell: tuple[int, int] = (0, 0)
    speed: float = 80.0
    idle_timer: float = 0.0
    idle_duration: float = 2.0
    investigate_timer: float = 0.0


@dataclass
class VisionCone:
    """Raycast field of view, rebuilt every tick.

    ``fov``           — total arc (rad, π/2 = ±45°).
    ``view_distance`` — max ray length (u), already difficulty-scaled.
    ``ray_count``     — arc subdivisions; ``ray_count + 1`` rays are cast.
    ``polygon``       — this tick's fan: guard position, then ray hits.
    ``detecting``     — player inside ``polygon`` this tick.
    """
    fov: float = 1.5707963267948966
    view_distance: float = 180.0
    ray_count: int = 25
    polygon: list[tuple[float, float]] = field(default_factory=list)
    detecting: bool = False
