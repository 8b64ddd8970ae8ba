"""components — ECS component dataclasses, organised by domain.

Submodules
----------
spatial        Position, Velocity, Facing
ai             GuardState, Guard, VisionCone, PathFollow
resources      PlayerState, Player, Identity, Collectible,
               GameClock, Difficulty, EncounterState
dev_log        DevLog

All public names are re-exported here so systems can simply do
``from components import Position``.
"""

# ── Spatial ──────────────────────────────────────────────────────────
from components.spatial import Position, Velocity, Facing

# ── AI ───────────────────────────────────────────────────────────────
from components.ai import GuardState, Guard, VisionCone, PathFollow

# ── Actors, tags, world resources ────────────────────────────────────
from components.resources import (
    PlayerState, Player, Identity, Collectible,
    GameClock, Difficulty, EncounterState,
)

# ── Debug ────────────────────────────────────────────────────────────
from components.dev_log import DevLog

__all__ = [
    # spatial
    "Position", "Velocity", "Facing",
    # ai
    "GuardState", "Guard", "VisionCone", "PathFollow",
    # actors / resources
    "PlayerState", "Player", "Identity", "Collectible",
    "GameClock", "Difficulty", "EncounterState",
    # debug
    "DevLog",
]
