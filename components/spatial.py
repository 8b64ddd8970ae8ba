"""components.spatial — Position, movement, and facing.

All coordinates are world units (``core.constants.TILE_SIZE`` per cell).
"""

from __future__ import annotations
from dataclasses import dataclass


@dataclass
class Position:
    x: float = 0.0        # u
    y: float = 0.0        # u


@dataclass
class Velocity:
    x: float = 0.0        # u/s
    y: float = 0.0        # u/s


@dataclass
class Facing:
    """Heading in radians (0 = +x).  Drives vision cones and sprites."""
    angle: float = 0.0
