"""core/collision.py — Low-level point / tile-grid collision primitives.

These live in ``core/`` (not ``logic/``) because both the level loader
(safe spawn) and gameplay systems (player movement) need them.
Keeping them here prevents a circular dependency.
"""

from __future__ import annotations
from core.grid import TileGrid

# The player's body is sampled at its centre plus four cardinal points
# this far out (world units).
BODY_RADIUS = 10.0


def body_hits_wall(x: float, y: float, grid: TileGrid,
                   radius: float = BODY_RADIUS) -> bool:
    """Return True if any body sample point around (x, y) is blocked.

    Parameters
    ----------
    x, y : float
        Body centre in world units.
    grid : TileGrid
        Current level grid.
    radius : float
        Offset of the four cardinal sample points from the centre.
    """
    for px, py in (
        (x, y),
        (x + radius, y),
        (x - radius, y),
        (x, y + radius),
        (x, y - radius),
    ):
        if grid.blocks_point(px, py):
            return True
    return False
