"""core/constants.py — Shared constants used across the codebase.

Centralises magic numbers so there's exactly one place to change them.

Unit System
-----------
Gameplay positions are measured in **world units** (px at 1× zoom):

    1 tile = TILE_SIZE world units

Standard units used throughout the codebase:

    Distance / position     u       (world units)
    Speed                   u/s     (world units per second)
    Time                    s       (seconds, simulated)
    Angles                  rad     (0 = +x, clockwise on screen)
    Grid cells              (x, y)  (column, row)

Reference speeds:
    Guard patrol     80 u/s    (× Difficulty.speed_mult)
    Player run      220 u/s
    Player lunge    550 u/s

Detection Range Hierarchy (small → large):
     5 u   Waypoint arrival tolerance
    20 u   Lunge strike distance
    30 u   Click-on-guard tolerance
    40 u   Stealth kill radius
   180 u   Guard view distance / lunge kill range
   200 u   Kill sound-pulse radius
"""

# Tile IDs  (must match the level files written by core.nbt)
TILE_FLOOR = 0
TILE_WALL  = 1

# Only floors are walkable for every actor in the game.
WALKABLE_TILES: tuple[int, ...] = (TILE_FLOOR,)

# World units per grid cell ("chunky" crates)
TILE_SIZE = 64

# Default level dimensions in cells (1280×768 playfield)
MAP_WIDTH  = 20
MAP_HEIGHT = 12

# Tile palette, index → color
TILE_COLORS = {
    TILE_FLOOR: (158, 158, 158),
    TILE_WALL:  (139, 69, 19),
}
