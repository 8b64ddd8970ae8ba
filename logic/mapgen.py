"""logic/mapgen.py — Procedural "warehouse" level generation.

Algorithm
---------
1. Start from an all-floor interior inside a one-cell wall ring.
2. Scatter crates: sample a polyomino from ``CRATE_TEMPLATES`` (weighted)
   and an interior anchor; accept it only if every covered cell is in
   bounds (keeping ``edge_margin`` away from the map edge), currently
   floor, and would not touch ``cramp_limit``+ existing walls.  Stop at
   the fill target or after ``max_attempts`` tries — whichever first.
3. Connectivity repair: flood-fill every floor component, keep the
   largest, wall over the rest.
4. Corridor widening: a floor cell pinched between two walls with no
   floor continuation on the other axis gets one side wall removed.

A sparse map (attempt budget hit before the fill target) is accepted
as-is and only logged.

Public API
----------
``generate_grid(width, height, fill_ratio, rng)`` → ``TileGrid``
``find_valid_spawn(grid, rng)``                   → ``(x, y)``
"""

from __future__ import annotations
import random
from typing import NamedTuple

from core.constants import TILE_FLOOR, TILE_WALL
from core.grid import TileGrid, Cell
from core.tuning import get as _tun


class CrateTemplate(NamedTuple):
    cells: tuple[Cell, ...]     # offsets from the anchor
    weight: int


# ── Crate catalog (1×1 up to 3×2 / 2×3) ──────────────────────────────

CRATE_TEMPLATES: tuple[CrateTemplate, ...] = (
    CrateTemplate(((0, 0),), 3),                                   # 1x1
    CrateTemplate(((0, 0), (1, 0)), 4),                            # 2x1
    CrateTemplate(((0, 0), (0, 1)), 4),                            # 1x2
    CrateTemplate(((0, 0), (1, 0), (0, 1), (1, 1)), 3),            # 2x2
    CrateTemplate(((0, 0), (1, 0), (2, 0)), 2),                    # 3x1
    CrateTemplate(((0, 0), (0, 1), (0, 2)), 2),                    # 1x3
    CrateTemplate(((0, 0), (0, 1), (1, 1)), 2),                    # L
    CrateTemplate(((0, 0), (1, 0), (1, 1)), 2),                    # L
    CrateTemplate(((0, 0), (1, 0), (0, 1)), 2),                    # L
    CrateTemplate(((1, 0), (0, 1), (1, 1)), 2),                    # L
    CrateTemplate(((0, 0), (1, 0), (2, 0), (0, 1), (1, 1), (2, 1)), 1),  # 3x2
    CrateTemplate(((0, 0), (1, 0), (0, 1), (1, 1), (0, 2), (1, 2)), 1),  # 2x3
)

_DIRS4 = ((-1, 0), (1, 0), (0, -1), (0, 1))


def pick_template(rng, templates=CRATE_TEMPLATES) -> CrateTemplate:
    """Weighted draw from *templates*."""
    total = sum(t.weight for t in templates)
    r = rng.random() * total
    for t in templates:
        r -= t.weight
        if r <= 0:
            return t
    return templates[0]


def can_place(tiles: list[list[int]], cells: tuple[Cell, ...],
              ox: int, oy: int, *, margin: int = 2,
              cramp_limit: int = 3) -> bool:
    """Return True if a crate with *cells* fits at anchor (ox, oy)."""
    h = len(tiles)
    w = len(tiles[0]) if h else 0
    covered = {(ox + dx, oy + dy) for dx, dy in cells}

    for x, y in covered:
        if x < margin or x >= w - margin or y < margin or y >= h - margin:
            return False
        if tiles[y][x] == TILE_WALL:
            return False

    # Over-cramping guard: count walls that are not part of this crate
    for x, y in covered:
        walls = 0
        for dx, dy in _DIRS4:
            nx, ny = x + dx, y + dy
            if (nx, ny) in covered:
                continue
            if 0 <= ny < h and 0 <= nx < w and tiles[ny][nx] == TILE_WALL:
                walls += 1
        if walls >= cramp_limit:
            return False
    return True


def _keep_largest_component(grid: TileGrid) -> int:
    """Wall over every floor component except the largest.  Returns cells filled."""
    seen: set[Cell] = set()
    largest: set[Cell] = set()
    for cell in list(grid.floor_cells()):
        if cell in seen:
            continue
        comp = grid.flood_fill(*cell)
        seen |= comp
        if len(comp) > len(largest):
            largest = comp

    filled = 0
    for x, y in seen - largest:
        grid.tiles[y][x] = TILE_WALL
        filled += 1
    return filled


def _widen_corridors(grid: TileGrid, rng) -> int:
    """Clear one side wall next to every 1-tile pinch.  Returns walls removed."""
    t = grid.tiles
    w, h = grid.width, grid.height
    removed = 0
    for y in range(1, h - 1):
        for x in range(1, w - 1):
            if t[y][x] != TILE_FLOOR:
                continue

            # Pinched horizontally (walls left + right, no floor above/below)
            if (t[y][x - 1] == TILE_WALL and t[y][x + 1] == TILE_WALL
                    and t[y - 1][x] != TILE_FLOOR and t[y + 1][x] != TILE_FLOOR):
                if rng.random() > 0.5 and x + 1 < w - 1:
                    t[y][x + 1] = TILE_FLOOR
                    removed += 1
                elif x - 1 > 0:
                    t[y][x - 1] = TILE_FLOOR
                    removed += 1

            # Pinched vertically (walls above + below, no floor left/right)
            if (t[y - 1][x] == TILE_WALL and t[y + 1][x] == TILE_WALL
                    and t[y][x - 1] != TILE_FLOOR and t[y][x + 1] != TILE_FLOOR):
                if rng.random() > 0.5 and y + 1 < h - 1:
                    t[y + 1][x] = TILE_FLOOR
                    removed += 1
                elif y - 1 > 0:
                    t[y - 1][x] = TILE_FLOOR
                    removed += 1
    return removed


def generate_grid(width: int, height: int,
                  fill_ratio: float | None = None,
                  rng=None) -> TileGrid:
    """Generate a connected warehouse level of *width* × *height* cells.

    Parameters
    ----------
    width, height : int
        Map size in cells, border included.  Must be at least 3×3.
    fill_ratio : float | None
        Target fraction of interior cells covered by crates
        (tuning ``mapgen.fill_ratio``, 0.25).
    rng : random.Random | module
        Source of randomness; defaults to the ``random`` module.

    Returns
    -------
    TileGrid
        Border all wall, floor a single 4-connected component.
    """
    if width < 3 or height < 3:
        raise ValueError(f"level must be at least 3x3, got {width}x{height}")
    rng = rng or random
    if fill_ratio is None:
        fill_ratio = _tun("mapgen", "fill_ratio", 0.25)
    max_attempts = _tun("mapgen", "max_attempts", 800)
    margin = _tun("mapgen", "edge_margin", 2)
    cramp = _tun("mapgen", "cramp_limit", 3)

    grid = TileGrid.open_room(width, height)

    interior_w = width - 2
    interior_h = height - 2
    target = int(interior_w * interior_h * fill_ratio)

    walls = 0
    attempts = 0
    # Anchor range [2, interior - 2) + 2 needs some interior room to sample
    if interior_w > 2 and interior_h > 2:
        while walls < target and attempts < max_attempts:
            attempts += 1
            tmpl = pick_template(rng)
            ox = rng.randrange(interior_w - 2) + 2
            oy = rng.randrange(interior_h - 2) + 2
            if can_place(grid.tiles, tmpl.cells, ox, oy,
                         margin=margin, cramp_limit=cramp):
                for dx, dy in tmpl.cells:
                    grid.tiles[oy + dy][ox + dx] = TILE_WALL
                walls += len(tmpl.cells)

    if walls < target:
        print(f"[MAPGEN] Fill target missed: {walls}/{target} crate cells "
              f"after {attempts} attempts — keeping sparse map")

    filled = _keep_largest_component(grid)
    widened = _widen_corridors(grid, rng)

    print(f"[MAPGEN] {width}x{height}: {walls} crate cells, {attempts} attempts, "
          f"{filled} isolated cells filled, {widened} walls cleared")
    return grid


def find_valid_spawn(grid: TileGrid, rng=None) -> Cell:
    """Return a random interior floor cell.

    Raises ``ValueError`` for a grid with no floor at all (never produced
    by ``generate_grid``).
    """
    rng = rng or random
    cells = [(x, y) for x, y in grid.floor_cells()
             if 0 < x < grid.width - 1 and 0 < y < grid.height - 1]
    if not cells:
        raise ValueError("grid has no interior floor cell to spawn on")
    return rng.choice(cells)
