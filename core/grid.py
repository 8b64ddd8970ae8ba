"""core/grid.py — The level tile grid.

A ``TileGrid`` wraps a row-major ``tiles[y][x]`` list of tile IDs and
knows how to convert between grid cells and world coordinates.  It lives
in ``core/`` because map generation, pathfinding, collision and vision
all read it.

The grid is read-only while a level runs; only the level-transition
routine (``logic.level``) swaps in a freshly generated one.

    grid = TileGrid.from_rows([
        "#####",
        "#...#",
        "#####",
    ])
    grid.is_floor(2, 1)          # True
    grid.cell_at(130.0, 70.0)    # (2, 1)
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Iterator

from core.constants import TILE_FLOOR, TILE_WALL, TILE_SIZE

Cell = tuple[int, int]   # (x, y): column, row

_DIRS4 = ((1, 0), (-1, 0), (0, 1), (0, -1))


@dataclass
class TileGrid:
    tiles: list[list[int]]
    tile_size: int = TILE_SIZE

    # ── Construction ─────────────────────────────────────────────────

    @classmethod
    def open_room(cls, width: int, height: int) -> "TileGrid":
        """All-floor interior surrounded by a one-cell wall ring."""
        tiles = [[TILE_FLOOR] * width for _ in range(height)]
        for x in range(width):
            tiles[0][x] = TILE_WALL
            tiles[height - 1][x] = TILE_WALL
        for y in range(height):
            tiles[y][0] = TILE_WALL
            tiles[y][width - 1] = TILE_WALL
        return cls(tiles)

    @classmethod
    def from_rows(cls, rows: list[str]) -> "TileGrid":
        """Build from ASCII rows: ``#`` is wall, anything else is floor."""
        return cls([[TILE_WALL if ch == "#" else TILE_FLOOR for ch in row]
                    for row in rows])

    # ── Shape ────────────────────────────────────────────────────────

    @property
    def width(self) -> int:
        return len(self.tiles[0]) if self.tiles else 0

    @property
    def height(self) -> int:
        return len(self.tiles)

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def at(self, x: int, y: int) -> int:
        return self.tiles[y][x]

    def is_floor(self, x: int, y: int) -> bool:
        return self.in_bounds(x, y) and self.tiles[y][x] == TILE_FLOOR

    def is_wall(self, x: int, y: int) -> bool:
        """Walls and everything outside the grid block movement and sight."""
        return not self.in_bounds(x, y) or self.tiles[y][x] == TILE_WALL

    # ── World ↔ grid ─────────────────────────────────────────────────

    def cell_at(self, wx: float, wy: float) -> Cell:
        return int(wx // self.tile_size), int(wy // self.tile_size)

    def cell_center(self, x: int, y: int) -> tuple[float, float]:
        half = self.tile_size / 2
        return x * self.tile_size + half, y * self.tile_size + half

    def blocks_point(self, wx: float, wy: float) -> bool:
        """True if the world point lies inside a wall or off the map."""
        cx, cy = self.cell_at(wx, wy)
        return self.is_wall(cx, cy)

    # ── Queries ──────────────────────────────────────────────────────

    def floor_cells(self) -> Iterator[Cell]:
        for y, row in enumerate(self.tiles):
            for x, t in enumerate(row):
                if t == TILE_FLOOR:
                    yield x, y

    def floor_count(self) -> int:
        return sum(row.count(TILE_FLOOR) for row in self.tiles)

    def flood_fill(self, x: int, y: int) -> set[Cell]:
        """Return the 4-connected floor component containing (x, y)."""
        if not self.is_floor(x, y):
            return set()
        seen: set[Cell] = {(x, y)}
        stack = [(x, y)]
        while stack:
            cx, cy = stack.pop()
            for dx, dy in _DIRS4:
                n = (cx + dx, cy + dy)
                if n not in seen and self.is_floor(*n):
                    seen.add(n)
                    stack.append(n)
        return seen

