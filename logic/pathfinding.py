"""logic/pathfinding.py — 4-connected A* on the level grid.

Movement is cardinal only, every step costs 1, and the heuristic is
Manhattan distance, so returned paths are always shortest.  Neighbours
are expanded in a fixed order (right, left, down, up) and open-set ties
are broken by insertion order, which makes the result deterministic:
the same grid and endpoints always give the same path.

Acceptable tiles
----------------
The caller passes the set of tile IDs an actor may stand on
(``WALKABLE_TILES`` = floor only).  The *start* cell is never tested;
an actor that has been pushed into a wall can still path out.

Callback contract
-----------------
Results are delivered through a callback rather than a return value so
the search can be made asynchronous without touching callers:

    request_path(grid, acceptable, start, goal, on_done)

``on_done(path)`` receives ``None`` when no path exists and otherwise a
list of cells **excluding the start and including the goal**
(``[]`` when start == goal).  ``PathFinder`` queues requests and runs
them from ``calculate()``; with ``deferred=False`` (the default) a
request is answered before ``find_path`` returns.

Stale results
-------------
When an actor replans before an earlier deferred request has been
answered, the late answer must not overwrite the newer plan.
``issue_request`` tags every request with the actor's ``PathFollow.seq``
and drops any answer whose tag no longer matches.

Public API
----------
``find_path(grid, acceptable, start, goal)``                 → ``list | None``
``request_path(grid, acceptable, start, goal, callback)``    → ``None``
``PathFinder``                                               — request queue
``issue_request(finder, follow, start, goal, on_done)``      → ``int``
"""

from __future__ import annotations
import heapq
from itertools import count
from typing import Callable, Iterable, Optional

from core.constants import WALKABLE_TILES
from core.grid import TileGrid, Cell
from core.tuning import get as _tun

PathCallback = Callable[[Optional[list[Cell]]], None]

# Expansion order: right, left, down, up
_DIRS4 = ((1, 0), (-1, 0), (0, 1), (0, -1))


# ── A* search ────────────────────────────────────────────────────────

def find_path(grid: TileGrid, acceptable: Iterable[int],
              start: Cell, goal: Cell) -> list[Cell] | None:
    """Shortest 4-connected path from *start* to *goal*.

    Parameters
    ----------
    grid : TileGrid
        Level grid (read only).
    acceptable : iterable of int
        Tile IDs that may be entered.
    start, goal : (int, int)
        Grid cells ``(x, y)``.

    Returns
    -------
    list[(int, int)] | None
        Cells from the first step to the goal inclusive; ``[]`` if
        ``start == goal``; ``None`` if either end is off the grid, the
        goal tile is not acceptable, or the goal is unreachable.
    """
    ok = frozenset(acceptable)
    sx, sy = start
    gx, gy = goal

    if not grid.in_bounds(sx, sy) or not grid.in_bounds(gx, gy):
        return None
    if grid.at(gx, gy) not in ok:
        return None
    if start == goal:
        return []

    tie = count()
    open_set: list[tuple[int, int, Cell]] = [
        (abs(gx - sx) + abs(gy - sy), next(tie), start)]
    g_score: dict[Cell, int] = {start: 0}
    came_from: dict[Cell, Cell] = {}
    closed: set[Cell] = set()

    while open_set:
        _f, _n, node = heapq.heappop(open_set)
        if node in closed:
            continue            # stale heap entry
        if node == goal:
            path: list[Cell] = []
            while node != start:
                path.append(node)
                node = came_from[node]
            path.reverse()
            return path
        closed.add(node)

        x, y = node
        g = g_score[node]
        for dx, dy in _DIRS4:
            nxt = (x + dx, y + dy)
            if nxt in closed:
                continue
            if not grid.in_bounds(*nxt) or grid.at(*nxt) not in ok:
                continue
            new_g = g + 1
            if new_g < g_score.get(nxt, 1 << 30):
                g_score[nxt] = new_g
                came_from[nxt] = node
                h = abs(gx - nxt[0]) + abs(gy - nxt[1])
                heapq.heappush(open_set, (new_g + h, next(tie), nxt))

    return None


def request_path(grid: TileGrid, acceptable: Iterable[int],
                 start: Cell, goal: Cell, callback: PathCallback) -> None:
    """Compute a path and hand it to *callback* (exactly once)."""
    callback(find_path(grid, acceptable, start, goal))


# ── Request queue ────────────────────────────────────────────────────

class PathFinder:
    """Grid-bound path service stored as a world resource.

        finder = PathFinder(grid)
        finder.find_path((1, 1), (5, 3), on_done)
        finder.calculate()          # no-op unless deferred

    With ``deferred=True`` requests wait in the queue until the next
    ``calculate()``; the tick pipeline calls it once per frame.
    """

    def __init__(self, grid: TileGrid | None = None,
                 acceptable: Iterable[int] = WALKABLE_TILES,
                 deferred: bool | None = None):
        self.grid = grid
        self.acceptable = frozenset(acceptable)
        if deferred is None:
            deferred = bool(_tun("pathfinding", "deferred", False))
        self.deferred = deferred
        self._queue: list[tuple[Cell, Cell, PathCallback]] = []
        self.solved = 0
        self.failed = 0

    def set_grid(self, grid: TileGrid) -> None:
        """Swap the level; requests still queued for the old one are dropped."""
        self.grid = grid
        self._queue.clear()

    def set_acceptable_tiles(self, acceptable: Iterable[int]) -> None:
        self.acceptable = frozenset(acceptable)

    def find_path(self, start: Cell, goal: Cell,
                  callback: PathCallback) -> None:
        self._queue.append((start, goal, callback))
        if not self.deferred:
            self.calculate()

    def calculate(self) -> int:
        """Answer every queued request.  Returns how many were answered."""
        if self.grid is None:
            return 0
        batch = self._queue[:]
        self._queue.clear()
        for start, goal, callback in batch:
            path = find_path(self.grid, self.acceptable, start, goal)
            if path is None:
                self.failed += 1
            else:
                self.solved += 1
            callback(path)
        return len(batch)

    @property
    def pending(self) -> int:
        return len(self._queue)

    def __repr__(self) -> str:
        return (f"PathFinder(pending={len(self._queue)}, "
                f"solved={self.solved}, failed={self.failed})")


def issue_request(finder: PathFinder, follow, start: Cell, goal: Cell,
                  on_done: PathCallback) -> int:
    """Request a path for an actor's ``PathFollow``, dropping stale answers.

    Bumps ``follow.seq``, marks the request pending, and forwards the
    answer to *on_done* only if no newer request or ``clear()`` has
    happened in between.  Returns the request's sequence number.
    """
    follow.seq += 1
    seq = follow.seq
    follow.pending = True

    def _deliver(path):
        if follow.seq != seq:
            return
        follow.pending = False
        on_done(path)

    finder.find_path(start, goal, _deliver)
    return seq
