"""test_navigation.py — Level generation and A* pathfinding tests.

Covers the generator invariants (wall border, single floor component,
sparse-map acceptance), A* optimality against brute-force BFS, the
null-result cases, the callback contract and stale-result dropping.

Run:  python test_navigation.py      (or: pytest test_navigation.py)
"""
from __future__ import annotations
import sys, random, traceback
from collections import deque

# ── Bootstrap ────────────────────────────────────────────────────────
from core.tuning import load as _load_tuning
_load_tuning()

from core.constants import TILE_FLOOR, TILE_WALL, WALKABLE_TILES
from core.grid import TileGrid
from components import PathFollow
from logic.mapgen import (
    generate_grid, find_valid_spawn, can_place, pick_template, CRATE_TEMPLATES,
)
from logic.pathfinding import find_path, request_path, PathFinder, issue_request


# ── Test harness ─────────────────────────────────────────────────────

_passed = 0
_failed = 0


def ok(label: str):
    global _passed
    _passed += 1
    print(f"  [PASS] {label}")


def fail(label: str, detail: str = ""):
    global _failed
    _failed += 1
    msg = f"  [FAIL] {label}"
    if detail:
        msg += f" — {detail}"
    print(msg)


def check(cond, label: str, detail: str = ""):
    if cond:
        ok(label)
    else:
        fail(label, detail)
        raise AssertionError(f"{label} {detail}".strip())


# ── Fixtures ─────────────────────────────────────────────────────────

MAZE = TileGrid.from_rows([
    "##########",
    "#....#...#",
    "#.##.#.#.#",
    "#.#..#.#.#",
    "#.#.##.#.#",
    "#...#..#.#",
    "###...##.#",
    "#...#....#",
    "##########",
])

SPLIT = TileGrid.from_rows([
    "#######",
    "#..#..#",
    "#..#..#",
    "#######",
])


def _bfs(grid: TileGrid, start, goal):
    """Brute-force 4-connected distance, or None."""
    if not grid.is_floor(*goal):
        return None
    seen = {start: 0}
    q = deque([start])
    while q:
        c = q.popleft()
        if c == goal:
            return seen[c]
        x, y = c
        for n in ((x + 1, y), (x - 1, y), (x, y + 1), (x, y - 1)):
            if n not in seen and grid.is_floor(*n):
                seen[n] = seen[c] + 1
                q.append(n)
    return None


def _valid_path(grid: TileGrid, start, goal, path) -> bool:
    prev = start
    for cell in path:
        if abs(cell[0] - prev[0]) + abs(cell[1] - prev[1]) != 1:
            return False
        if not grid.is_floor(*cell):
            return False
        prev = cell
    return (path[-1] == goal if path else start == goal) and start not in path


# ═══════════════════════════════════════════════════════════════════════
#  1. LEVEL GENERATION
# ═══════════════════════════════════════════════════════════════════════

def test_generated_grids_are_bordered_and_connected():
    print("\n── Generated grids: wall border + single floor component ──")
    for seed in range(25):
        grid = generate_grid(20, 12, rng=random.Random(seed))
        w, h = grid.width, grid.height
        border = ([(x, 0) for x in range(w)] + [(x, h - 1) for x in range(w)]
                  + [(0, y) for y in range(h)] + [(w - 1, y) for y in range(h)])
        assert all(grid.at(x, y) == TILE_WALL for x, y in border), f"seed {seed} border"
        start = next(grid.floor_cells())
        assert len(grid.flood_fill(*start)) == grid.floor_count(), f"seed {seed} split"
    ok("25 seeds: border all wall, one 4-connected floor component")


def test_generated_grid_has_crates():
    grid = generate_grid(20, 12, rng=random.Random(7))
    interior = 18 * 10
    walls_inside = interior - grid.floor_count()
    check(0 < walls_inside < interior,
          "Crates placed but floor remains", f"{walls_inside}/{interior}")


def test_sparse_map_is_accepted():
    print("\n── Fill target out of reach: sparse map accepted ──")
    grid = generate_grid(9, 8, fill_ratio=0.95, rng=random.Random(1))
    start = next(grid.floor_cells())
    check(len(grid.flood_fill(*start)) == grid.floor_count(),
          "Under-filled map still single component")
    check(all(grid.is_wall(x, 0) and grid.is_wall(x, grid.height - 1)
              for x in range(grid.width)), "Under-filled map keeps wall border")


def test_too_small_grid_rejected():
    try:
        generate_grid(2, 5)
    except ValueError:
        ok("2×5 grid raises ValueError")
    else:
        fail("2×5 grid raises ValueError")
        raise AssertionError("no ValueError")


def test_can_place_rules():
    print("\n── Crate placement rules ──")
    tiles = TileGrid.open_room(10, 10).tiles
    check(not can_place(tiles, ((0, 0),), 1, 1), "Edge margin rejects (1, 1)")
    check(can_place(tiles, ((0, 0),), 2, 2), "Interior 1×1 at (2, 2) accepted")
    check(not can_place(tiles, ((0, 0), (1, 0)), 7, 4),
          "2×1 running into the margin rejected")

    tiles[4][3] = TILE_WALL
    tiles[4][5] = TILE_WALL
    tiles[3][4] = TILE_WALL
    check(not can_place(tiles, ((0, 0),), 4, 4),
          "Cell touching three walls rejected (over-cramping)")
    check(not can_place(tiles, ((0, 0),), 3, 4), "Occupied cell rejected")


def test_template_pick_is_weighted():
    class _Zero:
        def random(self):
            return 0.0
    check(pick_template(_Zero()) is CRATE_TEMPLATES[0], "r=0 picks first template")
    check(sum(t.weight for t in CRATE_TEMPLATES) == 28,
          "Catalog weights sum to 28")


def test_find_valid_spawn_is_floor():
    grid = generate_grid(20, 12, rng=random.Random(3))
    rng = random.Random(3)
    cells = [find_valid_spawn(grid, rng) for _ in range(50)]
    check(all(grid.is_floor(*c) for c in cells), "50 spawns all on floor")


# ═══════════════════════════════════════════════════════════════════════
#  2. A* PATHFINDING
# ═══════════════════════════════════════════════════════════════════════

def test_open_room_diagonal_is_manhattan():
    print("\n── 10×10 open room ──")
    grid = TileGrid.open_room(10, 10)
    path = find_path(grid, WALKABLE_TILES, (1, 1), (8, 8))
    check(path is not None and len(path) == 14, "(1,1)→(8,8) has 14 steps",
          f"got {path and len(path)}")
    check(_valid_path(grid, (1, 1), (8, 8), path),
          "Path excludes start, includes goal, unit steps")


def test_astar_matches_bfs_on_maze():
    print("\n── A* vs BFS on a fixed maze ──")
    floors = list(MAZE.floor_cells())
    for a in floors:
        for b in floors:
            path = find_path(MAZE, WALKABLE_TILES, a, b)
            dist = _bfs(MAZE, a, b)
            assert path is not None and len(path) == dist, f"{a}->{b}"
            assert _valid_path(MAZE, a, b, path), f"{a}->{b} invalid"
    ok(f"All {len(floors) ** 2} floor pairs optimal")


def test_astar_matches_bfs_on_generated():
    grid = generate_grid(20, 12, rng=random.Random(11))
    rng = random.Random(11)
    floors = list(grid.floor_cells())
    for _ in range(60):
        a, b = rng.choice(floors), rng.choice(floors)
        path = find_path(grid, WALKABLE_TILES, a, b)
        assert path is not None and len(path) == _bfs(grid, a, b), f"{a}->{b}"
    ok("60 random pairs on a generated level optimal")


def test_null_results():
    print("\n── Null results ──")
    grid = TileGrid.open_room(10, 10)
    check(find_path(grid, WALKABLE_TILES, (1, 1), (0, 0)) is None, "Wall goal → None")
    check(find_path(grid, WALKABLE_TILES, (-1, 1), (3, 3)) is None, "OOB start → None")
    check(find_path(grid, WALKABLE_TILES, (1, 1), (10, 3)) is None, "OOB goal → None")
    check(find_path(SPLIT, WALKABLE_TILES, (1, 1), (5, 2)) is None,
          "Unreachable goal → None")
    check(find_path(grid, WALKABLE_TILES, (4, 4), (4, 4)) == [],
          "Start == goal → empty path")


def test_start_cell_not_required_walkable():
    grid = TileGrid.open_room(6, 6)
    path = find_path(grid, WALKABLE_TILES, (0, 2), (3, 2))
    check(path == [(1, 2), (2, 2), (3, 2)], "Path out of a wall start cell")


def test_repeated_requests_stable():
    a, b = (1, 1), (8, 7)
    lengths = {len(find_path(MAZE, WALKABLE_TILES, a, b)) for _ in range(10)}
    check(len(lengths) == 1, "Repeated queries give identical length")


def test_request_path_callback_once():
    print("\n── Callback contract ──")
    got = []
    request_path(MAZE, WALKABLE_TILES, (1, 1), (8, 7), got.append)
    check(len(got) == 1 and got[0][-1] == (8, 7), "Callback fired once with path")
    got.clear()
    request_path(MAZE, WALKABLE_TILES, (1, 1), (0, 0), got.append)
    check(got == [None], "Callback fired once with None")


def test_deferred_finder_waits_for_calculate():
    finder = PathFinder(MAZE, deferred=True)
    got = []
    finder.find_path((1, 1), (3, 1), got.append)
    check(got == [] and finder.pending == 1, "Deferred request queued")
    check(finder.calculate() == 1 and got == [[(2, 1), (3, 1)]],
          "calculate() answers the queue")
    check(finder.solved == 1 and finder.failed == 0, "Counters updated")


def test_set_grid_drops_queue():
    finder = PathFinder(MAZE, deferred=True)
    got = []
    finder.find_path((1, 1), (3, 1), got.append)
    finder.set_grid(TileGrid.open_room(5, 5))
    finder.calculate()
    check(got == [], "Requests for the old level are dropped")


def test_stale_results_dropped():
    print("\n── Stale results ──")
    finder = PathFinder(MAZE, deferred=True)
    follow = PathFollow()
    got = []
    issue_request(finder, follow, (1, 1), (3, 1), lambda p: got.append(("old", p)))
    seq = issue_request(finder, follow, (1, 1), (1, 3), lambda p: got.append(("new", p)))
    check(follow.pending, "Request marked pending")
    finder.calculate()
    check([tag for tag, _p in got] == ["new"], "Only the newest answer delivered")
    check(follow.seq == seq and not follow.pending, "Pending cleared by the answer")

    got.clear()
    issue_request(finder, follow, (1, 1), (3, 1), got.append)
    follow.clear()
    finder.calculate()
    check(got == [], "clear() discards the in-flight answer")


def test_synchronous_finder_answers_inline():
    finder = PathFinder(MAZE, deferred=False)
    follow = PathFollow()
    got = []
    issue_request(finder, follow, (1, 1), (3, 1), got.append)
    check(got == [[(2, 1), (3, 1)]] and not follow.pending,
          "Inline answer delivered before issue_request returns")


def test_acceptable_tiles_can_be_widened():
    finder = PathFinder(TileGrid.open_room(6, 6))
    got = []
    finder.find_path((1, 1), (0, 1), got.append)
    check(got == [None], "Wall goal unreachable by default")
    finder.set_acceptable_tiles({TILE_FLOOR, TILE_WALL})
    got.clear()
    finder.find_path((1, 1), (0, 1), got.append)
    check(got == [[(0, 1)]], "Walls accepted → wall goal reachable")


# ═══════════════════════════════════════════════════════════════════════
#  MAIN
# ═══════════════════════════════════════════════════════════════════════

if __name__ == "__main__":
    tests = [v for k, v in list(globals().items())
             if k.startswith("test_") and callable(v)]
    for fn in tests:
        try:
            fn()
        except Exception:
            _failed += 1
            print(f"\n  [CRASH] {fn.__name__} — unhandled exception:")
            traceback.print_exc()

    total = _passed + _failed
    print(f"\n{'=' * 60}")
    print(f"  Navigation Tests: {_passed} passed, {_failed} failed  "
          f"(total {total})")
    print(f"{'=' * 60}")
    sys.exit(1 if _failed else 0)
