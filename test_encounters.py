"""test_encounters.py — Encounter coordinator, level flow and shell tests.

Drives the full ``tick_systems`` pipeline for detection, takedowns and
level clears, then covers the pieces around the simulation: difficulty
scaling, click handling, the progress store, NBT level export, the
input layer, the event bus and tuning overrides.

Run:  python test_encounters.py      (or: pytest test_encounters.py)
"""
from __future__ import annotations
import sys, math, random, tempfile, traceback
from pathlib import Path

# ── Bootstrap ────────────────────────────────────────────────────────
from core.tuning import load as _load_tuning
_load_tuning()

import nbtlib
import pygame
from nbtlib import tag

from core import tuning
from core.events import EventBus
from core.grid import TileGrid
from core.nbt import save_level_nbt, load_level_nbt
from core.save import HighLevelStore
from components import (
    Position, Facing, PathFollow, Player, PlayerState, Guard, GuardState,
    VisionCone, Collectible, EncounterState, GameClock,
)
from logic.effects import gem_system
from logic.encounters import (
    begin_level_transition, execute_takedown, handle_click, trigger_game_over,
    update_detection, update_transition,
)
from logic.entity_factory import spawn, kinds
from logic.input_manager import InputManager, InputContext
from logic.level import difficulty_for_level, generate_level, setup_session
from logic.tick import tick_systems

DT = 1.0 / 60.0


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


# ── Arena builders ───────────────────────────────────────────────────

def _arena(grid: TileGrid, player_cell, guards=(), store=None):
    """Session on *grid* with exactly the listed ``(cell, angle)`` guards."""
    world = setup_session(level=1, rng=random.Random(0), grid=grid,
                          spawn_cell=player_cell, store=store,
                          deferred_paths=False)
    for eid, _g in list(world.all_of(Guard)):
        world.kill(eid)
    world.purge()
    gids = [spawn(world, "guard", cell=c, angle=a, rng=random.Random(1))
            for c, a in guards]
    world.res(EventBus).clear()
    pid = world.query_one(Player)[0]
    return world, pid, gids


def _capture(world, *names) -> dict[str, list]:
    """Subscribe recorders for *names*; events land in the returned dict."""
    got: dict[str, list] = {n: [] for n in names}
    bus = world.res(EventBus)
    for n in names:
        bus.subscribe(n, got[n].append)
    return got


def _connected(grid: TileGrid) -> bool:
    start = next(grid.floor_cells())
    return len(grid.flood_fill(*start)) == grid.floor_count()


# ═══════════════════════════════════════════════════════════════════════
#  1. DIFFICULTY
# ═══════════════════════════════════════════════════════════════════════

def test_difficulty_scaling():
    print("\n── Difficulty ──")
    d1 = difficulty_for_level(1)
    check((d1.max_guards, d1.speed_mult, d1.vision_mult, d1.max_detection_time)
          == (4, 1.0, 1.0, 1.5), "Level 1 baseline")
    d5 = difficulty_for_level(5)
    check(d5.max_guards == 6, "Two more guards by level 5", f"{d5.max_guards}")
    check(abs(d5.speed_mult - 1.2) < 1e-9 and abs(d5.vision_mult - 1.08) < 1e-9,
          "Speed / vision grow per level")
    check(abs(d5.max_detection_time - 1.1) < 1e-9, "Detection allowance shrinks")
    d30 = difficulty_for_level(30)
    check(d30.speed_mult == 2.0 and d30.vision_mult == 1.5
          and d30.max_detection_time == 0.8, "Caps hold at level 30")


def test_guard_stats_follow_difficulty():
    world, _pid, _ = _arena(TileGrid.open_room(12, 8), (1, 1))
    world.set_res(difficulty_for_level(5))
    gid = spawn(world, "guard", cell=(6, 4), angle=0.0)
    check(abs(world.get(gid, Guard).speed - 96.0) < 1e-9, "Guard speed scaled")
    check(abs(world.get(gid, VisionCone).view_distance - 194.4) < 1e-9,
          "View distance scaled")
    check(kinds() == ["gem", "guard", "player"], "Three entity kinds")
    try:
        spawn(world, "turret")
    except KeyError:
        ok("Unknown kind raises KeyError")
    else:
        fail("Unknown kind raises KeyError")
        raise AssertionError("no KeyError")


# ═══════════════════════════════════════════════════════════════════════
#  2. DETECTION TIMER
# ═══════════════════════════════════════════════════════════════════════

def test_detection_accumulates_to_game_over():
    print("\n── Detection timer ──")
    world, pid, (gid,) = _arena(TileGrid.open_room(12, 8), (4, 2),
                                [((2, 2), 0.0)])
    got = _capture(world, "GameOver")
    state = world.res(EncounterState)
    for _ in range(5):
        tick_systems(world, 0.25, rng=random.Random(2))
    check(not state.game_over and abs(state.detection_time - 1.25) < 1e-9,
          "1.25 s seen — still alive")
    tick_systems(world, 0.25, rng=random.Random(2))
    check(state.game_over, "1.5 s seen — game over")
    check(len(got["GameOver"]) == 1, "One GameOver event")
    check(world.get(pid, Player).state is PlayerState.DEAD, "Player is DEAD")

    clock = world.res(GameClock).time
    check(tick_systems(world, 0.25) is None, "Game-over frames skip the simulation")
    check(state.game_over_timer == 0.25 and world.res(GameClock).time > clock,
          "Game-over timer runs")


def test_detection_decays_not_resets():
    world, pid, (gid,) = _arena(TileGrid.open_room(12, 8), (4, 2),
                                [((2, 2), 0.0)])
    state = world.res(EncounterState)
    tick_systems(world, 0.25)
    tick_systems(world, 0.25)
    check(abs(state.detection_time - 0.5) < 1e-9, "0.5 s accumulated")

    ppos = world.get(pid, Position)
    ppos.x, ppos.y = 700.0, 160.0
    tick_systems(world, 0.25)
    check(abs(state.detection_time - 0.375) < 1e-9,
          "Out of sight: decays at half rate", f"{state.detection_time}")
    check(world.get(gid, Guard).state is GuardState.IDLE, "Guard gave up")


def test_update_detection_floor():
    world, _pid, _ = _arena(TileGrid.open_room(12, 8), (4, 2))
    detected, delta = update_detection(world, 1.0)
    check(not detected and delta == 0.0, "Empty timer never goes negative")


# ═══════════════════════════════════════════════════════════════════════
#  3. TAKEDOWNS
# ═══════════════════════════════════════════════════════════════════════

def _takedown_arena():
    return _arena(TileGrid.open_room(20, 12), (5, 4), [
        ((5, 5), 0.0), ((7, 5), 0.0), ((15, 5), 0.0), ((15, 9), 0.0)])


def test_takedown_from_behind():
    print("\n── Takedown ──")
    world, pid, (a, b, c, d) = _takedown_arena()
    got = _capture(world, "GuardKilled", "SoundPulse", "GemBurst")
    ppos = world.get(pid, Position)
    ppos.x, ppos.y = 352.0, 330.0            # 22 u above guard a, outside its cone
    state = world.res(EncounterState)

    result = tick_systems(world, DT, rng=random.Random(3))
    check(result is not None and result.killed == [a], "Guard a taken down",
          f"{result and result.killed}")
    check(world.count(Guard) == 3, "Roster shrank by one")
    check(state.score == 45, "Score +45", f"{state.score}")
    check(len(got["GuardKilled"]) == 1, "One GuardKilled")
    check(len(got["SoundPulse"]) == 1 and got["SoundPulse"][0].radius == 200.0,
          "One 200 u SoundPulse at the body")
    gems = world.count(Collectible)
    check(3 <= gems <= 5 and got["GemBurst"][0].count == gems, "3–5 gems spilled",
          f"{gems}")
    check(state.hit_stop == 0.05, "Hit-stop armed")

    check(world.get(b, Guard).state is GuardState.INVESTIGATE,
          "Neighbour 128 u away investigates the noise")
    check(world.get(c, Guard).state is not GuardState.INVESTIGATE
          and world.get(d, Guard).state is not GuardState.INVESTIGATE,
          "Distant guards do not hear it")

    clock = world.res(GameClock).time
    check(tick_systems(world, DT) is None and 0.0 < state.hit_stop < 0.05,
          "Next frame frozen by hit-stop")
    check(world.res(GameClock).time == clock, "Clock paused during hit-stop")


def test_detecting_guard_is_immune():
    world, pid, (a, *_rest) = _takedown_arena()
    world.get(a, Facing).angle = -math.pi / 2
    ppos = world.get(pid, Position)
    ppos.x, ppos.y = 352.0, 330.0            # right in front of guard a
    result = tick_systems(world, DT, rng=random.Random(3))
    check(result.killed == [] and world.count(Guard) == 4,
          "A guard that sees the player cannot be taken down")
    check(result.detected and world.get(a, Guard).state is GuardState.ALERT,
          "…it raises the alarm instead")


def test_gems_fly_to_player():
    world, pid, (a, *_rest) = _takedown_arena()
    state = world.res(EncounterState)
    execute_takedown(world, a, random.Random(4))
    gems = world.count(Collectible)
    for _ in range(120):
        gem_system(world, DT)
        world.purge()
    check(world.count(Collectible) == 0, "All gems collected within 2 s")
    check(state.score == 45 + 15 * gems, "Each gem worth 15", f"{state.score}")


# ═══════════════════════════════════════════════════════════════════════
#  4. LEVEL CLEAR
# ═══════════════════════════════════════════════════════════════════════

def _clear_level(store):
    world, pid, (gid,) = _arena(TileGrid.open_room(20, 12), (2, 2),
                                [((2, 5), 0.0)], store=store)
    got = _capture(world, "LevelCleared", "LevelStarted")
    old_grid = world.res(TileGrid)
    ppos = world.get(pid, Position)
    ppos.x, ppos.y = 140.0, 352.0            # just behind the guard
    rng = random.Random(5)
    for _ in range(12):
        tick_systems(world, 0.5, rng=rng)
        if world.count(Guard) > 0:
            break
    return world, got, old_grid


def test_level_clear_starts_next_level_once():
    print("\n── Level clear ──")
    store = HighLevelStore()
    world, got, old_grid = _clear_level(store)
    state = world.res(EncounterState)
    grid = world.res(TileGrid)
    check(len(got["LevelCleared"]) == 1, "Exactly one LevelCleared",
          f"{len(got['LevelCleared'])}")
    check(got["LevelCleared"][0].new_record, "Level 2 is a new record")
    check(state.level == 2 and not state.transitioning, "Now on level 2")
    check([e.level for e in got["LevelStarted"]] == [2], "LevelStarted(2)")
    check(grid is not old_grid and _connected(grid), "Fresh connected grid")
    check(world.count(Guard) > 0, "New roster spawned")
    check(store.get() == 2, "Progress stored")


def test_next_level_resets_player_and_roster():
    world, pid, (gid,) = _arena(TileGrid.open_room(20, 12), (2, 2),
                                [((9, 6), 0.0)])
    state = world.res(EncounterState)
    world.kill(gid)
    world.purge()
    state.detection_time = 0.9
    check(begin_level_transition(world), "Transition begins")
    check(not begin_level_transition(world), "Second begin refused")
    check(update_transition(world, 2.1, random.Random(8)), "Next level started")

    grid = world.res(TileGrid)
    ppos = world.get(pid, Position)
    pcell = grid.cell_at(ppos.x, ppos.y)
    check(grid.is_floor(*pcell), "Player respawned on floor", f"{pcell}")
    check(state.detection_time == 0.0, "Detection timer reset",
          f"{state.detection_time}")
    check(world.count(Guard) > 0, "Guards spawned")
    for eid, gpos, _g in world.query(Position, Guard):
        gx, gy = grid.cell_at(gpos.x, gpos.y)
        d = abs(gx - pcell[0]) + abs(gy - pcell[1])
        assert d >= 8, f"guard {eid} only {d} cells from the player"
    ok("Every guard at least 8 cells from the player")

    for seed in range(10):
        g, cell = generate_level(3, random.Random(seed))
        assert g.is_floor(*cell), f"seed {seed}: spawn {cell} not floor"
    ok("generate_level spawns on floor")


def test_level_clear_keeps_higher_record():
    store = HighLevelStore()
    store.set(5)
    world, got, _old = _clear_level(store)
    check(not got["LevelCleared"][0].new_record, "Level 2 is not a record")
    check(store.get() == 5, "Higher record untouched")


# ═══════════════════════════════════════════════════════════════════════
#  5. CLICKS
# ═══════════════════════════════════════════════════════════════════════

def test_click_intents():
    print("\n── Clicks ──")
    world, pid, (near, far) = _arena(TileGrid.open_room(12, 8), (2, 2),
                                     [((4, 2), math.pi), ((8, 5), math.pi)])
    player = world.get(pid, Player)
    bus = world.res(EventBus)
    follow = world.get(pid, PathFollow)

    check(handle_click(world, 10.0, 10.0) == "ignored", "Wall click ignored")
    check(not bus.pending("TargetMarked"), "…with no marker")

    check(handle_click(world, 288.0, 352.0) == "move", "Floor click → move")
    check(player.state is PlayerState.MOVING and follow.path[-1] == (4, 5),
          "Path to the clicked cell")
    check(bus.pending("TargetMarked")[-1].attack is False, "Move marker")

    check(handle_click(world, 544.0, 352.0) == "move",
          "Far guard click → walk toward it")
    check(follow.path[-1] == (8, 5), "Path ends at the guard's cell")

    check(handle_click(world, 290.0, 170.0) == "lunge", "Near guard click → lunge")
    check(player.state is PlayerState.ASSASSINATING and player.target == near,
          "Locked onto the clicked guard")
    check(bus.pending("TargetMarked")[-1].attack is True, "Attack marker")


def test_click_after_game_over_restarts():
    world, pid, _ = _arena(TileGrid.open_room(12, 8), (2, 2))
    state = world.res(EncounterState)
    state.score = 300
    trigger_game_over(world)
    check(handle_click(world, 100.0, 100.0, random.Random(6)) == "ignored",
          "Click right after game over ignored")
    state.game_over_timer = 1.5
    check(handle_click(world, 100.0, 100.0, random.Random(6)) == "restart",
          "Click after the delay restarts")
    check(not state.game_over and state.level == 1 and state.score == 0,
          "Fresh session at level 1")
    check(world.get(pid, Player).state is PlayerState.IDLE, "Player revived")


# ═══════════════════════════════════════════════════════════════════════
#  6. PERSISTENCE
# ═══════════════════════════════════════════════════════════════════════

def test_high_level_store_file():
    print("\n── Progress store ──")
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "progress.json"
        store = HighLevelStore(path)
        check(store.get() == 1, "Missing file → level 1")
        check(store.record(3) and path.exists(), "Record written")
        check(not store.record(2), "Lower level is not a record")
        check(HighLevelStore(path).get() == 3, "Record survives reload")

        path.write_text("{not json")
        check(HighLevelStore(path).get() == 1, "Corrupt file → level 1")

        store = HighLevelStore(path)
        store.set(4)
        store.clear()
        check(store.get() == 1 and not path.exists(), "clear() forgets progress")


def test_level_nbt_round_trip():
    with tempfile.TemporaryDirectory() as tmp:
        grid = TileGrid.from_rows(["#####", "#..##", "#...#", "#####"])
        path = save_level_nbt(grid, 7, (1, 2), Path(tmp))
        check(path.name == "level_7.nbt", "File named after the level")
        snap = load_level_nbt(path)
        check(snap["level"] == 7 and snap["spawn"] == (1, 2), "Header restored")
        check(snap["grid"].tiles == grid.tiles, "Tiles restored")

        bad = Path(tmp) / "bad.nbt"
        nbtlib.File(nbtlib.Compound({
            "level": tag.Int(1), "width": tag.Int(3), "height": tag.Int(3),
            "tiles": tag.ByteArray([0, 0, 0, 0]),
        })).save(bad)
        try:
            load_level_nbt(bad)
        except ValueError:
            ok("Tile count mismatch raises ValueError")
        else:
            fail("Tile count mismatch raises ValueError")
            raise AssertionError("no ValueError")


# ═══════════════════════════════════════════════════════════════════════
#  7. INPUT / BUS / TUNING
# ═══════════════════════════════════════════════════════════════════════

def _key(kind, key, mod=0):
    return pygame.event.Event(kind, key=key, mod=mod)


def test_input_manager():
    print("\n── Input ──")
    im = InputManager()
    im.feed(_key(pygame.KEYDOWN, pygame.K_w))
    im.feed(_key(pygame.KEYDOWN, pygame.K_d))
    dx, dy = im.movement()
    check(abs(dx - math.sqrt(0.5)) < 1e-9 and abs(dy + math.sqrt(0.5)) < 1e-9,
          "Diagonal normalised")
    im.feed(_key(pygame.KEYUP, pygame.K_w))
    check(im.movement() == (1.0, 0.0), "Released key stops counting")

    im.feed(pygame.event.Event(pygame.MOUSEBUTTONDOWN, button=1, pos=(10, 20)))
    im.feed(_key(pygame.KEYDOWN, pygame.K_F2))
    check(im.clicks() == [(10, 20)] and im.just("click_primary"), "Click collected")
    check(im.just("export_level"), "F2 → export_level")

    im.begin_frame()
    check(im.clicks() == [] and not im.just("export_level"), "Frame reset")
    check(im.held("move_right"), "Held keys survive the frame")

    im.feed(_key(pygame.KEYDOWN, pygame.K_r))
    check(not im.just("reset_progress"), "Plain R does nothing")
    im.feed(_key(pygame.KEYDOWN, pygame.K_r, pygame.KMOD_LSHIFT))
    check(im.just("reset_progress"), "Shift+R → reset_progress")

    im.context = InputContext.GAME_OVER
    check(im.movement() == (0.0, 0.0), "No steering on the game-over screen")


def test_event_bus_survives_bad_handler():
    bus = EventBus()
    seen = []

    def boom(_ev):
        raise RuntimeError("boom")

    bus.subscribe("SoundPulse", boom)
    bus.subscribe("SoundPulse", seen.append)
    from core.events import SoundPulse
    bus.emit(SoundPulse())
    check(bus.drain() == 1 and bus.errors == 1, "Handler error counted")
    check(len(seen) == 1, "Other handlers still run")


def test_tuning_override():
    try:
        tuning.override("guard", "base_speed", 160.0)
        world, _pid, (gid,) = _arena(TileGrid.open_room(12, 8), (1, 1),
                                     [((6, 4), 0.0)])
        check(world.get(gid, Guard).speed == 160.0, "Override reaches the factory")
        check(tuning.get("nope", "missing", 7) == 7, "Unknown key → default")
    finally:
        _load_tuning()


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
    print(f"  Encounter Tests: {_passed} passed, {_failed} failed  "
          f"(total {total})")
    print(f"{'=' * 60}")
    sys.exit(1 if _failed else 0)
