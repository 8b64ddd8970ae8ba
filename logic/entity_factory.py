"""logic/entity_factory.py — Kind-driven entity spawning.

Every entity in the game is one of three tagged variants, recorded in
its ``Identity.kind``:

    player   Position, Velocity, Facing, PathFollow, Player
    guard    Position, Velocity, Facing, PathFollow, Guard, VisionCone
    gem      Position, Collectible

``spawn(world, kind, **params)`` looks the kind up in ``_BUILDERS`` and
returns the new entity id.  Builders read difficulty and tuning so the
callers only pass what varies per entity (cell, angle, velocity …).

    pid = spawn(world, "player", cell=(3, 4))
    gid = spawn(world, "guard", cell=(12, 7))
"""

from __future__ import annotations
import math
import random
from typing import Any, Callable

from core.ecs import World
from core.grid import TileGrid
from core.constants import TILE_SIZE
from core.tuning import get as _tun
from components import (
    Position, Velocity, Facing, PathFollow, Identity,
    Player, Guard, VisionCone, Collectible, Difficulty,
)

_BUILDERS: dict[str, Callable[..., None]] = {}


def builder(kind: str):
    """Register a builder ``fn(world, eid, **params)`` for *kind*."""
    def deco(fn):
        _BUILDERS[kind] = fn
        return fn
    return deco


def spawn(world: World, kind: str, **params: Any) -> int:
    """Create an entity of *kind*.  Unknown kinds raise ``KeyError``."""
    try:
        build = _BUILDERS[kind]
    except KeyError:
        raise KeyError(f"unknown entity kind {kind!r} "
                       f"(known: {', '.join(sorted(_BUILDERS))})") from None
    eid = world.spawn()
    world.add(eid, Identity(kind=kind, name=params.pop("name", f"{kind}_{eid}")))
    build(world, eid, **params)
    return eid


def _cell_center(world: World, cell) -> tuple[float, float]:
    grid = world.res(TileGrid)
    if grid is not None:
        return grid.cell_center(*cell)
    return cell[0] * TILE_SIZE + TILE_SIZE / 2, cell[1] * TILE_SIZE + TILE_SIZE / 2


# ── Builders ─────────────────────────────────────────────────────────

@builder("player")
def _build_player(world: World, eid: int, cell=(1, 1), x=None, y=None,
                  angle: float = 0.0) -> None:
    if x is None or y is None:
        x, y = _cell_center(world, cell)
    world.add(eid, Position(x, y))
    world.add(eid, Velocity())
    world.add(eid, Facing(angle))
    world.add(eid, PathFollow())
    world.add(eid, Player(
        max_speed=_tun("player", "max_speed", 220.0),
        lunge_speed=_tun("player", "lunge_speed", 550.0),
    ))


@builder("guard")
def _build_guard(world: World, eid: int, cell=(1, 1), angle=None,
                 rng=None) -> None:
    rng = rng or random
    diff = world.res(Difficulty) or Difficulty()
    x, y = _cell_center(world, cell)
    if angle is None:
        angle = rng.random() * math.tau
    world.add(eid, Position(x, y))
    world.add(eid, Velocity())
    world.add(eid, Facing(angle))
    world.add(eid, PathFollow())
    world.add(eid, Guard(
        cell=tuple(cell),
        speed=_tun("guard", "base_speed", 80.0) * diff.speed_mult,
        idle_duration=(_tun("guard", "idle_min", 2.0)
                       + rng.random() * _tun("guard", "idle_jitter", 1.0)),
    ))
    world.add(eid, VisionCone(
        fov=_tun("guard.vision", "fov", math.pi / 2),
        view_distance=(_tun("guard.vision", "base_view_distance", 180.0)
                       * diff.vision_mult),
        ray_count=int(_tun("guard.vision", "ray_count", 25)),
    ))


@builder("gem")
def _build_gem(world: World, eid: int, x: float = 0.0, y: float = 0.0,
               vx: float = 0.0, vy: float = 0.0, value=None) -> None:
    world.add(eid, Position(x, y))
    world.add(eid, Collectible(
        value=int(value if value is not None else _tun("gems", "value", 15)),
        vx=vx, vy=vy,
    ))


def kinds() -> list[str]:
    return sorted(_BUILDERS)
