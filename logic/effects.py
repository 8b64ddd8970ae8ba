"""logic/effects.py — Loot gems spilled by takedowns.

Gems are the one effect the simulation owns, because collecting them
feeds the score.  Each gem bursts outward from the kill site with
friction for ``burst_duration`` seconds, then homes in on the player
and is collected inside ``collect_radius``.

    spawn_gem_burst(world, x, y, count)   # after a takedown
    gem_system(world, dt)                 # every tick → score gained
"""

from __future__ import annotations
import math
import random
from typing import TYPE_CHECKING

from components import Position, Collectible, Player, EncounterState
from core.events import EventBus, GemCollected
from core.tuning import get as _tun
from logic.entity_factory import spawn

if TYPE_CHECKING:
    from core.ecs import World


def spawn_gem_burst(world: "World", x: float, y: float, count: int,
                    rng=None) -> list[int]:
    rng = rng or random
    smin = _tun("gems", "burst_speed_min", 100.0)
    jitter = _tun("gems", "burst_speed_jitter", 100.0)
    out = []
    for _ in range(count):
        a = rng.random() * math.tau
        s = smin + rng.random() * jitter
        out.append(spawn(world, "gem", x=x, y=y,
                         vx=math.cos(a) * s, vy=math.sin(a) * s))
    return out


def gem_system(world: "World", dt: float) -> int:
    """Move gems and collect the ones that reach the player.

    Returns the score gained this tick (already added to
    ``EncounterState.score``).
    """
    player = world.query_one(Player, Position)
    burst_time = _tun("gems", "burst_duration", 0.3)
    friction = _tun("gems", "friction", 0.95)
    seek_speed = _tun("gems", "seek_speed", 400.0)
    radius = _tun("gems", "collect_radius", 20.0)
    bus = world.res(EventBus)
    gained = 0

    for eid, pos, gem in world.query(Position, Collectible):
        if gem.phase == "burst":
            gem.burst_time += dt
            pos.x += gem.vx * dt
            pos.y += gem.vy * dt
            gem.vx *= friction
            gem.vy *= friction
            if gem.burst_time >= burst_time:
                gem.phase = "seek"
            continue

        if player is None:
            continue
        ppos = player[2]
        dx = ppos.x - pos.x
        dy = ppos.y - pos.y
        dist = math.hypot(dx, dy)
        if dist < radius:
            gained += gem.value
            world.kill(eid)
            if bus is not None:
                bus.emit(GemCollected(eid=eid, value=gem.value))
            continue
        step = min(seek_speed * dt, dist)
        pos.x += dx / dist * step
        pos.y += dy / dist * step

    if gained:
        state = world.res(EncounterState)
        if state is not None:
            state.score += gained
    return gained


def clear_gems(world: "World") -> int:
    n = 0
    for eid, _gem in list(world.all_of(Collectible)):
        world.kill(eid)
        n += 1
    return n
