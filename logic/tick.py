"""logic/tick.py — System tick orchestration.

One call per frame runs the whole simulation in a fixed order:

    hit-stop freeze → clock → level transition countdown → game-over
    timer → deferred path answers → player → guards → gems →
    encounters → event drain → purge

Usage::

    from logic.tick import tick_systems
    result = tick_systems(world, dt, move=input_mgr.movement())
"""

from __future__ import annotations
from typing import TYPE_CHECKING

from components import GameClock, EncounterState
from core.events import EventBus
from logic.effects import gem_system
from logic.encounters import (
    EncounterResult, resolve_encounters, update_transition,
)
from logic.guards import tick_guards
from logic.movement import tick_player
from logic.pathfinding import PathFinder

if TYPE_CHECKING:
    from core.ecs import World


def tick_systems(world: "World", dt: float,
                 move: tuple[float, float] = (0.0, 0.0),
                 rng=None) -> EncounterResult | None:
    """Run all gameplay systems for one frame.

    Parameters
    ----------
    world : World
        Session world from ``logic.level.setup_session``.
    dt : float
        Seconds since the previous frame.
    move : (float, float)
        Normalised movement intent from the input layer.
    rng : random.Random | None
        Randomness for guard dwell / patrol / loot; ``random`` if None.

    Returns
    -------
    EncounterResult | None
        ``None`` on frames that were frozen (hit-stop) or spent in the
        game-over screen.
    """
    state = world.res(EncounterState)
    bus = world.res(EventBus)

    # Impact freeze after a takedown
    if state is not None and state.hit_stop > 0:
        state.hit_stop = max(0.0, state.hit_stop - dt)
        return None

    clock = world.res(GameClock)
    if clock:
        clock.time += dt

    update_transition(world, dt, rng)

    if state is not None and state.game_over:
        state.game_over_timer += dt
        if bus:
            bus.drain()
        return None

    finder = world.res(PathFinder)
    if finder is not None and finder.deferred:
        finder.calculate()

    tick_player(world, dt, move)
    tick_guards(world, dt, finder, rng)
    gem_system(world, dt)
    result = resolve_encounters(world, dt, rng)

    if bus:
        bus.drain()
    world.purge()
    return result
