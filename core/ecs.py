"""
core/ecs.py — Entity registry

An entity is an int id; its components are plain dataclass instances
filed by type.  Systems ask for every entity that carries a given set
of component types:

    world = World()
    gid = world.spawn()
    world.add(gid, Position(352.0, 160.0))
    world.add(gid, Guard())

    for eid, pos, guard in world.query(Position, Guard):
        ...

Level-wide singletons (the TileGrid, the PathFinder, the EventBus, the
HighLevelStore …) sit in the same stores under the reserved id ``-1``
and are reached with ``set_res`` / ``res``.  One World is threaded
through every system, so nothing in the game reads module globals.

Killing is deferred: ``kill`` only marks the id, every lookup skips
marked ids, and ``purge`` (once per tick) drops their components.
"""

from __future__ import annotations
from typing import Any, Iterator

_RES = -1


class World:
    def __init__(self):
        self._next_id = 0
        self._stores: dict[type, dict[int, Any]] = {}
        self._dead: set[int] = set()

    # -- Entities --

    def spawn(self) -> int:
        self._next_id += 1
        return self._next_id

    def kill(self, eid: int):
        self._dead.add(eid)

    def alive(self, eid: int) -> bool:
        if eid in self._dead:
            return False
        return any(eid in store for store in self._stores.values())

    def purge(self):
        """Drop every killed entity's components."""
        for eid in self._dead:
            for store in self._stores.values():
                store.pop(eid, None)
        self._dead.clear()

    # -- Components --

    def add(self, eid: int, comp: Any):
        self._stores.setdefault(type(comp), {})[eid] = comp

    def get(self, eid: int, comp_type: type) -> Any | None:
        return self._stores.get(comp_type, {}).get(eid)

    # -- Queries --

    def _live(self, eid: int) -> bool:
        return eid != _RES and eid not in self._dead

    def query(self, *types: type) -> Iterator[tuple]:
        """Yield ``(eid, comp1, comp2, ...)`` for live entities with ALL *types*."""
        if not types:
            return
        stores = [self._stores.get(t, {}) for t in types]
        # Walk the smallest store, test membership in the rest
        smallest = min(stores, key=len)
        for eid in list(smallest):
            if self._live(eid) and all(eid in s for s in stores):
                yield (eid, *(s[eid] for s in stores))

    def query_one(self, *types: type) -> tuple | None:
        return next(self.query(*types), None)

    def all_of(self, comp_type: type) -> Iterator[tuple[int, Any]]:
        for eid, comp in list(self._stores.get(comp_type, {}).items()):
            if self._live(eid):
                yield eid, comp

    def count(self, comp_type: type) -> int:
        return sum(1 for _ in self.all_of(comp_type))

    def nearby(self, x: float, y: float, radius: float,
               *types: type) -> Iterator[tuple]:
        """Like ``query`` but only entities strictly within *radius* of (x, y).

        The first type must carry ``.x`` / ``.y``.  Each tuple gets the
        squared distance appended so callers can rank hits without a sqrt:

            for eid, pos, guard, dsq in world.nearby(x, y, 200, Position, Guard):
                ...
        """
        r_sq = radius * radius
        for hit in self.query(*types):
            pos = hit[1]
            dsq = (pos.x - x) ** 2 + (pos.y - y) ** 2
            if dsq < r_sq:
                yield (*hit, dsq)

    # -- Resources --

    def set_res(self, resource: Any):
        self._stores.setdefault(type(resource), {})[_RES] = resource

    def res(self, res_type: type) -> Any | None:
        return self._stores.get(res_type, {}).get(_RES)
