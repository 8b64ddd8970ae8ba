"""logic — Game systems package.

Modules
-------
tick            — per-frame system orchestrator
level           — difficulty, level generation, session setup / restart
mapgen          — crate-scatter grid generator with connectivity repair
pathfinding     — 4-connected A*, callback contract, request queue
movement        — player steering (path / manual / lunge), guard path-following
vision          — raycast vision fans, point-in-polygon
guards          — guard state machine and sound-pulse alerting
encounters      — detection timer, takedowns, clicks, level clear
effects         — loot gems
entity_factory  — ``spawn(world, kind, **params)``
input_manager   — raw pygame input → movement vector, clicks, intents
"""
