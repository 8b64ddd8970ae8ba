"""logic/input_manager.py — Intent-based input layer.

Sits between raw pygame events and the simulation.  The scene feeds in
raw events; the manager maps them to *intents* for the current **input
context** and collects clicks.  The simulation only ever sees a
normalised movement vector and click coordinates.

Usage (in the stealth scene):

    self.input = InputManager()
    # each frame:
    self.input.begin_frame()
    for event in events:
        self.input.feed(event)

    move = self.input.movement()        # → (dx, dy) normalised
    for x, y in self.input.clicks():    # world coordinates
        handle_click(world, x, y)
    if self.input.just("export_level"):
        ...

Held keys are tracked from KEYDOWN / KEYUP pairs rather than polled, so
the manager works on synthetic events without an open window.
"""

from __future__ import annotations
from enum import Enum, auto
import pygame


# ── Input contexts ──────────────────────────────────────────────────

class InputContext(Enum):
    """Determines which key-bindings are active."""
    GAMEPLAY  = auto()   # steering, clicks, debug keys
    GAME_OVER = auto()   # only clicks (restart) and system keys


# ── Intent names ────────────────────────────────────────────────────
# Gameplay:  move_up  move_down  move_left  move_right
#            toggle_debug  export_level  reload_tuning  reset_progress
# Both:      quit
# Mouse:     click_primary

# Each binding is  (pygame key constant, modifier mask or 0)
# For mouse buttons we use negative constants: -1 = LMB

_GAMEPLAY_BINDS: dict[str, list[tuple[int, int]]] = {
    # Movement (held)
    "move_up":        [(pygame.K_w, 0), (pygame.K_UP, 0)],
    "move_down":      [(pygame.K_s, 0), (pygame.K_DOWN, 0)],
    "move_left":      [(pygame.K_a, 0), (pygame.K_LEFT, 0)],
    "move_right":     [(pygame.K_d, 0), (pygame.K_RIGHT, 0)],
    # Actions
    "click_primary":  [(-1, 0)],
    # Debug / toggles
    "toggle_debug":   [(pygame.K_TAB, 0)],
    "export_level":   [(pygame.K_F2, 0)],
    "reload_tuning":  [(pygame.K_F4, 0)],
    "reset_progress": [(pygame.K_r, pygame.KMOD_SHIFT)],
    "quit":           [(pygame.K_ESCAPE, 0)],
}

_GAME_OVER_BINDS: dict[str, list[tuple[int, int]]] = {
    "click_primary":  [(-1, 0)],
    "reload_tuning":  [(pygame.K_F4, 0)],
    "quit":           [(pygame.K_ESCAPE, 0)],
}

_MOVE_KEYS = {
    intent: {key for key, _mod in _GAMEPLAY_BINDS[intent]}
    for intent in ("move_up", "move_down", "move_left", "move_right")
}


# ── InputManager ────────────────────────────────────────────────────

_BINDS = {
    InputContext.GAMEPLAY:  _GAMEPLAY_BINDS,
    InputContext.GAME_OVER: _GAME_OVER_BINDS,
}

_AXES = (
    ("move_left",  -1.0, 0.0),
    ("move_right",  1.0, 0.0),
    ("move_up",     0.0, -1.0),
    ("move_down",   0.0, 1.0),
)


class InputManager:
    """Turns one frame's pygame events into intents, a steering vector
    and click positions for the active ``context``."""

    def __init__(self):
        self.context: InputContext = InputContext.GAMEPLAY
        self._pressed: set[str] = set()          # rising edges this frame
        self._keys_down: set[int] = set()
        self._clicks: list[tuple[int, int]] = []  # canvas (world) coordinates

    def begin_frame(self):
        """Forget this frame's presses and clicks; held keys stay down."""
        self._pressed.clear()
        self._clicks.clear()

    def feed(self, event: pygame.event.Event):
        if event.type == pygame.KEYDOWN:
            self._keys_down.add(event.key)
            self._press(event.key, getattr(event, "mod", 0))
        elif event.type == pygame.KEYUP:
            self._keys_down.discard(event.key)
        elif event.type == pygame.MOUSEBUTTONDOWN:
            self._press(-event.button, 0)
            if event.button == 1:
                self._clicks.append(tuple(event.pos))

    def _press(self, code: int, mods: int):
        for intent, binds in _BINDS[self.context].items():
            if any(code == key and (need == 0 or mods & need)
                   for key, need in binds):
                self._pressed.add(intent)

    # ── queries ─────────────────────────────────────────────────

    def just(self, intent: str) -> bool:
        return intent in self._pressed

    def held(self, intent: str) -> bool:
        """Movement intents only, and only while steering is allowed."""
        if self.context != InputContext.GAMEPLAY:
            return False
        return bool(_MOVE_KEYS.get(intent, set()) & self._keys_down)

    def clicks(self) -> list[tuple[int, int]]:
        return list(self._clicks)

    def movement(self) -> tuple[float, float]:
        """Steering vector from held keys, unit length on diagonals."""
        dx = dy = 0.0
        for intent, ax, ay in _AXES:
            if self.held(intent):
                dx += ax
                dy += ay
        if dx and dy:
            mag = (dx * dx + dy * dy) ** 0.5
            dx /= mag
            dy /= mag
        return dx, dy
