"""scenes/stealth_scene.py — The playable level view.

Adapts pygame to the simulation: feeds events through the
``InputManager``, calls ``tick_systems`` once per frame, and draws the
grid, vision fans, actors, gems and a thin HUD.  Transient visuals
(footstep rings, sound pulses, click marks) are built from EventBus
events and live only here; they never feed back into the simulation.

Keys:  WASD / arrows move · click to walk or attack · TAB debug log ·
       F2 export level (.nbt) · F4 reload tuning · Shift+R reset progress
"""

from __future__ import annotations
import math
from dataclasses import dataclass

import pygame

from core import tuning
from core.app import App
from core.constants import TILE_COLORS
from core.events import EventBus
from core.grid import TileGrid
from core.nbt import save_level_nbt
from core.save import HighLevelStore
from core.scene import Scene
from components import (
    Position, Facing, Player, PlayerState, Guard, GuardState, VisionCone,
    Collectible, EncounterState, Difficulty, DevLog,
)
from logic.encounters import handle_click
from logic.input_manager import InputManager, InputContext
from logic.tick import tick_systems


# ── Transient visuals ────────────────────────────────────────────────

@dataclass
class Ring:
    x: float
    y: float
    max_radius: float
    life: float
    color: tuple[int, int, int]
    age: float = 0.0

    @property
    def done(self) -> bool:
        return self.age >= self.life


_STATE_COLORS = {
    GuardState.IDLE:        (200, 60, 60),
    GuardState.PATROL:      (200, 60, 60),
    GuardState.INVESTIGATE: (230, 150, 40),
    GuardState.ALERT:       (255, 20, 20),
}


class StealthScene(Scene):
    def __init__(self):
        self.input = InputManager()
        self.rings: list[Ring] = []
        self.show_debug = False
        self.flash = ""
        self.flash_timer = 0.0

    # ── lifecycle ────────────────────────────────────────────────

    def on_enter(self, app: App):
        bus = app.world.res(EventBus)
        bus.subscribe("FootstepRing", lambda e: self._ring(e.x, e.y, 18, 0.5, (90, 90, 120)))
        bus.subscribe("SoundPulse", lambda e: self._ring(e.x, e.y, e.radius, 0.5, (255, 200, 50)))
        bus.subscribe("TargetMarked", lambda e: self._ring(
            e.x, e.y, 24, 0.4, (255, 60, 60) if e.attack else (60, 200, 255)))
        bus.subscribe("LevelCleared", lambda e: self._say(
            f"SECURITY LAYER {e.level} COMPROMISED"))
        bus.subscribe("LevelStarted", lambda e: self._say(f"PROTOCOL LEVEL {e.level}"))
        bus.subscribe("GameOver", lambda e: self._say("CONNECTION TERMINATED"))

    def _ring(self, x, y, r, life, color):
        self.rings.append(Ring(x, y, r, life, color))

    def _say(self, text: str, seconds: float = 2.5):
        self.flash = text
        self.flash_timer = seconds

    # ── input ────────────────────────────────────────────────────

    def handle_event(self, event, app: App):
        self.input.feed(event)

    def update(self, dt: float, app: App):
        world = app.world
        state = world.res(EncounterState)
        self.input.context = (InputContext.GAME_OVER if state.game_over
                              else InputContext.GAMEPLAY)

        if self.input.just("quit"):
            app.running = False
        if self.input.just("toggle_debug"):
            self.show_debug = not self.show_debug
        if self.input.just("reload_tuning"):
            tuning.reload()
        if self.input.just("export_level"):
            path = save_level_nbt(world.res(TileGrid), state.level, state.spawn)
            self._say(f"exported {path}")
            print(f"[LEVEL] Exported level {state.level} to {path}")
        if self.input.just("reset_progress"):
            world.res(HighLevelStore).clear()
            self._say("progress reset")

        for x, y in self.input.clicks():
            handle_click(world, x, y)

        tick_systems(world, dt, self.input.movement())
        self.input.begin_frame()

        for ring in self.rings:
            ring.age += dt
        self.rings = [r for r in self.rings if not r.done]
        self.flash_timer = max(0.0, self.flash_timer - dt)

    # ── drawing ──────────────────────────────────────────────────

    def draw(self, surface: pygame.Surface, app: App):
        world = app.world
        grid: TileGrid = world.res(TileGrid)
        surface.fill((20, 20, 24))
        ts = grid.tile_size

        for y, row in enumerate(grid.tiles):
            for x, t in enumerate(row):
                pygame.draw.rect(surface, TILE_COLORS.get(t, (255, 0, 255)),
                                 (x * ts, y * ts, ts, ts))

        for ring in self.rings:
            r = int(ring.max_radius * ring.age / ring.life)
            if r > 1:
                pygame.draw.circle(surface, ring.color,
                                   (int(ring.x), int(ring.y)), r, 2)

        for _eid, pos, _gem in world.query(Position, Collectible):
            pygame.draw.circle(surface, (255, 51, 102), (int(pos.x), int(pos.y)), 6)

        overlay = pygame.Surface(surface.get_size(), pygame.SRCALPHA)
        for _eid, cone in world.all_of(VisionCone):
            if len(cone.polygon) >= 3:
                color = (255, 60, 60, 90) if cone.detecting else (255, 240, 120, 60)
                pygame.draw.polygon(overlay, color,
                                    [(int(px), int(py)) for px, py in cone.polygon])
        surface.blit(overlay, (0, 0))

        for _eid, pos, facing, guard in world.query(Position, Facing, Guard):
            self._draw_body(surface, pos, facing, _STATE_COLORS[guard.state], 14)

        found = world.query_one(Position, Facing, Player)
        if found is not None:
            _pid, pos, facing, player = found
            color = (90, 90, 90) if player.state is PlayerState.DEAD else (0, 255, 200)
            self._draw_body(surface, pos, facing, color, 10)

        self._draw_hud(surface, app)

    @staticmethod
    def _draw_body(surface, pos, facing, color, radius):
        cx, cy = int(pos.x), int(pos.y)
        pygame.draw.circle(surface, color, (cx, cy), radius)
        tip = (cx + int(math.cos(facing.angle) * radius * 1.6),
               cy + int(math.sin(facing.angle) * radius * 1.6))
        pygame.draw.line(surface, (255, 255, 255), (cx, cy), tip, 2)

    def _draw_hud(self, surface, app: App):
        world = app.world
        state = world.res(EncounterState)
        diff = world.res(Difficulty)
        store = world.res(HighLevelStore)

        app.draw_text(surface, f"LEVEL {state.level}   SCORE {state.score}   "
                               f"BEST {store.get()}   GUARDS {world.count(Guard)}",
                      8, 6)
        frac = min(1.0, state.detection_time / diff.max_detection_time)
        pygame.draw.rect(surface, (60, 60, 60), (8, 26, 200, 8))
        pygame.draw.rect(surface, (255, 40, 40), (8, 26, int(200 * frac), 8))

        if self.flash_timer > 0:
            w, h = surface.get_size()
            img = app.font_lg.render(self.flash, True, (255, 255, 255))
            surface.blit(img, img.get_rect(center=(w // 2, h // 2)))

        if self.show_debug:
            log = world.res(DevLog)
            y = 44
            for entry in log.recent(14):
                app.draw_text(surface, f"{entry['t']:7.2f} #{entry['eid']:<3} "
                                       f"{entry['cat']:<9} {entry['msg']}",
                              8, y, (200, 200, 120))
                y += 16


