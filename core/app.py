"""
core/app.py — Pygame window and frame loop

The playfield is drawn onto a fixed surface, one pixel per world unit,
and scaled to whatever size the window currently has.  Mouse positions
are mapped back into that surface before a scene sees them, so clicks
arrive in world coordinates.

    app = App(title="Last Protocol", width=1280, height=768)
    app.world = setup_session(level=1, store=store)
    app.push_scene(StealthScene())
    app.run()

Only this module and ``scenes/`` import pygame's display; the simulation
never does.
"""

from __future__ import annotations
import pygame
from core.scene import Scene
from core.ecs import World

_MOUSE_EVENTS = (pygame.MOUSEBUTTONDOWN, pygame.MOUSEBUTTONUP, pygame.MOUSEMOTION)


class App:
    def __init__(self, title: str = "Last Protocol",
                 width: int = 1280, height: int = 768):
        pygame.init()
        self.view_size = (width, height)
        self.canvas = pygame.Surface(self.view_size)
        self.screen = pygame.display.set_mode(self.view_size, pygame.RESIZABLE)
        pygame.display.set_caption(title)
        self.clock = pygame.time.Clock()
        self.running = True
        self.fps = 60
        # A stalled frame (window drag, breakpoint) advances at most this far
        self.max_dt = 0.1
        self.dt = 0.0

        self._scenes: list[Scene] = []
        # Built by main.py with logic.level.setup_session
        self.world: World | None = None

        self.font = pygame.font.SysFont("monospace", 14)
        self.font_lg = pygame.font.SysFont("monospace", 28, bold=True)

    # -- Scenes --

    @property
    def scene(self) -> Scene | None:
        return self._scenes[-1] if self._scenes else None

    def push_scene(self, scene: Scene):
        if self._scenes:
            self._scenes[-1].on_exit(self)
        self._scenes.append(scene)
        scene.on_enter(self)

    # -- Window → canvas --

    def _to_canvas(self, event: pygame.event.Event) -> pygame.event.Event:
        sw, sh = self.screen.get_size()
        vw, vh = self.view_size
        attrs = {k: getattr(event, k)
                 for k in ("button", "buttons", "rel") if hasattr(event, k)}
        attrs["pos"] = (int(event.pos[0] * vw / sw), int(event.pos[1] * vh / sh))
        return pygame.event.Event(event.type, **attrs)

    # -- Main loop --

    def run(self):
        while self.running:
            self.dt = min(self.clock.tick(self.fps) / 1000.0, self.max_dt)

            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    self.running = False
                elif event.type == pygame.VIDEORESIZE:
                    self.screen = pygame.display.set_mode(
                        (event.w, event.h), pygame.RESIZABLE)
                elif self.scene:
                    if event.type in _MOUSE_EVENTS:
                        event = self._to_canvas(event)
                    self.scene.handle_event(event, self)

            if self.scene:
                self.scene.update(self.dt, self)
                self.scene.draw(self.canvas, self)

            pygame.transform.scale(self.canvas, self.screen.get_size(), self.screen)
            pygame.display.flip()

        pygame.quit()

    def draw_text(self, surface: pygame.Surface, text: str, x: int, y: int,
                  color=(255, 255, 255), font=None):
        """Blit one line of text; returns its rect."""
        img = (font or self.font).render(text, True, color)
        return surface.blit(img, (x, y))
