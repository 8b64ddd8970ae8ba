"""
core/scene.py — Scene interface

The app holds a stack of scenes; only the top one receives events,
updates and draw calls.  A scene is the adapter between pygame and the
simulation: it turns events into intents, calls ``tick_systems`` and
draws what the World holds.

    class MyScene(Scene):
        def on_enter(self, app): ...
        def handle_event(self, event, app): ...
        def update(self, dt, app): ...       # dt is seconds
        def draw(self, surface, app): ...
"""

from __future__ import annotations
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import pygame
    from core.app import App


class Scene:
    def on_enter(self, app: App):
        """Called when this scene becomes active (pushed or revealed)."""

    def on_exit(self, app: App):
        """Called when this scene is removed or covered."""

    def handle_event(self, event: pygame.event.Event, app: App):
        """Process a single pygame event."""

    def update(self, dt: float, app: App):
        """Advance the simulation by *dt* seconds."""

    def draw(self, surface: pygame.Surface, app: App):
        """Draw to the virtual screen surface."""
