"""logic/vision.py — Raycast vision fans and the point-in-polygon test.

A guard's field of view is rebuilt from scratch every tick:
``ray_count + 1`` rays spread evenly across ``fov`` around the facing
angle, each marching outward in ``ray_step`` increments until it leaves
the grid, enters a wall, or reaches ``view_distance``.  The fan polygon
is the guard's own position followed by the ray end points, so walls
occlude and the cone turns with the guard.
"""

from __future__ import annotations
import math

from core.grid import TileGrid
from core.tuning import get as _tun

Point = tuple[float, float]


def cast_ray(grid: TileGrid, x: float, y: float, angle: float,
             max_dist: float, step: float = 4.0) -> Point:
    """March from (x, y) along *angle*; return the first blocked sample
    point, or the point at *max_dist* if nothing blocks."""
    ca, sa = math.cos(angle), math.sin(angle)
    d = step
    while d < max_dist:
        px = x + ca * d
        py = y + sa * d
        if grid.blocks_point(px, py):
            return px, py
        d += step
    return x + ca * max_dist, y + sa * max_dist


def build_vision_polygon(grid: TileGrid, x: float, y: float, facing: float,
                         fov: float, view_distance: float,
                         ray_count: int, step: float | None = None) -> list[Point]:
    """Return the fan ``[(x, y), hit_0, …, hit_ray_count]``."""
    if step is None:
        step = _tun("guard.vision", "ray_step", 4.0)
    poly: list[Point] = [(x, y)]
    start = facing - fov / 2
    for i in range(ray_count + 1):
        a = start + (i / ray_count) * fov if ray_count else facing
        poly.append(cast_ray(grid, x, y, a, view_distance, step))
    return poly


def point_in_polygon(px: float, py: float, polygon: list[Point]) -> bool:
    """Even-odd crossing test.  Fewer than three vertices is never inside."""
    n = len(polygon)
    if n < 3:
        return False
    inside = False
    j = n - 1
    for i in range(n):
        xi, yi = polygon[i]
        xj, yj = polygon[j]
        if (yi > py) != (yj > py):
            if px < (xj - xi) * (py - yi) / (yj - yi) + xi:
                inside = not inside
        j = i
    return inside


def detects(polygon: list[Point], px: float, py: float) -> bool:
    """True if (px, py) is inside the fan.

    The anchor vertex itself counts as inside: a player standing exactly
    on the guard is always seen, which the parity test alone can miss.
    """
    if len(polygon) < 3:
        return False
    ax, ay = polygon[0]
    if px == ax and py == ay:
        return True
    return point_in_polygon(px, py, polygon)
