"""core/tuning.py — Gameplay numbers from ``data/tuning.toml``.

Speeds, radii, timers and difficulty steps are data, not code.  Systems
read them through one accessor and always pass the shipped value as the
default, so an absent file (tests, a stripped install) changes nothing:

    from core.tuning import get as _tun
    radius = _tun("encounter", "sound_radius", 200.0)

Nested tables use dots: ``get("guard.vision", "ray_count", 25)``.

F4 in game calls ``reload()``; tests pin single values with
``override()`` and restore with ``load()``.
"""

from __future__ import annotations
from pathlib import Path

try:
    import tomllib                         # Python 3.11+
except ModuleNotFoundError:  # Python < 3.11
    import tomli as tomllib

DEFAULT_PATH = Path(__file__).resolve().parent.parent / "data" / "tuning.toml"

_data: dict = {}
_path: Path = DEFAULT_PATH


def load(path: str | Path | None = None) -> None:
    """Replace the loaded values with the contents of *path*.

    A missing file leaves every value at its call-site default.
    """
    global _data, _path
    _path = Path(path) if path is not None else DEFAULT_PATH
    if not _path.exists():
        print(f"[TUNING] {_path} not found — using defaults")
        _data = {}
        return
    with open(_path, "rb") as f:
        _data = tomllib.load(f)
    print(f"[TUNING] Loaded {_count(_data)} values from {_path}")


def reload() -> None:
    load(_path)


def override(section: str, key: str, value) -> None:
    """Pin one value in memory until the next ``load``."""
    node = _data
    for part in section.split("."):
        node = node.setdefault(part, {})
    node[key] = value


def reset() -> None:
    """Forget everything; all reads return their defaults."""
    global _data
    _data = {}


def _table(section: str) -> dict | None:
    node = _data
    for part in section.split("."):
        if not isinstance(node, dict):
            return None
        node = node.get(part)
    return node if isinstance(node, dict) else None


def get(section: str, key: str, default=None):
    """Value of *key* in ``[section]``, or *default* when either is missing.

    >>> get("guard", "base_speed", 80.0)
    80.0
    """
    table = _table(section)
    if table is None:
        return default
    return table.get(key, default)


def _count(d: dict) -> int:
    return sum(_count(v) if isinstance(v, dict) else 1 for v in d.values())
