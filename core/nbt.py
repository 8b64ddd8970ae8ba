"""core/nbt.py — Level snapshot export / import (NBT).

Generated levels are throwaway, but being able to dump one to disk is
handy for bug reports and for replaying a nasty layout in a test.

Structure (TAG_Compound):
  - level:   TAG_Int
  - width:   TAG_Int
  - height:  TAG_Int
  - tiles:   TAG_Byte_Array (row-major, 0 = floor, 1 = wall)
  - spawn_x: TAG_Int
  - spawn_y: TAG_Int
"""
from __future__ import annotations
from pathlib import Path

import nbtlib
from nbtlib import tag

from core.grid import TileGrid


LEVELS_DIR = Path("levels")


def save_level_nbt(grid: TileGrid, level: int,
                   spawn: tuple[int, int] | None = None,
                   dir_path: Path | None = None) -> Path:
    """Write *grid* to ``<dir_path>/level_<level>.nbt`` and return the path."""
    dir_path = Path(dir_path) if dir_path is not None else LEVELS_DIR
    dir_path.mkdir(parents=True, exist_ok=True)

    root = nbtlib.Compound()
    root["level"] = tag.Int(level)
    root["width"] = tag.Int(grid.width)
    root["height"] = tag.Int(grid.height)
    root["tiles"] = tag.ByteArray([int(v) for row in grid.tiles for v in row])
    if spawn is not None:
        root["spawn_x"] = tag.Int(spawn[0])
        root["spawn_y"] = tag.Int(spawn[1])

    out_path = dir_path / f"level_{level}.nbt"
    # Remove old file if exists to ensure clean overwrite
    if out_path.exists():
        out_path.unlink()
    nbtlib.File(root).save(out_path)
    return out_path


def load_level_nbt(path: str | Path) -> dict:
    """Load a level snapshot.

    Returns ``{"level": int, "grid": TileGrid, "spawn": (x, y) | None}``.
    Raises ``ValueError`` if the tile payload does not match the header.
    """
    # In nbtlib 2.0+, the File object IS the root compound
    root = nbtlib.load(Path(path))
    w = int(root["width"])
    h = int(root["height"])
    flat = [int(v) for v in root["tiles"]]
    if w <= 0 or h <= 0 or len(flat) != w * h:
        raise ValueError(f"corrupt level file {path}: {len(flat)} tiles for {w}x{h}")
    tiles = [flat[r * w:(r + 1) * w] for r in range(h)]
    spawn = None
    if "spawn_x" in root and "spawn_y" in root:
        spawn = (int(root["spawn_x"]), int(root["spawn_y"]))
    return {"level": int(root["level"]), "grid": TileGrid(tiles), "spawn": spawn}
