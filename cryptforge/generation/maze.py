"""Template-free level source: BSP rooms joined by L-shaped digs.

Used when no room catalog is supplied. Produces plain rectangular rooms (no
templates) and a dug mask covering rooms and the passages between them; the
rest of the pipeline treats these exactly like placed template rooms.
"""
from __future__ import annotations

from dataclasses import replace
from typing import List, NamedTuple, Tuple

from cryptforge.logging_utils import get_logger

from .masks import Mask, components4, or_many, rect_mask
from .rng import LevelRng
from .rooms import PlacedRoom

log = get_logger("cryptforge.maze")


class Leaf(NamedTuple):
    x: int
    y: int
    w: int
    h: int


class MazeResult(NamedTuple):
    rooms: List[PlacedRoom]
    dug: Mask
    leaves: List[Leaf]


def bsp_partition(width: int, height: int, min_leaf: int, rng: LevelRng) -> List[Leaf]:
    leaves = [Leaf(1, 1, width - 2, height - 2)]

    def split(r: Leaf):
        split_h = (r.w / r.h) < (0.8 + rng.frac() * 0.4)
        if r.w < min_leaf * 1.2 and r.h < min_leaf * 1.2:
            return [r]
        if split_h and r.h >= min_leaf * 2:
            cut = rng.integer_in_range(min_leaf, r.h - min_leaf)
            return [Leaf(r.x, r.y, r.w, cut), Leaf(r.x, r.y + cut, r.w, r.h - cut)]
        if not split_h and r.w >= min_leaf * 2:
            cut = rng.integer_in_range(min_leaf, r.w - min_leaf)
            return [Leaf(r.x, r.y, cut, r.h), Leaf(r.x + cut, r.y, r.w - cut, r.h)]
        return [r]

    if leaves[0].w < 1 or leaves[0].h < 1:
        return []
    changed = True
    while changed:
        changed = False
        new = []
        for r in leaves:
            parts = split(r)
            if len(parts) == 2:
                changed = True
            new.extend(parts)
        leaves = new
    return leaves


def rooms_in_leaves(leaves: List[Leaf], room_size: Tuple[int, int], rng: LevelRng) -> List[PlacedRoom]:
    lo, hi = room_size
    rooms: List[PlacedRoom] = []
    for leaf in leaves:
        if leaf.w - 2 < lo or leaf.h - 2 < lo:
            continue
        rw = rng.integer_in_range(lo, min(hi, leaf.w - 2))
        rh = rng.integer_in_range(lo, min(hi, leaf.h - 2))
        rx = rng.integer_in_range(leaf.x + 1, leaf.x + leaf.w - rw - 1)
        ry = rng.integer_in_range(leaf.y + 1, leaf.y + leaf.h - rh - 1)
        rooms.append(PlacedRoom(role="room", x=rx, y=ry, w=rw, h=rh))
    if rooms:
        rooms[0] = replace(rooms[0], role="start")
        if len(rooms) > 1:
            rooms[-1] = replace(rooms[-1], role="next_level")
    return rooms


def _dig_line_x(dug: Mask, x1: int, x2: int, y: int) -> None:
    h, w = len(dug), len(dug[0])
    step = 1 if x2 >= x1 else -1
    for x in range(x1, x2 + step, step):
        if 0 <= y < h and 0 <= x < w:
            dug[y][x] = True


def _dig_line_y(dug: Mask, y1: int, y2: int, x: int) -> None:
    h, w = len(dug), len(dug[0])
    step = 1 if y2 >= y1 else -1
    for y in range(y1, y2 + step, step):
        if 0 <= y < h and 0 <= x < w:
            dug[y][x] = True


def dig_l_path(dug: Mask, a: Tuple[int, int], b: Tuple[int, int], rng: LevelRng) -> None:
    """Dig an L between two cells in place; horizontal-first on a coin flip."""
    if rng.frac() < 0.5:
        _dig_line_x(dug, a[0], b[0], a[1])
        _dig_line_y(dug, a[1], b[1], b[0])
    else:
        _dig_line_y(dug, a[1], b[1], a[0])
        _dig_line_x(dug, a[0], b[0], b[1])


def connect_rooms(dug: Mask, rooms: List[PlacedRoom], rng: LevelRng) -> int:
    """Grow a tree from room 0 by repeatedly digging to the nearest unconnected room."""
    if len(rooms) <= 1:
        return 0
    centers = [r.center for r in rooms]
    connected = [False] * len(rooms)
    connected[0] = True
    digs = 0
    for _ in range(1, len(rooms)):
        best = None
        for i, ci in enumerate(centers):
            if not connected[i]:
                continue
            for j, cj in enumerate(centers):
                if connected[j]:
                    continue
                d = abs(ci[0] - cj[0]) + abs(ci[1] - cj[1])
                if best is None or d < best[0]:
                    best = (d, i, j)
        if best is None:
            break
        _, i, j = best
        dig_l_path(dug, centers[i], centers[j], rng)
        connected[j] = True
        digs += 1
    return digs


def ensure_single_component(dug: Mask, rng: LevelRng) -> int:
    """Join every stray component to the largest one; returns the number of extra digs."""
    comps = components4(dug)
    if len(comps) <= 1:
        return 0
    main = max(range(len(comps)), key=lambda i: (len(comps[i]), -i))
    reps = [sorted(comp, key=lambda p: (p[1], p[0])) for comp in comps]
    digs = 0
    for ci, pts in enumerate(reps):
        if ci == main:
            continue
        best = None
        for a in pts:
            for b in reps[main]:
                d = abs(a[0] - b[0]) + abs(a[1] - b[1])
                if best is None or d < best[0]:
                    best = (d, a, b)
        dig_l_path(dug, best[1], best[2], rng)
        digs += 1
    return digs


def generate_maze(
    width: int, height: int, rng: LevelRng, min_leaf: int = 12, room_size: Tuple[int, int] = (4, 10)
) -> MazeResult:
    leaves = bsp_partition(width, height, min_leaf, rng)
    rooms = rooms_in_leaves(leaves, room_size, rng)
    dug = or_many((rect_mask(width, height, *r.bounds) for r in rooms), width, height)
    joined = connect_rooms(dug, rooms, rng)
    repaired = ensure_single_component(dug, rng)
    log.debug(event="maze_generated", leaves=len(leaves), rooms=len(rooms), digs=joined, repairs=repaired)
    return MazeResult(rooms, dug, leaves)


__all__ = [
    "Leaf",
    "MazeResult",
    "bsp_partition",
    "rooms_in_leaves",
    "dig_l_path",
    "connect_rooms",
    "ensure_single_component",
    "generate_maze",
]
