"""Boolean grid algebra shared by every region-building phase.

Masks are row-major ``mask[y][x]`` lists of bools sized to the level. Every
function returns a fresh grid and leaves its inputs untouched, so masks can be
recomputed freely without aliasing surprises.
"""
from __future__ import annotations

from collections import deque
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

Mask = List[List[bool]]
Stencil = Sequence[Sequence[int]]
Coord2D = Tuple[int, int]

N4: Tuple[Coord2D, ...] = ((1, 0), (-1, 0), (0, 1), (0, -1))
N8: Tuple[Coord2D, ...] = N4 + ((1, 1), (1, -1), (-1, 1), (-1, -1))


def make_mask(w: int, h: int, fill: bool = False) -> Mask:
    return [[fill] * w for _ in range(h)]


def size_of(mask: Mask) -> Tuple[int, int]:
    h = len(mask)
    return (len(mask[0]) if h else 0), h


def in_bounds(mask: Mask, x: int, y: int) -> bool:
    return 0 <= y < len(mask) and 0 <= x < len(mask[y])


def rect_mask(w: int, h: int, left: int, top: int, right: int, bottom: int) -> Mask:
    """Inclusive rectangle, clipped to the grid."""
    m = make_mask(w, h)
    for y in range(max(0, top), min(h, bottom + 1)):
        row = m[y]
        for x in range(max(0, left), min(w, right + 1)):
            row[x] = True
    return m


def shape_scaled_to_room(w: int, h: int, shape: Stencil, left: int, top: int, right: int, bottom: int) -> Mask:
    """Nearest-neighbour resample of a 0/1 stencil onto an inclusive rectangle."""
    m = make_mask(w, h)
    if not shape or not shape[0]:
        return m
    rw, rh = right - left + 1, bottom - top + 1
    sw, sh = len(shape[0]), len(shape)
    for y in range(rh):
        gy = top + y
        if gy < 0 or gy >= h:
            continue
        sy = int((y + 0.5) * sh / rh)
        srow = shape[sy] if sy < sh else ()
        for x in range(rw):
            gx = left + x
            if gx < 0 or gx >= w:
                continue
            sx = int((x + 0.5) * sw / rw)
            if sx < len(srow) and srow[sx] == 1:
                m[gy][gx] = True
    return m


def mask_not(a: Mask) -> Mask:
    return [[not v for v in row] for row in a]


def mask_or(a: Mask, b: Mask) -> Mask:
    return [[va or vb for va, vb in zip(ra, rb)] for ra, rb in zip(a, b)]


def mask_and(a: Mask, b: Mask) -> Mask:
    return [[va and vb for va, vb in zip(ra, rb)] for ra, rb in zip(a, b)]


def or_many(masks: Iterable[Mask], w: int, h: int) -> Mask:
    """Union of any number of masks; an empty input gives an all-false grid."""
    out = make_mask(w, h)
    for m in masks:
        for y in range(h):
            row, src = out[y], m[y]
            for x in range(w):
                if src[x]:
                    row[x] = True
    return out


def and_not(a: Mask, b: Mask) -> Mask:
    return [[va and not vb for va, vb in zip(ra, rb)] for ra, rb in zip(a, b)]


def outer_perimeter(interior: Mask, exclude: Optional[Mask] = None) -> Mask:
    """Cells outside ``interior`` that touch it orthogonally.

    Cells set in ``exclude`` are never part of the perimeter; pass the combined
    floor mask to keep a wall ring from swallowing a neighbouring region.
    """
    w, h = size_of(interior)
    out = make_mask(w, h)
    for y in range(h):
        for x in range(w):
            if not interior[y][x]:
                continue
            for dx, dy in N4:
                nx, ny = x + dx, y + dy
                if not (0 <= nx < w and 0 <= ny < h):
                    continue
                if interior[ny][nx] or (exclude is not None and exclude[ny][nx]):
                    continue
                out[ny][nx] = True
    return out


def adjacency_mask(a: Mask, b: Mask) -> Mask:
    """Cells of ``b`` orthogonally adjacent to at least one cell of ``a``."""
    w, h = size_of(b)
    out = make_mask(w, h)
    for y in range(h):
        for x in range(w):
            if not b[y][x]:
                continue
            for dx, dy in N4:
                nx, ny = x + dx, y + dy
                if 0 <= nx < w and 0 <= ny < h and a[ny][nx]:
                    out[y][x] = True
                    break
    return out


def place_stencil_centered(
    stencil: Stencil, container: Mask, left: int, top: int, right: int, bottom: int
) -> Mask:
    """Center a 0/1 stencil inside an inclusive rectangle, keeping only container cells."""
    w, h = size_of(container)
    m = make_mask(w, h)
    if not stencil or not stencil[0]:
        return m
    rw, rh = right - left + 1, bottom - top + 1
    sw, sh = len(stencil[0]), len(stencil)
    off_x = left + (rw - sw) // 2
    off_y = top + (rh - sh) // 2
    for y in range(sh):
        gy = off_y + y
        if gy < 0 or gy >= h:
            continue
        for x in range(len(stencil[y])):
            gx = off_x + x
            if gx < 0 or gx >= w:
                continue
            if stencil[y][x] == 1 and container[gy][gx]:
                m[gy][gx] = True
    return m


def cells(mask: Mask) -> Iterator[Coord2D]:
    """Row-major iteration over set cells."""
    for y, row in enumerate(mask):
        for x, v in enumerate(row):
            if v:
                yield x, y


def count(mask: Mask) -> int:
    return sum(sum(1 for v in row if v) for row in mask)


def any_true(mask: Mask) -> bool:
    return any(any(row) for row in mask)


def components4(mask: Mask) -> List[List[Coord2D]]:
    """4-connected components in row-major discovery order (BFS order within each)."""
    w, h = size_of(mask)
    seen = make_mask(w, h)
    comps: List[List[Coord2D]] = []
    for y in range(h):
        for x in range(w):
            if not mask[y][x] or seen[y][x]:
                continue
            comp: List[Coord2D] = []
            q = deque([(x, y)])
            seen[y][x] = True
            while q:
                cx, cy = q.popleft()
                comp.append((cx, cy))
                for dx, dy in N4:
                    nx, ny = cx + dx, cy + dy
                    if 0 <= nx < w and 0 <= ny < h and mask[ny][nx] and not seen[ny][nx]:
                        seen[ny][nx] = True
                        q.append((nx, ny))
            comps.append(comp)
    return comps


def is_connected4(mask: Mask) -> bool:
    """True when the set cells form exactly one 4-connected component."""
    return len(components4(mask)) == 1


__all__ = [
    "Mask",
    "N4",
    "N8",
    "make_mask",
    "size_of",
    "in_bounds",
    "rect_mask",
    "shape_scaled_to_room",
    "mask_not",
    "mask_or",
    "mask_and",
    "or_many",
    "and_not",
    "outer_perimeter",
    "adjacency_mask",
    "place_stencil_centered",
    "cells",
    "count",
    "any_true",
    "components4",
    "is_connected4",
]
