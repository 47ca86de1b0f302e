"""Marching-squares autotiling into 2x2 sub-tile quads.

Each source cell becomes four sub-tiles (TL, TR, BL, BR). For every corner the
2x2 block of cells sharing that corner vertex is sampled into a 4-bit case;
the case selects a sub-tile id (1..48) from a 16-row table. Out-of-bounds cells
count as occupied so regions touching the map edge render closed.

Default sheet layout (6 columns x 8 rows of sub-tiles, id = row * 6 + col + 1):

    rows 0-1   inner (concave) corner tile at columns 4-5: 5, 6 / 11, 12
    rows 2-7   3x3 nine-slice: 13 outer TL ... 18 outer TR ... 43 outer BL ... 48 outer BR

Table rows are indexed by case; columns hold the id for corners BR, BL, TR, TL
(corner ``i`` reads column ``3 - i``).
"""
from __future__ import annotations

from typing import Any, Sequence, Tuple

from cryptforge.errors import ConfigError

Quad = Tuple[int, int, int, int]

DEFAULT_INDEX_TABLE: Tuple[Quad, ...] = (
    (48, 43, 18, 13),
    (48, 43, 18, 13),
    (48, 43, 18, 13),
    (48, 43, 16, 15),
    (48, 43, 18, 13),
    (48, 31, 18, 25),
    (48, 43, 18, 13),
    (48, 31, 16, 5),
    (48, 43, 18, 13),
    (48, 43, 18, 13),
    (36, 43, 30, 13),
    (36, 43, 6, 15),
    (46, 45, 18, 13),
    (46, 11, 18, 25),
    (12, 45, 30, 13),
    (34, 33, 28, 27),
)

SUBTILE_COUNT = 48


def validate_table(table: Sequence[Sequence[int]]) -> None:
    if len(table) != 16:
        raise ConfigError(f"autotile table needs 16 rows (got {len(table)})")
    for i, row in enumerate(table):
        if len(row) != 4:
            raise ConfigError(f"autotile table row {i} needs 4 ids (got {len(row)})")
        for v in row:
            if not isinstance(v, int) or isinstance(v, bool) or not 1 <= v <= SUBTILE_COUNT:
                raise ConfigError(f"autotile table row {i} has id {v!r} outside 1..{SUBTILE_COUNT}")


def point_blocks(grid: Sequence[Sequence[Any]], x: int, y: int, w: int, h: int) -> Tuple[int, int, int, int]:
    """4-bit neighbourhood case for each corner of cell (x, y), TL/TR/BL/BR order."""
    cur = grid[y][x]

    def occupied(cx: int, cy: int) -> int:
        if cx < 0 or cy < 0 or cx >= w or cy >= h:
            return 1
        return 1 if grid[cy][cx] == cur else 0

    out = []
    for i in range(4):
        ox, oy = i % 2, i // 2
        b = 0
        for j in range(4):
            mx, my = j % 2, j // 2
            b += occupied(x + ox + mx - 1, y + oy + my - 1) << (3 - j)
        out.append(b & 0b1111)
    return out[0], out[1], out[2], out[3]


def quad(table: Sequence[Sequence[int]], grid: Sequence[Sequence[Any]], x: int, y: int, w: int, h: int) -> Quad:
    pb = point_blocks(grid, x, y, w, h)
    tl = table[pb[0]][3]
    tr = table[pb[1]][2]
    bl = table[pb[2]][1]
    br = table[pb[3]][0]

    # concave corner partners; avoids single-cell notches at run ends
    if tl == 13:
        if tr == 16:
            tr = 14
        if bl == 31:
            bl = 19
    if tr == 18:
        if tl == 15:
            tl = 17
        if br == 36:
            br = 24
    if bl == 43:
        if tl == 25:
            tl = 37
        if br == 46:
            br = 44
    if br == 48:
        if tr == 30:
            tr = 42
        if bl == 45:
            bl = 47
    return tl, tr, bl, br


def to_zero_based(idx: int) -> int:
    return max(1, min(SUBTILE_COUNT, idx)) - 1


__all__ = ["DEFAULT_INDEX_TABLE", "SUBTILE_COUNT", "Quad", "point_blocks", "quad", "to_zero_based", "validate_table"]
