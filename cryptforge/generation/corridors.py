"""Corridor routing between placed rooms.

Rooms are joined along a Prim minimum spanning tree over their centers. Each
tree edge is routed with A* between one anchor cell per room, around the
padded footprints of every other room. Routing never fails: when A* finds no
path, a two-segment elbow that ignores obstacles is used instead.
"""
from __future__ import annotations

import heapq
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Set, Tuple

from cryptforge.logging_utils import get_logger

from .rng import LevelRng
from .rooms import PlacedRoom

log = get_logger("cryptforge.corridors")

Point = Tuple[int, int]

DIRS_X_FIRST: Tuple[Point, ...] = ((1, 0), (0, 1), (-1, 0), (0, -1))
DIRS_Y_FIRST: Tuple[Point, ...] = ((0, 1), (1, 0), (0, -1), (-1, 0))


@dataclass(frozen=True)
class CorridorRect:
    """Half-open rectangle ``[min_x, max_x) x [min_y, max_y)``."""

    min_x: int
    min_y: int
    max_x: int
    max_y: int
    kind: str = "corridor"

    @property
    def area(self) -> int:
        return max(0, self.max_x - self.min_x) * max(0, self.max_y - self.min_y)

    def as_tuple(self) -> Tuple[int, int, int, int]:
        return (self.min_x, self.min_y, self.max_x, self.max_y)


@dataclass(frozen=True)
class Corridor:
    rects: Tuple[CorridorRect, ...]
    from_index: int
    to_index: int
    start: Point
    end: Point
    fallback: bool = False


def _manhattan(a: Point, b: Point) -> int:
    return abs(a[0] - b[0]) + abs(a[1] - b[1])


def mst_prim(centers: Sequence[Point]) -> List[Tuple[int, int]]:
    """Prim's MST from node 0; returns ``(parent, child)`` edges ordered by child index."""
    n = len(centers)
    if n <= 1:
        return []
    in_tree = [False] * n
    dist = [float("inf")] * n
    parent = [-1] * n
    dist[0] = 0
    for _ in range(n - 1):
        u, best = -1, float("inf")
        for v in range(n):
            if not in_tree[v] and dist[v] < best:
                best, u = dist[v], v
        if u == -1:
            break
        in_tree[u] = True
        for v in range(n):
            if in_tree[v]:
                continue
            w = _manhattan(centers[u], centers[v])
            if w < dist[v]:
                dist[v] = w
                parent[v] = u
    return [(parent[v], v) for v in range(1, n) if parent[v] != -1]


# ---------------------------------------------------------------------------
# Anchors
# ---------------------------------------------------------------------------


def door_anchors(room: PlacedRoom, toward: Point, sentinel: int) -> List[Point]:
    """Sentinel cells of the room's misc layer, nearest to ``toward`` first."""
    misc = room.layer("misc")
    if misc is None:
        return []
    pts = []
    for i, v in enumerate(misc.data):
        if v == sentinel:
            pts.append((room.x + i % misc.width, room.y + i // misc.width))
    # stable sort keeps row-major order on ties
    pts.sort(key=lambda p: _manhattan(p, toward))
    return pts


def _edge_distances(room: PlacedRoom, p: Point) -> Tuple[int, int, int, int]:
    l, t, r, b = room.bounds
    return abs(p[0] - l), abs(p[0] - r), abs(p[1] - t), abs(p[1] - b)


def border_point_toward(room: PlacedRoom, toward: Point) -> Point:
    """Point on the room's rectangle nearest ``toward``.

    The clamped point is moved off the corners when the chosen side is at
    least 3 cells long, since a corner cell touches two edges and cannot hold
    a door.
    """
    l, t, r, b = room.bounds
    px = min(max(toward[0], l), r)
    py = min(max(toward[1], t), b)
    d_l, d_r, d_t, d_b = _edge_distances(room, (px, py))
    m = min(d_l, d_r, d_t, d_b)
    if m in (d_l, d_r):
        if room.h >= 3:
            py = min(max(py, t + 1), b - 1)
        return (l if m == d_l else r, py)
    if room.w >= 3:
        px = min(max(px, l + 1), r - 1)
    return (px, t if m == d_t else b)


def pick_anchor(room: PlacedRoom, partner: PlacedRoom, sentinel: int) -> Point:
    anchors = door_anchors(room, partner.center, sentinel)
    return anchors[0] if anchors else border_point_toward(room, partner.center)


def _exit_lane(room: PlacedRoom, anchor: Point, pad: int) -> List[Point]:
    """Cells stepping from ``anchor`` through the nearest side and its padding."""
    d_l, d_r, d_t, d_b = _edge_distances(room, anchor)
    m = min(d_l, d_r, d_t, d_b)
    if m == d_l:
        step = (-1, 0)
    elif m == d_r:
        step = (1, 0)
    elif m == d_t:
        step = (0, -1)
    else:
        step = (0, 1)
    return [(anchor[0] + step[0] * k, anchor[1] + step[1] * k) for k in range(1, m + pad + 1)]


def blocked_cells(
    rooms: Sequence[PlacedRoom], pad: int, a: int, b: int, allow: Set[Point]
) -> Set[Point]:
    """Room footprints grown by ``pad``; ``allow`` cells stay open inside rooms ``a`` and ``b``."""
    blocked: Set[Point] = set()
    for i, r in enumerate(rooms):
        exempt = i in (a, b)
        for y in range(r.y - pad, r.y + r.h + pad):
            for x in range(r.x - pad, r.x + r.w + pad):
                if exempt and (x, y) in allow:
                    continue
                blocked.add((x, y))
    return blocked


def search_bounds(
    rooms: Sequence[PlacedRoom], margin: int, map_size: Optional[Tuple[int, int]] = None
) -> Tuple[int, int, int, int]:
    """Inclusive (min_x, min_y, max_x, max_y) around every room, optionally clipped to the map."""
    min_x = min(r.x for r in rooms) - margin
    min_y = min(r.y for r in rooms) - margin
    max_x = max(r.x + r.w - 1 for r in rooms) + margin
    max_y = max(r.y + r.h - 1 for r in rooms) + margin
    if map_size is not None:
        min_x, min_y = max(0, min_x), max(0, min_y)
        max_x, max_y = min(map_size[0] - 1, max_x), min(map_size[1] - 1, max_y)
    return min_x, min_y, max_x, max_y


def astar(
    start: Point,
    goal: Point,
    blocked: Set[Point],
    bounds: Tuple[int, int, int, int],
    dirs: Sequence[Point] = DIRS_X_FIRST,
) -> Optional[List[Point]]:
    """4-directional A* with Manhattan heuristic; ties resolve in insertion order."""
    min_x, min_y, max_x, max_y = bounds
    counter = 0
    open_heap = [(_manhattan(start, goal), counter, start)]
    g: Dict[Point, int] = {start: 0}
    came: Dict[Point, Point] = {}
    closed: Set[Point] = set()
    while open_heap:
        _, _, cur = heapq.heappop(open_heap)
        if cur == goal:
            path = [cur]
            while cur in came:
                cur = came[cur]
                path.append(cur)
            path.reverse()
            return path
        if cur in closed:
            continue
        closed.add(cur)
        cx, cy = cur
        for dx, dy in dirs:
            nxt = (cx + dx, cy + dy)
            if not (min_x <= nxt[0] <= max_x and min_y <= nxt[1] <= max_y):
                continue
            if nxt in blocked or nxt in closed:
                continue
            tentative = g[cur] + 1
            if tentative < g.get(nxt, 1 << 30):
                came[nxt] = cur
                g[nxt] = tentative
                counter += 1
                heapq.heappush(open_heap, (tentative + _manhattan(nxt, goal), counter, nxt))
    return None


# ---------------------------------------------------------------------------
# Rectangles
# ---------------------------------------------------------------------------


def h_rect(x1: int, x2: int, y: int, width: int) -> CorridorRect:
    half = width // 2
    return CorridorRect(min(x1, x2), y - half, max(x1, x2) + 1, y - half + width)


def v_rect(y1: int, y2: int, x: int, width: int) -> CorridorRect:
    half = width // 2
    return CorridorRect(x - half, min(y1, y2), x - half + width, max(y1, y2) + 1)


def compress_path(path: Sequence[Point], width: int) -> List[CorridorRect]:
    """Merge same-direction steps into maximal runs, each inflated to ``width``."""
    rects: List[CorridorRect] = []
    if len(path) <= 1:
        if path:
            rects.append(h_rect(path[0][0], path[0][0], path[0][1], width))
        return rects
    i = 0
    while i < len(path) - 1:
        a, b = path[i], path[i + 1]
        dx, dy = b[0] - a[0], b[1] - a[1]
        j = i + 1
        last = b
        while j + 1 < len(path):
            c, d = path[j], path[j + 1]
            if (d[0] - c[0], d[1] - c[1]) != (dx, dy):
                break
            last = d
            j += 1
        if dx != 0:
            rects.append(h_rect(a[0], last[0], a[1], width))
        else:
            rects.append(v_rect(a[1], last[1], a[0], width))
        i = j
    return rects


def fallback_elbow(a: Point, b: Point, width: int, rng: LevelRng) -> List[CorridorRect]:
    if rng.frac() < 0.5:
        return [h_rect(a[0], b[0], a[1], width), v_rect(a[1], b[1], b[0], width)]
    return [v_rect(a[1], b[1], a[0], width), h_rect(a[0], b[0], b[1], width)]


def route_corridors(
    rooms: Sequence[PlacedRoom],
    rng: LevelRng,
    width: int = 1,
    sentinel: int = 13,
    map_size: Optional[Tuple[int, int]] = None,
    metrics: Optional[dict] = None,
) -> List[Corridor]:
    """One corridor per spanning-tree edge, in tree order."""
    if len(rooms) <= 1:
        return []
    width = max(1, int(width))
    pad = 1 + (width - 1) // 2
    bounds = search_bounds(rooms, 6 + pad, map_size)
    corridors: List[Corridor] = []
    fallbacks = 0
    for i, j in mst_prim([r.center for r in rooms]):
        a, b = rooms[i], rooms[j]
        a_pt = pick_anchor(a, b, sentinel)
        b_pt = pick_anchor(b, a, sentinel)
        allow = {a_pt, b_pt, *_exit_lane(a, a_pt, pad), *_exit_lane(b, b_pt, pad)}
        blocked = blocked_cells(rooms, pad, i, j, allow)
        dirs = DIRS_X_FIRST if rng.frac() < 0.5 else DIRS_Y_FIRST
        path = astar(a_pt, b_pt, blocked, bounds, dirs)
        if path:
            corridors.append(Corridor(tuple(compress_path(path, width)), i, j, a_pt, b_pt))
            continue
        fallbacks += 1
        log.warn(event="corridor_fallback", edge=f"{i}-{j}", start=f"{a_pt[0]},{a_pt[1]}", end=f"{b_pt[0]},{b_pt[1]}")
        corridors.append(Corridor(tuple(fallback_elbow(a_pt, b_pt, width, rng)), i, j, a_pt, b_pt, fallback=True))
    if metrics is not None:
        metrics["corridors_routed"] = len(corridors)
        metrics["corridors_fallback"] = fallbacks
    return corridors


__all__ = [
    "CorridorRect",
    "Corridor",
    "mst_prim",
    "door_anchors",
    "border_point_toward",
    "pick_anchor",
    "blocked_cells",
    "search_bounds",
    "astar",
    "h_rect",
    "v_rect",
    "compress_path",
    "fallback_elbow",
    "route_corridors",
]
