"""Door carving where corridor segments cross room edges.

Rooms are never modified in place: ``plan_doors`` returns fresh PlacedRoom
copies whose templates carry the carved wall (and optionally floor) layers, so
a template reused by several rooms is never aliased.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from cryptforge.logging_utils import get_logger

from .corridors import Corridor
from .rng import LevelRng
from .rooms import PlacedRoom, SpatialIndex

log = get_logger("cryptforge.doors")


@dataclass(frozen=True)
class DoorEvent:
    room: int  # index into the room list
    x: int
    y: int
    w: int
    h: int
    edge: str = ""

    def cells(self):
        for yy in range(self.y, self.y + self.h):
            for xx in range(self.x, self.x + self.w):
                yield xx, yy


def clamp_door_width(v: int, max_width: int) -> int:
    return max(1, min(max_width, v))


def door_site(
    seg: Tuple[int, int, int, int], room: PlacedRoom, max_width: int, rng: LevelRng
) -> Optional[Tuple[int, int, int, int, str]]:
    """Door rectangle for one segment/room intersection, or None when it is not a door site.

    The intersection must touch exactly one room edge. The door is one cell
    deep on that edge; a random offset is drawn only when the span is clamped.
    """
    ix0, iy0 = max(seg[0], room.x), max(seg[1], room.y)
    ix1, iy1 = min(seg[2], room.x + room.w), min(seg[3], room.y + room.h)
    if ix1 <= ix0 or iy1 <= iy0:
        return None
    touched = [
        name
        for name, hit in (
            ("top", iy0 == room.y),
            ("bottom", iy1 == room.y + room.h),
            ("left", ix0 == room.x),
            ("right", ix1 == room.x + room.w),
        )
        if hit
    ]
    if len(touched) != 1:
        return None
    edge = touched[0]
    if edge in ("top", "bottom"):
        span = ix1 - ix0
        dw = clamp_door_width(span, max_width)
        dx = ix0 + (rng.integer_in_range(0, span - dw) if span > dw else 0)
        dy = room.y if edge == "top" else room.y + room.h - 1
        return dx, dy, dw, 1, edge
    span = iy1 - iy0
    dh = clamp_door_width(span, max_width)
    dy = iy0 + (rng.integer_in_range(0, span - dh) if span > dh else 0)
    dx = room.x if edge == "left" else room.x + room.w - 1
    return dx, dy, 1, dh, edge


def _carve(room: PlacedRoom, doors: Sequence[DoorEvent], wall_tile: int, floor_tile: Optional[int]) -> PlacedRoom:
    if room.template is None:
        return room
    t = room.template
    walls = t.layer("walls")
    if walls is None:
        return room
    changes: Dict[Tuple[int, int], int] = {}
    for d in doors:
        for cx, cy in d.cells():
            changes[(cx - room.x, cy - room.y)] = wall_tile
    t = t.with_layer(walls.with_cells(changes))
    floor = t.layer("floor")
    if floor is not None and floor_tile is not None:
        t = t.with_layer(floor.with_cells({k: floor_tile for k in changes}))
    return room.with_template(t)


def plan_doors(
    rooms: Sequence[PlacedRoom],
    corridors: Sequence[Corridor],
    rng: LevelRng,
    door_wall_tile: int = 0,
    max_door_width: int = 6,
    floor_tile_under_door: Optional[int] = None,
    metrics: Optional[dict] = None,
) -> Tuple[List[PlacedRoom], List[DoorEvent]]:
    """Carve a door for every corridor segment that crosses exactly one room edge.

    Returns ``(rooms, doors)``; the input rooms are left untouched.
    """
    max_door_width = max(1, int(max_door_width))
    index = SpatialIndex()
    for i, r in enumerate(rooms):
        index.insert(r.rect, i)
    doors: List[DoorEvent] = []
    for c in corridors:
        for seg in c.rects:
            hits = sorted(idx for _, idx in index.search(seg.as_tuple()))
            for ri in hits:
                site = door_site(seg.as_tuple(), rooms[ri], max_door_width, rng)
                if site is None:
                    continue
                dx, dy, dw, dh, edge = site
                doors.append(DoorEvent(ri, dx, dy, dw, dh, edge))
    per_room: Dict[int, List[DoorEvent]] = {}
    for d in doors:
        per_room.setdefault(d.room, []).append(d)
    carved = [
        _carve(r, per_room[i], door_wall_tile, floor_tile_under_door) if i in per_room else r
        for i, r in enumerate(rooms)
    ]
    log.debug(event="doors_planned", doors=len(doors), rooms=len(per_room))
    if metrics is not None:
        metrics["doors_created"] = len(doors)
    return carved, doors


__all__ = ["DoorEvent", "clamp_door_width", "door_site", "plan_doors"]
