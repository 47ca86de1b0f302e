"""Room selection from the template catalog and collision-free placement."""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from cryptforge.errors import CatalogError
from cryptforge.logging_utils import get_logger

from .rng import LevelRng
from .templates import Catalog, RawLayer, RoomTemplate

log = get_logger("cryptforge.rooms")

DEFAULT_ROLES = ("start", "room", "next_level")

Rect = Tuple[int, int, int, int]  # half-open (min_x, min_y, max_x, max_y)


@dataclass(frozen=True)
class PlacedRoom:
    role: str
    x: int
    y: int
    w: int
    h: int
    template: Optional[RoomTemplate] = None

    @property
    def center(self) -> Tuple[int, int]:
        return (self.x + self.w // 2, self.y + self.h // 2)

    @property
    def rect(self) -> Rect:
        return (self.x, self.y, self.x + self.w, self.y + self.h)

    @property
    def bounds(self) -> Tuple[int, int, int, int]:
        """Inclusive (left, top, right, bottom)."""
        return (self.x, self.y, self.x + self.w - 1, self.y + self.h - 1)

    def layer(self, name: str) -> Optional[RawLayer]:
        return self.template.layer(name) if self.template is not None else None

    def with_template(self, template: RoomTemplate) -> "PlacedRoom":
        return replace(self, template=template)


def rects_overlap(a: Rect, b: Rect) -> bool:
    """Half-open overlap test; shared edges do not count."""
    return not (a[2] <= b[0] or b[2] <= a[0] or a[3] <= b[1] or b[3] <= a[1])


def room_footprint(template: RoomTemplate) -> Tuple[int, int]:
    floor = template.layer("floor")
    if floor is not None:
        return floor.width, floor.height
    w = h = 0
    for layer in template.layers:
        w = max(w, layer.width)
        h = max(h, layer.height)
    return w, h


# ---------------------------------------------------------------------------
# Pool selection
# ---------------------------------------------------------------------------


def _pick_exact(pool: Sequence[RoomTemplate], n: int, rng: LevelRng) -> List[RoomTemplate]:
    if n <= 0 or not pool:
        return []
    if n <= len(pool):
        idx = rng.shuffle_in_place(list(range(len(pool))))
        return [pool[i] for i in idx[:n]]
    res = rng.shuffle_in_place(list(pool))
    while len(res) < n:
        res.append(pool[rng.integer_in_range(0, len(pool) - 1)])
    return res


def select_rooms(
    catalog: Catalog,
    quotas: Mapping[str, int],
    rng: LevelRng,
    roles: Iterable[str] = DEFAULT_ROLES,
) -> Dict[str, List[RoomTemplate]]:
    """Draw templates per role.

    ``start`` always yields exactly one uniformly chosen template. Other roles
    sample without replacement up to the pool size, then with replacement for
    the rest of the quota.
    """
    out: Dict[str, List[RoomTemplate]] = {}
    for role in roles:
        pool = catalog.get(role)
        if not isinstance(pool, list) or not pool or not all(isinstance(t, RoomTemplate) for t in pool):
            raise CatalogError(f"role {role!r} needs a non-empty list of room templates", role=role)
        if role == "start":
            out[role] = [rng.pick(pool)]
        else:
            out[role] = _pick_exact(pool, int(quotas.get(role, 0) or 0), rng)
        log.debug(event="rooms_selected", role=role, count=len(out[role]), pool=len(pool))
    return out


def flatten_selection(selection: Mapping[str, List[RoomTemplate]]) -> List[RoomTemplate]:
    items: List[RoomTemplate] = []
    for templates in selection.values():
        items.extend(templates)
    return items


# ---------------------------------------------------------------------------
# Placement
# ---------------------------------------------------------------------------


class SpatialIndex:
    """Uniform bucket grid over half-open rectangles."""

    def __init__(self, bucket: int = 8):
        self.bucket = max(1, bucket)
        self._buckets: Dict[Tuple[int, int], List[Tuple[Rect, object]]] = {}

    def _keys(self, r: Rect):
        b = self.bucket
        for by in range(r[1] // b, (max(r[1], r[3] - 1)) // b + 1):
            for bx in range(r[0] // b, (max(r[0], r[2] - 1)) // b + 1):
                yield bx, by

    def insert(self, r: Rect, payload: object = None) -> None:
        for k in self._keys(r):
            self._buckets.setdefault(k, []).append((r, payload))

    def search(self, r: Rect) -> List[Tuple[Rect, object]]:
        seen = set()
        hits = []
        for k in self._keys(r):
            for entry in self._buckets.get(k, ()):
                if id(entry) in seen:
                    continue
                seen.add(id(entry))
                if rects_overlap(r, entry[0]):
                    hits.append(entry)
        return hits


def place_rooms(
    templates: Sequence[RoomTemplate],
    width: int,
    height: int,
    rng: LevelRng,
    max_attempts: int = 300,
    metrics: Optional[dict] = None,
) -> List[PlacedRoom]:
    """Place rooms at random non-overlapping origins.

    Input order is shuffled first. A room that does not fit the map or finds
    no free origin within ``max_attempts`` tries is dropped.
    """
    shuffled = rng.shuffle_in_place(list(templates))
    index = SpatialIndex()
    placed: List[PlacedRoom] = []
    dropped = 0
    for t in shuffled:
        w, h = room_footprint(t)
        if w < 1 or h < 1 or w > width or h > height:
            dropped += 1
            log.debug(event="room_dropped", role=t.role, name=t.name, reason="too_large", w=w, h=h)
            continue
        for _ in range(max_attempts):
            x = rng.integer_in_range(0, width - w)
            y = rng.integer_in_range(0, height - h)
            cand = (x, y, x + w, y + h)
            if index.search(cand):
                continue
            room = PlacedRoom(role=t.role, x=x, y=y, w=w, h=h, template=t)
            index.insert(cand, room)
            placed.append(room)
            break
        else:
            dropped += 1
            log.debug(event="room_dropped", role=t.role, name=t.name, reason="no_space", attempts=max_attempts)
    if metrics is not None:
        metrics["rooms_placed"] = len(placed)
        metrics["rooms_dropped"] = dropped
    return placed


__all__ = [
    "DEFAULT_ROLES",
    "PlacedRoom",
    "SpatialIndex",
    "flatten_selection",
    "place_rooms",
    "rects_overlap",
    "room_footprint",
    "select_rooms",
]
