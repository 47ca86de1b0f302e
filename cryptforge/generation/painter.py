"""Tile layers and everything that writes into them.

Two families of layers exist:

* autotiled layers at 2x resolution, painted from masks through the
  marching-squares table with one registered tileset per flavor key;
* template layers at 1x resolution, blitted straight from room template data,
  then carved by corridors and stamped with collision flags.

Painting never fails on a missing tileset key; the affected corner or cell is
left empty.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from cryptforge.logging_utils import get_logger

from .autotile import SUBTILE_COUNT, quad, to_zero_based
from .corridors import Corridor
from .masks import Mask, cells, size_of
from .ownership import CORNERS, OwnerGrid, corner_wall_flavor
from .templates import RawLayer

log = get_logger("cryptforge.painter")

EMPTY = -1
COLLIDE_PROP = "collidable"


@dataclass
class TileLayer:
    name: str
    width: int
    height: int
    scale: int = 1
    tiles: List[List[int]] = field(default_factory=list)
    properties: Dict[Tuple[int, int], Dict[str, Any]] = field(default_factory=dict)

    def __post_init__(self):
        if not self.tiles:
            self.tiles = [[EMPTY] * self.width for _ in range(self.height)]

    @classmethod
    def for_grid(cls, name: str, grid_w: int, grid_h: int, scale: int = 1) -> "TileLayer":
        return cls(name, grid_w * scale, grid_h * scale, scale)

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def get(self, x: int, y: int) -> int:
        return self.tiles[y][x] if self.in_bounds(x, y) else EMPTY

    def put(self, tile: int, x: int, y: int, **props) -> None:
        if not self.in_bounds(x, y):
            return
        self.tiles[y][x] = tile
        if tile == EMPTY:
            self.properties.pop((x, y), None)
        elif props:
            self.properties.setdefault((x, y), {}).update(props)

    def tag(self, x: int, y: int, props: Mapping[str, Any]) -> bool:
        """Merge ``props`` into a painted tile; empty cells are left alone."""
        if self.get(x, y) == EMPTY:
            return False
        self.properties.setdefault((x, y), {}).update(props)
        return True

    def props_at(self, x: int, y: int) -> Dict[str, Any]:
        return self.properties.get((x, y), {})

    def painted(self) -> int:
        return sum(1 for row in self.tiles for v in row if v != EMPTY)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "width": self.width,
            "height": self.height,
            "scale": self.scale,
            "data": [v for row in self.tiles for v in row],
            "properties": [
                {"x": x, "y": y, **props} for (x, y), props in sorted(self.properties.items(), key=lambda kv: (kv[0][1], kv[0][0]))
            ],
        }


class TilesetRegistry:
    """Assigns first-gids to tileset keys in registration order."""

    def __init__(self, tiles_per_set: int = SUBTILE_COUNT, first_gid: int = 1):
        self.tiles_per_set = tiles_per_set
        self._next = first_gid
        self._gids: Dict[str, int] = {}

    def register(self, keys: Iterable[str]) -> Dict[str, int]:
        for key in keys:
            if key in self._gids:
                continue
            self._gids[key] = self._next
            self._next += self.tiles_per_set
        return dict(self._gids)

    def first_gid(self, key: Optional[str]) -> Optional[int]:
        if key is None:
            return None
        return self._gids.get(key)

    def __contains__(self, key: str) -> bool:
        return key in self._gids

    def as_dict(self) -> Dict[str, int]:
        return dict(self._gids)


_OFFSETS = ((0, 0), (1, 0), (0, 1), (1, 1))


def _put_quad(layer: TileLayer, x: int, y: int, ids, gids, collidable: bool) -> int:
    written = 0
    for (ox, oy), sub, gid in zip(_OFFSETS, ids, gids):
        if gid is None:
            continue
        layer.put(gid + to_zero_based(sub), 2 * x + ox, 2 * y + oy, **{COLLIDE_PROP: collidable})
        written += 1
    return written


def paint_autotile(
    layer: TileLayer, mask: Mask, table, registry: TilesetRegistry, key: str, collidable: bool = False
) -> int:
    """Autotile every set cell of ``mask`` from a single tileset."""
    gid = registry.first_gid(key)
    if gid is None:
        log.debug(event="tileset_missing", layer=layer.name, key=key)
        return 0
    w, h = size_of(mask)
    written = 0
    for x, y in cells(mask):
        written += _put_quad(layer, x, y, quad(table, mask, x, y, w, h), (gid,) * 4, collidable)
    return written


def paint_floor(
    layer: TileLayer, floor: Mask, owner: OwnerGrid, table, registry: TilesetRegistry, collidable: bool = False
) -> int:
    """Quad shapes come from the combined floor; each cell's tileset from its owner."""
    w, h = size_of(floor)
    written = 0
    for x, y in cells(floor):
        f = owner[y][x]
        gid = registry.first_gid(f.floor_key) if f is not None else None
        if gid is None:
            continue
        written += _put_quad(layer, x, y, quad(table, floor, x, y, w, h), (gid,) * 4, collidable)
    return written


def paint_walls(
    layer: TileLayer,
    solid: Mask,
    owner: OwnerGrid,
    table,
    registry: TilesetRegistry,
    base_key: str,
    collidable: bool = True,
) -> int:
    """Wall quads where each corner takes the wall tileset of its neighbouring floor owner."""
    w, h = size_of(solid)
    written = 0
    for x, y in cells(solid):
        gids = []
        for corner in CORNERS:
            f = corner_wall_flavor(owner, x, y, corner)
            gids.append(registry.first_gid(f.wall_key if f is not None else base_key))
        written += _put_quad(layer, x, y, quad(table, solid, x, y, w, h), gids, collidable)
    return written


# ---------------------------------------------------------------------------
# Template layers
# ---------------------------------------------------------------------------


def gid_to_local(layer_name: str, gid: int, first_gids: Mapping[str, int]) -> int:
    if gid == 0:
        return EMPTY
    local = gid - first_gids.get(layer_name.lower(), 1)
    return local if local >= 0 else EMPTY


def blit_layer(layer: TileLayer, raw: RawLayer, dx: int, dy: int, first_gids: Mapping[str, int]) -> None:
    for sy in range(raw.height):
        for sx in range(raw.width):
            layer.put(gid_to_local(raw.name, raw.get(sx, sy), first_gids), dx + sx, dy + sy)


def carve_corridors(
    corridors: Sequence[Corridor],
    layers: Mapping[str, TileLayer],
    floor_id: int,
) -> int:
    """Floor tile under every corridor cell; walls, decoration and misc cleared."""
    floor = layers["floor"]
    carved = 0
    for c in corridors:
        for rc in c.rects:
            for y in range(max(0, rc.min_y), min(floor.height, rc.max_y)):
                for x in range(max(0, rc.min_x), min(floor.width, rc.max_x)):
                    floor.put(floor_id, x, y)
                    for name in ("walls", "decoration", "misc"):
                        if name in layers:
                            layers[name].put(EMPTY, x, y)
                    carved += 1
    return carved


def stamp_collision(
    layer: TileLayer,
    tile_props: Mapping[int, Mapping[str, Any]],
    skip: Optional[Callable[[int], bool]] = None,
) -> int:
    """Flag painted tiles whose tileset entry marks them collidable."""
    stamped = 0
    for y in range(layer.height):
        for x in range(layer.width):
            t = layer.tiles[y][x]
            if t < 0 or (skip is not None and skip(t)):
                continue
            src = tile_props.get(t)
            if src and src.get(COLLIDE_PROP):
                layer.tag(x, y, {COLLIDE_PROP: True})
                stamped += 1
    return stamped


__all__ = [
    "COLLIDE_PROP",
    "EMPTY",
    "TileLayer",
    "TilesetRegistry",
    "blit_layer",
    "carve_corridors",
    "gid_to_local",
    "paint_autotile",
    "paint_floor",
    "paint_walls",
    "stamp_collision",
]
