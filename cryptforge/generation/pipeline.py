"""Level generation orchestration.

``generate_level`` runs every phase against a single seeded ``LevelRng`` in a
fixed order and returns a ``Level``. Template mode is used when a room catalog
is supplied; otherwise rooms come from the BSP maze generator.
"""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from cryptforge.logging_utils import get_logger

from .config import GenerationConfig
from .corridors import Corridor, route_corridors
from .decorate import DecorationTag, plan_decorations
from .doors import DoorEvent, plan_doors
from .masks import (
    Mask,
    adjacency_mask,
    and_not,
    count,
    or_many,
    place_stencil_centered,
    rect_mask,
    shape_scaled_to_room,
)
from .maze import generate_maze
from .metrics import init_metrics
from .ownership import Flavor, OwnerGrid, build_regions
from .painter import (
    TileLayer,
    TilesetRegistry,
    blit_layer,
    carve_corridors,
    gid_to_local,
    paint_autotile,
    paint_floor,
    paint_walls,
    stamp_collision,
)
from .prefabs import RoomStyle, assign_prefabs, resolve_styles
from .rng import LevelRng
from .rooms import PlacedRoom, flatten_selection, place_rooms, select_rooms
from .templates import LAYER_NAMES, Catalog, TileProperties

log = get_logger("cryptforge.pipeline")

CELL_SIZE = 16


def _mask_rows(mask: Mask) -> List[str]:
    return ["".join("1" if v else "0" for v in row) for row in mask]


@dataclass
class Level:
    seed: str
    width: int
    height: int
    mode: str
    rooms: List[PlacedRoom]
    styles: List[RoomStyle]
    corridors: List[Corridor]
    doors: List[DoorEvent]
    masks: Dict[str, Mask]
    owner: OwnerGrid
    layers: Dict[str, TileLayer]
    template_layers: Dict[str, TileLayer]
    decorations: List[DecorationTag]
    tilesets: Dict[str, int]
    start: Optional[Tuple[int, int]]
    metrics: Dict[str, Any] = field(default_factory=dict)
    cell_size: int = CELL_SIZE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "seed": self.seed,
            "width": self.width,
            "height": self.height,
            "mode": self.mode,
            "cell_size": self.cell_size,
            "start": {"x": self.start[0], "y": self.start[1]} if self.start else None,
            "rooms": [
                {
                    "index": i,
                    "role": r.role,
                    "name": r.template.name if r.template is not None else None,
                    "x": r.x,
                    "y": r.y,
                    "w": r.w,
                    "h": r.h,
                    "wall_key": s.wall_key,
                    "floor_key": s.floor_key,
                    "prefab": s.prefab,
                }
                for i, (r, s) in enumerate(zip(self.rooms, self.styles))
            ],
            "corridors": [
                {
                    "from": c.from_index,
                    "to": c.to_index,
                    "fallback": c.fallback,
                    "rects": [list(rc.as_tuple()) for rc in c.rects],
                }
                for c in self.corridors
            ],
            "doors": [{"room": d.room, "x": d.x, "y": d.y, "w": d.w, "h": d.h, "edge": d.edge} for d in self.doors],
            "masks": {name: _mask_rows(m) for name, m in self.masks.items()},
            "owner": [[f.floor_key if f is not None else None for f in row] for row in self.owner],
            "tilesets": dict(self.tilesets),
            "layers": {name: layer.to_dict() for name, layer in self.layers.items()},
            "template_layers": {name: layer.to_dict() for name, layer in self.template_layers.items()},
            "decorations": [t.to_dict() for t in self.decorations],
            "metrics": dict(self.metrics),
        }

    def to_ascii(self) -> str:
        """One character per cell: ``#`` solid, ``.`` floor, ``+`` bridge, ``@`` start, ``L``/``K``/``S`` lock, key, secret."""
        floor = self.masks["floor"]
        bridges = self.masks["bridges"]
        marks: Dict[Tuple[int, int], str] = {}
        for t in self.decorations:
            if t.properties.get("locked"):
                marks[t.cell] = "L"
            elif "key_for" in t.properties:
                marks[t.cell] = "K"
            elif t.properties.get("secret_door"):
                marks[t.cell] = "S"
        if self.start is not None:
            marks[self.start] = "@"
        lines = []
        for y in range(self.height):
            row = []
            for x in range(self.width):
                if (x, y) in marks:
                    row.append(marks[(x, y)])
                elif bridges[y][x]:
                    row.append("+")
                elif floor[y][x]:
                    row.append(".")
                else:
                    row.append("#")
            lines.append("".join(row))
        return "\n".join(lines)


def _room_interior(room: PlacedRoom, style: RoomStyle, w: int, h: int) -> Mask:
    if style.shape:
        return shape_scaled_to_room(w, h, style.shape, *room.bounds)
    return rect_mask(w, h, *room.bounds)


def _corridor_mask(corridors: List[Corridor], w: int, h: int) -> Mask:
    return or_many(
        (rect_mask(w, h, rc.min_x, rc.min_y, rc.max_x - 1, rc.max_y - 1) for c in corridors for rc in c.rects),
        w,
        h,
    )


def start_position(rooms: List[PlacedRoom], w: int, h: int) -> Optional[Tuple[int, int]]:
    if not rooms:
        return None
    room = next((r for r in rooms if r.role == "start"), rooms[0])
    cx, cy = room.center
    return min(max(cx, 0), w - 1), min(max(cy, 0), h - 1)


def generate_level(
    config: Optional[GenerationConfig] = None,
    catalog: Optional[Catalog] = None,
    tile_properties: Optional[TileProperties] = None,
) -> Level:
    """Build a complete level.

    Phases run with per-phase timing recorded in ``metrics['phase_ms']``.
    Identical config and catalog always produce an identical level.
    """
    cfg = config or GenerationConfig()
    W, H = cfg.width, cfg.height
    rng = LevelRng(cfg.seed)
    metrics: Dict[str, Any] = init_metrics()
    phase_times: Dict[str, int] = {}
    start = time.perf_counter()

    def _phase(label, fn, *a, **k):
        ps = time.perf_counter(); r = fn(*a, **k); pe = time.perf_counter()
        phase_times[label] = int((pe - ps) * 1000)
        return r

    corridors: List[Corridor] = []
    doors: List[DoorEvent] = []
    if catalog is not None:
        mode = "template"
        selection = _phase("select_rooms", select_rooms, catalog, cfg.room_quotas, rng, cfg.roles)
        instances = flatten_selection(selection)
        metrics["rooms_selected"] = len(instances)
        rooms = _phase("place_rooms", place_rooms, instances, W, H, rng, cfg.max_attempts, metrics)
        corridors = _phase(
            "route_corridors", route_corridors, rooms, rng, cfg.corridor_width, cfg.door_sentinel_id, (W, H), metrics
        )
        rooms, doors = _phase(
            "plan_doors",
            plan_doors,
            rooms,
            corridors,
            rng,
            cfg.door_wall_tile,
            cfg.max_door_width,
            cfg.floor_tile_under_door,
            metrics,
        )
        corridor_raw = _corridor_mask(corridors, W, H)
    else:
        mode = "maze"
        maze = _phase("maze", generate_maze, W, H, rng, cfg.maze_min_leaf, cfg.maze_room_size)
        rooms = maze.rooms
        metrics["rooms_selected"] = metrics["rooms_placed"] = len(rooms)
        room_rects = or_many((rect_mask(W, H, *r.bounds) for r in rooms), W, H)
        corridor_raw = and_not(maze.dug, room_rects)

    assignments = _phase("assign_prefabs", assign_prefabs, len(rooms), cfg.prefabs, rng)
    styles = resolve_styles(assignments, cfg.wall_keys, cfg.floor_keys, rng)
    metrics["prefab_rooms"] = sum(1 for s in styles if s.prefab)

    interiors = [_room_interior(r, s, W, H) for r, s in zip(rooms, styles)]
    flavors = [Flavor(s.floor_key, s.wall_key) for s in styles]
    corridor_flavor = Flavor(cfg.corridor_floor_key, cfg.corridor_wall_key, corridor=True)
    regions = _phase("regions", build_regions, interiors, flavors, corridor_raw, corridor_flavor)
    metrics["bridges"] = count(regions.bridges)

    registry = TilesetRegistry()
    registry.register(cfg.tileset_keys())
    registry.register(k for s in styles for k in (s.wall_key, s.floor_key, *(d.tileset_key for d in s.decorations)))

    layers = {name: TileLayer.for_grid(name, W, H, scale=2) for name in ("walls", "floor", "decor")}

    def _paint():
        n = paint_floor(layers["floor"], regions.floor, regions.owner, cfg.autotile_table, registry)
        n += paint_walls(layers["walls"], regions.solid, regions.owner, cfg.autotile_table, registry, cfg.base_wall_key)
        for room, style, interior in zip(rooms, styles, interiors):
            for deco in style.decorations:
                stencil_mask = place_stencil_centered(deco.stencil, interior, *room.bounds)
                n += paint_autotile(
                    layers["decor"], stencil_mask, cfg.autotile_table, registry, deco.tileset_key, deco.collidable
                )
        return n

    metrics["tiles_painted"] = _phase("paint", _paint)

    template_layers: Dict[str, TileLayer] = {}
    if mode == "template":
        template_layers = {name: TileLayer.for_grid(name, W, H) for name in LAYER_NAMES}

        def _blit():
            for r in rooms:
                for name in LAYER_NAMES:
                    raw = r.layer(name)
                    if raw is not None:
                        blit_layer(template_layers[name], raw, r.x, r.y, cfg.layer_first_gids)
            carve_corridors(corridors, template_layers, cfg.corridor_floor_tile)
            door_local = gid_to_local("walls", cfg.door_wall_tile, cfg.layer_first_gids)
            props = tile_properties or {}
            stamp_collision(template_layers["walls"], props.get("walls", {}), skip=lambda t: t == door_local)
            for name in ("decoration", "misc"):
                stamp_collision(template_layers[name], props.get(name, {}))

        _phase("blit_templates", _blit)

    door_masks = [adjacency_mask(interior, regions.corridor) for interior in interiors]
    decorations = _phase(
        "decorate",
        plan_decorations,
        layers["floor"],
        layers["walls"],
        interiors,
        door_masks,
        regions.solid,
        regions.corridor,
        rng,
        metrics,
    )

    metrics["runtime_ms"] = int((time.perf_counter() - start) * 1000)
    metrics["phase_ms"] = phase_times
    level = Level(
        seed=cfg.seed,
        width=W,
        height=H,
        mode=mode,
        rooms=list(rooms),
        styles=styles,
        corridors=list(corridors),
        doors=list(doors),
        masks={
            "floor": regions.floor,
            "solid": regions.solid,
            "corridor": regions.corridor,
            "bridges": regions.bridges,
        },
        owner=regions.owner,
        layers=layers,
        template_layers=template_layers,
        decorations=decorations,
        tilesets=registry.as_dict(),
        start=start_position(rooms, W, H),
        metrics=metrics,
    )
    log.info(
        event="level_generated",
        seed=cfg.seed,
        mode=mode,
        rooms=len(rooms),
        corridors=len(corridors),
        doors=len(doors),
        locks=metrics["locks_placed"],
        runtime_ms=metrics["runtime_ms"],
    )
    return level


def generate_from_mapping(
    overrides: Optional[Mapping[str, Any]] = None,
    catalog: Optional[Catalog] = None,
    tile_properties: Optional[TileProperties] = None,
    base: Optional[GenerationConfig] = None,
) -> Level:
    cfg = (base or GenerationConfig())
    if overrides:
        cfg = cfg.with_overrides(overrides)
    return generate_level(cfg, catalog, tile_properties)


__all__ = ["CELL_SIZE", "Level", "generate_from_mapping", "generate_level", "start_position"]
