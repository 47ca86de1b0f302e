"""Room template model and catalog loading.

A catalog maps a role key (``start``, ``room``, ``next_level`` or anything
else) to a pool of templates. Each template is a stack of equally-sized tile
layers exported from a map editor::

    {"room": [{"name": "crypt_a", "layers": [{"name": "floor", "width": 8,
               "height": 6, "data": [1, 1, ...]}, ...]}]}

Catalogs may also live in a directory holding one ``room_<role>.json`` per
role, each file containing that role's list.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from cryptforge.errors import CatalogError

LAYER_NAMES = ("floor", "walls", "decoration", "npc", "misc")
_LAYER_ALIASES = {"deco": "decoration", "wall": "walls"}


def canonical_layer_name(name: str) -> str:
    key = name.strip().lower()
    return _LAYER_ALIASES.get(key, key)


@dataclass(frozen=True)
class RawLayer:
    name: str
    width: int
    height: int
    data: Tuple[int, ...]

    def get(self, x: int, y: int) -> int:
        if x < 0 or y < 0 or x >= self.width or y >= self.height:
            return 0
        return self.data[y * self.width + x]

    def with_cells(self, changes: Mapping[Tuple[int, int], int]) -> "RawLayer":
        """Copy with ``{(x, y): tile}`` applied; out-of-range cells are ignored."""
        data = list(self.data)
        for (x, y), v in changes.items():
            if 0 <= x < self.width and 0 <= y < self.height:
                data[y * self.width + x] = v
        return replace(self, data=tuple(data))

    def non_empty_bounds(self) -> Optional[Tuple[int, int, int, int]]:
        xs, ys = [], []
        for i, v in enumerate(self.data):
            if v:
                xs.append(i % self.width)
                ys.append(i // self.width)
        if not xs:
            return None
        return min(xs), min(ys), max(xs), max(ys)


@dataclass(frozen=True)
class RoomTemplate:
    role: str
    layers: Tuple[RawLayer, ...] = ()
    name: str = ""

    def layer(self, name: str) -> Optional[RawLayer]:
        want = canonical_layer_name(name)
        for layer in self.layers:
            if canonical_layer_name(layer.name) == want:
                return layer
        return None

    def with_layer(self, new_layer: RawLayer) -> "RoomTemplate":
        """Copy with the same-named layer swapped out (appended when absent)."""
        want = canonical_layer_name(new_layer.name)
        layers = list(self.layers)
        for i, layer in enumerate(layers):
            if canonical_layer_name(layer.name) == want:
                layers[i] = new_layer
                break
        else:
            layers.append(new_layer)
        return replace(self, layers=tuple(layers))


Catalog = Dict[str, List[RoomTemplate]]
TileProperties = Dict[str, Dict[int, Dict[str, Any]]]


def _parse_layer(raw: Any, role: str) -> RawLayer:
    if not isinstance(raw, Mapping):
        raise CatalogError("layer entry must be an object", role=role)
    name = raw.get("name")
    if not isinstance(name, str) or not name:
        raise CatalogError("layer is missing a name", role=role)
    try:
        width = int(raw["width"])
        height = int(raw["height"])
    except (KeyError, TypeError, ValueError) as exc:
        raise CatalogError(f"layer {name!r} needs integer width and height", role=role) from exc
    data = raw.get("data")
    if not isinstance(data, list):
        raise CatalogError(f"layer {name!r} data must be a list", role=role)
    if width < 1 or height < 1 or len(data) != width * height:
        raise CatalogError(
            f"layer {name!r} data length {len(data)} does not match {width}x{height}", role=role
        )
    try:
        values = tuple(int(v) for v in data)
    except (TypeError, ValueError) as exc:
        raise CatalogError(f"layer {name!r} data must hold integer tile ids", role=role) from exc
    return RawLayer(canonical_layer_name(name), width, height, values)


def parse_template(raw: Any, role: str, index: int = 0) -> RoomTemplate:
    if isinstance(raw, RoomTemplate):
        return raw
    if not isinstance(raw, Mapping) or not isinstance(raw.get("layers"), list):
        raise CatalogError(f"template #{index} must be an object with a layers list", role=role)
    layers = tuple(_parse_layer(layer, role) for layer in raw["layers"])
    if not layers:
        raise CatalogError(f"template #{index} has no layers", role=role)
    return RoomTemplate(role=role, layers=layers, name=str(raw.get("name") or f"{role}_{index}"))


def parse_catalog(data: Any) -> Catalog:
    if not isinstance(data, Mapping):
        raise CatalogError("catalog must be an object mapping role -> template list")
    catalog: Catalog = {}
    for role, pool in data.items():
        if not isinstance(pool, list):
            raise CatalogError("template pool must be a list", role=str(role))
        catalog[str(role)] = [parse_template(t, str(role), i) for i, t in enumerate(pool)]
    return catalog


def _read_json(path: Path) -> Any:
    try:
        with path.open("r", encoding="utf-8") as fh:
            return json.load(fh)
    except json.JSONDecodeError as exc:
        raise CatalogError(f"{path}: invalid JSON ({exc.msg} at line {exc.lineno})") from exc
    except OSError as exc:
        raise CatalogError(f"{path}: {exc.strerror or exc}") from exc


def load_catalog(path: str | Path) -> Catalog:
    """Load a catalog file, or a directory of ``room_<role>.json`` files."""
    p = Path(path)
    if p.is_dir():
        raw: Dict[str, Any] = {}
        for f in sorted(p.glob("room_*.json")):
            raw[f.stem[len("room_"):]] = _read_json(f)
        if not raw:
            raise CatalogError(f"{p}: no room_<role>.json files found")
        return parse_catalog(raw)
    return parse_catalog(_read_json(p))


# Tileset image keys and the layers drawn from them
TILESET_LAYERS = {
    "walls_and_floor": ("floor", "walls"),
    "decoration": ("decoration", "npc", "misc"),
}


def _tiled_tile_entries(tiles: Any, where: str) -> Dict[int, Dict[str, Any]]:
    """Flatten a Tiled tileset export's ``tiles`` list into ``{id: {name: value}}``.

    Entries without a numeric id are skipped; later entries for the same id
    merge into earlier ones.
    """
    if not isinstance(tiles, list):
        raise CatalogError(f"tiles for {where} must be a list")
    entries: Dict[int, Dict[str, Any]] = {}
    for t in tiles:
        if not isinstance(t, Mapping) or not isinstance(t.get("id"), int) or isinstance(t.get("id"), bool):
            continue
        dst = entries.setdefault(t["id"], {})
        props = t.get("properties")
        if isinstance(props, list):
            for p in props:
                if isinstance(p, Mapping) and "name" in p:
                    dst[str(p["name"])] = p.get("value")
    return entries


def _layer_entries(table: Any, layer: str) -> Dict[int, Dict[str, Any]]:
    if not isinstance(table, Mapping):
        raise CatalogError(f"tile properties for layer {layer!r} must be an object")
    if "tiles" in table:
        return _tiled_tile_entries(table["tiles"], repr(layer))
    entries: Dict[int, Dict[str, Any]] = {}
    for tile_id, props in table.items():
        try:
            tid = int(tile_id)
        except (TypeError, ValueError) as exc:
            raise CatalogError(f"tile id {tile_id!r} in layer {layer!r} is not an integer") from exc
        if not isinstance(props, Mapping):
            raise CatalogError(f"properties for tile {tid} in layer {layer!r} must be an object")
        entries[tid] = dict(props)
    return entries


def parse_tile_properties(data: Any) -> TileProperties:
    """Per-layer tile properties.

    Each top-level key is a layer name or a tileset key from
    ``TILESET_LAYERS``. Its value is either ``{id: props}`` or a Tiled tileset
    export (``{"tiles": [{"id": 4, "properties": [{"name": ..., "value": ...}]}]}``).
    A tileset key fills every layer drawn from that tileset; an explicit layer
    entry wins over the tileset it belongs to.
    """
    if not isinstance(data, Mapping):
        raise CatalogError("tile properties must be an object mapping layer -> {id: props}")
    out: TileProperties = {}
    explicit: Dict[str, Dict[int, Dict[str, Any]]] = {}
    for key, table in data.items():
        key = str(key)
        if key in TILESET_LAYERS:
            entries = _layer_entries(table, key)
            for layer in TILESET_LAYERS[key]:
                out.setdefault(layer, {})
                for tid, props in entries.items():
                    out[layer].setdefault(tid, {}).update(props)
        else:
            explicit[canonical_layer_name(key)] = _layer_entries(table, key)
    for layer, entries in explicit.items():
        merged = out.setdefault(layer, {})
        for tid, props in entries.items():
            merged.setdefault(tid, {}).update(props)
    return out


def load_tile_properties(path: str | Path) -> TileProperties:
    return parse_tile_properties(_read_json(Path(path)))


__all__ = [
    "LAYER_NAMES",
    "TILESET_LAYERS",
    "RawLayer",
    "RoomTemplate",
    "Catalog",
    "TileProperties",
    "canonical_layer_name",
    "parse_template",
    "parse_catalog",
    "load_catalog",
    "parse_tile_properties",
    "load_tile_properties",
]
