"""Generation options and their validation.

Precedence (lowest to highest): dataclass defaults, ``CRYPTFORGE_*`` environment
variables, an explicit mapping (CLI flags, HTTP body, Flask app config).
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, List, Mapping, Optional, Tuple

from cryptforge.errors import ConfigError

from .autotile import DEFAULT_INDEX_TABLE, validate_table


@dataclass(frozen=True)
class DecorStencil:
    """A 0/1 stencil centered in a room and painted with its own tileset."""

    tileset_key: str
    stencil: Tuple[Tuple[int, ...], ...]
    collidable: bool = False


@dataclass(frozen=True)
class PrefabSpec:
    wall_key: str
    floor_key: str
    shape: Optional[Tuple[Tuple[int, ...], ...]] = None
    decorations: Tuple[DecorStencil, ...] = ()
    count: Optional[int] = None
    percent: Optional[float] = None
    min: Optional[int] = None
    max: Optional[int] = None


@dataclass
class GenerationConfig:
    seed: str = "level-1"
    width: int = 50
    height: int = 50
    corridor_width: int = 1
    max_door_width: int = 6
    max_attempts: int = 300
    room_quotas: Dict[str, int] = field(default_factory=lambda: {"room": 8, "next_level": 1})
    roles: Tuple[str, ...] = ("start", "room", "next_level")
    prefabs: Tuple[PrefabSpec, ...] = ()
    autotile_table: Tuple[Tuple[int, int, int, int], ...] = DEFAULT_INDEX_TABLE
    wall_keys: Tuple[str, ...] = ("library", "medic", "start", "end")
    floor_keys: Tuple[str, ...] = ("glass", "iron", "tree", "ground")
    corridor_floor_key: str = "ground"
    corridor_wall_key: str = "wall"
    base_wall_key: str = "wall"
    # Template-mode tile ids (local ids inside the walls_and_floor / decoration sets)
    door_sentinel_id: int = 13
    door_wall_tile: int = 0
    floor_tile_under_door: Optional[int] = None
    corridor_floor_tile: int = 13
    layer_first_gids: Dict[str, int] = field(
        default_factory=lambda: {"floor": 1, "walls": 1, "decoration": 193, "npc": 193, "misc": 193}
    )
    # Maze mode
    maze_room_size: Tuple[int, int] = (4, 10)
    maze_min_leaf: int = 12

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        if not isinstance(self.seed, str) or not self.seed:
            raise ConfigError("seed must be a non-empty string")
        for name in ("width", "height", "corridor_width", "max_door_width", "max_attempts", "maze_min_leaf"):
            v = getattr(self, name)
            if not isinstance(v, int) or isinstance(v, bool) or v < 1:
                raise ConfigError(f"{name} must be a positive integer (got {v!r})")
        for role, quota in self.room_quotas.items():
            if not isinstance(quota, int) or isinstance(quota, bool):
                raise ConfigError(f"room quota for {role!r} must be an integer")
        if not self.wall_keys or not self.floor_keys:
            raise ConfigError("wall_keys and floor_keys must not be empty")
        if len(self.maze_room_size) != 2:
            raise ConfigError(f"maze_room_size must be a (min, max) pair (got {self.maze_room_size!r})")
        lo, hi = self.maze_room_size
        if lo < 1 or hi < lo:
            raise ConfigError(f"maze_room_size must be (min, max) with 1 <= min <= max (got {self.maze_room_size!r})")
        validate_table(self.autotile_table)

    def tileset_keys(self) -> List[str]:
        """Every tileset key the painter may reference, in registration order."""
        keys: List[str] = []
        for k in (self.base_wall_key, self.corridor_wall_key, self.corridor_floor_key, *self.wall_keys, *self.floor_keys):
            if k not in keys:
                keys.append(k)
        for p in self.prefabs:
            for k in (p.wall_key, p.floor_key, *(d.tileset_key for d in p.decorations)):
                if k not in keys:
                    keys.append(k)
        return keys

    def with_overrides(self, overrides: Mapping[str, Any]) -> "GenerationConfig":
        return replace(self, **_coerce_mapping(overrides))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "GenerationConfig":
        return cls(**_coerce_mapping(data))


ENV_MAP = {
    "CRYPTFORGE_SEED": ("seed", str),
    "CRYPTFORGE_WIDTH": ("width", int),
    "CRYPTFORGE_HEIGHT": ("height", int),
    "CRYPTFORGE_CORRIDOR_WIDTH": ("corridor_width", int),
    "CRYPTFORGE_MAX_DOOR_WIDTH": ("max_door_width", int),
}


def config_from_env(base: Optional[GenerationConfig] = None, environ: Optional[Mapping[str, str]] = None) -> GenerationConfig:
    env = os.environ if environ is None else environ
    overrides: Dict[str, Any] = {}
    for env_key, (attr, conv) in ENV_MAP.items():
        raw = env.get(env_key)
        if raw is None or raw == "":
            continue
        try:
            overrides[attr] = conv(raw)
        except ValueError as exc:
            raise ConfigError(f"{env_key}={raw!r} is not a valid {conv.__name__}") from exc
    base = base or GenerationConfig()
    return replace(base, **overrides) if overrides else base


_ALIASES = {
    "roadWidth": "corridor_width",
    "road_width": "corridor_width",
    "maxDoorWidth": "max_door_width",
    "mapWidth": "width",
    "mapHeight": "height",
    "size": "room_quotas",
    "indexArrs": "autotile_table",
}


def _coerce_mapping(data: Mapping[str, Any]) -> Dict[str, Any]:
    if not isinstance(data, Mapping):
        raise ConfigError("configuration must be a mapping")
    known = {f.name for f in fields(GenerationConfig)}
    out: Dict[str, Any] = {}
    for raw_key, value in data.items():
        key = _ALIASES.get(raw_key, raw_key)
        if key not in known:
            raise ConfigError(f"unknown configuration option {raw_key!r}")
        try:
            out[key] = _coerce_value(key, value)
        except ConfigError:
            raise
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"invalid value for {raw_key!r}: {exc}") from exc
    return out


def _coerce_value(key: str, value: Any) -> Any:
    if key == "seed":
        return str(value)
    if key == "prefabs":
        return tuple(parse_prefab(p) for p in (value or ()))
    if key == "autotile_table":
        return tuple(tuple(int(v) for v in row) for row in value)
    if key in ("roles", "wall_keys", "floor_keys"):
        if isinstance(value, str):
            raise ConfigError(f"{key} must be a list of names")
        return tuple(str(v) for v in value)
    if key == "maze_room_size":
        value = tuple(int(v) for v in value)
        if len(value) != 2:
            raise ConfigError(f"maze_room_size must be a (min, max) pair (got {len(value)} values)")
        return value
    if key in ("room_quotas", "layer_first_gids"):
        if not isinstance(value, Mapping):
            raise ConfigError(f"{key} must be a mapping")
        return {str(k): v for k, v in value.items()}
    return value


def _stencil(raw: Any, what: str) -> Tuple[Tuple[int, ...], ...]:
    if not isinstance(raw, (list, tuple)) or not all(isinstance(r, (list, tuple)) for r in raw):
        raise ConfigError(f"{what} must be a list of rows")
    return tuple(tuple(1 if v else 0 for v in row) for row in raw)


def parse_prefab(raw: Any) -> PrefabSpec:
    if isinstance(raw, PrefabSpec):
        return raw
    if not isinstance(raw, Mapping):
        raise ConfigError("each prefab must be a mapping")
    wall = raw.get("wall_key", raw.get("wallKey"))
    floor = raw.get("floor_key", raw.get("floorKey"))
    if not wall or not floor:
        raise ConfigError("prefab needs wall_key and floor_key")
    shape = raw.get("shape")
    raw_decos = raw.get("decorations", raw.get("environments")) or ()
    if not isinstance(raw_decos, (list, tuple)):
        raise ConfigError("prefab decorations must be a list")
    decos = []
    for d in raw_decos:
        if isinstance(d, DecorStencil):
            decos.append(d)
            continue
        if not isinstance(d, Mapping):
            raise ConfigError(f"decoration stencil must be a mapping (got {d!r})")
        key = d.get("tileset_key", d.get("key"))
        if not key:
            raise ConfigError("decoration stencil needs a tileset key")
        decos.append(
            DecorStencil(str(key), _stencil(d.get("stencil", d.get("data")), "decoration stencil"), bool(d.get("collidable", False)))
        )
    spec = PrefabSpec(
        wall_key=str(wall),
        floor_key=str(floor),
        shape=_stencil(shape, "prefab shape") if shape is not None else None,
        decorations=tuple(decos),
        count=raw.get("count"),
        percent=raw.get("percent"),
        min=raw.get("min"),
        max=raw.get("max"),
    )
    for name in ("count", "min", "max"):
        v = getattr(spec, name)
        if v is not None and (not isinstance(v, int) or isinstance(v, bool)):
            raise ConfigError(f"prefab {name} must be an integer")
    if spec.percent is not None and not isinstance(spec.percent, (int, float)):
        raise ConfigError("prefab percent must be a number")
    return spec


__all__ = ["GenerationConfig", "PrefabSpec", "DecorStencil", "config_from_env", "parse_prefab"]
