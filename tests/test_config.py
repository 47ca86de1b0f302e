import pytest

from cryptforge.errors import ConfigError
from cryptforge.generation.config import GenerationConfig, PrefabSpec, config_from_env, parse_prefab


def test_defaults_validate():
    cfg = GenerationConfig()
    assert cfg.seed == "level-1"
    assert cfg.width == 50 and cfg.corridor_width == 1 and cfg.max_door_width == 6
    assert cfg.room_quotas == {"room": 8, "next_level": 1}


def test_env_overrides_defaults():
    env = {"CRYPTFORGE_SEED": "from-env", "CRYPTFORGE_WIDTH": "64", "CRYPTFORGE_CORRIDOR_WIDTH": ""}
    cfg = config_from_env(environ=env)
    assert cfg.seed == "from-env" and cfg.width == 64 and cfg.corridor_width == 1


def test_env_bad_integer_raises():
    with pytest.raises(ConfigError):
        config_from_env(environ={"CRYPTFORGE_HEIGHT": "tall"})


def test_env_via_monkeypatch(monkeypatch):
    monkeypatch.setenv("CRYPTFORGE_MAX_DOOR_WIDTH", "3")
    assert config_from_env().max_door_width == 3


def test_aliases_and_coercion():
    cfg = GenerationConfig().with_overrides({"roadWidth": 3, "maxDoorWidth": 2, "size": {"room": 4}, "seed": 99})
    assert cfg.corridor_width == 3
    assert cfg.max_door_width == 2
    assert cfg.room_quotas == {"room": 4}
    assert cfg.seed == "99"


def test_unknown_option_rejected():
    with pytest.raises(ConfigError):
        GenerationConfig().with_overrides({"colour": "red"})


@pytest.mark.parametrize(
    "overrides",
    [
        {"width": 0},
        {"corridor_width": -1},
        {"seed": ""},
        {"room_quotas": {"room": "many"}},
        {"wall_keys": []},
        {"maze_room_size": [5, 2]},
        {"autotile_table": [[1, 1, 1, 1]] * 15},
        {"autotile_table": [[1, 1, 1, 60]] * 16},
        {"autotile_table": [["a", 1, 1, 1]] * 16},
        {"maze_room_size": [4, 5, 6]},
        {"maze_room_size": ["a", 2]},
        {"maze_room_size": 7},
        {"roles": 5},
        {"wall_keys": "stone"},
        {"prefabs": 3},
        {"prefabs": [{"wall_key": "w", "floor_key": "f", "decorations": ["x"]}]},
        {"prefabs": [{"wall_key": "w", "floor_key": "f", "decorations": 1}]},
    ],
)
def test_bad_values_raise(overrides):
    with pytest.raises(ConfigError):
        GenerationConfig().with_overrides(overrides)


def test_parse_prefab_accepts_camel_case_keys():
    spec = parse_prefab(
        {"wallKey": "stone", "floorKey": "moss", "percent": 50, "environments": [{"key": "rug", "data": [[1, 0]]}]}
    )
    assert isinstance(spec, PrefabSpec)
    assert spec.wall_key == "stone" and spec.floor_key == "moss"
    assert spec.decorations[0].tileset_key == "rug"
    assert spec.decorations[0].stencil == ((1, 0),)


@pytest.mark.parametrize(
    "raw",
    [
        {"floor_key": "moss"},
        {"wall_key": "w", "floor_key": "f", "count": "two"},
        {"wall_key": "w", "floor_key": "f", "percent": "half"},
        {"wall_key": "w", "floor_key": "f", "shape": "round"},
        {"wall_key": "w", "floor_key": "f", "decorations": [{"stencil": [[1]]}]},
        {"wall_key": "w", "floor_key": "f", "decorations": ["x"]},
        {"wall_key": "w", "floor_key": "f", "environments": 4},
    ],
)
def test_bad_prefabs_raise(raw):
    with pytest.raises(ConfigError):
        parse_prefab(raw)


def test_tileset_keys_unique_in_order():
    cfg = GenerationConfig(prefabs=(PrefabSpec("stone", "glass"),))
    keys = cfg.tileset_keys()
    assert keys[:3] == ["wall", "ground", "library"]
    assert keys.count("glass") == 1
    assert keys[-1] == "stone"
