from cryptforge.generation.config import PrefabSpec
from cryptforge.generation.prefabs import assign_prefabs, resolve_quota, resolve_styles
from cryptforge.generation.rng import LevelRng


def test_resolve_quota_count_percent_and_bounds():
    assert resolve_quota(PrefabSpec("w", "f", count=2), 10, 10) == 2
    # 25% of 10 = 2.5 rounds half up
    assert resolve_quota(PrefabSpec("w", "f", percent=25), 10, 10) == 3
    assert resolve_quota(PrefabSpec("w", "f", percent=250), 4, 4) == 4
    assert resolve_quota(PrefabSpec("w", "f", count=1, min=3), 10, 10) == 3
    assert resolve_quota(PrefabSpec("w", "f", count=8, max=2), 10, 10) == 2
    assert resolve_quota(PrefabSpec("w", "f", count=8), 10, 5) == 5
    assert resolve_quota(PrefabSpec("w", "f"), 10, 10) == 0


def test_specs_take_disjoint_prefixes_in_declared_order():
    a = PrefabSpec("wa", "fa", count=2)
    b = PrefabSpec("wb", "fb", count=10)
    res = assign_prefabs(5, [a, b], LevelRng("prefab"))
    assert res.count(a) == 2
    assert res.count(b) == 3
    assert None not in res


def test_no_specs_or_no_rooms_draw_nothing():
    rng = LevelRng("quiet")
    assert assign_prefabs(4, [], rng) == [None] * 4
    assert assign_prefabs(0, [PrefabSpec("w", "f", count=1)], rng) == []
    assert rng.frac() == LevelRng("quiet").frac()


def test_assignment_is_deterministic():
    spec = PrefabSpec("w", "f", percent=50)
    assert assign_prefabs(9, [spec], LevelRng("same")) == assign_prefabs(9, [spec], LevelRng("same"))


def test_resolve_styles_fills_unassigned_rooms():
    shape = ((1, 1), (1, 0))
    spec = PrefabSpec("stone", "moss", shape=shape)
    styles = resolve_styles([spec, None, None], ("library", "medic"), ("glass",), LevelRng("styles"))
    assert styles[0].prefab and styles[0].wall_key == "stone" and styles[0].shape == shape
    for s in styles[1:]:
        assert not s.prefab
        assert s.wall_key in ("library", "medic")
        assert s.floor_key == "glass"
