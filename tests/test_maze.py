from itertools import combinations

from cryptforge.generation.masks import components4, make_mask, rect_mask
from cryptforge.generation.maze import bsp_partition, dig_l_path, ensure_single_component, generate_maze
from cryptforge.generation.rng import LevelRng
from cryptforge.generation.rooms import rects_overlap


def test_bsp_leaves_tile_the_inner_area():
    leaves = bsp_partition(60, 40, 12, LevelRng("bsp"))
    assert len(leaves) > 1
    assert sum(leaf.w * leaf.h for leaf in leaves) == 58 * 38
    for leaf in leaves:
        assert leaf.w >= 12 or leaf.h >= 12


def test_maze_rooms_sit_inside_leaves_and_dug_is_connected():
    res = generate_maze(60, 40, LevelRng("maze"))
    assert len(res.rooms) >= 2
    for a, b in combinations(res.rooms, 2):
        assert not rects_overlap(a.rect, b.rect)
    for r in res.rooms:
        assert 4 <= r.w <= 10 and 4 <= r.h <= 10
        assert r.template is None
    assert len(components4(res.dug)) == 1
    assert res.rooms[0].role == "start"
    assert res.rooms[-1].role == "next_level"


def test_dig_l_path_joins_endpoints():
    dug = make_mask(10, 10)
    dig_l_path(dug, (1, 1), (8, 6), LevelRng("l"))
    assert dug[1][1] and dug[6][8]
    assert len(components4(dug)) == 1


def test_ensure_single_component_joins_strays():
    dug = rect_mask(20, 20, 1, 1, 3, 3)
    stray = rect_mask(20, 20, 12, 12, 14, 14)
    for y in range(20):
        for x in range(20):
            dug[y][x] = dug[y][x] or stray[y][x]
    assert ensure_single_component(dug, LevelRng("join")) == 1
    assert len(components4(dug)) == 1
