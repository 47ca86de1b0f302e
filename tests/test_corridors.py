from itertools import combinations

import pytest

from cryptforge.generation.corridors import (
    astar,
    border_point_toward,
    compress_path,
    door_anchors,
    fallback_elbow,
    mst_prim,
    route_corridors,
)
from cryptforge.generation.doors import plan_doors
from cryptforge.generation.metrics import init_metrics
from cryptforge.generation.rng import LevelRng
from cryptforge.generation.rooms import PlacedRoom, place_rooms, rects_overlap

from level_test_utils import SENTINEL, room_template


def test_mst_prim_tree_shape():
    centers = [(0, 0), (10, 0), (0, 10), (11, 1)]
    edges = mst_prim(centers)
    assert len(edges) == 3
    assert edges == [(0, 1), (0, 2), (1, 3)]
    assert mst_prim([(3, 3)]) == []


def test_compress_path_merges_runs():
    path = [(0, 0), (1, 0), (2, 0), (2, 1), (2, 2)]
    rects = [r.as_tuple() for r in compress_path(path, 1)]
    assert rects == [(0, 0, 3, 1), (2, 0, 3, 3)]


def test_compress_path_width_inflates_across_run():
    rects = [r.as_tuple() for r in compress_path([(5, 5), (6, 5), (7, 5)], 3)]
    assert rects == [(5, 4, 8, 7)]


def test_astar_goes_around_obstacles():
    blocked = {(2, y) for y in range(0, 4)}
    path = astar((0, 0), (4, 0), blocked, (0, 0, 6, 6))
    assert path[0] == (0, 0) and path[-1] == (4, 0)
    assert not blocked.intersection(path)
    assert len(path) == 13
    assert astar((0, 0), (4, 0), {(1, 0), (0, 1)}, (0, 0, 6, 6)) is None


def test_border_point_never_a_corner():
    room = PlacedRoom("room", 10, 10, 6, 6)
    for target in [(0, 0), (30, 0), (0, 30), (30, 30), (13, 0), (0, 13)]:
        x, y = border_point_toward(room, target)
        on_x = x in (10, 15)
        on_y = y in (10, 15)
        assert on_x != on_y, (target, (x, y))


def test_door_anchors_sorted_by_distance():
    t = room_template(6, 6, sentinels=[(0, 2), (5, 2), (2, 0)])
    room = PlacedRoom("room", 10, 10, 6, 6, t)
    anchors = door_anchors(room, (40, 12), SENTINEL)
    assert anchors[0] == (15, 12)
    assert set(anchors) == {(10, 12), (15, 12), (12, 10)}


def test_fallback_elbow_covers_both_endpoints():
    rects = fallback_elbow((2, 3), (9, 8), 1, LevelRng("elbow"))
    assert len(rects) == 2
    covered = set()
    for r in rects:
        covered.update((x, y) for x in range(r.min_x, r.max_x) for y in range(r.min_y, r.max_y))
    assert (2, 3) in covered and (9, 8) in covered


@pytest.mark.structure
def test_five_rooms_route_and_door_sites():
    rng = LevelRng("s1")
    metrics = init_metrics()
    templates = [room_template(6, 6, name=f"r{i}") for i in range(5)]
    rooms = place_rooms(templates, 60, 60, rng, metrics=metrics)
    assert len(rooms) == 5
    for a, b in combinations(rooms, 2):
        assert not rects_overlap(a.rect, b.rect)

    corridors = route_corridors(rooms, rng, 1, map_size=(60, 60), metrics=metrics)
    assert len(corridors) == 4
    assert metrics["corridors_routed"] == 4
    assert metrics["corridors_fallback"] == sum(1 for c in corridors if c.fallback)
    for c in corridors:
        assert c.rects
        for r in c.rects:
            assert r.kind == "corridor" and r.area > 0

    carved, doors = plan_doors(rooms, corridors, rng, metrics=metrics)
    assert len(doors) >= 4
    assert metrics["doors_created"] == len(doors)
    segs = [r.as_tuple() for c in corridors for r in c.rects]
    for d in doors:
        room = rooms[d.room]
        for x, y in d.cells():
            assert room.x <= x < room.x + room.w and room.y <= y < room.y + room.h
            assert any(s[0] <= x < s[2] and s[1] <= y < s[3] for s in segs)
    # rooms come back as new objects; the originals keep their walls
    assert carved is not rooms
    assert all(r.layer("walls").get(0, 2) == 5 for r in rooms)


def test_routed_corridor_avoids_third_room():
    a = PlacedRoom("room", 2, 10, 5, 5)
    b = PlacedRoom("room", 30, 10, 5, 5)
    blocker = PlacedRoom("room", 15, 8, 5, 9)
    corridors = route_corridors([a, blocker, b], LevelRng("detour"), 1, map_size=(50, 30))
    for c in corridors:
        if c.fallback:
            continue
        for r in c.rects:
            others = [i for i in (0, 1, 2) if i not in (c.from_index, c.to_index)]
            for i in others:
                room = [a, blocker, b][i]
                assert not rects_overlap(r.as_tuple(), room.rect)
