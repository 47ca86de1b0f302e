from cryptforge.generation.decorate import cluster_center, find_secret_wall, plan_decorations
from cryptforge.generation.masks import adjacency_mask, mask_not, mask_or, or_many, rect_mask
from cryptforge.generation.metrics import init_metrics
from cryptforge.generation.painter import TileLayer
from cryptforge.generation.rng import LevelRng

W, H = 30, 12


def _painted(name):
    layer = TileLayer.for_grid(name, W, H, scale=2)
    for y in range(layer.height):
        for x in range(layer.width):
            layer.put(1, x, y)
    return layer


def _scene():
    """Room A has one doorway; room B has two, on opposite sides."""
    a = rect_mask(W, H, 2, 2, 8, 8)
    b = rect_mask(W, H, 16, 2, 22, 8)
    corridor = or_many(
        [rect_mask(W, H, 9, 5, 15, 5), rect_mask(W, H, 23, 5, 27, 5), rect_mask(W, H, 27, 1, 27, 5)], W, H
    )
    floor = mask_or(mask_or(a, b), corridor)
    solid = mask_not(floor)
    interiors = [a, b]
    door_masks = [adjacency_mask(m, corridor) for m in interiors]
    return interiors, door_masks, solid, corridor


def test_single_cluster_room_is_locked_and_key_goes_elsewhere():
    interiors, door_masks, solid, corridor = _scene()
    floor_layer, walls_layer = _painted("floor"), _painted("walls")
    metrics = init_metrics()
    tags = plan_decorations(floor_layer, walls_layer, interiors, door_masks, solid, corridor, LevelRng("deco"), metrics)

    locks = [t for t in tags if t.properties.get("locked")]
    keys = [t for t in tags if "key_for" in t.properties]
    assert len(locks) == 1 and len(keys) == 1
    lock, key = locks[0], keys[0]
    assert lock.room == 0
    assert lock.cell == (9, 5)
    assert key.room == 1
    assert key.properties["key_for"] == lock.properties["door_id"]
    kx, ky = key.cell
    assert interiors[1][ky][kx]
    assert metrics["locks_placed"] == 1
    # the 2x2 quad of the lock cell carries the tag
    for oy in range(2):
        for ox in range(2):
            assert floor_layer.props_at(18 + ox, 10 + oy)["locked"] is True


def test_secret_wall_borders_corridor_and_skips_doorway():
    interiors, door_masks, solid, corridor = _scene()
    cell = find_secret_wall(interiors[0], door_masks[0], solid, corridor)
    assert cell is not None
    x, y = cell
    assert solid[y][x] and not door_masks[0][y][x]
    assert any(corridor[y + dy][x + dx] for dx, dy in ((1, 0), (-1, 0), (0, 1), (0, -1)))


def test_room_with_two_clusters_and_room_without_doors_get_no_lock():
    interiors, door_masks, solid, corridor = _scene()
    lonely = rect_mask(W, H, 2, 10, 4, 10)
    interiors.append(lonely)
    door_masks.append(adjacency_mask(lonely, corridor))
    tags = plan_decorations(
        _painted("floor"), _painted("walls"), interiors, door_masks, solid, corridor, LevelRng("deco")
    )
    assert all(t.room in (0, 1) for t in tags)
    assert not any(t.properties.get("locked") and t.room == 1 for t in tags)


def test_lock_without_key_room_is_abandoned():
    interiors, door_masks, solid, corridor = _scene()
    metrics = init_metrics()
    tags = plan_decorations(
        _painted("floor"), _painted("walls"), interiors[:1], door_masks[:1], solid, corridor, LevelRng("x"), metrics
    )
    assert tags == []
    assert metrics["locks_abandoned"] == 1


def test_cluster_center_prefers_centroid():
    assert cluster_center([(0, 0), (1, 0), (2, 0)]) == (1, 0)
    assert cluster_center([(4, 4)]) == (4, 4)
