from cryptforge.generation.masks import make_mask
from cryptforge.generation.templates import RawLayer, RoomTemplate

FLOOR_TILE = 1
WALL_TILE = 5
SENTINEL = 13


def ring_data(w, h, tile):
    """Flat row-major data with ``tile`` on the border cells and 0 inside."""
    return [tile if (x in (0, w - 1) or y in (0, h - 1)) else 0 for y in range(h) for x in range(w)]


def room_template(w, h, role="room", name=None, sentinels=(), with_walls=True):
    """Template with a full floor, an optional wall ring and misc sentinels at local cells."""
    layers = [RawLayer("floor", w, h, tuple([FLOOR_TILE] * (w * h)))]
    if with_walls:
        layers.append(RawLayer("walls", w, h, tuple(ring_data(w, h, WALL_TILE))))
    if sentinels:
        misc = [0] * (w * h)
        for x, y in sentinels:
            misc[y * w + x] = SENTINEL
        layers.append(RawLayer("misc", w, h, tuple(misc)))
    return RoomTemplate(role=role, layers=tuple(layers), name=name or f"{role}_{w}x{h}")


def raw_template(w, h, name="room"):
    """Template in the JSON shape accepted by parse_catalog."""
    return {
        "name": name,
        "layers": [
            {"name": "floor", "width": w, "height": h, "data": [FLOOR_TILE] * (w * h)},
            {"name": "walls", "width": w, "height": h, "data": ring_data(w, h, WALL_TILE)},
        ],
    }


def raw_catalog(rooms=3, size=(6, 5)):
    w, h = size
    return {
        "start": [raw_template(w, h, "start_a")],
        "room": [raw_template(w, h, f"room_{i}") for i in range(rooms)],
        "next_level": [raw_template(w, h, "exit_a")],
    }


def mask_from(rows):
    """Mask from strings, ``#`` or ``1`` set."""
    h = len(rows)
    w = len(rows[0]) if h else 0
    m = make_mask(w, h)
    for y, row in enumerate(rows):
        for x, ch in enumerate(row):
            m[y][x] = ch in "#1"
    return m


def rows_of(mask):
    return ["".join("#" if v else "." for v in row) for row in mask]
