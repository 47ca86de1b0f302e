"""Floor ownership, bridge recovery and per-corner wall flavors.

Every floor cell is owned by the flavor (floor/wall tileset pair) of the last
region covering it. Solid cells squeezed between two owned cells are floor
"bridges" (typically the door cells where a corridor meets a room) and are
folded back into the floor with an owner chosen by neighbour majority.
"""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from .masks import (
    N8,
    Mask,
    adjacency_mask,
    and_not,
    cells,
    make_mask,
    mask_not,
    mask_or,
    or_many,
    size_of,
)

CORNERS = ("tl", "tr", "bl", "br")

# cells sharing each quad corner: (dx, dy) offsets from the source cell
_CORNER_NEIGHBOURS = {
    "tl": ((0, -1), (-1, 0), (-1, -1)),
    "tr": ((0, -1), (1, 0), (1, -1)),
    "bl": ((0, 1), (-1, 0), (-1, 1)),
    "br": ((0, 1), (1, 0), (1, 1)),
}


@dataclass(frozen=True, order=True)
class Flavor:
    """Tileset pairing for one region; ordering is by floor key first."""

    floor_key: str
    wall_key: str
    corridor: bool = False


OwnerGrid = List[List[Optional[Flavor]]]


def _best(tally: Counter) -> Optional[Tuple[Flavor, int]]:
    best = None
    for flavor, n in tally.items():
        if best is None or n > best[1] or (n == best[1] and flavor < best[0]):
            best = (flavor, n)
    return best


def build_owner_grid(combined: Mask, sources: Sequence[Tuple[Mask, Flavor]]) -> OwnerGrid:
    """Owner per combined-floor cell; later sources override earlier ones."""
    w, h = size_of(combined)
    owner: OwnerGrid = [[None] * w for _ in range(h)]
    for x, y in cells(combined):
        k = None
        for mask, flavor in sources:
            if mask[y][x]:
                k = flavor
        owner[y][x] = k
    return owner


def _owned(owner: OwnerGrid, x: int, y: int) -> bool:
    return 0 <= y < len(owner) and 0 <= x < len(owner[y]) and owner[y][x] is not None


def detect_bridges(solid: Mask, owner: OwnerGrid) -> Mask:
    w, h = size_of(solid)
    out = make_mask(w, h)
    for x, y in cells(solid):
        vertical = _owned(owner, x, y - 1) and _owned(owner, x, y + 1)
        horizontal = _owned(owner, x - 1, y) and _owned(owner, x + 1, y)
        if vertical or horizontal:
            out[y][x] = True
    return out


def resolve_bridge_owner(owner: OwnerGrid, x: int, y: int) -> Optional[Flavor]:
    """Majority room flavor among the 8 neighbours unless corridor cells outnumber it."""
    rooms: Counter = Counter()
    corridor: Counter = Counter()
    for dx, dy in N8:
        if not _owned(owner, x + dx, y + dy):
            continue
        f = owner[y + dy][x + dx]
        (corridor if f.corridor else rooms)[f] += 1
    best_room = _best(rooms)
    corridor_total = sum(corridor.values())
    if best_room is not None and best_room[1] >= corridor_total:
        return best_room[0]
    best_corr = _best(corridor)
    return best_corr[0] if best_corr else None


def merge_bridges(floor: Mask, owner: OwnerGrid, bridges: Mask) -> Tuple[Mask, OwnerGrid]:
    """New floor mask and owner grid with bridges folded in.

    Bridge owners are resolved against the pre-merge grid so the result does
    not depend on scan order.
    """
    new_floor = mask_or(floor, bridges)
    new_owner = [row[:] for row in owner]
    for x, y in cells(bridges):
        new_owner[y][x] = resolve_bridge_owner(owner, x, y)
    return new_floor, new_owner


def corner_wall_flavor(owner: OwnerGrid, x: int, y: int, corner: str) -> Optional[Flavor]:
    tally: Counter = Counter()
    for dx, dy in _CORNER_NEIGHBOURS[corner]:
        if _owned(owner, x + dx, y + dy):
            tally[owner[y + dy][x + dx]] += 1
    best = _best(tally)
    return best[0] if best else None


@dataclass
class Regions:
    rooms: Mask
    corridor: Mask
    door_cells: Mask
    corridor_core: Mask
    floor: Mask
    solid: Mask
    bridges: Mask
    owner: OwnerGrid


def build_regions(
    room_masks: Sequence[Mask],
    room_flavors: Sequence[Flavor],
    corridor_raw: Mask,
    corridor_flavor: Flavor,
) -> Regions:
    """Combine room and corridor masks into floor/solid/bridge regions with owners.

    Door cells (corridor cells touching a room) start out solid so that each
    room's wall ring stays closed, then come back as bridges.
    """
    w, h = size_of(corridor_raw)
    rooms = or_many(room_masks, w, h)
    corridor = and_not(corridor_raw, rooms)
    door_cells = adjacency_mask(rooms, corridor)
    corridor_core = and_not(corridor, door_cells)
    floor = mask_or(corridor_core, rooms)
    solid = mask_not(floor)
    sources = [(corridor_core, corridor_flavor)] + list(zip(room_masks, room_flavors))
    owner = build_owner_grid(floor, sources)
    bridges = detect_bridges(solid, owner)
    floor, owner = merge_bridges(floor, owner, bridges)
    return Regions(
        rooms=rooms,
        corridor=corridor,
        door_cells=door_cells,
        corridor_core=corridor_core,
        floor=floor,
        solid=mask_not(floor),
        bridges=bridges,
        owner=owner,
    )


__all__ = [
    "CORNERS",
    "Flavor",
    "OwnerGrid",
    "Regions",
    "build_owner_grid",
    "build_regions",
    "corner_wall_flavor",
    "detect_bridges",
    "merge_bridges",
    "resolve_bridge_owner",
]
