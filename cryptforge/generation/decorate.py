"""Lock, key and secret-door placement after painting.

A room whose doorway cells form a single cluster gets a locked door; its key
goes into another reachable room, and a secret door is opened in a wall that
borders a corridor so the locked room stays reachable from the other side.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from cryptforge.logging_utils import get_logger

from .masks import N4, Mask, any_true, cells, components4, is_connected4, size_of
from .painter import TileLayer
from .rng import LevelRng

log = get_logger("cryptforge.decorate")

Cell = Tuple[int, int]


@dataclass(frozen=True)
class DecorationTag:
    layer: str
    cell: Cell
    properties: Dict[str, Any] = field(default_factory=dict)
    room: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"layer": self.layer, "x": self.cell[0], "y": self.cell[1], "room": self.room, **self.properties}


def cluster_center(comp: Sequence[Cell]) -> Cell:
    """Cluster cell nearest the centroid (first wins on ties)."""
    cx = sum(p[0] for p in comp) / len(comp)
    cy = sum(p[1] for p in comp) / len(comp)
    best, best_d = comp[0], float("inf")
    for x, y in comp:
        d = (x - cx) ** 2 + (y - cy) ** 2
        if d < best_d:
            best, best_d = (x, y), d
    return best


def tag_quad(layer: TileLayer, x: int, y: int, props: Dict[str, Any]) -> int:
    """Tag the 2x2 output quad of source cell (x, y); returns tiles tagged."""
    s = layer.scale
    n = 0
    for oy in range(s):
        for ox in range(s):
            if layer.tag(x * s + ox, y * s + oy, props):
                n += 1
    return n


def find_secret_wall(interior: Mask, door_mask: Mask, solid: Mask, corridor: Mask) -> Optional[Cell]:
    """First solid neighbour of the interior (row-major) that borders a corridor and is not a doorway."""
    w, h = size_of(interior)
    for x, y in cells(interior):
        for dx, dy in N4:
            wx, wy = x + dx, y + dy
            if not (0 <= wx < w and 0 <= wy < h):
                continue
            if not solid[wy][wx] or door_mask[wy][wx]:
                continue
            for ex, ey in N4:
                cx, cy = wx + ex, wy + ey
                if 0 <= cx < w and 0 <= cy < h and corridor[cy][cx]:
                    return wx, wy
    return None


def plan_decorations(
    floor_layer: TileLayer,
    walls_layer: TileLayer,
    interiors: Sequence[Mask],
    door_masks: Sequence[Mask],
    solid: Mask,
    corridor: Mask,
    rng: LevelRng,
    metrics: Optional[dict] = None,
) -> List[DecorationTag]:
    """Place locks, keys and secret doors; returns the tags written."""
    tags: List[DecorationTag] = []
    connected = [is_connected4(m) for m in interiors]
    clusters = [components4(door_masks[i]) if connected[i] else [] for i in range(len(interiors))]
    eligible = [i for i in range(len(interiors)) if connected[i] and clusters[i]]
    door_id = 1
    abandoned = 0
    for i in eligible:
        if len(clusters[i]) != 1:
            continue
        targets = [j for j in eligible if j != i and any_true(door_masks[j])]
        if not targets:
            # nothing reachable to hold the key; the id is still consumed
            abandoned += 1
            log.debug(event="lock_abandoned", room=i, door_id=door_id)
            door_id += 1
            continue
        lock_cell = cluster_center(clusters[i][0])
        key_room = rng.pick(targets)
        key_cell = rng.pick(list(cells(interiors[key_room])))
        lock_props = {"locked": True, "door_id": door_id}
        key_props = {"key_for": door_id}
        tag_quad(floor_layer, lock_cell[0], lock_cell[1], lock_props)
        tag_quad(floor_layer, key_cell[0], key_cell[1], key_props)
        tags.append(DecorationTag(floor_layer.name, lock_cell, lock_props, room=i))
        tags.append(DecorationTag(floor_layer.name, key_cell, key_props, room=key_room))
        secret = find_secret_wall(interiors[i], door_masks[i], solid, corridor)
        if secret is not None:
            secret_props = {"secret_door": True, "secret_for": door_id}
            tag_quad(walls_layer, secret[0], secret[1], secret_props)
            tags.append(DecorationTag(walls_layer.name, secret, secret_props, room=i))
        log.debug(event="lock_placed", room=i, door_id=door_id, key_room=key_room, secret=secret is not None)
        door_id += 1
    if metrics is not None:
        metrics["locks_placed"] = sum(1 for t in tags if t.properties.get("locked"))
        metrics["locks_abandoned"] = abandoned
        metrics["secret_doors"] = sum(1 for t in tags if t.properties.get("secret_door"))
    return tags


__all__ = ["DecorationTag", "cluster_center", "find_secret_wall", "plan_decorations", "tag_quad"]
