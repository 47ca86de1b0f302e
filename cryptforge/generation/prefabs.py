"""Weighted prefab assignment for placed rooms."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from cryptforge.logging_utils import get_logger

from .config import DecorStencil, PrefabSpec
from .rng import LevelRng

log = get_logger("cryptforge.prefabs")


@dataclass(frozen=True)
class RoomStyle:
    wall_key: str
    floor_key: str
    shape: Optional[Tuple[Tuple[int, ...], ...]] = None
    decorations: Tuple[DecorStencil, ...] = ()
    prefab: bool = False


def _round_half_up(v: float) -> int:
    return int(math.floor(v + 0.5))


def resolve_quota(spec: PrefabSpec, room_count: int, remaining: int) -> int:
    want = 0
    if spec.count is not None:
        want = spec.count
    elif spec.percent is not None:
        want = _round_half_up(max(0.0, min(100.0, float(spec.percent))) * room_count / 100)
    if spec.min is not None:
        want = max(want, spec.min)
    if spec.max is not None:
        want = min(want, spec.max)
    return max(0, min(want, remaining))


def assign_prefabs(room_count: int, specs: Sequence[PrefabSpec], rng: LevelRng) -> List[Optional[PrefabSpec]]:
    """Per-room prefab (or None) drawn from a shuffled index order.

    Specs consume prefixes of the shuffled indices in declared order. No
    random draws happen when there are no specs or no rooms.
    """
    res: List[Optional[PrefabSpec]] = [None] * room_count
    if not specs or room_count == 0:
        return res
    indices = rng.shuffle_in_place(list(range(room_count)))
    ptr = 0
    for spec in specs:
        want = resolve_quota(spec, room_count, room_count - ptr)
        for i in indices[ptr:ptr + want]:
            res[i] = spec
        ptr += want
        if ptr >= room_count:
            break
    log.debug(event="prefabs_assigned", rooms=room_count, assigned=ptr)
    return res


def resolve_styles(
    assignments: Sequence[Optional[PrefabSpec]],
    wall_keys: Sequence[str],
    floor_keys: Sequence[str],
    rng: LevelRng,
) -> List[RoomStyle]:
    """Fill unassigned rooms with a random wall key, then floor key, in room order."""
    styles: List[RoomStyle] = []
    for spec in assignments:
        if spec is not None:
            styles.append(RoomStyle(spec.wall_key, spec.floor_key, spec.shape, spec.decorations, prefab=True))
            continue
        wall = rng.pick(wall_keys)
        floor = rng.pick(floor_keys)
        styles.append(RoomStyle(wall, floor))
    return styles


__all__ = ["RoomStyle", "assign_prefabs", "resolve_quota", "resolve_styles"]
