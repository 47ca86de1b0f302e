#!/usr/bin/env python3
"""Level structural diagnostics for specific seeds.

Usage:
  python scripts/diagnose_seeds.py level-1 level-2
  CRYPTFORGE_CATALOG=rooms/ python scripts/diagnose_seeds.py s1

If no seeds are provided as CLI args, a default list is used. Uses the room
catalog named by CRYPTFORGE_CATALOG when set, the maze generator otherwise.
Exits with non-zero status if structural issues are detected.
"""

from __future__ import annotations

import json
import os
import sys
from itertools import combinations
from typing import List

# Ensure project root on path if executed directly
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from cryptforge.generation import config_from_env, generate_level, load_catalog  # noqa: E402 import after path fix
from cryptforge.generation.masks import components4  # noqa: E402
from cryptforge.generation.rooms import rects_overlap  # noqa: E402

DEFAULT_SEEDS = ["level-1", "level-2", "s1"]


def analyze(level) -> dict:
    overlaps = sum(1 for a, b in combinations(level.rooms, 2) if rects_overlap(a.rect, b.rect))
    expected = max(0, len(level.rooms) - 1) if level.mode == "template" else len(level.corridors)
    locks = {t.properties["door_id"] for t in level.decorations if t.properties.get("locked")}
    keys = {t.properties["key_for"] for t in level.decorations if "key_for" in t.properties}
    return {
        "room_overlaps": overlaps,
        "corridor_count_mismatch": abs(len(level.corridors) - expected),
        "floor_components_extra": max(0, len(components4(level.masks["floor"])) - 1),
        "locks_without_key": len(locks - keys),
    }


def run_for_seed(seed: str, catalog=None) -> dict:
    cfg = config_from_env().with_overrides({"seed": seed})
    level = generate_level(cfg, catalog)
    issues = analyze(level)
    return {
        "seed": seed,
        "mode": level.mode,
        "rooms": len(level.rooms),
        "fallback_corridors": level.metrics.get("corridors_fallback", 0),
        "issues": issues,
        "ok": all(v == 0 for v in issues.values()),
    }


def main(argv: List[str]) -> int:
    seeds = list(argv) if argv else DEFAULT_SEEDS
    path = os.getenv("CRYPTFORGE_CATALOG")
    catalog = load_catalog(path) if path else None
    results = [run_for_seed(s, catalog) for s in seeds]
    print(json.dumps({"results": results}, indent=2))
    # Non-zero exit if any failure
    if not all(r["ok"] for r in results):
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
