"""Seeded random source threaded through one generation run.

A single ``LevelRng`` is created from the level seed string and handed to every
phase in a fixed order (see ``pipeline.generate_level``). Nothing in the
generation package touches the ``random`` module's global state.
"""
from __future__ import annotations

import random
from typing import List, Sequence, TypeVar

T = TypeVar("T")


class LevelRng:
    __slots__ = ("seed", "_r")

    def __init__(self, seed: str):
        self.seed = str(seed)
        # str seeds hash through sha512 so results are stable across processes
        self._r = random.Random(self.seed)

    def integer_in_range(self, lo: int, hi: int) -> int:
        """Uniform integer in the inclusive range [lo, hi]."""
        if hi < lo:
            lo, hi = hi, lo
        return self._r.randint(lo, hi)

    def frac(self) -> float:
        return self._r.random()

    def pick(self, seq: Sequence[T]) -> T:
        if not seq:
            raise IndexError("cannot pick from an empty sequence")
        return seq[self.integer_in_range(0, len(seq) - 1)]

    def shuffle_in_place(self, items: List[T]) -> List[T]:
        """Fisher-Yates from the end; returns the same list for chaining."""
        for i in range(len(items) - 1, 0, -1):
            j = self.integer_in_range(0, i)
            items[i], items[j] = items[j], items[i]
        return items

    def __repr__(self) -> str:
        return f"LevelRng(seed={self.seed!r})"


__all__ = ["LevelRng"]
