"""
Seeded linear-congruential generator used for every random draw in the search.

The generator is an explicit object handed to whoever needs randomness, so
two searches running side by side never share a cursor. Identical seeds
give identical sequences on every platform (pure integer arithmetic).
"""

from __future__ import annotations

from typing import List, Sequence, TypeVar

T = TypeVar("T")

LCG_MULTIPLIER = 1664525
LCG_INCREMENT  = 1013904223
LCG_MODULUS    = 2 ** 32


class Lcg:
    def __init__(self, seed: int) -> None:
        self.state = seed % LCG_MODULUS

    def advance(self) -> int:
        self.state = (self.state * LCG_MULTIPLIER + LCG_INCREMENT) % LCG_MODULUS
        return self.state

    def random(self) -> float:
        """Next float in [0, 1)."""
        return self.advance() / LCG_MODULUS

    def shuffle(self, items: Sequence[T]) -> List[T]:
        """Fisher-Yates shuffle of a copy of `items`."""
        arr = list(items)
        for i in range(len(arr) - 1, 0, -1):
            j = int(self.random() * (i + 1))
            arr[i], arr[j] = arr[j], arr[i]
        return arr
