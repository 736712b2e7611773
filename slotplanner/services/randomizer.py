"""Seeded linear congruential generator used for reproducible shuffles."""

from __future__ import annotations

import time
from typing import MutableSequence, Optional, TypeVar


T = TypeVar("T")

MODULUS = 2**31
MULTIPLIER = 1103515245
INCREMENT = 12345


def wall_clock_seed() -> int:
    """Seed used when the caller supplies none; report it so the run can be replayed."""
    return int(time.time()) % MODULUS


class DeterministicRandom:
    """LCG with fixed constants: identical seeds yield identical sequences."""

    def __init__(self, seed: Optional[int] = None) -> None:
        self.seed = wall_clock_seed() if seed is None else int(seed)
        if self.seed < 0:
            raise ValueError("seed must be >= 0")
        self._state = self.seed % MODULUS

    @property
    def state(self) -> int:
        return self._state

    def next_int(self) -> int:
        self._state = (MULTIPLIER * self._state + INCREMENT) % MODULUS
        return self._state

    def next_float(self) -> float:
        # Divides by m - 1, so the top state maps to exactly 1.0.
        return self.next_int() / (MODULUS - 1)

    def shuffle(self, items: MutableSequence[T]) -> MutableSequence[T]:
        """Fisher-Yates shuffle in place, driven by the float stream."""
        for index in range(len(items) - 1, 0, -1):
            swap_index = min(int(self.next_float() * (index + 1)), index)
            items[index], items[swap_index] = items[swap_index], items[index]
        return items
