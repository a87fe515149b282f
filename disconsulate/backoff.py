from __future__ import annotations

import random
from typing import Iterator

from .errors import RetriesExhausted


class Backoff:
    """Bounded, jittered retry delays.

    Each draw multiplies the previous delay by ``3 * U(0, 1)`` and clamps the
    result to ``[seed, max_delay]``. After ``max_tries`` draws the schedule is
    exhausted.
    """

    def __init__(self, seed: float, max_delay: float, max_tries: int, rng: random.Random | None = None):
        if seed <= 0:
            raise ValueError("seed must be positive.")
        if max_delay < seed:
            raise ValueError("max_delay must be >= seed.")
        if max_tries < 0:
            raise ValueError("max_tries must be >= 0.")
        self.seed = seed
        self.max_delay = max_delay
        self.max_tries = int(max_tries)
        self._rng = rng or random.Random()
        self._current = seed
        self.tries = 0

    @property
    def exhausted(self) -> bool:
        return self.tries >= self.max_tries

    def next_delay(self) -> float:
        if self.exhausted:
            raise RetriesExhausted(f"Gave up after {self.tries} retries.")
        raw = self._current * 3 * self._rng.random()
        self._current = max(self.seed, min(self.max_delay, raw))
        self.tries += 1
        return self._current

    def __iter__(self) -> Iterator[float]:
        while not self.exhausted:
            yield self.next_delay()
