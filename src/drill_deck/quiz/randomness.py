"""Injectable randomness used for shuffling and question ids."""

from __future__ import annotations

import random
import uuid
from typing import MutableSequence, Optional, Protocol, Sequence, TypeVar

T = TypeVar("T")


class RandomSource(Protocol):
    def randbelow(self, upper: int) -> int:
        """Return an integer in ``[0, upper)``."""

    def token(self) -> str:
        """Return a short random string for building unique ids."""


class SystemRandomSource:
    """Default source backed by :mod:`random` and :mod:`uuid`."""

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self._rng = rng or random.Random()

    def randbelow(self, upper: int) -> int:
        return self._rng.randrange(upper)

    def token(self) -> str:
        return uuid.uuid4().hex[:9]


def fisher_yates(items: MutableSequence[T], rng: RandomSource) -> None:
    """Shuffle ``items`` in place with a uniform random permutation."""

    for i in range(len(items) - 1, 0, -1):
        j = rng.randbelow(i + 1)
        items[i], items[j] = items[j], items[i]


def shuffled(items: Sequence[T], rng: RandomSource) -> list[T]:
    out = list(items)
    fisher_yates(out, rng)
    return out
