"""Uniform random sampling helpers."""

import random
from typing import List, Optional, Sequence, TypeVar

T = TypeVar("T")


def sample_without_replacement(items: Sequence[T], k: int, rng: Optional[random.Random] = None) -> List[T]:
    """Pick ``k`` distinct items uniformly at random (partial Fisher-Yates).

    Only the first ``k`` positions of a copy are shuffled, so the cost is
    O(len(items)) for the copy plus O(k) swaps.
    """
    rng = rng or random.Random()
    pool = list(items)
    n = len(pool)
    if k < 0 or k > n:
        raise ValueError(f"Cannot sample {k} items from {n}")
    for i in range(k):
        j = rng.randrange(i, n)
        pool[i], pool[j] = pool[j], pool[i]
    return pool[:k]
