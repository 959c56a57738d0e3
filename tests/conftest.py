"""Shared fixtures: small synthetic datasets in an in-memory DuckDB store.

Standard dataset (version group N belongs to generation N):

    alpha  (1)  gen 1  moves {1,2,3,4,5}
    beta   (2)  gen 1  moves {1,2,3,4}
    pidge  (3)  gen 1  moves {6,9}            evolves into cedar
    cedar  (4)  gen 1  moves {6,7,8,10}, +{11} in gen 2
    cedar-gigantamax (5, cosmetic) gen 1  moves {1,2,3,5}
    delta  (6)  gen 2  moves {12,13,14,15}
    sprout (7)  gen 1  moves {20,21,22,23}    evolves into bloom
    bloom  (8)  gen 1  moves {20,21,22,23,24}
"""

from typing import Dict, Iterable, List, Optional, Tuple

import pytest

from moveset.models import Creature, Move
from moveset.storage import MovesetStore

STANDARD_CREATURES = [
    Creature(1, "alpha", "alpha", 1, "fire", "flying", 1),
    Creature(2, "beta", "beta", 1, "water", None, 2),
    Creature(3, "pidge", "pidge", 1, "grass", None, 3),
    Creature(4, "cedar", "cedar", 1, "grass", "ground", 4),
    Creature(5, "cedar-gigantamax", "cedar", 1, "grass", "ground", 4),
    Creature(6, "delta", "delta", 2, "electric", None, 6),
    Creature(7, "sprout", "sprout", 1, "bug", None, 7),
    Creature(8, "bloom", "bloom", 1, "bug", "fairy", 8),
]

STANDARD_LEARNSETS: Dict[Tuple[int, int], List[int]] = {
    (1, 1): [1, 2, 3, 4, 5],
    (2, 1): [1, 2, 3, 4],
    (3, 1): [6, 9],
    (4, 1): [6, 7, 8, 10],
    (4, 2): [11],
    (5, 1): [1, 2, 3, 5],
    (6, 2): [12, 13, 14, 15],
    (7, 1): [20, 21, 22, 23],
    (8, 1): [20, 21, 22, 23, 24],
}

STANDARD_EVOLUTIONS = [(3, 4), (4, 5), (7, 8)]


def move_name(move_id: int) -> str:
    return f"move-{move_id}"


def build_store(
    creatures: Iterable[Creature],
    learnsets: Dict[Tuple[int, int], List[int]],
    evolutions: Iterable[Tuple[int, int]] = (),
    generations: int = 3,
    moves: Optional[Iterable[int]] = None,
) -> MovesetStore:
    """In-memory store with one version group per generation (id == generation)."""
    store = MovesetStore(":memory:")
    store.add_generations((g, f"generation-{g}") for g in range(1, generations + 1))
    store.add_version_groups((g, f"vg-{g}", g) for g in range(1, generations + 1))
    store.add_creatures(creatures)

    move_ids = set(moves or ())
    for ids in learnsets.values():
        move_ids.update(ids)
    store.add_moves(Move(m, move_name(m), "normal", 40, 100, 35, 1) for m in sorted(move_ids))

    store.add_learnsets(
        (creature_id, move_id, vg)
        for (creature_id, vg), ids in learnsets.items()
        for move_id in ids
    )
    store.add_evolutions(evolutions)
    store.mark_seeded()
    return store


def build_standard_store() -> MovesetStore:
    return build_store(STANDARD_CREATURES, STANDARD_LEARNSETS, STANDARD_EVOLUTIONS)


@pytest.fixture
def store():
    store = build_standard_store()
    yield store
    store.close()
