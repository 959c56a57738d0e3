"""Moveset uniqueness checking.

One contract, two backends:
- InMemoryUniquenessChecker scans a precomputed creature -> moves map. Used
  by the enumerator, which checks millions of combinations per generation.
- AggregateUniquenessChecker asks the store for a grouped count. Used for
  single online checks where building the whole map would be wasteful.

Both treat cosmetic forms as invisible: they never count as another owner.
"""

import logging
from abc import ABC, abstractmethod
from typing import FrozenSet, Iterable, List

from moveset.errors import InvalidRequestError
from moveset.models import MoveSetMap, validate_generation

logger = logging.getLogger(__name__)


class UniquenessChecker(ABC):
    """Decides whether a set of moves singles out exactly one creature."""

    @abstractmethod
    def owners(self, move_ids: FrozenSet[int], max_generation: int) -> List[int]:
        """Ids of every non-cosmetic creature that can learn all of ``move_ids``."""
        pass

    def is_unique(self, move_ids: Iterable[int], owner_id: int, max_generation: int) -> bool:
        """True if no creature other than ``owner_id`` can learn all of ``move_ids``.

        The empty set is never unique since every creature trivially knows it.
        """
        moves = frozenset(move_ids)
        if not moves:
            return False
        max_generation = validate_generation(max_generation)
        return all(other == owner_id for other in self.owners(moves, max_generation))

    def is_valid_puzzle(self, move_ids: Iterable[int], owner_id: int, max_generation: int) -> bool:
        """True if ``owner_id`` is the one and only creature that learns all of ``move_ids``."""
        moves = frozenset(move_ids)
        if not moves:
            return False
        max_generation = validate_generation(max_generation)
        return set(self.owners(moves, max_generation)) == {owner_id}


class InMemoryUniquenessChecker(UniquenessChecker):
    """Linear scan over a move map built once for a single generation.

    The map must not be mutated while a sweep is running; it is shared
    read-only between worker threads.
    """

    def __init__(self, move_map: MoveSetMap, generation: int):
        self.move_map = move_map
        self.generation = validate_generation(generation)

    def _check_generation(self, max_generation: int) -> int:
        max_generation = validate_generation(max_generation)
        if max_generation != self.generation:
            raise InvalidRequestError(
                f"Move map was built for gen {self.generation}, not gen {max_generation}"
            )
        return max_generation

    def owners(self, move_ids: FrozenSet[int], max_generation: int) -> List[int]:
        self._check_generation(max_generation)
        return [cid for cid, moves in self.move_map.items() if move_ids <= moves]

    def is_unique(self, move_ids: Iterable[int], owner_id: int, max_generation: int) -> bool:
        moves = frozenset(move_ids)
        if not moves:
            return False
        self._check_generation(max_generation)
        # Early exit on the first competing owner
        for other_id, other_moves in self.move_map.items():
            if other_id != owner_id and moves <= other_moves:
                return False
        return True


class AggregateUniquenessChecker(UniquenessChecker):
    """Single grouped query against the persisted learnset relation."""

    def __init__(self, store, resolver):
        self.store = store
        self.resolver = resolver

    def owners(self, move_ids: FrozenSet[int], max_generation: int) -> List[int]:
        version_groups = self.resolver.version_groups(max_generation)
        matches = self.store.count_creatures_learning_all(sorted(move_ids), version_groups, max_generation)
        owners = [m.creature_id for m in matches if m.match_count == len(move_ids)]
        logger.debug(f"Moves {sorted(move_ids)} at gen {max_generation} owned by {owners}")
        return owners
