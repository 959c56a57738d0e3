"""Interactive puzzle selection for live rounds.

Picks a random creature, draws four of its effective moves and keeps the
draw only if no other creature can learn all four. Attempts are strictly
sequential and capped so a round start stays interactive even for cutoffs
where unique movesets are rare.
"""

import logging
import random
from typing import Collection, Optional, Union

from moveset.models import (
    MOVES_PER_PUZZLE,
    PuzzleRound,
    SelectionFailure,
    moveset_key,
    validate_generation,
)
from moveset.sampling import sample_without_replacement
from moveset.uniqueness import AggregateUniquenessChecker, UniquenessChecker

logger = logging.getLogger(__name__)


class PuzzleSelector:
    """Finds a unique four-move puzzle with a bounded number of attempts."""

    MAX_ATTEMPTS = 10

    def __init__(
        self,
        store,
        resolver,
        checker: Optional[UniquenessChecker] = None,
        rng: Optional[random.Random] = None,
        max_attempts: int = MAX_ATTEMPTS,
    ):
        """Initialize the selector.

        Args:
            store: Reference data source
            resolver: LearnabilityResolver bound to the same store
            checker: Uniqueness backend (defaults to the aggregate query)
            rng: Random source; pass a seeded Random for reproducible rounds
            max_attempts: Creature draws before giving up
        """
        self.store = store
        self.resolver = resolver
        self.checker = checker or AggregateUniquenessChecker(store, resolver)
        self.rng = rng or random.Random()
        self.max_attempts = max_attempts

    def select_round(
        self,
        max_generation: int,
        exclude_keys: Collection[str] = (),
    ) -> Union[PuzzleRound, SelectionFailure]:
        """Select a round for ``max_generation``.

        Args:
            max_generation: Generation cutoff (1-9)
            exclude_keys: Move combinations (see ``moveset_key``) already shown

        Returns:
            PuzzleRound on success, SelectionFailure once every attempt failed
        """
        max_generation = validate_generation(max_generation)
        candidates = self.store.get_creatures_up_to(max_generation, include_cosmetic=False)

        for attempt in range(1, self.max_attempts + 1):
            if not candidates:
                logger.debug(f"Attempt {attempt}: no creatures up to gen {max_generation}")
                continue

            owner = self.rng.choice(candidates)
            moves = sorted(self.resolver.effective_moves(owner.id, max_generation))
            if len(moves) < MOVES_PER_PUZZLE:
                logger.debug(f"Attempt {attempt}: {owner.name} only has {len(moves)} moves")
                continue

            picked = tuple(sample_without_replacement(moves, MOVES_PER_PUZZLE, self.rng))
            if moveset_key(picked) in exclude_keys:
                logger.debug(f"Attempt {attempt}: moveset {moveset_key(picked)} already seen")
                continue

            if self.checker.is_unique(picked, owner.id, max_generation):
                logger.info(f"Selected {owner.name} with moves {list(picked)} on attempt {attempt}")
                return PuzzleRound(owner=owner, move_ids=picked, generation=max_generation, attempts=attempt)

            logger.debug(f"Attempt {attempt}: moves {list(picked)} are not unique to {owner.name}")

        logger.warning(f"Failed to find a unique gen {max_generation} puzzle after {self.max_attempts} attempts")
        return SelectionFailure(generation=max_generation, attempts=self.max_attempts)
