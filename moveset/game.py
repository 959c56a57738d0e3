"""Round service for the moveset trivia game.

Rounds are stateless on the server: ``start_round`` hands out a token that
carries the answer, and every later call decodes it again.
"""

import logging
import random
from typing import FrozenSet, Iterable, List, Optional, Sequence, Set, Union

from moveset.errors import InvalidRequestError, InvalidRoundTokenError
from moveset.game_engine import GameEngine
from moveset.learnability import LearnabilityResolver
from moveset.models import (
    MOVES_PER_PUZZLE,
    AnswerResult,
    Creature,
    Move,
    MovesetCheck,
    RoundFailure,
    RoundResult,
    RoundState,
    SelectionFailure,
    moveset_key,
    validate_generation,
)
from moveset.round_token import decode_round_token, encode_round_token
from moveset.selector import PuzzleSelector
from moveset.uniqueness import AggregateUniquenessChecker

logger = logging.getLogger(__name__)


class MovesetGame:
    """Start rounds, score answers and give hints."""

    # Catalog draws before falling back to a live search
    CATALOG_DRAWS = 5

    def __init__(
        self,
        store,
        resolver: Optional[LearnabilityResolver] = None,
        selector: Optional[PuzzleSelector] = None,
        use_catalog: bool = False,
        rng: Optional[random.Random] = None,
    ):
        """Initialize the round service.

        Args:
            store: Reference data source (and puzzle catalog)
            resolver: Learnability resolver (created from ``store`` if omitted)
            selector: Live puzzle selector (created if omitted)
            use_catalog: Serve rounds from the precomputed catalog when it has entries
            rng: Random source shared with the selector
        """
        self.store = store
        self.rng = rng or random.Random()
        self.resolver = resolver or LearnabilityResolver(store)
        self.checker = AggregateUniquenessChecker(store, self.resolver)
        self.selector = selector or PuzzleSelector(store, self.resolver, self.checker, rng=self.rng)
        self.use_catalog = use_catalog

    # === Rounds ===

    def start_round(
        self,
        max_generation: int,
        seen_movesets: Iterable[Sequence[str]] = (),
    ) -> Union[RoundResult, RoundFailure]:
        """Pick a puzzle and issue its round token.

        Args:
            max_generation: Generation cutoff (1-9)
            seen_movesets: Move-name lists already shown in this session

        Returns:
            RoundResult, or RoundFailure when no unique puzzle was found
        """
        max_generation = validate_generation(max_generation)
        seen_keys = self._seen_keys(seen_movesets)

        if self.use_catalog:
            result = self._round_from_catalog(max_generation, seen_keys)
            if result is not None:
                return result
            logger.info(f"No catalog puzzle for gen {max_generation}, searching live")

        selection = self.selector.select_round(max_generation, exclude_keys=seen_keys)
        if isinstance(selection, SelectionFailure):
            return RoundFailure(
                generation=max_generation,
                message=(
                    "Failed to generate a unique moveset puzzle after "
                    f"{selection.attempts} attempts. Please try again."
                ),
                attempts=selection.attempts,
            )

        return self._issue(selection.owner, selection.move_ids, max_generation, source="live")

    def _round_from_catalog(self, max_generation: int, seen_keys: Set[str]) -> Optional[RoundResult]:
        for _ in range(self.CATALOG_DRAWS):
            puzzle = self.store.random_catalog_puzzle(max_generation, self.rng)
            if puzzle is None:
                return None
            if puzzle.key in seen_keys:
                continue
            owner = self.store.get_creature_by_id(puzzle.creature_id)
            return self._issue(owner, puzzle.move_ids, max_generation, source="catalog")
        return None

    def _issue(self, owner: Creature, move_ids, max_generation: int, source: str) -> RoundResult:
        moves = self.store.get_moves_by_ids(list(move_ids))
        state = RoundState(owner_id=owner.id, moves=tuple(m.name for m in moves), generation=max_generation)
        logger.debug(f"Issued {source} round for creature {owner.id}: {list(state.moves)}")
        return RoundResult(
            round_token=encode_round_token(state),
            moves=moves,
            generation=max_generation,
            source=source,
        )

    def _seen_keys(self, seen_movesets: Iterable[Sequence[str]]) -> Set[str]:
        keys = set()
        for names in seen_movesets:
            moves = self.store.get_moves_by_names(list(names))
            if len(moves) == len(names):
                keys.add(moveset_key(m.id for m in moves))
        return keys

    # === Answers ===

    def submit_answer(self, round_token: str, guessed_creature_id: int, attempt: int, hints_used: int = 0) -> AnswerResult:
        """Score a guess.

        Besides an exact match, a guess is accepted when it is the same
        species, a pre-evolution that can learn all four moves, or an
        evolution of a base-form answer when both can learn all four moves.
        """
        GameEngine.validate_attempt(attempt, hints_used)
        state = decode_round_token(round_token)
        answer = self.store.get_creature_by_id(state.owner_id)
        guess = self.store.get_creature_by_id(guessed_creature_id)
        puzzle_moves = self._puzzle_moves(state)
        puzzle_ids = frozenset(m.id for m in puzzle_moves)

        correct = self._accepts(answer, guess, puzzle_ids, state.generation)
        missing: List[str] = []
        if not correct:
            learnable = self.resolver.effective_moves(guess.id, state.generation)
            missing = [m.name for m in puzzle_moves if m.id not in learnable]

        points = GameEngine.score(correct, attempt, hints_used)
        reveal = None
        if correct:
            reveal = guess
        elif GameEngine.should_reveal(correct, attempt):
            reveal = answer

        logger.info(
            f"Guess {guess.name} for {answer.name} (attempt {attempt}, hints {hints_used}): "
            f"correct={correct}, points={points}"
        )
        return AnswerResult(
            correct=correct,
            points=points,
            reveal_creature=reveal,
            lives_remaining=GameEngine.lives_remaining(correct, attempt),
            missing_moves=missing,
        )

    def _puzzle_moves(self, state: RoundState) -> List[Move]:
        moves = self.store.get_moves_by_names(list(state.moves))
        if len(moves) != MOVES_PER_PUZZLE:
            raise InvalidRoundTokenError("Invalid token: unknown moves")
        return moves

    def _accepts(self, answer: Creature, guess: Creature, move_ids: FrozenSet[int], generation: int) -> bool:
        if guess.id == answer.id or guess.species_name == answer.species_name:
            return True

        answer_lineage = self.resolver.lineage(answer.id)
        if guess.id in answer_lineage:
            # Guessed a pre-evolution: fine if it can learn the moves itself
            return move_ids <= self.resolver.effective_moves(guess.id, generation)

        guess_lineage = self.resolver.lineage(guess.id)
        if answer.id in guess_lineage:
            # Guessed an evolution: only when the answer is a base form that knows all four moves
            if len(answer_lineage) > 1:
                return False
            return (
                move_ids <= self.resolver.effective_moves(answer.id, generation)
                and move_ids <= self.resolver.effective_moves(guess.id, generation)
            )

        return False

    # === Hints ===

    def get_hint(self, round_token: str, kind: str) -> str:
        """A fact about the answer that does not give its name away."""
        kind = GameEngine.validate_hint_kind(kind)
        state = decode_round_token(round_token)
        creature = self.store.get_creature_by_id(state.owner_id)

        if kind == "generation":
            return f"This Pokémon was introduced in Gen {creature.generation}."
        return f"Type: {'/'.join(creature.types)}"

    # === Moveset tools ===

    def _resolve_move_names(self, move_names: Sequence[str]) -> List[Move]:
        if not move_names:
            raise InvalidRequestError("Invalid moves array")
        moves = self.store.get_moves_by_names(list(move_names))
        if len(moves) != len(move_names):
            raise InvalidRequestError(f"Some moves not found (found {len(moves)}/{len(move_names)})")
        return moves

    def validate_moveset(self, move_names: Sequence[str], creature_id: int, generation: int) -> MovesetCheck:
        """Is a player-built moveset unique to ``creature_id``, and if not, who shares it?"""
        generation = validate_generation(generation)
        moves = self._resolve_move_names(move_names)
        self.store.get_creature_by_id(creature_id)

        owners = self.checker.owners(frozenset(m.id for m in moves), generation)
        others = [self.store.get_creature_by_id(o).name for o in owners if o != creature_id]
        return MovesetCheck(is_unique=not others, shared_with=others)

    def moveset_owners(self, move_names: Sequence[str], generation: int) -> List[Creature]:
        """Every creature that can learn all of ``move_names`` by ``generation``."""
        generation = validate_generation(generation)
        moves = self._resolve_move_names(move_names)
        owners = self.checker.owners(frozenset(m.id for m in moves), generation)
        creatures = [self.store.get_creature_by_id(o) for o in owners]
        return sorted(creatures, key=lambda c: c.name)
