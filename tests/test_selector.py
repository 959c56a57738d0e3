"""Tests for the bounded interactive puzzle selector."""

import random
from unittest.mock import Mock

from conftest import build_store
from moveset.learnability import LearnabilityResolver
from moveset.models import Creature, PuzzleRound, SelectionFailure, moveset_key
from moveset.selector import PuzzleSelector
from moveset.uniqueness import AggregateUniquenessChecker


class TestPuzzleSelector:
    """Test cases for PuzzleSelector."""

    def setup_method(self):
        """Setup for each test."""
        self.rng = random.Random(42)

    def _selector(self, store, **kwargs):
        resolver = LearnabilityResolver(store)
        checker = AggregateUniquenessChecker(store, resolver)
        return PuzzleSelector(store, resolver, checker, rng=self.rng, **kwargs)

    def test_finds_unique_round(self, store):
        """Test that a returned round is unique and targets a non-cosmetic creature."""
        selector = self._selector(store, max_attempts=50)
        result = selector.select_round(1)

        assert isinstance(result, PuzzleRound)
        assert len(result.move_ids) == 4
        assert len(set(result.move_ids)) == 4
        assert not result.owner.is_cosmetic
        assert selector.checker.is_unique(result.move_ids, result.owner.id, 1)
        assert set(result.move_ids) <= selector.resolver.effective_moves(result.owner.id, 1)

    def test_single_move_dataset_fails_after_bound(self):
        """Test that a dataset with no 4-move creature fails after exactly 10 attempts."""
        store = build_store([Creature(1, "solo", "solo", 1)], {(1, 1): [1]})
        selector = self._selector(store)
        selector.resolver.effective_moves = Mock(wraps=selector.resolver.effective_moves)

        result = selector.select_round(1)

        assert isinstance(result, SelectionFailure)
        assert result.attempts == PuzzleSelector.MAX_ATTEMPTS == 10
        assert selector.resolver.effective_moves.call_count == 10

    def test_shared_movesets_fail_after_bound(self):
        """Test that twins sharing every move never produce a round."""
        store = build_store(
            [Creature(1, "twin-a", "twin-a", 1), Creature(2, "twin-b", "twin-b", 1)],
            {(1, 1): [1, 2, 3, 4], (2, 1): [1, 2, 3, 4]},
        )
        selector = self._selector(store)
        selector.checker.is_unique = Mock(wraps=selector.checker.is_unique)

        result = selector.select_round(1)

        assert isinstance(result, SelectionFailure)
        assert selector.checker.is_unique.call_count == 10

    def test_no_creatures_in_cutoff(self):
        """Test that an empty generation degrades to a failure, not an error."""
        store = build_store([Creature(1, "late", "late", 3)], {(1, 3): [1, 2, 3, 4]})
        result = self._selector(store).select_round(1)
        assert isinstance(result, SelectionFailure)

    def test_excluded_moveset_is_skipped(self):
        """Test that a moveset already shown is not served again."""
        store = build_store([Creature(1, "only", "only", 1)], {(1, 1): [1, 2, 3, 4]})
        selector = self._selector(store)

        assert isinstance(selector.select_round(1), PuzzleRound)
        result = selector.select_round(1, exclude_keys={moveset_key([1, 2, 3, 4])})
        assert isinstance(result, SelectionFailure)

    def test_cosmetic_forms_never_targeted(self):
        """Test that a cosmetic form with a unique-looking moveset is never picked."""
        store = build_store(
            [Creature(1, "base", "base", 1), Creature(2, "base-gigantamax", "base", 1)],
            {(1, 1): [1, 2, 3, 4], (2, 1): [5, 6, 7, 8]},
        )
        selector = self._selector(store)
        for _ in range(20):
            result = selector.select_round(1)
            assert isinstance(result, PuzzleRound)
            assert result.owner.id == 1
