"""Tests for complete and fast catalog enumeration."""

import random
from unittest.mock import Mock, patch

import pytest

from conftest import build_store
from moveset.enumerator import CombinationEnumerator, EnumerationMode
from moveset.errors import EnumerationCancelled
from moveset.learnability import LearnabilityResolver
from moveset.models import Creature
from moveset.uniqueness import AggregateUniquenessChecker


def _keys(result):
    return {(p.creature_id, p.key) for p in result.puzzles}


class TestCompleteEnumeration:
    """Test cases for enumerate_complete on the standard dataset."""

    @pytest.fixture(autouse=True)
    def _enumerator(self, store):
        self.store = store
        self.enumerator = CombinationEnumerator(store)

    def test_catalog_contents(self):
        """Test that exactly the unique combinations of gen 1 are found."""
        result = self.enumerator.enumerate_complete(1)

        assert result.mode == EnumerationMode.COMPLETE.value
        assert (1, "1,2,3,5") in _keys(result)
        assert (1, "1,2,3,4") not in _keys(result)
        assert (2, "1,2,3,4") not in _keys(result)
        # alpha 4 + cedar 5 + bloom 4; beta and sprout share everything
        assert len(result.puzzles) == 13
        assert {p.creature_id for p in result.puzzles} == {1, 4, 8}

    def test_stats(self):
        """Test combination and skip counters."""
        stats = self.enumerator.enumerate_complete(1).stats

        assert stats.creatures_total == 6  # cosmetic form and gen 2 creature excluded
        assert stats.creatures_skipped == 1  # pidge only has two moves
        assert stats.combinations_checked == 17
        assert stats.unique_found == 13
        assert stats.elapsed_seconds >= 0

    def test_catalog_verifies_unique(self):
        """Test that every enumerated puzzle is unique according to the online checker."""
        checker = AggregateUniquenessChecker(self.store, LearnabilityResolver(self.store))
        for generation in (1, 2):
            for puzzle in self.enumerator.enumerate_complete(generation).puzzles:
                assert checker.is_valid_puzzle(puzzle.move_ids, puzzle.creature_id, generation)

    def test_puzzles_carry_owner_details(self):
        """Test that puzzles are tagged with name, dex number and generation."""
        puzzle = next(p for p in self.enumerator.enumerate_complete(1).puzzles if p.creature_id == 1)
        assert puzzle.creature_name == "alpha"
        assert puzzle.dex_number == 1
        assert puzzle.generation == 1

    def test_progress_reported(self):
        """Test that progress is reported each time the interval is crossed."""
        on_progress = Mock()
        enumerator = CombinationEnumerator(self.store, progress_interval=5, on_progress=on_progress)
        enumerator.enumerate_complete(1)
        assert on_progress.call_count == 3

    def test_parallel_matches_sequential(self):
        """Test that a threaded sweep finds the same catalog."""
        sequential = self.enumerator.enumerate_complete(2)
        parallel = CombinationEnumerator(self.store, workers=4).enumerate_complete(2)

        assert [(p.creature_id, p.key) for p in parallel.puzzles] == [
            (p.creature_id, p.key) for p in sequential.puzzles
        ]
        assert parallel.stats.combinations_checked == sequential.stats.combinations_checked

    def test_cancel_between_creatures(self):
        """Test that cancelling stops the sweep with EnumerationCancelled."""
        enumerator = CombinationEnumerator(self.store, progress_interval=1)
        enumerator.on_progress = lambda stats: enumerator.cancel()

        with pytest.raises(EnumerationCancelled) as exc_info:
            enumerator.enumerate_complete(1)

        assert exc_info.value.generation == 1
        # alpha finished before the checkpoint
        assert exc_info.value.combinations_checked == 5

    def test_cancel_flag_cleared_for_next_run(self):
        """Test that a fresh run after a cancellation is not cancelled."""
        self.enumerator.cancel()
        result = self.enumerator.enumerate_complete(1)
        assert len(result.puzzles) == 13


class TestFastEnumeration:
    """Test cases for enumerate_fast."""

    @pytest.fixture(autouse=True)
    def _enumerator(self, store):
        self.store = store

    def test_large_sample_equals_complete(self):
        """Test that a sample count above C(n, 4) checks every combination."""
        enumerator = CombinationEnumerator(self.store, seed=1)
        fast = enumerator.enumerate_fast(1, samples_per_creature=50)
        complete = enumerator.enumerate_complete(1)

        assert fast.mode == EnumerationMode.FAST.value
        assert _keys(fast) == _keys(complete)

    def test_small_sample_is_subset(self):
        """Test that a small sample count yields a subset of the complete catalog."""
        enumerator = CombinationEnumerator(self.store, seed=1)
        fast = enumerator.enumerate_fast(1, samples_per_creature=1)
        complete = enumerator.enumerate_complete(1)

        assert _keys(fast) <= _keys(complete)
        assert fast.stats.combinations_checked <= 5  # one per creature with 4+ moves

    def test_sampled_combinations_bounded_and_distinct(self):
        """Test the sampler on a creature with many moves."""
        moves = list(range(1, 31))  # C(30, 4) = 27405
        combos = list(CombinationEnumerator._sampled_combinations(moves, 25, random.Random(3)))
        assert len(combos) <= 25
        assert len(set(combos)) == len(combos)
        assert all(len(set(c)) == 4 and list(c) == sorted(c) for c in combos)

    def test_seeded_runs_are_reproducible(self):
        """Test that the same seed yields the same fast catalog."""
        store = build_store(
            [Creature(1, "wide", "wide", 1), Creature(2, "other", "other", 1)],
            {(1, 1): list(range(1, 13)), (2, 1): [1, 2, 3, 4]},
        )
        first = CombinationEnumerator(store, seed=9).enumerate_fast(1, samples_per_creature=10)
        second = CombinationEnumerator(store, seed=9).enumerate_fast(1, samples_per_creature=10)
        assert _keys(first) == _keys(second)

    def test_unseeded_runs_use_fresh_randomness(self):
        """Test that without a seed each creature gets an unseeded generator."""
        with patch("moveset.enumerator.random.Random", wraps=random.Random) as rng_cls:
            CombinationEnumerator(self.store).enumerate_fast(1, samples_per_creature=1)

        assert rng_cls.call_count == 5  # one per creature with 4+ moves
        assert all(call.args == () for call in rng_cls.call_args_list)

    def test_seeded_generator_keyed_by_creature(self):
        """Test that a seed derives one generator per generation and creature."""
        with patch("moveset.enumerator.random.Random", wraps=random.Random) as rng_cls:
            CombinationEnumerator(self.store, seed=7).enumerate_fast(1, samples_per_creature=1)

        assert {call.args[0] for call in rng_cls.call_args_list} >= {"7:1:1", "7:1:2"}
