"""Tests for sample_without_replacement."""

import random
from collections import Counter

import pytest

from moveset.sampling import sample_without_replacement


class TestSampleWithoutReplacement:
    """Test cases for the partial Fisher-Yates sampler."""

    def test_distinct_items(self):
        """Test that samples contain no repeats and come from the input."""
        rng = random.Random(7)
        items = list(range(20))
        for _ in range(100):
            picked = sample_without_replacement(items, 4, rng)
            assert len(set(picked)) == 4
            assert set(picked) <= set(items)

    def test_input_not_mutated(self):
        """Test that the caller's sequence is left untouched."""
        items = [5, 4, 3, 2, 1]
        sample_without_replacement(items, 3, random.Random(1))
        assert items == [5, 4, 3, 2, 1]

    def test_full_sample_is_permutation(self):
        """Test that k == n returns every item."""
        assert sorted(sample_without_replacement([3, 1, 2], 3, random.Random(0))) == [1, 2, 3]

    def test_too_many(self):
        """Test that asking for more items than available raises ValueError."""
        with pytest.raises(ValueError):
            sample_without_replacement([1, 2, 3], 4)

    def test_roughly_uniform(self):
        """Test that every item is picked about equally often."""
        rng = random.Random(42)
        counts = Counter()
        trials = 20000
        for _ in range(trials):
            counts.update(sample_without_replacement(range(8), 2, rng))
        expected = trials * 2 / 8
        for item in range(8):
            assert abs(counts[item] - expected) < expected * 0.1
