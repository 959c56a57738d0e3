"""Tests for the DuckDB store and YAML seeding."""

import random
from unittest.mock import patch

import pytest

from moveset.errors import CreatureNotFoundError
from moveset.learnability import LearnabilityResolver
from moveset.models import Creature, Puzzle
from moveset.seeding import DEFAULT_DATASET, seed_reference_data
from moveset.storage import MovesetStore, normalize_move_name


class TestMovesetStore:
    """Test cases for MovesetStore reads."""

    @pytest.fixture(autouse=True)
    def _store(self, store):
        self.store = store

    def test_creatures_up_to(self):
        """Test generation filtering and cosmetic exclusion."""
        assert [c.id for c in self.store.get_creatures_up_to(1)] == [1, 2, 3, 4, 5, 7, 8]
        assert [c.id for c in self.store.get_creatures_up_to(1, include_cosmetic=False)] == [1, 2, 3, 4, 7, 8]
        assert 6 in [c.id for c in self.store.get_creatures_up_to(2)]

    def test_cosmetic_flag_derived_from_name(self):
        """Test that a Gigantamax form is flagged cosmetic on insert."""
        assert self.store.get_creature_by_id(5).is_cosmetic
        assert not self.store.get_creature_by_id(4).is_cosmetic

    def test_creature_lookup(self):
        """Test lookups by id and by name."""
        assert self.store.get_creature_by_id(1).name == "alpha"
        assert self.store.get_creature_by_name("  ALPHA ").id == 1
        with pytest.raises(CreatureNotFoundError):
            self.store.get_creature_by_id(404)
        with pytest.raises(CreatureNotFoundError):
            self.store.get_creature_by_name("missingno")

    def test_evolution_predecessors(self):
        """Test backward evolution edges with species names."""
        edges = self.store.get_evolution_predecessors(4)
        assert [(e.predecessor_id, e.predecessor_species_name) for e in edges] == [(3, "pidge")]
        assert self.store.get_evolution_predecessors(1) == []
        assert set(self.store.get_all_evolution_predecessors()) == {4, 5, 8}

    def test_learnable_moves_distinct(self):
        """Test distinct moves across creatures and version groups."""
        assert self.store.get_learnable_moves([1, 2], [1]) == [1, 2, 3, 4, 5]
        assert self.store.get_learnable_moves([4], [1, 2]) == [6, 7, 8, 10, 11]
        assert self.store.get_learnable_moves([], [1]) == []

    def test_version_groups_up_to(self):
        """Test the version group set for a cutoff."""
        assert self.store.get_version_groups_up_to(1) == [1]
        assert self.store.get_version_groups_up_to(9) == [1, 2, 3]

    def test_count_creatures_learning_all(self):
        """Test the grouped match counts used by the online checker."""
        matches = {m.creature_id: m.match_count for m in self.store.count_creatures_learning_all([1, 2, 3, 5], [1], 1)}
        assert matches == {1: 4, 2: 3}

    def test_find_owners(self):
        """Test owner lookup with pre-evolution moves counted."""
        assert self.store.find_owners([6, 9], 1) == [3, 4]
        assert self.store.find_owners([1, 2, 3, 5], 1) == [1]

    def test_moves_by_names_preserves_order(self):
        """Test name normalisation and input ordering."""
        moves = self.store.get_moves_by_names(["Move 3", "move-1", "nope"])
        assert [m.id for m in moves] == [3, 1]
        assert normalize_move_name("  Fire   Punch ") == "fire-punch"

    def test_moves_by_ids_preserves_order(self):
        """Test that id lookups keep the caller's order."""
        assert [m.id for m in self.store.get_moves_by_ids([5, 1, 999])] == [5, 1]

    def test_random_catalog_puzzle(self):
        """Test catalog draws for empty and populated generations."""
        assert self.store.random_catalog_puzzle(1) is None
        self.store.replace_catalog(1, "complete", [Puzzle(1, (1, 2, 3, 5), 1)])
        puzzle = self.store.random_catalog_puzzle(1, random.Random(0))
        assert puzzle.creature_id == 1
        assert puzzle.creature_name == "alpha"
        assert puzzle.move_ids == (1, 2, 3, 5)


class TestSeededFlag:
    """Test cases for idempotent initialization."""

    def setup_method(self):
        """Setup for each test."""
        self.store = MovesetStore(":memory:")

    def teardown_method(self):
        self.store.close()

    def test_flag_lifecycle(self):
        """Test set on seed, kept across seeds, cleared only by reset."""
        assert not self.store.is_seeded()
        assert seed_reference_data(self.store, DEFAULT_DATASET)
        assert self.store.is_seeded()

        assert not seed_reference_data(self.store, DEFAULT_DATASET)
        assert len(self.store.get_creatures_up_to(9)) == 12

        self.store.reset_reference_data()
        assert not self.store.is_seeded()
        assert self.store.get_creatures_up_to(9) == []

    def test_force_reseeds(self):
        """Test that force clears and reloads instead of duplicating rows."""
        seed_reference_data(self.store, DEFAULT_DATASET)
        self.store.replace_catalog(1, "fast", [Puzzle(25, (45, 84, 85, 86), 1)])

        assert seed_reference_data(self.store, DEFAULT_DATASET, force=True)
        assert len(self.store.get_creatures_up_to(9)) == 12
        assert self.store.catalog_size() == 0
        assert self.store.get_learnable_moves([26], [1]) == [45, 84, 85, 86]

    def test_failed_seed_leaves_nothing_behind(self):
        """Test that a seed failing partway rolls back every table and a retry does not duplicate rows."""
        with patch.object(self.store, "add_evolutions", side_effect=RuntimeError("disk full")):
            with pytest.raises(RuntimeError):
                seed_reference_data(self.store, DEFAULT_DATASET)

        assert not self.store.is_seeded()
        assert self.store.get_creatures_up_to(9) == []
        assert self.store._con.execute("SELECT count(*) FROM learnsets").fetchone()[0] == 0

        assert seed_reference_data(self.store, DEFAULT_DATASET)
        with MovesetStore(":memory:") as clean:
            seed_reference_data(clean, DEFAULT_DATASET)
            expected = clean._con.execute("SELECT count(*) FROM learnsets").fetchone()[0]
        assert self.store._con.execute("SELECT count(*) FROM learnsets").fetchone()[0] == expected

    def test_sample_dataset_shape(self):
        """Test forms and evolution lines in the bundled dataset."""
        seed_reference_data(self.store, DEFAULT_DATASET)
        assert self.store.get_creature_by_id(10080).is_cosmetic
        assert self.store.get_creature_by_id(10195).is_cosmetic
        assert self.store.get_creature_by_name("raichu").types == ["electric"]

        resolver = LearnabilityResolver(self.store)
        assert sorted(resolver.lineage(26)) == [25, 26, 172]
        # Raichu inherits Quick Attack from Pikachu
        assert 98 in resolver.effective_moves(26, 1)
        # Charm arrives with Pichu in gen 2
        assert 204 not in resolver.effective_moves(26, 1)
        assert 204 in resolver.effective_moves(26, 2)

    def test_file_store_persists_flag(self, tmp_path):
        """Test that the flag survives reopening a database file."""
        path = str(tmp_path / "db" / "moveset.duckdb")
        with MovesetStore(path) as store:
            seed_reference_data(store, DEFAULT_DATASET)
        with MovesetStore(path) as store:
            assert store.is_seeded()
            assert store.get_creature_by_id(1) == Creature(
                1, "bulbasaur", "bulbasaur", 1, "grass", "poison", 1, False
            )
