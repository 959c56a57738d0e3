"""DuckDB-backed reference dataset and puzzle catalog.

This is the only module that talks SQL. Everything above it works with the
dataclasses from ``moveset.models``.

Usage:
    store = MovesetStore("data/moveset.duckdb")
    creatures = store.get_creatures_up_to(3)
    version_groups = store.get_version_groups_up_to(3)
    moves = store.get_learnable_moves([25, 172], version_groups)
"""

import logging
import random
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

import duckdb

from moveset.errors import CreatureNotFoundError
from moveset.forms import is_cosmetic_form
from moveset.models import Creature, EvolutionPredecessor, Move, OwnerMatch, Puzzle

logger = logging.getLogger(__name__)

SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS generations (
        id INTEGER PRIMARY KEY,
        name TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS version_groups (
        id INTEGER PRIMARY KEY,
        identifier TEXT NOT NULL,
        generation INTEGER NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS creatures (
        id INTEGER PRIMARY KEY,
        name TEXT NOT NULL,
        species_name TEXT NOT NULL,
        generation INTEGER NOT NULL,
        type1 TEXT NOT NULL,
        type2 TEXT,
        dex_number INTEGER,
        is_cosmetic BOOLEAN NOT NULL DEFAULT FALSE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS moves (
        id INTEGER PRIMARY KEY,
        name TEXT NOT NULL,
        type TEXT NOT NULL,
        power INTEGER,
        accuracy INTEGER,
        pp INTEGER,
        generation INTEGER
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS learnsets (
        creature_id INTEGER NOT NULL,
        move_id INTEGER NOT NULL,
        version_group_id INTEGER NOT NULL,
        method TEXT,
        level INTEGER DEFAULT 0
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS evolutions (
        from_id INTEGER NOT NULL,
        to_id INTEGER NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS puzzle_catalog (
        generation INTEGER NOT NULL,
        mode TEXT NOT NULL,
        creature_id INTEGER NOT NULL,
        move_ids TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS app_state (
        key TEXT PRIMARY KEY,
        value TEXT
    )
    """,
]

REFERENCE_TABLES = ["learnsets", "evolutions", "moves", "creatures", "version_groups", "generations"]

CREATURE_COLUMNS = "id, name, species_name, generation, type1, type2, dex_number, is_cosmetic"
MOVE_COLUMNS = "id, name, type, power, accuracy, pp, generation"


def _placeholders(values: Sequence) -> str:
    return ", ".join("?" for _ in values)


def normalize_move_name(name: str) -> str:
    """Normalise a move name for lookup (``Fire Punch`` -> ``fire-punch``)."""
    return "-".join(name.strip().lower().split())


class MovesetStore:
    """Relational data source for creatures, moves, learnsets and the puzzle catalog."""

    SEEDED_KEY = "seeded_at"

    def __init__(self, db_path: str = ":memory:", read_only: bool = False):
        """Open (and create if needed) the database.

        Args:
            db_path: DuckDB file path, or ":memory:" for a throwaway store
            read_only: Open an existing file without write access
        """
        self.db_path = db_path
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._con = duckdb.connect(db_path, read_only=read_only)
        if not read_only:
            self.ensure_schema()

    def ensure_schema(self) -> None:
        for statement in SCHEMA:
            self._con.execute(statement)

    def close(self) -> None:
        self._con.close()

    def __enter__(self) -> "MovesetStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @contextmanager
    def transaction(self):
        """Run the enclosed writes atomically; any error rolls them all back."""
        self._con.begin()
        try:
            yield self
        except Exception:
            self._con.rollback()
            raise
        self._con.commit()

    # === Writes used by seeding ===

    def add_generations(self, rows: Iterable[Tuple[int, str]]) -> None:
        rows = list(rows)
        if rows:
            self._con.executemany("INSERT OR IGNORE INTO generations VALUES (?, ?)", rows)

    def add_version_groups(self, rows: Iterable[Tuple[int, str, int]]) -> None:
        rows = list(rows)
        if rows:
            self._con.executemany("INSERT OR IGNORE INTO version_groups VALUES (?, ?, ?)", rows)

    def add_creatures(self, creatures: Iterable[Creature]) -> None:
        rows = [
            (
                c.id,
                c.name,
                c.species_name,
                c.generation,
                c.type1,
                c.type2,
                c.dex_number,
                c.is_cosmetic or is_cosmetic_form(c.name),
            )
            for c in creatures
        ]
        if rows:
            self._con.executemany(
                f"INSERT OR IGNORE INTO creatures ({CREATURE_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                rows,
            )

    def add_moves(self, moves: Iterable[Move]) -> None:
        rows = [(m.id, m.name, m.type, m.power, m.accuracy, m.pp, m.generation) for m in moves]
        if rows:
            self._con.executemany(
                f"INSERT OR IGNORE INTO moves ({MOVE_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
                rows,
            )

    def add_learnsets(self, rows: Iterable[Tuple]) -> None:
        """Insert (creature_id, move_id, version_group_id[, method[, level]]) rows."""
        padded = []
        for row in rows:
            row = tuple(row)
            method = row[3] if len(row) > 3 else None
            level = row[4] if len(row) > 4 else 0
            padded.append((row[0], row[1], row[2], method, level))
        if padded:
            self._con.executemany("INSERT INTO learnsets VALUES (?, ?, ?, ?, ?)", padded)

    def add_evolutions(self, rows: Iterable[Tuple[int, int]]) -> None:
        """Insert (from_id, to_id) edges: ``from_id`` evolves into ``to_id``."""
        rows = list(rows)
        if rows:
            self._con.executemany("INSERT INTO evolutions VALUES (?, ?)", rows)

    # === Idempotent initialization ===

    def is_seeded(self) -> bool:
        row = self._con.execute(
            "SELECT value FROM app_state WHERE key = ?", [self.SEEDED_KEY]
        ).fetchone()
        return row is not None

    def mark_seeded(self) -> None:
        self._con.execute(
            "INSERT OR REPLACE INTO app_state VALUES (?, ?)",
            [self.SEEDED_KEY, datetime.now().isoformat(timespec="seconds")],
        )

    def reset_reference_data(self) -> None:
        """Administrative reset: drop all reference rows, the catalog and the seeded flag."""
        with self.transaction():
            for table in REFERENCE_TABLES + ["puzzle_catalog"]:
                self._con.execute(f"DELETE FROM {table}")
            self._con.execute("DELETE FROM app_state WHERE key = ?", [self.SEEDED_KEY])
        logger.info("Reference data reset")

    # === Reads consumed by the engine ===

    def get_creatures_up_to(self, max_generation: int, include_cosmetic: bool = True) -> List[Creature]:
        query = f"SELECT {CREATURE_COLUMNS} FROM creatures WHERE generation <= ?"
        if not include_cosmetic:
            query += " AND NOT is_cosmetic"
        rows = self._con.execute(query + " ORDER BY id", [max_generation]).fetchall()
        return [self._row_to_creature(r) for r in rows]

    def get_creature_by_id(self, creature_id: int) -> Creature:
        row = self._con.execute(
            f"SELECT {CREATURE_COLUMNS} FROM creatures WHERE id = ?", [creature_id]
        ).fetchone()
        if row is None:
            raise CreatureNotFoundError(creature_id)
        return self._row_to_creature(row)

    def get_creature_by_name(self, name: str) -> Creature:
        """Exact (case-insensitive) name lookup, for the command line."""
        row = self._con.execute(
            f"SELECT {CREATURE_COLUMNS} FROM creatures WHERE lower(name) = ?",
            [name.strip().lower()],
        ).fetchone()
        if row is None:
            raise CreatureNotFoundError(name)
        return self._row_to_creature(row)

    def get_evolution_predecessors(self, creature_id: int) -> List[EvolutionPredecessor]:
        rows = self._con.execute(
            """
            SELECT e.from_id, c.species_name, c.is_cosmetic
            FROM evolutions e
            JOIN creatures c ON c.id = e.from_id
            WHERE e.to_id = ?
            ORDER BY e.from_id
            """,
            [creature_id],
        ).fetchall()
        return [EvolutionPredecessor(r[0], r[1], bool(r[2])) for r in rows]

    def get_all_evolution_predecessors(self) -> Dict[int, List[EvolutionPredecessor]]:
        """Every backward edge at once, keyed by the evolved creature."""
        rows = self._con.execute(
            """
            SELECT e.to_id, e.from_id, c.species_name, c.is_cosmetic
            FROM evolutions e
            JOIN creatures c ON c.id = e.from_id
            ORDER BY e.to_id, e.from_id
            """
        ).fetchall()
        edges: Dict[int, List[EvolutionPredecessor]] = {}
        for to_id, from_id, species_name, cosmetic in rows:
            edges.setdefault(to_id, []).append(EvolutionPredecessor(from_id, species_name, bool(cosmetic)))
        return edges

    def get_version_groups_up_to(self, max_generation: int) -> List[int]:
        rows = self._con.execute(
            "SELECT id FROM version_groups WHERE generation <= ? ORDER BY id", [max_generation]
        ).fetchall()
        return [r[0] for r in rows]

    def get_learnable_moves(self, creature_ids: Sequence[int], version_group_ids: Sequence[int]) -> List[int]:
        if not creature_ids or not version_group_ids:
            return []
        rows = self._con.execute(
            f"""
            SELECT DISTINCT move_id FROM learnsets
            WHERE creature_id IN ({_placeholders(creature_ids)})
              AND version_group_id IN ({_placeholders(version_group_ids)})
            ORDER BY move_id
            """,
            list(creature_ids) + list(version_group_ids),
        ).fetchall()
        return [r[0] for r in rows]

    def get_learnset_map(self, version_group_ids: Sequence[int]) -> Dict[int, Set[int]]:
        """Direct (non-inherited) learnsets of every creature, restricted to the version groups."""
        if not version_group_ids:
            return {}
        rows = self._con.execute(
            f"""
            SELECT DISTINCT creature_id, move_id FROM learnsets
            WHERE version_group_id IN ({_placeholders(version_group_ids)})
            """,
            list(version_group_ids),
        ).fetchall()
        learnsets: Dict[int, Set[int]] = {}
        for creature_id, move_id in rows:
            learnsets.setdefault(creature_id, set()).add(move_id)
        return learnsets

    def count_creatures_learning_all(
        self,
        move_ids: Sequence[int],
        version_group_ids: Sequence[int],
        max_generation: int,
    ) -> List[OwnerMatch]:
        """Grouped aggregate: per non-cosmetic creature, how many of ``move_ids`` it can learn.

        Learnsets of non-cosmetic pre-evolutions count towards the evolved
        creature, matching the in-memory resolver. ``UNION`` in the recursive
        part removes duplicate rows so cyclic evolution data terminates.
        """
        if not move_ids or not version_group_ids:
            return []
        rows = self._con.execute(
            f"""
            WITH RECURSIVE lineage(creature_id, member_id) AS (
                SELECT c.id, c.id
                FROM creatures c
                WHERE c.generation <= ? AND NOT c.is_cosmetic
                UNION
                SELECT l.creature_id, e.from_id
                FROM lineage l
                JOIN evolutions e ON e.to_id = l.member_id
                JOIN creatures p ON p.id = e.from_id
                WHERE NOT p.is_cosmetic
            )
            SELECT l.creature_id, COUNT(DISTINCT ls.move_id) AS match_count
            FROM lineage l
            JOIN learnsets ls ON ls.creature_id = l.member_id
            WHERE ls.move_id IN ({_placeholders(move_ids)})
              AND ls.version_group_id IN ({_placeholders(version_group_ids)})
            GROUP BY l.creature_id
            ORDER BY l.creature_id
            """,
            [max_generation] + list(move_ids) + list(version_group_ids),
        ).fetchall()
        return [OwnerMatch(int(r[0]), int(r[1])) for r in rows]

    def find_owners(self, move_ids: Sequence[int], max_generation: int) -> List[int]:
        """Ids of every non-cosmetic creature that can learn all of ``move_ids``."""
        move_ids = sorted(set(move_ids))
        version_groups = self.get_version_groups_up_to(max_generation)
        matches = self.count_creatures_learning_all(move_ids, version_groups, max_generation)
        return [m.creature_id for m in matches if m.match_count == len(move_ids)]

    def get_moves_by_ids(self, move_ids: Sequence[int]) -> List[Move]:
        """Moves in the order of ``move_ids``; unknown ids are dropped."""
        if not move_ids:
            return []
        rows = self._con.execute(
            f"SELECT {MOVE_COLUMNS} FROM moves WHERE id IN ({_placeholders(move_ids)})",
            list(move_ids),
        ).fetchall()
        by_id = {r[0]: self._row_to_move(r) for r in rows}
        return [by_id[m] for m in move_ids if m in by_id]

    def get_moves_by_names(self, names: Sequence[str]) -> List[Move]:
        """Moves in the order of ``names``; unknown names are dropped."""
        if not names:
            return []
        normalized = [normalize_move_name(n) for n in names]
        rows = self._con.execute(
            f"""
            SELECT {MOVE_COLUMNS} FROM moves
            WHERE lower(replace(name, ' ', '-')) IN ({_placeholders(normalized)})
            """,
            normalized,
        ).fetchall()
        by_name = {normalize_move_name(r[1]): self._row_to_move(r) for r in rows}
        return [by_name[n] for n in normalized if n in by_name]

    # === Puzzle catalog ===

    def replace_catalog(self, generation: int, mode: str, puzzles: Sequence[Puzzle]) -> None:
        """Swap in a generation's catalog in one transaction; never merges."""
        rows = [(generation, mode, p.creature_id, p.key) for p in puzzles]
        with self.transaction():
            self._con.execute("DELETE FROM puzzle_catalog WHERE generation = ?", [generation])
            if rows:
                self._con.executemany("INSERT INTO puzzle_catalog VALUES (?, ?, ?, ?)", rows)
        logger.info(f"Stored {len(rows)} {mode} puzzles for gen {generation}")

    def get_catalog(self, generation: int) -> List[Puzzle]:
        rows = self._con.execute(
            """
            SELECT p.creature_id, p.move_ids, c.name, c.dex_number
            FROM puzzle_catalog p
            LEFT JOIN creatures c ON c.id = p.creature_id
            WHERE p.generation = ?
            ORDER BY p.creature_id, p.move_ids
            """,
            [generation],
        ).fetchall()
        return [self._row_to_puzzle(r, generation) for r in rows]

    def catalog_size(self, generation: Optional[int] = None) -> int:
        if generation is None:
            row = self._con.execute("SELECT COUNT(*) FROM puzzle_catalog").fetchone()
        else:
            row = self._con.execute(
                "SELECT COUNT(*) FROM puzzle_catalog WHERE generation = ?", [generation]
            ).fetchone()
        return int(row[0])

    def catalog_summary(self) -> List[Tuple[int, str, int, int]]:
        """(generation, mode, puzzles, distinct creatures) per stored generation."""
        rows = self._con.execute(
            """
            SELECT generation, mode, COUNT(*), COUNT(DISTINCT creature_id)
            FROM puzzle_catalog
            GROUP BY generation, mode
            ORDER BY generation
            """
        ).fetchall()
        return [(int(g), m, int(n), int(c)) for g, m, n, c in rows]

    def random_catalog_puzzle(self, generation: int, rng: Optional[random.Random] = None) -> Optional[Puzzle]:
        total = self.catalog_size(generation)
        if total == 0:
            return None
        offset = (rng or random).randrange(total)
        row = self._con.execute(
            """
            SELECT p.creature_id, p.move_ids, c.name, c.dex_number
            FROM puzzle_catalog p
            LEFT JOIN creatures c ON c.id = p.creature_id
            WHERE p.generation = ?
            ORDER BY p.creature_id, p.move_ids
            LIMIT 1 OFFSET ?
            """,
            [generation, offset],
        ).fetchone()
        return self._row_to_puzzle(row, generation) if row else None

    # === Row mapping ===

    @staticmethod
    def _row_to_creature(row) -> Creature:
        return Creature(
            id=row[0],
            name=row[1],
            species_name=row[2],
            generation=row[3],
            type1=row[4],
            type2=row[5],
            dex_number=row[6],
            is_cosmetic=bool(row[7]),
        )

    @staticmethod
    def _row_to_move(row) -> Move:
        return Move(
            id=row[0],
            name=row[1],
            type=row[2],
            power=row[3],
            accuracy=row[4],
            pp=row[5],
            generation=row[6],
        )

    @staticmethod
    def _row_to_puzzle(row, generation: int) -> Puzzle:
        creature_id, move_ids, name, dex_number = row
        return Puzzle(
            creature_id=creature_id,
            move_ids=tuple(int(m) for m in move_ids.split(",")),
            generation=generation,
            creature_name=name or "",
            dex_number=dex_number,
        )
