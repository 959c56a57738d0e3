"""Exhaustive and sampled enumeration of unique four-move puzzles.

Design:
1. Effective move sets of every non-cosmetic creature are resolved once per
   generation and held in memory; the sweep never touches the store.
2. Every combination is checked against that map with a linear scan, so a
   full late-generation run is tens of millions of subset checks.
3. The sweep can be cancelled between creatures. Nothing is returned (and
   so nothing is persisted) for a cancelled run.

Two explicitly separate entry points exist: ``enumerate_complete`` walks
every C(n, 4) combination, ``enumerate_fast`` samples a bounded number of
combinations per creature and yields an incomplete catalog in minutes.
"""

import itertools
import logging
import random
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from enum import Enum
from math import comb
from typing import Callable, Iterator, List, Optional, Tuple

from moveset.errors import EnumerationCancelled
from moveset.learnability import LearnabilityResolver
from moveset.models import (
    MOVES_PER_PUZZLE,
    Creature,
    EnumerationResult,
    EnumerationStats,
    Puzzle,
    validate_generation,
)
from moveset.sampling import sample_without_replacement
from moveset.uniqueness import InMemoryUniquenessChecker

logger = logging.getLogger(__name__)

ComboSource = Callable[[Creature, List[int]], Iterator[Tuple[int, ...]]]


class EnumerationMode(Enum):
    """Catalog completeness."""
    COMPLETE = "complete"  # Every combination, hours for late generations
    FAST = "fast"          # Bounded random sample per creature


class CombinationEnumerator:
    """Builds the puzzle catalog for a generation."""

    PROGRESS_INTERVAL = 1000
    FAST_SAMPLES_PER_CREATURE = 50

    def __init__(
        self,
        store,
        resolver: Optional[LearnabilityResolver] = None,
        progress_interval: int = PROGRESS_INTERVAL,
        on_progress: Optional[Callable[[EnumerationStats], None]] = None,
        workers: int = 1,
        seed: Optional[int] = None,
    ):
        """Initialize the enumerator.

        Args:
            store: Reference data source
            resolver: Learnability resolver (created from ``store`` if omitted)
            progress_interval: Log progress every this many combinations
            on_progress: Called with a stats snapshot whenever progress is reported
            workers: Threads sweeping creatures in parallel (1 = sequential)
            seed: Base seed for fast-mode sampling; None draws a fresh sample each run
        """
        self.store = store
        self.resolver = resolver or LearnabilityResolver(store)
        self.progress_interval = max(1, progress_interval)
        self.on_progress = on_progress
        self.workers = max(1, workers)
        self.seed = seed

        self._cancel = threading.Event()
        self._lock = threading.Lock()
        self._next_report = self.progress_interval
        self._started = 0.0

    def cancel(self) -> None:
        """Ask a running sweep to stop at the next creature boundary."""
        self._cancel.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def enumerate_complete(self, generation: int) -> EnumerationResult:
        """Check every four-move combination of every creature."""
        return self._sweep(generation, EnumerationMode.COMPLETE, self._all_combinations)

    def enumerate_fast(self, generation: int, samples_per_creature: int = FAST_SAMPLES_PER_CREATURE) -> EnumerationResult:
        """Check at most ``samples_per_creature`` random combinations per creature."""
        generation = validate_generation(generation)

        def sampled(creature: Creature, moves: List[int]) -> Iterator[Tuple[int, ...]]:
            if self.seed is None:
                rng = random.Random()
            else:
                rng = random.Random(f"{self.seed}:{generation}:{creature.id}")
            return self._sampled_combinations(moves, samples_per_creature, rng)

        return self._sweep(generation, EnumerationMode.FAST, sampled)

    @staticmethod
    def _all_combinations(creature: Creature, moves: List[int]) -> Iterator[Tuple[int, ...]]:
        return itertools.combinations(moves, MOVES_PER_PUZZLE)

    @staticmethod
    def _sampled_combinations(moves: List[int], samples: int, rng: random.Random) -> Iterator[Tuple[int, ...]]:
        total = comb(len(moves), MOVES_PER_PUZZLE)
        if total <= samples:
            yield from itertools.combinations(moves, MOVES_PER_PUZZLE)
            return

        seen = set()
        # Bounded draws; duplicates are rare once C(n, 4) is well above the sample size
        for _ in range(samples * 3):
            if len(seen) >= samples:
                break
            combo = tuple(sorted(sample_without_replacement(moves, MOVES_PER_PUZZLE, rng)))
            if combo in seen:
                continue
            seen.add(combo)
            yield combo

    def _sweep(self, generation: int, mode: EnumerationMode, combos_for: ComboSource) -> EnumerationResult:
        generation = validate_generation(generation)
        self._cancel.clear()
        self._started = time.monotonic()
        self._next_report = self.progress_interval

        logger.info(f"Enumerating {mode.value} puzzles for gen {generation}")

        creatures = self.store.get_creatures_up_to(generation, include_cosmetic=False)
        stats = EnumerationStats(generation=generation, mode=mode.value, creatures_total=len(creatures))
        logger.info(f"Found {len(creatures)} creatures for gen {generation}")

        # Built once, read-only for the rest of the sweep
        move_map = self.resolver.effective_move_map(creatures, generation)
        checker = InMemoryUniquenessChecker(move_map, generation)

        puzzles: List[Puzzle] = []
        if self.workers == 1:
            for creature in creatures:
                self._checkpoint(stats)
                puzzles.extend(self._process_creature(creature, move_map, checker, combos_for, stats))
        else:
            with ThreadPoolExecutor(max_workers=self.workers) as executor:
                futures = [
                    executor.submit(self._process_creature_if_running, creature, move_map, checker, combos_for, stats)
                    for creature in creatures
                ]
                try:
                    for future in as_completed(futures):
                        puzzles.extend(future.result())
                except BaseException:
                    self.cancel()
                    for future in futures:
                        future.cancel()
                    raise
            self._checkpoint(stats)

        puzzles.sort(key=lambda p: (p.creature_id, p.key))
        stats.elapsed_seconds = time.monotonic() - self._started

        logger.info(
            f"Gen {generation} {mode.value} enumeration complete: "
            f"{stats.combinations_checked:,} combinations checked, "
            f"{stats.unique_found:,} unique, {stats.creatures_skipped} creatures skipped, "
            f"{stats.elapsed_seconds / 60:.1f} minutes"
        )
        return EnumerationResult(generation=generation, mode=mode.value, puzzles=puzzles, stats=stats)

    def _checkpoint(self, stats: EnumerationStats) -> None:
        if self._cancel.is_set():
            logger.warning(
                f"Enumeration for gen {stats.generation} cancelled after "
                f"{stats.combinations_checked:,} combinations"
            )
            raise EnumerationCancelled(stats.generation, stats.combinations_checked)

    def _process_creature_if_running(self, creature, move_map, checker, combos_for, stats) -> List[Puzzle]:
        if self._cancel.is_set():
            return []
        return self._process_creature(creature, move_map, checker, combos_for, stats)

    def _process_creature(
        self,
        creature: Creature,
        move_map,
        checker: InMemoryUniquenessChecker,
        combos_for: ComboSource,
        stats: EnumerationStats,
    ) -> List[Puzzle]:
        moves = sorted(move_map.get(creature.id, ()))
        if len(moves) < MOVES_PER_PUZZLE:
            logger.info(f"{creature.name} has only {len(moves)} moves, skipping")
            with self._lock:
                stats.creatures_skipped += 1
            return []

        started = time.monotonic()
        found: List[Puzzle] = []
        checked = 0
        pending_checked = 0
        pending_found = 0

        for combo in combos_for(creature, moves):
            checked += 1
            pending_checked += 1
            if checker.is_unique(combo, creature.id, stats.generation):
                pending_found += 1
                found.append(
                    Puzzle(
                        creature_id=creature.id,
                        move_ids=tuple(combo),
                        generation=stats.generation,
                        creature_name=creature.name,
                        dex_number=creature.dex_number,
                    )
                )
            if pending_checked >= self.progress_interval:
                self._advance(stats, pending_checked, pending_found)
                pending_checked = pending_found = 0

        self._advance(stats, pending_checked, pending_found)
        logger.debug(
            f"{creature.name}: {len(found)}/{checked} unique ({time.monotonic() - started:.1f}s)"
        )
        return found

    def _advance(self, stats: EnumerationStats, checked: int, found: int) -> None:
        """Fold a worker's counts into the shared stats and report progress."""
        with self._lock:
            stats.combinations_checked += checked
            stats.unique_found += found
            if stats.combinations_checked < self._next_report:
                return
            while self._next_report <= stats.combinations_checked:
                self._next_report += self.progress_interval
            stats.elapsed_seconds = time.monotonic() - self._started
            logger.info(
                f"[{stats.elapsed_seconds / 60:.1f}m] Checked {stats.combinations_checked:,} combos, "
                f"found {stats.unique_found:,} unique"
            )
            if self.on_progress:
                self.on_progress(stats)