"""Puzzle catalog export, import and verification.

A catalog is regenerated wholesale per generation and replaces the previous
one. CSV exports are written to a temporary file next to the target and
renamed into place, so an interrupted run leaves either the old file or the
new one and never a truncated mix.

Usage:
    results = run_full_enumeration(store, "all", EnumerationMode.FAST, "data")
    failures = verify_catalog(store.get_catalog(3), checker)
"""

import csv
import logging
import os
import tempfile
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Union

from moveset.enumerator import CombinationEnumerator, EnumerationMode
from moveset.errors import CatalogWriteError, InvalidRequestError
from moveset.models import MAX_GENERATION, MIN_GENERATION, EnumerationResult, Puzzle, validate_generation
from moveset.uniqueness import UniquenessChecker

logger = logging.getLogger(__name__)

CSV_COLUMNS = ["creatureId", "creatureName", "dexNumber", "moveIds", "generation"]


def catalog_filename(generation: int, mode: EnumerationMode) -> str:
    return f"puzzles-gen{generation}-{mode.value}.csv"


def parse_generation_target(value: Union[int, str]) -> List[int]:
    """``"all"`` -> [1..9]; anything else must be a single valid generation."""
    if isinstance(value, str) and value.strip().lower() == "all":
        return list(range(MIN_GENERATION, MAX_GENERATION + 1))
    return [validate_generation(value)]


def parse_mode(value: Union[str, EnumerationMode]) -> EnumerationMode:
    if isinstance(value, EnumerationMode):
        return value
    try:
        return EnumerationMode(str(value).strip().lower())
    except ValueError:
        raise InvalidRequestError(f"Unknown enumeration mode {value!r}: use 'fast' or 'complete'")


def write_catalog_csv(puzzles: Sequence[Puzzle], path: Union[str, Path]) -> Path:
    """Atomically write ``puzzles`` to ``path`` and return the final path."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=CSV_COLUMNS)
            writer.writeheader()
            for puzzle in puzzles:
                writer.writerow(puzzle.to_row())
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise

    size_mb = path.stat().st_size / 1024 / 1024
    logger.info(f"Saved {len(puzzles)} puzzles to {path} ({size_mb:.2f} MB)")
    return path


def load_catalog_csv(path: Union[str, Path]) -> List[Puzzle]:
    """Read a catalog export back into ``Puzzle`` values."""
    puzzles = []
    with open(path, "r", newline="", encoding="utf-8") as f:
        for row in csv.DictReader(f):
            dex = row.get("dexNumber") or ""
            puzzles.append(
                Puzzle(
                    creature_id=int(row["creatureId"]),
                    move_ids=tuple(int(m) for m in row["moveIds"].split(",")),
                    generation=int(row["generation"]),
                    creature_name=row.get("creatureName", ""),
                    dex_number=int(dex) if dex else None,
                )
            )
    return puzzles


def verify_catalog(puzzles: Iterable[Puzzle], checker: UniquenessChecker) -> List[Puzzle]:
    """Re-check every stored puzzle; return the ones whose owner is not the sole learner."""
    failures = []
    checked = 0
    for puzzle in puzzles:
        checked += 1
        if not checker.is_valid_puzzle(puzzle.move_ids, puzzle.creature_id, puzzle.generation):
            failures.append(puzzle)
    logger.info(f"Verified {checked} puzzles, {len(failures)} failed")
    return failures


def persist_result(store, result: EnumerationResult, mode: EnumerationMode, output_dir: Optional[Union[str, Path]]) -> EnumerationResult:
    """Write a finished enumeration to CSV (if ``output_dir``) and to the store."""
    path = None
    try:
        if output_dir is not None:
            path = Path(output_dir) / catalog_filename(result.generation, mode)
            write_catalog_csv(result.puzzles, path)
            result.output_path = str(path)
        store.replace_catalog(result.generation, mode.value, result.puzzles)
    except Exception as e:
        logger.error(
            f"Failed to persist gen {result.generation} catalog after "
            f"{result.stats.combinations_checked} combinations: {e}"
        )
        raise CatalogWriteError(
            result.generation,
            result.stats.combinations_checked,
            str(e),
            str(path) if path else None,
        ) from e
    return result


def run_full_enumeration(
    store,
    generation: Union[int, str],
    mode: Union[str, EnumerationMode],
    output_dir: Optional[Union[str, Path]] = None,
    enumerator: Optional[CombinationEnumerator] = None,
    samples_per_creature: int = CombinationEnumerator.FAST_SAMPLES_PER_CREATURE,
) -> List[EnumerationResult]:
    """Enumerate and persist catalogs for one generation or ``"all"``.

    Each generation is persisted only after its sweep completes. A cancelled
    or failed generation leaves its previous catalog untouched; generations
    finished before it stay written.
    """
    generations = parse_generation_target(generation)
    mode = parse_mode(mode)
    enumerator = enumerator or CombinationEnumerator(store)

    results = []
    for gen in generations:
        if mode is EnumerationMode.COMPLETE:
            result = enumerator.enumerate_complete(gen)
        else:
            result = enumerator.enumerate_fast(gen, samples_per_creature)
        results.append(persist_result(store, result, mode, output_dir))
    return results
