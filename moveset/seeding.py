"""Load a reference dataset from YAML into a ``MovesetStore``.

Expected layout:

    generations:
      - {id: 1, name: generation-i}
    version_groups:
      - {id: 1, identifier: red-blue, generation: 1}
    creatures:
      - {id: 1, name: bulbasaur, species: bulbasaur, generation: 1, types: [grass, poison], dex: 1}
    moves:
      - {id: 33, name: tackle, type: normal, power: 40, accuracy: 100, pp: 35, generation: 1}
    learnsets:
      - {creature: 1, version_group: 1, method: level-up, moves: [33, 45]}
    evolutions:
      - [1, 2]   # bulbasaur -> ivysaur
"""

import logging
from pathlib import Path
from typing import Any, Dict, Union

import yaml

from moveset.errors import InvalidRequestError
from moveset.models import Creature, Move

logger = logging.getLogger(__name__)

DEFAULT_DATASET = Path(__file__).parent / "inputs" / "sample_dex.yaml"


def load_dataset(path: Union[str, Path]) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise InvalidRequestError(f"Dataset {path} must be a mapping of table name to rows")
    return data


def _creature(row: Dict[str, Any]) -> Creature:
    types = row.get("types") or ["normal"]
    return Creature(
        id=int(row["id"]),
        name=row["name"],
        species_name=row.get("species", row["name"]),
        generation=int(row["generation"]),
        type1=types[0],
        type2=types[1] if len(types) > 1 else None,
        dex_number=row.get("dex"),
        is_cosmetic=bool(row.get("cosmetic", False)),
    )


def _move(row: Dict[str, Any]) -> Move:
    return Move(
        id=int(row["id"]),
        name=row["name"],
        type=row.get("type", "normal"),
        power=row.get("power"),
        accuracy=row.get("accuracy"),
        pp=row.get("pp"),
        generation=row.get("generation"),
    )


def seed_reference_data(store, path: Union[str, Path] = DEFAULT_DATASET, force: bool = False) -> bool:
    """Seed ``store`` from the YAML dataset at ``path``.

    Returns True if data was written. An already seeded store is left alone
    unless ``force`` is set, in which case it is reset first. The seeded
    flag is set only once every table has been written.
    """
    if store.is_seeded():
        if not force:
            logger.info("Reference data already seeded, skipping")
            return False
        logger.warning("Forcing reseed: clearing existing reference data")
        store.reset_reference_data()

    data = load_dataset(path)
    logger.info(f"Seeding reference data from {path}")

    creatures = [_creature(row) for row in data.get("creatures", [])]
    moves = [_move(row) for row in data.get("moves", [])]
    learnset_rows = []
    for entry in data.get("learnsets", []):
        for move_id in entry.get("moves", []):
            learnset_rows.append(
                (
                    int(entry["creature"]),
                    int(move_id),
                    int(entry["version_group"]),
                    entry.get("method"),
                    int(entry.get("level", 0)),
                )
            )

    # All tables and the flag land together or not at all
    with store.transaction():
        store.add_generations((int(g["id"]), g["name"]) for g in data.get("generations", []))
        store.add_version_groups(
            (int(v["id"]), v["identifier"], int(v["generation"])) for v in data.get("version_groups", [])
        )
        store.add_creatures(creatures)
        store.add_moves(moves)
        store.add_learnsets(learnset_rows)
        store.add_evolutions((int(a), int(b)) for a, b in data.get("evolutions", []))
        store.mark_seeded()

    logger.info(
        f"Seeded {len(creatures)} creatures, {len(moves)} moves, "
        f"{len(learnset_rows)} learnset rows"
    )
    return True
