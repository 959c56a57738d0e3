"""Data model for the moveset trivia engine.

The reference dataset (creatures, moves, learnsets, evolutions) is read-only
for the engine. Puzzles and rounds are derived values and never patched.
"""

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Tuple

from moveset.errors import InvalidGenerationError

# Every puzzle shows exactly this many moves
MOVES_PER_PUZZLE = 4

MIN_GENERATION = 1
MAX_GENERATION = 9


def validate_generation(value) -> int:
    """Coerce a generation cutoff to int, rejecting anything outside 1..9."""
    if isinstance(value, bool):
        raise InvalidGenerationError(value, MIN_GENERATION, MAX_GENERATION)
    if isinstance(value, str):
        value = value.strip()
        if not value.isdigit():
            raise InvalidGenerationError(value, MIN_GENERATION, MAX_GENERATION)
        value = int(value)
    if not isinstance(value, int) or not MIN_GENERATION <= value <= MAX_GENERATION:
        raise InvalidGenerationError(value, MIN_GENERATION, MAX_GENERATION)
    return value


def moveset_key(move_ids) -> str:
    """Order-independent key of a move combination (``"7,33,52,98"``)."""
    return ",".join(str(m) for m in sorted(move_ids))


@dataclass(frozen=True)
class Creature:
    """A species or form entity."""
    id: int
    name: str
    species_name: str  # Groups forms of the same species
    generation: int  # Generation of introduction
    type1: str = "normal"
    type2: Optional[str] = None
    dex_number: Optional[int] = None
    is_cosmetic: bool = False

    @property
    def types(self) -> List[str]:
        return [t for t in (self.type1, self.type2) if t]

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "name": self.name,
            "species_name": self.species_name,
            "generation": self.generation,
            "type1": self.type1,
            "type2": self.type2,
            "dex_number": self.dex_number,
        }


@dataclass(frozen=True)
class Move:
    """An attack. Status moves have no power or accuracy."""
    id: int
    name: str
    type: str
    power: Optional[int] = None
    accuracy: Optional[int] = None
    pp: Optional[int] = None
    generation: Optional[int] = None

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "power": self.power,
            "accuracy": self.accuracy,
            "pp": self.pp,
        }


@dataclass(frozen=True)
class EvolutionPredecessor:
    """One backward evolution edge: ``predecessor_id`` evolves into the queried creature."""
    predecessor_id: int
    predecessor_species_name: str
    is_cosmetic: bool = False


@dataclass(frozen=True)
class OwnerMatch:
    """Row of the grouped aggregate: how many of the queried moves a creature can learn."""
    creature_id: int
    match_count: int


@dataclass(frozen=True)
class Puzzle:
    """A catalog entry: four moves that only ``creature_id`` can learn at ``generation``."""
    creature_id: int
    move_ids: Tuple[int, ...]
    generation: int
    creature_name: str = ""
    dex_number: Optional[int] = None

    @property
    def key(self) -> str:
        """Order-independent identity of the move combination."""
        return moveset_key(self.move_ids)

    def to_row(self) -> Dict:
        """CSV row for catalog exports."""
        return {
            "creatureId": self.creature_id,
            "creatureName": self.creature_name,
            "dexNumber": "" if self.dex_number is None else self.dex_number,
            "moveIds": self.key,
            "generation": self.generation,
        }


@dataclass(frozen=True)
class PuzzleRound:
    """A live round picked by the selector."""
    owner: Creature
    move_ids: Tuple[int, ...]
    generation: int
    attempts: int = 1


@dataclass(frozen=True)
class SelectionFailure:
    """The selector ran out of attempts without finding a unique moveset."""
    generation: int
    attempts: int
    reason: str = "no unique puzzle found"


@dataclass(frozen=True)
class RoundState:
    """Everything the round token carries."""
    owner_id: int
    moves: Tuple[str, ...]  # Move names as presented to the player
    generation: int


@dataclass
class RoundResult:
    """Returned to the caller when a round starts."""
    round_token: str
    moves: List[Move]
    generation: int
    source: str = "live"  # "live" or "catalog"

    @property
    def move_names(self) -> List[str]:
        return [m.name for m in self.moves]


@dataclass
class RoundFailure:
    """Returned when no round could be produced; the caller should retry."""
    generation: int
    message: str = "no unique puzzle found"
    attempts: int = 0


@dataclass
class AnswerResult:
    """Outcome of a single guess."""
    correct: bool
    points: int
    reveal_creature: Optional[Creature] = None
    lives_remaining: int = 0
    missing_moves: List[str] = field(default_factory=list)


@dataclass
class MovesetCheck:
    """Whether a player-built moveset belongs to exactly one creature."""
    is_unique: bool
    shared_with: List[str] = field(default_factory=list)


@dataclass
class EnumerationStats:
    """Counters for one enumeration run."""
    generation: int
    mode: str
    creatures_total: int = 0
    creatures_skipped: int = 0
    combinations_checked: int = 0
    unique_found: int = 0
    elapsed_seconds: float = 0.0


@dataclass
class EnumerationResult:
    """A finished enumeration: the full catalog plus its counters."""
    generation: int
    mode: str
    puzzles: List[Puzzle]
    stats: EnumerationStats
    output_path: Optional[str] = None


MoveSetMap = Dict[int, FrozenSet[int]]
