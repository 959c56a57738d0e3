"""Error classes for clearer exception sources."""

from typing import Optional


class MovesetError(Exception):
    """Base class for every error raised by the moveset engine."""


class InvalidGenerationError(MovesetError, ValueError):
    def __init__(self, value, min_generation: int = 1, max_generation: int = 9):
        super().__init__(
            f"Invalid generation {value!r}: expected an integer in "
            f"{min_generation}..{max_generation}"
        )
        self.value = value


class InvalidRoundTokenError(MovesetError, ValueError):
    pass


class InvalidRequestError(MovesetError, ValueError):
    pass


class CreatureNotFoundError(MovesetError, LookupError):
    def __init__(self, creature_id):
        super().__init__(f"Creature {creature_id} not found")
        self.creature_id = creature_id


class EnumerationCancelled(MovesetError):
    def __init__(self, generation: int, combinations_checked: int):
        super().__init__(
            f"Enumeration for gen {generation} cancelled after "
            f"{combinations_checked} combinations"
        )
        self.generation = generation
        self.combinations_checked = combinations_checked


class CatalogWriteError(MovesetError):
    def __init__(self, generation: int, combinations_checked: int, detail: str, path: Optional[str] = None):
        target = f" to {path}" if path else ""
        super().__init__(
            f"Failed to write gen {generation} catalog{target} "
            f"({combinations_checked} combinations checked): {detail}"
        )
        self.generation = generation
        self.combinations_checked = combinations_checked
        self.detail = detail
        self.path = path
