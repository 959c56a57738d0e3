"""Moveset trivia: identify a Pokémon from four moves it can learn.

The engine has four parts:
- Learnability resolver: effective moves of a creature under a generation cutoff
- Uniqueness checker: does a move set single out exactly one creature
- Puzzle selector: bounded random search for a live round
- Combination enumerator: offline sweep building the puzzle catalog
"""

__version__ = "0.1.0"

from moveset.game import MovesetGame
from moveset.storage import MovesetStore

__all__ = ["MovesetGame", "MovesetStore", "__version__"]
