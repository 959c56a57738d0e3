"""Stateless round tokens.

The token is URL-safe base64 of a small JSON record. It is opaque to the
player but NOT authenticated or encrypted: anyone holding it can decode the
answer. Every decode treats it as untrusted input.
"""

import base64
import binascii
import json
from typing import Any, Dict

from moveset.errors import InvalidGenerationError, InvalidRoundTokenError
from moveset.models import MOVES_PER_PUZZLE, RoundState, validate_generation


def encode_round_token(state: RoundState) -> str:
    payload = {
        "owner": state.owner_id,
        "moves": list(state.moves),
        "gen": state.generation,
    }
    raw = json.dumps(payload, separators=(",", ":"), sort_keys=True).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii")


def decode_round_token(token: str) -> RoundState:
    """Decode and validate a token, raising InvalidRoundTokenError on any problem."""
    if not isinstance(token, str) or not token.strip():
        raise InvalidRoundTokenError("Invalid token: empty")

    try:
        raw = base64.urlsafe_b64decode(token.strip().encode("ascii"))
        data: Dict[str, Any] = json.loads(raw.decode("utf-8"))
    except (binascii.Error, UnicodeError, ValueError) as e:
        raise InvalidRoundTokenError(f"Invalid token: {e}") from e

    if not isinstance(data, dict):
        raise InvalidRoundTokenError("Invalid token: not a record")

    owner = data.get("owner")
    moves = data.get("moves")
    if not isinstance(owner, int) or isinstance(owner, bool):
        raise InvalidRoundTokenError("Invalid token: bad owner")
    if (
        not isinstance(moves, list)
        or len(moves) != MOVES_PER_PUZZLE
        or not all(isinstance(m, str) and m for m in moves)
    ):
        raise InvalidRoundTokenError("Invalid token: bad moves")
    try:
        generation = validate_generation(data.get("gen"))
    except InvalidGenerationError as e:
        raise InvalidRoundTokenError(f"Invalid token: {e}") from e

    return RoundState(owner_id=owner, moves=tuple(moves), generation=generation)
