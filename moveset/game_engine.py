"""Scoring rules for a moveset round.

This is the single source of truth for points, hint penalties and lives.
Both the round service and the terminal game use it.
"""

from moveset.errors import InvalidRequestError


class GameEngine:
    """Core scoring for one round: three guesses, hints cost points."""

    MAX_ATTEMPTS = 3

    # Points for a correct guess, keyed by attempt number
    POINTS_BY_ATTEMPT = {1: 5, 2: 4, 3: 3}

    HINT_PENALTY = 1
    HINT_KINDS = ("generation", "type")

    @classmethod
    def validate_attempt(cls, attempt: int, hints_used: int) -> None:
        if isinstance(attempt, bool) or not isinstance(attempt, int) or not 1 <= attempt <= cls.MAX_ATTEMPTS:
            raise InvalidRequestError(f"Attempt must be 1..{cls.MAX_ATTEMPTS}, got {attempt!r}")
        if isinstance(hints_used, bool) or not isinstance(hints_used, int) or hints_used < 0:
            raise InvalidRequestError(f"Hints used must be a non-negative integer, got {hints_used!r}")

    @classmethod
    def score(cls, correct: bool, attempt: int, hints_used: int) -> int:
        """Points for a guess.

        Correct on attempt 1/2/3 scores 5/4/3, minus one per hint used,
        never below zero. Wrong guesses score nothing.
        """
        cls.validate_attempt(attempt, hints_used)
        if not correct:
            return 0
        return max(0, cls.POINTS_BY_ATTEMPT[attempt] - hints_used * cls.HINT_PENALTY)

    @classmethod
    def lives_remaining(cls, correct: bool, attempt: int) -> int:
        return cls.MAX_ATTEMPTS if correct else cls.MAX_ATTEMPTS - attempt

    @classmethod
    def should_reveal(cls, correct: bool, attempt: int) -> bool:
        """The answer is shown on a correct guess or once all attempts are spent."""
        return correct or attempt >= cls.MAX_ATTEMPTS

    @classmethod
    def max_possible_score(cls, rounds: int = 1) -> int:
        return cls.POINTS_BY_ATTEMPT[1] * rounds

    @classmethod
    def validate_hint_kind(cls, kind: str) -> str:
        kind = (kind or "").strip().lower()
        if kind not in cls.HINT_KINDS:
            raise InvalidRequestError(f"Unknown hint kind {kind!r}: use one of {', '.join(cls.HINT_KINDS)}")
        return kind
