"""Cosmetic form classification.

A cosmetic form is a variant that only differs in looks or flavour (Pikachu's
caps and cosplay outfits, Gigantamax and Totem variants). Cosmetic forms are
never puzzle targets, never count as a competing owner of a moveset and stop
the pre-evolution walk.
"""

from typing import FrozenSet

# Trailing markers of a species name that flag a cosmetic variant
COSMETIC_SUFFIXES = (
    "-cap",
    "-gigantamax",
    "-totem",
    "-totem-alola",
    "-totem-busted",
    "-totem-disguised",
    "-cosplay",
    "-rock-star",
    "-belle",
    "-pop-star",
    "-phd",
    "-libre",
    "-starter",
)

# Tokens that mark a cosmetic variant anywhere in the name
COSMETIC_TOKENS: FrozenSet[str] = frozenset({"gigantamax", "totem", "cap"})


def is_cosmetic_form(species_name: str) -> bool:
    """Return True if ``species_name`` names a purely cosmetic variant."""
    name = (species_name or "").strip().lower()
    if not name:
        return False
    if name.endswith(COSMETIC_SUFFIXES):
        return True
    tokens = name.split("-")[1:]
    return any(token in COSMETIC_TOKENS for token in tokens)
