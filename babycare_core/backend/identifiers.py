# =============================================================================
# babycare_core/backend/identifiers.py
# Short, Shareable Owner Identifiers
# =============================================================================
"""
Owner identifiers are the only key to a family's shared record set, so they
are drawn from a cryptographic RNG and checked against existing owners before
being handed out.
"""

from __future__ import annotations
import secrets
from typing import Callable, Optional

from babycare_core.errors import BackendError

# No 0/O, 1/I: the code is read aloud and typed on phones
OWNER_ID_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
OWNER_ID_LENGTH = 6
MAX_GENERATION_ATTEMPTS = 10


def generate_owner_id(choice: Optional[Callable[[str], str]] = None) -> str:
    """Return a random 6-character identifier from the restricted alphabet."""
    pick = choice or secrets.choice
    return "".join(pick(OWNER_ID_ALPHABET) for _ in range(OWNER_ID_LENGTH))


def generate_unique_owner_id(
    exists: Callable[[str], bool],
    max_attempts: int = MAX_GENERATION_ATTEMPTS,
) -> str:
    """
    Generate an identifier not yet known to the backend.

    Args:
        exists: Predicate telling whether an identifier is already taken
        max_attempts: Give up after this many collisions
    """
    for _ in range(max_attempts):
        candidate = generate_owner_id()
        if not exists(candidate):
            return candidate
    raise BackendError(
        f"Could not allocate a free identifier after {max_attempts} attempts",
        action="createBaby",
    )


def normalize_owner_id(raw: str) -> str:
    """Normalize user input: surrounding whitespace removed, upper-cased."""
    return (raw or "").strip().upper()


def is_valid_owner_id(value: str) -> bool:
    return (
        isinstance(value, str)
        and len(value) == OWNER_ID_LENGTH
        and all(ch in OWNER_ID_ALPHABET for ch in value)
    )
