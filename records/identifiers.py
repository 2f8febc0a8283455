"""Private id generation.

A private id is a short random token from a fixed alphabet. It identifies a
record in links without exposing the sequential numeric id.
"""
import logging
import secrets
from typing import Awaitable, Callable

from record_config import PRIVATE_ID_ALPHABET
from records.errors import DatabaseError

logger = logging.getLogger(__name__)


def generate_private_id(length: int = 7, alphabet: str = PRIVATE_ID_ALPHABET) -> str:
    """Return a random token of ``length`` characters drawn from ``alphabet``."""
    if length < 1:
        raise ValueError("private id length must be positive")
    return "".join(secrets.choice(alphabet) for _ in range(length))


async def unique_private_id(
    exists: Callable[[str], Awaitable[bool]],
    length: int = 7,
    max_attempts: int = 50,
    generator: Callable[[int], str] = generate_private_id,
) -> str:
    """Sample tokens until ``exists`` reports one that is unused.

    Raises DatabaseError after ``max_attempts`` collisions; with the default
    alphabet and length that only happens when the id space is nearly full
    or ``exists`` is broken.
    """
    for attempt in range(1, max_attempts + 1):
        candidate = generator(length)
        if not await exists(candidate):
            if attempt > 1:
                logger.debug("Private id found after %d attempts", attempt)
            return candidate
    raise DatabaseError(
        f"could not generate a unique private id in {max_attempts} attempts"
    )
