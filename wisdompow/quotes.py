"""The collection of quotes served to clients that solve a challenge."""

from __future__ import annotations

import random

QUOTES: tuple[str, ...] = tuple(f"example{n}" for n in range(1, 18))


def get_random_quote() -> str:
    """Return a quote chosen uniformly at random."""
    return random.choice(QUOTES)