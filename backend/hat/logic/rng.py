"""
Random number generation for word pool shuffling.

The pool is shuffled at every round start and at every turn handoff, so a
describer never sees the previous describer's ordering. Uses stdlib
random.Random: the pool is public to the table anyway, so statistical
perfection matters less than reproducibility. Passing a seed makes every
shuffle of a match deterministic for replays and tests.
"""

import random
import secrets

SEED_BYTES = 16


def generate_seed() -> str:
    """Generate a random match seed as a hex string."""
    return secrets.token_bytes(SEED_BYTES).hex()


def create_match_rng(seed_hex: str | None) -> random.Random:
    """
    Create the RNG owned by one match.

    With seed_hex=None the RNG is seeded from the OS; otherwise the seed
    must be a hex string and the resulting stream is reproducible.
    """
    if seed_hex is None:
        return random.Random()  # noqa: S311
    if not isinstance(seed_hex, str):
        raise TypeError(f"Seed must be a string, got {type(seed_hex).__name__}")
    try:
        value = int(seed_hex, 16)
    except ValueError:
        raise ValueError("Seed contains invalid hex characters") from None
    return random.Random(value)  # noqa: S311


def fisher_yates_shuffle(words: list[str], rng: random.Random) -> list[str]:
    """
    Return a uniformly shuffled copy of words (Fisher-Yates / Knuth).

    For i from n-1 down to 1: swap words[i] with words[randint(0, i)].
    """
    result = list(words)
    for i in range(len(result) - 1, 0, -1):
        j = rng.randint(0, i)
        result[i], result[j] = result[j], result[i]
    return result
