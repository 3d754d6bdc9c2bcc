"""Exponential backoff with jitter for the fallback loop."""

from __future__ import annotations

import random
from typing import Callable, Optional

from glance.config.defaults import BACKOFF_JITTER_RATIO


def exponential_backoff(
    attempt: int,
    base: float,
    cap: float,
    rand: Optional[Callable[[], float]] = None,
) -> float:
    """
    Delay in seconds before retry number ``attempt`` (1-based).

    Formula: min(base * 2^(attempt-1), cap) * uniform(0.8, 1.2), clamped to
    [0, cap]. Returns 0 when base or cap is non-positive; attempts below 1
    are treated as 1.

    Args:
        attempt: Retry number, starting at 1
        base: Delay of the first retry in seconds
        cap: Upper bound in seconds
        rand: Source of uniform [0, 1) floats, for deterministic tests
    """
    if base <= 0 or cap <= 0:
        return 0.0
    if attempt < 1:
        attempt = 1

    # Keep the exponent bounded; the cap wins long before this anyway.
    exponent = min(attempt - 1, 62)
    delay = min(base * (2 ** exponent), cap)

    r = (rand or random.random)()
    multiplier = (1.0 - BACKOFF_JITTER_RATIO) + r * (2 * BACKOFF_JITTER_RATIO)
    delay *= multiplier

    return max(0.0, min(delay, cap))
