"""Fixed-schedule backoff shared by the API transport and the image fetcher."""

from __future__ import annotations

import random
from collections.abc import Sequence


def schedule_delay(
    schedule: Sequence[float],
    attempt: int,
    jitter: float = 0.0,
) -> float:
    """Delay before retry *attempt* (0-based).

    Picks ``schedule[attempt]`` (the last entry repeats once the schedule is
    exhausted) and adds ``uniform(0, jitter)`` seconds.
    """
    if not schedule:
        base = 0.0
    else:
        base = schedule[min(attempt, len(schedule) - 1)]
    if jitter > 0:
        base += random.uniform(0, jitter)  # noqa: S311
    return base
