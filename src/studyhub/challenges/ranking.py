"""Deterministic challenge scoring: no randomness, no incremental patching.

Final scores are recomputed from the full attempt log every time.
Leaderboard ordering (final score DESC, completion time ASC) lives in
the store query so the top-N cut happens in the database.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from typing import Any


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative values (62.5 -> 63)."""
    return int(math.floor(value + 0.5))


def compute_final_score(attempts: Iterable[dict[str, Any]]) -> int:
    """Aggregate percentage across every attempt in the log.

    round(100 * sum(score) / sum(total_questions)); 0 when nothing was asked.
    """
    attempts = list(attempts)
    total_score = sum(int(a.get("score", 0)) for a in attempts)
    total_questions = sum(int(a.get("total_questions", 0)) for a in attempts)
    if total_questions <= 0:
        return 0
    return round_half_up(100 * total_score / total_questions)


def compute_percentile(lower_count: int, other_count: int) -> int:
    """Share of other completed participants with a strictly lower score.

    The first completer (no others) is the 100th percentile.
    """
    if other_count <= 0:
        return 100
    return round_half_up(100 * lower_count / other_count)
