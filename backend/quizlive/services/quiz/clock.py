"""Wall-clock helpers for question deadlines.

Deadlines are stored as epoch seconds. Nothing here keeps state; callers
pass ``now`` explicitly or read it from :func:`now`, which tests replace.
"""

import math
import time
from typing import Optional


def now() -> float:
    return time.time()


def deadline_after(start: float, duration_sec: float) -> float:
    return start + duration_sec


def is_question_live(ends_at: Optional[float], at: float) -> bool:
    """The one liveness check every read path uses."""
    if ends_at is None:
        return False
    return at < ends_at


def remaining_seconds(ends_at: Optional[float], at: float) -> int:
    """Whole seconds left, rounded up and never negative."""
    if ends_at is None:
        return 0
    return max(0, math.ceil(ends_at - at))
