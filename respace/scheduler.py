"""
SM-2 interval scheduling.

Pure computation: given the recall quality of one review and the item's
running state, return the next interval, repetition count and ease factor.
"""

import math
from typing import NamedTuple

from .types import MIN_EASE_FACTOR

MIN_INTERVAL = 1.0
MAX_INTERVAL = 365.0

# Quality at or above which a review counts as a successful recall
PASSING_QUALITY = 3

# Interval multipliers applied after the base SM-2 interval
EASY_BONUS = 1.3
HARD_PENALTY = 0.6


class ScheduleResult(NamedTuple):
    interval: float
    repetitions: int
    ease_factor: float


def round2(value: float) -> float:
    """Round half-up to two decimals.

    Python's round() rounds half to even; stored intervals and ease
    factors have always been rounded half-up.
    """
    return math.floor(value * 100 + 0.5) / 100


def next_ease_factor(ease_factor: float, quality: int) -> float:
    """SM-2 ease update, floored at 1.3 (not rounded)."""
    miss = 5 - quality
    ease = ease_factor + (0.1 - miss * (0.08 + miss * 0.02))
    return max(ease, MIN_EASE_FACTOR)


def apply_quality_modifier(interval: float, quality: int) -> float:
    """Stretch easy recalls and shrink hard ones."""
    if quality == 5:
        return interval * EASY_BONUS
    if quality == 2:
        return interval * HARD_PENALTY
    return interval


def compute_next(
    quality: int,
    repetitions: int,
    ease_factor: float,
    interval: float,
) -> ScheduleResult:
    """
    Compute the next scheduling state for one review.

    A failed recall (quality < 3) restarts the learning phase with a one-day
    interval and leaves the ease factor alone. A successful recall grows the
    interval: 1 day, then 6 days, then the previous interval times the new
    ease factor, with quality modifiers and a [1, 365] clamp.

    Args:
        quality: Recall quality, one of 0, 2, 3, 5
        repetitions: Consecutive successful reviews so far
        ease_factor: Current ease factor
        interval: Current interval in days

    Returns:
        ScheduleResult with interval and ease rounded to two decimals
    """
    if quality < PASSING_QUALITY:
        return ScheduleResult(interval=MIN_INTERVAL, repetitions=0, ease_factor=ease_factor)

    new_ease = next_ease_factor(ease_factor, quality)
    new_repetitions = repetitions + 1

    if new_repetitions == 1:
        new_interval = 1.0
    elif new_repetitions == 2:
        new_interval = 6.0
    else:
        new_interval = interval * new_ease

    new_interval = apply_quality_modifier(new_interval, quality)
    new_interval = min(max(new_interval, MIN_INTERVAL), MAX_INTERVAL)

    return ScheduleResult(
        interval=round2(new_interval),
        repetitions=new_repetitions,
        ease_factor=round2(new_ease),
    )
