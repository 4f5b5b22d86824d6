"""
Due-queue selection.
"""

from collections.abc import Iterable

from .daily_limit import DailyLimitTracker
from .types import ReviewItem


def due_sort_key(item: ReviewItem) -> tuple[float, int]:
    """Shorter intervals first, then earliest scheduled."""
    return (item.interval, item.next_review_date)


def select_due(
    items: Iterable[ReviewItem],
    *,
    limit: int,
    used: int,
    now: int,
) -> list[ReviewItem]:
    """
    Pick the items to review now, most urgent first.

    Reviewed items are due once their next review date has passed. New
    items are admitted in iteration order while today's budget lasts;
    the budget counts items admitted earlier in this same call, so one
    call never returns more than ``limit - used`` new items.

    Args:
        items: All tracked items, in store order
        limit: New items allowed per day (-1 for no cap)
        used: New items already reviewed today
        now: Current epoch ms

    Returns:
        The selected items, sorted by (interval, next_review_date)
    """
    due: list[ReviewItem] = []
    admitted_new = 0
    for item in items:
        if item.is_new:
            if DailyLimitTracker.admits(limit, used, admitted_new):
                due.append(item)
                admitted_new += 1
        elif item.is_due(now):
            due.append(item)
    due.sort(key=due_sort_key)
    return due
