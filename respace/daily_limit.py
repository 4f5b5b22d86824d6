"""
Day-scoped counter of new items reviewed.

The counter resets lazily: every read or write first compares the stored
day key with today's, so no timer is needed and a restart that spans
midnight still starts the new day at zero.
"""

import logging
from typing import Optional

from .types import UNLIMITED, DailyLimitInfo, day_key

logger = logging.getLogger(__name__)


class DailyLimitTracker:
    """Counts new items reviewed on the current calendar day."""

    def __init__(self, last_reset_date: str = "", new_items_reviewed_today: int = 0):
        self.last_reset_date = last_reset_date
        self.new_items_reviewed_today = max(0, int(new_items_reviewed_today))

    def reset(self, now: int) -> None:
        """Start a fresh day."""
        self.last_reset_date = day_key(now)
        self.new_items_reviewed_today = 0

    def check_reset(self, now: int) -> bool:
        """Reset the counter if the calendar day changed. Returns True if reset."""
        today = day_key(now)
        if self.last_reset_date == today:
            return False
        if self.new_items_reviewed_today:
            logger.info(
                "New day (%s): resetting %d new items reviewed on %s",
                today, self.new_items_reviewed_today, self.last_reset_date or "?",
            )
        self.last_reset_date = today
        self.new_items_reviewed_today = 0
        return True

    def used(self, now: int) -> int:
        self.check_reset(now)
        return self.new_items_reviewed_today

    def increment(self, now: int) -> int:
        """Record one more new item reviewed today. Returns the new count."""
        self.check_reset(now)
        self.new_items_reviewed_today += 1
        return self.new_items_reviewed_today

    def info(self, limit: int, now: int) -> DailyLimitInfo:
        used = self.used(now)
        if limit == UNLIMITED:
            remaining = UNLIMITED
        else:
            remaining = max(0, limit - used)
        return DailyLimitInfo(used=used, limit=limit, remaining=remaining)

    @staticmethod
    def admits(limit: int, used: int, admitted: int = 0) -> bool:
        """Whether one more new item fits in today's budget."""
        return limit == UNLIMITED or used + admitted < limit

    def to_dict(self) -> dict:
        return {
            "lastResetDate": self.last_reset_date,
            "newCardsReviewedToday": self.new_items_reviewed_today,
        }

    @classmethod
    def from_dict(cls, d: dict, default_date: Optional[str] = None) -> "DailyLimitTracker":
        """Read the counter fields of a snapshot.

        Missing or null fields start a fresh counter.

        Raises:
            ValueError: If a field has the wrong type or a negative count
        """
        last_reset = d.get("lastResetDate")
        if last_reset is not None and not isinstance(last_reset, str):
            raise ValueError(f"Invalid lastResetDate: {last_reset!r}")
        count = d.get("newCardsReviewedToday")
        if count is None:
            count = 0
        if isinstance(count, bool) or not isinstance(count, int) or count < 0:
            raise ValueError(f"Invalid newCardsReviewedToday: {count!r}")
        return cls(
            last_reset_date=last_reset or default_date or "",
            new_items_reviewed_today=count,
        )
