"""
Data types for review scheduling.
"""

import time
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, NamedTuple, Optional


MS_PER_MINUTE = 60 * 1000
MS_PER_DAY = 24 * 60 * MS_PER_MINUTE

# Initial scheduling state for a newly tracked document
DEFAULT_INTERVAL = 1.0
DEFAULT_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3

# "Again" puts the item back in front of the reader within the session
AGAIN_INTERVAL = 0.0104
AGAIN_DELAY_MS = 15 * MS_PER_MINUTE

# new_items_per_day value meaning "no cap"
UNLIMITED = -1


def now_ms() -> int:
    """Current time as epoch milliseconds.

    All review timestamps are stored in this form.
    """
    return int(time.time() * 1000)


def day_key(ms: int) -> str:
    """Local calendar day for an epoch-ms timestamp, e.g. ``Sun Oct 18 2026``.

    This is the key the daily counter compares to decide whether a new
    day has started. The format matches the one written by existing
    data files so a counter carried over from them is not reset early.
    """
    return datetime.fromtimestamp(ms / 1000).strftime("%a %b %d %Y")


class Rating(str, Enum):
    """How well the reader recalled a document."""
    AGAIN = "again"
    HARD = "hard"
    GOOD = "good"
    EASY = "easy"

    @property
    def quality(self) -> int:
        return RATING_QUALITY[self]

    @classmethod
    def parse(cls, value: "str | Rating") -> "Rating":
        """Accept a Rating, its name, or the 1-4 keyboard shortcut."""
        if isinstance(value, Rating):
            return value
        text = str(value).strip().lower()
        if text in _SHORTCUTS:
            return _SHORTCUTS[text]
        try:
            return cls(text)
        except ValueError:
            raise ValueError(
                f"Unknown rating {value!r} (expected one of: again, hard, good, easy)"
            ) from None


# Qualities 1 and 4 are never produced
RATING_QUALITY = {
    Rating.AGAIN: 0,
    Rating.HARD: 2,
    Rating.GOOD: 3,
    Rating.EASY: 5,
}

_SHORTCUTS = {
    "1": Rating.AGAIN,
    "2": Rating.HARD,
    "3": Rating.GOOD,
    "4": Rating.EASY,
}


@dataclass
class ReviewItem:
    """
    Scheduling state for one tracked document.

    Attributes:
        path: Document identifier (vault-relative path)
        interval: Days until the next review
        ease_factor: Growth multiplier for successful intervals (>= 1.3)
        repetitions: Consecutive successful reviews
        next_review_date: Epoch ms when the item becomes due
        last_review_date: Epoch ms of the last rating, None until rated
        is_new: True until the first rating
    """
    path: str
    interval: float = DEFAULT_INTERVAL
    ease_factor: float = DEFAULT_EASE_FACTOR
    repetitions: int = 0
    next_review_date: int = 0
    last_review_date: Optional[int] = None
    is_new: bool = True

    def is_due(self, now: int) -> bool:
        return self.next_review_date <= now

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the snapshot's item form (camelCase keys)."""
        d: dict[str, Any] = {
            "path": self.path,
            "interval": self.interval,
            "easeFactor": self.ease_factor,
            "repetitions": self.repetitions,
            "nextReviewDate": self.next_review_date,
        }
        if self.last_review_date is not None:
            d["lastReviewDate"] = self.last_review_date
        d["isNew"] = self.is_new
        return d

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "ReviewItem":
        """Deserialize a snapshot item.

        Raises:
            KeyError: If the item has no path
            TypeError, ValueError: If a field has the wrong type
        """
        path = d["path"]
        if not isinstance(path, str) or not path:
            raise ValueError(f"Invalid item path: {path!r}")
        last = d.get("lastReviewDate")
        is_new = d.get("isNew", True)
        if not isinstance(is_new, bool):
            raise ValueError(f"Invalid isNew for {path}: {is_new!r}")
        return cls(
            path=path,
            interval=float(d.get("interval", DEFAULT_INTERVAL)),
            ease_factor=float(d.get("easeFactor", DEFAULT_EASE_FACTOR)),
            repetitions=int(d.get("repetitions", 0)),
            next_review_date=int(d.get("nextReviewDate", 0)),
            last_review_date=int(last) if last is not None else None,
            is_new=is_new,
        )


class DailyLimitInfo(NamedTuple):
    """New-item budget for the current day. -1 limit/remaining = unlimited."""
    used: int
    limit: int
    remaining: int


class Statistics(NamedTuple):
    """Counts over all tracked items."""
    total: int
    due: int
    new: int
    learning: int
    review: int
