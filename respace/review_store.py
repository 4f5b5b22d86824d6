"""
Review-item store.

The store is the single owner of scheduling state:
- ReviewItem per tracked document, keyed by path
- The daily new-item counter
- The persisted JSON snapshot (through a StorageGateway)

Every public operation runs under one lock. Memory is updated first and
then saved; track() and update_review() report save failures to the
caller, untrack() only logs them.
"""

import json
import logging
import threading
from dataclasses import replace
from typing import Callable, Optional

from .daily_limit import DailyLimitTracker
from .due import select_due
from .errors import CorruptDataError, PersistenceError
from .protocol import ExistsPredicate, StorageGateway
from .scheduler import compute_next
from .types import (
    AGAIN_DELAY_MS,
    AGAIN_INTERVAL,
    DEFAULT_EASE_FACTOR,
    DEFAULT_INTERVAL,
    MS_PER_DAY,
    UNLIMITED,
    DailyLimitInfo,
    Rating,
    ReviewItem,
    Statistics,
    now_ms,
)

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1
DEFAULT_DATA_LOCATION = "spaced-repetition-data.json"
DEFAULT_NEW_ITEMS_PER_DAY = 20
MAX_NEW_ITEMS_PER_DAY = 1000

# Suffix for the copy of an unreadable snapshot kept before reinitializing
CORRUPT_SUFFIX = ".corrupt"


def validate_new_items_per_day(limit: int) -> int:
    """Check a daily new-item limit: -1 (unlimited) or 1..1000."""
    if isinstance(limit, bool) or not isinstance(limit, int):
        raise ValueError(f"new_items_per_day must be an integer: {limit!r}")
    if limit != UNLIMITED and not 1 <= limit <= MAX_NEW_ITEMS_PER_DAY:
        raise ValueError(
            f"new_items_per_day must be -1 (unlimited) or 1-{MAX_NEW_ITEMS_PER_DAY}: {limit}"
        )
    return limit


def parse_snapshot(content: str) -> tuple[list[ReviewItem], DailyLimitTracker]:
    """
    Parse a snapshot document into items and the daily counter.

    Raises:
        CorruptDataError: If the content is not a valid snapshot
    """
    try:
        data = json.loads(content)
        if not isinstance(data, dict):
            raise ValueError("snapshot is not a JSON object")
        raw_items = data.get("items") or []
        if not isinstance(raw_items, list):
            raise ValueError("snapshot items is not a list")
        items = [ReviewItem.from_dict(d) for d in raw_items]
        daily = DailyLimitTracker.from_dict(data)
    except (ValueError, KeyError, TypeError) as e:
        raise CorruptDataError(f"Unreadable review data: {e}") from e
    return items, daily


class ReviewStore:
    """
    Tracked documents and their review schedule.

    Args:
        gateway: Storage for the JSON snapshot
        data_location: Snapshot path within the gateway
        new_items_per_day: Daily cap on new items (-1 for no cap)
        clock: Returns the current epoch ms (injectable for tests)
    """

    def __init__(
        self,
        gateway: StorageGateway,
        data_location: str = DEFAULT_DATA_LOCATION,
        *,
        new_items_per_day: int = DEFAULT_NEW_ITEMS_PER_DAY,
        clock: Callable[[], int] = now_ms,
    ):
        self._gateway = gateway
        self._data_location = data_location
        self._limit = validate_new_items_per_day(new_items_per_day)
        self._clock = clock
        self._items: dict[str, ReviewItem] = {}
        self._daily = DailyLimitTracker()
        self._daily.reset(clock())
        self._lock = threading.RLock()

    @property
    def data_location(self) -> str:
        return self._data_location

    @property
    def new_items_per_day(self) -> int:
        return self._limit

    @new_items_per_day.setter
    def new_items_per_day(self, limit: int) -> None:
        with self._lock:
            self._limit = validate_new_items_per_day(limit)

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, id: str) -> bool:
        return self.is_tracked(id)

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def _reinitialize(self) -> None:
        self._items.clear()
        self._daily.reset(self._clock())

    def _save_or_log(self, what: str) -> None:
        try:
            self.save()
        except PersistenceError as e:
            logger.error("Error saving review data after %s: %s", what, e)

    def load(self) -> None:
        """
        Load the snapshot, replacing in-memory state.

        Never raises. A missing or blank snapshot starts an empty store and
        writes it out. An unreadable snapshot is copied aside, then the
        store starts empty; if even that save fails the session continues
        in memory only.
        """
        with self._lock:
            path = self._data_location
            content: Optional[str] = None
            try:
                if self._gateway.exists(path):
                    content = self._gateway.read(path)
                if content and content.strip():
                    items, daily = parse_snapshot(content)
                    self._items = {item.path: item for item in items}
                    self._daily = daily
                    self._daily.check_reset(self._clock())
                    logger.info("Loaded %d review items from %s", len(self._items), path)
                    return
            except CorruptDataError as e:
                logger.error("Discarding corrupt review data in %s: %s", path, e)
                self._preserve_corrupt(path, content)
            except (OSError, ValueError) as e:
                logger.error("Error loading review data from %s: %s", path, e)

            self._reinitialize()
            self._save_or_log("initializing data file")
            logger.info("Created new review data file %s", path)

    def _preserve_corrupt(self, path: str, content: Optional[str]) -> None:
        if content is None:
            return
        backup = path + CORRUPT_SUFFIX
        try:
            self._gateway.write(backup, content)
            logger.warning("Corrupt review data preserved as %s", backup)
        except OSError as e:
            logger.warning("Could not preserve corrupt review data: %s", e)

    def snapshot(self) -> dict:
        """The persisted document for the current state."""
        with self._lock:
            data = {
                "version": SNAPSHOT_VERSION,
                "items": [item.to_dict() for item in self._items.values()],
            }
            data.update(self._daily.to_dict())
            return data

    def save(self) -> None:
        """
        Write the snapshot.

        Raises:
            PersistenceError: If serialization or the write fails
        """
        with self._lock:
            try:
                content = json.dumps(self.snapshot(), indent=2, allow_nan=False)
                self._gateway.write(self._data_location, content)
            except (OSError, TypeError, ValueError) as e:
                raise PersistenceError(
                    f"Failed to save review data to {self._data_location}: {e}"
                ) from e

    # -------------------------------------------------------------------------
    # Write Operations
    # -------------------------------------------------------------------------

    def track(self, id: str) -> bool:
        """
        Start tracking a document. No-op if already tracked.

        Returns:
            True if a new item was created

        Raises:
            PersistenceError: If the save fails (the item is not kept)
        """
        with self._lock:
            if id in self._items:
                return False
            self._items[id] = ReviewItem(
                path=id,
                interval=DEFAULT_INTERVAL,
                ease_factor=DEFAULT_EASE_FACTOR,
                repetitions=0,
                next_review_date=self._clock(),
                is_new=True,
            )
            try:
                self.save()
            except PersistenceError:
                del self._items[id]
                logger.error("Failed to track %s", id)
                raise
            logger.info("Tracking %s", id)
            return True

    def untrack(self, id: str) -> bool:
        """
        Stop tracking a document.

        The removal stands even if saving fails; the failure is only logged.

        Returns:
            True if the document was tracked
        """
        with self._lock:
            if self._items.pop(id, None) is None:
                return False
            logger.info("Untracked %s", id)
            self._save_or_log(f"untracking {id}")
            return True

    def update_review(self, id: str, rating: "Rating | str") -> Optional[ReviewItem]:
        """
        Apply a rating to a tracked document. No-op for unknown ids.

        Returns:
            A copy of the updated item, or None if the id is not tracked

        Raises:
            ValueError: If the rating is not recognized
            PersistenceError: If the save fails (in-memory state is kept)
        """
        rating = Rating.parse(rating)
        with self._lock:
            item = self._items.get(id)
            if item is None:
                return None

            was_new = item.is_new
            result = compute_next(
                rating.quality, item.repetitions, item.ease_factor, item.interval
            )
            now = self._clock()
            item.ease_factor = result.ease_factor
            item.repetitions = result.repetitions
            item.interval = result.interval
            item.last_review_date = now
            item.next_review_date = now + int(round(result.interval * MS_PER_DAY))
            item.is_new = False

            if was_new:
                self._daily.increment(now)

            if rating is Rating.AGAIN:
                item.repetitions = 0
                item.interval = AGAIN_INTERVAL
                item.next_review_date = now + AGAIN_DELAY_MS

            logger.info(
                "Reviewed %s as %s: interval=%s ease=%s reps=%d",
                id, rating.value, item.interval, item.ease_factor, item.repetitions,
            )
            try:
                self.save()
            except PersistenceError:
                logger.error("Failed to save review update for %s", id)
                raise
            return replace(item)

    def cleanup(self, exists: ExistsPredicate) -> int:
        """
        Drop items whose document no longer exists.

        A predicate that raises counts as "does not exist".

        Returns:
            Number of items removed

        Raises:
            PersistenceError: If the save after removal fails
        """
        with self._lock:
            missing = []
            for path in self._items:
                try:
                    if not exists(path):
                        missing.append(path)
                except Exception as e:
                    logger.warning("Error checking existence of %s: %s", path, e)
                    missing.append(path)

            for path in missing:
                del self._items[path]

            if missing:
                logger.info("Cleaned up %d deleted documents", len(missing))
                try:
                    self.save()
                except PersistenceError:
                    logger.error("Error saving after cleanup")
                    raise
            return len(missing)

    # -------------------------------------------------------------------------
    # Read Operations
    # -------------------------------------------------------------------------

    def is_tracked(self, id: str) -> bool:
        with self._lock:
            return id in self._items

    def get(self, id: str) -> Optional[ReviewItem]:
        """Copy of one item, or None."""
        with self._lock:
            item = self._items.get(id)
            return replace(item) if item is not None else None

    def get_all(self) -> list[ReviewItem]:
        """Copies of all tracked items."""
        with self._lock:
            return [replace(item) for item in self._items.values()]

    def get_due(self) -> list[ReviewItem]:
        """Copies of the items to review now, most urgent first."""
        with self._lock:
            now = self._clock()
            used = self._daily.used(now)
            due = select_due(self._items.values(), limit=self._limit, used=used, now=now)
            return [replace(item) for item in due]

    def get_daily_limit_info(self) -> DailyLimitInfo:
        with self._lock:
            return self._daily.info(self._limit, self._clock())

    def get_statistics(self) -> Statistics:
        """
        Counts over all items.

        new: never rated; learning: rated but with no successful streak
        (or on the sub-day "again" interval); review: everything else.
        due counts every item whose review date has passed, new or not.
        """
        with self._lock:
            now = self._clock()
            due = new = learning = review = 0
            for item in self._items.values():
                if item.is_new:
                    new += 1
                elif item.repetitions == 0 or item.interval < 1:
                    learning += 1
                else:
                    review += 1
                if item.is_due(now):
                    due += 1
            return Statistics(
                total=len(self._items), due=due, new=new, learning=learning, review=review,
            )
