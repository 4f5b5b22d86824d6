"""
Review sessions.

A session walks a fixed queue of due items. Rating an item "again" appends
a copy to the end of the queue, so it comes back before the session ends.
"""

import logging
from dataclasses import replace
from typing import Optional

from .review_store import ReviewStore
from .types import Rating, ReviewItem

logger = logging.getLogger(__name__)


class ReviewSession:
    """
    One pass over a review queue.

    Args:
        store: Store that receives the ratings
        queue: Items to review, in order (usually get_due(), maybe filtered)
    """

    def __init__(self, store: ReviewStore, queue: list[ReviewItem]):
        self._store = store
        self.queue: list[ReviewItem] = list(queue)
        self.index = 0
        self.reviewed = 0

    def __len__(self) -> int:
        return len(self.queue)

    @property
    def finished(self) -> bool:
        return self.index >= len(self.queue)

    @property
    def current(self) -> Optional[ReviewItem]:
        if self.finished:
            return None
        return self.queue[self.index]

    @property
    def remaining(self) -> int:
        return max(0, len(self.queue) - self.index)

    def rate(self, rating: "Rating | str") -> Optional[ReviewItem]:
        """
        Rate the current item and move to the next one.

        Returns:
            The item as stored after the rating, or None if the session is
            finished or the item was untracked meanwhile

        Raises:
            PersistenceError: If the store cannot save the rating
        """
        rating = Rating.parse(rating)
        item = self.current
        if item is None:
            return None

        updated = self._store.update_review(item.path, rating)
        if rating is Rating.AGAIN:
            self.queue.append(replace(item))
        self.index += 1
        self.reviewed += 1
        return updated

    def more_due(self) -> list[ReviewItem]:
        """Due items that were never part of this session's queue."""
        queued = {item.path for item in self.queue}
        return [item for item in self._store.get_due() if item.path not in queued]
