"""
respace - spaced-repetition review scheduling for tracked documents.

Track documents, rate how well you recalled them, and get back the ones
due today:

    from respace import Reviewer

    with Reviewer("~/notes") as rv:
        rv.track_paths(["~/notes/ideas"])
        for item in rv.get_due():
            rv.update_review(item.path, "good")
"""

from .api import DueSummary, Reviewer, TrackResult
from .daily_limit import DailyLimitTracker
from .due import select_due
from .errors import CorruptDataError, PersistenceError, RespaceError
from .filters import Connector, Filter, evaluate, filter_items, parse_filter, parse_filter_chain
from .protocol import StorageGateway
from .review_store import ReviewStore
from .scheduler import ScheduleResult, compute_next
from .session import ReviewSession
from .storage import FileStorageGateway
from .types import DailyLimitInfo, Rating, ReviewItem, Statistics

__all__ = [
    "Connector",
    "CorruptDataError",
    "DailyLimitInfo",
    "DailyLimitTracker",
    "DueSummary",
    "FileStorageGateway",
    "Filter",
    "PersistenceError",
    "Rating",
    "RespaceError",
    "ReviewItem",
    "ReviewSession",
    "ReviewStore",
    "Reviewer",
    "ScheduleResult",
    "Statistics",
    "StorageGateway",
    "TrackResult",
    "compute_next",
    "evaluate",
    "filter_items",
    "parse_filter",
    "parse_filter_chain",
    "select_due",
]
