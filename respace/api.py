"""
Core API for scheduled document review.

Reviewer wires the pieces together for one vault (a directory of
markdown documents):
- configuration from ``<vault>/.respace/respace.toml``
- a FileStorageGateway rooted at the vault
- the ReviewStore holding every tracked document's schedule
- frontmatter-based property resolution for filters
- optional background autosave

Host integrations (editors, file watchers, the CLI) talk to Reviewer; it
turns their events into store operations.
"""

import logging
import os
import threading
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Callable, NamedTuple, Optional

from .config import ReviewConfig, get_store_dir, load_or_create_config, update_config
from .errors import PersistenceError
from .filters import Filter, filter_items
from .logging_config import configure_ops_log
from .properties import FrontmatterResolver, collect_property_names, collect_property_values
from .review_store import ReviewStore
from .session import ReviewSession
from .storage import FileStorageGateway
from .types import UNLIMITED, DailyLimitInfo, Rating, ReviewItem, Statistics, now_ms

logger = logging.getLogger(__name__)

MARKDOWN_SUFFIX = ".md"


class TrackResult(NamedTuple):
    """Outcome of tracking or untracking a batch of paths."""
    changed: list[str]
    skipped: list[str]
    errors: list[tuple[str, str]]


class DueSummary(NamedTuple):
    """What a (possibly filtered) review session would contain."""
    total: int
    due: int
    filtered: int
    new_in_filtered: int
    limit: DailyLimitInfo

    @property
    def over_budget(self) -> bool:
        """More new items match than today's budget allows."""
        return self.limit.limit != UNLIMITED and self.new_in_filtered > self.limit.remaining


def resolve_vault(vault_path: Optional[Path]) -> Path:
    """Vault root: the given path, then RESPACE_VAULT, then the current directory."""
    if vault_path is not None:
        return Path(vault_path).expanduser().resolve()
    env = os.environ.get("RESPACE_VAULT")
    if env:
        return Path(env).expanduser().resolve()
    return Path.cwd().resolve()


class Reviewer:
    """
    Scheduled review of the documents in one vault.

    Args:
        vault_path: Vault root (default: RESPACE_VAULT, then the current
            directory)
        store_path: Store directory for config and logs (default:
            RESPACE_STORE_PATH, then ``<vault>/.respace``)
        clock: Returns the current epoch ms (injectable for tests)
        ops_log: Write an operations log into the store directory
    """

    def __init__(
        self,
        vault_path: Optional[Path] = None,
        *,
        store_path: Optional[Path] = None,
        clock: Callable[[], int] = now_ms,
        ops_log: bool = False,
    ):
        self._vault = resolve_vault(vault_path)
        self._store_path = Path(store_path) if store_path is not None else get_store_dir(self._vault)
        self._log_handler: Optional[logging.Handler] = None
        if ops_log:
            self._log_handler = configure_ops_log(self._store_path)

        try:
            self.config: ReviewConfig = load_or_create_config(self._store_path)
            self._gateway = FileStorageGateway(self._vault)
            self._store = ReviewStore(
                self._gateway,
                self.config.data_location,
                new_items_per_day=self.config.new_items_per_day,
                clock=clock,
            )
            self._store.load()
        except Exception:
            self._remove_log_handler()
            raise
        self._resolver = FrontmatterResolver(self._gateway)

        self._autosave_stop = threading.Event()
        self._autosave_thread: Optional[threading.Thread] = None
        self._closed = False

    def __enter__(self) -> "Reviewer":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    @property
    def vault(self) -> Path:
        return self._vault

    @property
    def store_path(self) -> Path:
        return self._store_path

    @property
    def store(self) -> ReviewStore:
        return self._store

    # -------------------------------------------------------------------------
    # Store operations
    # -------------------------------------------------------------------------

    def track(self, id: str) -> bool:
        return self._store.track(id)

    def untrack(self, id: str) -> bool:
        return self._store.untrack(id)

    def is_tracked(self, id: str) -> bool:
        return self._store.is_tracked(id)

    def get_all(self) -> list[ReviewItem]:
        return self._store.get_all()

    def update_review(self, id: str, rating: "Rating | str") -> Optional[ReviewItem]:
        return self._store.update_review(id, rating)

    def get_daily_limit_info(self) -> DailyLimitInfo:
        return self._store.get_daily_limit_info()

    def get_statistics(self) -> Statistics:
        return self._store.get_statistics()

    def cleanup(self) -> int:
        """Untrack documents that no longer exist in the vault."""
        return self._store.cleanup(self._gateway.exists)

    def get_due(
        self,
        filters: Optional[Sequence[Filter]] = None,
        *,
        short_circuit: bool = True,
    ) -> list[ReviewItem]:
        """Due items, narrowed by a filter chain over document properties."""
        due = self._store.get_due()
        if not filters:
            return due
        return filter_items(due, self._resolver, filters, short_circuit=short_circuit)

    def due_summary(
        self,
        filters: Optional[Sequence[Filter]] = None,
        *,
        short_circuit: bool = True,
    ) -> DueSummary:
        due = self._store.get_due()
        filtered = self.get_due(filters, short_circuit=short_circuit) if filters else due
        return DueSummary(
            total=len(self._store),
            due=len(due),
            filtered=len(filtered),
            new_in_filtered=sum(1 for item in filtered if item.is_new),
            limit=self._store.get_daily_limit_info(),
        )

    def session(
        self,
        filters: Optional[Sequence[Filter]] = None,
        *,
        short_circuit: bool = True,
    ) -> ReviewSession:
        """Start a review session over the (filtered) due queue."""
        return ReviewSession(self._store, self.get_due(filters, short_circuit=short_circuit))

    def set_new_items_per_day(self, limit: int) -> None:
        """Change the daily new-item limit and save it to the config."""
        self.config = update_config(self._store_path, new_items_per_day=limit)
        self._store.new_items_per_day = limit

    # -------------------------------------------------------------------------
    # Host events
    # -------------------------------------------------------------------------

    def _document_id(self, path: "str | Path") -> str:
        """Vault-relative id for a path given relative to cwd or absolute."""
        p = Path(path).expanduser()
        if not p.is_absolute():
            p = Path.cwd() / p
        try:
            return self._gateway.relative(p)
        except ValueError:
            raise ValueError(f"Path is outside the vault {self._vault}: {path}") from None

    def _markdown_files(self, path: "str | Path") -> list[str]:
        """Ids of the markdown documents at path (file or directory)."""
        document_id = self._document_id(path)
        full = self._gateway.resolve(document_id)
        if full.is_dir():
            return sorted(
                self._gateway.relative(f)
                for f in full.rglob(f"*{MARKDOWN_SUFFIX}")
                if f.is_file() and not any(part.startswith(".") for part in f.relative_to(full).parts)
            )
        if full.is_file():
            return [document_id] if full.suffix == MARKDOWN_SUFFIX else []
        raise FileNotFoundError(f"No such file or directory: {path}")

    def track_paths(self, paths: Iterable["str | Path"]) -> TrackResult:
        """
        Track markdown files, or every markdown file under a directory.

        A failure on one document does not stop the others.
        """
        added: list[str] = []
        skipped: list[str] = []
        errors: list[tuple[str, str]] = []
        for path in paths:
            try:
                ids = self._markdown_files(path)
            except (OSError, ValueError) as e:
                errors.append((str(path), str(e)))
                continue
            for document_id in ids:
                try:
                    if self._store.track(document_id):
                        added.append(document_id)
                    else:
                        skipped.append(document_id)
                except PersistenceError as e:
                    logger.error("Failed to track %s: %s", document_id, e)
                    errors.append((document_id, str(e)))
        return TrackResult(added, skipped, errors)

    def untrack_paths(self, paths: Iterable["str | Path"]) -> TrackResult:
        """Untrack documents by path; directories untrack everything under them."""
        removed: list[str] = []
        skipped: list[str] = []
        errors: list[tuple[str, str]] = []
        for path in paths:
            try:
                document_id = self._document_id(path)
            except ValueError as e:
                errors.append((str(path), str(e)))
                continue
            prefix = document_id.rstrip("/") + "/"
            if self._store.is_tracked(document_id):
                ids = [document_id]
            else:
                # Directory (possibly already deleted): match by prefix
                ids = [item.path for item in self._store.get_all()
                       if document_id in (".", "") or item.path.startswith(prefix)]
            if not ids:
                skipped.append(document_id)
            for i in ids:
                if self._store.untrack(i):
                    removed.append(i)
        return TrackResult(removed, skipped, errors)

    def rename(self, old_id: str, new_id: str) -> bool:
        """
        Follow a document rename. Only tracked documents are affected.

        The document is untracked under its old id and tracked again under
        the new one.
        """
        if not self._store.is_tracked(old_id):
            return False
        self._store.untrack(old_id)
        self._store.track(new_id)
        logger.info("Updated tracking path: %s -> %s", old_id, new_id)
        return True

    def delete(self, id: str) -> bool:
        """Follow a document deletion."""
        if self._store.untrack(id):
            logger.info("Untracked deleted file: %s", id)
            return True
        return False

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    def properties(self, id: str) -> Optional[dict]:
        return self._resolver(id)

    def property_names(self) -> list[str]:
        """Property names used by tracked documents."""
        return collect_property_names(self._resolver, (i.path for i in self._store.get_all()))

    def property_values(self, name: str) -> list[str]:
        """Values of one property across tracked documents."""
        return collect_property_values(
            self._resolver, (i.path for i in self._store.get_all()), name,
        )

    # -------------------------------------------------------------------------
    # Autosave and shutdown
    # -------------------------------------------------------------------------

    def autosave(self) -> bool:
        """Save now, logging instead of raising on failure."""
        try:
            self._store.save()
            return True
        except PersistenceError as e:
            logger.error("Error in automatic save: %s", e)
            return False

    def _autosave_loop(self, interval: float) -> None:
        while not self._autosave_stop.wait(interval):
            self.autosave()

    def start_autosave(self, interval: Optional[float] = None) -> None:
        """Save periodically in a background thread until stop_autosave()."""
        if interval is None:
            interval = self.config.autosave_seconds
        if interval <= 0 or self._autosave_thread is not None:
            return
        self._autosave_stop.clear()
        self._autosave_thread = threading.Thread(
            target=self._autosave_loop, args=(interval,),
            name="respace-autosave", daemon=True,
        )
        self._autosave_thread.start()

    def stop_autosave(self) -> None:
        thread = self._autosave_thread
        if thread is None:
            return
        self._autosave_stop.set()
        thread.join(timeout=5)
        self._autosave_thread = None

    def _remove_log_handler(self) -> None:
        if self._log_handler is not None:
            logging.getLogger("respace").removeHandler(self._log_handler)
            self._log_handler.close()
            self._log_handler = None

    def close(self) -> None:
        """Stop autosave and save pending state. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        self.stop_autosave()
        if self.autosave():
            logger.debug("Saved review data before closing")
        self._remove_log_handler()
