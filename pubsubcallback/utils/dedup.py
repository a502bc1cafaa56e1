"""
Duplicate suppression for redelivered WebSub notifications.

The hub re-sends a notification every time a video's metadata changes, and
occasionally redelivers the same push. Stores remember which video ids were
already dispatched so that only the first sighting can count as a new upload.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from collections import OrderedDict
from datetime import datetime, timezone

from sqlalchemy import Column, MetaData, String, Table, func, insert, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

DEFAULT_DEDUP_CAPACITY = 0  # unbounded


class DedupStore(ABC):
    """Tracks previously seen video ids.

    Empty ids are never recorded, so distinct malformed notifications without
    an id are not collapsed into one.
    """

    @abstractmethod
    def contains(self, video_id: str) -> bool:
        """Return True if ``video_id`` has been recorded."""

    @abstractmethod
    def record(self, video_id: str) -> None:
        """Remember ``video_id``. No-op for an empty id."""

    @abstractmethod
    def check_and_record(self, video_id: str) -> bool:
        """Record ``video_id`` and return True if it had not been seen before.

        The check and the insert happen atomically with respect to concurrent
        callers. An empty id is always a first sighting and is not recorded.
        """

    @abstractmethod
    def __len__(self) -> int:
        """Number of ids currently tracked."""


class InMemoryDedupStore(DedupStore):
    """Lock-guarded in-process store.

    Grows for the life of the process unless a capacity is given, in which
    case the oldest ids are evicted and an evicted video can count as new again.
    """

    def __init__(self, capacity: int = DEFAULT_DEDUP_CAPACITY):
        """
        Args:
            capacity: Maximum number of ids kept; 0 keeps every id forever
        """
        if capacity < 0:
            raise ValueError("capacity must be zero (unbounded) or positive")
        self.capacity = capacity
        self._seen: OrderedDict[str, None] = OrderedDict()
        self._lock = threading.Lock()

    def contains(self, video_id: str) -> bool:
        with self._lock:
            return video_id in self._seen

    def record(self, video_id: str) -> None:
        if not video_id:
            return
        with self._lock:
            self._insert(video_id)

    def check_and_record(self, video_id: str) -> bool:
        if not video_id:
            return True
        with self._lock:
            if video_id in self._seen:
                return False
            self._insert(video_id)
            return True

    def _insert(self, video_id: str) -> None:
        # Caller holds the lock
        self._seen[video_id] = None
        if self.capacity and len(self._seen) > self.capacity:
            evicted, _ = self._seen.popitem(last=False)
            logger.debug(f"Dedup store at capacity ({self.capacity}), evicted {evicted}")

    def __len__(self) -> int:
        with self._lock:
            return len(self._seen)


metadata = MetaData()

seen_videos_table = Table(
    "seen_videos",
    metadata,
    Column("video_id", String(255), primary_key=True),
    Column("first_seen_at", String(64), nullable=False),
)


class SqlDedupStore(DedupStore):
    """Store backed by a database table, surviving restarts.

    The primary key on ``video_id`` makes check-and-record a single INSERT:
    a unique violation means another delivery got there first.
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        self._init_database()

    def _init_database(self) -> None:
        try:
            metadata.create_all(self.engine, checkfirst=True)
        except SQLAlchemyError as exc:
            logger.error("Database initialization error: %s", exc)
            raise

    def contains(self, video_id: str) -> bool:
        stmt = select(seen_videos_table.c.video_id).where(seen_videos_table.c.video_id == video_id)
        try:
            with Session(self.engine) as session:
                return session.execute(stmt).first() is not None
        except SQLAlchemyError as exc:
            logger.error("Database error looking up video %s: %s", video_id, exc)
            return False

    def record(self, video_id: str) -> None:
        if video_id:
            self._try_insert(video_id)

    def check_and_record(self, video_id: str) -> bool:
        if not video_id:
            return True
        return self._try_insert(video_id)

    def _try_insert(self, video_id: str) -> bool:
        """Insert ``video_id``; False if it was already present or the insert failed."""
        stmt = insert(seen_videos_table).values(
            video_id=video_id,
            first_seen_at=datetime.now(timezone.utc).isoformat(),
        )
        try:
            with Session(self.engine) as session:
                try:
                    session.execute(stmt)
                    session.commit()
                    return True
                except IntegrityError:
                    session.rollback()
                    return False
        except SQLAlchemyError as exc:
            # Still dispatched, but never as a new upload: a concurrent
            # delivery may have inserted the same id
            logger.error("Database error recording video %s: %s", video_id, exc)
            return False

    def __len__(self) -> int:
        stmt = select(func.count()).select_from(seen_videos_table)
        try:
            with Session(self.engine) as session:
                return session.execute(stmt).scalar_one()
        except SQLAlchemyError as exc:
            logger.error("Database error counting seen videos: %s", exc)
            return 0
