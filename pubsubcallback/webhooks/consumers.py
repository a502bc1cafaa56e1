"""
Consumers that receive classified VideoFeed notifications.

Any callable taking a single VideoFeed can be registered with the WebSub
handler; the classes here cover logging and handing events to another thread.
"""

import logging
import queue
from typing import Optional, Protocol

from pubsubcallback.models.video_feed import VideoFeed


class FeedConsumer(Protocol):
    def __call__(self, feed: VideoFeed) -> None:
        ...


class LoggingFeedConsumer:
    """Logs every notification it receives."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    def __call__(self, feed: VideoFeed) -> None:
        kind = "New upload" if feed.new_video else "Updated video"
        self.logger.info(f"{kind}: {feed.title!r} by {feed.author or 'unknown author'} - {feed.link or feed.video_url}")


class QueueFeedConsumer:
    """Pushes notifications onto a queue drained elsewhere.

    Raises queue.Full when a bounded queue has no room; the handler logs it
    and the notification is dropped.
    """

    def __init__(self, feed_queue: Optional["queue.Queue[VideoFeed]"] = None):
        self.queue = feed_queue if feed_queue is not None else queue.Queue()

    def __call__(self, feed: VideoFeed) -> None:
        self.queue.put_nowait(feed)

    def get(self, timeout: Optional[float] = None) -> VideoFeed:
        """Block until a notification is available (queue.Empty on timeout)."""
        return self.queue.get(timeout=timeout)
