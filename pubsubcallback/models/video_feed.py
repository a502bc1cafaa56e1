"""
Data model for a parsed YouTube push notification.
"""

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict


@dataclass
class VideoFeed:
    """One notification's worth of video data.

    String fields are never None; elements missing from the payload become ''.
    ``new_video`` stays mutable so duplicate suppression can downgrade it.
    """

    channel_id: str
    video_id: str
    title: str
    link: str
    author: str
    date_published: datetime
    date_updated: datetime
    new_video: bool = False

    @property
    def video_url(self) -> str:
        return f"https://www.youtube.com/watch?v={self.video_id}"

    @property
    def thumbnail_url(self) -> str:
        return f"https://img.youtube.com/vi/{self.video_id}/maxresdefault.jpg"

    @property
    def update_delta_seconds(self) -> int:
        """Whole seconds between publication and the last update."""
        return math.floor(self.date_updated.timestamp()) - math.floor(self.date_published.timestamp())

    def to_dict(self) -> Dict[str, Any]:
        return {
            'channel_id': self.channel_id,
            'video_id': self.video_id,
            'title': self.title,
            'link': self.link,
            'author': self.author,
            'date_published': self.date_published.isoformat(),
            'date_updated': self.date_updated.isoformat(),
            'new_video': self.new_video,
        }
