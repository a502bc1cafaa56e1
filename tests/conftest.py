"""Shared fixtures for notification handling tests."""

import pytest

NOTIFICATION_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<feed xmlns:yt="http://www.youtube.com/xml/schemas/2015" xmlns="http://www.w3.org/2005/Atom">
  <link rel="hub" href="https://pubsubhubbub.appspot.com"/>
  <link rel="self" href="https://www.youtube.com/xml/feeds/videos.xml?channel_id={channel_id}"/>
  <title>YouTube video feed</title>
  <updated>{updated}</updated>
  <entry>
    <id>yt:video:{video_id}</id>
    <yt:videoId>{video_id}</yt:videoId>
    <yt:channelId>{channel_id}</yt:channelId>
    <title>{title}</title>
    <link rel="alternate" href="https://www.youtube.com/watch?v={video_id}"/>
    <author>
      <name>{author}</name>
      <uri>https://www.youtube.com/channel/{channel_id}</uri>
    </author>
    <published>{published}</published>
    <updated>{updated}</updated>
  </entry>
</feed>
"""


def build_notification(
    video_id="dQw4w9WgXcQ",
    channel_id="UCuAXFkgsw1L7xaCfnd5JJOw",
    title="Test Video",
    author="Example Creator",
    published="2024-01-15T10:30:00+00:00",
    updated="2024-01-15T10:30:05.123456789+00:00",
):
    return NOTIFICATION_TEMPLATE.format(
        video_id=video_id,
        channel_id=channel_id,
        title=title,
        author=author,
        published=published,
        updated=updated,
    )


@pytest.fixture
def notification_xml():
    """Factory for single-entry notification payloads."""
    return build_notification
