"""Tests for WebSub notification payload parsing."""

from datetime import datetime, timezone

import pytest

from pubsubcallback.webhooks.feed_parser import (
    EmptyPayloadError,
    FeedParser,
    MalformedXmlError,
    NoEntryError,
    ParseError,
    ParserUnavailableError,
    TimestampError,
    parse_timestamp,
)


def test_parse_new_upload(notification_xml):
    feed = FeedParser().parse(notification_xml())

    assert feed.video_id == "dQw4w9WgXcQ"
    assert feed.channel_id == "UCuAXFkgsw1L7xaCfnd5JJOw"
    assert feed.title == "Test Video"
    assert feed.author == "Example Creator"
    assert feed.link == "https://www.youtube.com/watch?v=dQw4w9WgXcQ"
    assert feed.date_published == datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)
    assert feed.date_updated == datetime(2024, 1, 15, 10, 30, 5, 123456, tzinfo=timezone.utc)
    assert feed.new_video is True


def test_parse_metadata_update(notification_xml):
    payload = notification_xml(updated="2024-01-15T11:30:00+00:00")

    assert FeedParser().parse(payload).new_video is False


@pytest.mark.parametrize("updated, expected", [
    ("2024-01-15T10:30:29+00:00", True),
    ("2024-01-15T10:30:30+00:00", False),
    # Whole-second difference: 10:30:30 - 10:30:00
    ("2024-01-15T10:30:30.999+00:00", False),
])
def test_new_video_threshold_is_exclusive(notification_xml, updated, expected):
    payload = notification_xml(published="2024-01-15T10:30:00+00:00", updated=updated)

    assert FeedParser().parse(payload).new_video is expected


def test_delta_uses_whole_epoch_seconds(notification_xml):
    payload = notification_xml(published="2024-01-15T10:30:00.900+00:00", updated="2024-01-15T10:30:30.100+00:00")

    assert FeedParser().parse(payload).new_video is False


def test_threshold_is_configurable(notification_xml):
    payload = notification_xml(updated="2024-01-15T10:31:00+00:00")

    assert FeedParser().parse(payload).new_video is False
    assert FeedParser(new_video_threshold_seconds=120).parse(payload).new_video is True


def test_parse_accepts_bytes(notification_xml):
    feed = FeedParser().parse(notification_xml(title="Café ☕").encode("utf-8"))

    assert feed.title == "Café ☕"


def test_missing_fields_default_to_empty_string():
    payload = """<feed xmlns="http://www.w3.org/2005/Atom">
      <entry>
        <published>2024-01-15T10:30:00Z</published>
        <updated>2024-01-15T10:30:00Z</updated>
      </entry>
    </feed>"""

    feed = FeedParser().parse(payload)

    assert feed.video_id == ""
    assert feed.channel_id == ""
    assert feed.title == ""
    assert feed.link == ""
    assert feed.author == ""
    assert feed.new_video is True


def test_author_without_name_is_empty():
    payload = """<feed xmlns="http://www.w3.org/2005/Atom">
      <entry>
        <author><uri>https://www.youtube.com/channel/UC1</uri></author>
        <published>2024-01-15T10:30:00Z</published>
        <updated>2024-01-15T10:30:00Z</updated>
      </entry>
    </feed>"""

    assert FeedParser().parse(payload).author == ""


def test_first_link_with_href_wins():
    payload = """<feed xmlns="http://www.w3.org/2005/Atom">
      <entry>
        <link rel="related"/>
        <link rel="alternate" href="https://www.youtube.com/watch?v=first"/>
        <link rel="alternate" href="https://www.youtube.com/watch?v=second"/>
        <published>2024-01-15T10:30:00Z</published>
        <updated>2024-01-15T10:30:00Z</updated>
      </entry>
    </feed>"""

    assert FeedParser().parse(payload).link == "https://www.youtube.com/watch?v=first"


def test_only_first_entry_is_used(notification_xml):
    first = notification_xml(video_id="first")
    second = notification_xml(video_id="second")
    entry = second[second.index("<entry>"):second.index("</entry>") + len("</entry>")]
    payload = first.replace("</feed>", entry + "\n</feed>")

    assert FeedParser().parse(payload).video_id == "first"


def test_unnamespaced_document_is_parsed():
    payload = """<feed>
      <entry>
        <videoId>plain123</videoId>
        <title>Plain</title>
        <published>2024-01-15T10:30:00Z</published>
        <updated>2024-01-15T10:30:00Z</updated>
      </entry>
    </feed>"""

    feed = FeedParser().parse(payload)

    assert feed.video_id == "plain123"
    assert feed.title == "Plain"


@pytest.mark.parametrize("payload", ["", b"", None])
def test_empty_payload(payload):
    with pytest.raises(EmptyPayloadError) as excinfo:
        FeedParser().parse(payload)
    assert excinfo.value.reason == "empty_payload"


def test_malformed_xml():
    with pytest.raises(MalformedXmlError) as excinfo:
        FeedParser().parse("<feed><entry><yt:videoId>incomplete")
    assert excinfo.value.reason == "malformed_xml"


def test_no_entry():
    payload = '<feed xmlns="http://www.w3.org/2005/Atom"><title>Empty</title></feed>'

    with pytest.raises(NoEntryError) as excinfo:
        FeedParser().parse(payload)
    assert excinfo.value.reason == "no_entry"


def test_deleted_entry_is_not_an_entry():
    payload = """<feed xmlns:at="http://purl.org/atompub/tombstones/1.0" xmlns="http://www.w3.org/2005/Atom">
      <at:deleted-entry ref="yt:video:dQw4w9WgXcQ" when="2024-01-15T10:30:00+00:00"/>
    </feed>"""

    with pytest.raises(NoEntryError):
        FeedParser().parse(payload)


@pytest.mark.parametrize("published, updated", [
    ("", "2024-01-15T10:30:00Z"),
    ("2024-01-15T10:30:00Z", ""),
    ("not a date", "2024-01-15T10:30:00Z"),
    ("2024-01-15T10:30:00", "2024-01-15T10:30:00Z"),
    ("2024-13-45T10:30:00Z", "2024-01-15T10:30:00Z"),
])
def test_bad_timestamps(notification_xml, published, updated):
    with pytest.raises(TimestampError) as excinfo:
        FeedParser().parse(notification_xml(published=published, updated=updated))
    assert excinfo.value.reason == "invalid_timestamp"


def test_missing_timestamp_elements():
    payload = """<feed xmlns="http://www.w3.org/2005/Atom">
      <entry><title>No dates</title></entry>
    </feed>"""

    with pytest.raises(TimestampError):
        FeedParser().parse(payload)


def test_parser_factory_failure_disables_parsing(notification_xml):
    def broken_factory():
        raise RuntimeError("expat missing")

    parser = FeedParser(parser_factory=broken_factory)

    assert parser.available is False
    with pytest.raises(ParserUnavailableError) as excinfo:
        parser.parse(notification_xml())
    assert isinstance(excinfo.value, ParseError)


@pytest.mark.parametrize("text, expected", [
    ("2015-03-09T19:05:24.552394234+00:00", datetime(2015, 3, 9, 19, 5, 24, 552394, tzinfo=timezone.utc)),
    ("2024-01-15T10:30:00Z", datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)),
    ("2024-01-15T12:30:00.5+02:00", datetime(2024, 1, 15, 10, 30, 0, 500000, tzinfo=timezone.utc)),
    ("2024-01-15T10:30Z", datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)),
])
def test_parse_timestamp(text, expected):
    assert parse_timestamp(text) == expected
