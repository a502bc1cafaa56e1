"""
Parser for YouTube WebSub notification payloads.

YouTube pushes an Atom document with a single <entry> per uploaded or edited
video. The parser turns that entry into a VideoFeed and classifies it as a new
upload when ``updated`` trails ``published`` by less than a threshold: a fresh
upload carries near-identical timestamps while a later title or description
edit only moves ``updated``.
"""

import logging
import re
import xml.etree.ElementTree as ET
from datetime import datetime
from typing import Callable, Iterator, Optional, Sequence, Union

from pubsubcallback.models.video_feed import VideoFeed

logger = logging.getLogger(__name__)

ATOM_NAMESPACE = 'http://www.w3.org/2005/Atom'
YOUTUBE_NAMESPACE = 'http://www.youtube.com/xml/schemas/2015'

DEFAULT_NEW_VIDEO_THRESHOLD_SECONDS = 30

_TIMESTAMP_RE = re.compile(
    r'^(?P<base>\d{4}-\d{2}-\d{2}T\d{2}:\d{2}(?::\d{2})?)'
    r'(?:\.(?P<fraction>\d+))?'
    r'(?P<offset>Z|[+-]\d{2}:\d{2})$'
)


class ConfigurationError(Exception):
    """The XML parser could not be constructed."""


class ParseError(Exception):
    """A notification payload could not be turned into a VideoFeed."""

    reason = 'parse_error'


class EmptyPayloadError(ParseError):
    reason = 'empty_payload'


class ParserUnavailableError(ParseError):
    reason = 'parser_unavailable'


class MalformedXmlError(ParseError):
    reason = 'malformed_xml'


class NoEntryError(ParseError):
    reason = 'no_entry'


class TimestampError(ParseError):
    reason = 'invalid_timestamp'


def parse_timestamp(text: Optional[str]) -> datetime:
    """
    Parse an RFC 3339 timestamp that carries an explicit UTC offset.

    Accepts a trailing ``Z`` and fractional seconds of any precision (YouTube
    sends nanoseconds); digits beyond microseconds are dropped.

    Raises:
        TimestampError: If the value is missing, has no offset, or is not a date
    """
    if not text:
        raise TimestampError("Timestamp is missing")

    match = _TIMESTAMP_RE.match(text.strip())
    if match is None:
        raise TimestampError(f"Unrecognised timestamp: {text!r}")

    normalized = match.group('base')
    fraction = match.group('fraction')
    if fraction:
        normalized += '.' + fraction[:6].ljust(6, '0')
    offset = match.group('offset')
    normalized += '+00:00' if offset == 'Z' else offset

    try:
        return datetime.fromisoformat(normalized)
    except ValueError as exc:
        raise TimestampError(f"Invalid timestamp {text!r}: {exc}") from exc


def _iter_named(element: ET.Element, name: str, namespaces: Sequence[str]) -> Iterator[ET.Element]:
    """Yield descendants of ``element`` called ``name`` in any of ``namespaces`` or in none."""
    tags = {f'{{{namespace}}}{name}' for namespace in namespaces}
    tags.add(name)
    for child in element.iter():
        if child is not element and child.tag in tags:
            yield child


def _first_named(element: ET.Element, name: str, namespaces: Sequence[str]) -> Optional[ET.Element]:
    return next(_iter_named(element, name, namespaces), None)


def _text_content(element: Optional[ET.Element]) -> str:
    if element is None:
        return ''
    return ''.join(element.itertext()).strip()


class FeedParser:
    """Turns raw WebSub notification payloads into VideoFeed objects."""

    def __init__(
        self,
        new_video_threshold_seconds: int = DEFAULT_NEW_VIDEO_THRESHOLD_SECONDS,
        parser_factory: Callable[[], ET.XMLParser] = ET.XMLParser,
    ):
        """
        Args:
            new_video_threshold_seconds: Largest published/updated gap, exclusive,
                still classified as a new upload
            parser_factory: Builds a fresh XML parser for every payload
        """
        self.new_video_threshold_seconds = new_video_threshold_seconds
        self._parser_factory = parser_factory
        self.available = True

        try:
            self._check_parser()
        except ConfigurationError as exc:
            logger.error(f"XML parser unavailable, notifications will be dropped: {exc}")
            self.available = False

    def _check_parser(self) -> None:
        try:
            self._parser_factory()
        except Exception as exc:
            raise ConfigurationError(f"Could not create XML parser: {exc}") from exc

    def parse(self, payload: Union[str, bytes, None]) -> VideoFeed:
        """
        Parse a notification payload.

        Only the first <entry> is read; YouTube sends one entry per push.

        Args:
            payload: Raw Atom XML as received from the hub

        Returns:
            A fully populated VideoFeed

        Raises:
            ParseError: One of its subclasses, naming why the payload was rejected
        """
        if not payload:
            raise EmptyPayloadError("Notification payload is empty")
        if not self.available:
            raise ParserUnavailableError("XML parser is not available")

        if isinstance(payload, str):
            payload = payload.encode('utf-8')

        try:
            parser = self._parser_factory()
            parser.feed(payload)
            root = parser.close()
        except ET.ParseError as exc:
            raise MalformedXmlError(f"Malformed notification XML: {exc}") from exc

        entries = list(_iter_named(root, 'entry', (ATOM_NAMESPACE,)))
        if not entries:
            raise NoEntryError(f"No entry element in notification (root: {root.tag})")
        if len(entries) > 1:
            logger.debug(f"Notification carries {len(entries)} entries, ignoring all but the first")

        return self._parse_entry(entries[0])

    def _parse_entry(self, entry: ET.Element) -> VideoFeed:
        atom = (ATOM_NAMESPACE,)
        youtube = (YOUTUBE_NAMESPACE,)

        video_id = _text_content(_first_named(entry, 'videoId', youtube))
        channel_id = _text_content(_first_named(entry, 'channelId', youtube))
        title = _text_content(_first_named(entry, 'title', atom))

        link = ''
        for link_elem in _iter_named(entry, 'link', atom):
            href = link_elem.get('href')
            if href is not None:
                link = href
                break

        author = ''
        author_elem = _first_named(entry, 'author', atom)
        if author_elem is not None:
            author = _text_content(_first_named(author_elem, 'name', atom))

        published = parse_timestamp(_text_content(_first_named(entry, 'published', atom)))
        updated = parse_timestamp(_text_content(_first_named(entry, 'updated', atom)))

        feed = VideoFeed(
            channel_id=channel_id,
            video_id=video_id,
            title=title,
            link=link,
            author=author,
            date_published=published,
            date_updated=updated,
        )
        delta = feed.update_delta_seconds
        feed.new_video = delta < self.new_video_threshold_seconds

        logger.debug(f"Parsed entry {video_id!r}: published={published.isoformat()}, "
                     f"updated={updated.isoformat()}, delta={delta}s, new_video={feed.new_video}")
        return feed
