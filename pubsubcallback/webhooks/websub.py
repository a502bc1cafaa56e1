"""
WebSub (PubSubHubbub) callback handler for YouTube notifications.
Handles challenge verification and incoming push notifications.

Every request on the callback path is acknowledged with 200: the hub treats
any other status as a failed delivery, retries it and eventually drops the
subscription.
"""

import logging
from datetime import datetime, timezone
from typing import Mapping, Optional, Union

from flask import Blueprint, request

from pubsubcallback.models.video_feed import VideoFeed
from pubsubcallback.utils.dedup import DedupStore, InMemoryDedupStore
from pubsubcallback.utils.logging import log_notification_processing, log_websub_event
from pubsubcallback.webhooks.consumers import FeedConsumer
from pubsubcallback.webhooks.feed_parser import FeedParser, ParseError

logger = logging.getLogger(__name__)

CALLBACK_PATH = '/pubsubcallback'


class WebSubHandler:
    """Handles the hub-facing side of the WebSub protocol."""

    def __init__(
        self,
        consumer: FeedConsumer,
        parser: Optional[FeedParser] = None,
        dedup_store: Optional[DedupStore] = None,
    ):
        """
        Args:
            consumer: Receives every successfully parsed notification
            parser: Payload parser, a default FeedParser if omitted
            dedup_store: Seen-video store, a default in-memory store if omitted
        """
        self.consumer = consumer
        self.parser = parser or FeedParser()
        self.dedup_store = dedup_store if dedup_store is not None else InMemoryDedupStore()
        self.last_verification_time: Optional[datetime] = None
        self.last_notification_time: Optional[datetime] = None

    def verify_challenge(self, args: Mapping[str, str]) -> str:
        """
        Handle the hub's intent verification.

        Args:
            args: Query parameters from the GET request

        Returns:
            The hub.challenge value to echo back, or '' when none was sent
        """
        challenge = args.get('hub.challenge')
        if challenge is None:
            logger.info("Verification request without hub.challenge, answering with empty body")
            return ''

        self.last_verification_time = datetime.now(timezone.utc)
        log_websub_event(logger, 'challenge_verified', {
            'mode': args.get('hub.mode'),
            'topic': args.get('hub.topic'),
            'lease_seconds': args.get('hub.lease_seconds'),
        })
        return challenge

    def handle_notification(self, body: Union[bytes, str, None]) -> Optional[VideoFeed]:
        """
        Parse, deduplicate and dispatch one pushed notification.

        Args:
            body: Raw request body

        Returns:
            The dispatched VideoFeed, or None if the payload was dropped
        """
        if not body:
            logger.warning("Received empty notification")
            return None

        try:
            feed = self.parser.parse(body)
        except ParseError as exc:
            logger.warning(f"Dropping notification ({exc.reason}): {exc}")
            return None

        self.last_notification_time = datetime.now(timezone.utc)

        if not self.dedup_store.check_and_record(feed.video_id):
            if feed.new_video:
                logger.info(f"Video {feed.video_id} was already seen, classifying as update")
            feed.new_video = False

        log_websub_event(logger, 'notification_received', {
            'video_id': feed.video_id,
            'channel_id': feed.channel_id,
            'new_video': feed.new_video,
        })
        self._dispatch(feed)
        return feed

    def _dispatch(self, feed: VideoFeed) -> None:
        try:
            self.consumer(feed)
        except Exception as exc:
            logger.exception(f"Feed consumer raised for video {feed.video_id}")
            log_notification_processing(logger, feed.video_id, feed.title, False, str(exc))
            return
        log_notification_processing(logger, feed.video_id, feed.title, True)


def create_websub_blueprint(handler: WebSubHandler) -> Blueprint:
    """Build the blueprint serving the callback path for ``handler``."""
    websub_bp = Blueprint('websub', __name__)

    @websub_bp.route(CALLBACK_PATH, methods=['GET'])
    def verify():
        logger.debug(f"Verification request: {dict(request.args)}")
        challenge = handler.verify_challenge(request.args)
        return challenge, 200, {'Content-Type': 'text/plain; charset=utf-8'}

    @websub_bp.route(CALLBACK_PATH, methods=['POST'])
    def notify():
        logger.debug(f"Notification received, Content-Type: {request.headers.get('Content-Type')}, "
                     f"Content-Length: {request.headers.get('Content-Length')}")
        try:
            handler.handle_notification(request.get_data())
        except Exception:
            logger.exception("Unexpected error handling notification")
        return '', 200

    return websub_bp
