"""
Flask application factory for the WebSub callback server.
"""

import logging
import sys
from datetime import datetime, timezone
from typing import Optional

from flask import Flask

from pubsubcallback.config.settings import Settings
from pubsubcallback.db.engine import get_engine
from pubsubcallback.utils.dedup import DedupStore, InMemoryDedupStore, SqlDedupStore
from pubsubcallback.version import VERSION, VERSION_INFO
from pubsubcallback.webhooks.consumers import FeedConsumer
from pubsubcallback.webhooks.feed_parser import FeedParser
from pubsubcallback.webhooks.subscription import DEFAULT_LEASE_SECONDS, SubscriptionManager
from pubsubcallback.webhooks.websub import CALLBACK_PATH, WebSubHandler, create_websub_blueprint

logger = logging.getLogger(__name__)


def create_app(
    handler: WebSubHandler,
    subscription_manager: Optional[SubscriptionManager] = None,
    *,
    callback_url: Optional[str] = None,
    channel_id: Optional[str] = None,
    lease_seconds: int = DEFAULT_LEASE_SECONDS,
) -> Flask:
    """
    Build the Flask app serving the callback path and diagnostics.

    Args:
        handler: WebSub handler wired to a consumer
        subscription_manager: Enables /subscribe, /unsubscribe and lease status
        callback_url: Public base URL used for manual (re)subscription
        channel_id: Channel used for manual (re)subscription
        lease_seconds: Lease requested on manual (re)subscription
    """
    app = Flask(__name__)
    app.register_blueprint(create_websub_blueprint(handler))

    def subscription_configured() -> bool:
        return subscription_manager is not None and bool(callback_url) and bool(channel_id)

    @app.route('/health')
    def health_check():
        """Health check endpoint for monitoring."""
        return {
            'status': 'healthy',
            'version': VERSION,
            'parser_available': handler.parser.available,
            'seen_videos': len(handler.dedup_store),
            'subscription_active': subscription_manager.subscription_active if subscription_manager else False,
        }, 200

    @app.route('/websub/status')
    def websub_status():
        """Subscription and delivery diagnostics."""
        now = datetime.now(timezone.utc)
        status = subscription_manager.get_status(now) if subscription_manager else {'warnings': []}
        status['callback_url'] = (callback_url + CALLBACK_PATH) if callback_url else None

        for name, value in (('verification', handler.last_verification_time),
                            ('notification', handler.last_notification_time)):
            status[f'last_{name}_time'] = value.isoformat() if value else None
            if value:
                status[f'seconds_since_{name}'] = int((now - value).total_seconds())

        if subscription_manager and subscription_manager.subscription_active and not handler.last_verification_time:
            status['warnings'].append('No verification challenge received yet - subscription may not be confirmed')

        return status, 200

    @app.route('/subscribe', methods=['POST'])
    def manual_subscribe():
        """Explicitly (re)issue the subscription request; leases are not renewed automatically."""
        if not subscription_configured():
            return {'status': 'subscription_not_configured'}, 503
        success = subscription_manager.subscribe(callback_url, channel_id, lease_seconds)
        return {'status': 'subscription_requested' if success else 'subscription_failed'}, 200 if success else 500

    @app.route('/unsubscribe', methods=['POST'])
    def manual_unsubscribe():
        """Explicitly withdraw the subscription."""
        if not subscription_configured():
            return {'status': 'subscription_not_configured'}, 503
        success = subscription_manager.unsubscribe(callback_url, channel_id)
        return {'status': 'unsubscription_requested' if success else 'unsubscription_failed'}, 200 if success else 500

    @app.route('/version')
    def version_info():
        """Get version information."""
        return {
            'version': VERSION,
            'version_info': VERSION_INFO,
            'python_version': sys.version,
        }, 200

    return app


def create_dedup_store(settings: Settings) -> DedupStore:
    """Pick the persistent store when a database is configured, else the in-memory one."""
    if settings.DEDUP_DATABASE_URL:
        logger.info("Using database-backed duplicate store")
        return SqlDedupStore(get_engine(settings.DEDUP_DATABASE_URL, echo=settings.DATABASE_ECHO))

    logger.info(f"Using in-memory duplicate store (capacity: {settings.DEDUP_CAPACITY or 'unbounded'})")
    return InMemoryDedupStore(settings.DEDUP_CAPACITY)


def build_app(settings: Settings, consumer: FeedConsumer) -> tuple[Flask, SubscriptionManager]:
    """Wire every component from ``settings`` and return the app and its subscription manager."""
    handler = WebSubHandler(
        consumer,
        parser=FeedParser(settings.NEW_VIDEO_THRESHOLD_SECONDS),
        dedup_store=create_dedup_store(settings),
    )
    subscription_manager = SubscriptionManager(settings.WEBSUB_HUB_URL, timeout=settings.HUB_REQUEST_TIMEOUT)
    app = create_app(
        handler,
        subscription_manager,
        callback_url=settings.CALLBACK_URL,
        channel_id=settings.YOUTUBE_CHANNEL_ID,
        lease_seconds=settings.LEASE_SECONDS,
    )
    return app, subscription_manager
