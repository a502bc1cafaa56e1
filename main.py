"""
Entry point for the YouTube WebSub callback server.
Subscribes to the configured channel and serves the hub callback.
"""

import sys

from pubsubcallback.config.settings import get_settings
from pubsubcallback.server import build_app
from pubsubcallback.utils.logging import get_logger, setup_logging
from pubsubcallback.version import VERSION
from pubsubcallback.webhooks.consumers import LoggingFeedConsumer

logger = get_logger(__name__)


def main() -> int:
    try:
        settings = get_settings()
    except ValueError as e:
        setup_logging('INFO', use_colors=True)
        logger.error(f"Invalid configuration: {e}")
        return 1

    setup_logging(settings.LOG_LEVEL, use_colors=True)
    logger.info(f"Starting pubsubcallback v{VERSION}")
    logger.info(f"YouTube Channel ID: {settings.YOUTUBE_CHANNEL_ID}")
    logger.info(f"Callback URL: {settings.CALLBACK_URL}")

    app, subscription_manager = build_app(settings, LoggingFeedConsumer())

    if settings.SUBSCRIBE_ON_STARTUP:
        if subscription_manager.subscribe(settings.CALLBACK_URL, settings.YOUTUBE_CHANNEL_ID, settings.LEASE_SECONDS):
            logger.info(f"Subscription requested; renew via POST /subscribe within {settings.LEASE_SECONDS} seconds")
        else:
            logger.warning("Failed to subscribe to WebSub, but the server will continue")

    from waitress import serve

    try:
        logger.info(f"Starting server on {settings.HOST}:{settings.PORT}")
        serve(
            app,
            host=settings.HOST,
            port=settings.PORT,
            threads=settings.SERVER_THREADS,
        )
    except KeyboardInterrupt:
        logger.info("Shutting down")
    finally:
        if subscription_manager.subscription_active:
            subscription_manager.unsubscribe(settings.CALLBACK_URL, settings.YOUTUBE_CHANNEL_ID)

    return 0


if __name__ == '__main__':
    sys.exit(main())
