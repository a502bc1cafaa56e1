"""
Outbound WebSub subscription requests to the hub.

Requests are one-shot: nothing here renews a lease. Call subscribe() again
before the lease runs out to keep notifications flowing.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import requests

from pubsubcallback.utils.logging import log_websub_event
from pubsubcallback.webhooks.websub import CALLBACK_PATH

logger = logging.getLogger(__name__)

DEFAULT_HUB_URL = 'https://pubsubhubbub.appspot.com/subscribe'
DEFAULT_LEASE_SECONDS = 432000  # 5 days
DEFAULT_TIMEOUT_SECONDS = 10


class TransportError(Exception):
    """The hub could not be reached or rejected the request."""


def youtube_topic_url(channel_id: str) -> str:
    """Feed URL the hub publishes a channel's uploads under."""
    return f"https://www.youtube.com/xml/feeds/videos.xml?channel_id={channel_id}"


def build_hub_params(callback_url: str, channel_id: str, mode: str, lease_seconds: Optional[int] = None) -> Dict[str, str]:
    """
    Build the form fields for a hub request.

    The callback path is appended to ``callback_url`` as-is, so a trailing
    slash on the base URL is preserved.
    """
    params = {
        'hub.callback': callback_url + CALLBACK_PATH,
        'hub.topic': youtube_topic_url(channel_id),
        'hub.verify': 'async',
        'hub.mode': mode,
        'hub.verify_token': '',
        'hub.secret': '',
    }
    if lease_seconds is not None:
        params['hub.lease_seconds'] = str(lease_seconds)
    return params


class SubscriptionManager:
    """Sends subscribe/unsubscribe requests for YouTube channel feeds."""

    def __init__(self, hub_url: str = DEFAULT_HUB_URL, timeout: Optional[float] = DEFAULT_TIMEOUT_SECONDS):
        self.hub_url = hub_url
        self.timeout = timeout
        self.subscription_active = False
        self.channel_id: Optional[str] = None
        self.lease_seconds: Optional[int] = None
        self.last_subscription_time: Optional[datetime] = None

    def subscribe(self, callback_url: str, channel_id: str, lease_seconds: int = DEFAULT_LEASE_SECONDS) -> bool:
        """
        Ask the hub to push a channel's uploads to our callback.

        Failures are logged and not retried.

        Args:
            callback_url: Public base URL of this server
            channel_id: YouTube channel ID (starts with UC)
            lease_seconds: Requested lease duration

        Returns:
            True if the hub accepted the request, False otherwise
        """
        params = build_hub_params(callback_url, channel_id, 'subscribe', lease_seconds)
        logger.info(f"Subscribing to WebSub for channel: {channel_id}")
        logger.debug(f"Subscription data: {params}")

        try:
            self._post_form(params)
        except TransportError as exc:
            logger.error(f"Failed to subscribe to WebSub: {exc}")
            return False

        self.subscription_active = True
        self.channel_id = channel_id
        self.lease_seconds = lease_seconds
        self.last_subscription_time = datetime.now(timezone.utc)
        log_websub_event(logger, 'subscription_requested', {
            'channel_id': channel_id,
            'callback_url': params['hub.callback'],
            'lease_seconds': lease_seconds,
        })
        return True

    def unsubscribe(self, callback_url: str, channel_id: str) -> bool:
        """
        Ask the hub to stop pushing a channel's uploads.

        Returns:
            True if the hub accepted the request, False otherwise
        """
        params = build_hub_params(callback_url, channel_id, 'unsubscribe')
        logger.info(f"Unsubscribing from WebSub for channel: {channel_id}")

        try:
            self._post_form(params)
        except TransportError as exc:
            logger.error(f"Failed to unsubscribe from WebSub: {exc}")
            return False

        self.subscription_active = False
        log_websub_event(logger, 'unsubscription_requested', {'channel_id': channel_id})
        return True

    def _post_form(self, params: Dict[str, str]) -> requests.Response:
        try:
            response = requests.post(
                self.hub_url,
                data=params,
                headers={'Content-Type': 'application/x-www-form-urlencoded; charset=UTF-8'},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as exc:
            raise TransportError(f"Request to {self.hub_url} failed: {exc}") from exc

        if not 200 <= response.status_code < 300:
            raise TransportError(f"Hub answered {response.status_code} - {response.text[:200]}")
        return response

    def get_status(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Summarise the subscription for diagnostics."""
        now = now or datetime.now(timezone.utc)
        status: Dict[str, Any] = {
            'subscription_active': self.subscription_active,
            'channel_id': self.channel_id,
            'hub_url': self.hub_url,
            'lease_seconds': self.lease_seconds,
            'last_subscription_time': self.last_subscription_time.isoformat() if self.last_subscription_time else None,
        }

        warnings = []
        if self.last_subscription_time and self.lease_seconds is not None:
            elapsed = (now - self.last_subscription_time).total_seconds()
            status['seconds_since_subscription'] = int(elapsed)
            status['subscription_expires_in'] = int(self.lease_seconds - elapsed)
            status['subscription_expired'] = elapsed > self.lease_seconds
            if status['subscription_expired']:
                warnings.append('Subscription lease has expired and needs renewal')

        if not self.subscription_active:
            warnings.append('Subscription is not active')

        status['warnings'] = warnings
        return status
