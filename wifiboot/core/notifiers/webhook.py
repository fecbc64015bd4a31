"""
Webhook notifier for wifiboot.

POSTs each connectivity event as JSON to a configured URL.
"""

from __future__ import annotations

import logging

import httpx

from wifiboot.core.config import WebhookNotifierConfig
from wifiboot.core.events import Notification
from wifiboot.core.notifiers.base import BaseNotifier

logger = logging.getLogger(__name__)


class WebhookNotifier(BaseNotifier):
    """Sends notifications to an HTTP endpoint."""

    def __init__(self, config: WebhookNotifierConfig):
        self._config = config
        self._client: httpx.AsyncClient | None = None

    @property
    def name(self) -> str:
        return "webhook"

    @property
    def enabled(self) -> bool:
        return self._config.enabled

    async def start(self) -> None:
        """Initialize HTTP client."""
        self._client = httpx.AsyncClient(timeout=self._config.timeout_seconds)
        logger.info(f"Webhook notifier started for {self._config.url}")

    async def stop(self) -> None:
        """Close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None
        logger.info("Webhook notifier stopped")

    async def notify(self, notification: Notification) -> bool:
        if not self._config.enabled:
            return False

        if not self._client:
            logger.error("HTTP client not initialized")
            return False

        if not self._config.url:
            logger.error("Webhook URL not configured")
            return False

        try:
            response = await self._client.post(
                self._config.url,
                json=notification.to_dict(),
                headers=self._config.headers,
            )
        except httpx.HTTPError as e:
            logger.error(f"Failed to send webhook notification: {e}")
            return False

        if response.is_success:
            logger.info(f"Webhook notification sent: {notification.kind.value}")
            return True

        logger.error(f"Webhook error: {response.status_code} - {response.text}")
        return False
