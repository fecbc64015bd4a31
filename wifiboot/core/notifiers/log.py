"""Logging notifier."""

from __future__ import annotations

import logging

from wifiboot.core.config import LogNotifierConfig
from wifiboot.core.events import Notification, NotificationKind
from wifiboot.core.notifiers.base import BaseNotifier

logger = logging.getLogger(__name__)


class LogNotifier(BaseNotifier):
    """Writes every notification to the log."""

    def __init__(self, config: LogNotifierConfig | None = None):
        self._config = config or LogNotifierConfig()

    @property
    def name(self) -> str:
        return "log"

    @property
    def enabled(self) -> bool:
        return self._config.enabled

    async def notify(self, notification: Notification) -> bool:
        if not self._config.enabled:
            return False

        level = logging.INFO
        if notification.kind == NotificationKind.RECONFIGURATION_FAILED:
            level = logging.WARNING

        ssid = f" [{notification.ssid}]" if notification.ssid else ""
        logger.log(level, f"{notification.kind.value}{ssid}: {notification.message}")
        return True
