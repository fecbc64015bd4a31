"""Notification modules for wifiboot."""

from wifiboot.core.notifiers.base import BaseNotifier
from wifiboot.core.notifiers.command import CommandNotifier
from wifiboot.core.notifiers.log import LogNotifier
from wifiboot.core.notifiers.webhook import WebhookNotifier

__all__ = [
    "BaseNotifier",
    "CommandNotifier",
    "LogNotifier",
    "WebhookNotifier",
]
