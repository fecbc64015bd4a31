"""
Command notifier.

Runs a configured shell command for each kind of connectivity event. On
the voice devices this plays the spoken prompts and starts the client
service, e.g.:

    notifiers:
      command:
        enabled: true
        commands:
          provisioning_started: "play audio/help-me-connect.wav"
          reconfiguration_succeeded: "play audio/continue.wav"
          reconfiguration_failed: "play audio/error.wav"
          bootstrap_succeeded: "systemctl start vaani-client"
"""

from __future__ import annotations

import logging

from wifiboot.core.config import CommandNotifierConfig
from wifiboot.core.errors import CommandFailure
from wifiboot.core.events import Notification, NotificationKind
from wifiboot.core.notifiers.base import BaseNotifier
from wifiboot.wifi.commands import CommandRunner, CommandSpec

logger = logging.getLogger(__name__)

NOTIFY_PARAMETERS = ("NOTIFY_KIND", "NOTIFY_SSID", "NOTIFY_MESSAGE")


class CommandNotifier(BaseNotifier):
    """
    Shell command per notification kind.

    The event details are available to the command as the NOTIFY_KIND,
    NOTIFY_SSID and NOTIFY_MESSAGE environment variables.
    """

    def __init__(
        self,
        config: CommandNotifierConfig | None = None,
        runner: CommandRunner | None = None,
    ):
        self._config = config or CommandNotifierConfig()
        self._runner = runner or CommandRunner(timeout=self._config.timeout_seconds)

    @property
    def name(self) -> str:
        return "command"

    @property
    def enabled(self) -> bool:
        return self._config.enabled

    def handles(self, kind: NotificationKind) -> bool:
        return self.enabled and bool(self._config.commands.get(kind.value))

    async def notify(self, notification: Notification) -> bool:
        if not self._config.enabled:
            return False

        script = self._config.commands.get(notification.kind.value)
        if not script:
            logger.debug(f"No command configured for {notification.kind.value}")
            return False

        command = CommandSpec(script, parameters=NOTIFY_PARAMETERS)
        try:
            await self._runner.run(
                command,
                {
                    "NOTIFY_KIND": notification.kind.value,
                    "NOTIFY_SSID": notification.ssid or "",
                    "NOTIFY_MESSAGE": notification.message,
                },
            )
            return True
        except CommandFailure as e:
            logger.error(f"Notification command for {notification.kind.value} failed: {e}")
            return False
