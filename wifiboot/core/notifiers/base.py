"""
Notifier interface.

Notifiers tell collaborators about connectivity changes: guiding the
user by voice, starting the client service once online, or reporting to
a remote endpoint. The orchestrator never waits on them, and a notifier
that raises only produces a log line.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from wifiboot.core.events import Notification, NotificationKind


class BaseNotifier(ABC):
    """Receives connectivity notifications from the orchestrator."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Short identifier used in logs."""

    @property
    @abstractmethod
    def enabled(self) -> bool:
        pass

    def handles(self, kind: NotificationKind) -> bool:
        """Whether a notification of this kind is worth delivering."""
        return self.enabled

    @abstractmethod
    async def notify(self, notification: Notification) -> bool:
        """
        Deliver one notification.

        Returns:
            True if it was delivered, False if it was skipped or failed
        """

    async def start(self) -> None:
        """Acquire resources before the first notification."""

    async def stop(self) -> None:
        """Release whatever start() acquired."""
