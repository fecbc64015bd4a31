"""
Connectivity notifications.

One-way signals sent to collaborators (voice prompts, client service
startup, remote monitoring) when the device changes connectivity mode.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class NotificationKind(str, Enum):
    """What happened."""

    BOOTSTRAP_SUCCEEDED = "bootstrap_succeeded"
    PROVISIONING_STARTED = "provisioning_started"
    RECONFIGURATION_SUCCEEDED = "reconfiguration_succeeded"
    RECONFIGURATION_FAILED = "reconfiguration_failed"


@dataclass
class Notification:
    """A connectivity event for collaborators."""

    kind: NotificationKind
    ssid: str | None = None
    message: str = ""
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "ssid": self.ssid,
            "message": self.message,
            "timestamp": self.timestamp,
        }
