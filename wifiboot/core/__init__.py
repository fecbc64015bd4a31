"""Core modules for wifiboot."""

from wifiboot.core.errors import (
    BootstrapExhausted,
    CommandFailure,
    OperationCancelled,
    ReconfigurationFailed,
    ScanFailure,
    TransitionInProgress,
    WifibootError,
)
from wifiboot.core.events import Notification, NotificationKind
from wifiboot.core.state import CONNECTED_STATE, DeviceMode, WiFiCredentials

__all__ = [
    "BootstrapExhausted",
    "CommandFailure",
    "OperationCancelled",
    "ReconfigurationFailed",
    "ScanFailure",
    "TransitionInProgress",
    "WifibootError",
    "Notification",
    "NotificationKind",
    "CONNECTED_STATE",
    "DeviceMode",
    "WiFiCredentials",
]
