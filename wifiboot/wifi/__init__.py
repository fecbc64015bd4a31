"""Platform wireless primitives for wifiboot."""

from wifiboot.wifi.commands import CommandRunner, CommandSpec
from wifiboot.wifi.hotspot import AccessPointController
from wifiboot.wifi.platforms import PlatformCommandSet, build_command_set, detect_platform
from wifiboot.wifi.provisioning import NetworkDefiner
from wifiboot.wifi.scanner import Scanner
from wifiboot.wifi.status import StatusProbe

__all__ = [
    "CommandRunner",
    "CommandSpec",
    "AccessPointController",
    "PlatformCommandSet",
    "build_command_set",
    "detect_platform",
    "NetworkDefiner",
    "Scanner",
    "StatusProbe",
]
