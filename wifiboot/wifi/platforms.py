"""
Platform command sets.

Each supported image drives the wireless interface with a different set of
tools. A PlatformCommandSet is chosen once at startup and shared read-only
by every component that runs commands.
"""

from __future__ import annotations

import logging
import platform
from dataclasses import dataclass, replace
from typing import Callable, Mapping

from wifiboot.core.state import CONNECTED_STATE
from wifiboot.wifi.commands import CommandSpec

logger = logging.getLogger(__name__)

DEFAULT_INTERFACE = "wlan0"
DEFAULT_PLATFORM = "raspbian"

OPERATIONS = (
    "status",
    "connected_network",
    "scan",
    "start_ap",
    "stop_ap",
    "define_network",
    "define_open_network",
    "known_networks",
)

NETWORK_PARAMETERS = ("SSID", "PSK")


@dataclass(frozen=True)
class PlatformCommandSet:
    """One command per network operation for a given platform."""

    name: str
    status: CommandSpec
    connected_network: CommandSpec
    scan: CommandSpec
    start_ap: CommandSpec
    stop_ap: CommandSpec
    define_network: CommandSpec
    define_open_network: CommandSpec
    known_networks: CommandSpec
    connected_state: str = CONNECTED_STATE

    def command(self, operation: str) -> CommandSpec:
        if operation not in OPERATIONS:
            raise KeyError(f"Unknown operation: {operation}")
        return getattr(self, operation)

    def with_overrides(self, overrides: Mapping[str, str]) -> PlatformCommandSet:
        """Return a copy with some command scripts replaced."""
        unknown = set(overrides) - set(OPERATIONS)
        if unknown:
            raise ValueError(f"Unknown operations in overrides: {sorted(unknown)}")

        changes = {
            operation: replace(self.command(operation), script=script)
            for operation, script in overrides.items()
        }
        return replace(self, **changes)


# ============================================================================
# wpa_supplicant based images
# ============================================================================

# Orders "quality<TAB>essid" pairs from iwlist by quality, drops hidden networks
_IWLIST_SED = (
    "sed -n -e '\n"
    "  /Quality=/,/ESSID:/H\n"
    "  /ESSID:/{\n"
    "    g\n"
    r'    s/^.*Quality=\([0-9]\+\).*ESSID:"\([^"]*\)".*$/\1' "\t" r"\2/" "\n"
    "    p\n"
    "    s/.*//\n"
    "    x\n"
    "  }'"
)
_IWLIST_TAIL = r"sort -nr | cut -f 2 | sed -e '/^$/d;/\x00/d'"


def raspbian_commands(interface: str = DEFAULT_INTERFACE) -> PlatformCommandSet:
    """wpa_cli for the supplicant, hostapd and udhcpd for the AP."""
    wpa = f"wpa_cli -i{interface}"

    return PlatformCommandSet(
        name="raspbian",
        status=CommandSpec(
            f"{wpa} status | sed -n -e '/^wpa_state=/{{s/wpa_state=//;p;q}}'"
        ),
        connected_network=CommandSpec(
            f"{wpa} status | sed -n -e '/^ssid=/{{s/ssid=//;p;q}}'"
        ),
        scan=CommandSpec(f"iwlist {interface} scan | {_IWLIST_SED} | {_IWLIST_TAIL}"),
        start_ap=CommandSpec(
            f"ifconfig {interface} 10.0.0.1 && systemctl start hostapd && systemctl start udhcpd"
        ),
        stop_ap=CommandSpec(
            f"systemctl stop udhcpd && systemctl stop hostapd && ifconfig {interface} 0.0.0.0"
        ),
        define_network=CommandSpec(
            f"ID=`{wpa} add_network` && "
            f'{wpa} set_network $ID ssid \\"$SSID\\" && '
            f'{wpa} set_network $ID psk \\"$PSK\\" && '
            f"{wpa} enable_network $ID && "
            f"{wpa} save_config",
            parameters=NETWORK_PARAMETERS,
        ),
        define_open_network=CommandSpec(
            f"ID=`{wpa} add_network` && "
            f'{wpa} set_network $ID ssid \\"$SSID\\" && '
            f"{wpa} set_network $ID key_mgmt NONE && "
            f"{wpa} enable_network $ID && "
            f"{wpa} save_config",
            parameters=("SSID",),
        ),
        known_networks=CommandSpec(f"{wpa} list_networks | sed -e '1d' | cut -f 2"),
    )


def edison_commands(interface: str = DEFAULT_INTERFACE) -> PlatformCommandSet:
    """Yocto image where the hostapd unit also sets the IP and runs DHCP."""
    return replace(
        raspbian_commands(interface),
        name="edison",
        start_ap=CommandSpec("systemctl start hostapd"),
        stop_ap=CommandSpec("systemctl stop hostapd"),
    )


# ============================================================================
# connman based images
# ============================================================================

_CONNMAN_NAME = r"sed -e 's/^[*A-z]* *\(.*\) *wifi.*$/\1/'"


def vaani_commands(interface: str = DEFAULT_INTERFACE) -> PlatformCommandSet:
    """connmanctl for scanning and network definitions."""
    base = raspbian_commands(interface)

    return replace(
        base,
        name="vaani",
        start_ap=CommandSpec("systemctl start hostapd"),
        # Scanning stays broken after AP mode unless wifi is toggled
        stop_ap=CommandSpec(
            "systemctl stop hostapd && connmanctl disable wifi && connmanctl enable wifi"
        ),
        scan=CommandSpec(
            f"connmanctl scan wifi && connmanctl services | {_CONNMAN_NAME} | grep .+*"
        ),
        known_networks=CommandSpec(
            r"connmanctl services | grep '^[^ ]*A' | "
            r"sed -e 's/^[A-z]* *\(.*\) *wifi.*$/\1/' | grep .+*"
        ),
        define_network=CommandSpec(
            "cat << EOF > /var/lib/connman/wifi.config\n"
            "[service_wifiboot]\n"
            "Type = wifi\n"
            "Security = wpa2\n"
            "Name = $SSID\n"
            "Passphrase = $PSK\n"
            "EOF",
            parameters=NETWORK_PARAMETERS,
        ),
        define_open_network=CommandSpec(
            "cat << EOF > /var/lib/connman/wifi.config\n"
            "[service_wifiboot]\n"
            "Type = wifi\n"
            "Name = $SSID\n"
            "EOF",
            parameters=("SSID",),
        ),
    )


PLATFORMS: dict[str, Callable[[str], PlatformCommandSet]] = {
    "raspbian": raspbian_commands,
    "edison": edison_commands,
    "vaani": vaani_commands,
}


def detect_platform(release: str | None = None) -> str:
    """
    Guess the platform family from the kernel release string.

    Yocto kernels mean an Edison board; anything else is treated as
    Raspbian. connman images must be selected explicitly.
    """
    if release is None:
        release = platform.release()

    if "yocto" in release:
        return "edison"
    return DEFAULT_PLATFORM


def build_command_set(
    name: str | None = None,
    interface: str = DEFAULT_INTERFACE,
    overrides: Mapping[str, str] | None = None,
) -> PlatformCommandSet:
    """
    Select the command set for this device.

    Args:
        name: Platform family (detected when None)
        interface: Wireless interface to drive
        overrides: Replacement scripts keyed by operation name

    Returns:
        Immutable command set for the process lifetime
    """
    if name is None:
        name = detect_platform()
        logger.info(f"Detected platform: {name}")

    try:
        factory = PLATFORMS[name]
    except KeyError:
        raise ValueError(
            f"Unknown platform {name!r}, expected one of {sorted(PLATFORMS)}"
        ) from None

    commands = factory(interface)
    if overrides:
        commands = commands.with_overrides(overrides)
        logger.info(f"Overriding {len(overrides)} {name} command(s) from config")

    return commands
