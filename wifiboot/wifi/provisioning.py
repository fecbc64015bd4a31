"""
Network definition.

Persists new credentials to the supplicant (or connman). If the device is
not associated, defining a reachable network with a valid passphrase
should make it connect.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from wifiboot.wifi.commands import CommandRunner
from wifiboot.wifi.platforms import PlatformCommandSet

logger = logging.getLogger(__name__)


@dataclass
class NetworkDefiner:
    """Adds networks through the platform define commands."""

    runner: CommandRunner
    commands: PlatformCommandSet

    async def define_network(self, ssid: str, password: str | None = None) -> None:
        """
        Define a network.

        The caller strips user input; this only checks that something is
        left. The SSID and passphrase are handed to the command as the
        SSID and PSK environment variables.

        Args:
            ssid: Network name
            password: Passphrase, None or "" for an open network

        Raises:
            ValueError: if ssid is blank
            CommandFailure: if the define command fails
        """
        if not ssid or not ssid.strip():
            raise ValueError("SSID must be a non-empty string")

        if password:
            logger.info(f"Defining secured network: {ssid}")
            await self.runner.run(
                self.commands.define_network,
                {"SSID": ssid, "PSK": password},
            )
        else:
            logger.info(f"Defining open network: {ssid}")
            await self.runner.run(self.commands.define_open_network, {"SSID": ssid})
