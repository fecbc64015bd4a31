"""
Configuration access point control.

Starts and stops the local AP that users join to submit credentials. The
AP name, address and DHCP range live in the hostapd/udhcpd configuration
of the image, not here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from wifiboot.wifi.commands import CommandRunner
from wifiboot.wifi.platforms import PlatformCommandSet

logger = logging.getLogger(__name__)


@dataclass
class AccessPointController:
    """
    Issues the platform AP start/stop commands.

    Both calls return once the commands have run. That does not mean the
    AP is broadcasting (or fully down) yet; callers that need that wait
    for it themselves. Repeating a call is not an error of its own kind.
    """

    runner: CommandRunner
    commands: PlatformCommandSet

    async def start_ap(self) -> None:
        """Start broadcasting the configuration access point."""
        logger.info(f"Starting access point ({self.commands.name})")
        await self.runner.run(self.commands.start_ap)

    async def stop_ap(self) -> None:
        """Take the access point down so the supplicant can reconnect."""
        logger.info(f"Stopping access point ({self.commands.name})")
        await self.runner.run(self.commands.stop_ap)
