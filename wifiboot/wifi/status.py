"""
Connection status queries.

Reports the raw supplicant state and the associated network. Deciding
whether a state counts as "connected" is left to the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from wifiboot.wifi.commands import CommandRunner, split_lines
from wifiboot.wifi.platforms import PlatformCommandSet

logger = logging.getLogger(__name__)


@dataclass
class StatusProbe:
    """Reads connection state through the platform commands."""

    runner: CommandRunner
    commands: PlatformCommandSet

    async def get_status(self) -> str:
        """
        Get the raw connection state, e.g. "COMPLETED" or "DISCONNECTED".

        Transitional values such as "SCANNING" or "ASSOCIATING" are
        returned as-is.
        """
        return await self.runner.run(self.commands.status)

    async def get_connected_network(self) -> str:
        """Get the SSID we are associated with, or "" when not associated."""
        return await self.runner.run(self.commands.connected_network)

    async def get_known_networks(self) -> list[str]:
        """Get the names of networks the supplicant already knows."""
        output = await self.runner.run(self.commands.known_networks)
        return split_lines(output)

    def is_connected(self, status: str) -> bool:
        return status == self.commands.connected_state
