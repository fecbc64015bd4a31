"""
Wireless network scanning.

Scanning is advisory: it retries on failure and gives back an empty list
rather than raising, so it can never hold up startup.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from wifiboot.core.cancellation import CancelToken, pause
from wifiboot.core.errors import CommandFailure, ScanFailure
from wifiboot.core.state import ScanResult
from wifiboot.wifi.commands import CommandRunner, split_lines
from wifiboot.wifi.platforms import PlatformCommandSet

logger = logging.getLogger(__name__)

SCAN_RETRY_DELAY = 3.0


@dataclass
class Scanner:
    """
    Lists visible networks, strongest signal first.

    Some chipsets cannot scan while the access point is up, and iwlist
    also fails intermittently when the radio is busy, hence the retries.
    """

    runner: CommandRunner
    commands: PlatformCommandSet
    retry_delay: float = SCAN_RETRY_DELAY

    async def scan(
        self,
        max_attempts: int = 1,
        cancel: CancelToken | None = None,
        retry_delay: float | None = None,
    ) -> ScanResult:
        """
        Scan for networks.

        Args:
            max_attempts: Total number of tries before giving up
            cancel: Optional token observed during retry waits
            retry_delay: Seconds between tries, defaulting to self.retry_delay

        Returns:
            Network names in signal order, or [] if every attempt failed
        """
        attempts = max(1, max_attempts)
        delay = self.retry_delay if retry_delay is None else retry_delay

        for attempt in range(1, attempts + 1):
            try:
                return await self._scan_once(attempt)
            except ScanFailure as e:
                logger.warning(str(e))

                if attempt >= attempts:
                    logger.error("Giving up. No scan results available.")
                    return []

                logger.info(f"Will try again in {delay} seconds")
                await pause(delay, cancel)

        return []

    async def _scan_once(self, attempt: int) -> ScanResult:
        try:
            output = await self.runner.run(self.commands.scan)
        except CommandFailure as e:
            raise ScanFailure(attempt, e) from e

        networks = split_lines(output)
        logger.debug(f"Scan found {len(networks)} network(s)")
        return networks
