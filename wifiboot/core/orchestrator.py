"""
Connectivity Orchestrator for wifiboot.

The central coordinator that:
- Confirms existing connectivity at startup, with bounded polling
- Falls back to provisioning mode (scan, then start the access point)
- Sequences credential updates back into station mode
- Signals connectivity changes to collaborators
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Iterator

from wifiboot.core.cancellation import CancelToken, pause
from wifiboot.core.config import Config, TimingConfig
from wifiboot.core.errors import (
    BootstrapExhausted,
    CommandFailure,
    OperationCancelled,
    ReconfigurationFailed,
    TransitionInProgress,
)
from wifiboot.core.events import Notification, NotificationKind
from wifiboot.core.notifiers.base import BaseNotifier
from wifiboot.core.state import DeviceMode, ScanResult, WiFiCredentials
from wifiboot.wifi.commands import CommandRunner
from wifiboot.wifi.hotspot import AccessPointController
from wifiboot.wifi.platforms import build_command_set
from wifiboot.wifi.provisioning import NetworkDefiner
from wifiboot.wifi.scanner import Scanner
from wifiboot.wifi.status import StatusProbe

logger = logging.getLogger(__name__)


@dataclass
class _Transition:
    """Bookkeeping for the mode switch in flight."""

    previous: DeviceMode
    cancel: CancelToken
    outcome: DeviceMode


class ConnectivityOrchestrator:
    """
    Owns the device mode and the preliminary scan cache.

    Only one transition (bootstrap or reconfiguration) runs at a time.
    The guard is taken before the first suspension point, so a second
    request arriving while one is in flight is rejected with
    TransitionInProgress rather than interleaved with it.
    """

    def __init__(
        self,
        probe: StatusProbe,
        scanner: Scanner,
        access_point: AccessPointController,
        definer: NetworkDefiner,
        timing: TimingConfig | None = None,
        notifiers: list[BaseNotifier] | None = None,
    ):
        self._probe = probe
        self._scanner = scanner
        self._access_point = access_point
        self._definer = definer
        self._notifiers = list(notifiers or [])

        self.apply_timing(timing or TimingConfig())

        # State
        self._mode = DeviceMode.STATION
        self._preliminary_scan: ScanResult | None = None
        self._active_cancel: CancelToken | None = None
        self._pending: set[asyncio.Task] = set()

    @property
    def mode(self) -> DeviceMode:
        return self._mode

    @property
    def preliminary_scan(self) -> tuple[str, ...] | None:
        """Networks captured just before the access point came up."""
        if self._preliminary_scan is None:
            return None
        return tuple(self._preliminary_scan)

    @property
    def is_transitioning(self) -> bool:
        return self._mode == DeviceMode.TRANSITIONING

    @property
    def timing(self) -> TimingConfig:
        return self._timing

    def apply_timing(self, timing: TimingConfig) -> None:
        """
        Use new retry budgets and delays from the next transition on.

        A transition in flight keeps the timing it started with.
        """
        self._timing = timing

    # ========================================================================
    # Transitions
    # ========================================================================

    @contextmanager
    def _transition(self, cancel: CancelToken) -> Iterator[_Transition]:
        if self._mode == DeviceMode.TRANSITIONING:
            raise TransitionInProgress("A mode transition is already in progress")

        transition = _Transition(previous=self._mode, cancel=cancel, outcome=self._mode)
        self._mode = DeviceMode.TRANSITIONING
        self._active_cancel = cancel

        try:
            yield transition
        finally:
            self._mode = transition.outcome
            self._active_cancel = None
            logger.info(f"Mode: {transition.previous.value} -> {self._mode.value}")

    async def wait_for_wifi(
        self,
        max_attempts: int,
        interval: float,
        cancel: CancelToken | None = None,
    ) -> int:
        """
        Poll the connection status until it reports connected.

        Args:
            max_attempts: Number of status checks before giving up
            interval: Seconds between checks
            cancel: Optional token observed between checks

        Returns:
            Number of checks it took

        Raises:
            BootstrapExhausted: if no check reported connected
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        for attempt in range(1, max_attempts + 1):
            if cancel is not None:
                cancel.raise_if_cancelled()

            try:
                status = await self._probe.get_status()
            except CommandFailure as e:
                logger.warning(f"Status check {attempt}/{max_attempts} failed: {e}")
            else:
                if self._probe.is_connected(status):
                    logger.info(f"Connected after {attempt} check(s)")
                    return attempt
                logger.info(
                    f"Not connected ({status or 'no status'}), "
                    f"check {attempt}/{max_attempts}"
                )

            if attempt < max_attempts:
                await pause(interval, cancel)

        raise BootstrapExhausted(max_attempts)

    async def bootstrap(self, cancel: CancelToken | None = None) -> DeviceMode:
        """
        Startup decision: stay in station mode or start provisioning.

        Returns:
            The resulting mode
        """
        timing = self._timing
        cancel = cancel or CancelToken()

        with self._transition(cancel) as transition:
            try:
                attempts = await self.wait_for_wifi(
                    timing.bootstrap_attempts,
                    timing.poll_interval_seconds,
                    cancel,
                )
            except BootstrapExhausted as e:
                logger.warning(f"{e}, starting provisioning")
                await self._enter_provisioning(timing, cancel)
                transition.outcome = DeviceMode.PROVISIONING
                self._signal(NotificationKind.PROVISIONING_STARTED, message=str(e))
            else:
                transition.outcome = DeviceMode.STATION
                self._preliminary_scan = None
                ssid = await self._current_network()
                self._signal(
                    NotificationKind.BOOTSTRAP_SUCCEEDED,
                    ssid=ssid,
                    message=f"Connected after {attempts} check(s)",
                )

        return self._mode

    async def reconfigure(
        self,
        credentials: WiFiCredentials,
        acknowledge: Callable[[], Any] | None = None,
        cancel: CancelToken | None = None,
    ) -> bool:
        """
        Switch to the network described by credentials.

        Args:
            credentials: Network to join
            acknowledge: Called (and awaited if async) before anything
                disrupts connectivity, so the caller can answer the user
            cancel: Optional token; defaults to one bounded by
                timing.reconfigure_deadline_seconds

        Returns:
            True if the device joined the network, False if it went back
            to provisioning

        Raises:
            TransitionInProgress: another transition is running
            OperationCancelled: cancelled or past the deadline
        """
        timing = self._timing
        if cancel is None:
            cancel = CancelToken(timing.reconfigure_deadline_seconds)

        with self._transition(cancel) as transition:
            ap_stopped = False

            try:
                if acknowledge is not None:
                    await _maybe_await(acknowledge())

                # Let the acknowledgement leave before the interface goes away
                await pause(timing.response_settle_seconds, cancel)

                if transition.previous == DeviceMode.PROVISIONING:
                    await self._access_point.stop_ap()
                    ap_stopped = True
                    await pause(timing.ap_teardown_settle_seconds, cancel)

                await self._definer.define_network(credentials.ssid, credentials.password)
                await self.wait_for_wifi(
                    timing.reconnect_attempts,
                    timing.poll_interval_seconds,
                    cancel,
                )

            except OperationCancelled as e:
                logger.warning(f"Reconfiguration for {credentials.ssid!r} aborted: {e}")
                if ap_stopped:
                    await self._enter_provisioning(timing, None)
                    transition.outcome = DeviceMode.PROVISIONING
                raise

            except (CommandFailure, BootstrapExhausted) as e:
                failure = ReconfigurationFailed(credentials.ssid, e)
                logger.error(str(failure))
                await self._enter_provisioning(timing, None)
                transition.outcome = DeviceMode.PROVISIONING
                self._signal(
                    NotificationKind.RECONFIGURATION_FAILED,
                    ssid=credentials.ssid,
                    message=str(failure),
                )
                return False

            transition.outcome = DeviceMode.STATION
            self._preliminary_scan = None
            self._signal(
                NotificationKind.RECONFIGURATION_SUCCEEDED,
                ssid=credentials.ssid,
                message=f"Connected to {credentials.ssid}",
            )
            return True

    async def _enter_provisioning(
        self, timing: TimingConfig, cancel: CancelToken | None
    ) -> None:
        """Capture the scan cache, then bring up the access point."""
        networks = await self._scanner.scan(
            timing.scan_attempts, cancel, retry_delay=timing.scan_retry_delay_seconds
        )
        self._preliminary_scan = list(networks)
        logger.info(f"Cached {len(networks)} network(s) before starting access point")

        try:
            await self._access_point.start_ap()
        except CommandFailure as e:
            logger.error(f"Failed to start access point: {e}")

    def cancel(self, reason: str = "cancelled by request") -> bool:
        """Cancel the transition in flight. Returns False if there is none."""
        if self._active_cancel is None:
            return False
        self._active_cancel.cancel(reason)
        return True

    # ========================================================================
    # Queries
    # ========================================================================

    async def scan_networks(self, max_attempts: int | None = None) -> ScanResult:
        """
        Networks to offer the user.

        One attempt unless max_attempts asks for more, so a page load never
        waits out the retry budget. Never touches the radio while a
        transition is in flight. In provisioning mode the preliminary cache
        fills in when the live attempt comes back empty.
        """
        mode = self._mode

        if mode == DeviceMode.TRANSITIONING:
            return list(self._preliminary_scan or [])

        if mode == DeviceMode.PROVISIONING:
            networks = await self._scanner.scan(1)
            if networks:
                return networks
            return list(self._preliminary_scan or [])

        return await self._scanner.scan(
            max_attempts or 1, retry_delay=self._timing.scan_retry_delay_seconds
        )

    async def get_status(self) -> str:
        return await self._probe.get_status()

    async def get_connected_network(self) -> str:
        return await self._probe.get_connected_network()

    async def get_known_networks(self) -> list[str]:
        return await self._probe.get_known_networks()

    async def is_connected(self) -> bool:
        """Single status check; a failed probe counts as not connected."""
        try:
            status = await self._probe.get_status()
        except CommandFailure as e:
            logger.debug(f"Status check failed: {e}")
            return False
        return self._probe.is_connected(status)

    async def _current_network(self) -> str | None:
        try:
            return await self._probe.get_connected_network() or None
        except CommandFailure as e:
            logger.warning(f"Could not read connected network: {e}")
            return None

    # ========================================================================
    # Notifications
    # ========================================================================

    def _signal(
        self,
        kind: NotificationKind,
        ssid: str | None = None,
        message: str = "",
    ) -> None:
        """Notify collaborators without waiting for them."""
        notification = Notification(kind=kind, ssid=ssid, message=message)

        for notifier in self._notifiers:
            if not notifier.handles(kind):
                continue
            task = asyncio.create_task(self._deliver(notifier, notification))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    async def _deliver(self, notifier: BaseNotifier, notification: Notification) -> None:
        try:
            await notifier.notify(notification)
        except Exception as e:
            logger.error(f"Notifier {notifier.name} failed: {e}")

    async def drain_notifications(self) -> None:
        """Wait for outstanding notifications to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending))


async def _maybe_await(result: Any) -> Any:
    if inspect.isawaitable(result):
        return await result
    return result


def create_orchestrator(
    config: Config,
    platform_name: str | None = None,
    notifiers: list[BaseNotifier] | None = None,
) -> ConnectivityOrchestrator:
    """
    Wire up an orchestrator for this device from configuration.

    Args:
        config: Loaded configuration
        platform_name: Overrides platform.name from config
        notifiers: Collaborators to signal
    """
    commands = build_command_set(
        platform_name or config.platform.name,
        interface=config.system.interface,
        overrides=config.platform.commands,
    )
    runner = CommandRunner(timeout=config.platform.command_timeout_seconds)

    return ConnectivityOrchestrator(
        probe=StatusProbe(runner, commands),
        scanner=Scanner(runner, commands, config.timing.scan_retry_delay_seconds),
        access_point=AccessPointController(runner, commands),
        definer=NetworkDefiner(runner, commands),
        timing=config.timing,
        notifiers=notifiers,
    )
