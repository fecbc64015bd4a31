"""Pytest configuration and fixtures."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from wifiboot.core.config import Config, TimingConfig
from wifiboot.core.orchestrator import ConnectivityOrchestrator
from wifiboot.wifi.platforms import raspbian_commands


@pytest.fixture
def default_config():
    """Default configuration for testing."""
    return Config.default()


@pytest.fixture
def command_set():
    """Raspbian command set on wlan0."""
    return raspbian_commands("wlan0")


@pytest.fixture
def runner():
    """CommandRunner stand-in; set run.return_value or run.side_effect."""
    mock = MagicMock()
    mock.run = AsyncMock(return_value="")
    return mock


@pytest.fixture
def fast_timing():
    """Default attempt budgets with every delay set to zero."""
    return TimingConfig(
        poll_interval_seconds=0,
        scan_retry_delay_seconds=0,
        response_settle_seconds=0,
        ap_teardown_settle_seconds=0,
    )


@pytest.fixture
def calls():
    """Records the order in which wireless primitives are invoked."""
    return []


@pytest.fixture
def probe(calls):
    mock = MagicMock()

    async def get_status():
        calls.append("get_status")
        return "COMPLETED"

    mock.get_status = AsyncMock(side_effect=get_status)
    mock.get_connected_network = AsyncMock(return_value="Home-5G")
    mock.get_known_networks = AsyncMock(return_value=["Home-5G", "Office"])
    mock.is_connected = lambda status: status == "COMPLETED"
    return mock


@pytest.fixture
def scanner(calls):
    mock = MagicMock()

    async def scan(max_attempts=1, cancel=None, retry_delay=None):
        calls.append("scan")
        return ["Home-5G", "Office"]

    mock.scan = AsyncMock(side_effect=scan)
    return mock


@pytest.fixture
def access_point(calls):
    mock = MagicMock()
    mock.start_ap = AsyncMock(side_effect=lambda: calls.append("start_ap"))
    mock.stop_ap = AsyncMock(side_effect=lambda: calls.append("stop_ap"))
    return mock


@pytest.fixture
def definer(calls):
    mock = MagicMock()
    mock.define_network = AsyncMock(
        side_effect=lambda ssid, password=None: calls.append("define_network")
    )
    return mock


@pytest.fixture
def orchestrator(probe, scanner, access_point, definer, fast_timing):
    """Orchestrator over mocked wireless primitives, with no delays."""
    return ConnectivityOrchestrator(
        probe=probe,
        scanner=scanner,
        access_point=access_point,
        definer=definer,
        timing=fast_timing,
    )
