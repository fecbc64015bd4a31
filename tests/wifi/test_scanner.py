"""
Tests for wireless network scanning.

Covers:
- Signal-ordered parsing
- Bounded retry with a fixed delay
- Empty result instead of failure
"""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from wifiboot.core.cancellation import CancelToken
from wifiboot.core.errors import CommandFailure, OperationCancelled
from wifiboot.wifi.scanner import SCAN_RETRY_DELAY, Scanner


def failure() -> CommandFailure:
    return CommandFailure("iwlist wlan0 scan", 1, "Device or resource busy")


class TestScanner:
    @pytest.fixture
    def scanner(self, runner, command_set):
        return Scanner(runner, command_set)

    def test_default_retry_delay(self, scanner):
        assert scanner.retry_delay == SCAN_RETRY_DELAY == 3.0

    @pytest.mark.asyncio
    async def test_parses_output_in_order(self, scanner, runner, command_set):
        runner.run.return_value = "Home-5G\nOffice\n\nCafe"

        result = await scanner.scan()

        assert result == ["Home-5G", "Office", "Cafe"]
        runner.run.assert_awaited_once_with(command_set.scan)

    @pytest.mark.asyncio
    async def test_duplicates_are_kept(self, scanner, runner):
        runner.run.return_value = "Home-5G\nHome-5G"
        assert await scanner.scan() == ["Home-5G", "Home-5G"]

    @pytest.mark.asyncio
    async def test_succeeds_on_last_attempt(self, scanner, runner):
        runner.run.side_effect = [failure(), failure(), "Home-5G\nOffice"]

        with patch("wifiboot.wifi.scanner.pause", new_callable=AsyncMock) as mock_pause:
            result = await scanner.scan(3)

        assert result == ["Home-5G", "Office"]
        assert runner.run.await_count == 3
        assert mock_pause.await_count == 2
        mock_pause.assert_awaited_with(3.0, None)

    @pytest.mark.asyncio
    async def test_all_attempts_fail_returns_empty(self, scanner, runner):
        runner.run.side_effect = failure()

        with patch("wifiboot.wifi.scanner.pause", new_callable=AsyncMock) as mock_pause:
            result = await scanner.scan(10)

        assert result == []
        assert runner.run.await_count == 10
        assert mock_pause.await_count == 9

    @pytest.mark.asyncio
    async def test_single_attempt_does_not_wait(self, scanner, runner):
        runner.run.side_effect = failure()

        with patch("wifiboot.wifi.scanner.pause", new_callable=AsyncMock) as mock_pause:
            assert await scanner.scan() == []

        mock_pause.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_uses_configured_delay(self, runner, command_set):
        scanner = Scanner(runner, command_set, retry_delay=0.5)
        runner.run.side_effect = [failure(), "Office"]

        with patch("wifiboot.wifi.scanner.pause", new_callable=AsyncMock) as mock_pause:
            await scanner.scan(2)

        mock_pause.assert_awaited_once_with(0.5, None)

    @pytest.mark.asyncio
    async def test_per_call_delay_overrides_configured(self, runner, command_set):
        scanner = Scanner(runner, command_set, retry_delay=0.5)
        runner.run.side_effect = [failure(), "Office"]

        with patch("wifiboot.wifi.scanner.pause", new_callable=AsyncMock) as mock_pause:
            await scanner.scan(2, retry_delay=1.5)

        mock_pause.assert_awaited_once_with(1.5, None)
        assert scanner.retry_delay == 0.5

    @pytest.mark.asyncio
    async def test_cancelled_between_attempts(self, runner, command_set):
        scanner = Scanner(runner, command_set, retry_delay=0)
        runner.run.side_effect = failure()
        token = CancelToken()
        token.cancel()

        with pytest.raises(OperationCancelled):
            await scanner.scan(3, cancel=token)

        assert runner.run.await_count == 1
