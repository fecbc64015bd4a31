"""Tests for access point control."""

from __future__ import annotations

import pytest

from wifiboot.core.errors import CommandFailure
from wifiboot.wifi.hotspot import AccessPointController
from wifiboot.wifi.platforms import edison_commands


class TestAccessPointController:
    @pytest.fixture
    def controller(self, runner, command_set):
        return AccessPointController(runner, command_set)

    @pytest.mark.asyncio
    async def test_start_ap(self, controller, runner, command_set):
        await controller.start_ap()
        runner.run.assert_awaited_once_with(command_set.start_ap)

    @pytest.mark.asyncio
    async def test_stop_ap(self, controller, runner, command_set):
        await controller.stop_ap()
        runner.run.assert_awaited_once_with(command_set.stop_ap)

    @pytest.mark.asyncio
    async def test_repeated_calls_just_rerun_command(self, controller, runner):
        await controller.stop_ap()
        await controller.stop_ap()

        assert runner.run.await_count == 2

    @pytest.mark.asyncio
    async def test_failure_propagates_unchanged(self, controller, runner):
        error = CommandFailure("systemctl start hostapd", 5, "Unit not found")
        runner.run.side_effect = error

        with pytest.raises(CommandFailure) as exc_info:
            await controller.start_ap()

        assert exc_info.value is error

    @pytest.mark.asyncio
    async def test_uses_platform_commands(self, runner):
        controller = AccessPointController(runner, edison_commands())

        await controller.start_ap()

        command = runner.run.await_args.args[0]
        assert command.script == "systemctl start hostapd"
