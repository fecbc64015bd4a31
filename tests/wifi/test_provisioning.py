"""Tests for network definition."""

from __future__ import annotations

import pytest

from wifiboot.core.errors import CommandFailure
from wifiboot.wifi.provisioning import NetworkDefiner


class TestNetworkDefiner:
    @pytest.fixture
    def definer(self, runner, command_set):
        return NetworkDefiner(runner, command_set)

    @pytest.mark.asyncio
    async def test_secured_network(self, definer, runner, command_set):
        await definer.define_network("Home-5G", "correcthorse")

        runner.run.assert_awaited_once_with(
            command_set.define_network,
            {"SSID": "Home-5G", "PSK": "correcthorse"},
        )

    @pytest.mark.asyncio
    @pytest.mark.parametrize("password", [None, ""])
    async def test_open_network(self, definer, runner, command_set, password):
        await definer.define_network("Cafe", password)

        runner.run.assert_awaited_once_with(
            command_set.define_open_network,
            {"SSID": "Cafe"},
        )

    @pytest.mark.asyncio
    async def test_credentials_never_in_command_text(self, definer, runner):
        await definer.define_network("Home-5G", "correcthorse")

        command, params = runner.run.await_args.args
        assert "Home-5G" not in command.script
        assert "correcthorse" not in command.script
        assert params["SSID"] == "Home-5G"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("ssid", ["", "   "])
    async def test_blank_ssid_rejected(self, definer, runner, ssid):
        with pytest.raises(ValueError):
            await definer.define_network(ssid, "secret")

        runner.run.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failure_propagates(self, definer, runner):
        runner.run.side_effect = CommandFailure("wpa_cli add_network", 1, "FAIL")

        with pytest.raises(CommandFailure):
            await definer.define_network("Home-5G", "correcthorse")
