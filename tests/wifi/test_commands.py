"""
Tests for platform command execution.

Covers:
- Parameter binding through the environment
- stdout trimming
- Failure on non-zero exit, stderr output, timeout
- Cancellation killing the command
"""

from __future__ import annotations

import asyncio
import os

import pytest

from wifiboot.core.errors import CommandFailure
from wifiboot.wifi.commands import CommandRunner, CommandSpec, split_lines


class TestCommandSpec:
    """Tests for CommandSpec parameter binding."""

    def test_no_params_inherits_environment(self):
        spec = CommandSpec("true")
        assert spec.bind(None) is None
        assert spec.bind({}) is None

    def test_bind_merges_over_environment(self):
        spec = CommandSpec("true", parameters=("SSID",))
        env = spec.bind({"SSID": "Home-5G"})

        assert env["SSID"] == "Home-5G"
        assert env["PATH"] == os.environ["PATH"]

    def test_bind_rejects_undeclared_parameter(self):
        spec = CommandSpec("true", parameters=("SSID",))

        with pytest.raises(ValueError):
            spec.bind({"PSK": "secret"})

    def test_bind_rejects_non_string(self):
        spec = CommandSpec("true", parameters=("SSID",))

        with pytest.raises(TypeError):
            spec.bind({"SSID": 42})  # type: ignore[dict-item]

    def test_frozen(self):
        spec = CommandSpec("true")

        with pytest.raises(AttributeError):
            spec.script = "false"  # type: ignore[misc]


class TestSplitLines:
    def test_drops_blank_lines(self):
        assert split_lines("Home-5G\n\nOffice\n  \n") == ["Home-5G", "Office"]

    def test_preserves_order(self):
        assert split_lines("b\na\nc") == ["b", "a", "c"]

    def test_empty(self):
        assert split_lines("") == []


class TestCommandRunner:
    """Tests for CommandRunner against real shell commands."""

    @pytest.fixture
    def runner(self):
        return CommandRunner(timeout=5.0)

    @pytest.mark.asyncio
    async def test_returns_trimmed_stdout(self, runner):
        result = await runner.run(CommandSpec("printf '  COMPLETED \\n\\n'"))
        assert result == "COMPLETED"

    @pytest.mark.asyncio
    async def test_params_reach_command_through_environment(self, runner):
        spec = CommandSpec('printf "%s" "$SSID"', parameters=("SSID",))

        result = await runner.run(spec, {"SSID": "Home 5G"})

        assert result == "Home 5G"

    @pytest.mark.asyncio
    async def test_params_are_not_interpreted_by_shell(self, runner):
        spec = CommandSpec('printf "%s" "$SSID"', parameters=("SSID",))
        hostile = "x; echo pwned $(id)"

        result = await runner.run(spec, {"SSID": hostile})

        assert result == hostile

    @pytest.mark.asyncio
    async def test_nonzero_exit_fails(self, runner):
        with pytest.raises(CommandFailure) as exc_info:
            await runner.run(CommandSpec("exit 3"))

        assert exc_info.value.returncode == 3
        assert exc_info.value.command == "exit 3"

    @pytest.mark.asyncio
    async def test_stderr_output_fails_even_on_success(self, runner):
        with pytest.raises(CommandFailure) as exc_info:
            await runner.run(CommandSpec("echo ok; echo warning >&2"))

        assert exc_info.value.returncode == 0
        assert "warning" in exc_info.value.stderr

    @pytest.mark.asyncio
    async def test_nonzero_exit_reports_stderr(self, runner):
        with pytest.raises(CommandFailure) as exc_info:
            await runner.run(CommandSpec("echo 'no such interface' >&2; exit 1"))

        assert "no such interface" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_timeout_fails(self):
        runner = CommandRunner(timeout=0.2)

        with pytest.raises(CommandFailure) as exc_info:
            await runner.run(CommandSpec("sleep 5"))

        assert "timed out" in exc_info.value.stderr

    @pytest.mark.asyncio
    async def test_cancel_kills_running_command(self, runner, tmp_path):
        marker = tmp_path / "applied"
        task = asyncio.create_task(runner.run(CommandSpec(f"sleep 1; touch {marker}")))
        await asyncio.sleep(0.2)

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        await asyncio.sleep(1.5)
        assert not marker.exists()

    @pytest.mark.asyncio
    async def test_undeclared_param_rejected_before_spawn(self, runner):
        with pytest.raises(ValueError):
            await runner.run(CommandSpec("true"), {"SSID": "x"})
