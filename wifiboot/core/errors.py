"""
Error taxonomy for wifiboot.

Nothing here is fatal to the process: the worst outcome of any of these
is the device staying in provisioning mode.
"""

from __future__ import annotations


class WifibootError(Exception):
    """Base class for all wifiboot errors."""


class CommandFailure(WifibootError):
    """A platform command exited non-zero or wrote to its error stream."""

    def __init__(self, command: str, returncode: int | None, stderr: str = ""):
        self.command = command
        self.returncode = returncode
        self.stderr = stderr.strip()
        detail = self.stderr or "no error output"
        super().__init__(f"Command failed (exit {returncode}): {command}: {detail}")


class ScanFailure(WifibootError):
    """A single scan attempt failed. Never surfaced past the scanner."""

    def __init__(self, attempt: int, cause: Exception):
        self.attempt = attempt
        self.cause = cause
        super().__init__(f"Scan attempt {attempt} failed: {cause}")


class BootstrapExhausted(WifibootError):
    """No connection was observed within the attempt budget."""

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"No wifi connection after {attempts} attempt(s)")


class ReconfigurationFailed(WifibootError):
    """New credentials were defined but the device did not associate."""

    def __init__(self, ssid: str, cause: Exception | None = None):
        self.ssid = ssid
        self.cause = cause
        message = f"Could not connect to {ssid!r}"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)


class TransitionInProgress(WifibootError):
    """A mode transition is already running; the request was rejected."""


class OperationCancelled(WifibootError):
    """A transition was cancelled or ran past its deadline."""
