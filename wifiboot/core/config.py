"""
Configuration for wifiboot.

Settings come from a single YAML file, with `${VAR:-default}` references
expanded from the environment and `WIFIBOOT_SECTION__KEY=value` variables
layered on top. Everything is validated into typed pydantic models; the
file can be watched so that timing changes reach a running device.
"""

from __future__ import annotations

import logging
import os
import re
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, TypeVar

import yaml
from pydantic import BaseModel, Field, field_validator
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from wifiboot.core.events import NotificationKind
from wifiboot.wifi.platforms import OPERATIONS, PLATFORMS

logger = logging.getLogger(__name__)

T = TypeVar("T")

ENV_PREFIX = "WIFIBOOT_"
ENV_SEPARATOR = "__"

PLATFORM_NAMES = tuple(PLATFORMS)
NOTIFICATION_KINDS = tuple(kind.value for kind in NotificationKind)


# ============================================================================
# Typed Configuration Models
# ============================================================================


class SystemConfig(BaseModel):
    """Process-wide settings."""

    name: str = "wifiboot"
    log_level: str = "INFO"
    interface: str = "wlan0"

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid log level: {v}")
        return level


class PlatformConfig(BaseModel):
    """Which command family drives the wireless interface."""

    name: str | None = None  # None = detect from kernel release
    commands: dict[str, str] = Field(default_factory=dict)
    command_timeout_seconds: float = Field(default=30.0, gt=0.0)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str | None) -> str | None:
        if v is not None and v not in PLATFORM_NAMES:
            raise ValueError(f"Platform must be one of {PLATFORM_NAMES}")
        return v

    @field_validator("commands")
    @classmethod
    def validate_commands(cls, v: dict[str, str]) -> dict[str, str]:
        unknown = set(v) - set(OPERATIONS)
        if unknown:
            raise ValueError(f"Unknown command overrides: {sorted(unknown)}")
        return v


class TimingConfig(BaseModel):
    """
    Retry budgets and settle delays.

    The defaults were tuned on real hardware. Shorter AP teardown delays
    made the new network come up very slowly or not at all.
    """

    bootstrap_attempts: int = Field(default=10, ge=1)
    reconnect_attempts: int = Field(default=20, ge=1)
    poll_interval_seconds: float = Field(default=3.0, ge=0.0)
    scan_attempts: int = Field(default=10, ge=1)
    scan_retry_delay_seconds: float = Field(default=3.0, ge=0.0)
    response_settle_seconds: float = Field(default=2.0, ge=0.0)
    ap_teardown_settle_seconds: float = Field(default=5.0, ge=0.0)
    reconfigure_deadline_seconds: float | None = Field(default=None, gt=0.0)


class PortalConfig(BaseModel):
    """Where the setup portal listens."""

    enabled: bool = True
    host: str = "0.0.0.0"
    port: int = Field(default=80, ge=1, le=65535)
    gateway_ip: str = "10.0.0.1"


class LogNotifierConfig(BaseModel):
    enabled: bool = True


class CommandNotifierConfig(BaseModel):
    """Shell commands run on connectivity events (prompts, service start)."""

    enabled: bool = False
    commands: dict[str, str] = Field(default_factory=dict)
    timeout_seconds: float = Field(default=60.0, gt=0.0)

    @field_validator("commands")
    @classmethod
    def validate_kinds(cls, v: dict[str, str]) -> dict[str, str]:
        unknown = set(v) - set(NOTIFICATION_KINDS)
        if unknown:
            raise ValueError(f"Unknown notification kinds: {sorted(unknown)}")
        return v


class WebhookNotifierConfig(BaseModel):
    enabled: bool = False
    url: str = ""
    headers: dict[str, str] = Field(default_factory=dict)
    timeout_seconds: float = Field(default=30.0, ge=1.0)


class NotifiersConfig(BaseModel):
    log: LogNotifierConfig = Field(default_factory=LogNotifierConfig)
    command: CommandNotifierConfig = Field(default_factory=CommandNotifierConfig)
    webhook: WebhookNotifierConfig = Field(default_factory=WebhookNotifierConfig)


class WifibootConfig(BaseModel):
    """Root of the validated configuration tree."""

    system: SystemConfig = Field(default_factory=SystemConfig)
    platform: PlatformConfig = Field(default_factory=PlatformConfig)
    timing: TimingConfig = Field(default_factory=TimingConfig)
    portal: PortalConfig = Field(default_factory=PortalConfig)
    notifiers: NotifiersConfig = Field(default_factory=NotifiersConfig)


@dataclass
class ConfigChange:
    """One leaf that differs between two loads of the file."""

    path: str  # e.g. "timing.poll_interval_seconds"
    old_value: Any
    new_value: Any
    timestamp: float


# ============================================================================
# Loading
# ============================================================================

_TRUE_WORDS = frozenset({"true", "yes", "on"})
_FALSE_WORDS = frozenset({"false", "no", "off"})


class ConfigLoader:
    """Reads the YAML file and applies environment overrides."""

    # ${VAR} or ${VAR:-fallback}
    ENV_PATTERN = re.compile(r"\$\{(?P<name>[^}:]+)(?::-(?P<fallback>[^}]*))?\}")

    def load_yaml(self, path: Path) -> dict[str, Any]:
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        text = self.ENV_PATTERN.sub(self._expand, path.read_text())
        return yaml.safe_load(text) or {}

    @staticmethod
    def _expand(match: re.Match) -> str:
        value = os.environ.get(match["name"], match["fallback"])
        # Unresolved references stay visible in the loaded value
        return match[0] if value is None else value

    def apply_env_overrides(self, data: dict[str, Any]) -> dict[str, Any]:
        """
        Layer WIFIBOOT_* variables over the loaded data.

        Sections are separated by a double underscore so that keys keep
        their own underscores:

            WIFIBOOT_TIMING__POLL_INTERVAL_SECONDS=1.5
                -> timing.poll_interval_seconds = 1.5
        """
        for name in sorted(os.environ):
            if not name.startswith(ENV_PREFIX):
                continue

            keys = name[len(ENV_PREFIX):].lower().split(ENV_SEPARATOR)
            if "" in keys:
                logger.warning(f"Ignoring malformed override {name}")
                continue

            section = data
            for key in keys[:-1]:
                child = section.get(key)
                if not isinstance(child, dict):
                    child = section[key] = {}
                section = child
            section[keys[-1]] = self._parse_value(os.environ[name])

        return data

    def _parse_value(self, raw: str) -> Any:
        """Interpret an override as bool, int or float, else keep the text."""
        word = raw.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False

        for cast in (int, float):
            try:
                return cast(raw)
            except ValueError:
                continue
        return raw


# ============================================================================
# Watching
# ============================================================================


class ConfigWatcher:
    """Calls back when one config file is written or replaced."""

    def __init__(self, path: Path, on_change: Callable[[Path], None]):
        self._path = path.resolve()
        self._on_change = on_change
        self._observer: Observer | None = None

    def start(self) -> None:
        if self._observer is not None:
            return

        observer = Observer()
        observer.schedule(
            _ConfigFileHandler(self._path, self._on_change),
            str(self._path.parent),
            recursive=False,
        )
        observer.start()
        self._observer = observer

    def stop(self) -> None:
        if self._observer is None:
            return

        self._observer.stop()
        self._observer.join()
        self._observer = None


class _ConfigFileHandler(FileSystemEventHandler):
    """Filters directory events down to the watched file."""

    def __init__(self, path: Path, callback: Callable[[Path], None]):
        self._path = path
        self._callback = callback

    def on_modified(self, event: FileSystemEvent) -> None:
        self._dispatch(event, event.src_path)

    def on_created(self, event: FileSystemEvent) -> None:
        self._dispatch(event, event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        # Editors that save via a temp file and rename
        self._dispatch(event, event.dest_path)

    def _dispatch(self, event: FileSystemEvent, target: str | bytes) -> None:
        if event.is_directory:
            return
        if Path(os.fsdecode(target)).resolve() == self._path:
            self._callback(self._path)


# ============================================================================
# Config
# ============================================================================


class Config:
    """
    Validated settings plus the raw data they came from.

    Usage:
        config = Config.load(Path("/etc/wifiboot/config.yaml"))
        config.timing.poll_interval_seconds
        config.get("portal.gateway_ip", "10.0.0.1")

    With hot reload enabled, an edit that fails validation is logged and
    the previous settings stay in force.
    """

    def __init__(self, data: dict[str, Any], source_path: Path | None = None):
        self._typed = WifibootConfig.model_validate(data)
        self._data = data
        self._source_path = source_path
        self._loader = ConfigLoader()
        self._watcher: ConfigWatcher | None = None
        self._change_callbacks: list[Callable[[list[ConfigChange]], None]] = []

    @classmethod
    def load(cls, path: Path) -> Config:
        return cls(cls._read(ConfigLoader(), path), source_path=path)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Config:
        return cls(data)

    @classmethod
    def default(cls) -> Config:
        return cls({})

    @staticmethod
    def _read(loader: ConfigLoader, path: Path) -> dict[str, Any]:
        return loader.apply_env_overrides(loader.load_yaml(path))

    @property
    def source_path(self) -> Path | None:
        return self._source_path

    def get(self, path: str, default: T = None) -> T:
        """Look up a raw value by dotted path, e.g. "timing.scan_attempts"."""
        node: Any = self._data
        for key in path.split("."):
            if not isinstance(node, dict) or key not in node:
                return default  # type: ignore
            node = node[key]
        return node  # type: ignore

    def set(self, path: str, value: Any) -> None:
        """Change one value in memory. Raises ValueError if it does not validate."""
        *parents, leaf = path.split(".")

        data = _copy_tree(self._data)
        node = data
        for key in parents:
            node = node.setdefault(key, {})
        node[leaf] = value

        self._typed = WifibootConfig.model_validate(data)
        self._data = data

    def reload(self) -> list[ConfigChange]:
        """Re-read the source file and return what changed."""
        if self._source_path is None:
            return []

        data = self._read(self._loader, self._source_path)
        typed = WifibootConfig.model_validate(data)

        changes = self._diff(self._data, data)
        self._data, self._typed = data, typed
        return changes

    def enable_hot_reload(
        self, callback: Callable[[list[ConfigChange]], None] | None = None
    ) -> None:
        if self._source_path is None:
            raise ValueError("Cannot enable hot reload without a source path")

        if callback:
            self._change_callbacks.append(callback)

        if self._watcher is None:
            self._watcher = ConfigWatcher(self._source_path, self._on_file_change)
            self._watcher.start()

    def disable_hot_reload(self) -> None:
        if self._watcher is not None:
            self._watcher.stop()
            self._watcher = None

    def validate(self) -> list[str]:
        """Return validation errors for the current data (empty when valid)."""
        try:
            WifibootConfig.model_validate(self._data)
        except ValueError as e:
            return [str(e)]
        return []

    def to_dict(self) -> dict[str, Any]:
        return _copy_tree(self._data)

    def _on_file_change(self, path: Path) -> None:
        try:
            changes = self.reload()
        except (OSError, ValueError, yaml.YAMLError) as e:
            logger.error(f"Ignoring edit to {path}: {e}")
            return

        if not changes:
            return

        logger.info(f"Reloaded {path}: {', '.join(c.path for c in changes)}")
        for callback in self._change_callbacks:
            callback(changes)

    def _diff(
        self, old: dict[str, Any], new: dict[str, Any], prefix: str = ""
    ) -> list[ConfigChange]:
        """List changed leaves, recursing into sections present on both sides."""
        now = time.time()
        changes: list[ConfigChange] = []

        for key in sorted(old.keys() | new.keys()):
            before, after = old.get(key), new.get(key)
            if before == after:
                continue

            path = f"{prefix}.{key}" if prefix else key
            if isinstance(before, dict) and isinstance(after, dict):
                changes.extend(self._diff(before, after, path))
            else:
                changes.append(ConfigChange(path, before, after, now))

        return changes

    # Typed sections

    @property
    def system(self) -> SystemConfig:
        return self._typed.system

    @property
    def platform(self) -> PlatformConfig:
        return self._typed.platform

    @property
    def timing(self) -> TimingConfig:
        return self._typed.timing

    @property
    def portal(self) -> PortalConfig:
        return self._typed.portal

    @property
    def notifiers(self) -> NotifiersConfig:
        return self._typed.notifiers


def _copy_tree(data: dict[str, Any]) -> dict[str, Any]:
    return {
        key: _copy_tree(value) if isinstance(value, dict) else value
        for key, value in data.items()
    }
