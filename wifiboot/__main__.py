"""
wifiboot entry point.

Run with: python -m wifiboot
Or: wifiboot (if installed)
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

from wifiboot import __version__
from wifiboot.core.config import Config, ConfigChange
from wifiboot.core.errors import CommandFailure, OperationCancelled, TransitionInProgress
from wifiboot.core.notifiers import BaseNotifier, CommandNotifier, LogNotifier, WebhookNotifier
from wifiboot.core.orchestrator import ConnectivityOrchestrator, create_orchestrator
from wifiboot.core.state import WiFiCredentials
from wifiboot.setup.portal import SetupPortal
from wifiboot.wifi.commands import CommandRunner
from wifiboot.wifi.hotspot import AccessPointController
from wifiboot.wifi.platforms import build_command_set

logger = logging.getLogger("wifiboot")


def build_notifiers(config: Config) -> list[BaseNotifier]:
    """Create the enabled notifiers."""
    notifiers: list[BaseNotifier] = []

    if config.notifiers.log.enabled:
        notifiers.append(LogNotifier(config.notifiers.log))

    if config.notifiers.command.enabled:
        notifiers.append(CommandNotifier(config.notifiers.command))

    if config.notifiers.webhook.enabled:
        notifiers.append(WebhookNotifier(config.notifiers.webhook))

    return notifiers


async def run_wifiboot(config: Config, platform_name: str | None = None) -> None:
    """Bootstrap connectivity, then serve the setup portal until stopped."""
    print(f"📶 Starting wifiboot v{__version__}")
    print("=" * 40)

    notifiers = build_notifiers(config)
    orchestrator = create_orchestrator(config, platform_name, notifiers)

    portal = None
    if config.portal.enabled:
        portal = SetupPortal(
            orchestrator=orchestrator,
            host=config.portal.host,
            port=config.portal.port,
            gateway_ip=config.portal.gateway_ip,
        )

    # Handle shutdown
    shutdown_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    def signal_handler():
        print("\n🛑 Shutting down...")
        orchestrator.cancel("shutting down")
        shutdown_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)

    # Timings are picked up by the next transition
    def on_config_change(changes: list[ConfigChange]) -> None:
        if any(change.path.startswith("timing") for change in changes):
            loop.call_soon_threadsafe(orchestrator.apply_timing, config.timing)

    if config.source_path:
        config.enable_hot_reload(on_config_change)

    # Start components
    for notifier in notifiers:
        await notifier.start()

    if portal:
        await portal.start()

    bootstrap_task = asyncio.create_task(_bootstrap(orchestrator))

    print("Press Ctrl+C to stop")
    print()

    # Wait for shutdown
    await shutdown_event.wait()

    # Cleanup
    if not bootstrap_task.done():
        bootstrap_task.cancel()
    try:
        await bootstrap_task
    except asyncio.CancelledError:
        pass

    await orchestrator.drain_notifications()

    if portal:
        await portal.stop()

    for notifier in notifiers:
        await notifier.stop()

    config.disable_hot_reload()

    print("👋 Shutdown complete")


async def _bootstrap(orchestrator: ConnectivityOrchestrator) -> None:
    try:
        mode = await orchestrator.bootstrap()
    except OperationCancelled as e:
        logger.warning(f"Bootstrap aborted: {e}")
        return
    print(f"✅ Bootstrap finished in {mode.value} mode")


async def show_status(orchestrator: ConnectivityOrchestrator) -> int:
    status = await orchestrator.get_status()
    ssid = await orchestrator.get_connected_network()
    print(f"Status:  {status}")
    print(f"Network: {ssid or '(none)'}")
    return 0


async def scan(orchestrator: ConnectivityOrchestrator, attempts: int) -> int:
    networks = await orchestrator.scan_networks(attempts)
    for ssid in networks:
        print(ssid)
    return 0 if networks else 1


async def show_known(orchestrator: ConnectivityOrchestrator) -> int:
    for ssid in await orchestrator.get_known_networks():
        print(ssid)
    return 0


async def connect(
    orchestrator: ConnectivityOrchestrator,
    ssid: str,
    password: str | None,
) -> int:
    credentials = WiFiCredentials(ssid=ssid, password=password)
    print(f"📡 Connecting to {credentials.ssid}...")

    if await orchestrator.reconfigure(credentials):
        print(f"✅ Connected to {credentials.ssid}")
        await orchestrator.drain_notifications()
        return 0

    print(f"❌ Could not connect to {credentials.ssid}; access point restarted")
    await orchestrator.drain_notifications()
    return 1


async def toggle_access_point(config: Config, platform_name: str | None, start: bool) -> int:
    commands = build_command_set(
        platform_name or config.platform.name,
        interface=config.system.interface,
        overrides=config.platform.commands,
    )
    runner = CommandRunner(timeout=config.platform.command_timeout_seconds)
    access_point = AccessPointController(runner, commands)

    if start:
        await access_point.start_ap()
        print("📡 Access point started")
    else:
        await access_point.stop_ap()
        print("📡 Access point stopped")
    return 0


async def run_command(args: argparse.Namespace, config: Config) -> int:
    """Run a one-shot subcommand."""
    if args.command in ("start-ap", "stop-ap"):
        return await toggle_access_point(config, args.platform, args.command == "start-ap")

    orchestrator = create_orchestrator(config, args.platform, build_notifiers(config))

    if args.command == "status":
        return await show_status(orchestrator)
    if args.command == "scan":
        return await scan(orchestrator, args.attempts or config.timing.scan_attempts)
    if args.command == "known":
        return await show_known(orchestrator)
    if args.command == "connect":
        return await connect(orchestrator, args.ssid, args.password)

    raise ValueError(f"Unknown command: {args.command}")


def find_config(path: Path | None) -> Config:
    """Load the first config file found, or fall back to defaults."""
    config_paths = [
        path,
        Path("config/default.yaml"),
        Path("/etc/wifiboot/config.yaml"),
        Path.home() / ".config/wifiboot/config.yaml",
    ]

    for candidate in config_paths:
        if candidate and candidate.exists():
            print(f"Loading config from: {candidate}")
            return Config.load(candidate)

    print("No config file found, using defaults")
    return Config.default()


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="wifiboot",
        description="Wi-Fi bootstrap and access point provisioning",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Configuration file path",
    )
    parser.add_argument(
        "--platform",
        type=str,
        default=None,
        help="Platform command family (detected when omitted)",
    )

    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("run", help="Bootstrap, then serve the setup portal (default)")
    subparsers.add_parser("status", help="Show the connection status")

    scan_parser = subparsers.add_parser("scan", help="List visible networks")
    scan_parser.add_argument(
        "--attempts",
        type=int,
        default=None,
        help="Scan attempts before giving up (default: timing.scan_attempts)",
    )

    subparsers.add_parser("known", help="List networks the supplicant knows")

    connect_parser = subparsers.add_parser("connect", help="Switch to another network")
    connect_parser.add_argument("ssid", help="Network name")
    connect_parser.add_argument(
        "-p", "--password",
        default=None,
        help="Passphrase (omit for open networks)",
    )

    subparsers.add_parser("start-ap", help="Start the configuration access point")
    subparsers.add_parser("stop-ap", help="Stop the configuration access point")

    args = parser.parse_args()

    config = find_config(args.config)

    # Validate config
    errors = config.validate()
    if errors:
        print("Configuration errors:")
        for error in errors:
            print(f"  - {error}")
        sys.exit(1)

    logging.basicConfig(
        level=config.system.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command in (None, "run"):
        try:
            asyncio.run(run_wifiboot(config, args.platform))
        except KeyboardInterrupt:
            pass
        return

    try:
        sys.exit(asyncio.run(run_command(args, config)))
    except (CommandFailure, TransitionInProgress, ValueError) as e:
        print(f"❌ {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
