#!/usr/bin/env python3
"""madOS Bluetooth Menu - Entry point."""

import argparse
import signal
import sys

from . import __version__
from .app import MenuApp
from .config import ICON_MODES, LAUNCHERS, PAIRING_POLICIES, MenuConfig
from .controller import BluetoothController, Session
from .errors import ConfigError
from .factory import create_backend, create_notifier
from .launcher import LauncherBridge
from .logger import DEFAULT_LEVEL, setup_logging
from .registry import DeviceRegistry
from .translations import detect_system_language


def build_parser():
    parser = argparse.ArgumentParser(
        prog="mados-bzmenu",
        description="Manage Bluetooth devices from a dmenu-style launcher",
    )
    parser.add_argument("-l", "--launcher", choices=LAUNCHERS,
                        help="Menu launcher to use")
    parser.add_argument("--launcher-command",
                        help="Command for the custom launcher; may contain {prompt} and {placeholder}")
    parser.add_argument("-i", "--icons", choices=ICON_MODES,
                        help="Icon mode: Nerd Font glyphs, XDG icon names or none")
    parser.add_argument("-s", "--spacing", type=int,
                        help="Spaces between a font icon and its label")
    parser.add_argument("--scan-duration", type=int,
                        help="Seconds before a scan stops on its own")
    parser.add_argument("--pair-timeout", type=int,
                        help="Seconds to wait for pairing to complete")
    parser.add_argument("--pairing", choices=PAIRING_POLICIES,
                        help="How pairing confirmations are answered")
    parser.add_argument("--no-notifications", action="store_true",
                        help="Do not send desktop notifications")
    parser.add_argument("--log-level", default=DEFAULT_LEVEL,
                        help="Logging level (default: %(default)s)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def load_config(args) -> MenuConfig:
    """Merge environment defaults with command-line flags and validate."""
    config = MenuConfig.from_env()
    overrides = {
        "launcher": args.launcher,
        "launcher_command": args.launcher_command,
        "icon_mode": args.icons,
        "spacing": args.spacing,
        "scan_duration": args.scan_duration,
        "pair_timeout": args.pair_timeout,
        "pairing_policy": args.pairing,
    }
    for name, value in overrides.items():
        if value is not None:
            setattr(config, name, value)
    if args.no_notifications:
        config.notifications = False
    if config.language is None:
        config.language = detect_system_language()
    return config.validate()


def main(argv=None):
    """Launch the madOS Bluetooth Menu."""
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    try:
        config = load_config(args)
        daemon = create_backend()
    except ConfigError as e:
        parser.error(str(e))

    notifier = create_notifier(config.notifications)
    controller = BluetoothController(
        daemon,
        DeviceRegistry(),
        Session(),
        scan_duration=config.scan_duration,
        pair_timeout=config.pair_timeout,
        pairing_policy=config.pairing_policy,
        notifier=notifier,
        language=config.language,
    )
    app = MenuApp(controller, LauncherBridge(config), config, notifier)

    def on_signal(signum, frame):
        app.shutdown()

    signal.signal(signal.SIGTERM, on_signal)
    signal.signal(signal.SIGINT, on_signal)
    return app.run()


if __name__ == '__main__':
    sys.exit(main())
