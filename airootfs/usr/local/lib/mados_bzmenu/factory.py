"""madOS Bluetooth Menu - Backend factory.

Factory pattern to create daemon and notifier instances.
Enables dependency injection for testing.
"""

import os

from .config import MODE_ENV
from .errors import ConfigError
from .logger import get_logger

logger = get_logger(__name__)


def create_backend(mode=None):
    """Create a daemon instance based on environment mode.

    Environment:
        MADOS_BZMENU_MODE: 'production' (default) or 'test'

    Returns:
        An object implementing DaemonInterface.
    """
    mode = mode or os.environ.get(MODE_ENV, "production")

    if mode == "test":
        from .mock_backend import MockBluezDaemon

        logger.info("Using the in-memory Bluetooth daemon")
        return MockBluezDaemon()

    if mode == "production":
        from .backend import BluezDaemon

        return BluezDaemon()

    raise ConfigError(f"{MODE_ENV} must be 'production' or 'test', got {mode!r}")


def create_notifier(enabled=True):
    """Create the notifier: libnotify when enabled, otherwise a no-op one.

    A missing PyGObject or libnotify typelib only disables notifications.
    """
    from .interfaces import NullNotifier

    if not enabled:
        return NullNotifier()

    try:
        from .notification import LibnotifyNotifier
    except (ImportError, ValueError) as e:
        logger.warning("Notifications disabled, libnotify is unavailable: %s", e)
        return NullNotifier()

    return LibnotifyNotifier()
