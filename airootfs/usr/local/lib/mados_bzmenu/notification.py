"""madOS Bluetooth Menu - Desktop notifications via libnotify.

Notifications are best-effort: they are sent from a short-lived daemon
thread so a slow or missing notification server never stalls the menu,
and failures are only logged.
"""

import threading
from typing import Optional

import gi
gi.require_version('Notify', '0.7')
from gi.repository import GLib, Notify

from . import __app_name__
from .config import NOTIFICATION_SUMMARY, NOTIFICATION_TIMEOUT_MS
from .icons import get_xdg_icon
from .interfaces import NotifierInterface
from .logger import get_logger

logger = get_logger(__name__)


class LibnotifyNotifier(NotifierInterface):
    """Sends notifications through the session notification daemon."""

    def __init__(self, timeout_ms: int = NOTIFICATION_TIMEOUT_MS):
        self._timeout_ms = timeout_ms
        self._lock = threading.Lock()

    def notify(self, body: str, icon: str = "bluetooth",
               summary: Optional[str] = None) -> None:
        thread = threading.Thread(
            target=self._send,
            args=(summary or NOTIFICATION_SUMMARY, body, get_xdg_icon(icon) or icon),
            daemon=True,
        )
        thread.start()

    def _send(self, summary, body, icon):
        try:
            with self._lock:
                if not Notify.is_initted() and not Notify.init(__app_name__):
                    logger.warning("Notification server unavailable")
                    return
                notification = Notify.Notification.new(summary, body, icon)
                notification.set_timeout(self._timeout_ms)
                notification.show()
        except GLib.Error as e:
            logger.warning("Failed to send notification: %s", e)

