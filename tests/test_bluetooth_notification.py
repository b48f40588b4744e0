#!/usr/bin/env python3
"""
Unit tests for libnotify notifications.

GObject introspection is stubbed, so these tests only validate what is
handed to libnotify and that failures never reach the caller.
"""

import sys
import os
import unittest
from unittest.mock import MagicMock, patch

sys.path.insert(0, os.path.dirname(__file__))

from test_helpers import install_gtk_mocks

install_gtk_mocks()

sys.path.insert(
    0, os.path.join(os.path.dirname(__file__), "..", "airootfs", "usr", "local", "lib")
)

from mados_bzmenu import __app_name__, notification
from mados_bzmenu.config import NOTIFICATION_SUMMARY
from mados_bzmenu.notification import LibnotifyNotifier


class TestLibnotifyNotifier(unittest.TestCase):
    """Tests for LibnotifyNotifier."""

    @patch("mados_bzmenu.notification.threading.Thread")
    def test_notify_sends_from_background_thread(self, mock_thread):
        notifier = LibnotifyNotifier()
        notifier.notify("Connected to Headset", icon="connected")

        _, kwargs = mock_thread.call_args
        self.assertEqual(
            kwargs["args"],
            (NOTIFICATION_SUMMARY, "Connected to Headset", "bluetooth-active-symbolic"),
        )
        self.assertTrue(kwargs["daemon"])
        mock_thread.return_value.start.assert_called_once_with()

    @patch("mados_bzmenu.notification.threading.Thread")
    def test_unknown_icon_is_passed_through(self, mock_thread):
        LibnotifyNotifier().notify("Hello", icon="audio-card", summary="Test")
        self.assertEqual(mock_thread.call_args[1]["args"], ("Test", "Hello", "audio-card"))

    @patch("mados_bzmenu.notification.Notify")
    def test_send_initialises_once(self, mock_notify):
        mock_notify.is_initted.side_effect = [False, True]
        mock_notify.init.return_value = True
        notifier = LibnotifyNotifier(timeout_ms=1500)

        notifier._send("Bluetooth", "Paired with Headset", "emblem-checked-symbolic")
        notifier._send("Bluetooth", "Headset removed", "list-remove-symbolic")

        mock_notify.init.assert_called_once_with(__app_name__)
        mock_notify.Notification.new.assert_any_call(
            "Bluetooth", "Paired with Headset", "emblem-checked-symbolic")
        notification_obj = mock_notify.Notification.new.return_value
        notification_obj.set_timeout.assert_called_with(1500)
        self.assertEqual(notification_obj.show.call_count, 2)

    @patch("mados_bzmenu.notification.Notify")
    def test_no_notification_server(self, mock_notify):
        mock_notify.is_initted.return_value = False
        mock_notify.init.return_value = False
        with self.assertLogs("mados_bzmenu.notification", level="WARNING"):
            LibnotifyNotifier()._send("Bluetooth", "x", "bluetooth-symbolic")
        mock_notify.Notification.new.assert_not_called()

    @patch("mados_bzmenu.notification.Notify")
    def test_glib_error_is_logged(self, mock_notify):
        mock_notify.is_initted.return_value = True
        shown = MagicMock(side_effect=notification.GLib.Error("no server"))
        mock_notify.Notification.new.return_value.show = shown
        with self.assertLogs("mados_bzmenu.notification", level="WARNING"):
            LibnotifyNotifier()._send("Bluetooth", "x", "bluetooth-symbolic")


if __name__ == "__main__":
    unittest.main()
