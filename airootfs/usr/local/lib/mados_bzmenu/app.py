"""madOS Bluetooth Menu - Menu state machine.

Loops render -> present -> resolve -> dispatch until the user exits.  The
loop runs on the calling thread; daemon events reach the registry on the
event thread and show up on the next render; a device list on screen is
torn down and shown again when they change it.  MenuApp also answers the
pairing agent's questions through the same launcher.
"""

import threading
from dataclasses import replace
from typing import Optional

from .config import MenuConfig
from .controller import BluetoothController
from .errors import (
    AuthorizationRequired, BluetoothError, DaemonUnavailable, LauncherBusy,
    LauncherError, OperationInProgress, PairingTimeout,
)
from .interfaces import (
    AdapterChanged, DeviceAdded, DeviceChanged, DeviceRemoved,
    NotifierInterface, NullNotifier, PairingHandler,
)
from .launcher import LauncherBridge
from .logger import get_logger
from .menu import (
    ActionKind, Screen, ScreenKind, prompt_for, render, resolve,
)
from .translations import detect_system_language, get_text

logger = get_logger(__name__)

# Device action -> (success text key, notification icon)
_DEVICE_RESULTS = {
    ActionKind.PAIR: ("device_paired", "paired"),
    ActionKind.CONNECT: ("device_connected", "connected"),
    ActionKind.DISCONNECT: ("device_disconnected", "disconnected"),
    ActionKind.TRUST: ("device_trusted", "trusted"),
    ActionKind.UNTRUST: ("device_untrusted", "untrust"),
    ActionKind.REMOVE: ("device_removed", "remove"),
}

# Settings action -> (controller method, new value, success text key)
_ADAPTER_TOGGLES = {
    ActionKind.ENABLE_DISCOVERABLE: ("set_discoverable", True, "discoverable_enabled"),
    ActionKind.DISABLE_DISCOVERABLE: ("set_discoverable", False, "discoverable_disabled"),
    ActionKind.ENABLE_PAIRABLE: ("set_pairable", True, "pairable_enabled"),
    ActionKind.DISABLE_PAIRABLE: ("set_pairable", False, "pairable_disabled"),
}

# Device properties shown on the device list
_LISTED_PROPERTIES = frozenset(
    ("Alias", "Name", "Paired", "Trusted", "Connected", "Percentage")
)

EXIT_OK = 0
EXIT_DAEMON_UNAVAILABLE = 1
EXIT_LAUNCHER_ERROR = 2


def _changes_device_list(event) -> bool:
    """Whether an event alters what the device list screen shows."""
    if isinstance(event, (DeviceAdded, DeviceRemoved)):
        return True
    changes = getattr(event, "changes", None)
    if not isinstance(changes, dict):
        return False
    if isinstance(event, DeviceChanged):
        return not _LISTED_PROPERTIES.isdisjoint(changes)
    if isinstance(event, AdapterChanged):
        return "Discovering" in changes or "Powered" in changes
    return False


class MenuApp(PairingHandler):
    """Drives the screens and turns selections into controller calls."""

    def __init__(self, controller: BluetoothController, bridge: LauncherBridge,
                 config: MenuConfig, notifier: Optional[NotifierInterface] = None):
        self._controller = controller
        self._bridge = bridge
        self._config = config
        self._notifier = notifier if notifier is not None else NullNotifier()
        self._lang = config.language or detect_system_language()
        self._stopping = threading.Event()
        self._showing_list = False
        self._list_stale = threading.Event()
        self.screen = Screen(ScreenKind.MAIN)
        controller.add_listener(self._on_daemon_event)

    # -- Main loop ---------------------------------------------------------

    def run(self) -> int:
        """Run until the user exits.  Returns the process exit status."""
        try:
            self._controller.start(pairing_handler=self)
            while self.screen.kind is not ScreenKind.EXIT and not self._stopping.is_set():
                self.screen = self.step(self.screen)
            return EXIT_OK
        except DaemonUnavailable as e:
            logger.error("Bluetooth daemon unavailable: %s", e)
            return EXIT_DAEMON_UNAVAILABLE
        except LauncherError as e:
            logger.error("Launcher failed: %s", e)
            return EXIT_LAUNCHER_ERROR
        finally:
            self._controller.stop()

    def shutdown(self) -> None:
        """Request the loop to end and tear down the launcher on screen."""
        self._stopping.set()
        self._bridge.cancel()

    def step(self, screen: Screen) -> Screen:
        """Show one screen and return the next one."""
        snapshot = self._controller.registry.snapshot()
        if screen.kind in (ScreenKind.DEVICE_ACTIONS, ScreenKind.CONFIRM) \
                and snapshot.device(screen.device_id) is None:
            logger.info("Device %s is gone, back to the device list", screen.device_id)
            return Screen(ScreenKind.DEVICE_LIST)

        live = screen.kind is ScreenKind.DEVICE_LIST
        if live:
            self._list_stale.clear()
            self._showing_list = True
            snapshot = self._controller.registry.snapshot()
        try:
            entries = render(screen, snapshot, self._config.icon_mode,
                             self._config.spacing, self._lang)
            raw = self._bridge.present(entries, prompt=prompt_for(screen, snapshot, self._lang))
        finally:
            self._showing_list = False
        if raw is None:
            if live and self._list_stale.is_set() and not self._stopping.is_set():
                logger.debug("Device list changed, showing it again")
                return screen
            logger.debug("Launcher cancelled on %s", screen.kind.value)
            return Screen(ScreenKind.EXIT)

        entry = resolve(entries, raw, self._config.icon_mode)
        if entry is None:
            logger.debug("No entry matches %r, showing the screen again", raw)
            return screen
        return self.dispatch(screen, entry.action)

    # -- Dispatch ----------------------------------------------------------

    def dispatch(self, screen: Screen, action) -> Screen:
        kind = action.kind
        if kind is ActionKind.DISMISS_ERROR:
            return replace(screen, error=None)
        if kind is ActionKind.EXIT:
            return Screen(ScreenKind.EXIT)

        if screen.kind is ScreenKind.MAIN:
            return self._dispatch_main(kind)
        if screen.kind is ScreenKind.SETTINGS:
            return self._dispatch_settings(kind)
        if screen.kind is ScreenKind.DEVICE_LIST:
            return self._dispatch_device_list(screen, action)
        if screen.kind is ScreenKind.DEVICE_ACTIONS:
            return self._dispatch_device_actions(screen, action)
        if screen.kind is ScreenKind.CONFIRM:
            return self._dispatch_confirm(screen, kind)
        return screen

    def _dispatch_main(self, kind):
        if kind in (ActionKind.POWER_ON, ActionKind.POWER_OFF):
            on = kind is ActionKind.POWER_ON
            return self._change_adapter(
                self._controller.set_power, on,
                "adapter_enabled" if on else "adapter_disabled",
                "bluetooth" if on else "disconnected", ScreenKind.MAIN,
            )
        if kind is ActionKind.SCAN:
            error = self._start_scan()
            if error:
                return Screen(ScreenKind.MAIN, error=error)
            return Screen(ScreenKind.DEVICE_LIST, scanning=True)
        if kind is ActionKind.VIEW_DEVICES:
            return Screen(ScreenKind.DEVICE_LIST)
        return Screen(ScreenKind.MAIN)

    def _dispatch_settings(self, kind):
        if kind is ActionKind.POWER_OFF:
            return self._dispatch_main(kind)
        if kind in _ADAPTER_TOGGLES:
            method, on, key = _ADAPTER_TOGGLES[kind]
            return self._change_adapter(getattr(self._controller, method), on, key,
                                        "bluetooth", ScreenKind.SETTINGS)
        if kind is ActionKind.BACK:
            return Screen(ScreenKind.DEVICE_LIST)
        return Screen(ScreenKind.SETTINGS)

    def _dispatch_device_list(self, screen, action):
        kind = action.kind
        if kind is ActionKind.SELECT_DEVICE:
            self._leave_device_list()
            return Screen(ScreenKind.DEVICE_ACTIONS, device_id=action.device_id)
        if kind is ActionKind.SETTINGS:
            self._leave_device_list()
            return Screen(ScreenKind.SETTINGS)
        if kind is ActionKind.REFRESH:
            return Screen(ScreenKind.DEVICE_LIST, scanning=screen.scanning)
        if kind is ActionKind.SCAN:
            error = self._start_scan()
            return Screen(ScreenKind.DEVICE_LIST, scanning=not error, error=error)
        if kind is ActionKind.STOP_SCAN:
            try:
                self._controller.stop_discovery()
            except DaemonUnavailable:
                raise
            except BluetoothError as e:
                return replace(screen, error=self._report(e, get_text("title", self._lang)))
            finally:
                self._controller.session.owns_discovery = False
            return Screen(ScreenKind.DEVICE_LIST)
        if kind is ActionKind.BACK:
            self._leave_device_list()
            return Screen(ScreenKind.MAIN)
        return screen

    def _dispatch_device_actions(self, screen, action):
        kind = action.kind
        device_id = screen.device_id
        if kind is ActionKind.BACK:
            return Screen(ScreenKind.DEVICE_LIST)
        if kind is ActionKind.REMOVE:
            return Screen(ScreenKind.CONFIRM, device_id=device_id, action=ActionKind.REMOVE)
        if kind in _DEVICE_RESULTS:
            error = self._perform(kind, device_id)
            return Screen(ScreenKind.DEVICE_ACTIONS, device_id=device_id, error=error)
        return screen

    def _dispatch_confirm(self, screen, kind):
        device_id = screen.device_id
        if kind is ActionKind.CONFIRM and screen.action is not None:
            error = self._perform(screen.action, device_id)
            if error:
                return Screen(ScreenKind.DEVICE_ACTIONS, device_id=device_id, error=error)
            return Screen(ScreenKind.DEVICE_LIST)
        return Screen(ScreenKind.DEVICE_ACTIONS, device_id=device_id)

    # -- Commands ----------------------------------------------------------

    def _perform(self, kind, device_id) -> Optional[str]:
        """Run a device command; return an inline error message on failure."""
        device = self._controller.registry.snapshot().device(device_id)
        name = device.display_name if device else device_id
        controller = self._controller
        try:
            if kind is ActionKind.PAIR:
                controller.pair(device_id)
            elif kind is ActionKind.CONNECT:
                if device is not None and not device.paired:
                    controller.pair(device_id)
                controller.connect(device_id)
            elif kind is ActionKind.DISCONNECT:
                controller.disconnect(device_id)
            elif kind is ActionKind.TRUST:
                controller.trust(device_id, True)
            elif kind is ActionKind.UNTRUST:
                controller.trust(device_id, False)
            elif kind is ActionKind.REMOVE:
                controller.remove(device_id)
        except DaemonUnavailable:
            raise
        except BluetoothError as e:
            return self._report(e, name)

        key, icon = _DEVICE_RESULTS[kind]
        self._notify(get_text(key, self._lang, name=name), icon)
        return None

    def _change_adapter(self, setter, on, text_key, icon, screen_kind) -> Screen:
        """Write an adapter property; notify only once the daemon confirmed it."""
        try:
            confirmed = setter(on)
        except DaemonUnavailable:
            raise
        except BluetoothError as e:
            return Screen(screen_kind, error=self._report(e, get_text("title", self._lang)))
        if confirmed:
            self._notify(get_text(text_key, self._lang), icon)
        else:
            logger.info("Adapter change not confirmed yet")
        return Screen(screen_kind)

    def _start_scan(self) -> Optional[str]:
        try:
            started = self._controller.start_discovery()
        except DaemonUnavailable:
            raise
        except BluetoothError as e:
            return self._report(e, get_text("title", self._lang))
        if started:
            self._controller.session.owns_discovery = True
            self._notify(get_text("scan_started", self._lang), "scan")
        return None

    def _leave_device_list(self):
        session = self._controller.session
        if not session.owns_discovery:
            return
        session.owns_discovery = False
        try:
            self._controller.stop_discovery()
        except DaemonUnavailable:
            raise
        except BluetoothError as e:
            logger.warning("Could not stop discovery: %s", e)

    def _report(self, error, name) -> str:
        """Turn a recoverable failure into a user-facing message and notify it."""
        if isinstance(error, OperationInProgress):
            message = get_text("device_busy", self._lang, name=name)
        elif isinstance(error, PairingTimeout):
            message = get_text("pair_timeout", self._lang, name=name)
        elif isinstance(error, AuthorizationRequired):
            message = get_text("authorization_required", self._lang, name=name)
        elif "Page Timeout" in str(error):
            message = get_text("out_of_range", self._lang, name=name)
        else:
            message = get_text("action_failed", self._lang, name=name, error=error)
        self._notify(message, "error")
        return message

    def _notify(self, body, icon):
        if self._config.notifications:
            self._notifier.notify(body, icon=icon)

    def _on_daemon_event(self, event):
        """Tear down the device list on screen when what it shows changed."""
        if not self._showing_list or not _changes_device_list(event):
            return
        self._list_stale.set()
        self._bridge.cancel()

    # -- PairingHandler ----------------------------------------------------

    def _device_name(self, device_id):
        device = self._controller.registry.snapshot().device(device_id)
        return device.display_name if device else device_id

    def confirm_passkey(self, device_id: str, passkey: Optional[str]) -> bool:
        name = self._device_name(device_id)
        if passkey is None:
            prompt = get_text("confirm_authorization", self._lang, name=name)
        else:
            prompt = get_text("confirm_passkey", self._lang, name=name, passkey=passkey)
        screen = Screen(ScreenKind.CONFIRM, device_id=device_id, action=ActionKind.PAIR)
        entries = render(screen, self._controller.registry.snapshot(),
                         self._config.icon_mode, self._config.spacing, self._lang)
        try:
            raw = self._bridge.present(entries, prompt=prompt, wait=False)
        except LauncherBusy:
            logger.warning("Menu is in use, rejecting pairing request from %s", device_id)
            return False
        except LauncherError as e:
            logger.error("Cannot ask for pairing confirmation: %s", e)
            return False
        entry = resolve(entries, raw, self._config.icon_mode)
        accepted = entry is not None and entry.action.kind is ActionKind.CONFIRM
        logger.info("Pairing with %s %s", device_id, "accepted" if accepted else "rejected")
        return accepted

    def request_pin(self, device_id: str) -> Optional[str]:
        try:
            pin = self._bridge.prompt_input(
                get_text("enter_pin", self._lang, name=self._device_name(device_id)),
                wait=False,
            )
        except LauncherBusy:
            logger.warning("Menu is in use, rejecting PIN request from %s", device_id)
            return None
        except LauncherError as e:
            logger.error("Cannot ask for a PIN: %s", e)
            return None
        return pin.strip() if pin and pin.strip() else None

    def display_passkey(self, device_id: str, passkey: str) -> None:
        self._notifier.notify(
            get_text("display_passkey", self._lang, name=self._device_name(device_id),
                     passkey=passkey),
            icon="bluetooth",
        )

    def cancel_request(self) -> None:
        self._bridge.cancel()
