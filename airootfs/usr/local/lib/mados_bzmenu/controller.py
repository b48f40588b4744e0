"""madOS Bluetooth Menu - Bluetooth controller.

Issues commands to the daemon and turns its event stream into registry
updates.  Commands never write to the registry themselves: the menu only
ever shows state the daemon has confirmed through an event.
"""

import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Optional

from .config import (
    ADAPTER_CONFIRM_TIMEOUT, DEFAULT_PAIR_TIMEOUT,
    DEFAULT_PAIRING_POLICY, DEFAULT_SCAN_DURATION,
)
from .errors import (
    BluetoothError, DaemonUnavailable, OperationInProgress, PairingTimeout,
)
from .interfaces import AdapterChanged, DaemonInterface, NotifierInterface, PairingHandler
from .logger import get_logger
from .registry import DeviceRegistry
from .translations import get_text

logger = get_logger(__name__)


@dataclass
class Session:
    """State scoped to one run of the menu."""

    adapter_id: Optional[str] = None
    owns_discovery: bool = False


class BluetoothController:
    """Command side of the daemon plus the event pump feeding the registry."""

    def __init__(self, daemon: DaemonInterface, registry: DeviceRegistry,
                 session: Optional[Session] = None,
                 scan_duration: float = DEFAULT_SCAN_DURATION,
                 pair_timeout: float = DEFAULT_PAIR_TIMEOUT,
                 pairing_policy: str = DEFAULT_PAIRING_POLICY,
                 notifier: Optional[NotifierInterface] = None,
                 language: str = "English"):
        self._daemon = daemon
        self._registry = registry
        self.session = session if session is not None else Session()
        self._scan_duration = scan_duration
        self._pair_timeout = pair_timeout
        self._pairing_policy = pairing_policy
        self._notifier = notifier
        self._lang = language

        self._started = False
        self._discovering = False
        self._timer: Optional[threading.Timer] = None
        self._discovery_lock = threading.RLock()
        self._busy = set()
        self._busy_lock = threading.Lock()
        self._state_changed = threading.Condition()
        self._listeners = []
        self._pending: Optional[list] = None
        self._pending_lock = threading.RLock()

    @property
    def registry(self) -> DeviceRegistry:
        return self._registry

    def add_listener(self, callback) -> None:
        """Call ``callback(event)`` after each daemon event reaches the registry."""
        self._listeners.append(callback)

    # -- Lifecycle ---------------------------------------------------------

    def start(self, pairing_handler: Optional[PairingHandler] = None) -> None:
        """Attach to the daemon, pick the active adapter and start the event feed.

        The subscription is opened before enumerating so nothing emitted in
        between is lost.  Events that arrive before the registry is seeded
        are held back and replayed in order on top of the initial load.
        """
        with self._pending_lock:
            self._pending = []
        try:
            self._daemon.connect()
            self._daemon.subscribe(self._on_event)
            self._started = True

            adapters = self._daemon.list_adapters()
            if not adapters:
                raise DaemonUnavailable("No Bluetooth adapter found")
            adapter = adapters[0]
            if self.session.adapter_id is not None:
                adapter = next((a for a in adapters if a.id == self.session.adapter_id), adapter)
            self.session.adapter_id = adapter.id
            self._discovering = False

            devices = self._daemon.list_devices()
            with self._pending_lock:
                self._registry.load(adapter, devices)
                pending, self._pending = self._pending, None
                if pending:
                    logger.debug("Replaying %d event(s) received during startup", len(pending))
                for event in pending:
                    self._apply_event(event)
        finally:
            with self._pending_lock:
                self._pending = None
        logger.info("Using adapter %s (powered=%s)", adapter.id, adapter.powered)

        handler = pairing_handler if self._pairing_policy == "interactive" else None
        self._daemon.register_agent(handler, self._pairing_policy)

    def stop(self) -> None:
        """Release the discovery timer, any owned scan, the agent and the feed."""
        self._cancel_timer()
        if self.session.owns_discovery:
            self.session.owns_discovery = False
            try:
                self.stop_discovery()
            except BluetoothError as e:
                logger.warning("Could not stop discovery on shutdown: %s", e)

        if not self._started:
            return
        self._started = False
        for step in (self._daemon.unregister_agent, self._daemon.unsubscribe, self._daemon.close):
            try:
                step()
            except BluetoothError as e:
                logger.warning("Shutdown step %s failed: %s", step.__name__, e)

    # -- Adapter -----------------------------------------------------------

    def set_power(self, on: bool) -> bool:
        """Power the adapter on or off.

        Returns True once the daemon confirmed the new state, False if the
        confirmation did not arrive in time (the next event still applies).
        """
        if not on:
            self._cancel_timer()
            self.session.owns_discovery = False
        return self._set_adapter_flag("Powered", "powered", on)

    def set_discoverable(self, on: bool) -> bool:
        """Make the adapter visible to other devices; True once confirmed."""
        return self._set_adapter_flag("Discoverable", "discoverable", on)

    def set_pairable(self, on: bool) -> bool:
        """Allow or refuse incoming pairing; True once confirmed."""
        return self._set_adapter_flag("Pairable", "pairable", on)

    def start_discovery(self, duration: Optional[float] = None) -> bool:
        """Start scanning; no-op (False) when already discovering."""
        adapter_id = self._require_adapter()
        with self._discovery_lock:
            if self._discovering or self._registry.snapshot().discovering:
                logger.debug("Discovery already running on %s", adapter_id)
                return False
            self._daemon.start_discovery(adapter_id)
            self._discovering = True
            self._arm_timer(duration if duration is not None else self._scan_duration)
        logger.info("Discovery started on %s", adapter_id)
        return True

    def stop_discovery(self) -> bool:
        """Stop scanning; no-op (False) when not discovering."""
        adapter_id = self._require_adapter()
        with self._discovery_lock:
            self._cancel_timer()
            if not (self._discovering or self._registry.snapshot().discovering):
                return False
            self._daemon.stop_discovery(adapter_id)
            self._discovering = False
        logger.info("Discovery stopped on %s", adapter_id)
        return True

    @property
    def discovering(self) -> bool:
        return self._discovering or self._registry.snapshot().discovering

    # -- Devices -----------------------------------------------------------

    def pair(self, device_id: str) -> None:
        with self._device_request(device_id, "pair"):
            try:
                self._daemon.pair(device_id, self._pair_timeout)
            except PairingTimeout:
                self._cancel_pairing(device_id)
                raise

    def connect(self, device_id: str) -> None:
        with self._device_request(device_id, "connect"):
            self._daemon.connect_device(device_id)

    def disconnect(self, device_id: str) -> None:
        with self._device_request(device_id, "disconnect"):
            self._daemon.disconnect_device(device_id)

    def trust(self, device_id: str, trusted: bool = True) -> None:
        with self._device_request(device_id, "trust" if trusted else "untrust"):
            self._daemon.set_trusted(device_id, trusted)

    def remove(self, device_id: str) -> None:
        adapter_id = self._require_adapter()
        with self._device_request(device_id, "remove"):
            self._daemon.remove_device(adapter_id, device_id)

    def is_busy(self, device_id: str) -> bool:
        with self._busy_lock:
            return device_id in self._busy

    # -- Internals ---------------------------------------------------------

    @contextmanager
    def _device_request(self, device_id, what):
        with self._busy_lock:
            if device_id in self._busy:
                raise OperationInProgress(f"Another request for {device_id} is still in progress")
            self._busy.add(device_id)
        logger.debug("%s %s", what, device_id)
        try:
            yield
        except BluetoothError as e:
            logger.warning("%s %s failed: %s", what, device_id, e)
            raise
        else:
            logger.info("%s %s done", what, device_id)
        finally:
            with self._busy_lock:
                self._busy.discard(device_id)

    def _cancel_pairing(self, device_id):
        try:
            self._daemon.cancel_pairing(device_id)
        except BluetoothError as e:
            logger.debug("CancelPairing for %s failed: %s", device_id, e)

    def _set_adapter_flag(self, prop, field, on):
        adapter_id = self._require_adapter()
        logger.info("Setting adapter %s %s=%s", adapter_id, prop, on)
        self._daemon.set_adapter_property(adapter_id, prop, on)
        return self._wait_for(
            lambda snap: snap.adapter is not None and getattr(snap.adapter, field) == on,
            ADAPTER_CONFIRM_TIMEOUT,
        )

    def _on_event(self, event):
        with self._pending_lock:
            if self._pending is not None:
                self._pending.append(event)
                return
            self._apply_event(event)

    def _apply_event(self, event):
        self._registry.apply(event)
        if isinstance(event, AdapterChanged) and isinstance(event.changes, dict) \
                and event.changes.get("Discovering") is False:
            self._discovering = False
        with self._state_changed:
            self._state_changed.notify_all()
        for listener in self._listeners:
            listener(event)

    def _wait_for(self, predicate, timeout):
        with self._state_changed:
            return self._state_changed.wait_for(
                lambda: predicate(self._registry.snapshot()), timeout
            )

    def _require_adapter(self):
        adapter_id = self.session.adapter_id
        if adapter_id is None:
            raise DaemonUnavailable("Controller has not been started")
        return adapter_id

    def _arm_timer(self, duration):
        self._cancel_timer()
        timer = threading.Timer(duration, self._on_scan_timeout)
        timer.daemon = True
        self._timer = timer
        timer.start()

    def _cancel_timer(self):
        timer, self._timer = self._timer, None
        if timer is not None and timer is not threading.current_thread():
            timer.cancel()

    def _on_scan_timeout(self):
        logger.debug("Scan duration elapsed")
        try:
            stopped = self.stop_discovery()
        except BluetoothError as e:
            logger.warning("Could not stop discovery after timeout: %s", e)
            return
        self.session.owns_discovery = False
        if stopped and self._notifier is not None:
            self._notifier.notify(get_text("scan_completed", self._lang), icon="ok")

