"""madOS Bluetooth Menu - BlueZ backend over D-Bus.

Talks to bluetoothd on the system bus with dbus-python.  A GLib main loop
runs on a dedicated daemon thread (the event thread): it delivers the
ObjectManager and PropertiesChanged signals and serves the pairing agent.
Commands are issued asynchronously with reply/error handlers and the
calling thread waits for the reply with a timeout, so the event thread is
free to answer agent requests while a Pair call is outstanding.
"""

import threading
from typing import Any, List, Optional

import dbus
import dbus.exceptions
import dbus.mainloop.glib
import dbus.service
from gi.repository import GLib

from .config import AGENT_CAPABILITY, AGENT_PATH, COMMAND_TIMEOUT
from .errors import (
    AuthorizationRequired, DaemonUnavailable, OperationInProgress,
    OperationRejected, PairingTimeout,
)
from .interfaces import (
    Adapter, DaemonInterface, Device, PairingHandler,
    AdapterChanged, DeviceAdded, DeviceChanged, DeviceRemoved,
)
from .logger import get_logger
from .registry import ADAPTER_PROPERTIES, DEVICE_PROPERTIES, convert_properties

logger = get_logger(__name__)

BLUEZ_SERVICE = "org.bluez"
BLUEZ_ROOT = "/org/bluez"
ADAPTER_IFACE = "org.bluez.Adapter1"
DEVICE_IFACE = "org.bluez.Device1"
BATTERY_IFACE = "org.bluez.Battery1"
AGENT_IFACE = "org.bluez.Agent1"
AGENT_MANAGER_IFACE = "org.bluez.AgentManager1"
OBJECT_MANAGER_IFACE = "org.freedesktop.DBus.ObjectManager"
PROPERTIES_IFACE = "org.freedesktop.DBus.Properties"

_UNAVAILABLE_ERRORS = {
    "org.freedesktop.DBus.Error.ServiceUnknown",
    "org.freedesktop.DBus.Error.NameHasNoOwner",
    "org.freedesktop.DBus.Error.Disconnected",
    "org.freedesktop.DBus.Error.NoServer",
}
_AUTH_ERRORS = {
    "org.bluez.Error.AuthenticationRejected",
    "org.bluez.Error.AuthenticationCanceled",
    "org.bluez.Error.AuthenticationFailed",
    "org.bluez.Error.AuthenticationTimeout",
    "org.bluez.Error.Rejected",
}
_NO_REPLY = "org.freedesktop.DBus.Error.NoReply"
_IN_PROGRESS = "org.bluez.Error.InProgress"


def _unwrap(value):
    """Convert dbus-python wrapper types into plain Python values."""
    if isinstance(value, dbus.Boolean):
        return bool(value)
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return int(value)
    if isinstance(value, str):
        return str(value)
    if isinstance(value, dict):
        return {str(k): _unwrap(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_unwrap(v) for v in value]
    return value


def _translate_error(error, method=None):
    """Map a DBusException onto the Bluetooth error hierarchy."""
    name = error.get_dbus_name() or ""
    message = error.get_dbus_message() or name
    if name in _UNAVAILABLE_ERRORS:
        return DaemonUnavailable(message)
    if name == _NO_REPLY and method == "Pair":
        return PairingTimeout(message)
    if name == _IN_PROGRESS:
        return OperationInProgress(message)
    if name in _AUTH_ERRORS:
        return AuthorizationRequired(f"{name}: {message}")
    return OperationRejected(f"{name}: {message}" if name else message)


def _variant(value):
    if isinstance(value, bool):
        return dbus.Boolean(value)
    return value


# ---------------------------------------------------------------------------
# Pairing agent
# ---------------------------------------------------------------------------

class Rejected(dbus.DBusException):
    _dbus_error_name = "org.bluez.Error.Rejected"


class PairingAgent(dbus.service.Object):
    """org.bluez.Agent1 implementation answering on the event thread."""

    def __init__(self, bus, path: str, handler: Optional[PairingHandler], policy: str):
        super().__init__(bus, path)
        self.path = path
        self._handler = handler
        self._policy = policy

    def _interactive(self, device):
        if self._policy != "interactive" or self._handler is None:
            logger.info("Rejecting pairing request from %s (policy %s)", device, self._policy)
            raise Rejected("No pairing handler available")
        return self._handler

    def _confirm(self, device, passkey):
        if self._policy == "auto":
            logger.info("Auto-accepting pairing request from %s", device)
            return
        if not self._interactive(device).confirm_passkey(device, passkey):
            raise Rejected("Pairing rejected by user")

    @dbus.service.method(AGENT_IFACE, in_signature="", out_signature="")
    def Release(self):
        logger.debug("Agent released")

    @dbus.service.method(AGENT_IFACE, in_signature="o", out_signature="s")
    def RequestPinCode(self, device):
        pin = self._interactive(str(device)).request_pin(str(device))
        if not pin:
            raise Rejected("No PIN code entered")
        return pin

    @dbus.service.method(AGENT_IFACE, in_signature="os", out_signature="")
    def DisplayPinCode(self, device, pincode):
        if self._handler is not None:
            self._handler.display_passkey(str(device), str(pincode))

    @dbus.service.method(AGENT_IFACE, in_signature="o", out_signature="u")
    def RequestPasskey(self, device):
        pin = self._interactive(str(device)).request_pin(str(device))
        try:
            return dbus.UInt32(int(pin))
        except (TypeError, ValueError):
            raise Rejected("Passkey must be numeric")

    @dbus.service.method(AGENT_IFACE, in_signature="ouq", out_signature="")
    def DisplayPasskey(self, device, passkey, entered):
        if self._handler is not None:
            self._handler.display_passkey(str(device), "%06d" % passkey)

    @dbus.service.method(AGENT_IFACE, in_signature="ou", out_signature="")
    def RequestConfirmation(self, device, passkey):
        self._confirm(str(device), "%06d" % passkey)

    @dbus.service.method(AGENT_IFACE, in_signature="o", out_signature="")
    def RequestAuthorization(self, device):
        self._confirm(str(device), None)

    @dbus.service.method(AGENT_IFACE, in_signature="os", out_signature="")
    def AuthorizeService(self, device, uuid):
        self._confirm(str(device), None)

    @dbus.service.method(AGENT_IFACE, in_signature="", out_signature="")
    def Cancel(self):
        logger.info("Pairing request cancelled by the daemon")
        if self._handler is not None:
            self._handler.cancel_request()


# ---------------------------------------------------------------------------
# Daemon
# ---------------------------------------------------------------------------

class BluezDaemon(DaemonInterface):
    """DaemonInterface backed by bluetoothd on the system bus."""

    def __init__(self, command_timeout: float = COMMAND_TIMEOUT):
        self._timeout = command_timeout
        self._bus = None
        self._loop = None
        self._thread = None
        self._callback = None
        self._matches = []
        self._agent: Optional[PairingAgent] = None

    # -- Connection --------------------------------------------------------

    def connect(self) -> None:
        if self._bus is not None:
            return
        dbus.mainloop.glib.threads_init()
        dbus.mainloop.glib.DBusGMainLoop(set_as_default=True)
        try:
            bus = dbus.SystemBus()
            bus.get_name_owner(BLUEZ_SERVICE)
        except dbus.exceptions.DBusException as e:
            raise DaemonUnavailable(f"BlueZ is not reachable: {e.get_dbus_message() or e}") from e
        self._bus = bus
        self._loop = GLib.MainLoop()
        self._thread = threading.Thread(target=self._loop.run, name="bluez-events", daemon=True)
        self._thread.start()
        logger.debug("Connected to the system bus, event thread started")

    def close(self) -> None:
        self.unsubscribe()
        if self._loop is not None:
            self._loop.quit()
        if self._thread is not None:
            self._thread.join(timeout=2)
        if self._bus is not None:
            self._bus.close()
        self._bus = self._loop = self._thread = None

    # -- Enumeration -------------------------------------------------------

    def list_adapters(self) -> List[Adapter]:
        adapters = []
        for path, interfaces in self._managed_objects().items():
            if ADAPTER_IFACE in interfaces:
                fields = convert_properties(interfaces[ADAPTER_IFACE], ADAPTER_PROPERTIES)
                adapters.append(Adapter(id=path, **fields))
        adapters.sort(key=lambda a: a.id)
        return adapters

    def list_devices(self) -> List[Device]:
        devices = []
        for path, interfaces in self._managed_objects().items():
            if DEVICE_IFACE not in interfaces:
                continue
            props = dict(interfaces[DEVICE_IFACE])
            if "Percentage" in interfaces.get(BATTERY_IFACE, {}):
                props["Percentage"] = interfaces[BATTERY_IFACE]["Percentage"]
            try:
                fields = convert_properties(props, DEVICE_PROPERTIES)
            except TypeError as e:
                logger.warning("Skipping device %s with malformed properties: %s", path, e)
                continue
            devices.append(Device(id=path, **fields))
        return devices

    # -- Commands ----------------------------------------------------------

    def set_adapter_property(self, adapter_id: str, name: str, value: Any) -> None:
        self._call(adapter_id, PROPERTIES_IFACE, "Set", ADAPTER_IFACE, name, _variant(value))

    def start_discovery(self, adapter_id: str) -> None:
        self._call(adapter_id, ADAPTER_IFACE, "StartDiscovery")

    def stop_discovery(self, adapter_id: str) -> None:
        self._call(adapter_id, ADAPTER_IFACE, "StopDiscovery")

    def pair(self, device_id: str, timeout: float) -> None:
        self._call(device_id, DEVICE_IFACE, "Pair", timeout=timeout)

    def cancel_pairing(self, device_id: str) -> None:
        self._call(device_id, DEVICE_IFACE, "CancelPairing")

    def connect_device(self, device_id: str) -> None:
        self._call(device_id, DEVICE_IFACE, "Connect")

    def disconnect_device(self, device_id: str) -> None:
        self._call(device_id, DEVICE_IFACE, "Disconnect")

    def set_trusted(self, device_id: str, trusted: bool) -> None:
        self._call(device_id, PROPERTIES_IFACE, "Set", DEVICE_IFACE, "Trusted", dbus.Boolean(trusted))

    def remove_device(self, adapter_id: str, device_id: str) -> None:
        self._call(adapter_id, ADAPTER_IFACE, "RemoveDevice", dbus.ObjectPath(device_id))

    # -- Events ------------------------------------------------------------

    def subscribe(self, callback) -> None:
        bus = self._require_bus()
        self.unsubscribe()
        self._callback = callback
        self._matches = [
            bus.add_signal_receiver(
                self._on_interfaces_added, signal_name="InterfacesAdded",
                dbus_interface=OBJECT_MANAGER_IFACE, bus_name=BLUEZ_SERVICE,
            ),
            bus.add_signal_receiver(
                self._on_interfaces_removed, signal_name="InterfacesRemoved",
                dbus_interface=OBJECT_MANAGER_IFACE, bus_name=BLUEZ_SERVICE,
            ),
            bus.add_signal_receiver(
                self._on_properties_changed, signal_name="PropertiesChanged",
                dbus_interface=PROPERTIES_IFACE, bus_name=BLUEZ_SERVICE,
                path_keyword="path",
            ),
        ]

    def unsubscribe(self) -> None:
        self._callback = None
        matches, self._matches = self._matches, []
        for match in matches:
            match.remove()

    def _emit(self, event):
        callback = self._callback
        if callback is not None:
            callback(event)

    def _on_interfaces_added(self, path, interfaces):
        path = str(path)
        interfaces = _unwrap(interfaces)
        if ADAPTER_IFACE in interfaces:
            self._emit(AdapterChanged(path, interfaces[ADAPTER_IFACE]))
        if DEVICE_IFACE in interfaces:
            props = dict(interfaces[DEVICE_IFACE])
            if "Percentage" in interfaces.get(BATTERY_IFACE, {}):
                props["Percentage"] = interfaces[BATTERY_IFACE]["Percentage"]
            self._emit(DeviceAdded(path, props))
        elif BATTERY_IFACE in interfaces:
            self._emit(DeviceChanged(path, {"Percentage": interfaces[BATTERY_IFACE].get("Percentage")}))

    def _on_interfaces_removed(self, path, interfaces):
        path = str(path)
        interfaces = [str(i) for i in interfaces]
        if DEVICE_IFACE in interfaces:
            self._emit(DeviceRemoved(path))
        elif BATTERY_IFACE in interfaces:
            self._emit(DeviceChanged(path, {"Percentage": None}))

    def _on_properties_changed(self, interface, changed, invalidated, path=None):
        interface = str(interface)
        changes = _unwrap(changed)
        if interface == ADAPTER_IFACE:
            self._emit(AdapterChanged(str(path), changes))
        elif interface == DEVICE_IFACE:
            self._emit(DeviceChanged(str(path), changes))
        elif interface == BATTERY_IFACE and "Percentage" in changes:
            self._emit(DeviceChanged(str(path), {"Percentage": changes["Percentage"]}))

    # -- Agent -------------------------------------------------------------

    def register_agent(self, handler: Optional[PairingHandler], policy: str) -> None:
        bus = self._require_bus()
        self._agent = PairingAgent(bus, AGENT_PATH, handler, policy)
        capability = AGENT_CAPABILITY if policy == "interactive" else "NoInputNoOutput"
        path = dbus.ObjectPath(AGENT_PATH)
        self._call(BLUEZ_ROOT, AGENT_MANAGER_IFACE, "RegisterAgent", path, capability)
        try:
            self._call(BLUEZ_ROOT, AGENT_MANAGER_IFACE, "RequestDefaultAgent", path)
        except OperationRejected as e:
            logger.info("Could not become the default agent: %s", e)
        logger.info("Pairing agent registered (%s, %s)", policy, capability)

    def unregister_agent(self) -> None:
        agent, self._agent = self._agent, None
        if agent is None:
            return
        try:
            self._call(BLUEZ_ROOT, AGENT_MANAGER_IFACE, "UnregisterAgent", dbus.ObjectPath(agent.path))
        finally:
            agent.remove_from_connection()

    # -- Internals ---------------------------------------------------------

    def _require_bus(self):
        if self._bus is None:
            raise DaemonUnavailable("Not connected to the system bus")
        return self._bus

    def _managed_objects(self):
        (objects,) = self._call("/", OBJECT_MANAGER_IFACE, "GetManagedObjects")
        return {str(path): _unwrap(interfaces) for path, interfaces in objects.items()}

    def _call(self, path, interface, method, *args, timeout=None):
        """Invoke a BlueZ method and wait for its reply on the calling thread."""
        bus = self._require_bus()
        timeout = timeout if timeout is not None else self._timeout
        done = threading.Event()
        outcome = {}

        def on_reply(*values):
            outcome["reply"] = values
            done.set()

        def on_error(error):
            outcome["error"] = error
            done.set()

        logger.debug("%s.%s on %s", interface, method, path)
        try:
            proxy = dbus.Interface(bus.get_object(BLUEZ_SERVICE, path, introspect=False), interface)
            getattr(proxy, method)(*args, reply_handler=on_reply, error_handler=on_error,
                                   timeout=timeout)
        except dbus.exceptions.DBusException as e:
            raise _translate_error(e, method) from e

        if not done.wait(timeout + 1):
            if method == "Pair":
                raise PairingTimeout(f"Pairing with {path} timed out after {timeout}s")
            raise OperationRejected(f"{method} on {path} timed out after {timeout}s")

        error = outcome.get("error")
        if error is not None:
            if isinstance(error, dbus.exceptions.DBusException):
                raise _translate_error(error, method) from error
            raise OperationRejected(str(error))
        return outcome.get("reply", ())
