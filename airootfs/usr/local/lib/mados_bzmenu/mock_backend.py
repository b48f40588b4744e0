"""madOS Bluetooth Menu - Mock daemon for testing.

Provides an in-memory implementation of DaemonInterface that simulates
BlueZ without requiring real hardware or a system bus.  Every method
call is recorded in ``calls`` and property writes are echoed back as
events, the way BlueZ emits PropertiesChanged.
"""

import threading
from typing import Any, Dict, List, Optional

from .errors import (
    AuthorizationRequired, DaemonUnavailable, OperationRejected, PairingTimeout,
)
from .interfaces import (
    Adapter, DaemonInterface, Device, PairingHandler,
    AdapterChanged, DeviceAdded, DeviceChanged, DeviceRemoved,
)

DEFAULT_ADAPTER = "/org/bluez/hci0"


class MockBluezDaemon(DaemonInterface):
    """In-memory daemon for unit testing and the ``test`` mode."""

    def __init__(self, adapters=None, available=True):
        self.available = available
        self.calls: List[tuple] = []
        self.failures: Dict[str, Exception] = {}
        self.pair_gate: Optional[threading.Event] = None
        self.confirmation_passkeys: Dict[str, str] = {}
        self._adapters: Dict[str, Dict[str, Any]] = {}
        self._devices: Dict[str, Dict[str, Any]] = {}
        self._callback = None
        self._handler: Optional[PairingHandler] = None
        self._policy = "none"
        self._lock = threading.Lock()
        for adapter_id in (adapters if adapters is not None else [DEFAULT_ADAPTER]):
            self._adapters[adapter_id] = {
                "Address": "00:11:22:33:44:55",
                "Alias": adapter_id.rsplit("/", 1)[-1],
                "Powered": False,
                "Discoverable": False,
                "Discovering": False,
                "Pairable": True,
            }

    # -- Test helpers ------------------------------------------------------

    def add_device(self, address: str, name: str = "", adapter_id: str = DEFAULT_ADAPTER,
                   **properties) -> str:
        """Manually add a device; emits DeviceAdded when subscribed."""
        props = {
            "Address": address,
            "Adapter": adapter_id,
            "Alias": name or address.replace(":", "-"),
            "Paired": False,
            "Trusted": False,
            "Connected": False,
        }
        if name:
            props["Name"] = name
        props.update(properties)
        with self._lock:
            self._devices[address] = props
        self.emit(DeviceAdded(address, dict(props)))
        return address

    def drop_device(self, device_id: str) -> None:
        """Remove a device as if the daemon forgot it on its own."""
        with self._lock:
            self._devices.pop(device_id, None)
        self.emit(DeviceRemoved(device_id))

    def emit(self, event) -> None:
        """Deliver an event to the subscriber, if any."""
        callback = self._callback
        if callback is not None:
            callback(event)

    def fail_next(self, method: str, error: Exception) -> None:
        """Make the next call to method raise error."""
        self.failures[method] = error

    def call_names(self) -> List[str]:
        return [c[0] for c in self.calls]

    # -- DaemonInterface ---------------------------------------------------

    def connect(self) -> None:
        self.calls.append(("Hello",))
        if not self.available:
            raise DaemonUnavailable("org.freedesktop.DBus.Error.ServiceUnknown: org.bluez")

    def list_adapters(self) -> List[Adapter]:
        self._check("GetManagedObjects")
        return [
            Adapter(
                id=path,
                address=p["Address"],
                name=p["Alias"],
                powered=p["Powered"],
                discoverable=p["Discoverable"],
                discovering=p["Discovering"],
                pairable=p["Pairable"],
            )
            for path, p in self._adapters.items()
        ]

    def list_devices(self) -> List[Device]:
        self._check("GetManagedObjects")
        with self._lock:
            devices = list(self._devices.items())
        return [
            Device(
                id=dev_id,
                address=p["Address"],
                adapter_id=p.get("Adapter"),
                alias=p.get("Alias", ""),
                name=p.get("Name", ""),
                paired=p.get("Paired", False),
                trusted=p.get("Trusted", False),
                connected=p.get("Connected", False),
                rssi=p.get("RSSI"),
                device_class=p.get("Class"),
                icon=p.get("Icon", ""),
            )
            for dev_id, p in devices
        ]

    def set_adapter_property(self, adapter_id: str, name: str, value: Any) -> None:
        self.calls.append(("Set", adapter_id, name, value))
        self._fail("Set")
        self._set_adapter(adapter_id, name, value)
        if name == "Powered" and not value:
            self._set_adapter(adapter_id, "Discovering", False)
            for dev_id in self._connected_devices():
                self._set_device(dev_id, "Connected", False)

    def start_discovery(self, adapter_id: str) -> None:
        self.calls.append(("StartDiscovery", adapter_id))
        self._fail("StartDiscovery")
        if not self._adapters[adapter_id]["Powered"]:
            raise OperationRejected("org.bluez.Error.NotReady: Resource Not Ready")
        self._set_adapter(adapter_id, "Discovering", True)

    def stop_discovery(self, adapter_id: str) -> None:
        self.calls.append(("StopDiscovery", adapter_id))
        self._fail("StopDiscovery")
        self._set_adapter(adapter_id, "Discovering", False)

    def pair(self, device_id: str, timeout: float) -> None:
        self.calls.append(("Pair", device_id))
        self._fail("Pair")
        self._require_device(device_id)
        if device_id in self.confirmation_passkeys:
            self._authorize(device_id, self.confirmation_passkeys[device_id])
        gate = self.pair_gate
        if gate is not None and not gate.wait(timeout):
            raise PairingTimeout(f"Pairing with {device_id} timed out after {timeout}s")
        self._set_device(device_id, "Paired", True)

    def cancel_pairing(self, device_id: str) -> None:
        self.calls.append(("CancelPairing", device_id))

    def connect_device(self, device_id: str) -> None:
        self.calls.append(("Connect", device_id))
        self._fail("Connect")
        self._require_device(device_id)
        if not self._devices[device_id].get("Paired"):
            raise OperationRejected("org.bluez.Error.Failed: Device not paired")
        self._set_device(device_id, "Connected", True)

    def disconnect_device(self, device_id: str) -> None:
        self.calls.append(("Disconnect", device_id))
        self._fail("Disconnect")
        self._require_device(device_id)
        self._set_device(device_id, "Connected", False)

    def set_trusted(self, device_id: str, trusted: bool) -> None:
        self.calls.append(("SetTrusted", device_id, trusted))
        self._fail("SetTrusted")
        self._require_device(device_id)
        self._set_device(device_id, "Trusted", trusted)

    def remove_device(self, adapter_id: str, device_id: str) -> None:
        self.calls.append(("RemoveDevice", adapter_id, device_id))
        self._fail("RemoveDevice")
        self._require_device(device_id)
        self.drop_device(device_id)

    def subscribe(self, callback) -> None:
        self.calls.append(("Subscribe",))
        self._callback = callback

    def unsubscribe(self) -> None:
        self.calls.append(("Unsubscribe",))
        self._callback = None

    def register_agent(self, handler: Optional[PairingHandler], policy: str) -> None:
        self.calls.append(("RegisterAgent", policy))
        self._handler = handler
        self._policy = policy

    def unregister_agent(self) -> None:
        self.calls.append(("UnregisterAgent",))
        self._handler = None

    # -- Internals ---------------------------------------------------------

    def _check(self, method):
        if not self.available:
            raise DaemonUnavailable(f"{method}: org.bluez is not running")

    def _fail(self, method):
        self._check(method)
        error = self.failures.pop(method, None)
        if error is not None:
            raise error

    def _require_device(self, device_id):
        if device_id not in self._devices:
            raise OperationRejected(f"org.bluez.Error.DoesNotExist: {device_id}")

    def _authorize(self, device_id, passkey):
        """Mimic the daemon calling RequestConfirmation on our agent."""
        if self._policy == "auto":
            return
        if self._handler is None or self._policy == "none":
            raise AuthorizationRequired(f"No agent could confirm pairing with {device_id}")
        if not self._handler.confirm_passkey(device_id, passkey):
            raise AuthorizationRequired(f"Pairing with {device_id} was rejected")

    def _connected_devices(self):
        with self._lock:
            return [d for d, p in self._devices.items() if p.get("Connected")]

    def _set_adapter(self, adapter_id, name, value):
        props = self._adapters[adapter_id]
        if props.get(name) == value:
            return
        props[name] = value
        self.emit(AdapterChanged(adapter_id, {name: value}))

    def _set_device(self, device_id, name, value):
        with self._lock:
            props = self._devices[device_id]
            if props.get(name) == value:
                return
            props[name] = value
        self.emit(DeviceChanged(device_id, {name: value}))
