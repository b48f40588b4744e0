"""madOS Bluetooth Menu - Data model and abstract interfaces.

Defines the adapter/device records, the daemon event types and the
contracts for the daemon, notifier and pairing handler, so the core
can be driven without real hardware, D-Bus or a desktop session.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple


@dataclass(frozen=True)
class Adapter:
    """A Bluetooth radio managed by the daemon."""

    id: str
    address: str = ""
    name: str = ""
    powered: bool = False
    discoverable: bool = False
    discovering: bool = False
    pairable: bool = False


@dataclass(frozen=True)
class Device:
    """A remote Bluetooth peer known to an adapter."""

    id: str
    address: str = ""
    adapter_id: Optional[str] = None
    alias: str = ""
    name: str = ""
    paired: bool = False
    trusted: bool = False
    connected: bool = False
    rssi: Optional[int] = None
    device_class: Optional[int] = None
    appearance: Optional[int] = None
    icon: str = ""
    uuids: Tuple[str, ...] = ()
    battery: Optional[int] = None

    @property
    def display_name(self) -> str:
        """Return user-friendly display name."""
        return self.alias or self.name or self.address or self.id

    @property
    def device_type(self) -> str:
        """Return a coarse device type used to pick an icon."""
        return determine_device_type(self)


# ---------------------------------------------------------------------------
# Device type detection
# ---------------------------------------------------------------------------

# Major class -> {minor class: type}, with None as the fallback.
_CLASS_TYPES = {
    0x01: {None: "computer"},
    0x02: {0x01: "phone", 0x02: "modem", 0x03: "phone", 0x04: "computer",
           0x05: "computer", 0x06: "laptop", 0x07: "tablet", None: "phone"},
    0x03: {None: "network"},
    0x04: {0x01: "headphones", 0x02: "headphones", 0x04: "microphone",
           0x05: "speaker", 0x06: "headphones", 0x08: "speaker", 0x09: "tv",
           0x0A: "speaker", None: "audio"},
    0x05: {0x01: "keyboard", 0x02: "mouse", 0x03: "trackball", 0x04: "joystick",
           0x05: "gamepad", 0x06: "tablet", 0x07: "mouse", 0x08: "pen",
           None: "peripheral"},
    0x06: {0x01: "printer", 0x02: "printer", 0x04: "camera", 0x08: "camera",
           0x10: "display", 0x20: "tv", None: "imaging"},
    0x07: {0x01: "watch", 0x02: "glasses", 0x03: "wearable", 0x04: "headphones",
           None: "wearable"},
}

_APPEARANCE_TYPES = {
    64: "phone", 128: "computer", 192: "watch", 256: "display",
    512: "remote", 640: "tag", 704: "keyring", 768: "media",
    832: "barcode", 896: "thermometer", 960: "peripheral", 961: "keyboard",
    962: "mouse", 963: "joystick", 964: "gamepad", 976: "digitizer",
    1024: "reader", 1088: "pen", 1152: "scanner", 1216: "speaker",
    1280: "headphones", 1344: "speaker", 1408: "microphone", 1472: "audio",
}

_UUID_TYPES = {
    "0000110b-0000-1000-8000-00805f9b34fb": "audio",
    "0000110c-0000-1000-8000-00805f9b34fb": "headphones",
    "0000110e-0000-1000-8000-00805f9b34fb": "headphones",
    "0000110f-0000-1000-8000-00805f9b34fb": "speaker",
    "00001112-0000-1000-8000-00805f9b34fb": "headphones",
    "00001117-0000-1000-8000-00805f9b34fb": "speaker",
    "00001124-0000-1000-8000-00805f9b34fb": "keyboard",
    "00001812-0000-1000-8000-00805f9b34fb": "peripheral",
    "0000180d-0000-1000-8000-00805f9b34fb": "health",
    "0000180f-0000-1000-8000-00805f9b34fb": "battery",
}

_ICON_TYPES = {
    "audio-card": "speaker",
    "audio-speakers": "speaker",
    "audio-headphones": "headphones",
    "audio-headset": "headphones",
    "input-keyboard": "keyboard",
    "input-mouse": "mouse",
    "input-gaming": "gamepad",
    "input-joystick": "gamepad",
    "phone": "phone",
    "computer": "computer",
    "computer-laptop": "laptop",
    "video-display": "tv",
    "tv": "tv",
}


def determine_device_type(device: Device) -> str:
    """Derive a device type from class, appearance, UUIDs, then icon name."""
    if device.device_class is not None:
        major = (device.device_class >> 8) & 0x1F
        minor = (device.device_class >> 2) & 0x3F
        minors = _CLASS_TYPES.get(major)
        if minors:
            return minors.get(minor, minors[None])

    if device.appearance:
        if 1600 <= device.appearance <= 1663:
            return "health"
        if 1664 <= device.appearance <= 1727:
            return "sensor"
        if device.appearance in _APPEARANCE_TYPES:
            return _APPEARANCE_TYPES[device.appearance]

    for uuid in device.uuids:
        kind = _UUID_TYPES.get(uuid.lower())
        if kind:
            return kind

    if device.icon:
        return _ICON_TYPES.get(device.icon, device.icon)

    return "device"


# ---------------------------------------------------------------------------
# Daemon events
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AdapterChanged:
    """Adapter properties changed (BlueZ property names as keys)."""

    adapter_id: str
    changes: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DeviceAdded:
    """A device object appeared, with its full property set."""

    device_id: str
    properties: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DeviceChanged:
    """Device properties changed (BlueZ property names as keys)."""

    device_id: str
    changes: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DeviceRemoved:
    """A device object disappeared."""

    device_id: str


EventCallback = Callable[[object], None]


# ---------------------------------------------------------------------------
# Contracts
# ---------------------------------------------------------------------------

class PairingHandler(ABC):
    """Answers daemon-initiated authorization requests during pairing."""

    @abstractmethod
    def confirm_passkey(self, device_id: str, passkey: Optional[str]) -> bool:
        """Return True to accept the pairing (passkey None for plain authorization)."""

    @abstractmethod
    def request_pin(self, device_id: str) -> Optional[str]:
        """Return a PIN code for the device, or None to reject."""

    def display_passkey(self, device_id: str, passkey: str) -> None:
        """Show a passkey the remote device expects to be typed."""

    def cancel_request(self) -> None:
        """The daemon withdrew the request currently being answered."""


class DaemonInterface(ABC):
    """Abstract interface for the Bluetooth management daemon."""

    @abstractmethod
    def connect(self) -> None:
        """Attach to the daemon; raise DaemonUnavailable when unreachable."""

    @abstractmethod
    def list_adapters(self) -> List[Adapter]:
        """Return all adapters, in daemon order."""

    @abstractmethod
    def list_devices(self) -> List[Device]:
        """Return all devices known to any adapter."""

    @abstractmethod
    def set_adapter_property(self, adapter_id: str, name: str, value: Any) -> None:
        """Write an adapter property such as Powered."""

    @abstractmethod
    def start_discovery(self, adapter_id: str) -> None:
        """Start scanning on the adapter."""

    @abstractmethod
    def stop_discovery(self, adapter_id: str) -> None:
        """Stop scanning on the adapter."""

    @abstractmethod
    def pair(self, device_id: str, timeout: float) -> None:
        """Pair with the device, giving up after timeout seconds."""

    @abstractmethod
    def cancel_pairing(self, device_id: str) -> None:
        """Abort an outstanding pairing attempt."""

    @abstractmethod
    def connect_device(self, device_id: str) -> None:
        """Connect all auto-connectable profiles of the device."""

    @abstractmethod
    def disconnect_device(self, device_id: str) -> None:
        """Disconnect the device."""

    @abstractmethod
    def set_trusted(self, device_id: str, trusted: bool) -> None:
        """Set or unset trust for the device."""

    @abstractmethod
    def remove_device(self, adapter_id: str, device_id: str) -> None:
        """Remove (forget) the device from the adapter."""

    @abstractmethod
    def subscribe(self, callback: EventCallback) -> None:
        """Deliver AdapterChanged/DeviceAdded/DeviceChanged/DeviceRemoved to callback."""

    @abstractmethod
    def unsubscribe(self) -> None:
        """Stop delivering events."""

    @abstractmethod
    def register_agent(self, handler: Optional[PairingHandler], policy: str) -> None:
        """Register the pairing agent answering authorization requests."""

    def unregister_agent(self) -> None:
        """Optional: drop the pairing agent."""
        pass

    def close(self) -> None:
        """Optional: release the bus connection and event thread."""
        pass


class NotifierInterface(ABC):
    """Fire-and-forget desktop notifications."""

    @abstractmethod
    def notify(self, body: str, icon: str = "bluetooth",
               summary: Optional[str] = None) -> None:
        """Show a notification; must never raise or block the caller."""


class NullNotifier(NotifierInterface):
    """Drops every notification (used with --no-notifications)."""

    def notify(self, body: str, icon: str = "bluetooth",
               summary: Optional[str] = None) -> None:
        pass
