"""madOS Bluetooth Menu - Device registry.

In-memory snapshot of the active adapter and its devices, updated from
daemon events.  Writers build a new mapping and swap it in, so readers
never lock and never see a half-applied event.  Existing entries keep
their position in the mapping when they change.
"""

import threading
from dataclasses import dataclass, replace
from typing import Callable, Dict, Iterable, Optional, Tuple

from .interfaces import (
    Adapter, Device,
    AdapterChanged, DeviceAdded, DeviceChanged, DeviceRemoved,
)
from .logger import get_logger

logger = get_logger(__name__)


def _as_bool(value):
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    raise TypeError(f"expected a boolean, got {value!r}")


def _as_int(value):
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"expected an integer, got {value!r}")
    return value


def _as_str(value):
    if not isinstance(value, str):
        raise TypeError(f"expected a string, got {value!r}")
    return value


def _as_optional_int(value):
    if value is None:
        return None
    return _as_int(value)


def _as_uuids(value):
    if isinstance(value, str) or not isinstance(value, (list, tuple)):
        raise TypeError(f"expected a list of UUIDs, got {value!r}")
    return tuple(_as_str(v) for v in value)


# BlueZ property name -> (field name, converter)
ADAPTER_PROPERTIES = {
    "Address": ("address", _as_str),
    "Alias": ("name", _as_str),
    "Powered": ("powered", _as_bool),
    "Discoverable": ("discoverable", _as_bool),
    "Discovering": ("discovering", _as_bool),
    "Pairable": ("pairable", _as_bool),
}

DEVICE_PROPERTIES = {
    "Address": ("address", _as_str),
    "Adapter": ("adapter_id", _as_str),
    "Alias": ("alias", _as_str),
    "Name": ("name", _as_str),
    "Paired": ("paired", _as_bool),
    "Trusted": ("trusted", _as_bool),
    "Connected": ("connected", _as_bool),
    "RSSI": ("rssi", _as_int),
    "Class": ("device_class", _as_int),
    "Appearance": ("appearance", _as_int),
    "Icon": ("icon", _as_str),
    "UUIDs": ("uuids", _as_uuids),
    "Percentage": ("battery", _as_optional_int),
}


def convert_properties(properties, table):
    """Translate daemon properties into dataclass fields.

    Unknown properties are skipped; a known property with a value of the
    wrong type raises TypeError so the caller can drop the whole event.
    """
    fields = {}
    for key, value in properties.items():
        if key not in table:
            continue
        name, converter = table[key]
        fields[name] = converter(value)
    return fields


def device_sort_key(device: Device):
    """Paired devices first, then the rest, each by address."""
    return (not device.paired, device.address.upper(), device.id)


@dataclass(frozen=True)
class RegistrySnapshot:
    """Immutable, read-isolated view of the registry."""

    adapter: Optional[Adapter] = None
    devices: Tuple[Device, ...] = ()

    def device(self, device_id: str) -> Optional[Device]:
        for dev in self.devices:
            if dev.id == device_id:
                return dev
        return None

    @property
    def powered(self) -> bool:
        return bool(self.adapter and self.adapter.powered)

    @property
    def discovering(self) -> bool:
        return bool(self.adapter and self.adapter.discovering)


class DeviceRegistry:
    """Authoritative model of the active adapter and its devices."""

    def __init__(self):
        self._adapter: Optional[Adapter] = None
        self._devices: Dict[str, Device] = {}
        self._write_lock = threading.Lock()

    @property
    def active_adapter_id(self) -> Optional[str]:
        adapter = self._adapter
        return adapter.id if adapter else None

    def load(self, adapter: Adapter, devices: Iterable[Device]) -> None:
        """Seed the registry from the daemon's initial enumeration."""
        tracked = {}
        for dev in devices:
            if dev.adapter_id not in (None, adapter.id):
                continue
            tracked[dev.id] = dev
        with self._write_lock:
            self._adapter = adapter
            self._devices = tracked
        logger.debug("Registry loaded: adapter %s, %d device(s)", adapter.id, len(tracked))

    def apply(self, event) -> None:
        """Apply one daemon event.  Never raises; bad events are logged and dropped."""
        try:
            with self._write_lock:
                if isinstance(event, AdapterChanged):
                    self._apply_adapter_changed(event)
                elif isinstance(event, DeviceAdded):
                    self._apply_device_added(event)
                elif isinstance(event, DeviceChanged):
                    self._apply_device_changed(event)
                elif isinstance(event, DeviceRemoved):
                    self._apply_device_removed(event)
                else:
                    logger.warning("Ignoring unknown event %r", event)
        except (TypeError, AttributeError, ValueError) as e:
            logger.warning("Dropping malformed event %r: %s", event, e)

    def snapshot(self, filter: Optional[Callable[[Device], bool]] = None) -> RegistrySnapshot:
        """Return an immutable copy of the current state, devices in display order."""
        adapter = self._adapter
        devices = list(self._devices.values())
        if filter is not None:
            devices = [d for d in devices if filter(d)]
        devices.sort(key=device_sort_key)
        return RegistrySnapshot(adapter=adapter, devices=tuple(devices))

    # -- Writers (called with the write lock held) --------------------------

    def _apply_adapter_changed(self, event):
        adapter = self._adapter
        if adapter is None or event.adapter_id != adapter.id:
            logger.debug("Ignoring change for inactive adapter %s", event.adapter_id)
            return
        fields = convert_properties(event.changes, ADAPTER_PROPERTIES)
        if fields:
            self._adapter = replace(adapter, **fields)

    def _apply_device_added(self, event):
        if not event.device_id:
            raise ValueError("device event without an id")
        fields = convert_properties(event.properties, DEVICE_PROPERTIES)
        adapter_id = fields.get("adapter_id")
        if self._adapter is not None and adapter_id not in (None, self._adapter.id):
            logger.debug("Ignoring device %s on inactive adapter %s", event.device_id, adapter_id)
            return
        devices = dict(self._devices)
        existing = devices.get(event.device_id)
        if existing is not None:
            devices[event.device_id] = replace(existing, **fields)
        else:
            fields.setdefault("address", event.device_id)
            devices[event.device_id] = Device(id=event.device_id, **fields)
        self._devices = devices

    def _apply_device_changed(self, event):
        existing = self._devices.get(event.device_id)
        if existing is None:
            logger.debug("Ignoring change for unknown device %s", event.device_id)
            return
        fields = convert_properties(event.changes, DEVICE_PROPERTIES)
        if not fields:
            return
        devices = dict(self._devices)
        devices[event.device_id] = replace(existing, **fields)
        self._devices = devices

    def _apply_device_removed(self, event):
        if event.device_id not in self._devices:
            return
        devices = dict(self._devices)
        del devices[event.device_id]
        self._devices = devices
