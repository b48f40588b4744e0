#!/usr/bin/env python3
"""
Unit tests for the device registry.

Validates event application, ordering and read isolation of snapshots.
"""

import sys
import os
import random
import unittest

sys.path.insert(
    0, os.path.join(os.path.dirname(__file__), "..", "airootfs", "usr", "local", "lib")
)

from mados_bzmenu.interfaces import (
    Adapter, Device, AdapterChanged, DeviceAdded, DeviceChanged, DeviceRemoved,
)
from mados_bzmenu.registry import DeviceRegistry, RegistrySnapshot

HCI0 = "/org/bluez/hci0"
HCI1 = "/org/bluez/hci1"


def _path(suffix):
    return f"{HCI0}/dev_{suffix}"


class TestRegistryLoad(unittest.TestCase):
    """Tests for initial loading."""

    def test_empty_registry(self):
        registry = DeviceRegistry()
        snapshot = registry.snapshot()
        self.assertIsNone(snapshot.adapter)
        self.assertEqual(snapshot.devices, ())
        self.assertFalse(snapshot.powered)
        self.assertIsNone(registry.active_adapter_id)

    def test_load_filters_other_adapters(self):
        registry = DeviceRegistry()
        registry.load(Adapter(id=HCI0, powered=True), [
            Device(id=_path("A"), address="AA", adapter_id=HCI0),
            Device(id=f"{HCI1}/dev_B", address="BB", adapter_id=HCI1),
        ])
        snapshot = registry.snapshot()
        self.assertEqual([d.id for d in snapshot.devices], [_path("A")])
        self.assertTrue(snapshot.powered)
        self.assertEqual(registry.active_adapter_id, HCI0)


class TestRegistryApply(unittest.TestCase):
    """Tests for applying daemon events."""

    def setUp(self):
        self.registry = DeviceRegistry()
        self.registry.load(Adapter(id=HCI0), [])

    def test_adapter_changed(self):
        self.registry.apply(AdapterChanged(HCI0, {"Powered": True, "Discovering": True}))
        snapshot = self.registry.snapshot()
        self.assertTrue(snapshot.powered)
        self.assertTrue(snapshot.discovering)

    def test_inactive_adapter_ignored(self):
        self.registry.apply(AdapterChanged(HCI1, {"Powered": True}))
        self.assertFalse(self.registry.snapshot().powered)

    def test_device_added_and_changed(self):
        self.registry.apply(DeviceAdded(_path("A"), {
            "Address": "AA:BB:CC:DD:EE:01", "Adapter": HCI0, "Alias": "Headset",
            "Paired": False, "RSSI": -60, "Percentage": 80,
        }))
        self.registry.apply(DeviceChanged(_path("A"), {"Connected": True, "RSSI": -40}))
        device = self.registry.snapshot().device(_path("A"))
        self.assertEqual(device.alias, "Headset")
        self.assertTrue(device.connected)
        self.assertEqual(device.rssi, -40)
        self.assertEqual(device.battery, 80)

    def test_device_on_other_adapter_never_tracked(self):
        self.registry.apply(DeviceAdded(f"{HCI1}/dev_A", {"Address": "AA", "Adapter": HCI1}))
        self.assertEqual(self.registry.snapshot().devices, ())

    def test_duplicate_add_replaces_entry(self):
        self.registry.apply(DeviceAdded(_path("A"), {"Address": "AA", "Alias": "Old"}))
        self.registry.apply(DeviceAdded(_path("A"), {"Alias": "New"}))
        devices = self.registry.snapshot().devices
        self.assertEqual(len(devices), 1)
        self.assertEqual(devices[0].alias, "New")
        self.assertEqual(devices[0].address, "AA")

    def test_device_removed(self):
        self.registry.apply(DeviceAdded(_path("A"), {"Address": "AA"}))
        self.registry.apply(DeviceRemoved(_path("A")))
        self.assertIsNone(self.registry.snapshot().device(_path("A")))

    def test_unknown_properties_ignored(self):
        self.registry.apply(DeviceAdded(_path("A"), {"Address": "AA", "ManufacturerData": {76: [1]}}))
        self.assertEqual(self.registry.snapshot().devices[0].address, "AA")

    def test_battery_interface_removed(self):
        self.registry.apply(DeviceAdded(_path("A"), {"Address": "AA", "Percentage": 50}))
        self.registry.apply(DeviceChanged(_path("A"), {"Percentage": None}))
        self.assertIsNone(self.registry.snapshot().devices[0].battery)


class TestRegistryMalformedEvents(unittest.TestCase):
    """Malformed events are logged and dropped, never raised."""

    def setUp(self):
        self.registry = DeviceRegistry()
        self.registry.load(Adapter(id=HCI0), [])
        self.registry.apply(DeviceAdded(_path("A"), {"Address": "AA", "Paired": True}))

    def test_wrong_type_dropped_whole_event(self):
        with self.assertLogs("mados_bzmenu.registry", level="WARNING"):
            self.registry.apply(DeviceChanged(_path("A"), {"Connected": True, "Paired": "yes"}))
        device = self.registry.snapshot().devices[0]
        self.assertTrue(device.paired)
        self.assertFalse(device.connected)

    def test_missing_id(self):
        with self.assertLogs("mados_bzmenu.registry", level="WARNING"):
            self.registry.apply(DeviceAdded("", {"Address": "BB"}))
        self.assertEqual(len(self.registry.snapshot().devices), 1)

    def test_unknown_event_type(self):
        with self.assertLogs("mados_bzmenu.registry", level="WARNING"):
            self.registry.apply({"type": "DeviceAdded"})

    def test_change_for_unknown_device_is_noop(self):
        self.registry.apply(DeviceChanged(_path("Z"), {"Connected": True}))
        self.assertEqual([d.id for d in self.registry.snapshot().devices], [_path("A")])


class TestRegistryOrdering(unittest.TestCase):
    """Display order is paired first, then by address, whatever the event order."""

    def _events(self):
        return [
            DeviceAdded(_path("3"), {"Address": "33:00:00:00:00:00", "Paired": True}),
            DeviceAdded(_path("1"), {"Address": "11:00:00:00:00:00"}),
            DeviceAdded(_path("4"), {"Address": "44:00:00:00:00:00"}),
            DeviceAdded(_path("2"), {"Address": "22:00:00:00:00:00", "Paired": True}),
        ]

    def test_order_is_stable_across_event_orders(self):
        expected = [_path("2"), _path("3"), _path("1"), _path("4")]
        rng = random.Random(1234)
        for _ in range(10):
            events = self._events()
            rng.shuffle(events)
            registry = DeviceRegistry()
            registry.load(Adapter(id=HCI0), [])
            for event in events:
                registry.apply(event)
            self.assertEqual([d.id for d in registry.snapshot().devices], expected)

    def test_last_applied_value_wins(self):
        registry = DeviceRegistry()
        registry.load(Adapter(id=HCI0), [])
        for event in self._events():
            registry.apply(event)
        for rssi in (-90, -70, -50):
            registry.apply(DeviceChanged(_path("1"), {"RSSI": rssi}))
        ids = [d.id for d in registry.snapshot().devices]
        self.assertEqual(len(ids), len(set(ids)))
        self.assertEqual(registry.snapshot().device(_path("1")).rssi, -50)

    def test_snapshot_filter(self):
        registry = DeviceRegistry()
        registry.load(Adapter(id=HCI0), [])
        for event in self._events():
            registry.apply(event)
        paired = registry.snapshot(filter=lambda d: d.paired)
        self.assertEqual([d.id for d in paired.devices], [_path("2"), _path("3")])


class TestSnapshotIsolation(unittest.TestCase):
    """A snapshot never changes after it was taken."""

    def test_snapshot_unaffected_by_later_events(self):
        registry = DeviceRegistry()
        registry.load(Adapter(id=HCI0), [])
        registry.apply(DeviceAdded(_path("A"), {"Address": "AA"}))
        before = registry.snapshot()

        registry.apply(DeviceChanged(_path("A"), {"Connected": True}))
        registry.apply(DeviceAdded(_path("B"), {"Address": "BB"}))
        registry.apply(AdapterChanged(HCI0, {"Powered": True}))

        self.assertIsInstance(before, RegistrySnapshot)
        self.assertEqual(len(before.devices), 1)
        self.assertFalse(before.devices[0].connected)
        self.assertFalse(before.powered)


if __name__ == "__main__":
    unittest.main()
