"""madOS Bluetooth Menu - Menu renderer.

Turns a registry snapshot and the current screen into the ordered list of
entries shown by the launcher, and maps the launcher's output back to one
of those entries.  Everything here is pure: the same inputs always yield
the same entries, and nothing touches the registry or the daemon.
"""

from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from .icons import GENERIC_ICONS, get_battery_icon, get_device_icon, get_icon
from .interfaces import Device
from .registry import RegistrySnapshot
from .translations import get_text


class ScreenKind(Enum):
    MAIN = "main"
    DEVICE_LIST = "device_list"
    SETTINGS = "settings"
    DEVICE_ACTIONS = "device_actions"
    CONFIRM = "confirm"
    EXIT = "exit"


class ActionKind(Enum):
    """Closed set of things a menu entry can ask for."""

    POWER_ON = "power_on"
    POWER_OFF = "power_off"
    SCAN = "scan"
    STOP_SCAN = "stop_scan"
    VIEW_DEVICES = "view_devices"
    SELECT_DEVICE = "select_device"
    REFRESH = "refresh"
    SETTINGS = "settings"
    ENABLE_DISCOVERABLE = "enable_discoverable"
    DISABLE_DISCOVERABLE = "disable_discoverable"
    ENABLE_PAIRABLE = "enable_pairable"
    DISABLE_PAIRABLE = "disable_pairable"
    PAIR = "pair"
    CONNECT = "connect"
    DISCONNECT = "disconnect"
    TRUST = "trust"
    UNTRUST = "untrust"
    REMOVE = "remove"
    CONFIRM = "confirm"
    CANCEL = "cancel"
    DISMISS_ERROR = "dismiss_error"
    BACK = "back"
    EXIT = "exit"


@dataclass(frozen=True)
class Screen:
    """Where the state machine currently is."""

    kind: ScreenKind
    device_id: Optional[str] = None
    action: Optional[ActionKind] = None
    scanning: bool = False  # entered through "scan for devices"
    error: Optional[str] = None


@dataclass(frozen=True)
class Action:
    kind: ActionKind
    device_id: Optional[str] = None


@dataclass(frozen=True)
class MenuEntry:
    """One selectable line; only valid for the render cycle that produced it."""

    key: str
    label: str
    icon: str
    action: Action
    line: str


def device_actions(device: Device) -> List[ActionKind]:
    """Derive the actions offered for a device from its flags."""
    actions = []
    if not device.paired:
        actions.append(ActionKind.PAIR)
    actions.append(ActionKind.DISCONNECT if device.connected else ActionKind.CONNECT)
    if device.paired:
        actions.append(ActionKind.UNTRUST if device.trusted else ActionKind.TRUST)
        actions.append(ActionKind.REMOVE)
    actions.append(ActionKind.BACK)
    return actions


def format_line(label, icon, icon_mode, spacing=1):
    """Format a label with its icon the way the launcher expects it."""
    if not icon:
        return label
    if icon_mode == "font":
        return f"{icon}{' ' * spacing}{label}"
    if icon_mode == "xdg":
        return f"{label}\0icon\x1f{icon}"
    return label


def clean_output(output, icon_mode):
    """Strip icon decoration from a launcher line, leaving the label."""
    text = output.strip()
    if icon_mode == "font":
        for i, c in enumerate(text):
            if c.isalnum():
                return text[i:].strip()
        return ""
    if icon_mode == "xdg":
        return text.split("\0", 1)[0].strip()
    return text


def resolve(entries: List[MenuEntry], raw: Optional[str], icon_mode: str) -> Optional[MenuEntry]:
    """Find the entry the launcher output refers to, or None."""
    if raw is None:
        return None
    text = clean_output(raw, icon_mode)
    if not text:
        return None
    for entry in entries:
        if text == clean_output(entry.line, icon_mode) or text == entry.label:
            return entry
    return None


def device_label(device: Device, icon_mode: str, disambiguate: bool = False) -> str:
    """Display name plus battery, connected and trusted indicators."""
    label = device.display_name
    if disambiguate and device.address and device.address != label:
        label += f" ({device.address})"
    if device.battery is not None:
        battery_icon = get_battery_icon(device.battery, icon_mode) if icon_mode == "font" else None
        label += f" [{battery_icon}]" if battery_icon else f" [{device.battery}%]"
    if device.connected:
        label += " " + GENERIC_ICONS["connected"]
    if device.trusted:
        label += " " + GENERIC_ICONS["trusted"]
    return label


def prompt_for(screen: Screen, snapshot: RegistrySnapshot, language: str = "English") -> str:
    """Return the launcher prompt for a screen."""
    device = snapshot.device(screen.device_id) if screen.device_id else None
    name = device.display_name if device else (screen.device_id or "")
    if screen.kind is ScreenKind.DEVICE_LIST:
        return get_text("prompt_scanning" if snapshot.discovering else "prompt_devices", language)
    if screen.kind is ScreenKind.SETTINGS:
        return get_text("settings", language)
    if screen.kind is ScreenKind.DEVICE_ACTIONS and name:
        return name
    if screen.kind is ScreenKind.CONFIRM:
        return get_text("confirm_remove", language, name=name)
    return get_text("title", language)


def render(screen: Screen, snapshot: RegistrySnapshot, icon_mode: str = "none",
           spacing: int = 1, language: str = "English") -> List[MenuEntry]:
    """Build the entries for a screen from a snapshot.

    Args:
        screen: The screen to render.
        snapshot: Registry state to render from.
        icon_mode: 'font', 'xdg' or anything else for plain labels.
        spacing: Spaces between a font glyph and its label.
        language: Translation language for labels.

    Returns:
        The ordered list of MenuEntry objects.
    """

    def entry(key, icon_key, action, label=None):
        text = label if label is not None else get_text(key, language)
        icon = get_icon(icon_key, icon_mode)
        return MenuEntry(key, text, icon, action, format_line(text, icon, icon_mode, spacing))

    entries = []
    if screen.error:
        entries.append(entry("error", "error", Action(ActionKind.DISMISS_ERROR), label=screen.error))

    if screen.kind is ScreenKind.MAIN:
        if snapshot.powered:
            entries.append(entry("power_off", "power_off", Action(ActionKind.POWER_OFF)))
            entries.append(entry("scan", "scan", Action(ActionKind.SCAN)))
            entries.append(entry("view_devices", "view_devices", Action(ActionKind.VIEW_DEVICES)))
        else:
            entries.append(entry("power_on", "power_on", Action(ActionKind.POWER_ON)))
        entries.append(entry("exit", "exit", Action(ActionKind.EXIT)))

    elif screen.kind is ScreenKind.DEVICE_LIST:
        names = Counter(d.display_name for d in snapshot.devices)
        for device in snapshot.devices:
            label = device_label(device, icon_mode, disambiguate=names[device.display_name] > 1)
            icon = get_device_icon(device.device_type, icon_mode)
            entries.append(MenuEntry(
                f"device:{device.id}", label, icon,
                Action(ActionKind.SELECT_DEVICE, device.id),
                format_line(label, icon, icon_mode, spacing),
            ))
        entries.append(entry("refresh", "refresh", Action(ActionKind.REFRESH)))
        if snapshot.discovering:
            entries.append(entry("stop_scan", "stop_scan", Action(ActionKind.STOP_SCAN)))
        else:
            entries.append(entry("scan", "scan", Action(ActionKind.SCAN)))
        entries.append(entry("settings", "settings", Action(ActionKind.SETTINGS)))
        entries.append(entry("back", "back", Action(ActionKind.BACK)))

    elif screen.kind is ScreenKind.SETTINGS:
        adapter = snapshot.adapter
        if adapter is not None and adapter.discoverable:
            entries.append(entry("disable_discoverable", "disable_discoverable",
                                 Action(ActionKind.DISABLE_DISCOVERABLE)))
        else:
            entries.append(entry("enable_discoverable", "enable_discoverable",
                                 Action(ActionKind.ENABLE_DISCOVERABLE)))
        if adapter is not None and adapter.pairable:
            entries.append(entry("disable_pairable", "disable_pairable",
                                 Action(ActionKind.DISABLE_PAIRABLE)))
        else:
            entries.append(entry("enable_pairable", "enable_pairable",
                                 Action(ActionKind.ENABLE_PAIRABLE)))
        entries.append(entry("disable_adapter", "disable_adapter", Action(ActionKind.POWER_OFF)))
        entries.append(entry("back", "back", Action(ActionKind.BACK)))

    elif screen.kind is ScreenKind.DEVICE_ACTIONS:
        device = snapshot.device(screen.device_id)
        kinds = device_actions(device) if device is not None else [ActionKind.BACK]
        for kind in kinds:
            entries.append(entry(kind.value, kind.value, Action(kind, screen.device_id)))

    elif screen.kind is ScreenKind.CONFIRM:
        entries.append(entry("confirm", "confirm", Action(ActionKind.CONFIRM, screen.device_id)))
        entries.append(entry("cancel", "cancel", Action(ActionKind.CANCEL, screen.device_id)))

    return entries
