"""madOS Bluetooth Menu - Icon tables.

Nerd Font glyphs for the ``font`` icon mode and freedesktop icon names
for the ``xdg`` mode.  XDG entries are comma-separated fallback lists,
passed to the launcher as-is; resolving them on disk is up to the
launcher.
"""

GENERIC_ICONS = {
    'connected': '⏺',
    'trusted': '✓',
}

FONT_ICONS = {
    'bluetooth': '\uf293',
    'connected': '\uf294',
    'disconnected': '\uf295',
    'connect': '\U000f0337',
    'disconnect': '\U000f0338',
    'scan': '\uf46a',
    'stop_scan': '\U000f04db',
    'view_devices': '\U000f0279',
    'refresh': '\U000f0450',
    'power_on': '\U000f0425',
    'power_off': '\U000f00b2',
    'pair': '\U000f0339',
    'trust': '\U000f0cc8',
    'untrust': '\U000f099c',
    'remove': '\U000f0377',
    'back': '\U000f004d',
    'exit': '\U000f0206',
    'confirm': '\U000f012c',
    'cancel': '\U000f0156',
    'settings': '\U000f08bb',
    'disable_adapter': '\U000f00b2',
    'enable_discoverable': '\U000f06d0',
    'disable_discoverable': '\U000f06d1',
    'enable_pairable': '\U000f0339',
    'disable_pairable': '\U000f033a',

    'device': '\U000f0fb0',
    'phone': '\U000f011c',
    'headphones': '\U000f02cb',
    'keyboard': '\U000f030c',
    'mouse': '\U000f037d',
    'speaker': '\U000f04c3',
    'gamepad': '\U000f0eb5',
    'computer': '\U000f0aab',
    'laptop': '\U000f0322',
    'tablet': '\U000f04f7',
    'watch': '\U000f0897',
    'tv': '\U000f0379',
    'display': '\U000f0379',

    'battery_100': '\U000f0079',
    'battery_90': '\U000f0082',
    'battery_80': '\U000f0081',
    'battery_70': '\U000f0080',
    'battery_60': '\U000f007f',
    'battery_50': '\U000f007e',
    'battery_40': '\U000f007d',
    'battery_30': '\U000f007c',
    'battery_20': '\U000f007b',
    'battery_10': '\U000f007a',

    'ok': '\U000f05e1',
    'error': '\U000f05d6',
    'paired': '\U000f119f',
    'trusted': '\U000f0cc8',
}

_DISK = 'drive-harddisk-symbolic'

XDG_ICONS = {
    'bluetooth': 'bluetooth-symbolic,network-bluetooth-symbolic,bluetooth',
    'connected': 'bluetooth-active-symbolic,network-bluetooth-activated-symbolic,bluetooth-active',
    'disconnected': 'bluetooth-disabled-symbolic,network-bluetooth-inactive-symbolic,bluetooth-disabled',
    'connect': 'entries-linked-symbolic,network-connect-symbolic,link-symbolic',
    'disconnect': 'entries-unlinked-symbolic,network-disconnect-symbolic,media-eject-symbolic',
    'scan': 'sync-synchronizing-symbolic,emblem-synchronizing-symbolic,view-refresh-symbolic',
    'stop_scan': 'media-playback-stop-symbolic,process-stop-symbolic',
    'view_devices': 'view-list-symbolic,view-list-bullet-symbolic',
    'refresh': 'view-refresh-symbolic',
    'power_on': 'bluetooth-symbolic',
    'power_off': 'bluetooth-disabled-symbolic,network-bluetooth-inactive-symbolic',
    'pair': 'changes-allow-symbolic',
    'trust': 'emblem-default-symbolic',
    'untrust': 'action-unavailable-symbolic',
    'remove': 'list-remove-symbolic',
    'back': 'go-previous-symbolic',
    'exit': 'application-exit-symbolic,window-close-symbolic',
    'confirm': 'object-select-symbolic,emblem-ok-symbolic',
    'cancel': 'process-stop-symbolic,window-close-symbolic',
    'settings': 'preferences-system-symbolic',
    'disable_adapter': 'bluetooth-disabled-symbolic,network-bluetooth-inactive-symbolic',
    'enable_discoverable': 'view-reveal-symbolic,view-visible-symbolic,object-visible-symbolic',
    'disable_discoverable': 'view-conceal-symbolic,view-hidden-symbolic,object-hidden-symbolic',
    'enable_pairable': 'changes-allow-symbolic',
    'disable_pairable': 'changes-prevent-symbolic',

    'device': _DISK,
    'phone': 'phone-symbolic,' + _DISK,
    'headphones': 'audio-headphones-symbolic,' + _DISK,
    'keyboard': 'input-keyboard-symbolic,' + _DISK,
    'mouse': 'input-mouse-symbolic,' + _DISK,
    'speaker': 'audio-speakers-symbolic,' + _DISK,
    'gamepad': 'input-gaming-symbolic,input-gamepad-symbolic,' + _DISK,
    'computer': 'computer-symbolic,' + _DISK,
    'laptop': 'laptop-symbolic,computer-laptop-symbolic,computer-symbolic,' + _DISK,
    'tablet': 'tablet-symbolic,' + _DISK,
    'watch': 'smartwatch-symbolic,' + _DISK,
    'tv': 'video-display-symbolic,preferences-desktop-display-randr-symbolic,' + _DISK,
    'display': 'video-display-symbolic,preferences-desktop-display-randr-symbolic,' + _DISK,

    'battery_100': 'battery-100-symbolic,battery-full-symbolic',
    'battery_90': 'battery-090-symbolic,battery-good-symbolic',
    'battery_80': 'battery-080-symbolic,battery-good-symbolic',
    'battery_70': 'battery-070-symbolic,battery-good-symbolic',
    'battery_60': 'battery-060-symbolic,battery-good-symbolic',
    'battery_50': 'battery-050-symbolic,battery-medium-symbolic',
    'battery_40': 'battery-040-symbolic,battery-medium-symbolic',
    'battery_30': 'battery-030-symbolic,battery-low-symbolic',
    'battery_20': 'battery-020-symbolic,battery-low-symbolic',
    'battery_10': 'battery-010-symbolic,battery-caution-symbolic',

    'ok': 'emblem-default-symbolic',
    'error': 'dialog-error-symbolic',
    'paired': 'emblem-checked-symbolic',
    'trusted': 'security-high-symbolic',
}


def get_icon(key, icon_mode):
    """Return the icon for key in the given mode, or an empty string."""
    if icon_mode == 'font':
        return FONT_ICONS.get(key, '')
    if icon_mode == 'xdg':
        return XDG_ICONS.get(key, '')
    if icon_mode == 'generic':
        return GENERIC_ICONS.get(key, '')
    return ''


def get_xdg_icon(key):
    """Return the first (preferred) XDG icon name for key."""
    return XDG_ICONS.get(key, '').split(',')[0].strip()


def get_device_icon(device_type, icon_mode):
    """Return the icon for a device type, falling back to the generic device icon."""
    table = FONT_ICONS if icon_mode == 'font' else XDG_ICONS
    key = device_type if device_type in table else 'device'
    return get_icon(key, icon_mode)


def get_battery_icon(percentage, icon_mode):
    """Return a battery level icon, or None for an out-of-range percentage."""
    if percentage is None or percentage < 0 or percentage > 100:
        return None
    if percentage <= 10:
        key = 'battery_10'
    else:
        key = 'battery_%d' % min(100, (percentage + 9) // 10 * 10)
    return get_icon(key, icon_mode)
