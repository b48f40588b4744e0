"""madOS Bluetooth Menu.

Manage the Bluetooth adapter and its devices from any dmenu-style
launcher (fuzzel, rofi, dmenu, walker or a custom command). Talks to
BlueZ over D-Bus and keeps a live model of adapters and devices fed by
the daemon's signals.
"""

__version__ = "1.0.0"
__app_id__ = "mados-bzmenu"
__app_name__ = "madOS Bluetooth Menu"
