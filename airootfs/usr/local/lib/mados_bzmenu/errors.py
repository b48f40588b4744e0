"""madOS Bluetooth Menu - Error taxonomy.

Only DaemonUnavailable and LauncherError end a session; everything else
is scoped to the device or screen that raised it.
"""


class BluetoothError(Exception):
    """Base class for failures reported by the Bluetooth layer."""


class DaemonUnavailable(BluetoothError):
    """The system bus or the BlueZ daemon cannot be reached."""


class OperationRejected(BluetoothError):
    """The daemon refused a command (e.g. adapter rfkill-blocked)."""


class OperationInProgress(BluetoothError):
    """A command for the same device is still outstanding."""


class AuthorizationRequired(BluetoothError):
    """Pairing needed an authorization nobody could give."""


class PairingTimeout(AuthorizationRequired):
    """Pairing did not complete within the configured timeout."""


class LauncherError(Exception):
    """The menu launcher could not be spawned."""


class LauncherBusy(LauncherError):
    """Another presentation already owns the launcher."""


class ConfigError(ValueError):
    """Invalid configuration supplied by the command line or environment."""
