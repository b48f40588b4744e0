"""Configuration for madOS Bluetooth Menu.

Defaults live here as module constants; environment variables override
them and command-line flags override both (see ``__main__``).
"""

import os
from dataclasses import dataclass
from typing import Optional

from .errors import ConfigError

# --- Launchers ---
LAUNCHERS = ("fuzzel", "rofi", "dmenu", "walker", "custom")
DEFAULT_LAUNCHER = "dmenu"

# --- Icons ---
ICON_MODES = ("font", "xdg", "none")
DEFAULT_ICON_MODE = "none"
DEFAULT_SPACING = 1       # Spaces between glyph and label (font mode only)
MAX_SPACING = 10

# --- Timing (seconds) ---
DEFAULT_SCAN_DURATION = 10
DEFAULT_PAIR_TIMEOUT = 30
COMMAND_TIMEOUT = 25      # Connect / disconnect / remove / property writes
ADAPTER_CONFIRM_TIMEOUT = 2.0  # Wait for an adapter property write to echo back

# --- Pairing agent ---
PAIRING_POLICIES = ("interactive", "auto", "none")
DEFAULT_PAIRING_POLICY = "interactive"
AGENT_PATH = "/org/mados/bzmenu/agent"
AGENT_CAPABILITY = "KeyboardDisplay"

# --- Notifications ---
NOTIFICATION_SUMMARY = "Bluetooth"
NOTIFICATION_TIMEOUT_MS = 3000

# --- Environment ---
ENV_PREFIX = "MADOS_BZMENU_"
MODE_ENV = ENV_PREFIX + "MODE"


def _env(name, default=None):
    return os.environ.get(ENV_PREFIX + name, default)


def _env_int(name, default):
    value = _env(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigError(f"{ENV_PREFIX}{name} must be an integer, got {value!r}")


def _env_bool(name, default):
    value = _env(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class MenuConfig:
    """Validated settings handed to the core by the command-line layer."""

    launcher: str = DEFAULT_LAUNCHER
    launcher_command: Optional[str] = None
    icon_mode: str = DEFAULT_ICON_MODE
    spacing: int = DEFAULT_SPACING
    scan_duration: int = DEFAULT_SCAN_DURATION
    pair_timeout: int = DEFAULT_PAIR_TIMEOUT
    pairing_policy: str = DEFAULT_PAIRING_POLICY
    language: Optional[str] = None
    notifications: bool = True

    @classmethod
    def from_env(cls) -> "MenuConfig":
        """Build a configuration from ``MADOS_BZMENU_*`` variables."""
        return cls(
            launcher=_env("LAUNCHER", DEFAULT_LAUNCHER),
            launcher_command=_env("LAUNCHER_COMMAND"),
            icon_mode=_env("ICONS", DEFAULT_ICON_MODE),
            spacing=_env_int("SPACING", DEFAULT_SPACING),
            scan_duration=_env_int("SCAN_DURATION", DEFAULT_SCAN_DURATION),
            pair_timeout=_env_int("PAIR_TIMEOUT", DEFAULT_PAIR_TIMEOUT),
            pairing_policy=_env("PAIRING", DEFAULT_PAIRING_POLICY),
            language=_env("LANGUAGE"),
            notifications=_env_bool("NOTIFICATIONS", True),
        )

    def validate(self) -> "MenuConfig":
        """Check every field, raising ConfigError on the first bad one."""
        if self.launcher not in LAUNCHERS:
            raise ConfigError(
                f"Unknown launcher {self.launcher!r}; expected one of {', '.join(LAUNCHERS)}"
            )
        if self.launcher == "custom":
            if not self.launcher_command or not self.launcher_command.strip():
                raise ConfigError("The custom launcher requires a non-empty command")
        if self.icon_mode not in ICON_MODES:
            raise ConfigError(
                f"Unknown icon mode {self.icon_mode!r}; expected one of {', '.join(ICON_MODES)}"
            )
        if not 0 <= self.spacing <= MAX_SPACING:
            raise ConfigError(f"Icon spacing must be between 0 and {MAX_SPACING}")
        if self.scan_duration <= 0:
            raise ConfigError("Scan duration must be a positive number of seconds")
        if self.pair_timeout <= 0:
            raise ConfigError("Pairing timeout must be a positive number of seconds")
        if self.pairing_policy not in PAIRING_POLICIES:
            raise ConfigError(
                f"Unknown pairing policy {self.pairing_policy!r}; "
                f"expected one of {', '.join(PAIRING_POLICIES)}"
            )
        return self
