"""Persisted user preferences for the SSH server.

Preferences are stored in ``settings.toml`` under the usbssh home and edited
with tomlkit so hand-written comments and ordering survive a rewrite.

Boolean preferences follow two conventions:
- "false unless set" (``is_true``): absent means off.
- "true unless disabled" (``nil_or_true``): absent means on. Turning these
  back on deletes the key instead of writing ``true``.
"""

import logging
from pathlib import Path
from typing import Any

import tomlkit
from tomlkit import TOMLDocument

from usbssh.config.models import DEFAULT_PORT, ServiceConfig
from usbssh.config.paths import get_settings_path

logger = logging.getLogger(__name__)

PORT = "port"
ALLOW_NO_PASSWORD = "allow_no_password"
AUTOSTART = "autostart"
STOP_GADGET_ON_STOP = "stop_gadget_on_stop"
PAUSE_ON_SUSPEND = "pause_on_suspend"
START_ONLY_ON_USB = "start_only_on_usb"
STOP_ON_UNPLUG = "stop_on_unplug"

# Keys whose default is "on" when absent.
NIL_OR_TRUE_KEYS = (
    STOP_GADGET_ON_STOP,
    PAUSE_ON_SUSPEND,
    START_ONLY_ON_USB,
    STOP_ON_UNPLUG,
)
# Keys whose default is "off" when absent.
FALSE_UNLESS_SET_KEYS = (ALLOW_NO_PASSWORD, AUTOSTART)

KNOWN_KEYS = (PORT, *FALSE_UNLESS_SET_KEYS, *NIL_OR_TRUE_KEYS)


def parse_port(value: Any) -> int | None:
    """Parse a stored or user-entered port; None if it is not a non-negative int."""
    if isinstance(value, bool):
        return None
    try:
        port = int(value)
    except (TypeError, ValueError):
        return None
    if port < 0:
        return None
    return port


class SettingsStore:
    """Typed key-value preference store backed by a TOML file."""

    def __init__(self, settings_path: Path | None = None):
        self.settings_path = settings_path or get_settings_path()
        self._doc: TOMLDocument | None = None

    def _load(self) -> TOMLDocument:
        """Load the settings file, starting empty if it doesn't exist."""
        if self._doc is not None:
            return self._doc

        if self.settings_path.exists():
            self._doc = tomlkit.parse(self.settings_path.read_text())
        else:
            self._doc = tomlkit.document()

        return self._doc

    def _save(self) -> None:
        """Save the settings file."""
        if self._doc is None:
            return

        self.settings_path.parent.mkdir(parents=True, exist_ok=True)
        self.settings_path.write_text(tomlkit.dumps(self._doc))
        logger.debug(f"Saved settings to {self.settings_path}")

    def reload(self) -> None:
        """Drop the cached document so the next read hits the disk."""
        self._doc = None

    def read_setting(self, key: str, default: Any = None) -> Any:
        value = self._load().unwrap().get(key)
        return default if value is None else value

    def has_setting(self, key: str) -> bool:
        return key in self._load()

    def save_setting(self, key: str, value: Any) -> None:
        doc = self._load()
        doc[key] = value
        self._save()

    def del_setting(self, key: str) -> None:
        doc = self._load()
        if key in doc:
            del doc[key]
            self._save()

    def is_true(self, key: str) -> bool:
        return self.read_setting(key) is True

    def is_false(self, key: str) -> bool:
        return self.read_setting(key) is False

    def nil_or_true(self, key: str) -> bool:
        return self.read_setting(key) is None or self.is_true(key)

    def flip_nil_or_false(self, key: str) -> None:
        """Toggle a false-unless-set preference."""
        if self.is_true(key):
            self.del_setting(key)
        else:
            self.save_setting(key, True)

    def flip_nil_or_true(self, key: str) -> None:
        """Toggle a true-unless-disabled preference."""
        if self.nil_or_true(key):
            self.save_setting(key, False)
        else:
            self.del_setting(key)

    def set_flag(self, key: str, enabled: bool) -> None:
        """Set a boolean preference using the key's absent-value convention."""
        if key in NIL_OR_TRUE_KEYS:
            if enabled:
                self.del_setting(key)
            else:
                self.save_setting(key, False)
        elif key in FALSE_UNLESS_SET_KEYS:
            if enabled:
                self.save_setting(key, True)
            else:
                self.del_setting(key)
        else:
            raise KeyError(f"Unknown flag: {key}")

    def get_port(self) -> int:
        raw = self.read_setting(PORT)
        if raw is None:
            return DEFAULT_PORT
        port = parse_port(raw)
        if port is None:
            logger.warning(
                "invalid_port_setting",
                extra={"settings.port": str(raw), "settings.default": DEFAULT_PORT},
            )
            return DEFAULT_PORT
        return port

    def service_config(self) -> ServiceConfig:
        """Build an immutable preference snapshot from the stored values."""
        return ServiceConfig(
            port=self.get_port(),
            allow_no_password=self.is_true(ALLOW_NO_PASSWORD),
            autostart=self.is_true(AUTOSTART),
            stop_gadget_on_stop=self.nil_or_true(STOP_GADGET_ON_STOP),
            pause_on_suspend=self.nil_or_true(PAUSE_ON_SUSPEND),
            start_only_when_plugged=self.nil_or_true(START_ONLY_ON_USB),
            stop_on_unplug=self.nil_or_true(STOP_ON_UNPLUG),
        )
