"""User-level configuration: default search paths and package field order"""

import configparser
import logging
import os
import platform
from pathlib import Path
from typing import Any, List, Optional

from modbundle.constants import DEFAULT_MAIN_FIELDS

APP_NAME = "modbundle"

logger = logging.getLogger(__name__)

_home = os.path.expanduser("~")

xdg_config_home = os.environ.get("XDG_CONFIG_HOME") or os.path.join(_home, ".config")

if platform.system() == "Darwin":
    # macOS
    config_dir = Path("~/Library/Application Support/modbundle").expanduser()
else:
    # Linux or others
    config_dir = Path(os.path.join(xdg_config_home, APP_NAME))


def get_config_file():
    return config_dir / f"{APP_NAME}.cfg"


class ConfigAccessor:
    """
    A dict-like accessor for configuration files.

    Missing files, sections or keys are handled gracefully, so an engine
    works without any user configuration at all.

    Usage:
        config = ConfigAccessor()
        value = config.get('resolve', 'search_paths', default='')
    """

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize a ConfigAccessor with an optional config file path.

        Args:
            config_path: Path to the configuration file. If None, uses the default path.
        """
        if config_path is None:
            self.config_path = get_config_file()
        else:
            self.config_path = config_path

        self.config = configparser.ConfigParser()
        if self.config_path.exists():
            try:
                self.config.read(self.config_path)
            except configparser.Error as e:
                logger.warning(f"Ignoring unreadable config {self.config_path}: {e}")

    def get(self, section: str, key: str, default: Any = None) -> Any:
        """
        Get a configuration value from the specified section and key.

        Args:
            section: The configuration section
            key: The configuration key
            default: Value to return if the section or key doesn't exist

        Returns:
            The configuration value if it exists, otherwise the default value
        """
        try:
            return self.config[section][key]
        except (KeyError, configparser.NoSectionError, configparser.NoOptionError):
            return default

    def set(self, section: str, key: str, value: str) -> None:
        if not self.config.has_section(section):
            self.config.add_section(section)

        self.config[section][key] = value

    def save(self) -> None:
        """
        Save the current configuration to the config file.

        Fails gracefully if the file cannot be written (e.g., read-only filesystem).
        """
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_path, "w") as configfile:
                self.config.write(configfile)
        except OSError as e:
            logger.warning(
                f"Could not save configuration to {self.config_path}: {e}. "
                "Configuration changes will not persist."
            )

    def sections(self) -> list:
        return self.config.sections()


def get_default_search_paths(accessor: Optional[ConfigAccessor] = None) -> List[Path]:
    """
    Get the additional package search roots configured by the user.

    The value of ``[resolve] search_paths`` is a list separated by
    ``os.pathsep``; empty items are skipped.

    Returns:
        List of search root paths (may be empty)
    """
    accessor = accessor or ConfigAccessor()
    raw = accessor.get("resolve", "search_paths", default="")
    return [Path(p).expanduser() for p in raw.split(os.pathsep) if p.strip()]


def get_default_main_fields(accessor: Optional[ConfigAccessor] = None) -> tuple:
    """
    Get the package.json field order used to derive a package's entry file.

    Returns:
        Tuple of field names (defaults to browser, module, main)
    """
    accessor = accessor or ConfigAccessor()
    raw = accessor.get("resolve", "main_fields", default="")
    fields = tuple(f.strip() for f in raw.split(",") if f.strip())
    return fields or DEFAULT_MAIN_FIELDS
