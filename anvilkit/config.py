"""User-level defaults: builds directory, C compiler and kern for new projects"""

import configparser
import logging
import os
import platform
from pathlib import Path
from typing import Any, Optional

from anvilkit.constants import DEFAULT_BUILDS_DIR, DEFAULT_COMPILER, KERN_ANVILC

APP_NAME = "anvilkit"

logger = logging.getLogger(__name__)

_home = os.path.expanduser("~")

xdg_config_home = os.environ.get("XDG_CONFIG_HOME") or os.path.join(_home, ".config")

default_cfg = {
    "defaults": {
        "builds_dir": DEFAULT_BUILDS_DIR,
        "cc": DEFAULT_COMPILER,
        "kern": KERN_ANVILC,
    }
}

if platform.system() == "Darwin":
    config_dir = Path(f"~/Library/Application Support/{APP_NAME}").expanduser()
else:
    config_dir = Path(os.path.join(xdg_config_home, APP_NAME))


def get_config_file() -> Path:
    return config_dir / f"{APP_NAME}.cfg"


class ConfigAccessor:
    """
    A dict-like accessor for the user configuration file.

    Missing files, sections and keys are not errors: lookups fall back to
    the given default.

    Usage:
        config = ConfigAccessor()
        cc = config.get('defaults', 'cc', default='gcc')
    """

    def __init__(self, config_path: Optional[Path] = None):
        self.config_path = Path(config_path) if config_path else get_config_file()
        self.config = configparser.ConfigParser()
        if self.config_path.exists():
            try:
                self.config.read(self.config_path)
            except configparser.Error as e:
                logger.warning(f"Ignoring unreadable config {self.config_path}: {e}")

    def get(self, section: str, key: str, default: Any = None) -> Any:
        try:
            return self.config[section][key]
        except (KeyError, configparser.NoSectionError, configparser.NoOptionError):
            return default


def _default(key: str, config: Optional[ConfigAccessor] = None) -> str:
    accessor = config if config is not None else ConfigAccessor()
    return accessor.get("defaults", key, default_cfg["defaults"][key])


def get_default_builds_dir(config: Optional[ConfigAccessor] = None) -> Path:
    return Path(_default("builds_dir", config)).expanduser()


def get_compiler(config: Optional[ConfigAccessor] = None) -> str:
    """The C compiler for direct compiles; ``$CC`` wins over the config file."""
    return os.environ.get("CC") or _default("cc", config)


def get_default_kern(config: Optional[ConfigAccessor] = None) -> str:
    return _default("kern", config)
