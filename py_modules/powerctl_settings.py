"""
powerctl Settings Management
Platform constants and control paths, overridable from a JSON file
"""
import json
import os
from typing import Dict, Any, Optional, Tuple
from pathlib import Path

from powerctl_utils import logger, ConfigurationError

CONFIG_ENV_VAR = "POWERCTL_CONFIG"
DEFAULT_CONFIG_FILE = "/etc/powerctl/powerctl.json"

ASUS_WMI_BASE = "/sys/devices/platform/asus-nb-wmi"


def _is_path(v: Any) -> bool:
    return isinstance(v, str) and v.startswith("/")


def _is_range(v: Any) -> bool:
    return (isinstance(v, (list, tuple)) and len(v) == 2
            and all(isinstance(x, int) and not isinstance(x, bool) for x in v)
            and v[0] <= v[1])


class PowerCtlSettings:
    """Centralized settings for the controller"""

    def __init__(self, config_file: Optional[str] = None, overrides: Optional[Dict[str, Any]] = None):
        """Load defaults, then the config file, then explicit overrides

        A config_file given by the caller must exist; the implicit
        $POWERCTL_CONFIG / default location may be absent.
        """
        required = config_file is not None
        if config_file is None:
            config_file = os.environ.get(CONFIG_ENV_VAR, DEFAULT_CONFIG_FILE)
        self.config_file = Path(config_file)
        self.settings_cache = self._get_default_settings()

        if required and not self.config_file.is_file():
            raise ConfigurationError(f"Settings file not found: {self.config_file}")

        self._load_settings()
        if overrides:
            self.update_multiple(overrides)

    def _load_settings(self) -> None:
        """Overlay settings from file"""
        if not self.config_file.exists():
            logger.debug(f"No settings file at {self.config_file}, using defaults")
            return

        try:
            with open(self.config_file, 'r') as f:
                loaded = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Failed to load settings from {self.config_file}: {e}") from e

        if not isinstance(loaded, dict):
            raise ConfigurationError(f"{self.config_file} must contain a JSON object")

        self.update_multiple(loaded)
        logger.info(f"Loaded settings from {self.config_file}")

    def _get_default_settings(self) -> Dict[str, Any]:
        """Get default settings for the reference platform"""
        return {
            # Topology
            "physical_cores": 8,
            "cpu_root": "/sys/devices/system/cpu",

            # Control files
            "spl_control": f"{ASUS_WMI_BASE}/ppt_pl1_spl",
            "fppt_control": f"{ASUS_WMI_BASE}/ppt_fppt",
            "sppt_control": f"{ASUS_WMI_BASE}/ppt_pl2_sppt",
            "profile_control": "/sys/firmware/acpi/platform_profile",
            "charge_control": "/sys/class/power_supply/BAT0/charge_control_end_threshold",
            "boost_control": "/sys/devices/system/cpu/cpufreq/boost",

            # Knob ranges (inclusive)
            "tdp_range": [8, 25],
            "charge_range": [50, 100],
        }

    def validate_setting(self, key: str, value: Any) -> bool:
        """Validate a setting value"""
        validators = {
            "physical_cores": lambda v: isinstance(v, int) and not isinstance(v, bool) and v >= 2,
            "cpu_root": _is_path,
            "spl_control": _is_path,
            "fppt_control": _is_path,
            "sppt_control": _is_path,
            "profile_control": _is_path,
            "charge_control": _is_path,
            "boost_control": _is_path,
            "tdp_range": _is_range,
            "charge_range": _is_range,
        }

        if key in validators:
            return validators[key](value)

        return True

    def update_multiple(self, settings: Dict[str, Any]) -> None:
        """Update multiple settings at once, rejecting invalid values"""
        for key, value in settings.items():
            if key not in self.settings_cache:
                logger.warning(f"Ignoring unknown setting: {key}")
                continue
            if not self.validate_setting(key, value):
                raise ConfigurationError(f"Invalid setting: {key}={value!r}")
            self.settings_cache[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        """Get a setting value"""
        return self.settings_cache.get(key, default)

    def get_all(self) -> Dict[str, Any]:
        """Get all settings"""
        return self.settings_cache.copy()

    @property
    def physical_cores(self) -> int:
        return self.settings_cache["physical_cores"]

    @property
    def cpu_root(self) -> str:
        return self.settings_cache["cpu_root"]

    @property
    def cores_range(self) -> Tuple[int, int]:
        return 2, self.physical_cores

    @property
    def tdp_range(self) -> Tuple[int, int]:
        return tuple(self.settings_cache["tdp_range"])

    @property
    def charge_range(self) -> Tuple[int, int]:
        return tuple(self.settings_cache["charge_range"])


# Global settings instance
_settings_instance = None


def get_settings() -> PowerCtlSettings:
    """Get global settings instance"""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = PowerCtlSettings()
    return _settings_instance


def load_settings(config_file: Optional[str] = None) -> PowerCtlSettings:
    """Replace the global settings instance with one read from config_file"""
    global _settings_instance
    _settings_instance = PowerCtlSettings(config_file)
    return _settings_instance


def reset_settings_instance():
    """Reset the global settings instance (for testing)"""
    global _settings_instance
    _settings_instance = None
