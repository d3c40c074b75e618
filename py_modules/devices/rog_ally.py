"""
powerctl - ROG Ally Support Module
TDP, battery charge limit and CPU boost controls for ASUS ROG Ally devices

Copyright (C) 2025 Fewtarius

This program is free software: you can redistribute it and/or modify
it under the terms of the GNU General Public License as published by
the Free Software Foundation, either version 3 of the License, or
(at your option) any later version.

This program is distributed in the hope that it will be useful,
but WITHOUT ANY WARRANTY; without even the implied warranty of
MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
GNU General Public License for more details.

You should have received a copy of the GNU General Public License
along with this program.  If not, see <https://www.gnu.org/licenses/>.
"""

from typing import Optional

from powerctl_enums import PlatformProfile
from powerctl_settings import PowerCtlSettings, get_settings
from powerctl_utils import logger, SysfsControlPlane, ControlFileError


class ROGAllyController:
    """Controller for the ASUS WMI, ACPI and cpufreq knobs of a ROG Ally"""

    def __init__(self, control=None, settings: Optional[PowerCtlSettings] = None):
        settings = settings or get_settings()
        self.control = control or SysfsControlPlane()
        self.spl_control = settings.get("spl_control")
        self.fppt_control = settings.get("fppt_control")
        self.sppt_control = settings.get("sppt_control")
        self.profile_control = settings.get("profile_control")
        self.charge_control = settings.get("charge_control")
        self.boost_control = settings.get("boost_control")

    def _write_sysfs_value(self, path: str, value: str) -> Optional[ControlFileError]:
        err = self.control.write(path, value)
        if err is not None:
            return ControlFileError(path, err)
        return None

    def _read_sysfs_value(self, path: str) -> Optional[str]:
        value, err = self.control.read(path)
        if err is not None:
            logger.debug(f"Failed to read {path}: {err}")
            return None
        return value

    def _read_sysfs_int(self, path: str) -> Optional[int]:
        raw = self._read_sysfs_value(path)
        if raw is None:
            return None
        try:
            return int(raw)
        except ValueError:
            logger.warning(f"Unexpected value {raw!r} in {path}")
            return None

    def set_tdp(self, watts: int) -> Optional[ControlFileError]:
        """Set the platform profile tier, then SPL, fast and slow PPT limits to `watts`

        Stops at the first failed write.
        """
        profile = PlatformProfile.for_tdp(watts)
        writes = [
            (self.profile_control, profile.value),
            (self.spl_control, str(watts)),
            (self.fppt_control, str(watts)),
            (self.sppt_control, str(watts)),
        ]

        for path, value in writes:
            err = self._write_sysfs_value(path, value)
            if err is not None:
                logger.error(f"Failed to set TDP {watts}W: {err}")
                return err

        logger.info(f"ROG Ally TDP set to {watts}W ({profile.value})")
        return None

    def get_tdp(self) -> Optional[int]:
        """Get current sustained power limit (SPL)"""
        return self._read_sysfs_int(self.spl_control)

    def get_platform_profile(self) -> Optional[str]:
        return self._read_sysfs_value(self.profile_control)

    def set_charge_limit(self, limit: int) -> Optional[ControlFileError]:
        """Set battery charge end threshold in percent"""
        err = self._write_sysfs_value(self.charge_control, str(limit))
        if err is None:
            logger.info(f"ROG Ally battery charge limit set to: {limit}%")
        return err

    def get_charge_limit(self) -> Optional[int]:
        return self._read_sysfs_int(self.charge_control)

    def set_boost(self, enabled: bool) -> Optional[ControlFileError]:
        """Set CPU boost enabled/disabled"""
        err = self._write_sysfs_value(self.boost_control, "1" if enabled else "0")
        if err is None:
            logger.info(f"CPU boost: {enabled}")
        return err

    def get_boost(self) -> Optional[int]:
        return self._read_sysfs_int(self.boost_control)


# Global controller instance
_rog_ally_controller = None


def get_rog_ally_controller() -> ROGAllyController:
    """Get global ROG Ally controller instance"""
    global _rog_ally_controller
    if _rog_ally_controller is None:
        _rog_ally_controller = ROGAllyController()
    return _rog_ally_controller


def reset_rog_ally_controller():
    global _rog_ally_controller
    _rog_ally_controller = None
