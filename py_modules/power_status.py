#!/usr/bin/env python3
"""
Status reporting for powerctl

Reads every knob back from its control file and renders the result as JSON.
Each field is reported as a string, or null when it could not be read.
"""

import json
from dataclasses import dataclass, asdict
from typing import Optional

import psutil

from cpu_manager import CPUManager, get_cpu_manager
from devices.rog_ally import ROGAllyController, get_rog_ally_controller
from powerctl_utils import logger


@dataclass
class PowerStatus:
    """Current value of every knob"""
    cores: Optional[str] = None
    tdp: Optional[str] = None
    charge: Optional[str] = None
    smt: Optional[str] = None
    boost: Optional[str] = None
    battery: Optional[str] = None   # Current charge percentage

    def to_json(self) -> str:
        return json.dumps(asdict(self), indent=1)


def _as_str(value) -> Optional[str]:
    return None if value is None else str(value)


def read_battery_percent() -> Optional[int]:
    """Battery charge percentage, or None on systems without a battery"""
    try:
        battery = psutil.sensors_battery()
    except (AttributeError, NotImplementedError, OSError) as e:
        logger.debug(f"psutil battery detection failed: {e}")
        return None
    if battery is None:
        return None
    return int(round(battery.percent))


def collect_status(cpu: Optional[CPUManager] = None,
                   device: Optional[ROGAllyController] = None) -> PowerStatus:
    """Read boost, charge, SMT, TDP and core count"""
    cpu = cpu or get_cpu_manager()
    device = device or get_rog_ally_controller()

    status = PowerStatus()
    status.boost = _as_str(device.get_boost())
    status.charge = _as_str(device.get_charge_limit())

    reading = cpu.infer_smt_status()
    if reading.error is not None:
        logger.warning(f"SMT status unreadable: {reading.error}")
    status.smt = reading.status.value

    status.tdp = _as_str(device.get_tdp())
    status.cores = str(cpu.get_online_core_count())
    status.battery = _as_str(read_battery_percent())
    return status
