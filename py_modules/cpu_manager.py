"""
CPU Management Module
Handles online core count and SMT through per-thread hot-plug control files
"""
from dataclasses import dataclass
from typing import List, Optional, Tuple

from powerctl_enums import SMTStatus
from powerctl_settings import PowerCtlSettings, get_settings
from powerctl_utils import (
    logger,
    SysfsControlPlane,
    ControlFileError,
    UnitFailure,
    AggregateFailure,
)

ONLINE = "1"
OFFLINE = "0"


class CoreTopology:
    """
    Fixed two-threads-per-core layout

    Physical core i runs its primary thread on logical CPU i and its SMT
    sibling on logical CPU i + physical_cores. Core 0 is the boot core and
    is never hot-plugged.
    """

    def __init__(self, physical_cores: int, cpu_root: str = "/sys/devices/system/cpu"):
        self.physical_cores = physical_cores
        self.cpu_root = cpu_root.rstrip("/")

    def online_path(self, cpu: int) -> str:
        return f"{self.cpu_root}/cpu{cpu}/online"

    def sibling_of(self, core: int) -> int:
        return core + self.physical_cores

    def primary_path(self, core: int) -> str:
        return self.online_path(core)

    def sibling_path(self, core: int) -> str:
        return self.online_path(self.sibling_of(core))

    def thread_paths(self, core: int) -> Tuple[str, str]:
        """(primary, sibling) online paths of a physical core"""
        return self.primary_path(core), self.sibling_path(core)

    def hotplug_cores(self) -> range:
        """Physical cores that can be taken offline"""
        return range(1, self.physical_cores)

    def all_cores(self) -> range:
        return range(0, self.physical_cores)

    @property
    def logical_cpus(self) -> int:
        return self.physical_cores * 2


@dataclass(frozen=True)
class SMTReading:
    """Result of probing sibling pairs"""
    status: SMTStatus
    error: Optional[ControlFileError] = None

    @property
    def effective(self) -> SMTStatus:
        """Status with an unreadable topology treated as SMT off"""
        if self.status is SMTStatus.INDETERMINATE:
            return SMTStatus.OFF
        return self.status


def primary_online_target(count: int, unit: int) -> str:
    """Online value for the write at position `unit` of a core count change.

    The threshold runs over the interleaved primary/sibling sequence, so
    physical cores [1, count) end up online.
    """
    return ONLINE if unit < count * 2 - 2 else OFFLINE


def sibling_online_target(count: int, unit: int, smt: SMTStatus) -> str:
    if smt is SMTStatus.OFF:
        return OFFLINE
    return primary_online_target(count, unit)


class CPUManager:
    """Manages online cores and SMT siblings."""

    def __init__(self, control=None, topology: Optional[CoreTopology] = None,
                 settings: Optional[PowerCtlSettings] = None):
        settings = settings or get_settings()
        self.control = control or SysfsControlPlane()
        self.topology = topology or CoreTopology(settings.physical_cores, settings.cpu_root)

    def _read(self, path: str) -> Tuple[Optional[str], Optional[ControlFileError]]:
        value, err = self.control.read(path)
        if err is not None:
            return None, ControlFileError(path, err)
        return value, None

    def _apply_writes(self, operation: str, plan: List[Tuple[int, str]],
                      label: str = "core") -> Optional[AggregateFailure]:
        """Write every (cpu, value) in order; collect failures without stopping"""
        failures = []
        for unit, (cpu, value) in enumerate(plan):
            path = self.topology.online_path(cpu)
            err = self.control.write(path, value)
            if err is not None:
                failures.append(UnitFailure(unit=unit, cpu=cpu, path=path, error=err, label=label))

        if failures:
            logger.error(f"Failed to {operation} on {len(failures)}/{len(plan)} CPUs")
            return AggregateFailure(operation, failures)
        return None

    # SMT status
    def infer_smt_status(self) -> SMTReading:
        """Probe sibling pairs; the first primary-online/sibling-offline pair decides OFF"""
        for core in self.topology.hotplug_cores():
            primary_path, sibling_path = self.topology.thread_paths(core)
            primary, primary_err = self._read(primary_path)
            sibling, sibling_err = self._read(sibling_path)

            err = primary_err or sibling_err
            if err is not None:
                return SMTReading(SMTStatus.INDETERMINATE, err)

            if primary == ONLINE and sibling != primary:
                logger.debug(f"Core {core} runs without its sibling, SMT is off")
                return SMTReading(SMTStatus.OFF)

        return SMTReading(SMTStatus.ON)

    def get_smt_status(self) -> SMTStatus:
        return self.infer_smt_status().status

    # Core count
    def plan_core_count(self, count: int, smt: SMTStatus) -> List[Tuple[int, str]]:
        """(cpu, value) writes in primary/sibling interleaved order"""
        plan = []
        for core in self.topology.hotplug_cores():
            plan.append((core, primary_online_target(count, len(plan))))
            plan.append((self.topology.sibling_of(core), sibling_online_target(count, len(plan), smt)))
        return plan

    def set_core_count(self, count: int) -> Optional[AggregateFailure]:
        """Bring physical cores [0, count) online and the rest offline"""
        reading = self.infer_smt_status()
        if reading.error is not None:
            logger.warning(f"Could not determine SMT state, assuming off: {reading.error}")
        smt = reading.effective

        logger.info(f"Setting CPU cores to {count} (SMT {smt.value})")
        return self._apply_writes("set some CPU cores", self.plan_core_count(count, smt))

    def get_online_core_count(self) -> int:
        """Boot core plus every hot-pluggable primary that reads online"""
        cores = 1
        for core in self.topology.hotplug_cores():
            value, err = self._read(self.topology.primary_path(core))
            if err is None and value == ONLINE:
                cores += 1
        return cores

    # SMT
    def plan_smt(self, enabled: bool) -> List[Tuple[int, str]]:
        """Sibling writes for every physical core, keeping offline cores' siblings down"""
        requested = ONLINE if enabled else OFFLINE
        plan = []
        for core in self.topology.all_cores():
            sibling = self.topology.sibling_of(core)
            if core > 0:
                value, err = self._read(self.topology.primary_path(core))
                if err is not None:
                    logger.debug(f"Could not read core {core} state, treating it as online: {err}")
                if value == OFFLINE:
                    plan.append((sibling, OFFLINE))
                    continue
            plan.append((sibling, requested))
        return plan

    def set_smt(self, enabled: bool) -> Optional[AggregateFailure]:
        """Set SMT enabled/disabled on every sibling thread"""
        logger.info(f"Setting SMT {'on' if enabled else 'off'}")
        return self._apply_writes("set some SMT cores", self.plan_smt(enabled), label="SMT core")


# Global CPU manager instance
_cpu_manager = None


def get_cpu_manager() -> CPUManager:
    """Get global CPU manager instance"""
    global _cpu_manager
    if _cpu_manager is None:
        _cpu_manager = CPUManager()
    return _cpu_manager


def reset_cpu_manager():
    """Drop the global instance so the next call picks up new settings"""
    global _cpu_manager
    _cpu_manager = None
