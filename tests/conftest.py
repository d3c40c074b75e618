"""
powerctl Test Configuration and Fixtures
Shared fixtures for all tests.
"""

import errno
import json
from pathlib import Path
from typing import Dict, Iterable, Optional

import pytest

import cpu_manager
import powerctl_settings
from cpu_manager import CPUManager, CoreTopology
from devices import rog_ally
from devices.rog_ally import ROGAllyController
from powerctl_settings import PowerCtlSettings


CPU_ROOT = "/fake/sys/devices/system/cpu"
P = 8


class FakeControlPlane:
    """In-memory control files recording every access"""

    def __init__(self, values: Optional[Dict[str, str]] = None,
                 fail_reads: Iterable[str] = (), fail_writes: Iterable[str] = ()):
        self.values = dict(values or {})
        self.fail_reads = set(fail_reads)
        self.fail_writes = set(fail_writes)
        self.reads = []
        self.writes = []

    def read(self, path):
        self.reads.append(path)
        if path in self.fail_reads:
            return None, OSError(errno.EIO, "Input/output error", path)
        if path not in self.values:
            return None, FileNotFoundError(errno.ENOENT, "No such file or directory", path)
        return self.values[path], None

    def write(self, path, value):
        self.writes.append((path, value))
        if path in self.fail_writes:
            return PermissionError(errno.EACCES, "Permission denied", path)
        self.values[path] = value
        return None


def online_path(cpu: int) -> str:
    return f"{CPU_ROOT}/cpu{cpu}/online"


def cpu_states(primary: Dict[int, str] = None, sibling: Dict[int, str] = None,
               default: str = "1") -> Dict[str, str]:
    """Online values for every logical CPU, with per-core overrides"""
    primary = primary or {}
    sibling = sibling or {}
    values = {}
    for core in range(P):
        values[online_path(core)] = primary.get(core, default)
        values[online_path(core + P)] = sibling.get(core, default)
    return values


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Never read the host's settings file; drop cached singletons"""
    monkeypatch.setenv(powerctl_settings.CONFIG_ENV_VAR, str(tmp_path / "absent.json"))
    powerctl_settings.reset_settings_instance()
    cpu_manager.reset_cpu_manager()
    rog_ally.reset_rog_ally_controller()
    yield
    powerctl_settings.reset_settings_instance()
    cpu_manager.reset_cpu_manager()
    rog_ally.reset_rog_ally_controller()


@pytest.fixture
def settings(tmp_path) -> PowerCtlSettings:
    return PowerCtlSettings(overrides={"cpu_root": CPU_ROOT})


@pytest.fixture
def topology() -> CoreTopology:
    return CoreTopology(P, CPU_ROOT)


@pytest.fixture
def fake_control() -> FakeControlPlane:
    return FakeControlPlane(cpu_states())


@pytest.fixture
def manager(fake_control, topology, settings) -> CPUManager:
    return CPUManager(control=fake_control, topology=topology, settings=settings)


@pytest.fixture
def device(settings) -> ROGAllyController:
    control = FakeControlPlane({
        settings.get("spl_control"): "15",
        settings.get("fppt_control"): "15",
        settings.get("sppt_control"): "15",
        settings.get("profile_control"): "balanced",
        settings.get("charge_control"): "80",
        settings.get("boost_control"): "1",
    })
    return ROGAllyController(control=control, settings=settings)


@pytest.fixture
def sysfs_tree(tmp_path) -> Path:
    """Real files laid out like /sys/devices/system/cpu plus the ASUS knobs"""
    root = tmp_path / "sys"
    cpu_root = root / "devices/system/cpu"
    for cpu in range(P * 2):
        online = cpu_root / f"cpu{cpu}" / "online"
        online.parent.mkdir(parents=True)
        online.write_text("1\n")

    for rel, value in [
        ("devices/platform/asus-nb-wmi/ppt_pl1_spl", "15\n"),
        ("devices/platform/asus-nb-wmi/ppt_fppt", "15\n"),
        ("devices/platform/asus-nb-wmi/ppt_pl2_sppt", "15\n"),
        ("firmware/acpi/platform_profile", "balanced\n"),
        ("class/power_supply/BAT0/charge_control_end_threshold", "80\n"),
        ("devices/system/cpu/cpufreq/boost", "1\n"),
    ]:
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(value)
    return root


@pytest.fixture
def sysfs_config(tmp_path, sysfs_tree) -> Path:
    """Settings file pointing every control at sysfs_tree"""
    config = tmp_path / "powerctl.json"
    config.write_text(json.dumps({
        "cpu_root": str(sysfs_tree / "devices/system/cpu"),
        "spl_control": str(sysfs_tree / "devices/platform/asus-nb-wmi/ppt_pl1_spl"),
        "fppt_control": str(sysfs_tree / "devices/platform/asus-nb-wmi/ppt_fppt"),
        "sppt_control": str(sysfs_tree / "devices/platform/asus-nb-wmi/ppt_pl2_sppt"),
        "profile_control": str(sysfs_tree / "firmware/acpi/platform_profile"),
        "charge_control": str(sysfs_tree / "class/power_supply/BAT0/charge_control_end_threshold"),
        "boost_control": str(sysfs_tree / "devices/system/cpu/cpufreq/boost"),
    }))
    return config
