"""
powerctl Utility Functions
Control file primitives, range validation and error types shared by every knob
"""
import os
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

logger = logging.getLogger("powerctl")

# Control files hold single-token values; anything longer is truncated
READ_BUDGET = 16


def read_sysfs_value(path: str) -> Tuple[Optional[str], Optional[OSError]]:
    """
    Read a control file

    Args:
        path: Control file path

    Returns:
        Tuple of (trimmed value, error); exactly one of them is None.
        Undecodable bytes come back as U+FFFD.
    """
    try:
        with open(path, 'rb') as f:
            raw = f.read(READ_BUDGET)
    except OSError as e:
        logger.debug(f"Failed to read {path}: {e}")
        return None, e
    return raw.decode('utf-8', errors='replace').strip(), None


def write_sysfs_value(path: str, value: str) -> Optional[OSError]:
    """
    Write a literal value to a control file

    The file is opened write-only and never created; sysfs ignores the truncation.

    Returns:
        None on success, the OSError otherwise
    """
    try:
        fd = os.open(path, os.O_WRONLY | os.O_TRUNC)
        with os.fdopen(fd, 'w') as f:
            f.write(value)
    except OSError as e:
        logger.error(f"Failed to write {value} to {path}: {e}")
        return e

    logger.info(f"{value} > {path}")
    return None


class SysfsControlPlane:
    """Reads and writes kernel control files"""

    def read(self, path: str) -> Tuple[Optional[str], Optional[OSError]]:
        return read_sysfs_value(path)

    def write(self, path: str, value: str) -> Optional[OSError]:
        return write_sysfs_value(path, value)


def validate_range(value: int, minimum: int, maximum: int) -> None:
    """Raise RangeValidationError unless minimum <= value <= maximum"""
    if value < minimum or value > maximum:
        raise RangeValidationError(value, minimum, maximum)


def in_range(minimum: int, maximum: int) -> Callable[[int], None]:
    """Build a validator bound to a closed interval"""
    def validator(value: int) -> None:
        validate_range(value, minimum, maximum)
    return validator


class PowerCtlError(Exception):
    """Base exception for powerctl-specific errors"""
    pass


class ConfigurationError(PowerCtlError):
    """Configuration-related errors"""
    pass


class RangeValidationError(PowerCtlError, ValueError):
    """Knob value outside its valid interval"""

    def __init__(self, value: int, minimum: int, maximum: int):
        self.value = value
        self.minimum = minimum
        self.maximum = maximum
        super().__init__(f"{value} is out of range ({minimum} - {maximum})")


class ControlFileError(PowerCtlError):
    """A single control file could not be read or written"""

    def __init__(self, path: str, cause: OSError):
        self.path = path
        self.cause = cause
        super().__init__(f"{path}: {cause}")


@dataclass
class UnitFailure:
    """One failed write inside a multi-unit operation"""
    unit: int       # Ordinal in the operation's write sequence
    cpu: int        # Logical CPU index
    path: str
    error: OSError
    label: str = "core"

    def __str__(self) -> str:
        return f"{self.label} {self.unit}: {self.error}"


class AggregateFailure(PowerCtlError):
    """Every failed unit of an operation that attempted all of its units"""

    def __init__(self, operation: str, failures: List[UnitFailure]):
        self.operation = operation
        self.failures = list(failures)
        details = ", ".join(str(f) for f in self.failures)
        super().__init__(f"failed to {operation}: [{details}]")

    @property
    def units(self) -> List[int]:
        return [f.unit for f in self.failures]

    def __len__(self) -> int:
        return len(self.failures)
