"""
powerctl Enumerations
Core enums for the powerctl controller
"""
from enum import Enum


class SMTStatus(Enum):
    """Platform SMT state as inferred from sibling threads"""
    ON = "on"
    OFF = "off"
    INDETERMINATE = "indeterminate"


class PlatformProfile(Enum):
    """ACPI platform profile tiers selected from the TDP value"""
    QUIET = "quiet"
    BALANCED = "balanced"
    PERFORMANCE = "performance"

    @classmethod
    def for_tdp(cls, watts: int) -> "PlatformProfile":
        """Pick the profile tier for a TDP in watts"""
        if watts < 17:
            return cls.QUIET
        elif watts < 25:
            return cls.BALANCED
        return cls.PERFORMANCE


class Knob(Enum):
    """User-facing knobs, in the order they are applied"""
    CORES = "cores"
    TDP = "tdp"
    CHARGE = "charge"
    SMT = "smt"
    BOOST = "boost"
