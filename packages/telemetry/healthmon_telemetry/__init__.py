"""Sampling and derivation engine for host telemetry."""

from .assembler import SnapshotAssembler, assemble
from .errors import SubsystemUnavailable, TelemetryError, TransientReadFailure
from .fixture import FixtureHardware, record_fixture, save_fixture
from .hardware import HardwareCollaborator
from .models import (
    CpuMetrics,
    CpuTicks,
    DiskVolume,
    DisplayInfo,
    FailureKind,
    GpuInfo,
    MemoryMetrics,
    OsInfo,
    SectionFailure,
    SensorMetrics,
    Snapshot,
    TemperatureBand,
)
from .rates import RateTracker, compute_rate, counter_reset
from .thresholds import classify_temperature
from .units import UNAVAILABLE, format_bytes, format_celsius, format_duration, format_percent

try:  # pragma: no cover - optional at import time for minimal test environments
    from .provider import PsutilHardware
except Exception:  # pragma: no cover
    PsutilHardware = None  # type: ignore[assignment,misc]

__all__ = [
    "CpuMetrics",
    "CpuTicks",
    "DiskVolume",
    "DisplayInfo",
    "FailureKind",
    "FixtureHardware",
    "GpuInfo",
    "HardwareCollaborator",
    "MemoryMetrics",
    "OsInfo",
    "RateTracker",
    "SectionFailure",
    "SensorMetrics",
    "Snapshot",
    "SnapshotAssembler",
    "SubsystemUnavailable",
    "TelemetryError",
    "TemperatureBand",
    "TransientReadFailure",
    "UNAVAILABLE",
    "assemble",
    "classify_temperature",
    "compute_rate",
    "counter_reset",
    "format_bytes",
    "format_celsius",
    "format_duration",
    "format_percent",
    "record_fixture",
    "save_fixture",
]

if PsutilHardware is not None:
    __all__.append("PsutilHardware")
