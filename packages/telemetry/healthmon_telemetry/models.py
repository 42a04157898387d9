"""Typed telemetry models.

Everything here is frozen and holds tuples rather than lists, so a snapshot can be
handed to another thread without copying or locking. A field set to ``None`` means
the value was not measured; it is never a stand-in for zero.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Mapping


IDLE_STATES = ("idle", "iowait")


@dataclass(frozen=True)
class CpuTicks:
    states: tuple[str, ...]
    values: tuple[float, ...]

    def __post_init__(self) -> None:
        if len(self.states) != len(self.values):
            raise ValueError("states and values must have the same length")

    @classmethod
    def from_mapping(cls, counters: Mapping[str, float]) -> CpuTicks:
        return cls(states=tuple(counters), values=tuple(float(v) for v in counters.values()))

    def idle(self) -> float:
        return sum(v for s, v in zip(self.states, self.values) if s in IDLE_STATES)

    def total(self) -> float:
        return sum(self.values)

    def as_dict(self) -> dict[str, float]:
        return dict(zip(self.states, self.values))


class TemperatureBand(str, Enum):
    UNKNOWN = "Unknown"
    NORMAL = "Normal"
    WARM = "Warm"
    CRITICAL = "Critical"


class FailureKind(str, Enum):
    UNAVAILABLE = "unavailable"
    TRANSIENT = "transient"
    TIMEOUT = "timeout"
    INVALID = "invalid"


# Raw readings returned by a hardware collaborator.


@dataclass(frozen=True)
class CpuReading:
    identifier: str
    physical_cores: int | None
    logical_cores: int | None
    ticks: CpuTicks


@dataclass(frozen=True)
class MemoryReading:
    total_bytes: int
    available_bytes: int


@dataclass(frozen=True)
class VolumeReading:
    name: str
    mount: str
    fs_type: str
    total_bytes: int
    usable_bytes: int


@dataclass(frozen=True)
class SensorReading:
    cpu_temp_c: float | None
    fan_rpm: tuple[int, ...] | None
    cpu_voltage_v: float | None


@dataclass(frozen=True)
class GpuReading:
    name: str
    vendor: str
    version: str
    vram_bytes: int


@dataclass(frozen=True)
class DisplayReading:
    name: str
    edid_bytes: int


@dataclass(frozen=True)
class OsReading:
    name: str
    release: str
    version: str


# Derived snapshot sections.


@dataclass(frozen=True)
class CpuMetrics:
    identifier: str
    physical_cores: int | None
    logical_cores: int | None
    load: float | None
    load_clamped: bool = False


@dataclass(frozen=True)
class MemoryMetrics:
    total_bytes: int
    available_bytes: int
    used_bytes: int | None

    @property
    def usage(self) -> float | None:
        if self.used_bytes is None or self.total_bytes <= 0:
            return None
        return self.used_bytes / self.total_bytes


@dataclass(frozen=True)
class DiskVolume:
    name: str
    mount: str
    fs_type: str
    total_bytes: int
    usable_bytes: int
    used_bytes: int | None
    usage: float | None

    @property
    def available(self) -> bool:
        return self.usage is not None


@dataclass(frozen=True)
class SensorMetrics:
    cpu_temp_c: float | None
    temp_band: TemperatureBand
    fan_rpm: tuple[int, ...] | None
    cpu_voltage_v: float | None


@dataclass(frozen=True)
class GpuInfo:
    name: str
    vendor: str
    version: str
    vram_bytes: int


@dataclass(frozen=True)
class DisplayInfo:
    index: int
    name: str
    edid_bytes: int


@dataclass(frozen=True)
class OsInfo:
    name: str
    release: str
    version: str

    @property
    def label(self) -> str:
        parts = [self.name, self.release]
        text = " ".join(p for p in parts if p)
        return f"{text} ({self.version})" if self.version else text


@dataclass(frozen=True)
class SectionFailure:
    section: str
    kind: FailureKind
    detail: str = ""


SECTIONS = ("os", "cpu", "memory", "disks", "sensors", "gpus", "displays", "uptime")


@dataclass(frozen=True)
class Snapshot:
    timestamp: datetime
    os: OsInfo | None
    cpu: CpuMetrics | None
    memory: MemoryMetrics | None
    disks: tuple[DiskVolume, ...] | None
    sensors: SensorMetrics | None
    gpus: tuple[GpuInfo, ...] | None
    displays: tuple[DisplayInfo, ...] | None
    uptime_s: int | None
    failures: tuple[SectionFailure, ...] = ()

    @classmethod
    def unavailable(cls, timestamp: datetime, detail: str = "", kind: FailureKind = FailureKind.TRANSIENT) -> Snapshot:
        return cls(
            timestamp=timestamp,
            os=None,
            cpu=None,
            memory=None,
            disks=None,
            sensors=None,
            gpus=None,
            displays=None,
            uptime_s=None,
            failures=tuple(SectionFailure(section=s, kind=kind, detail=detail) for s in SECTIONS),
        )

    def failure_for(self, section: str) -> SectionFailure | None:
        for failure in self.failures:
            if failure.section == section:
                return failure
        return None

    def is_available(self, section: str) -> bool:
        if section == "uptime":
            return self.uptime_s is not None
        return getattr(self, section) is not None
