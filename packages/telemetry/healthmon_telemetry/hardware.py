"""Collaborator protocol the assembler reads hardware through."""

from __future__ import annotations

from typing import Protocol, Sequence

from .models import CpuReading, DisplayReading, GpuReading, MemoryReading, OsReading, SensorReading, VolumeReading


class HardwareCollaborator(Protocol):
    """Per-subsystem read operations.

    Any method may raise ``SubsystemUnavailable`` when the platform cannot answer
    the query at all. Any other exception is treated as a failure of this cycle
    only. Successful empty results (no GPUs, no fans) are returned as empty
    sequences, never as errors.
    """

    def os_info(self) -> OsReading: ...

    def cpu(self) -> CpuReading: ...

    def memory(self) -> MemoryReading: ...

    def volumes(self) -> Sequence[VolumeReading]: ...

    def sensors(self) -> SensorReading: ...

    def gpus(self) -> Sequence[GpuReading]: ...

    def displays(self) -> Sequence[DisplayReading]: ...

    def uptime_seconds(self) -> int: ...
