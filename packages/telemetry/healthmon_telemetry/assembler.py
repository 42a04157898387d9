"""One polling cycle: query every subsystem, derive metrics, build a Snapshot."""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Sequence

from .errors import SubsystemUnavailable
from .hardware import HardwareCollaborator
from .models import (
    CpuMetrics,
    CpuReading,
    CpuTicks,
    DiskVolume,
    DisplayInfo,
    DisplayReading,
    FailureKind,
    GpuInfo,
    GpuReading,
    MemoryMetrics,
    MemoryReading,
    OsInfo,
    OsReading,
    SectionFailure,
    SensorMetrics,
    SensorReading,
    Snapshot,
    TemperatureBand,
    VolumeReading,
)
from .rates import compute_rate, counter_reset
from .thresholds import CRITICAL_ABOVE_C, WARM_ABOVE_C, classify_temperature


logger = logging.getLogger("healthmon.telemetry.assembler")

# Snapshot section name -> collaborator method.
_QUERIES = (
    ("os", "os_info"),
    ("cpu", "cpu"),
    ("memory", "memory"),
    ("disks", "volumes"),
    ("sensors", "sensors"),
    ("gpus", "gpus"),
    ("displays", "displays"),
    ("uptime", "uptime_seconds"),
)


@dataclass(frozen=True)
class _Outcome:
    value: Any = None
    failure: SectionFailure | None = None


def _failed(section: str, exc: BaseException) -> _Outcome:
    kind = FailureKind.UNAVAILABLE if isinstance(exc, SubsystemUnavailable) else FailureKind.TRANSIENT
    detail = str(exc) or type(exc).__name__
    return _Outcome(failure=SectionFailure(section=section, kind=kind, detail=detail))


def _derive_cpu(reading: CpuReading, previous: CpuTicks | None) -> tuple[CpuMetrics, list[SectionFailure]]:
    failures: list[SectionFailure] = []
    load: float | None = None
    clamped = False
    if previous is not None:
        if counter_reset(previous, reading.ticks):
            load, clamped = 0.0, True
            failures.append(SectionFailure("cpu", FailureKind.INVALID, "tick counters went backwards; load clamped to 0"))
        else:
            load = compute_rate(previous, reading.ticks)
    cpu = CpuMetrics(
        identifier=reading.identifier,
        physical_cores=reading.physical_cores,
        logical_cores=reading.logical_cores,
        load=load,
        load_clamped=clamped,
    )
    return cpu, failures


def _used_bytes(total: int, available: int) -> int | None:
    if total <= 0:
        return None
    used = total - available
    if used < 0 or used > total:
        return None
    return used


def _derive_memory(reading: MemoryReading) -> tuple[MemoryMetrics, list[SectionFailure]]:
    used = _used_bytes(reading.total_bytes, reading.available_bytes)
    failures: list[SectionFailure] = []
    if used is None:
        failures.append(
            SectionFailure(
                "memory",
                FailureKind.INVALID,
                f"available {reading.available_bytes} inconsistent with total {reading.total_bytes}",
            )
        )
    memory = MemoryMetrics(
        total_bytes=reading.total_bytes,
        available_bytes=reading.available_bytes,
        used_bytes=used,
    )
    return memory, failures


def _derive_disks(readings: Sequence[VolumeReading]) -> tuple[tuple[DiskVolume, ...], list[SectionFailure]]:
    volumes: list[DiskVolume] = []
    failures: list[SectionFailure] = []
    for vol in readings:
        used = _used_bytes(vol.total_bytes, vol.usable_bytes)
        usage = (used / vol.total_bytes) if used is not None else None
        if used is None:
            reason = "reports zero capacity" if vol.total_bytes <= 0 else "usable space exceeds capacity"
            failures.append(SectionFailure("disks", FailureKind.INVALID, f"{vol.mount} {reason}"))
        volumes.append(
            DiskVolume(
                name=vol.name,
                mount=vol.mount,
                fs_type=vol.fs_type,
                total_bytes=vol.total_bytes,
                usable_bytes=vol.usable_bytes,
                used_bytes=used,
                usage=usage,
            )
        )
    return tuple(volumes), failures


def _derive_sensors(
    reading: SensorReading, warm_above: float, critical_above: float
) -> tuple[SensorMetrics, list[SectionFailure]]:
    band = classify_temperature(reading.cpu_temp_c, warm_above=warm_above, critical_above=critical_above)
    voltage = float(reading.cpu_voltage_v) if reading.cpu_voltage_v is not None else None
    sensors = SensorMetrics(
        cpu_temp_c=(None if band == TemperatureBand.UNKNOWN else float(reading.cpu_temp_c)),  # type: ignore[arg-type]
        temp_band=band,
        fan_rpm=(tuple(int(rpm) for rpm in reading.fan_rpm) if reading.fan_rpm is not None else None),
        cpu_voltage_v=(voltage if voltage is not None and voltage > 0 else None),
    )
    return sensors, []


def _derive_gpus(readings: Sequence[GpuReading]) -> tuple[tuple[GpuInfo, ...], list[SectionFailure]]:
    gpus = tuple(
        GpuInfo(name=g.name, vendor=g.vendor, version=g.version, vram_bytes=int(g.vram_bytes)) for g in readings
    )
    return gpus, []


def _derive_displays(readings: Sequence[DisplayReading]) -> tuple[tuple[DisplayInfo, ...], list[SectionFailure]]:
    displays = tuple(
        DisplayInfo(index=i, name=d.name, edid_bytes=int(d.edid_bytes)) for i, d in enumerate(readings, start=1)
    )
    return displays, []


def _derive_os(reading: OsReading) -> tuple[OsInfo, list[SectionFailure]]:
    return OsInfo(name=str(reading.name), release=str(reading.release), version=str(reading.version)), []


def _derive_uptime(raw: Any) -> tuple[int | None, list[SectionFailure]]:
    seconds = int(raw)
    if seconds < 0:
        return None, [SectionFailure("uptime", FailureKind.INVALID, f"negative uptime {raw}")]
    return seconds, []


def _guarded(section: str, derive: Callable[..., tuple[Any, list[SectionFailure]]], *args: Any):
    """Derive one section; a malformed reading fails that section and no other."""
    try:
        return derive(*args)
    except Exception as exc:
        detail = f"malformed reading: {str(exc) or type(exc).__name__}"
        logger.warning("subsystem %s %s", section, detail, extra={"event": "derivation_failed"})
        return None, [SectionFailure(section, FailureKind.INVALID, detail)]


class SnapshotAssembler:
    """Builds one Snapshot per call from a hardware collaborator.

    With ``parallel`` enabled every subsystem is queried on its own daemon thread
    and the whole cycle is bounded by ``query_timeout_s``. A query still running
    from an earlier cycle is not started again; it keeps reporting ``TIMEOUT``
    until it returns, so a wedged driver holds at most one thread per subsystem
    and never keeps the interpreter from exiting.
    """

    def __init__(
        self,
        hardware: HardwareCollaborator,
        query_timeout_s: float = 1.5,
        parallel: bool = True,
        warm_above: float = WARM_ABOVE_C,
        critical_above: float = CRITICAL_ABOVE_C,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.hardware = hardware
        self.query_timeout_s = query_timeout_s
        self.parallel = parallel
        self.warm_above = warm_above
        self.critical_above = critical_above
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._pending: dict[str, Future] = {}
        self._last_kinds: dict[str, FailureKind | None] = {}

    def baseline(self) -> CpuTicks | None:
        """Immediate tick read used to seed the first rate computation."""
        try:
            return self.hardware.cpu().ticks
        except Exception as exc:
            logger.warning("cpu baseline read failed: %s", exc, extra={"event": "baseline_failed"})
            return None

    def assemble(self, previous_ticks: CpuTicks | None) -> tuple[Snapshot, CpuTicks | None]:
        timestamp = self._clock()
        started = time.monotonic()
        outcomes = self._query_all()

        failures: list[SectionFailure] = [o.failure for o in outcomes.values() if o.failure is not None]
        self._log_transitions(outcomes)

        def derive(section: str, fn: Callable[..., tuple[Any, list[SectionFailure]]], *extra: Any) -> Any:
            reading = outcomes[section].value
            if reading is None:
                return None
            value, section_failures = _guarded(section, fn, reading, *extra)
            failures.extend(section_failures)
            return value

        os_info = derive("os", _derive_os)
        cpu = derive("cpu", _derive_cpu, previous_ticks)
        # Ticks advance only when the sample produced a CPU section.
        new_ticks = outcomes["cpu"].value.ticks if cpu is not None else previous_ticks
        memory = derive("memory", _derive_memory)
        disks = derive("disks", _derive_disks)
        sensors = derive("sensors", _derive_sensors, self.warm_above, self.critical_above)
        gpus = derive("gpus", _derive_gpus)
        displays = derive("displays", _derive_displays)
        uptime_s = derive("uptime", _derive_uptime)

        snapshot = Snapshot(
            timestamp=timestamp,
            os=os_info,
            cpu=cpu,
            memory=memory,
            disks=disks,
            sensors=sensors,
            gpus=gpus,
            displays=displays,
            uptime_s=uptime_s,
            failures=tuple(failures),
        )
        logger.debug(
            "snapshot assembled in %.3fs with %d failures",
            time.monotonic() - started,
            len(failures),
            extra={"event": "snapshot_assembled"},
        )
        return snapshot, new_ticks

    def close(self) -> None:
        # Query threads are daemons; a wedged one is simply forgotten.
        self._pending.clear()

    def _spawn(self, section: str, method: str) -> Future:
        future: Future = Future()

        def _run() -> None:
            try:
                result = getattr(self.hardware, method)()
            except BaseException as exc:
                future.set_exception(exc)
            else:
                future.set_result(result)

        threading.Thread(target=_run, name=f"healthmon-query-{section}", daemon=True).start()
        return future

    def _query_all(self) -> dict[str, _Outcome]:
        if not self.parallel:
            return {section: self._query_inline(section, method) for section, method in _QUERIES}

        deadline = time.monotonic() + self.query_timeout_s
        outcomes: dict[str, _Outcome] = {}
        futures: dict[str, Future] = {}
        for section, method in _QUERIES:
            pending = self._pending.get(section)
            if pending is not None and not pending.done():
                outcomes[section] = _Outcome(
                    failure=SectionFailure(section, FailureKind.TIMEOUT, "previous query still running")
                )
                continue
            self._pending.pop(section, None)
            futures[section] = self._spawn(section, method)

        for section, future in futures.items():
            remaining = max(0.0, deadline - time.monotonic())
            try:
                outcomes[section] = _Outcome(value=future.result(timeout=remaining))
            except FutureTimeout:
                self._pending[section] = future
                outcomes[section] = _Outcome(
                    failure=SectionFailure(section, FailureKind.TIMEOUT, f"no answer within {self.query_timeout_s:.2f}s")
                )
            except Exception as exc:
                outcomes[section] = _failed(section, exc)

        return {section: outcomes[section] for section, _method in _QUERIES}

    def _query_inline(self, section: str, method: str) -> _Outcome:
        try:
            return _Outcome(value=getattr(self.hardware, method)())
        except Exception as exc:
            return _failed(section, exc)

    def _log_transitions(self, outcomes: dict[str, _Outcome]) -> None:
        for section, outcome in outcomes.items():
            kind = outcome.failure.kind if outcome.failure is not None else None
            previous = self._last_kinds.get(section)
            self._last_kinds[section] = kind
            if kind == previous:
                continue
            if kind is None:
                if previous is not None:
                    logger.info("subsystem %s recovered", section, extra={"event": "subsystem_recovered"})
                continue
            level = logging.INFO if kind == FailureKind.UNAVAILABLE else logging.WARNING
            logger.log(
                level,
                "subsystem %s %s: %s",
                section,
                kind.value,
                outcome.failure.detail,  # type: ignore[union-attr]
                extra={"event": "subsystem_failed"},
            )


def assemble(hardware: HardwareCollaborator, previous_ticks: CpuTicks | None) -> tuple[Snapshot, CpuTicks | None]:
    """Single sequential cycle, for callers that do not keep an assembler around."""
    return SnapshotAssembler(hardware, parallel=False).assemble(previous_ticks)
