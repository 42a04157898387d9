"""Recorded hardware readings: load a JSON fixture, or capture one from live hardware."""

from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path
from typing import Any

from .errors import SubsystemUnavailable, TransientReadFailure
from .hardware import HardwareCollaborator
from .models import CpuReading, CpuTicks, DisplayReading, GpuReading, MemoryReading, OsReading, SensorReading, VolumeReading


FIXTURE_VERSION = 1

_SECTIONS = ("os_info", "cpu", "memory", "volumes", "sensors", "gpus", "displays", "uptime_seconds")


def _optional_float(value: Any) -> float | None:
    return None if value is None else float(value)


class FixtureHardware:
    """Serves readings from a fixture document.

    A section missing from the document is unsupported. A section written as
    ``{"error": "..."}`` fails transiently on every read. ``cpu.ticks`` may be a
    list of samples; each ``cpu()`` call advances to the next and the last one
    repeats, which lets a fixture replay a load curve.
    """

    def __init__(self, data: dict[str, Any]) -> None:
        self._data = data
        self._tick_index = 0

    @classmethod
    def load(cls, path: Path) -> FixtureHardware:
        raw = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(raw, dict):
            raise ValueError(f"fixture {path} must contain a JSON object")
        return cls(raw)

    def _section(self, name: str) -> Any:
        if name not in self._data:
            raise SubsystemUnavailable(f"fixture has no {name} section")
        value = self._data[name]
        if isinstance(value, dict) and "error" in value:
            raise TransientReadFailure(str(value["error"]))
        return value

    def os_info(self) -> OsReading:
        raw = self._section("os_info")
        return OsReading(
            name=str(raw.get("name", "")),
            release=str(raw.get("release", "")),
            version=str(raw.get("version", "")),
        )

    def cpu(self) -> CpuReading:
        raw = self._section("cpu")
        samples = raw["ticks"]
        if isinstance(samples, dict):
            samples = [samples]
        sample = samples[min(self._tick_index, len(samples) - 1)]
        self._tick_index += 1
        return CpuReading(
            identifier=str(raw.get("identifier", "Unknown CPU")),
            physical_cores=raw.get("physical_cores"),
            logical_cores=raw.get("logical_cores"),
            ticks=CpuTicks.from_mapping(sample),
        )

    def memory(self) -> MemoryReading:
        raw = self._section("memory")
        return MemoryReading(total_bytes=int(raw["total_bytes"]), available_bytes=int(raw["available_bytes"]))

    def volumes(self) -> list[VolumeReading]:
        return [
            VolumeReading(
                name=str(v.get("name", "")),
                mount=str(v.get("mount", "")),
                fs_type=str(v.get("fs_type", "")),
                total_bytes=int(v.get("total_bytes", 0)),
                usable_bytes=int(v.get("usable_bytes", 0)),
            )
            for v in self._section("volumes")
        ]

    def sensors(self) -> SensorReading:
        raw = self._section("sensors")
        fans = raw.get("fan_rpm")
        return SensorReading(
            cpu_temp_c=_optional_float(raw.get("cpu_temp_c")),
            fan_rpm=(tuple(int(f) for f in fans) if fans is not None else None),
            cpu_voltage_v=_optional_float(raw.get("cpu_voltage_v")),
        )

    def gpus(self) -> list[GpuReading]:
        return [
            GpuReading(
                name=str(g.get("name", "")),
                vendor=str(g.get("vendor", "")),
                version=str(g.get("version", "")),
                vram_bytes=int(g.get("vram_bytes", 0)),
            )
            for g in self._section("gpus")
        ]

    def displays(self) -> list[DisplayReading]:
        return [
            DisplayReading(name=str(d.get("name", "")), edid_bytes=int(d.get("edid_bytes", 0)))
            for d in self._section("displays")
        ]

    def uptime_seconds(self) -> int:
        return int(self._section("uptime_seconds"))


def _capture(hardware: HardwareCollaborator, method: str) -> Any:
    try:
        value = getattr(hardware, method)()
    except SubsystemUnavailable:
        return None
    except Exception as exc:
        return {"error": str(exc) or type(exc).__name__}

    if method == "cpu":
        data = asdict(value)
        data["ticks"] = value.ticks.as_dict()
        return data
    if method == "uptime_seconds":
        return int(value)
    if method in ("os_info", "memory", "sensors"):
        return asdict(value)
    return [asdict(item) for item in value]


def record_fixture(hardware: HardwareCollaborator) -> dict[str, Any]:
    """Capture one read of every subsystem in the shape ``FixtureHardware`` loads."""
    doc: dict[str, Any] = {"fixture_version": FIXTURE_VERSION}
    for name in _SECTIONS:
        value = _capture(hardware, name)
        if value is not None:
            doc[name] = value
    return doc


def save_fixture(doc: dict[str, Any], path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(doc, indent=2, sort_keys=True), encoding="utf-8")
    return path
