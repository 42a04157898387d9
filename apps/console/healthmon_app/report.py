"""Plain-text rendering of a Snapshot, one section per block."""

from __future__ import annotations

from healthmon_telemetry import Snapshot
from healthmon_telemetry.units import UNAVAILABLE, format_bytes, format_celsius, format_duration, format_percent


def _count(value: int | None) -> str:
    return UNAVAILABLE if value is None else str(value)


def _cpu_lines(snap: Snapshot) -> list[str]:
    cpu = snap.cpu
    if cpu is None:
        return [f"CPU: {UNAVAILABLE}"]
    load = format_percent(cpu.load)
    if cpu.load_clamped:
        load += " (counter reset)"
    return [
        f"CPU: {cpu.identifier}",
        f"Physical Cores: {_count(cpu.physical_cores)}",
        f"Logical Cores: {_count(cpu.logical_cores)}",
        f"CPU Load: {load}",
    ]


def _memory_lines(snap: Snapshot) -> list[str]:
    mem = snap.memory
    if mem is None:
        return [f"Memory: {UNAVAILABLE}"]
    return [
        f"Memory Total: {format_bytes(mem.total_bytes)}",
        f"Memory Available: {format_bytes(mem.available_bytes)}",
        f"Memory Used: {format_bytes(mem.used_bytes)} ({format_percent(mem.usage)})",
    ]


def _disk_lines(snap: Snapshot) -> list[str]:
    if snap.disks is None:
        return [f"Disks: {UNAVAILABLE}"]
    if not snap.disks:
        return ["Disks: none reported"]
    lines = []
    for vol in snap.disks:
        lines.append(
            f"Disk: {vol.mount} - {format_bytes(vol.usable_bytes)} free / {format_bytes(vol.total_bytes)}"
            f" ({format_percent(vol.usage)} used)"
        )
    return lines


def _sensor_lines(snap: Snapshot) -> list[str]:
    sensors = snap.sensors
    if sensors is None:
        return [f"Sensors: {UNAVAILABLE}"]
    if sensors.fan_rpm is None:
        fans = UNAVAILABLE
    elif not sensors.fan_rpm:
        fans = "none"
    else:
        fans = ", ".join(f"{rpm} rpm" for rpm in sensors.fan_rpm)
    voltage = UNAVAILABLE if sensors.cpu_voltage_v is None else f"{sensors.cpu_voltage_v:.2f} V"
    return [
        f"CPU Temperature: {format_celsius(sensors.cpu_temp_c)} [{sensors.temp_band.value}]",
        f"Fan Speeds: {fans}",
        f"CPU Voltage: {voltage}",
    ]


def _gpu_lines(snap: Snapshot) -> list[str]:
    if snap.gpus is None:
        return [f"GPU: {UNAVAILABLE}"]
    if not snap.gpus:
        return ["GPU: none detected"]
    lines: list[str] = []
    for gpu in snap.gpus:
        if lines:
            lines.append("")
        lines.extend(
            [
                f"GPU: {gpu.name}",
                f"Vendor: {gpu.vendor}",
                f"Version: {gpu.version}",
                f"VRAM: {format_bytes(gpu.vram_bytes)}",
            ]
        )
    return lines


def _os_line(snap: Snapshot) -> list[str]:
    return [f"Operating System: {snap.os.label if snap.os is not None else UNAVAILABLE}"]


def _display_lines(snap: Snapshot) -> list[str]:
    if snap.displays is None:
        return [f"Displays: {UNAVAILABLE}"]
    return [f"Display {d.index}: EDID Length = {d.edid_bytes} bytes" for d in snap.displays] or ["Displays: none"]


def render_text(snap: Snapshot) -> str:
    blocks = [
        [f"Snapshot: {snap.timestamp.isoformat()}"],
        _os_line(snap),
        _cpu_lines(snap),
        _memory_lines(snap),
        _disk_lines(snap),
        _sensor_lines(snap),
        _gpu_lines(snap),
        _display_lines(snap),
        [f"System Uptime: {format_duration(snap.uptime_s)}"],
    ]
    return "\n\n".join("\n".join(block) for block in blocks) + "\n"
