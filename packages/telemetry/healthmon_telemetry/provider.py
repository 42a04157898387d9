"""psutil-backed hardware collaborator with graceful GPU and sensor fallbacks."""

from __future__ import annotations

import logging
import platform
import time
from pathlib import Path

import psutil

from .errors import SubsystemUnavailable
from .models import CpuReading, CpuTicks, DisplayReading, GpuReading, MemoryReading, OsReading, SensorReading, VolumeReading


logger = logging.getLogger("healthmon.telemetry.provider")

# Linux folds guest time into user/nice already; counting it twice inflates load.
_DOUBLE_COUNTED_STATES = ("guest", "guest_nice")

_TEMP_CHIPS = ("coretemp", "cpu_thermal", "k10temp", "zenpower", "acpitz")
_VCORE_LABELS = ("vcore", "cpu core", "vddcr_cpu", "cpu")

_HWMON_ROOT = Path("/sys/class/hwmon")
_DRM_ROOT = Path("/sys/class/drm")


class _GpuAdapter:
    def poll(self) -> list[GpuReading]:
        raise SubsystemUnavailable("no supported GPU library available")


class _NvmlGpuAdapter(_GpuAdapter):
    def __init__(self) -> None:
        import pynvml  # type: ignore

        self._nvml = pynvml
        pynvml.nvmlInit()

    @staticmethod
    def _text(value: str | bytes) -> str:
        return value.decode("utf-8", "replace") if isinstance(value, bytes) else str(value)

    def poll(self) -> list[GpuReading]:
        nvml = self._nvml
        driver = self._text(nvml.nvmlSystemGetDriverVersion())
        gpus: list[GpuReading] = []
        for idx in range(nvml.nvmlDeviceGetCount()):
            h = nvml.nvmlDeviceGetHandleByIndex(idx)
            mem = nvml.nvmlDeviceGetMemoryInfo(h)
            gpus.append(
                GpuReading(
                    name=self._text(nvml.nvmlDeviceGetName(h)),
                    vendor="NVIDIA",
                    version=driver,
                    vram_bytes=int(mem.total),
                )
            )
        return gpus


def _build_gpu_adapter() -> _GpuAdapter:
    try:
        return _NvmlGpuAdapter()
    except Exception as exc:
        logger.info("NVML unavailable: %s", exc, extra={"event": "gpu_adapter_fallback"})
        return _GpuAdapter()


def _cpu_identifier() -> str:
    cpuinfo = Path("/proc/cpuinfo")
    if cpuinfo.exists():
        for line in cpuinfo.read_text(encoding="utf-8", errors="replace").splitlines():
            key, _, value = line.partition(":")
            if key.strip() in ("model name", "Model", "Hardware") and value.strip():
                return value.strip()
    return platform.processor() or platform.machine() or "Unknown CPU"


def _os_name() -> str:
    system = platform.system()
    if system == "Linux":
        try:
            release = platform.freedesktop_os_release()
        except OSError:
            return system
        return release.get("PRETTY_NAME") or release.get("NAME") or system
    return system


def _cpu_temp_c() -> float | None:
    reader = getattr(psutil, "sensors_temperatures", None)
    if reader is None:
        return None
    try:
        temps = reader()
    except Exception:
        return None
    if not temps:
        return None

    for name in _TEMP_CHIPS:
        entries = temps.get(name)
        if entries:
            val = entries[0].current
            return float(val) if val is not None else None

    for _name, entries in temps.items():
        if entries and entries[0].current is not None:
            return float(entries[0].current)
    return None


def _fan_rpm() -> tuple[int, ...] | None:
    reader = getattr(psutil, "sensors_fans", None)
    if reader is None:
        return None
    try:
        fans = reader()
    except Exception:
        return None
    return tuple(int(entry.current) for entries in fans.values() for entry in entries)


def _cpu_voltage_v(root: Path = _HWMON_ROOT) -> float | None:
    if not root.is_dir():
        return None
    for chip in sorted(root.iterdir()):
        for label_file in sorted(chip.glob("in*_label")):
            try:
                label = label_file.read_text(encoding="utf-8").strip().lower()
            except OSError:
                continue
            if not label.startswith(_VCORE_LABELS):
                continue
            value_file = chip / label_file.name.replace("_label", "_input")
            try:
                return int(value_file.read_text(encoding="utf-8").strip()) / 1000.0
            except (OSError, ValueError):
                continue
    return None


class PsutilHardware:
    """Reads the local machine through psutil, NVML, and Linux sysfs."""

    def __init__(self, hwmon_root: Path = _HWMON_ROOT, drm_root: Path = _DRM_ROOT) -> None:
        self._hwmon_root = hwmon_root
        self._drm_root = drm_root
        self._gpu = _build_gpu_adapter()
        self._identifier: str | None = None

    def os_info(self) -> OsReading:
        name = _os_name()
        if not name:
            raise SubsystemUnavailable("platform does not report an operating system name")
        return OsReading(name=name, release=platform.release(), version=platform.version())

    def cpu(self) -> CpuReading:
        if self._identifier is None:
            self._identifier = _cpu_identifier()
        times = psutil.cpu_times()._asdict()
        for state in _DOUBLE_COUNTED_STATES:
            times.pop(state, None)
        return CpuReading(
            identifier=self._identifier,
            physical_cores=psutil.cpu_count(logical=False),
            logical_cores=psutil.cpu_count(logical=True),
            ticks=CpuTicks.from_mapping(times),
        )

    def memory(self) -> MemoryReading:
        vm = psutil.virtual_memory()
        return MemoryReading(total_bytes=int(vm.total), available_bytes=int(vm.available))

    def volumes(self) -> list[VolumeReading]:
        volumes: list[VolumeReading] = []
        for part in psutil.disk_partitions(all=False):
            try:
                du = psutil.disk_usage(part.mountpoint)
                total, usable = int(du.total), int(du.free)
            except OSError as exc:
                # Reported but unreadable (permissions, ejected media); total 0 marks it unusable.
                logger.debug("disk_usage failed for %s: %s", part.mountpoint, exc)
                total, usable = 0, 0
            volumes.append(
                VolumeReading(
                    name=part.device,
                    mount=part.mountpoint,
                    fs_type=part.fstype,
                    total_bytes=total,
                    usable_bytes=usable,
                )
            )
        return volumes

    def sensors(self) -> SensorReading:
        reading = SensorReading(
            cpu_temp_c=_cpu_temp_c(),
            fan_rpm=_fan_rpm(),
            cpu_voltage_v=_cpu_voltage_v(self._hwmon_root),
        )
        if reading.cpu_temp_c is None and reading.fan_rpm is None and reading.cpu_voltage_v is None:
            raise SubsystemUnavailable("no temperature, fan, or voltage sensors exposed")
        return reading

    def gpus(self) -> list[GpuReading]:
        return self._gpu.poll()

    def displays(self) -> list[DisplayReading]:
        if not self._drm_root.is_dir():
            raise SubsystemUnavailable("display enumeration needs /sys/class/drm")
        displays: list[DisplayReading] = []
        for edid_file in sorted(self._drm_root.glob("card*-*/edid")):
            try:
                edid = edid_file.read_bytes()
            except OSError:
                continue
            if edid:
                displays.append(DisplayReading(name=edid_file.parent.name, edid_bytes=len(edid)))
        return displays

    def uptime_seconds(self) -> int:
        return int(time.time() - psutil.boot_time())
