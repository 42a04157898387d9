"""Persistent monitor settings schema and load/save helpers."""

from __future__ import annotations

import json
import os
import platform
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any


CONFIG_VERSION = 2

POLL_MS_MIN = 500
POLL_MS_MAX = 60_000
QUERY_TIMEOUT_MS_MIN = 100


@dataclass
class MonitorConfig:
    poll_ms: int = 3000
    query_timeout_ms: int = 1500
    parallel_queries: bool = True


@dataclass
class ThresholdConfig:
    warm_c: float = 60.0
    critical_c: float = 80.0


@dataclass
class OutputConfig:
    format: str = "text"


@dataclass
class DiagnosticsConfig:
    keep_log_files: int = 7
    console_logging: bool = False


@dataclass
class AppConfig:
    config_version: int = CONFIG_VERSION
    monitor: MonitorConfig = field(default_factory=MonitorConfig)
    thresholds: ThresholdConfig = field(default_factory=ThresholdConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    diagnostics: DiagnosticsConfig = field(default_factory=DiagnosticsConfig)


DEFAULT_CONFIG = AppConfig()


def config_root() -> Path:
    system = platform.system()
    if system == "Windows":
        base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
        return base / "HealthMon"
    if system == "Darwin":
        return Path.home() / "Library" / "Application Support" / "HealthMon"
    return Path.home() / ".config" / "healthmon"


def config_path() -> Path:
    return config_root() / "config.json"


def _merge(dataclass_type, raw: dict[str, Any]):
    defaults = dataclass_type()  # type: ignore[misc]
    for k, v in raw.items():
        if hasattr(defaults, k):
            setattr(defaults, k, v)
    return defaults


def _normalize_monitor(cfg: AppConfig) -> None:
    cfg.monitor.poll_ms = max(POLL_MS_MIN, min(POLL_MS_MAX, int(cfg.monitor.poll_ms)))
    cfg.monitor.query_timeout_ms = max(QUERY_TIMEOUT_MS_MIN, min(cfg.monitor.poll_ms, int(cfg.monitor.query_timeout_ms)))
    cfg.monitor.parallel_queries = bool(cfg.monitor.parallel_queries)


def _normalize_thresholds(cfg: AppConfig) -> None:
    cfg.thresholds.warm_c = float(cfg.thresholds.warm_c)
    cfg.thresholds.critical_c = float(max(cfg.thresholds.warm_c, float(cfg.thresholds.critical_c)))


def _normalize_output(cfg: AppConfig) -> None:
    if cfg.output.format not in ("text", "json"):
        cfg.output.format = "text"


def _normalize_diagnostics(cfg: AppConfig) -> None:
    cfg.diagnostics.keep_log_files = max(2, int(cfg.diagnostics.keep_log_files))


def _migrate(raw: dict[str, Any]) -> dict[str, Any]:
    version = int(raw.get("config_version", 1))
    data = dict(raw)

    if version < 2:
        # v1 stored the interval in seconds at the top level and had no thresholds block.
        monitor = dict(data.get("monitor", {}) or {})
        if "poll_seconds" in data:
            monitor.setdefault("poll_ms", int(float(data.pop("poll_seconds")) * 1000))
        data["monitor"] = monitor
        data.setdefault("thresholds", {})
        data["config_version"] = 2

    return data


def load_config(path: Path | None = None) -> AppConfig:
    path = path or config_path()
    if not path.exists():
        return AppConfig()

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except Exception:
        return AppConfig()
    if not isinstance(raw, dict):
        return AppConfig()

    data = _migrate(raw)
    cfg = AppConfig(
        config_version=int(data.get("config_version", CONFIG_VERSION)),
        monitor=_merge(MonitorConfig, data.get("monitor", {})),
        thresholds=_merge(ThresholdConfig, data.get("thresholds", {})),
        output=_merge(OutputConfig, data.get("output", {})),
        diagnostics=_merge(DiagnosticsConfig, data.get("diagnostics", {})),
    )

    _normalize_monitor(cfg)
    _normalize_thresholds(cfg)
    _normalize_output(cfg)
    _normalize_diagnostics(cfg)
    return cfg


def save_config(cfg: AppConfig, path: Path | None = None) -> Path:
    cfg.config_version = CONFIG_VERSION
    path = path or config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(asdict(cfg), indent=2, sort_keys=True), encoding="utf-8")
    return path
