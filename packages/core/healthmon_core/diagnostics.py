"""Diagnostics export helpers: subsystem checks and local support bundles."""

from __future__ import annotations

import json
import platform
import re
import tempfile
import zipfile
from dataclasses import asdict, is_dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from healthmon_telemetry import HardwareCollaborator, Snapshot, SubsystemUnavailable

from .config import AppConfig, config_path
from .logging_setup import log_dir


_SECRET_RE = re.compile(r"(token|secret|password|apikey|api_key|auth)", re.IGNORECASE)

_SUBSYSTEM_READS = ("os_info", "cpu", "memory", "volumes", "sensors", "gpus", "displays", "uptime_seconds")


def _jsonable(value: Any) -> Any:
    if is_dataclass(value):
        return asdict(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (Path, datetime)):
        return str(value)
    return value


def redact(value: Any) -> Any:
    if isinstance(value, dict):
        out: dict[str, Any] = {}
        for k, v in value.items():
            if _SECRET_RE.search(k):
                out[k] = "***REDACTED***"
            else:
                out[k] = redact(v)
        return out
    if isinstance(value, list):
        return [redact(v) for v in value]
    return value


def snapshot_to_dict(snapshot: Snapshot) -> dict[str, Any]:
    data = asdict(snapshot)
    return json.loads(json.dumps(data, default=_jsonable))


def check_subsystems(hardware: HardwareCollaborator) -> dict[str, dict[str, str]]:
    results: dict[str, dict[str, str]] = {}
    for name in _SUBSYSTEM_READS:
        try:
            getattr(hardware, name)()
        except SubsystemUnavailable as exc:
            results[name] = {"status": "unavailable", "detail": str(exc)}
        except Exception as exc:
            results[name] = {"status": "error", "detail": f"{type(exc).__name__}: {exc}"}
        else:
            results[name] = {"status": "ok", "detail": ""}
    return results


def build_doctor_payload(cfg: AppConfig, hardware: HardwareCollaborator) -> dict[str, Any]:
    return {
        "ts_utc": datetime.now(timezone.utc).isoformat(),
        "platform": platform.platform(),
        "python": platform.python_version(),
        "config": redact(asdict(cfg)),
        "subsystems": check_subsystems(hardware),
    }


class DiagnosticsExporter:
    def __init__(self, app_name: str = "HealthMon") -> None:
        self.app_name = app_name

    def bundle(
        self,
        cfg: AppConfig,
        doctor_payload: dict[str, Any],
        recent_events: list[dict[str, Any]] | None = None,
        latest_snapshot: Snapshot | None = None,
        output_dir: Path | None = None,
        logs_dir: Path | None = None,
    ) -> Path:
        output_base = output_dir or Path(tempfile.gettempdir())
        output_base.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
        zip_path = output_base / f"healthmon-diagnostics-{stamp}.zip"

        logs_root = logs_dir or log_dir()
        logs = sorted(logs_root.glob("*.log*"))

        with zipfile.ZipFile(zip_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            manifest = {
                "app": self.app_name,
                "created_utc": datetime.now(timezone.utc).isoformat(),
                "host": platform.platform(),
                "python": platform.python_version(),
                "config_path": str(config_path()),
                "log_dir": str(logs_root),
            }
            zf.writestr("manifest.json", json.dumps(manifest, indent=2, sort_keys=True))
            zf.writestr("doctor.json", json.dumps(redact(doctor_payload), indent=2, sort_keys=True, default=_jsonable))
            zf.writestr("config.redacted.json", json.dumps(redact(asdict(cfg)), indent=2, sort_keys=True))
            zf.writestr(
                "scheduler_events.json",
                json.dumps(redact(recent_events or []), indent=2, sort_keys=True, default=_jsonable),
            )
            if latest_snapshot is not None:
                zf.writestr("snapshot.json", json.dumps(snapshot_to_dict(latest_snapshot), indent=2, sort_keys=True))

            for item in logs:
                zf.write(item, arcname=f"logs/{item.name}")

        return zip_path
