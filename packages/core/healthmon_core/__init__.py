"""Core services for scheduling, settings, logging, and diagnostics."""

from .config import AppConfig, load_config, save_config
from .diagnostics import DiagnosticsExporter, build_doctor_payload, check_subsystems, snapshot_to_dict
from .scheduler import Scheduler, SchedulerState, SchedulerStatus

__all__ = [
    "AppConfig",
    "DiagnosticsExporter",
    "Scheduler",
    "SchedulerState",
    "SchedulerStatus",
    "build_doctor_payload",
    "load_config",
    "check_subsystems",
    "save_config",
    "snapshot_to_dict",
]
