"""CLI entrypoints for live monitoring, one-shot snapshots, fixtures, and diagnostics."""

from __future__ import annotations

import argparse
import json
import logging
import queue
import time
from dataclasses import asdict
from pathlib import Path

from healthmon_core import (
    DiagnosticsExporter,
    Scheduler,
    build_doctor_payload,
    load_config,
    snapshot_to_dict,
)
from healthmon_core.config import AppConfig, config_path
from healthmon_core.logging_setup import configure_logging, get_logger
from healthmon_telemetry import FixtureHardware, PsutilHardware, Snapshot, SnapshotAssembler, record_fixture, save_fixture

from .report import render_text


def _print_json(data: object) -> None:
    print(json.dumps(data, indent=2, sort_keys=True, default=str))


def _emit(snapshot: Snapshot, fmt: str) -> None:
    if fmt == "json":
        _print_json(snapshot_to_dict(snapshot))
    else:
        print(render_text(snapshot), flush=True)


def _build_hardware(args: argparse.Namespace):
    fixture = getattr(args, "fixture", None)
    if fixture:
        return FixtureHardware.load(Path(fixture).expanduser())
    if PsutilHardware is None:
        raise RuntimeError("psutil is not installed; use --fixture to read recorded readings")
    return PsutilHardware()


def _build_scheduler(cfg: AppConfig, args: argparse.Namespace) -> Scheduler:
    assembler = SnapshotAssembler(
        _build_hardware(args),
        query_timeout_s=cfg.monitor.query_timeout_ms / 1000.0,
        parallel=cfg.monitor.parallel_queries,
        warm_above=cfg.thresholds.warm_c,
        critical_above=cfg.thresholds.critical_c,
    )
    interval = args.interval if getattr(args, "interval", None) else cfg.monitor.poll_ms / 1000.0
    return Scheduler(assembler, interval_s=interval)


def _output_format(cfg: AppConfig, args: argparse.Namespace) -> str:
    return args.format or cfg.output.format


def cmd_run(args: argparse.Namespace) -> int:
    cfg = load_config()
    scheduler = _build_scheduler(cfg, args)
    fmt = _output_format(cfg, args)

    # Snapshots arrive on the scheduler thread; print them from this one.
    inbox: queue.Queue[Snapshot] = queue.Queue()
    scheduler.subscribe(inbox.put)
    scheduler.start()

    printed = 0
    try:
        while args.count is None or printed < args.count:
            try:
                snapshot = inbox.get(timeout=0.5)
            except queue.Empty:
                continue
            _emit(snapshot, fmt)
            printed += 1
    except KeyboardInterrupt:
        pass
    finally:
        scheduler.stop(timeout=2.0)
    return 0


def cmd_snapshot(args: argparse.Namespace) -> int:
    cfg = load_config()
    scheduler = _build_scheduler(cfg, args)
    try:
        scheduler.seed()
        time.sleep(max(0.0, args.delay))
        snapshot = scheduler.run_once()
    finally:
        scheduler.stop()
    _emit(snapshot, _output_format(cfg, args))
    return 0


def cmd_record(args: argparse.Namespace) -> int:
    hardware = _build_hardware(args)
    path = save_fixture(record_fixture(hardware), Path(args.out).expanduser())
    _print_json({"success": True, "fixture": str(path)})
    return 0


def cmd_doctor(args: argparse.Namespace) -> int:
    cfg = load_config()
    hardware = _build_hardware(args)
    payload = build_doctor_payload(cfg, hardware)

    if args.export:
        assembler = SnapshotAssembler(hardware, parallel=False)
        # A lone sample has no interval to measure load over, so none is reported.
        snapshot, _ticks = assembler.assemble(None)
        exporter = DiagnosticsExporter()
        out_dir = Path(args.out_dir).expanduser().resolve() if args.out_dir else None
        bundle = exporter.bundle(cfg=cfg, doctor_payload=payload, latest_snapshot=snapshot, output_dir=out_dir)
        payload["diagnostics_bundle"] = str(bundle)

    _print_json(payload)
    return 0


def cmd_config(args: argparse.Namespace) -> int:
    if args.config_cmd == "path":
        print(config_path())
    else:
        _print_json(asdict(load_config()))
    return 0


def _add_source_args(cmd: argparse.ArgumentParser) -> None:
    cmd.add_argument("--fixture", default=None, help="Read recorded readings from a JSON fixture instead of this host")


def _add_output_args(cmd: argparse.ArgumentParser) -> None:
    cmd.add_argument("--format", choices=["text", "json"], default=None)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="healthmon", description="Host health telemetry monitor")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug detail to the log file")
    sub = parser.add_subparsers(dest="command", required=True)

    run_cmd = sub.add_parser("run", help="Print a snapshot every polling interval")
    run_cmd.add_argument("--interval", type=float, default=None, help="Seconds between snapshots")
    run_cmd.add_argument("--count", type=int, default=None, help="Stop after this many snapshots")
    _add_output_args(run_cmd)
    _add_source_args(run_cmd)
    run_cmd.set_defaults(func=cmd_run)

    snap_cmd = sub.add_parser("snapshot", help="Print a single snapshot")
    snap_cmd.add_argument("--delay", type=float, default=0.5, help="Seconds between baseline and sample")
    _add_output_args(snap_cmd)
    _add_source_args(snap_cmd)
    snap_cmd.set_defaults(func=cmd_snapshot)

    record_cmd = sub.add_parser("record", help="Capture current readings into a fixture file")
    record_cmd.add_argument("--out", required=True, help="Fixture path to write")
    record_cmd.set_defaults(func=cmd_record)

    doctor_cmd = sub.add_parser("doctor", help="Print diagnostics and subsystem support")
    doctor_cmd.add_argument("--export", action="store_true", help="Export offline diagnostics bundle")
    doctor_cmd.add_argument("--out-dir", default=None, help="Optional output directory for diagnostics bundle")
    _add_source_args(doctor_cmd)
    doctor_cmd.set_defaults(func=cmd_doctor)

    config_cmd = sub.add_parser("config", help="Inspect settings")
    config_sub = config_cmd.add_subparsers(dest="config_cmd", required=True)
    config_sub.add_parser("show", help="Print effective settings")
    config_sub.add_parser("path", help="Print the settings file location")
    config_cmd.set_defaults(func=cmd_config)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    cfg = load_config()
    configure_logging(
        keep_files=cfg.diagnostics.keep_log_files,
        console=cfg.diagnostics.console_logging,
        level=(logging.DEBUG if args.verbose else logging.INFO),
    )
    try:
        return int(args.func(args))
    except (OSError, ValueError, RuntimeError) as exc:
        get_logger().error("command %s failed: %s", args.command, exc, extra={"event": "command_failed"})
        _print_json({"success": False, "error": str(exc)})
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
