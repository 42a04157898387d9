import json
import sys
import unittest
import zipfile
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "apps" / "console"))
sys.path.insert(0, str(ROOT / "packages" / "core"))
sys.path.insert(0, str(ROOT / "packages" / "telemetry"))

from healthmon_app.cli import build_parser


FIXTURE = ROOT / "tests" / "fixtures" / "workstation.json"


class CliParserTests(unittest.TestCase):
    def test_run_command(self):
        parser = build_parser()
        args = parser.parse_args(["run", "--interval", "2.5", "--count", "3"])
        self.assertEqual(args.command, "run")
        self.assertEqual(args.interval, 2.5)
        self.assertEqual(args.count, 3)
        self.assertIsNone(args.format)

    def test_snapshot_command(self):
        parser = build_parser()
        args = parser.parse_args(["snapshot", "--format", "json", "--fixture", "x.json"])
        self.assertEqual(args.command, "snapshot")
        self.assertEqual(args.format, "json")
        self.assertEqual(args.fixture, "x.json")
        self.assertEqual(args.delay, 0.5)

    def test_config_subcommands(self):
        parser = build_parser()
        args = parser.parse_args(["config", "path"])
        self.assertEqual(args.config_cmd, "path")

    def test_record_requires_out(self):
        parser = build_parser()
        with self.assertRaises(SystemExit):
            parser.parse_args(["record"])


def _isolate_home(monkeypatch, tmp_path):
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("APPDATA", str(tmp_path))


def test_snapshot_json_from_fixture(monkeypatch, tmp_path, capsys) -> None:
    _isolate_home(monkeypatch, tmp_path)
    args = build_parser().parse_args(["snapshot", "--fixture", str(FIXTURE), "--format", "json", "--delay", "0"])
    assert args.func(args) == 0

    payload = json.loads(capsys.readouterr().out)
    assert payload["cpu"]["logical_cores"] == 16
    assert 0.0 <= payload["cpu"]["load"] <= 1.0
    assert payload["gpus"] is None
    assert payload["sensors"]["temp_band"] == "Critical"
    kinds = {(f["section"], f["kind"]) for f in payload["failures"]}
    assert ("gpus", "transient") in kinds
    assert ("disks", "invalid") in kinds


def test_run_prints_requested_count(monkeypatch, tmp_path, capsys) -> None:
    _isolate_home(monkeypatch, tmp_path)
    args = build_parser().parse_args(["run", "--fixture", str(FIXTURE), "--interval", "0.05", "--count", "2"])
    assert args.func(args) == 0

    out = capsys.readouterr().out
    assert out.count("System Uptime:") == 2


def test_record_writes_fixture(monkeypatch, tmp_path, capsys) -> None:
    _isolate_home(monkeypatch, tmp_path)
    import healthmon_app.cli as cli
    from healthmon_telemetry import FixtureHardware

    monkeypatch.setattr(cli, "PsutilHardware", lambda: FixtureHardware.load(FIXTURE))
    out = tmp_path / "capture.json"
    args = build_parser().parse_args(["record", "--out", str(out)])
    assert args.func(args) == 0
    assert json.loads(out.read_text(encoding="utf-8"))["uptime_seconds"] == 273906


def test_main_reports_missing_fixture(monkeypatch, tmp_path, capsys) -> None:
    _isolate_home(monkeypatch, tmp_path)
    from healthmon_app.cli import main

    rc = main(["snapshot", "--fixture", str(tmp_path / "nope.json")])
    assert rc == 2
    payload = json.loads(capsys.readouterr().out)
    assert payload["success"] is False


def test_doctor_export_bundles_unseeded_snapshot(monkeypatch, tmp_path, capsys) -> None:
    _isolate_home(monkeypatch, tmp_path)
    out_dir = tmp_path / "bundles"
    args = build_parser().parse_args(["doctor", "--export", "--out-dir", str(out_dir), "--fixture", str(FIXTURE)])
    assert args.func(args) == 0

    payload = json.loads(capsys.readouterr().out)
    assert payload["subsystems"]["os_info"]["status"] == "ok"
    assert payload["subsystems"]["gpus"]["status"] == "error"
    with zipfile.ZipFile(payload["diagnostics_bundle"]) as zf:
        snapshot = json.loads(zf.read("snapshot.json"))
    # One sample only: no interval to measure load across.
    assert snapshot["cpu"]["load"] is None
    assert snapshot["cpu"]["logical_cores"] == 16
    assert snapshot["os"]["name"] == "Ubuntu 22.04.4 LTS"


if __name__ == "__main__":
    unittest.main()
