import json
import sys
import tempfile
import unittest
import zipfile
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "packages" / "telemetry"))
sys.path.insert(0, str(ROOT / "packages" / "core"))

from healthmon_core.config import load_config
from healthmon_core.diagnostics import DiagnosticsExporter, build_doctor_payload, redact, snapshot_to_dict
from healthmon_telemetry import FixtureHardware, SnapshotAssembler


FIXTURE = ROOT / "tests" / "fixtures" / "workstation.json"


class DiagnosticsTests(unittest.TestCase):
    def test_doctor_checks_each_subsystem(self):
        cfg = load_config(Path("/tmp/nonexistent-healthmon-config.json"))
        data = json.loads(FIXTURE.read_text(encoding="utf-8"))
        del data["sensors"]
        doctor = build_doctor_payload(cfg, FixtureHardware(data))

        subsystems = doctor["subsystems"]
        self.assertEqual(subsystems["os_info"]["status"], "ok")
        self.assertEqual(subsystems["cpu"]["status"], "ok")
        self.assertEqual(subsystems["sensors"]["status"], "unavailable")
        self.assertEqual(subsystems["gpus"]["status"], "error")
        self.assertIn("mismatch", subsystems["gpus"]["detail"])
        self.assertEqual(doctor["config"]["monitor"]["poll_ms"], 3000)

    def test_redact_masks_secret_keys(self):
        self.assertEqual(redact({"api_key": "x", "nested": [{"password": "y", "ok": 1}]}),
                         {"api_key": "***REDACTED***", "nested": [{"password": "***REDACTED***", "ok": 1}]})

    def test_snapshot_to_dict_is_json_ready(self):
        hw = FixtureHardware.load(FIXTURE)
        snap, _ = SnapshotAssembler(hw, parallel=False).assemble(None)
        data = snapshot_to_dict(snap)
        self.assertEqual(data["sensors"]["temp_band"], "Critical")
        self.assertIsInstance(data["timestamp"], str)
        self.assertEqual(data["disks"][2]["usage"], None)

    def test_bundle_exports_zip(self):
        cfg = load_config(Path("/tmp/nonexistent-healthmon-config.json"))
        hw = FixtureHardware.load(FIXTURE)
        doctor = build_doctor_payload(cfg, hw)
        snap, _ = SnapshotAssembler(hw, parallel=False).assemble(None)
        exporter = DiagnosticsExporter()

        with tempfile.TemporaryDirectory() as tmp:
            logs = Path(tmp) / "logs"
            logs.mkdir()
            (logs / "healthmon.log").write_text('{"msg": "hello"}\n', encoding="utf-8")
            bundle = exporter.bundle(
                cfg=cfg,
                doctor_payload=doctor,
                recent_events=[{"event": "cycle_ok"}],
                latest_snapshot=snap,
                output_dir=Path(tmp) / "out",
                logs_dir=logs,
            )
            self.assertTrue(bundle.exists())

            with zipfile.ZipFile(bundle, "r") as zf:
                names = set(zf.namelist())
                self.assertIn("manifest.json", names)
                self.assertIn("doctor.json", names)
                self.assertIn("config.redacted.json", names)
                self.assertIn("scheduler_events.json", names)
                self.assertIn("snapshot.json", names)
                self.assertIn("logs/healthmon.log", names)


if __name__ == "__main__":
    unittest.main()
