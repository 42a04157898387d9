import json
import sys
import tempfile
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "packages" / "telemetry"))

from healthmon_telemetry.errors import SubsystemUnavailable, TransientReadFailure
from healthmon_telemetry.fixture import FixtureHardware, record_fixture, save_fixture


FIXTURE = ROOT / "tests" / "fixtures" / "workstation.json"


class FixtureHardwareTests(unittest.TestCase):
    def test_load_reads_every_section(self):
        hw = FixtureHardware.load(FIXTURE)
        cpu = hw.cpu()
        self.assertEqual(cpu.logical_cores, 16)
        self.assertEqual(cpu.ticks.as_dict()["user"], 51200.5)
        self.assertEqual(hw.memory().total_bytes, 32 * 1024**3)
        self.assertEqual(len(hw.volumes()), 3)
        self.assertEqual(hw.sensors().fan_rpm, (1450, 980))
        self.assertEqual([d.edid_bytes for d in hw.displays()], [256, 128])
        self.assertEqual(hw.uptime_seconds(), 273906)
        self.assertEqual(hw.os_info().name, "Ubuntu 22.04.4 LTS")

    def test_tick_samples_advance_then_repeat(self):
        hw = FixtureHardware.load(FIXTURE)
        first = hw.cpu().ticks
        second = hw.cpu().ticks
        third = hw.cpu().ticks
        self.assertNotEqual(first, second)
        self.assertEqual(second, third)

    def test_error_section_is_transient(self):
        hw = FixtureHardware.load(FIXTURE)
        with self.assertRaises(TransientReadFailure):
            hw.gpus()

    def test_missing_section_is_unavailable(self):
        hw = FixtureHardware({"uptime_seconds": 5})
        with self.assertRaises(SubsystemUnavailable):
            hw.memory()
        with self.assertRaises(SubsystemUnavailable):
            hw.sensors()

    def test_sensor_values_written_as_strings_are_numbers(self):
        hw = FixtureHardware({"sensors": {"cpu_temp_c": "61.5", "fan_rpm": ["900"], "cpu_voltage_v": "1.1"}})
        reading = hw.sensors()
        self.assertEqual(reading.cpu_temp_c, 61.5)
        self.assertEqual(reading.cpu_voltage_v, 1.1)
        self.assertEqual(reading.fan_rpm, (900,))

    def test_sensor_nulls_stay_unsupported(self):
        reading = FixtureHardware({"sensors": {"cpu_temp_c": None, "fan_rpm": None, "cpu_voltage_v": None}}).sensors()
        self.assertIsNone(reading.cpu_temp_c)
        self.assertIsNone(reading.fan_rpm)
        self.assertIsNone(reading.cpu_voltage_v)

    def test_non_object_document_rejected(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "bad.json"
            path.write_text("[1, 2]", encoding="utf-8")
            with self.assertRaises(ValueError):
                FixtureHardware.load(path)


class RecordFixtureTests(unittest.TestCase):
    def test_record_then_load_preserves_failure_kinds(self):
        source = FixtureHardware.load(FIXTURE)
        doc = record_fixture(source)

        self.assertEqual(doc["fixture_version"], 1)
        self.assertEqual(doc["gpus"], {"error": "NVML driver/library version mismatch"})
        self.assertEqual(doc["sensors"]["fan_rpm"], (1450, 980))
        self.assertEqual(doc["os_info"]["release"], "5.15.0-105-generic")

        with tempfile.TemporaryDirectory() as tmp:
            path = save_fixture(doc, Path(tmp) / "nested" / "capture.json")
            stored = json.loads(path.read_text(encoding="utf-8"))
            self.assertEqual(stored["sensors"]["fan_rpm"], [1450, 980])
            replay = FixtureHardware.load(path)
            self.assertEqual(replay.volumes()[0].mount, "/")
            self.assertEqual(replay.os_info().name, "Ubuntu 22.04.4 LTS")
            self.assertEqual(replay.cpu().identifier, "AMD Ryzen 7 5800X 8-Core Processor")
            with self.assertRaises(TransientReadFailure):
                replay.gpus()

    def test_unsupported_sections_are_left_out(self):
        doc = record_fixture(FixtureHardware({"uptime_seconds": 7}))
        self.assertEqual(doc, {"fixture_version": 1, "uptime_seconds": 7})


if __name__ == "__main__":
    unittest.main()
