import sys
import unittest
from datetime import datetime, timezone
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "apps" / "console"))
sys.path.insert(0, str(ROOT / "packages" / "core"))
sys.path.insert(0, str(ROOT / "packages" / "telemetry"))

from healthmon_app.report import render_text
from healthmon_telemetry import FixtureHardware, Snapshot, SnapshotAssembler


FIXTURE = ROOT / "tests" / "fixtures" / "workstation.json"


class RenderTextTests(unittest.TestCase):
    def setUp(self):
        hw = FixtureHardware.load(FIXTURE)
        assembler = SnapshotAssembler(hw, parallel=False)
        self.snapshot, _ = assembler.assemble(assembler.baseline())

    def test_sections_in_order(self):
        text = render_text(self.snapshot)
        order = [
            "Operating System: Ubuntu",
            "CPU: AMD Ryzen",
            "Memory Total:",
            "Disk: /",
            "CPU Temperature:",
            "GPU:",
            "Display 1:",
            "System Uptime:",
        ]
        positions = [text.index(marker) for marker in order]
        self.assertEqual(positions, sorted(positions))

    def test_values_are_formatted(self):
        text = render_text(self.snapshot)
        self.assertIn("Operating System: Ubuntu 22.04.4 LTS 5.15.0-105-generic (#115-Ubuntu SMP", text)
        self.assertIn("Logical Cores: 16", text)
        self.assertIn("Memory Total: 32.00 GB", text)
        self.assertIn("Memory Used: 12.00 GB (37.50%)", text)
        self.assertIn("CPU Temperature: 83.50 °C [Critical]", text)
        self.assertIn("Fan Speeds: 1450 rpm, 980 rpm", text)
        self.assertIn("CPU Voltage: 1.25 V", text)
        self.assertIn("Display 2: EDID Length = 128 bytes", text)
        self.assertIn("System Uptime: 3 days, 4 h 5 m 6 s", text)

    def test_unavailable_values_read_na(self):
        text = render_text(self.snapshot)
        self.assertIn("GPU: N/A", text)
        self.assertIn("Disk: /media/cdrom - 0 B free / 0 B (N/A used)", text)

    def test_all_unavailable_snapshot(self):
        snap = Snapshot.unavailable(datetime(2024, 5, 1, tzinfo=timezone.utc), detail="down")
        text = render_text(snap)
        for line in ("Operating System: N/A", "CPU: N/A", "Memory: N/A", "Disks: N/A", "Sensors: N/A", "GPU: N/A", "Displays: N/A"):
            self.assertIn(line, text)
        self.assertIn("System Uptime: N/A", text)


if __name__ == "__main__":
    unittest.main()
