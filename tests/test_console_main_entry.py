from __future__ import annotations

import runpy
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "apps" / "console"))
sys.path.insert(0, str(ROOT / "packages" / "core"))
sys.path.insert(0, str(ROOT / "packages" / "telemetry"))

import healthmon_app.__main__ as console_main


def test_main_defaults_to_run(monkeypatch) -> None:
    calls: list[list[str]] = []
    monkeypatch.setattr(console_main, "_cli_main", lambda argv=None: calls.append(list(argv or [])) or 0)

    rc = console_main.main([])
    assert rc == 0
    assert calls == [["run"]]


def test_main_passes_through_args(monkeypatch) -> None:
    calls: list[list[str]] = []
    monkeypatch.setattr(console_main, "_cli_main", lambda argv=None: calls.append(list(argv or [])) or 0)

    rc = console_main.main(["doctor", "--export"])
    assert rc == 0
    assert calls == [["doctor", "--export"]]


def test_main_module_runpath_without_package_context() -> None:
    main_path = ROOT / "apps" / "console" / "healthmon_app" / "__main__.py"
    result = runpy.run_path(str(main_path))
    assert "main" in result
