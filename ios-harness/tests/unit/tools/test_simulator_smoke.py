from __future__ import annotations

import json
from pathlib import Path

import pytest
from fakes import FakeRunner, ok_result

from ios_harness.config import HarnessConfig
from ios_harness.runtime.simulator import log_retention
from ios_harness.runtime.simulator.log_retention import retention_from_config
from ios_harness.runtime.simulator.polling import RetryPolicy
from ios_harness.tools import simulator_smoke
from ios_harness.tools.simulator_smoke import run_simulator_smoke

LAUNCHCTL = ("xcrun", "simctl", "spawn", "booted", "launchctl", "list")


def _runner() -> FakeRunner:
    return FakeRunner(
        {
            ("bash", "-c"): ok_result(["bash"], '{"com.example.app": {}, "com.apple.Maps": {}}'),
            LAUNCHCTL: ok_result(
                LAUNCHCTL,
                "PID\tStatus\tLabel\n321\t0\tUIKitApplication:com.example.app[ab12]\n",
            ),
        }
    )


def test_run_simulator_smoke_writes_summary(tmp_path: Path) -> None:
    runner = _runner()
    info = run_simulator_smoke(out_dir=tmp_path, bundle_id="com.example.app", runner=runner)

    assert info["installed_apps"] == ["com.apple.Maps", "com.example.app"]
    assert info["running_apps_count"] == 1
    assert info["screenshot"]["path"] == "screenshots/screenshot_smoke.png"
    assert info["app"] == {
        "bundle_id": "com.example.app",
        "installed": True,
        "alive": True,
        "pid": 321,
    }
    written = json.loads((tmp_path / "simulator_smoke.json").read_text(encoding="utf-8"))
    assert written["app"]["pid"] == 321


def test_run_simulator_smoke_launches_xctest_runner(tmp_path: Path) -> None:
    runner = _runner()
    log_retention.configure_log_retention(
        retention_from_config(HarnessConfig(log_dir=str(tmp_path / "logs")))
    )

    info = run_simulator_smoke(
        out_dir=tmp_path / "out",
        xctestrun=Path("/tmp/r.xctestrun"),
        device_id="UDID-1",
        runner=runner,
    )

    assert info["xctest_runner"]["pid"] == 4242
    assert info["xctest_runner"]["log_dir"] == str(tmp_path / "logs" / "xctest_runner_logs")
    detached = [s for s in runner.specs if s.output_path is not None]
    assert len(detached) == 1
    assert detached[0].args[-1] == "id=UDID-1"


def test_run_simulator_smoke_requires_device_for_xctestrun(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        run_simulator_smoke(out_dir=tmp_path, xctestrun=Path("r.xctestrun"), runner=FakeRunner())


def test_main_returns_nonzero_when_app_not_alive(tmp_path: Path, monkeypatch) -> None:
    runner = _runner()
    real_run = simulator_smoke.run_simulator_smoke

    def fake_run(**kwargs):
        return real_run(runner=runner, **kwargs)

    monkeypatch.setattr(simulator_smoke, "run_simulator_smoke", fake_run)
    monkeypatch.setattr(
        simulator_smoke.SimulatorController,
        "alive_policy",
        property(lambda self: RetryPolicy(timeout_ms=0, delay_ms=0)),
    )
    monkeypatch.delenv("IOS_HARNESS_CONFIG", raising=False)
    monkeypatch.setenv("IOS_HARNESS_LOG_DIR", str(tmp_path / "logs"))

    rc = simulator_smoke.main(
        ["--out_dir", str(tmp_path / "out"), "--bundle_id", "com.missing", "--quiet"]
    )

    assert rc == simulator_smoke.EXIT_APP_NOT_ALIVE
    assert log_retention.get_log_retention().ensure_log_directory() == (
        tmp_path / "logs" / "xctest_runner_logs"
    )
