from __future__ import annotations

import argparse
import json
import logging
import os
import time
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from ios_harness.config import HarnessConfig, load_harness_config
from ios_harness.runtime.simulator.commands import CommandRunner
from ios_harness.runtime.simulator.controller import SimulatorController
from ios_harness.runtime.simulator.log_retention import (
    LogRetention,
    configure_log_retention,
    retention_from_config,
)

logger = logging.getLogger(__name__)

EXIT_APP_NOT_ALIVE = 2


def _utc_ms() -> int:
    return int(time.time() * 1000)


def _json_dumps(obj: Any) -> str:
    return json.dumps(obj, indent=2, ensure_ascii=False, sort_keys=True)


def run_simulator_smoke(
    *,
    out_dir: Path,
    config: Optional[HarnessConfig] = None,
    bundle_id: Optional[str] = None,
    xctestrun: Optional[Path] = None,
    device_id: Optional[str] = None,
    runner: Optional[CommandRunner] = None,
    retention: Optional[LogRetention] = None,
) -> Dict[str, Any]:
    if xctestrun is not None and not device_id:
        raise ValueError("device_id is required to launch the xctest runner")
    out_dir.mkdir(parents=True, exist_ok=True)
    controller = SimulatorController(runner=runner, config=config, retention=retention)
    cfg = controller.config

    screenshot_path = out_dir / "screenshots" / "screenshot_smoke.png"
    shot = controller.screenshot(screenshot_path)
    installed = sorted(controller.list_apps())
    running = controller.running_apps()

    info: Dict[str, Any] = {
        "ts_ms": _utc_ms(),
        "simulator": cfg.simulator,
        "installed_apps": installed,
        "running_apps_count": len(running),
        "screenshot": {
            "path": str(screenshot_path.relative_to(out_dir)),
            "ok": shot.ok(),
            "returncode": shot.returncode,
        },
    }
    if xctestrun is not None:
        proc = controller.run_xctest_without_build(str(device_id), xctestrun)
        info["xctest_runner"] = {
            "pid": proc.pid,
            "device_id": device_id,
            "log_dir": str(controller.retention.ensure_log_directory()),
        }
    if bundle_id:
        alive = controller.ensure_app_alive(bundle_id)
        info["app"] = {
            "bundle_id": bundle_id,
            "installed": bundle_id in installed,
            "alive": alive,
            "pid": controller.pid_for_app(bundle_id) if alive else None,
        }

    (out_dir / "simulator_smoke.json").write_text(_json_dumps(info) + "\n", encoding="utf-8")
    return info


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="iOS simulator smoke probe.")
    parser.add_argument(
        "--out_dir",
        type=Path,
        default=Path("runs/simulator_smoke"),
        help="Output directory (default: runs/simulator_smoke)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=os.environ.get("IOS_HARNESS_CONFIG"),
        help="YAML/JSON harness config (default: $IOS_HARNESS_CONFIG)",
    )
    parser.add_argument(
        "--bundle_id",
        type=str,
        default=None,
        help="Optional bundle id to wait for (alive check)",
    )
    parser.add_argument(
        "--xctestrun",
        type=Path,
        default=None,
        help="Optional .xctestrun file to launch (detached) before probing",
    )
    parser.add_argument(
        "--device_id",
        type=str,
        default=os.environ.get("IOS_HARNESS_DEVICE_ID"),
        help="Simulator UDID for --xctestrun (default: $IOS_HARNESS_DEVICE_ID)",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Do not print anything (artifacts are still written).",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="[%(levelname)s] %(name)s: %(message)s",
    )

    cfg = load_harness_config(Path(args.config) if args.config else None)
    retention = configure_log_retention(retention_from_config(cfg))

    info = run_simulator_smoke(
        out_dir=args.out_dir,
        config=cfg,
        bundle_id=args.bundle_id,
        xctestrun=args.xctestrun,
        device_id=args.device_id,
        retention=retention,
    )
    if not args.quiet:
        print(_json_dumps(info))

    app = info.get("app")
    if isinstance(app, dict) and not app.get("alive"):
        logger.warning("app never became reachable: %s", app.get("bundle_id"))
        return EXIT_APP_NOT_ALIVE
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
