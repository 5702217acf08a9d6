"""iOS simulator controller.

Thin wrapper around `xcrun simctl`, `xcodebuild` and `networksetup` used by the
test runner to:
  * launch the XCTest runner (detached, logged to a rotating directory)
  * inspect installed/running apps and wait for an app to come up
  * take screenshots, uninstall apps and toggle the host proxy

Every query re-runs the underlying tool; nothing is cached between calls.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from pathlib import Path
from typing import Dict, Optional, Set

from ios_harness.config import HarnessConfig
from ios_harness.runtime.simulator import parsing
from ios_harness.runtime.simulator.commands import (
    CommandResult,
    CommandRunner,
    CommandSpec,
    SubprocessRunner,
    decode_output,
)
from ios_harness.runtime.simulator.errors import AppNotAliveError
from ios_harness.runtime.simulator.log_retention import (
    LogRetention,
    get_log_retention,
    retention_from_config,
)
from ios_harness.runtime.simulator.polling import RetryPolicy, retry_with_policy
from ios_harness.runtime.simulator.proxy import ProxyController

logger = logging.getLogger(__name__)


class SimulatorController:
    def __init__(
        self,
        *,
        runner: Optional[CommandRunner] = None,
        config: Optional[HarnessConfig] = None,
        retention: Optional[LogRetention] = None,
    ) -> None:
        self._runner: CommandRunner = runner if runner is not None else SubprocessRunner()
        self._config = config if config is not None else HarnessConfig()
        self._retention = retention
        # Without an explicit config the process-wide retention is shared.
        self._own_retention = config is not None
        self._proxy = ProxyController(
            runner=self._runner,
            network_service=self._config.network_service,
            networksetup_path=self._config.networksetup_path,
        )

    @property
    def config(self) -> HarnessConfig:
        return self._config

    @property
    def alive_policy(self) -> RetryPolicy:
        return RetryPolicy(
            timeout_ms=self._config.alive_timeout_ms,
            delay_ms=self._config.alive_delay_ms,
        )

    @property
    def retention(self) -> LogRetention:
        if self._retention is None:
            if self._own_retention:
                self._retention = retention_from_config(self._config)
            else:
                self._retention = get_log_retention()
        return self._retention

    def _simctl(self, *args: str) -> list[str]:
        return [self._config.xcrun_path, "simctl", *args]

    # ------------------------------- Queries -------------------------------

    def list_apps(self) -> Set[str]:
        """Bundle ids installed on the simulator."""

        simctl = " ".join(
            shlex.quote(p) for p in self._simctl("listapps", self._config.simulator)
        )
        pipeline = f"{simctl} | plutil -convert json - -o -"
        spec = CommandSpec.synchronous(["bash", "-c", pipeline], merge_stderr=False)
        res = self._runner.run_sync(spec)
        if not res.ok():
            logger.debug("listapps pipeline exited with %s: %s", res.returncode, res.stderr.strip())
        return parsing.parse_installed_apps(res.stdout)

    def running_apps(self) -> Dict[str, Optional[int]]:
        spec = CommandSpec.synchronous(
            self._simctl("spawn", self._config.simulator, "launchctl", "list"),
            timeout_s=self._config.listing_timeout_s,
            merge_stderr=False,
        )
        res = self._runner.run_sync(spec)
        stdout = res.stdout
        if res.timed_out:
            logger.debug("launchctl list did not exit within %ss", self._config.listing_timeout_s)
            if res.process is not None:
                res.process.kill()
                # communicate() after a timeout returns everything read so far.
                rest, _ = res.process.communicate()
                stdout = decode_output(rest) or stdout
        return parsing.parse_running_apps(stdout)

    def is_app_alive(self, bundle_id: str) -> bool:
        return bundle_id in self.running_apps()

    def pid_for_app(self, bundle_id: str) -> Optional[int]:
        return self.running_apps().get(bundle_id)

    def ensure_app_alive(self, bundle_id: str, *, policy: Optional[RetryPolicy] = None) -> bool:
        """Wait until `bundle_id` shows up in launchctl; False on timeout."""

        policy = policy or self.alive_policy
        alive = retry_with_policy(policy, lambda: self.is_app_alive(bundle_id))
        if not alive:
            logger.info("%s not alive after %dms", bundle_id, policy.timeout_ms)
        return alive

    def require_app_alive(self, bundle_id: str, *, policy: Optional[RetryPolicy] = None) -> None:
        policy = policy or self.alive_policy
        if not self.ensure_app_alive(bundle_id, policy=policy):
            raise AppNotAliveError(bundle_id, timeout_ms=policy.timeout_ms)

    # ------------------------------- Actions -------------------------------

    def uninstall(self, bundle_id: str) -> CommandResult:
        return self._runner.run_sync(
            CommandSpec.synchronous(self._simctl("uninstall", self._config.simulator, bundle_id))
        )

    def screenshot(self, path: str | Path) -> CommandResult:
        out = Path(path)
        out.parent.mkdir(parents=True, exist_ok=True)
        return self._runner.run_sync(
            CommandSpec.synchronous(
                self._simctl("io", self._config.simulator, "screenshot", str(out))
            )
        )

    def run_xctest_without_build(
        self, device_id: str, xctestrun_path: str | Path
    ) -> "subprocess.Popen[bytes]":
        """Start the XCTest runner in the background and return its process.

        Output goes to a fresh `xctest_runner_<timestamp>.log`; the caller owns
        the returned process.
        """

        log_path = self.retention.new_log_file_path()
        spec = CommandSpec.detached(
            [
                self._config.xcodebuild_path,
                "test-without-building",
                "-xctestrun",
                str(xctestrun_path),
                "-destination",
                f"id={device_id}",
            ],
            output_path=log_path,
        )
        logger.info("starting xctest runner on %s (log: %s)", device_id, log_path)
        return self._runner.spawn_detached(spec)

    def set_proxy(self, host: str, port: int) -> list[CommandResult]:
        return self._proxy.enable_proxy(host, port)

    def reset_proxy(self) -> list[CommandResult]:
        return self._proxy.disable_proxy()
