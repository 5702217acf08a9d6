"""Host web proxy toggling via `networksetup`.

Each operation is two sequential commands (plain HTTP, then HTTPS). There is no
rollback: a failure in the second step leaves the first one applied, reported
as `ProxyPartialFailureError`.
"""

from __future__ import annotations

import logging
from typing import List, Sequence, Tuple

from ios_harness.runtime.simulator.commands import CommandResult, CommandRunner, CommandSpec
from ios_harness.runtime.simulator.errors import (
    ProxyConfigurationError,
    ProxyPartialFailureError,
    ToolInvocationError,
)

logger = logging.getLogger(__name__)

DEFAULT_NETWORK_SERVICE = "Wi-Fi"


class ProxyController:
    def __init__(
        self,
        *,
        runner: CommandRunner,
        network_service: str = DEFAULT_NETWORK_SERVICE,
        networksetup_path: str = "networksetup",
    ) -> None:
        self._runner = runner
        self._network_service = network_service
        self._networksetup_path = networksetup_path

    @property
    def network_service(self) -> str:
        return self._network_service

    def enable_steps(self, host: str, port: int) -> List[Tuple[str, List[str]]]:
        svc = self._network_service
        return [
            ("web_proxy", ["-setwebproxy", svc, host, str(int(port))]),
            ("secure_web_proxy", ["-setsecurewebproxy", svc, host, str(int(port))]),
        ]

    def disable_steps(self) -> List[Tuple[str, List[str]]]:
        svc = self._network_service
        return [
            ("web_proxy_state", ["-setwebproxystate", svc, "off"]),
            ("secure_web_proxy_state", ["-setsecurewebproxystate", svc, "off"]),
        ]

    def enable_proxy(self, host: str, port: int) -> List[CommandResult]:
        if not host:
            raise ValueError("host must not be empty")
        if not 0 < int(port) < 65536:
            raise ValueError(f"invalid proxy port: {port}")
        logger.info("enabling proxy %s:%s on %s", host, port, self._network_service)
        return self._run_steps(self.enable_steps(host, port))

    def disable_proxy(self) -> List[CommandResult]:
        logger.info("disabling proxy on %s", self._network_service)
        return self._run_steps(self.disable_steps())

    def _run_steps(self, steps: Sequence[Tuple[str, List[str]]]) -> List[CommandResult]:
        completed: list[str] = []
        results: list[CommandResult] = []
        for name, argv in steps:
            spec = CommandSpec.synchronous([self._networksetup_path, *argv])
            try:
                res = self._runner.run_sync(spec)
            except ToolInvocationError as e:
                if not completed:
                    raise
                raise ProxyPartialFailureError(
                    f"networksetup step {name} could not start after {completed}: {e}",
                    step=name,
                    completed_steps=completed,
                ) from e

            if not res.ok():
                error_cls = ProxyPartialFailureError if completed else ProxyConfigurationError
                raise error_cls(
                    f"networksetup step {name} failed (rc={res.returncode}): "
                    f"{spec.display()}\n{res.output.strip()}",
                    step=name,
                    completed_steps=completed,
                    result=res,
                )
            completed.append(name)
            results.append(res)
        return results
