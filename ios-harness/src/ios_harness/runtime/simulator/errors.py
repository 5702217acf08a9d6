from __future__ import annotations

from typing import Any, Optional, Sequence


class SimulatorError(RuntimeError):
    """Base class for simulator tool failures."""


class ToolInvocationError(SimulatorError):
    """Raised when an external tool is missing or cannot be started."""

    def __init__(self, message: str, *, args: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.command = list(args)


class ListingParseError(SimulatorError):
    """Raised when a non-empty listing payload has an unexpected shape."""


class AppNotAliveError(SimulatorError, TimeoutError):
    """Raised by strict liveness checks when the app never showed up."""

    def __init__(self, bundle_id: str, *, timeout_ms: int) -> None:
        super().__init__(f"app not alive after {timeout_ms}ms: {bundle_id}")
        self.bundle_id = bundle_id
        self.timeout_ms = timeout_ms


class ProxyConfigurationError(SimulatorError):
    """A networksetup step failed.

    `completed_steps` lists the steps that succeeded before `step`; nothing is
    rolled back.
    """

    def __init__(
        self,
        message: str,
        *,
        step: str,
        completed_steps: Sequence[str] = (),
        result: Optional[Any] = None,
    ) -> None:
        super().__init__(message)
        self.step = step
        self.completed_steps = list(completed_steps)
        self.result = result


class ProxyPartialFailureError(ProxyConfigurationError):
    """A later proxy step failed after an earlier one was applied."""
