"""Command execution for simulator tooling.

Two execution modes are supported:

  * synchronous: block until the child exits and return its captured output
  * detached: redirect stdout/stderr to a file and hand back the running process

Exit codes are reported, not interpreted. Only a failure to start the tool is
raised (`ToolInvocationError`).
"""

from __future__ import annotations

import enum
import logging
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Protocol, Sequence, Union

from ios_harness.runtime.simulator.errors import ToolInvocationError

logger = logging.getLogger(__name__)


class ExecutionMode(str, enum.Enum):
    SYNCHRONOUS = "synchronous"
    DETACHED = "detached"


@dataclass(frozen=True)
class CommandSpec:
    args: tuple[str, ...]
    mode: ExecutionMode = ExecutionMode.SYNCHRONOUS
    output_path: Optional[Path] = None
    timeout_s: Optional[float] = None
    merge_stderr: bool = True

    def __post_init__(self) -> None:
        args = tuple(str(a) for a in self.args)
        if not args:
            raise ValueError("CommandSpec.args must not be empty")
        object.__setattr__(self, "args", args)
        object.__setattr__(self, "mode", ExecutionMode(self.mode))
        if self.output_path is not None:
            object.__setattr__(self, "output_path", Path(self.output_path))

        if self.mode is ExecutionMode.DETACHED and self.output_path is None:
            raise ValueError("detached commands require output_path")
        if self.mode is ExecutionMode.SYNCHRONOUS and self.output_path is not None:
            raise ValueError("synchronous commands capture output; output_path is not allowed")
        if self.timeout_s is not None and float(self.timeout_s) <= 0:
            raise ValueError("timeout_s must be positive")

    @classmethod
    def synchronous(
        cls,
        args: Sequence[str],
        *,
        timeout_s: Optional[float] = None,
        merge_stderr: bool = True,
    ) -> "CommandSpec":
        return cls(
            args=tuple(args),
            mode=ExecutionMode.SYNCHRONOUS,
            timeout_s=timeout_s,
            merge_stderr=merge_stderr,
        )

    @classmethod
    def detached(cls, args: Sequence[str], *, output_path: Path) -> "CommandSpec":
        return cls(args=tuple(args), mode=ExecutionMode.DETACHED, output_path=output_path)

    def display(self) -> str:
        return " ".join(self.args)


@dataclass(frozen=True)
class CommandResult:
    args: list[str]
    stdout: str
    stderr: str
    returncode: Optional[int]
    timed_out: bool = False
    # Set only when the wait timed out and the child may still be running.
    process: Optional[Any] = field(default=None, compare=False, repr=False)

    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        if not self.stderr:
            return self.stdout
        return self.stdout + self.stderr


ExecutionHandle = Union[CommandResult, "subprocess.Popen[bytes]"]


class CommandRunner(Protocol):
    def run(self, spec: CommandSpec) -> ExecutionHandle: ...

    def run_sync(self, spec: CommandSpec) -> CommandResult: ...

    def spawn_detached(self, spec: CommandSpec) -> "subprocess.Popen[bytes]": ...


def decode_output(data: Any) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return str(data)


class SubprocessRunner:
    """`CommandRunner` backed by real child processes."""

    def run(self, spec: CommandSpec) -> ExecutionHandle:
        if spec.mode is ExecutionMode.DETACHED:
            return self.spawn_detached(spec)
        return self.run_sync(spec)

    def _popen(self, spec: CommandSpec, **kwargs: Any) -> "subprocess.Popen[bytes]":
        try:
            return subprocess.Popen(list(spec.args), **kwargs)
        except OSError as e:
            raise ToolInvocationError(
                f"failed to start {spec.args[0]!r}: {e}", args=spec.args
            ) from e

    def run_sync(self, spec: CommandSpec) -> CommandResult:
        if spec.mode is not ExecutionMode.SYNCHRONOUS:
            raise ValueError(f"run_sync() got a {spec.mode.value} command: {spec.display()}")

        logger.debug("run: %s", spec.display())
        proc = self._popen(
            spec,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT if spec.merge_stderr else subprocess.PIPE,
        )
        try:
            stdout, stderr = proc.communicate(timeout=spec.timeout_s)
        except subprocess.TimeoutExpired as e:
            # The wait is bounded, the child is not: leave it to the caller.
            logger.debug("timed out after %ss (still running): %s", spec.timeout_s, spec.display())
            return CommandResult(
                args=list(spec.args),
                stdout=decode_output(e.stdout),
                stderr=decode_output(e.stderr),
                returncode=None,
                timed_out=True,
                process=proc,
            )

        result = CommandResult(
            args=list(spec.args),
            stdout=decode_output(stdout),
            stderr=decode_output(stderr),
            returncode=proc.returncode,
        )
        logger.debug("exit %s: %s", result.returncode, spec.display())
        return result

    def spawn_detached(self, spec: CommandSpec) -> "subprocess.Popen[bytes]":
        if spec.mode is not ExecutionMode.DETACHED or spec.output_path is None:
            raise ValueError(f"spawn_detached() requires a detached command: {spec.display()}")

        spec.output_path.parent.mkdir(parents=True, exist_ok=True)
        logger.debug("spawn: %s > %s", spec.display(), spec.output_path)
        # The child keeps its own copy of the descriptor.
        with spec.output_path.open("ab") as out:
            return self._popen(
                spec,
                stdin=subprocess.DEVNULL,
                stdout=out,
                stderr=subprocess.STDOUT,
            )
