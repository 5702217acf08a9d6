"""iOS simulator runtime helpers.

Everything here shells out to Xcode/macOS tools (`xcrun simctl`, `xcodebuild`,
`networksetup`) through a `CommandRunner`, so unit tests can substitute a fake
runner and never start real processes.
"""

from __future__ import annotations

from ios_harness.runtime.simulator.commands import (
    CommandResult,
    CommandRunner,
    CommandSpec,
    ExecutionMode,
    SubprocessRunner,
)
from ios_harness.runtime.simulator.controller import SimulatorController
from ios_harness.runtime.simulator.errors import (
    AppNotAliveError,
    ListingParseError,
    ProxyConfigurationError,
    ProxyPartialFailureError,
    SimulatorError,
    ToolInvocationError,
)
from ios_harness.runtime.simulator.log_retention import (
    LogRetention,
    ensure_log_directory,
    new_log_file_path,
    reset_log_retention,
    retention_from_config,
)
from ios_harness.runtime.simulator.parsing import (
    normalize_app_identifier,
    parse_installed_apps,
    parse_running_apps,
)
from ios_harness.runtime.simulator.polling import RetryPolicy, retry_until_true
from ios_harness.runtime.simulator.proxy import ProxyController

__all__ = [
    "AppNotAliveError",
    "CommandResult",
    "CommandRunner",
    "CommandSpec",
    "ExecutionMode",
    "ListingParseError",
    "LogRetention",
    "ProxyConfigurationError",
    "ProxyController",
    "ProxyPartialFailureError",
    "RetryPolicy",
    "SimulatorController",
    "SimulatorError",
    "SubprocessRunner",
    "ToolInvocationError",
    "ensure_log_directory",
    "new_log_file_path",
    "normalize_app_identifier",
    "parse_installed_apps",
    "parse_running_apps",
    "reset_log_retention",
    "retention_from_config",
    "retry_until_true",
]
