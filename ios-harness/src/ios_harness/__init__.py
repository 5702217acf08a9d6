"""ios-harness: iOS simulator process control for UI test runs.

Provides:
- command execution (blocking and detached) for xcrun/xcodebuild/networksetup
- simctl listing parsers and app liveness polling
- XCTest runner log retention
- host proxy toggling
"""

__all__ = [
    "config",
    "runtime",
    "tools",
]
