"""Import shim for the src/ layout.

The real package lives under `ios-harness/src/ios_harness/`. This shim lets
`python -m ios_harness...` work from the repo root without setting PYTHONPATH
by extending the package search path to include the src directory.
"""

from __future__ import annotations

from pathlib import Path

_REPO_ROOT = Path(__file__).resolve().parents[1]
_REAL_PKG = _REPO_ROOT / "ios-harness" / "src" / "ios_harness"
if _REAL_PKG.is_dir():
    __path__.append(str(_REAL_PKG))  # type: ignore[name-defined]

__all__ = [
    "config",
    "runtime",
    "tools",
]
