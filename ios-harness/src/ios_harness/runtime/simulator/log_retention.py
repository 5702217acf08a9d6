"""XCTest runner log directory and rotation.

The log directory is process-wide state: it is resolved and rotated once, on
first use, under a lock. `reset()` (or `reset_log_retention()` for the shared
instance) drops that state so tests can point it at a fresh directory.

Rotation policy
---------------
When the directory already holds more than `max_logs` entries, *all* of them
are deleted, not just the oldest excess. This is the long-standing behaviour of
the runner and is kept as-is; see tests/unit/runtime/test_log_retention.py.
"""

from __future__ import annotations

import logging
import shutil
import threading
from datetime import datetime
from pathlib import Path
from typing import Optional

import platformdirs

from ios_harness.config import HarnessConfig

logger = logging.getLogger(__name__)

APP_NAME = "maestro"
APP_AUTHOR = "mobile_dev"
RUNNER_LOGS_DIRNAME = "xctest_runner_logs"
LOG_FILE_PREFIX = "xctest_runner_"
LOG_TIMESTAMP_FORMAT = "%Y-%m-%d_%H%M%S"
MAX_RUNNER_LOGS = 5


def _delete_recursively(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()


class LogRetention:
    def __init__(
        self,
        *,
        app_name: str = APP_NAME,
        app_author: str = APP_AUTHOR,
        max_logs: int = MAX_RUNNER_LOGS,
        base_dir: Optional[Path] = None,
    ) -> None:
        if max_logs < 0:
            raise ValueError("max_logs must be >= 0")
        self._app_name = app_name
        self._app_author = app_author
        self._max_logs = int(max_logs)
        self._base_dir = Path(base_dir) if base_dir is not None else None
        self._lock = threading.Lock()
        self._log_dir: Optional[Path] = None

    @property
    def max_logs(self) -> int:
        return self._max_logs

    @property
    def initialized(self) -> bool:
        return self._log_dir is not None

    def _resolve_parent(self) -> Path:
        if self._base_dir is not None:
            return self._base_dir
        return Path(platformdirs.user_log_dir(self._app_name, self._app_author))

    def ensure_log_directory(self) -> Path:
        log_dir = self._log_dir
        if log_dir is not None:
            return log_dir
        with self._lock:
            if self._log_dir is None:
                self._log_dir = self._initialize()
            return self._log_dir

    def _initialize(self) -> Path:
        parent = self._resolve_parent()
        logs_dir = parent / RUNNER_LOGS_DIRNAME
        logs_dir.mkdir(parents=True, exist_ok=True)

        existing = sorted(logs_dir.iterdir(), key=lambda p: p.name, reverse=True)
        if len(existing) > self._max_logs:
            logger.info(
                "rotating runner logs: %d entries in %s (max %d)",
                len(existing),
                logs_dir,
                self._max_logs,
            )
            for entry in existing:
                _delete_recursively(entry)
        return logs_dir

    def new_log_file_path(self, now: Optional[datetime] = None) -> Path:
        stamp = (now or datetime.now()).strftime(LOG_TIMESTAMP_FORMAT)
        return self.ensure_log_directory() / f"{LOG_FILE_PREFIX}{stamp}.log"

    def reset(self) -> None:
        with self._lock:
            self._log_dir = None


def retention_from_config(cfg: HarnessConfig) -> LogRetention:
    return LogRetention(
        app_name=cfg.app_name,
        app_author=cfg.app_author,
        max_logs=cfg.max_runner_logs,
        base_dir=Path(cfg.log_dir) if cfg.log_dir else None,
    )


_default_lock = threading.Lock()
_default: Optional[LogRetention] = None


def get_log_retention() -> LogRetention:
    global _default
    with _default_lock:
        if _default is None:
            _default = LogRetention()
        return _default


def configure_log_retention(retention: LogRetention) -> LogRetention:
    """Install `retention` as the shared instance (before first use)."""

    global _default
    with _default_lock:
        if _default is not None and _default.initialized and _default is not retention:
            raise RuntimeError("log retention already initialized; call reset_log_retention()")
        _default = retention
        return retention


def reset_log_retention() -> None:
    global _default
    with _default_lock:
        if _default is not None:
            _default.reset()
        _default = None


def ensure_log_directory() -> Path:
    return get_log_retention().ensure_log_directory()


def new_log_file_path(now: Optional[datetime] = None) -> Path:
    return get_log_retention().new_log_file_path(now)
