"""Harness configuration.

Values come from (lowest to highest precedence):

  1. dataclass defaults
  2. an optional YAML/JSON file, validated against
     `schemas/harness_config.schema.json`
  3. `IOS_HARNESS_*` environment variables (e.g. `IOS_HARNESS_SIMULATOR`)
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, fields, replace
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from jsonschema import Draft202012Validator

ENV_PREFIX = "IOS_HARNESS_"


class ConfigValidationError(RuntimeError):
    pass


@dataclass(frozen=True)
class HarnessConfig:
    xcrun_path: str = "xcrun"
    xcodebuild_path: str = "xcodebuild"
    networksetup_path: str = "networksetup"
    simulator: str = "booted"
    network_service: str = "Wi-Fi"
    app_name: str = "maestro"
    app_author: str = "mobile_dev"
    log_dir: Optional[str] = None
    max_runner_logs: int = 5
    alive_timeout_ms: int = 4000
    alive_delay_ms: int = 300
    listing_timeout_s: float = 3.0

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def _schema_path() -> Path:
    return Path(__file__).resolve().parent / "schemas" / "harness_config.schema.json"


@lru_cache(maxsize=1)
def _load_schema() -> Dict[str, Any]:
    schema_path = _schema_path()
    data = json.loads(schema_path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ConfigValidationError(f"schema must be an object: {schema_path}")
    Draft202012Validator.check_schema(data)
    return data


def validate_config_dict(data: Mapping[str, Any], *, where: str) -> None:
    validator = Draft202012Validator(_load_schema())
    errors = sorted(validator.iter_errors(dict(data)), key=lambda e: list(e.path))
    if not errors:
        return
    msgs = []
    for e in errors[:20]:
        loc = "/".join(str(p) for p in e.path)
        suffix = f":{loc}" if loc else ""
        msgs.append(f"- {where}{suffix}: {e.message}")
    if len(errors) > 20:
        msgs.append(f"... ({len(errors)-20} more)")
    raise ConfigValidationError("\n".join(msgs))


_DECODERS = {
    ".yaml": yaml.safe_load,
    ".yml": yaml.safe_load,
    ".json": json.loads,
}


def read_config_file(path: Path) -> Dict[str, Any]:
    """Decode a harness config file; an empty document means "all defaults"."""

    decode = _DECODERS.get(path.suffix.lower())
    if decode is None:
        raise ValueError(f"config file must be .yaml, .yml or .json: {path}")
    text = path.read_text(encoding="utf-8")
    data = decode(text) if text.strip() else None
    if data is None:
        return {}
    if not isinstance(data, dict):
        kind = type(data).__name__
        raise ConfigValidationError(f"{path}: expected a mapping of settings, got {kind}")
    return data


def _coerce_env_value(name: str, raw: str, default: Any) -> Any:
    var = ENV_PREFIX + name.upper()
    if isinstance(default, bool):
        return raw.strip().lower() in {"1", "true", "yes", "on"}
    if isinstance(default, int):
        try:
            return int(raw)
        except ValueError as e:
            raise ConfigValidationError(f"{var} must be an integer: {raw!r}") from e
    if isinstance(default, float):
        try:
            return float(raw)
        except ValueError as e:
            raise ConfigValidationError(f"{var} must be a number: {raw!r}") from e
    return raw


def env_overrides(env: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    env = os.environ if env is None else env
    defaults = HarnessConfig()
    out: Dict[str, Any] = {}
    for f in fields(HarnessConfig):
        raw = env.get(ENV_PREFIX + f.name.upper())
        if raw is None or raw == "":
            continue
        out[f.name] = _coerce_env_value(f.name, raw, getattr(defaults, f.name))
    return out


def load_harness_config(
    path: Optional[Path] = None,
    *,
    env: Optional[Mapping[str, str]] = None,
) -> HarnessConfig:
    cfg = HarnessConfig()
    if path is not None:
        data = read_config_file(Path(path))
        validate_config_dict(data, where=str(path))
        cfg = replace(cfg, **data)

    overrides = env_overrides(env)
    if overrides:
        validate_config_dict(overrides, where="environment")
        cfg = replace(cfg, **overrides)
    return cfg
