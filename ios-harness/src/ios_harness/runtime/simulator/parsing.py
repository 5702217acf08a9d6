"""Parsers for simctl listing output.

`launchctl list` (run inside the simulator) prints a header followed by
whitespace separated `PID Status Label` rows, e.g.::

    PID	Status	Label
    -	0	com.apple.accessibility.AccessibilityUIServer
    5123	0	UIKitApplication:com.example.app[0x5a1c][rb-legacy]

Rows with more than three fields (services whose label contains spaces) are
ignored. The upstream format is not versioned, so keep this module free of
process handling and test it against literal samples.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Mapping, Optional, Set

from ios_harness.runtime.simulator.errors import ListingParseError

UIKIT_APPLICATION_PREFIX = "UIKitApplication:"

_MAX_FIELDS = 3


def _safe_int(v: str) -> Optional[int]:
    try:
        return int(v)
    except ValueError:
        return None


def normalize_app_identifier(label: str) -> str:
    """Strip the `UIKitApplication:` prefix and any `[...]` suffix from a label."""

    identifier = label.split("[", 1)[0]
    if identifier.startswith(UIKIT_APPLICATION_PREFIX):
        identifier = identifier[len(UIKIT_APPLICATION_PREFIX) :]
    return identifier


def parse_running_apps(raw_text: str) -> Dict[str, Optional[int]]:
    apps: Dict[str, Optional[int]] = {}
    for line in raw_text.splitlines()[1:]:
        parts = line.split()
        if len(parts) < 2 or len(parts) > _MAX_FIELDS:
            continue
        apps[normalize_app_identifier(parts[-1])] = _safe_int(parts[0])
    return apps


def is_app_alive(raw_text: str, bundle_id: str) -> bool:
    return bundle_id in parse_running_apps(raw_text)


def pid_for_app(raw_text: str, bundle_id: str) -> Optional[int]:
    return parse_running_apps(raw_text).get(bundle_id)


def decode_app_mapping(raw_json: str) -> Mapping[str, Any]:
    """Decode an installed-apps payload into `{bundle_id: opaque}`.

    Empty input means "no apps" and decodes to an empty mapping.
    """

    if not raw_json.strip():
        return {}
    try:
        data = json.loads(raw_json)
    except ValueError as e:
        raise ListingParseError(f"installed apps listing is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ListingParseError(
            f"installed apps listing must be a JSON object, got {type(data).__name__}"
        )
    return {str(k): v for k, v in data.items()}


def parse_installed_apps(raw_json: str) -> Set[str]:
    return set(decode_app_mapping(raw_json).keys())
