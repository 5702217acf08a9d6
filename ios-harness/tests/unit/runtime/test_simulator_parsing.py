from __future__ import annotations

import pytest

from ios_harness.runtime.simulator.errors import ListingParseError
from ios_harness.runtime.simulator.parsing import (
    decode_app_mapping,
    is_app_alive,
    normalize_app_identifier,
    parse_installed_apps,
    parse_running_apps,
    pid_for_app,
)

LAUNCHCTL_LIST_SAMPLE = (
    "PID\tStatus\tLabel\n"
    "-\t0\tcom.apple.accessibility.AccessibilityUIServer\n"
    "5123\t0\tUIKitApplication:com.example.app[0x5a1c][rb-legacy]\n"
    "611\t0\tcom.apple.springboard\n"
    "-\t0\tcom.apple.Some Service With Spaces\n"
    "702\t-9\tUIKitApplication:dev.mobile.maestro-driver-iosUITests.xctrunner[1c2d]\n"
    "\n"
)


@pytest.mark.parametrize(
    "label,expected",
    [
        ("UIKitApplication:com.example.app[0x5a1c][rb-legacy]", "com.example.app"),
        ("UIKitApplication:com.example.app[1]", "com.example.app"),
        ("UIKitApplication:com.example.app", "com.example.app"),
        ("com.example.app[0x1]", "com.example.app"),
        ("com.apple.springboard", "com.apple.springboard"),
        ("", ""),
    ],
)
def test_normalize_app_identifier(label: str, expected: str) -> None:
    assert normalize_app_identifier(label) == expected


@pytest.mark.parametrize(
    "label",
    [
        "com.apple.springboard",
        "UIKitApplication:com.example.app[0x5a1c]",
        "com.example.app[x]",
    ],
)
def test_normalize_app_identifier_is_idempotent(label: str) -> None:
    once = normalize_app_identifier(label)
    assert normalize_app_identifier(once) == once


def test_parse_running_apps_sample() -> None:
    apps = parse_running_apps(LAUNCHCTL_LIST_SAMPLE)
    assert apps == {
        "com.apple.accessibility.AccessibilityUIServer": None,
        "com.example.app": 5123,
        "com.apple.springboard": 611,
        "dev.mobile.maestro-driver-iosUITests.xctrunner": 702,
    }


def test_parse_running_apps_drops_header_line() -> None:
    # The first line is always treated as the header, even if it looks like a row.
    apps = parse_running_apps("1\t0\tcom.header.like\n2\t0\tcom.real\n")
    assert apps == {"com.real": 2}


def test_parse_running_apps_excludes_rows_with_more_than_three_fields() -> None:
    raw = "PID Status Label\n10 0 com.a\n11 0 com.b extra\n12 0 com.c more words\n"
    assert parse_running_apps(raw) == {"com.a": 10}


def test_parse_running_apps_two_field_rows_use_last_field_as_label() -> None:
    raw = "PID Label\n- com.idle\n77 com.busy\n"
    assert parse_running_apps(raw) == {"com.idle": None, "com.busy": 77}


def test_parse_running_apps_later_rows_win_on_collision() -> None:
    raw = (
        "PID\tStatus\tLabel\n"
        "100\t0\tUIKitApplication:com.example.app[aaaa]\n"
        "200\t0\tUIKitApplication:com.example.app[bbbb]\n"
    )
    assert parse_running_apps(raw) == {"com.example.app": 200}


def test_parse_running_apps_empty_and_header_only() -> None:
    assert parse_running_apps("") == {}
    assert parse_running_apps("PID\tStatus\tLabel\n") == {}


def test_is_app_alive_and_pid_for_app() -> None:
    assert is_app_alive(LAUNCHCTL_LIST_SAMPLE, "com.example.app") is True
    assert is_app_alive(LAUNCHCTL_LIST_SAMPLE, "com.missing") is False
    assert pid_for_app(LAUNCHCTL_LIST_SAMPLE, "com.example.app") == 5123
    # Present but not running: alive by key, no pid.
    idle = "com.apple.accessibility.AccessibilityUIServer"
    assert is_app_alive(LAUNCHCTL_LIST_SAMPLE, idle)
    assert pid_for_app(LAUNCHCTL_LIST_SAMPLE, idle) is None
    assert pid_for_app(LAUNCHCTL_LIST_SAMPLE, "com.missing") is None


@pytest.mark.parametrize("raw", ["", "   ", "\n"])
def test_parse_installed_apps_empty_is_empty_set(raw: str) -> None:
    assert parse_installed_apps(raw) == set()


def test_parse_installed_apps_returns_keys() -> None:
    raw = (
        '{"com.apple.mobilesafari": {"CFBundleDisplayName": "Safari"},'
        ' "com.example.app": {"ApplicationType": "User"},'
        ' "com.apple.Preferences": {}}'
    )
    assert parse_installed_apps(raw) == {
        "com.apple.mobilesafari",
        "com.example.app",
        "com.apple.Preferences",
    }


def test_decode_app_mapping_keeps_values_opaque() -> None:
    mapping = decode_app_mapping('{"com.example.app": [1, 2, 3]}')
    assert mapping == {"com.example.app": [1, 2, 3]}


@pytest.mark.parametrize("raw", ["{not json", '["com.example.app"]', '"text"'])
def test_parse_installed_apps_rejects_malformed_payload(raw: str) -> None:
    with pytest.raises(ListingParseError):
        parse_installed_apps(raw)
