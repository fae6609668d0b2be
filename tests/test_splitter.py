"""Tests for multi-value field splitting."""

from __future__ import annotations

import pytest

from p2m3u.splitter import split_field


def _stripped(parts: list[str]) -> list[str]:
    return [p.strip() for p in parts]


def test_plain_split() -> None:
    """Unescaped commas separate values; whitespace is left to the caller."""
    assert split_field("Artist A, Artist B") == ["Artist A", " Artist B"]


def test_no_delimiter_returns_single_value() -> None:
    assert split_field("Solo Artist") == ["Solo Artist"]
    assert split_field("") == [""]


def test_escaped_delimiter_is_kept_literally() -> None:
    """An escaped comma is part of the value; the escape itself is dropped."""
    assert _stripped(split_field("A\\, B, C", ",", "\\", set())) == ["A, B", "C"]


def test_escape_before_other_character_is_kept() -> None:
    assert split_field("AC\\DC, B") == ["AC\\DC", " B"]


def test_protected_suffix_stays_with_previous_name() -> None:
    """A protected suffix keeps the comma before it; later commas still split."""
    parts = split_field("Smith, Jr., Band", ",", "\\", {"Jr."})
    assert _stripped(parts) == ["Smith, Jr.", "Band"]


def test_protected_name_containing_delimiter() -> None:
    """Commas inside a protected name are ignored, commas around it split."""
    parts = split_field("Foo, Earth, Wind & Fire, Bar", protected={"Earth, Wind & Fire"})
    assert _stripped(parts) == ["Foo", "Earth, Wind & Fire", "Bar"]


def test_protected_substring_absent_falls_back_to_plain_split() -> None:
    parts = split_field("Artist A, Artist B", protected={"Jr.", "Earth, Wind & Fire"})
    assert _stripped(parts) == ["Artist A", "Artist B"]


def test_protected_name_repeated() -> None:
    parts = split_field("Earth, Wind & Fire, Earth, Wind & Fire", protected={"Earth, Wind & Fire"})
    assert _stripped(parts) == ["Earth, Wind & Fire", "Earth, Wind & Fire"]


def test_custom_delimiter() -> None:
    assert split_field(r"A; B\; C", ";") == ["A", " B; C"]


@pytest.mark.parametrize("delimiter, escape", [(",,", "\\"), (",", ""), ("", "\\")])
def test_rejects_multi_character_settings(delimiter: str, escape: str) -> None:
    with pytest.raises(ValueError):
        split_field("a,b", delimiter, escape)


@pytest.mark.parametrize(
    "value, expected",
    [
        ("Smith\\, Jr., Band", ["Smith, Jr.", "Band"]),
        ("Smith, Jr.\\, Band", ["Smith, Jr., Band"]),
    ],
)
def test_escape_and_protected_suffix_together(value: str, expected: list[str]) -> None:
    """An escaped comma is literal whether or not a protected suffix follows it."""
    assert _stripped(split_field(value, ",", "\\", {"Jr."})) == expected
