"""
Escape-aware splitting of multi-valued tag fields.

Artist credits are free text ("Artist A, Artist B"), so splitting them on every
delimiter breaks names that legitimately contain it. Two mechanisms keep such
names together:

- An escape character placed right before the delimiter ("A\\, B") turns it into
  a literal delimiter in the output.
- Protected substrings ("special cases") suppress splitting. A protected value
  that contains the delimiter ("Earth, Wind & Fire") protects its own interior.
  A protected value without the delimiter (a suffix such as "Jr.") protects the
  delimiter right before it, so it stays attached to the preceding name.
"""

from __future__ import annotations

from typing import Iterable

DEFAULT_DELIMITER = ","
DEFAULT_ESCAPE = "\\"


def _is_escaped(value: str, index: int, escape: str) -> bool:
    return index > 0 and value[index - 1] == escape


def _protected_offsets(value: str, delimiter: str, escape: str, protected: Iterable[str]) -> set[int]:
    """Return the offsets of delimiter characters that must not be split on."""
    offsets: set[int] = set()
    for pattern in protected:
        if not pattern:
            continue
        start = value.find(pattern)
        while start != -1:
            end = start + len(pattern)
            if delimiter in pattern:
                offsets.update(i for i in range(start, end) if value[i] == delimiter)
            else:
                # Walk back over whitespace to the delimiter the suffix hangs off
                j = start - 1
                while j >= 0 and value[j].isspace():
                    j -= 1
                if j >= 0 and value[j] == delimiter and not _is_escaped(value, j, escape):
                    offsets.add(j)
            start = value.find(pattern, start + 1)
    return offsets


def split_field(
    value: str,
    delimiter: str = DEFAULT_DELIMITER,
    escape: str = DEFAULT_ESCAPE,
    protected: Iterable[str] = (),
) -> list[str]:
    """
    Split a multi-valued field on unescaped, unprotected delimiter characters.

    Values are returned untrimmed; callers strip them before indexing.

    Args:
        value: Raw field text, e.g. an artist credit.
        delimiter: Single delimiter character.
        escape: Single escape character.
        protected: Literal substrings that suppress splitting (see module docs).

    Returns:
        list[str]: At least one element; a value without delimiters comes back
                   as a single (unescaped) element.
    """
    if len(delimiter) != 1 or len(escape) != 1:
        raise ValueError("delimiter and escape must be single characters")

    skip = _protected_offsets(value, delimiter, escape, protected)

    parts: list[str] = []
    current: list[str] = []
    i = 0
    n = len(value)
    while i < n:
        ch = value[i]
        if ch == escape and i + 1 < n and value[i + 1] == delimiter:
            current.append(delimiter)
            i += 2
            continue
        if ch == delimiter and i not in skip:
            parts.append("".join(current))
            current = []
        else:
            current.append(ch)
        i += 1
    parts.append("".join(current))
    return parts
