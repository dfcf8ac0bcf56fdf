# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Conversion between symbolic ``rwx`` strings and numeric modes.

A permission string has exactly nine symbols grouped owner/group/other, each
group read/write/execute. The execute slot may also carry a special bit:

======  ==========  ===================  ===================
slot    symbol      special bit          execute bit
======  ==========  ===================  ===================
owner   ``s``/``S`` setuid ``0o4000``    set / clear
group   ``s``/``S`` setgid ``0o2000``    set / clear
other   ``t``/``T`` sticky ``0o1000``    set / clear
======  ==========  ===================  ===================

``to_rwx(to_octal(s)) == s`` holds for every string whose positions only use
their own letter or ``-``. Strings outside that shape (``"xxxxxxxxx"``,
unknown symbols) still convert deterministically but do not round-trip.
"""

from __future__ import annotations

from typing import Final

PERMISSION_LENGTH: Final[int] = 9
PERMISSION_ALPHABET: Final[frozenset[str]] = frozenset("rwxsStT-")

#: Mode bits for each slot when the symbol is the plain letter.
_PLAIN_BITS: Final[tuple[tuple[str, int], ...]] = (
    ("r", 0o400),
    ("w", 0o200),
    ("x", 0o100),
    ("r", 0o040),
    ("w", 0o020),
    ("x", 0o010),
    ("r", 0o004),
    ("w", 0o002),
    ("x", 0o001),
)

#: (execute slot, special bit, lowercase symbol, uppercase symbol)
_SPECIAL_SLOTS: Final[tuple[tuple[int, int, str, str], ...]] = (
    (2, 0o4000, "s", "S"),
    (5, 0o2000, "s", "S"),
    (8, 0o1000, "t", "T"),
)

_MODE_MASK: Final[int] = 0o7777


def to_octal(rwx: str) -> int:
    """Return the numeric mode for a nine-symbol permission string.

    Lowercase ``s``/``t`` set both the special bit and the execute bit;
    uppercase ``S``/``T`` set only the special bit. Strings shorter than nine
    symbols are padded with ``-`` and longer ones truncated, so the function
    is total.

    Example::

        to_octal("rwxr-xr-x")  # 0o755
        to_octal("rwsr-xr-T")  # 0o5754
    """
    symbols = rwx[:PERMISSION_LENGTH].ljust(PERMISSION_LENGTH, "-")
    mode = 0
    for symbol, (letter, bit) in zip(symbols, _PLAIN_BITS, strict=True):
        if symbol == letter:
            mode |= bit
    for slot, special, lower, upper in _SPECIAL_SLOTS:
        symbol = symbols[slot]
        if symbol == lower:
            mode |= special | _PLAIN_BITS[slot][1]
        elif symbol == upper:
            mode |= special
    return mode


def to_rwx(mode: int) -> str:
    """Return the nine-symbol permission string for a numeric mode.

    File type bits above ``0o7777`` are ignored, so a raw ``st_mode`` can be
    passed directly.
    """
    mode &= _MODE_MASK
    symbols = [
        letter if mode & bit else "-" for letter, bit in _PLAIN_BITS
    ]
    for slot, special, lower, upper in _SPECIAL_SLOTS:
        if mode & special:
            symbols[slot] = lower if mode & _PLAIN_BITS[slot][1] else upper
    return "".join(symbols)


def has_permissions(required: str, actual: str) -> bool:
    """Return True when ``actual`` satisfies ``required`` position by position.

    ``-`` in ``required`` matches anything; every other symbol must equal the
    symbol in ``actual`` exactly. Requiring ``x`` therefore does not match an
    actual ``s``.

    Raises:
        ValueError: If either string is not nine symbols long.
    """
    validate_permissions(required, allow_unknown=True)
    validate_permissions(actual, allow_unknown=True)
    return all(
        want == "-" or want == have
        for want, have in zip(required, actual, strict=True)
    )


def validate_permissions(rwx: str, *, allow_unknown: bool = False) -> str:
    """Check that ``rwx`` is a nine-symbol permission string.

    Args:
        rwx: Candidate permission string.
        allow_unknown: Skip the alphabet check and only validate the length.

    Returns:
        The unchanged string, for use in expressions.

    Raises:
        ValueError: On a wrong length or a symbol outside ``rwxsStT-``.
    """
    if len(rwx) != PERMISSION_LENGTH:
        msg = f"Permission string must have {PERMISSION_LENGTH} symbols: {rwx!r}"
        raise ValueError(msg)
    if not allow_unknown and not set(rwx) <= PERMISSION_ALPHABET:
        msg = f"Permission string contains invalid symbols: {rwx!r}"
        raise ValueError(msg)
    return rwx


__all__ = [
    "PERMISSION_ALPHABET",
    "PERMISSION_LENGTH",
    "has_permissions",
    "to_octal",
    "to_rwx",
    "validate_permissions",
]
