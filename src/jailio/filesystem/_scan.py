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

"""scanf-style parsing of a single line of text.

Supported conversions:

==========================  =======================================
directive                   result
==========================  =======================================
``%d`` ``%u``               ``int`` (optional sign, decimal digits)
``%f`` ``%e`` ``%E``        ``float``
``%g`` ``%G``
``%x`` ``%X``               ``int`` parsed as hexadecimal
``%o``                      ``int`` parsed as octal
``%s``                      ``str``, a run of non-whitespace
``%c``                      ``str`` of one character (or *width*)
``%[abc]`` ``%[^abc]``      ``str``, a run of characters in the set
``%n``                      ``int``, characters consumed so far
``%%``                      matches a literal ``%``
==========================  =======================================

A ``*`` after ``%`` matches without producing a value; a decimal width caps
the characters a conversion may consume. Whitespace in the format matches
any run of whitespace (including none). Numeric conversions and ``%s`` skip
leading whitespace; ``%c`` and ``%[`` do not.

Parsing stops at the first mismatch; conversions that were not reached are
returned as ``None`` so the result always has one slot per assigning
conversion.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Final

_DIRECTIVE: Final[re.Pattern[str]] = re.compile(
    r"%(?P<suppress>\*?)(?P<width>\d*)(?P<spec>[duxXofeEgGscn%]|\[\^?\]?[^\]]*\])"
)

_NUMBER_PATTERNS: Final[dict[str, str]] = {
    "d": r"[-+]?\d+",
    "u": r"[-+]?\d+",
    "x": r"[-+]?(?:0[xX])?[0-9a-fA-F]+",
    "X": r"[-+]?(?:0[xX])?[0-9a-fA-F]+",
    "o": r"[-+]?[0-7]+",
    "f": r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?",
    "e": r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?",
    "E": r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?",
    "g": r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?",
    "G": r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?",
}

_CONVERTERS: Final[dict[str, Callable[[str], object]]] = {
    "d": int,
    "u": int,
    "x": lambda text: int(text, 16),
    "X": lambda text: int(text, 16),
    "o": lambda text: int(text, 8),
    "f": float,
    "e": float,
    "E": float,
    "g": float,
    "G": float,
}


def _skip_whitespace(text: str, position: int) -> int:
    while position < len(text) and text[position].isspace():
        position += 1
    return position


@dataclass(slots=True, frozen=True)
class _Conversion:
    spec: str
    width: int | None
    suppress: bool

    @property
    def assigns(self) -> bool:
        return not self.suppress and self.spec != "%"


@dataclass(slots=True, frozen=True)
class _Literal:
    text: str


@dataclass(slots=True, frozen=True)
class _Whitespace:
    pass


type _Token = _Conversion | _Literal | _Whitespace


def _compile(fmt: str) -> list[_Token]:
    tokens: list[_Token] = []
    index = 0
    while index < len(fmt):
        char = fmt[index]
        if char.isspace():
            while index < len(fmt) and fmt[index].isspace():
                index += 1
            tokens.append(_Whitespace())
            continue
        if char == "%":
            match = _DIRECTIVE.match(fmt, index)
            if match is None:
                msg = f"Invalid conversion in format at offset {index}: {fmt!r}"
                raise ValueError(msg)
            width = match.group("width")
            tokens.append(
                _Conversion(
                    spec=match.group("spec"),
                    width=int(width) if width else None,
                    suppress=bool(match.group("suppress")),
                )
            )
            index = match.end()
            continue
        tokens.append(_Literal(char))
        index += 1
    return tokens


def _match_conversion(
    conversion: _Conversion, text: str, position: int
) -> tuple[object, int] | None:
    spec = conversion.spec
    if spec == "n":
        return position, position
    if spec != "c" and not spec.startswith("["):
        position = _skip_whitespace(text, position)
    limit = len(text) if conversion.width is None else position + conversion.width
    window = text[:limit]

    if spec == "%":
        if window.startswith("%", position):
            return "%", position + 1
        return None
    if spec == "c":
        count = conversion.width or 1
        if position + count > len(text):
            return None
        return text[position : position + count], position + count
    if spec == "s":
        match = re.compile(r"\S+").match(window, position)
    elif spec.startswith("["):
        match = re.compile(f"[{spec[1:-1]}]+").match(window, position)
    else:
        match = re.compile(_NUMBER_PATTERNS[spec]).match(window, position)
    if match is None:
        return None
    raw = match.group(0)
    converter = _CONVERTERS.get(spec)
    value = converter(raw) if converter is not None else raw
    return value, match.end()


def scan(fmt: str, text: str) -> list[object | None]:
    """Parse ``text`` according to the scanf-style ``fmt``.

    Returns:
        One value per assigning conversion, in format order. Conversions
        after the first mismatch are ``None``.

    Raises:
        ValueError: If ``fmt`` contains an unknown conversion.

    Example::

        scan("%s %d %f", "widget 3 9.5")  # ['widget', 3, 9.5]
        scan("%d-%d", "12-x")             # [12, None]
    """
    tokens = _compile(fmt)
    values: list[object | None] = []
    position = 0
    failed = False

    for token in tokens:
        if failed:
            if isinstance(token, _Conversion) and token.assigns:
                values.append(None)
            continue
        if isinstance(token, _Whitespace):
            position = _skip_whitespace(text, position)
            continue
        if isinstance(token, _Literal):
            if text.startswith(token.text, position):
                position += len(token.text)
            else:
                failed = True
            continue
        matched = _match_conversion(token, text, position)
        if matched is None:
            failed = True
            if token.assigns:
                values.append(None)
            continue
        value, position = matched
        if token.assigns:
            values.append(value)

    return values


__all__ = ["scan"]
