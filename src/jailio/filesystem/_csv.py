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

"""Character-level CSV tokenizer for a single, already split line.

The tokenizer keeps three pieces of state while walking the line:

``field``
    Characters accumulated for the current field.
``enclosure_state``
    ``0`` outside quotes, ``1`` inside an opened enclosure, ``2`` right after
    the closing enclosure (only a delimiter may follow).
``escaped``
    The previous character was the escape character; the current one is
    taken literally.

An enclosure only opens a field when it is the first character of the field.
A delimiter only ends an unquoted field once the field holds text, so a
delimiter at the start of an unquoted field is kept as data. Use
:func:`format_csv_line` to produce lines this tokenizer reads back exactly.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Final

from ..errors import FormatError, InvalidCharacterError
from ._types import NO_RECORD, NoRecord

_OUTSIDE: Final[int] = 0
_INSIDE: Final[int] = 1
_CLOSED: Final[int] = 2


@dataclass(slots=True, frozen=True)
class CsvDialect:
    """The three single characters that define a CSV dialect.

    Raises:
        InvalidCharacterError: If any parameter is not exactly one character.
    """

    delimiter: str = ","
    enclosure: str = '"'
    escape: str = "\\"

    def __post_init__(self) -> None:
        for name in ("delimiter", "enclosure", "escape"):
            value = getattr(self, name)
            if not isinstance(value, str) or len(value) != 1:
                msg = f"The {name} is not a valid character: {value!r}"
                raise InvalidCharacterError(msg)


DEFAULT_DIALECT: Final[CsvDialect] = CsvDialect()


def tokenize_csv_line(
    line: str, dialect: CsvDialect = DEFAULT_DIALECT
) -> list[str] | NoRecord:
    """Split one line into fields.

    Args:
        line: Line content without its terminator.
        dialect: Delimiter, enclosure and escape characters.

    Returns:
        The ordered fields, or ``NO_RECORD`` when the line is blank after
        trimming whitespace. The final field is always emitted, even when
        empty.

    Raises:
        FormatError: If anything other than a delimiter follows a closing
            enclosure.

    Example::

        tokenize_csv_line('a,"b,c",d')  # ['a', 'b,c', 'd']
    """
    if not line.strip():
        return NO_RECORD

    fields: list[str] = []
    field: list[str] = []
    state = _OUTSIDE
    escaped = False

    for char in line:
        if escaped:
            field.append(char)
            escaped = False
            continue
        if char == dialect.escape:
            escaped = True
            continue
        if char == dialect.enclosure and not field and state == _OUTSIDE:
            state = _INSIDE
            continue
        if char == dialect.enclosure and state == _INSIDE:
            state = _CLOSED
            continue
        if char == dialect.delimiter and (
            state == _CLOSED or (state == _OUTSIDE and field)
        ):
            fields.append("".join(field))
            field.clear()
            state = _OUTSIDE
            continue
        if state == _CLOSED:
            msg = f"Delimiter not found after enclosure in CSV line: {line!r}"
            raise FormatError(msg)
        field.append(char)

    fields.append("".join(field))
    return fields


def format_csv_line(fields: Iterable[object], dialect: CsvDialect = DEFAULT_DIALECT) -> str:
    """Render ``fields`` as one line that :func:`tokenize_csv_line` reads back.

    Every field is enclosed, and enclosure and escape characters inside it are
    prefixed with the escape character. Values are converted with ``str``.
    The returned line has no terminator.
    """
    specials = {dialect.enclosure, dialect.escape}
    rendered: list[str] = []
    for value in fields:
        text = "".join(
            dialect.escape + char if char in specials else char for char in str(value)
        )
        rendered.append(dialect.enclosure + text + dialect.enclosure)
    return dialect.delimiter.join(rendered)


__all__ = [
    "DEFAULT_DIALECT",
    "CsvDialect",
    "format_csv_line",
    "tokenize_csv_line",
]
