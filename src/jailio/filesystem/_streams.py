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

"""Lock-guarded, line-oriented file streams.

A :class:`LockedStream` owns one open ``FileHandle`` and the advisory lock
taken on it when it was opened. The lock is held for the stream's whole
lifetime and released exactly once, by ``close()``. Streams are not closed
by garbage collection; use them as context managers::

    with open_shared(path, ops=ops) as reader:
        for record in reader.records():
            handle(record)

Factories:
    open_shared: Blocking shared lock on an existing file (readers).
    open_exclusive: Blocking exclusive lock, created if absent, start of file.
    open_exclusive_nonblocking: Exclusive lock without waiting, created if
        absent, end of file (log appenders). Contention yields
        ``LockUnavailable`` instead of blocking.

Text is decoded one character at a time with an incremental decoder, and a
one-slot pushback buffer lets ``read_line`` look one character past a CR
without losing it.
"""

from __future__ import annotations

import codecs
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import Self

from ..errors import (
    InvalidCharacterError,
    NotFoundError,
    PushbackOverflowError,
    StreamClosedError,
)
from ..logging import StructuredLogger, get_logger
from ._csv import CsvDialect, format_csv_line, tokenize_csv_line
from ._protocol import FileHandle, FileOps
from ._scan import scan
from ._types import NO_RECORD, LockMode, LockUnavailable, NoRecord, OpenMode

__all__ = [
    "LockedStream",
    "open_exclusive",
    "open_exclusive_nonblocking",
    "open_shared",
]

_logger: StructuredLogger = get_logger(__name__, context={"component": "stream"})

_CR = "\r"
_LF = "\n"


@dataclass(slots=True, eq=False)
class LockedStream:
    """A file handle plus its advisory lock, read and written as text or bytes.

    Streams are created by the module-level factories (or the ``open_*``
    methods of ``File``). Every operation except ``is_open`` raises
    :class:`StreamClosedError` once the stream is closed.

    Not safe for concurrent use from several threads: the pushback slot,
    decoder state and handle position are unsynchronized.
    """

    _path: str
    _handle: FileHandle
    _lock_mode: LockMode
    _encoding: str = "utf-8"
    _pushback: str | None = field(default=None, init=False)
    # Bytes the pending character occupied in the file; None if it was never read.
    _pushback_raw: bytes | None = field(default=None, init=False)
    _decoder: codecs.IncrementalDecoder = field(init=False)
    _encoder: codecs.IncrementalEncoder = field(init=False)
    _open: bool = field(default=True, init=False)

    def __post_init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder(self._encoding)()
        self._encoder = codecs.getincrementalencoder(self._encoding)()
        # Emit any byte order mark now so later encodes are bare.
        _ = self._encoder.encode("")

    # -- state -----------------------------------------------------------

    @property
    def path(self) -> str:
        """Absolute path of the underlying file."""
        return self._path

    @property
    def lock_mode(self) -> LockMode:
        """Lock held on the file while the stream is open."""
        return self._lock_mode

    @property
    def encoding(self) -> str:
        return self._encoding

    @property
    def is_open(self) -> bool:
        """True until ``close()`` succeeds."""
        return self._open

    def _check_open(self) -> None:
        if not self._open:
            msg = f"Stream is closed: {self._path}"
            raise StreamClosedError(msg)

    # -- characters and lines --------------------------------------------

    def _next(self) -> tuple[str, bytes | None] | None:
        """Return the next character and the raw bytes it was decoded from."""
        if self._pushback is not None:
            pending = (self._pushback, self._pushback_raw)
            self._pushback, self._pushback_raw = None, None
            return pending
        raw = bytearray()
        while True:
            byte = self._handle.read(1)
            if not byte:
                # Raises UnicodeDecodeError on a truncated multibyte sequence.
                tail = self._decoder.decode(b"", final=True)
                return (tail, bytes(raw)) if tail else None
            raw += byte
            char = self._decoder.decode(byte)
            if char:
                return char, bytes(raw)

    def _push(self, char: str, raw: bytes | None) -> None:
        if self._pushback is not None:
            msg = "Can't push back more than one character."
            raise PushbackOverflowError(msg)
        self._pushback, self._pushback_raw = char, raw

    def _pending_bytes(self) -> bytes:
        if self._pushback is None:
            return b""
        if self._pushback_raw is None:
            return self._encoder.encode(self._pushback)
        return self._pushback_raw

    def read_char(self) -> str | None:
        """Return the next character, or ``None`` at end of stream.

        A character pushed back with :meth:`unget_char` is returned first.
        """
        self._check_open()
        taken = self._next()
        return None if taken is None else taken[0]

    def unget_char(self, char: str) -> None:
        """Push one character back so the next read returns it.

        Raises:
            InvalidCharacterError: If ``char`` is not exactly one character.
            PushbackOverflowError: If a pushed-back character is still pending.
        """
        self._check_open()
        if len(char) != 1:
            msg = f"Only a single character can be pushed back: {char!r}"
            raise InvalidCharacterError(msg)
        self._push(char, None)

    def read_line(self) -> str | None:
        """Read one line terminated by LF, CR or CRLF.

        The terminator is not included. After a CR the next character is
        inspected: an LF is consumed with it, anything else is pushed back
        for the next read.

        Returns:
            The line (possibly ``""`` for a blank line), or ``None`` when the
            stream is exhausted and no characters were read.
        """
        self._check_open()
        chars: list[str] = []
        while True:
            taken = self._next()
            if taken is None:
                return "".join(chars) if chars else None
            char = taken[0]
            if char == _LF:
                return "".join(chars)
            if char == _CR:
                following = self._next()
                if following is not None and following[0] != _LF:
                    self._push(*following)
                return "".join(chars)
            chars.append(char)

    def __iter__(self) -> Iterator[str]:
        """Iterate over the remaining lines."""
        while (line := self.read_line()) is not None:
            yield line

    def read_csv(
        self, delimiter: str = ",", enclosure: str = '"', escape: str = "\\"
    ) -> list[str] | NoRecord | None:
        """Read the next line as a CSV record.

        Returns:
            The record's fields; ``NO_RECORD`` for a line that is blank after
            trimming; ``None`` at end of stream.

        Raises:
            InvalidCharacterError: If a dialect parameter is not one character.
            FormatError: If a closing enclosure is not followed by a delimiter.
        """
        dialect = CsvDialect(delimiter=delimiter, enclosure=enclosure, escape=escape)
        self._check_open()
        line = self.read_line()
        if line is None:
            return None
        return tokenize_csv_line(line, dialect)

    def records(
        self, delimiter: str = ",", enclosure: str = '"', escape: str = "\\"
    ) -> Iterator[list[str]]:
        """Iterate over the remaining CSV records, skipping blank lines."""
        while (record := self.read_csv(delimiter, enclosure, escape)) is not None:
            if record is not NO_RECORD:
                yield record

    def scan_formatted(self, fmt: str) -> list[object | None] | None:
        """Read one line and parse it with a scanf-style format.

        Returns ``None`` at end of stream. See ``jailio.filesystem._scan`` for
        the supported conversions.
        """
        self._check_open()
        line = self.read_line()
        if line is None:
            return None
        return scan(fmt, line)

    def read(self, size: int = -1) -> bytes:
        """Read up to ``size`` raw bytes (``-1`` reads to EOF).

        A pending pushback character is returned first and never split: its
        bytes as they appear in the file, or its encoding if it came from
        :meth:`unget_char`. The result can therefore exceed ``size`` by the
        rest of that character. ``read(0)`` returns ``b""`` and leaves the
        pushback pending.
        """
        self._check_open()
        if size == 0:
            return b""
        prefix = self._pending_bytes()
        if self._pushback is not None:
            self._pushback, self._pushback_raw = None, None
            if size > 0:
                size -= len(prefix)
                if size <= 0:
                    return prefix
        return prefix + self._handle.read(size)

    # -- writing ---------------------------------------------------------

    def _rewind_pushback(self) -> None:
        if self._pushback is not None:
            pending = len(self._pushback_raw or b"")
            self._pushback, self._pushback_raw = None, None
            if pending:
                _ = self._handle.seek(-pending, 1)

    def _encode(self, text: str) -> bytes:
        # Only the start of the file gets a byte order mark.
        if self._handle.tell() == 0:
            return text.encode(self._encoding)
        return self._encoder.encode(text)

    def write(self, content: str | bytes) -> int:
        """Write text or bytes and return the number of bytes written."""
        self._check_open()
        self._rewind_pushback()
        data = self._encode(content) if isinstance(content, str) else content
        return self._handle.write(data)

    def write_line(self, line: str = "", newline: str = _LF) -> int:
        """Write ``line`` followed by ``newline``."""
        return self.write(line + newline)

    def write_csv(
        self,
        fields: Iterable[object],
        delimiter: str = ",",
        enclosure: str = '"',
        escape: str = "\\",
    ) -> int:
        """Write one CSV record that :meth:`read_csv` reads back unchanged."""
        dialect = CsvDialect(delimiter=delimiter, enclosure=enclosure, escape=escape)
        return self.write_line(format_csv_line(fields, dialect))

    def truncate(self) -> int:
        """Cut the file at the current position and return the new size."""
        self._check_open()
        self._rewind_pushback()
        return self._handle.truncate()

    # -- positioning -----------------------------------------------------

    def pos(self) -> int:
        """Return the byte offset of the next character to be read.

        A character read from the file and pushed back counts as unread. One
        given to :meth:`unget_char` never occupied the file and is not counted.
        """
        self._check_open()
        return self._handle.tell() - len(self._pushback_raw or b"")

    def seek(self, offset: int) -> int:
        """Move to an absolute byte offset, discarding any pushback.

        Raises:
            ValueError: If ``offset`` is negative.
        """
        self._check_open()
        if offset < 0:
            msg = f"Negative seek position: {offset}"
            raise ValueError(msg)
        self._pushback, self._pushback_raw = None, None
        self._decoder.reset()
        return self._handle.seek(offset, 0)

    def skip(self, offset: int) -> int:
        """Move ``offset`` bytes relative to :meth:`pos` and return the new offset."""
        return self.seek(self.pos() + offset)

    def reset(self) -> int:
        """Return to the start of the file; same as ``seek(0)``."""
        return self.seek(0)

    def is_end_of_stream(self) -> bool:
        """Return True if no further character can be read."""
        self._check_open()
        if self._pushback is not None:
            return False
        if not self._handle.read(1):
            return True
        _ = self._handle.seek(-1, 1)
        return False

    # -- lifecycle -------------------------------------------------------

    def close(self) -> None:
        """Flush, release the lock and close the handle.

        Raises:
            StreamClosedError: If the stream was already closed.
        """
        if not self._open:
            msg = f"Stream already closed: {self._path}"
            raise StreamClosedError(msg)
        self._open = False
        self._pushback, self._pushback_raw = None, None
        try:
            self._handle.flush()
            self._handle.unlock()
        finally:
            self._handle.close()
        _logger.debug(
            "Stream closed.",
            event="stream.closed",
            context={"path": self._path, "lock_mode": self._lock_mode.value},
        )

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Close the stream unless the block already closed it."""
        if self._open:
            self.close()


def _open_locked(
    path: str,
    ops: FileOps,
    open_mode: OpenMode,
    lock_mode: LockMode,
    encoding: str,
) -> LockedStream | LockUnavailable:
    handle = ops.open_handle(path, open_mode)
    try:
        acquired = handle.lock(lock_mode)
    except BaseException:
        handle.close()
        raise
    if not acquired:
        handle.close()
        _logger.info(
            "Lock held elsewhere; stream not opened.",
            event="stream.lock_unavailable",
            context={"path": path, "lock_mode": lock_mode.value},
        )
        return LockUnavailable(path=path, lock_mode=lock_mode)
    _logger.debug(
        "Stream opened.",
        event="stream.opened",
        context={"path": path, "lock_mode": lock_mode.value},
    )
    return LockedStream(
        _path=path, _handle=handle, _lock_mode=lock_mode, _encoding=encoding
    )


def open_shared(path: str, *, ops: FileOps, encoding: str = "utf-8") -> LockedStream:
    """Open an existing file for reading under a blocking shared lock.

    Raises:
        NotFoundError: If ``path`` does not exist.
        OSError: If the handle cannot be opened or the lock is refused.
    """
    if not ops.exists(path):
        msg = f"Cannot open reader, file does not exist: {path}"
        raise NotFoundError(msg)
    result = _open_locked(path, ops, "read", LockMode.SHARED_BLOCKING, encoding)
    if isinstance(result, LockUnavailable):
        msg = f"Shared lock refused: {path}"
        raise OSError(msg)
    return result


def open_exclusive(
    path: str, *, ops: FileOps, encoding: str = "utf-8"
) -> LockedStream | LockUnavailable:
    """Open for reading and writing under a blocking exclusive lock.

    The file is created if absent and is never truncated; the position starts
    at zero. On the host this blocks until the lock is granted, so
    ``LockUnavailable`` is only seen with capabilities that can refuse a
    blocking request.
    """
    return _open_locked(path, ops, "read_write", LockMode.EXCLUSIVE_BLOCKING, encoding)


def open_exclusive_nonblocking(
    path: str, *, ops: FileOps, encoding: str = "utf-8"
) -> LockedStream | LockUnavailable:
    """Open for appending under an exclusive lock, without waiting.

    The file is created if absent and the position starts at the end. When
    another handle holds a conflicting lock, ``LockUnavailable`` is returned
    immediately.
    """
    return _open_locked(
        path, ops, "append", LockMode.EXCLUSIVE_NON_BLOCKING, encoding
    )
