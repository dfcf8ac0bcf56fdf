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

"""Core value types shared by the jailed filesystem layer.

All types are immutable frozen dataclasses or enums.

- **Lock types**: ``LockMode``, ``OpenMode``, ``LockUnavailable``
- **Path types**: ``JailedPath``
- **Metadata types**: ``FileStat``, ``ElementInfo``, ``StorageKey``
- **Markers**: ``NoRecord`` / ``NO_RECORD`` for blank CSV lines
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Final, Literal

SEPARATOR: Final[str] = "/"

#: How a capability handle is opened.
#:
#: ``read``
#:     Existing file, positioned at the start, read only.
#: ``read_write``
#:     Created if absent, never truncated, positioned at the start.
#: ``append``
#:     Created if absent, positioned at the end; writes always append.
OpenMode = Literal["read", "read_write", "append"]

ElementKind = Literal["file", "dir"]


class LockMode(Enum):
    """Advisory lock taken on a stream for its whole lifetime."""

    SHARED_BLOCKING = "shared_blocking"
    EXCLUSIVE_BLOCKING = "exclusive_blocking"
    EXCLUSIVE_NON_BLOCKING = "exclusive_non_blocking"

    @property
    def exclusive(self) -> bool:
        return self is not LockMode.SHARED_BLOCKING

    @property
    def blocking(self) -> bool:
        return self is not LockMode.EXCLUSIVE_NON_BLOCKING


class NoRecord(Enum):
    """Marker returned by the CSV reader for a line that trims to empty.

    Distinct from ``[""]`` (a record holding one empty field) and from
    ``None`` (end of stream).
    """

    NO_RECORD = "no_record"

    def __bool__(self) -> bool:
        return False


NO_RECORD: Final = NoRecord.NO_RECORD


@dataclass(slots=True, frozen=True)
class LockUnavailable:
    """Result of an exclusive open whose lock is held elsewhere.

    This is an expected outcome, not a fault: callers decide whether to
    retry, skip, or report. It is falsy so ``if not result`` reads naturally.

    Example::

        result = log_file.open_log_writer()
        if isinstance(result, LockUnavailable):
            return
        with result as writer:
            writer.write_line("started")
    """

    path: str
    lock_mode: LockMode

    def __bool__(self) -> bool:
        return False


@dataclass(slots=True, frozen=True)
class JailedPath:
    """Paired absolute and root-relative forms of one confined path.

    Invariant: ``absolute == root + relative`` and ``relative`` never holds a
    ``/..`` segment. The jail root itself has ``relative == ""``.
    """

    root: str
    relative: str

    @property
    def absolute(self) -> str:
        return self.root + self.relative


@dataclass(slots=True, frozen=True)
class FileStat:
    """Metadata returned by ``FileOps.stat``.

    Attributes:
        size_bytes: Size in bytes (directory sizes are host specific).
        mode: Raw ``st_mode`` including file type bits.
        modified_at: Last modification time (UTC).
        accessed_at: Last access time (UTC).
    """

    size_bytes: int
    mode: int
    modified_at: datetime
    accessed_at: datetime


@dataclass(slots=True, frozen=True)
class StorageKey:
    """Location of an element's attached metadata in an external store.

    Entries are clustered by parent directory: ``bucket`` is the first hex
    digit of the MD5 of the parent directory's relative path and ``key`` is
    the MD5 of the element's full name.
    """

    bucket: str
    key: str

    @property
    def folder_name(self) -> str:
        """Directory name conventionally used for the bucket."""
        return f"_{self.bucket}"


@dataclass(slots=True, frozen=True)
class ElementInfo:
    """Summary of a file or directory, as returned by ``info()``.

    File-only fields (``extension``, ``full_extension``, ``size_bytes``) are
    ``None`` for directories; ``empty`` is ``None`` for files.
    """

    kind: ElementKind
    full_path: str
    path: str
    name: str
    permissions: str
    extension: str | None = None
    full_extension: str | None = None
    size_bytes: int | None = None
    empty: bool | None = None


__all__ = [
    "NO_RECORD",
    "SEPARATOR",
    "ElementInfo",
    "ElementKind",
    "FileStat",
    "JailedPath",
    "LockMode",
    "LockUnavailable",
    "NoRecord",
    "OpenMode",
    "StorageKey",
]
