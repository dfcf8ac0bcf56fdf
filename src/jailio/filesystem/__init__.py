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

"""Jailed files, directories and lock-guarded streams.

Every path handled here is confined to the root of a :class:`Jail`. Elements
are plain values; I/O goes through the ``FileOps`` / ``FileHandle``
capabilities, implemented on the local host by ``HostFileOps``.

Example usage::

    from jailio.config import JailConfig
    from jailio.filesystem import Jail, LockUnavailable

    jail = Jail(JailConfig(root="/srv/site"))
    log = jail.file("/logs/app.log")

    writer = log.open_log_writer()
    if not isinstance(writer, LockUnavailable):
        with writer:
            writer.write_line("started")

    with jail.as_file("/data/prices.csv").open_reader() as reader:
        for record in reader.records():
            print(record)
"""

from __future__ import annotations

from ._csv import DEFAULT_DIALECT, CsvDialect, format_csv_line, tokenize_csv_line
from ._element import Dir, ElementLocation, File, FileSystemElement, validate_filename
from ._host import HostFileHandle, HostFileOps
from ._jail import Jail
from ._path import PathJail, clean_path, is_direct_child
from ._permissions import (
    PERMISSION_ALPHABET,
    PERMISSION_LENGTH,
    has_permissions,
    to_octal,
    to_rwx,
    validate_permissions,
)
from ._protocol import FileHandle, FileOps
from ._scan import scan
from ._streams import (
    LockedStream,
    open_exclusive,
    open_exclusive_nonblocking,
    open_shared,
)
from ._types import (
    NO_RECORD,
    SEPARATOR,
    ElementInfo,
    ElementKind,
    FileStat,
    JailedPath,
    LockMode,
    LockUnavailable,
    NoRecord,
    OpenMode,
    StorageKey,
)

__all__ = [
    "DEFAULT_DIALECT",
    "NO_RECORD",
    "PERMISSION_ALPHABET",
    "PERMISSION_LENGTH",
    "SEPARATOR",
    "CsvDialect",
    "Dir",
    "ElementInfo",
    "ElementKind",
    "ElementLocation",
    "File",
    "FileHandle",
    "FileOps",
    "FileStat",
    "FileSystemElement",
    "HostFileHandle",
    "HostFileOps",
    "Jail",
    "JailedPath",
    "LockMode",
    "LockUnavailable",
    "LockedStream",
    "NoRecord",
    "OpenMode",
    "PathJail",
    "StorageKey",
    "clean_path",
    "format_csv_line",
    "has_permissions",
    "is_direct_child",
    "open_exclusive",
    "open_exclusive_nonblocking",
    "open_shared",
    "scan",
    "to_octal",
    "to_rwx",
    "tokenize_csv_line",
    "validate_filename",
    "validate_permissions",
]
