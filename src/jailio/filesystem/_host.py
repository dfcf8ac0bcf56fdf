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

"""Host implementations of the ``FileHandle`` and ``FileOps`` capabilities.

Locks are ``flock`` advisory locks on POSIX hosts. They belong to the open
file description, so two handles opened separately on the same path contend
even inside one process. Windows falls back to ``msvcrt.locking``, which has
no shared mode and locks a single byte.
"""

from __future__ import annotations

import os
import shutil
import sys
import tempfile
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import BinaryIO

from ._protocol import FileHandle
from ._types import FileStat, LockMode, OpenMode

if sys.platform == "win32":  # pragma: no cover
    import msvcrt as _msvcrt
else:
    import fcntl as _fcntl

__all__ = [
    "HostFileHandle",
    "HostFileOps",
]


def _acquire(handle: BinaryIO, mode: LockMode) -> bool:
    """Acquire an advisory lock, returning False on non-blocking contention."""
    if sys.platform == "win32":  # pragma: no cover
        flag = _msvcrt.LK_LOCK if mode.blocking else _msvcrt.LK_NBLCK
        try:
            _msvcrt.locking(handle.fileno(), flag, 1)
        except OSError:
            if mode.blocking:
                raise
            return False
        return True

    operation = _fcntl.LOCK_EX if mode.exclusive else _fcntl.LOCK_SH
    if not mode.blocking:
        operation |= _fcntl.LOCK_NB
    try:
        _fcntl.flock(handle.fileno(), operation)
    except BlockingIOError:
        return False
    return True


def _release(handle: BinaryIO) -> None:
    if sys.platform == "win32":  # pragma: no cover
        _msvcrt.locking(handle.fileno(), _msvcrt.LK_UNLCK, 1)
    else:
        _fcntl.flock(handle.fileno(), _fcntl.LOCK_UN)


@dataclass(slots=True)
class HostFileHandle:
    """``FileHandle`` backed by a native binary file object."""

    _path: str
    _file: BinaryIO
    _closed: bool = field(default=False, init=False)

    @classmethod
    def open(cls, path: str, mode: OpenMode) -> HostFileHandle:
        """Open ``path`` on the host.

        ``read_write`` goes through ``os.open`` with ``O_CREAT`` and without
        ``O_TRUNC`` so an existing file keeps its content and the position
        starts at zero.

        Raises:
            FileNotFoundError: If ``mode == "read"`` and the file is absent.
            IsADirectoryError: If ``path`` is a directory.
        """
        if mode == "read":
            handle: BinaryIO = Path(path).open("rb")
        elif mode == "append":
            handle = Path(path).open("a+b")
        else:
            fd = os.open(path, os.O_RDWR | os.O_CREAT, 0o666)
            handle = os.fdopen(fd, "r+b")
        return cls(_path=path, _file=handle)

    @property
    def path(self) -> str:
        return self._path

    @property
    def closed(self) -> bool:
        return self._closed

    def read(self, size: int = -1) -> bytes:
        return self._file.read(size)

    def write(self, data: bytes) -> int:
        return self._file.write(data)

    def seek(self, offset: int, whence: int = 0) -> int:
        return self._file.seek(offset, whence)

    def tell(self) -> int:
        return self._file.tell()

    def truncate(self, size: int | None = None) -> int:
        return self._file.truncate(size)

    def flush(self) -> None:
        self._file.flush()

    def lock(self, mode: LockMode) -> bool:
        return _acquire(self._file, mode)

    def unlock(self) -> None:
        _release(self._file)

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._file.close()


def _from_timestamp(value: float) -> datetime:
    return datetime.fromtimestamp(value, tz=UTC)


@dataclass(slots=True, frozen=True)
class HostFileOps:
    """``FileOps`` implementation for the local host filesystem."""

    def open_handle(self, path: str, mode: OpenMode) -> FileHandle:
        return HostFileHandle.open(path, mode)

    def exists(self, path: str) -> bool:
        return os.path.exists(path)

    def is_file(self, path: str) -> bool:
        return os.path.isfile(path)

    def is_dir(self, path: str) -> bool:
        return os.path.isdir(path)

    def stat(self, path: str) -> FileStat:
        result = os.stat(path)
        return FileStat(
            size_bytes=result.st_size,
            mode=result.st_mode,
            modified_at=_from_timestamp(result.st_mtime),
            accessed_at=_from_timestamp(result.st_atime),
        )

    def chmod(self, path: str, mode: int) -> None:
        os.chmod(path, mode)

    def rename(self, source: str, target: str) -> None:
        os.rename(source, target)

    def copy_file(self, source: str, target: str) -> None:
        _ = shutil.copyfile(source, target)

    def copy_tree(self, source: str, target: str) -> None:
        _ = shutil.copytree(source, target)

    def unlink(self, path: str) -> None:
        os.unlink(path)

    def make_dirs(self, path: str, mode: int) -> None:
        os.makedirs(path, mode=mode, exist_ok=True)

    def remove_dir(self, path: str) -> None:
        os.rmdir(path)

    def remove_tree(self, path: str) -> None:
        shutil.rmtree(path)

    def is_empty_dir(self, path: str) -> bool:
        with os.scandir(path) as entries:
            return next(entries, None) is None

    def touch(self, path: str) -> None:
        Path(path).touch()

    def make_temp(self, directory: str, prefix: str) -> str:
        fd, name = tempfile.mkstemp(dir=directory, prefix=prefix)
        os.close(fd)
        return name
