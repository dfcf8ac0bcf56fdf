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

"""Capability protocols the jailed filesystem layer is written against.

The streams and elements never call ``open``/``os``/``fcntl`` directly. They
go through two capabilities supplied by the hosting environment:

- ``FileHandle``: one open file with byte I/O, positioning and advisory
  locking.
- ``FileOps``: path-level operations (stat, chmod, rename, copy, ...) and the
  factory for ``FileHandle`` instances.

``HostFileOps`` in ``jailio.filesystem`` implements both on the local host.
Paths passed to ``FileOps`` are absolute host paths produced by the jail.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from ._types import FileStat, LockMode, OpenMode

__all__ = [
    "FileHandle",
    "FileOps",
]


@runtime_checkable
class FileHandle(Protocol):
    """An open file supporting byte I/O and advisory locks."""

    @property
    def path(self) -> str:
        """Absolute path the handle was opened on."""
        ...

    @property
    def closed(self) -> bool:
        """True once ``close()`` has been called."""
        ...

    def read(self, size: int = -1) -> bytes:
        """Read up to ``size`` bytes; ``-1`` reads to EOF. Empty at EOF."""
        ...

    def write(self, data: bytes) -> int:
        """Write ``data`` and return the number of bytes written."""
        ...

    def seek(self, offset: int, whence: int = 0) -> int:
        """Move the position and return the new absolute offset."""
        ...

    def tell(self) -> int:
        """Return the current absolute offset."""
        ...

    def truncate(self, size: int | None = None) -> int:
        """Resize the file to ``size`` bytes (default: current position)."""
        ...

    def flush(self) -> None:
        """Push buffered writes to the operating system."""
        ...

    def lock(self, mode: LockMode) -> bool:
        """Acquire an advisory lock.

        Blocking modes wait until the lock is granted. The non-blocking mode
        returns ``False`` immediately when another holder conflicts.

        Raises:
            OSError: For failures other than contention.
        """
        ...

    def unlock(self) -> None:
        """Release the advisory lock held by this handle."""
        ...

    def close(self) -> None:
        """Close the handle. Closing twice is a no-op at this level."""
        ...


@runtime_checkable
class FileOps(Protocol):
    """Path-level operations on the hosting filesystem."""

    def open_handle(self, path: str, mode: OpenMode) -> FileHandle:
        """Open ``path`` as a :class:`FileHandle`.

        Raises:
            FileNotFoundError: If ``mode == "read"`` and the file is absent.
            OSError: If the handle cannot be obtained.
        """
        ...

    def exists(self, path: str) -> bool:
        """Return True if ``path`` names an existing file or directory."""
        ...

    def is_file(self, path: str) -> bool:
        """Return True if ``path`` is an existing regular file."""
        ...

    def is_dir(self, path: str) -> bool:
        """Return True if ``path`` is an existing directory."""
        ...

    def stat(self, path: str) -> FileStat:
        """Return size, mode and timestamps of ``path``."""
        ...

    def chmod(self, path: str, mode: int) -> None:
        """Set the permission bits of ``path``."""
        ...

    def rename(self, source: str, target: str) -> None:
        """Move ``source`` to ``target``."""
        ...

    def copy_file(self, source: str, target: str) -> None:
        """Copy the content of a file."""
        ...

    def copy_tree(self, source: str, target: str) -> None:
        """Copy a directory and everything under it."""
        ...

    def unlink(self, path: str) -> None:
        """Delete a file."""
        ...

    def make_dirs(self, path: str, mode: int) -> None:
        """Create a directory and missing parents; existing ones are kept."""
        ...

    def remove_dir(self, path: str) -> None:
        """Delete an empty directory."""
        ...

    def remove_tree(self, path: str) -> None:
        """Delete a directory and everything under it."""
        ...

    def is_empty_dir(self, path: str) -> bool:
        """Return True if the directory has no entries."""
        ...

    def touch(self, path: str) -> None:
        """Create ``path`` if absent, otherwise update its timestamps."""
        ...

    def make_temp(self, directory: str, prefix: str) -> str:
        """Create a new empty file in ``directory`` and return its path."""
        ...
