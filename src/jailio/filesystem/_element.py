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

"""Files and directories confined to a jail.

``File`` and ``Dir`` are the only two element kinds. Both are immutable
values that hold an :class:`ElementLocation`, which carries the path and
permission logic they share. Operations that relocate an element (``rename``,
``move_to``, ``copy``) return a new element instead of mutating the old one.

Identity is ``(kind, absolute path)``: a ``File`` and a ``Dir`` on the same
path are never equal.
"""

from __future__ import annotations

import hashlib
import posixpath
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, ClassVar, Final

from ..errors import NotFoundError
from ..logging import StructuredLogger, get_logger
from ._path import is_direct_child
from ._permissions import has_permissions, to_octal, to_rwx, validate_permissions
from ._streams import (
    LockedStream,
    open_exclusive,
    open_exclusive_nonblocking,
    open_shared,
)
from ._types import (
    SEPARATOR,
    ElementInfo,
    ElementKind,
    JailedPath,
    LockUnavailable,
    StorageKey,
)

if TYPE_CHECKING:
    from ._jail import Jail

__all__ = [
    "Dir",
    "ElementLocation",
    "File",
    "FileSystemElement",
    "validate_filename",
]

_logger: StructuredLogger = get_logger(__name__, context={"component": "element"})

_READABLE: Final[str] = "r--------"
_WRITABLE: Final[str] = "rw-------"
_FULL_EXTENSION: Final[re.Pattern[str]] = re.compile(r"\.(.+)")


def validate_filename(name: str) -> str:
    """Return ``name`` if it is usable as a single path segment.

    Raises:
        ValueError: If ``name`` is empty, ``.`` or ``..``, or contains a
            separator.
    """
    if not name or name in {".", ".."}:
        msg = f"Invalid file name: {name!r}"
        raise ValueError(msg)
    if SEPARATOR in name or "\\" in name:
        msg = f"File name must not contain a path separator: {name!r}"
        raise ValueError(msg)
    return name


def _md5(text: str) -> str:
    return hashlib.md5(text.encode("utf-8"), usedforsecurity=False).hexdigest()


@dataclass(slots=True, frozen=True)
class ElementLocation:
    """Path and permission state shared by files and directories.

    Equality and hashing use the paths only; the owning jail is context.
    """

    paths: JailedPath
    jail: Jail = field(compare=False, repr=False)

    @property
    def full_path(self) -> str:
        return self.paths.absolute

    @property
    def path(self) -> str:
        """Root-relative path; the jail root itself is shown as ``/``."""
        return self.paths.relative or SEPARATOR

    @property
    def full_name(self) -> str:
        return posixpath.basename(self.paths.relative)

    def relative_to(self, ancestor: Dir | str) -> str:
        """Return this path relative to ``ancestor``.

        Raises:
            ValueError: If ``ancestor`` is not this location or one of its
                ancestors.
        """
        base = self.jail.as_dir(ancestor).location.paths.relative
        relative = self.paths.relative
        remainder = relative[len(base) :]
        if not relative.startswith(base) or (
            remainder and not remainder.startswith(SEPARATOR)
        ):
            msg = f"{self.path} is not under {base or SEPARATOR}"
            raise ValueError(msg)
        return remainder or SEPARATOR

    def parent(self) -> Dir:
        return Dir(ElementLocation(self.jail.path_jail.parent(self.paths), self.jail))

    def sibling(self, name: str) -> JailedPath:
        return self.jail.path_jail.child(
            self.jail.path_jail.parent(self.paths), validate_filename(name)
        )

    def is_child_of(self, parent: Dir | str) -> bool:
        """Return True if ``parent`` is the immediate parent directory."""
        return is_direct_child(self.full_path, self.jail.as_dir(parent).full_path)

    def modification_time(self) -> datetime:
        return self.jail.ops.stat(self.full_path).modified_at

    def last_access_time(self) -> datetime:
        return self.jail.ops.stat(self.full_path).accessed_at

    def permissions(self) -> str:
        return to_rwx(self.jail.ops.stat(self.full_path).mode)

    def set_permissions(self, rwx: str) -> bool:
        """Apply ``rwx`` and report whether reading it back gives the same string.

        The host may ignore bits it does not support (Windows keeps only the
        owner write flag), so a ``False`` result is not an error.
        """
        _ = validate_permissions(rwx)
        self.jail.ops.chmod(self.full_path, to_octal(rwx))
        actual = self.permissions()
        if actual != rwx:
            _logger.debug(
                "Permissions differ after chmod.",
                event="element.permissions_mismatch",
                context={"path": self.path, "requested": rwx, "actual": actual},
            )
            return False
        return True

    def has_permissions(self, rwx: str) -> bool:
        return has_permissions(rwx, self.permissions())

    def storage_key(self) -> StorageKey:
        """Derive the attached-storage key of this element.

        The bucket clusters elements by parent directory; the jail root hashes
        the empty string.
        """
        scope = _md5(self.parent().path) if self.paths.relative else _md5("")
        return StorageKey(bucket=scope[0], key=_md5(self.full_name))

    def relocate(self, target_dir: Dir | str, name: str) -> JailedPath:
        target = self.jail.as_dir(target_dir)
        target.touch()
        return self.jail.path_jail.child(target.location.paths, validate_filename(name))


@dataclass(slots=True, frozen=True)
class File:
    """A regular file inside a jail.

    Example::

        report = jail.file("/reports/2024.csv")
        with report.open_writer() as writer:
            writer.write_csv(["region", "total"])
    """

    location: ElementLocation
    kind: ClassVar[ElementKind] = "file"

    def __str__(self) -> str:
        return self.location.path

    @property
    def path(self) -> str:
        return self.location.path

    @property
    def full_path(self) -> str:
        return self.location.full_path

    @property
    def full_name(self) -> str:
        """File name with every extension, e.g. ``archive.tar.gz``."""
        return self.location.full_name

    @property
    def name(self) -> str:
        """File name without its last extension, e.g. ``archive.tar``."""
        stem, dot, extension = self.full_name.rpartition(".")
        return stem if dot and extension else self.full_name

    @property
    def last_extension(self) -> str | None:
        """Extension after the last dot, without the dot (``gz``)."""
        _, dot, extension = self.full_name.rpartition(".")
        return extension if dot and extension else None

    @property
    def full_extension(self) -> str | None:
        """Everything after the first dot, without the dot (``tar.gz``)."""
        match = _FULL_EXTENSION.search(self.full_name)
        return match.group(1) if match else None

    def relative_to(self, ancestor: Dir | str) -> str:
        return self.location.relative_to(ancestor)

    def exists(self) -> bool:
        return self.location.jail.ops.is_file(self.full_path)

    def _require(self) -> None:
        if not self.exists():
            msg = f"The file does not exist: {self.path}"
            raise NotFoundError(msg)

    def modification_time(self) -> datetime:
        return self.location.modification_time()

    def last_access_time(self) -> datetime:
        return self.location.last_access_time()

    def permissions(self) -> str:
        return self.location.permissions()

    def set_permissions(self, rwx: str) -> bool:
        return self.location.set_permissions(rwx)

    def has_permissions(self, rwx: str) -> bool:
        return self.location.has_permissions(rwx)

    def is_readable(self) -> bool:
        return self.location.has_permissions(_READABLE)

    def is_writable(self) -> bool:
        return self.location.has_permissions(_WRITABLE)

    def parent_dir(self) -> Dir:
        return self.location.parent()

    def is_child_of(self, parent: Dir | str) -> bool:
        return self.location.is_child_of(parent)

    def storage_key(self) -> StorageKey:
        return self.location.storage_key()

    def size(self) -> int:
        """Size in bytes.

        Raises:
            NotFoundError: If the file does not exist.
        """
        self._require()
        return self.location.jail.ops.stat(self.full_path).size_bytes

    def is_empty(self) -> bool:
        return self.size() == 0

    def touch(self) -> None:
        """Create the file if absent, otherwise refresh its timestamps."""
        self.location.jail.ops.touch(self.full_path)

    def delete(self) -> None:
        self.location.jail.ops.unlink(self.full_path)

    def rename(self, new_name: str) -> File:
        """Rename within the same directory and return the renamed file.

        Raises:
            ValueError: If ``new_name`` is not a valid file name.
            FileExistsError: If an element with that name already exists.
        """
        target = _file_at(self.location, self.location.sibling(new_name))
        return self._move_to(target)

    def move_to(self, target_dir: Dir | str, new_name: str | None = None) -> File:
        """Move into ``target_dir`` (created if absent) and return the moved file."""
        name = self.full_name if new_name is None else new_name
        target = _file_at(self.location, self.location.relocate(target_dir, name))
        return self._move_to(target)

    def _move_to(self, target: File) -> File:
        ops = self.location.jail.ops
        if ops.exists(target.full_path):
            msg = f"Target already exists: {target.path}"
            raise FileExistsError(msg)
        ops.rename(self.full_path, target.full_path)
        return target

    def copy(self, target_dir: Dir | str, new_name: str | None = None) -> File:
        """Copy into ``target_dir`` (created if absent) and return the copy."""
        name = self.full_name if new_name is None else new_name
        target = _file_at(self.location, self.location.relocate(target_dir, name))
        self.location.jail.ops.copy_file(self.full_path, target.full_path)
        return target

    def filename_matches(self, pattern: str | re.Pattern[str]) -> bool:
        """Return True if ``pattern`` is found anywhere in :attr:`full_name`."""
        return re.search(pattern, self.full_name) is not None

    def open_reader(self) -> LockedStream:
        """Open under a blocking shared lock.

        Raises:
            NotFoundError: If the file does not exist.
        """
        jail = self.location.jail
        return open_shared(self.full_path, ops=jail.ops, encoding=jail.config.encoding)

    def open_writer(self) -> LockedStream | LockUnavailable:
        """Open for reading and writing under a blocking exclusive lock."""
        jail = self.location.jail
        return open_exclusive(
            self.full_path, ops=jail.ops, encoding=jail.config.encoding
        )

    def open_log_writer(self) -> LockedStream | LockUnavailable:
        """Open for appending; returns ``LockUnavailable`` instead of waiting."""
        jail = self.location.jail
        return open_exclusive_nonblocking(
            self.full_path, ops=jail.ops, encoding=jail.config.encoding
        )

    def get_bytes(self) -> bytes:
        with self.open_reader() as reader:
            return reader.read()

    def get_content(self) -> str:
        return self.get_bytes().decode(self.location.jail.config.encoding)

    def content_hash(self) -> str:
        """SHA-1 hex digest of the file content."""
        return hashlib.sha1(self.get_bytes(), usedforsecurity=False).hexdigest()

    def set_content(self, content: str | bytes) -> int:
        """Replace the content under an exclusive lock.

        Returns:
            The number of bytes written.

        Raises:
            OSError: If the exclusive lock is refused.
        """
        writer = self.open_writer()
        if isinstance(writer, LockUnavailable):
            msg = f"Exclusive lock refused: {self.path}"
            raise OSError(msg)
        with writer:
            _ = writer.truncate()
            return writer.write(content)

    def info(self) -> ElementInfo:
        return ElementInfo(
            kind=self.kind,
            full_path=self.full_path,
            path=self.path,
            name=self.name,
            permissions=self.permissions(),
            extension=self.last_extension,
            full_extension=self.full_extension,
            size_bytes=self.size(),
        )


@dataclass(slots=True, frozen=True)
class Dir:
    """A directory inside a jail."""

    location: ElementLocation
    kind: ClassVar[ElementKind] = "dir"

    def __str__(self) -> str:
        return self.location.path

    @property
    def path(self) -> str:
        return self.location.path

    @property
    def full_path(self) -> str:
        return self.location.full_path

    @property
    def full_name(self) -> str:
        return self.location.full_name

    @property
    def name(self) -> str:
        return self.location.full_name

    def relative_to(self, ancestor: Dir | str) -> str:
        return self.location.relative_to(ancestor)

    def exists(self) -> bool:
        return self.location.jail.ops.is_dir(self.full_path)

    def modification_time(self) -> datetime:
        return self.location.modification_time()

    def last_access_time(self) -> datetime:
        return self.location.last_access_time()

    def permissions(self) -> str:
        return self.location.permissions()

    def set_permissions(self, rwx: str) -> bool:
        return self.location.set_permissions(rwx)

    def has_permissions(self, rwx: str) -> bool:
        return self.location.has_permissions(rwx)

    def is_readable(self) -> bool:
        return self.location.has_permissions(_READABLE)

    def is_writable(self) -> bool:
        return self.location.has_permissions(_WRITABLE)

    def parent_dir(self) -> Dir:
        return self.location.parent()

    def is_child_of(self, parent: Dir | str) -> bool:
        return self.location.is_child_of(parent)

    def storage_key(self) -> StorageKey:
        return self.location.storage_key()

    def file(self, name: str) -> File:
        """Return the file ``name`` directly inside this directory."""
        paths = self.location.jail.path_jail.child(
            self.location.paths, validate_filename(name)
        )
        return _file_at(self.location, paths)

    def subdir(self, name: str) -> Dir:
        """Return the directory ``name`` directly inside this directory."""
        paths = self.location.jail.path_jail.child(
            self.location.paths, validate_filename(name)
        )
        return _dir_at(self.location, paths)

    def touch(self) -> None:
        """Create this directory and missing parents with the default permissions."""
        jail = self.location.jail
        jail.ops.make_dirs(self.full_path, jail.default_permissions_octal)

    def is_empty(self) -> bool:
        """Return True if the directory has no entries.

        Raises:
            NotFoundError: If the directory does not exist.
        """
        if not self.exists():
            msg = f"The directory does not exist: {self.path}"
            raise NotFoundError(msg)
        return self.location.jail.ops.is_empty_dir(self.full_path)

    def delete(self, *, recursive: bool = False) -> None:
        """Remove the directory; only an empty one unless ``recursive``."""
        ops = self.location.jail.ops
        if recursive:
            ops.remove_tree(self.full_path)
        else:
            ops.remove_dir(self.full_path)

    def rename(self, new_name: str) -> Dir:
        """Rename within the same parent and return the renamed directory.

        Raises:
            ValueError: If ``new_name`` is not a valid name.
            FileExistsError: If an element with that name already exists.
        """
        return self._move_to(_dir_at(self.location, self.location.sibling(new_name)))

    def move_to(self, target_dir: Dir | str, new_name: str | None = None) -> Dir:
        """Move with all content into ``target_dir`` (created if absent)."""
        name = self.name if new_name is None else new_name
        target = _dir_at(self.location, self.location.relocate(target_dir, name))
        return self._move_to(target)

    def _move_to(self, target: Dir) -> Dir:
        ops = self.location.jail.ops
        if ops.exists(target.full_path):
            msg = f"Target already exists: {target.path}"
            raise FileExistsError(msg)
        ops.rename(self.full_path, target.full_path)
        return target

    def copy(self, target_dir: Dir | str, new_name: str | None = None) -> Dir:
        """Copy with all content into ``target_dir`` (created if absent)."""
        name = self.name if new_name is None else new_name
        target = _dir_at(self.location, self.location.relocate(target_dir, name))
        self.location.jail.ops.copy_tree(self.full_path, target.full_path)
        return target

    def info(self) -> ElementInfo:
        return ElementInfo(
            kind=self.kind,
            full_path=self.full_path,
            path=self.path,
            name=self.name,
            permissions=self.permissions(),
            empty=self.is_empty(),
        )


type FileSystemElement = File | Dir


def _file_at(origin: ElementLocation, paths: JailedPath) -> File:
    return File(ElementLocation(paths, origin.jail))


def _dir_at(origin: ElementLocation, paths: JailedPath) -> Dir:
    return Dir(ElementLocation(paths, origin.jail))
