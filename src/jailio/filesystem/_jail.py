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

"""The jail: configuration, capability and path confinement in one place."""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING, Final

from ..errors import NotFoundError
from ..logging import StructuredLogger, get_logger
from ._element import Dir, ElementLocation, File
from ._host import HostFileOps
from ._path import PathJail
from ._permissions import to_octal, to_rwx, validate_permissions
from ._protocol import FileOps

if TYPE_CHECKING:
    from ..config import JailConfig

__all__ = ["Jail"]

_logger: StructuredLogger = get_logger(__name__, context={"component": "jail"})

_TEMP_PREFIX: Final[str] = "tmp_"
_TMP_DIR_PERMISSIONS: Final[str] = "rw-------"


class Jail:
    """Builds files and directories confined to ``config.root``.

    The jail owns the process configuration. The root is fixed at
    construction; the default permissions and the temporary directory change
    only through the ``set_*`` methods.

    Example::

        jail = Jail(JailConfig(root="/srv/site"))
        uploads = jail.dir("/uploads")
        uploads.touch()
        avatar = uploads.file("avatar.png")
    """

    __slots__ = ("_config", "_ops", "_path_jail")

    def __init__(self, config: JailConfig, *, ops: FileOps | None = None) -> None:
        super().__init__()
        self._config = config
        self._ops: FileOps = HostFileOps() if ops is None else ops
        self._path_jail = PathJail(config.root)

    @property
    def config(self) -> JailConfig:
        return self._config

    @property
    def ops(self) -> FileOps:
        return self._ops

    @property
    def path_jail(self) -> PathJail:
        return self._path_jail

    @property
    def root(self) -> str:
        return self._path_jail.root

    def file(self, path: str) -> File:
        """Return the file at ``path`` (relative to the root); it need not exist.

        Raises:
            PathEscapeError: If ``path`` already contains the root.
        """
        return File(ElementLocation(self._path_jail.normalize(path), self))

    def dir(self, path: str) -> Dir:
        """Return the directory at ``path`` (relative to the root); it need not exist."""
        return Dir(ElementLocation(self._path_jail.normalize(path), self))

    def as_file(self, file_or_path: File | str) -> File:
        """Coerce to an existing :class:`File`.

        Raises:
            NotFoundError: If a path is given and no file exists there.
        """
        if isinstance(file_or_path, File):
            return file_or_path
        file = self.file(file_or_path)
        if not file.exists():
            msg = f"Not a valid file path: {file_or_path}"
            raise NotFoundError(msg)
        return file

    def as_dir(self, dir_or_path: Dir | str) -> Dir:
        return dir_or_path if isinstance(dir_or_path, Dir) else self.dir(dir_or_path)

    def to_relative_path(self, absolute_path: str) -> str:
        return self._path_jail.to_relative_path(absolute_path)

    @property
    def default_permissions(self) -> str:
        """Permissions used when creating directories."""
        return self._config.default_permissions

    @property
    def default_permissions_octal(self) -> int:
        return to_octal(self._config.default_permissions)

    def set_default_permissions(self, rwx: str) -> None:
        """Replace the default permissions.

        Raises:
            ValueError: If ``rwx`` is not a valid permission string.
        """
        self._update(default_permissions=validate_permissions(rwx))

    def set_default_permissions_octal(self, mode: int) -> None:
        self._update(default_permissions=to_rwx(mode))

    def tmp_dir(self) -> Dir:
        return self.dir(self._config.tmp_path)

    def set_tmp_dir(self, directory: Dir | str) -> None:
        """Use ``directory`` for new temporary files.

        Raises:
            PermissionError: If the directory is missing or lacks owner read
                and write permissions.
        """
        target = self.as_dir(directory)
        if not (target.exists() and target.has_permissions(_TMP_DIR_PERMISSIONS)):
            msg = f"Temporary dir must exist and be readable and writable: {target}"
            raise PermissionError(msg)
        self._update(tmp_path=target.path)

    def new_temp_file(self) -> File:
        """Create an empty file with a unique ``tmp_`` name in :meth:`tmp_dir`."""
        directory = self.tmp_dir()
        directory.touch()
        created = self._ops.make_temp(directory.full_path, _TEMP_PREFIX)
        return File(ElementLocation(self._path_jail.from_absolute(created), self))

    def _update(self, **changes: str) -> None:
        self._config = replace(self._config, **changes)
        for name, value in changes.items():
            _logger.debug(
                "Jail default changed.",
                event="jail.defaults_changed",
                context={"field": name, "value": value},
            )

    def __repr__(self) -> str:
        return f"Jail(root={self.root!r})"
