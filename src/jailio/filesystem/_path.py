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

"""Confinement of caller-supplied paths to a fixed root directory.

The jail is deliberately string based: it never touches the host, never
resolves symlinks and does not interpret ``.`` segments. Its guarantees are:

- every path uses ``/`` as its only separator;
- no ``/..`` sequence survives normalization (it is stripped, not resolved);
- separators are never doubled and relative paths carry no trailing ``/``;
- an absolute path is always ``root + relative``.

Functions:
    clean_path: Canonicalize separators, strip ``/..`` and collapse ``//``.
"""

from __future__ import annotations

import os
import posixpath
import re
from dataclasses import dataclass
from typing import Final

from ..errors import PathEscapeError
from ..logging import StructuredLogger, get_logger
from ._types import SEPARATOR, JailedPath

_logger: StructuredLogger = get_logger(__name__, context={"component": "path_jail"})

_PARENT_SEGMENT: Final[str] = SEPARATOR + ".."
_DOUBLED_SEPARATORS: Final[re.Pattern[str]] = re.compile(r"/{2,}")


def clean_path(path: str) -> str:
    """Canonicalize separators, strip ``/..`` and collapse doubled separators.

    Stripping repeats until no ``/..`` remains, because removing one
    occurrence can join its neighbours into a new one (``/./...``).

    Examples:
        >>> clean_path("a\\\\b//c")
        'a/b/c'
        >>> clean_path("/a/../b")
        '/a/b'
    """
    path = path.replace("\\", SEPARATOR)
    if os.sep != SEPARATOR:  # pragma: no cover - non-POSIX hosts
        path = path.replace(os.sep, SEPARATOR)
    while _PARENT_SEGMENT in path:
        path = path.replace(_PARENT_SEGMENT, "")
    return _DOUBLED_SEPARATORS.sub(SEPARATOR, path)


@dataclass(slots=True, frozen=True)
class PathJail:
    """Normalizes paths against an immutable root.

    The root is cleaned like any other path and loses its trailing separator;
    a root that reduces to nothing (``"/"``) is rejected because every
    relative path would then already start with it.

    Example::

        jail = PathJail("/srv/site")
        jail.normalize("/uploads/../../etc/passwd")
        # JailedPath(root='/srv/site', relative='/uploads/etc/passwd')
    """

    root: str

    def __post_init__(self) -> None:
        root = clean_path(self.root).rstrip(SEPARATOR)
        if not root:
            msg = f"Jail root must not be empty or the filesystem root: {self.root!r}"
            raise ValueError(msg)
        object.__setattr__(self, "root", root)

    def normalize(self, path: str) -> JailedPath:
        """Return the confined form of a caller-supplied path.

        Relative inputs are anchored with a leading ``/`` so ``"a/b"`` and
        ``"/a/b"`` name the same element.

        Raises:
            PathEscapeError: If the cleaned path already starts with the root,
                which would double-root it.
        """
        cleaned = clean_path(path)
        while cleaned and not cleaned.startswith(SEPARATOR):
            cleaned = clean_path(SEPARATOR + cleaned)
        if cleaned.startswith(self.root):
            _logger.warning(
                "Rejected path that already contains the jail root.",
                event="path_jail.escape_rejected",
                context={"path": path, "root": self.root},
            )
            msg = f"Path already contains the jail root: {path}"
            raise PathEscapeError(msg)
        return JailedPath(root=self.root, relative=cleaned.rstrip(SEPARATOR))

    def to_relative_path(self, absolute_path: str) -> str:
        """Reduce an absolute host path to its root-relative form.

        Raises:
            PathEscapeError: If the cleaned path is not the root or under it.
        """
        cleaned = clean_path(absolute_path)
        remainder = cleaned[len(self.root) :]
        if not cleaned.startswith(self.root) or (
            remainder and not remainder.startswith(SEPARATOR)
        ):
            _logger.warning(
                "Rejected path outside the jail root.",
                event="path_jail.escape_rejected",
                context={"path": absolute_path, "root": self.root},
            )
            msg = f"Path is not inside the jail root: {absolute_path}"
            raise PathEscapeError(msg)
        return remainder.rstrip(SEPARATOR)

    def from_absolute(self, absolute_path: str) -> JailedPath:
        """Build a :class:`JailedPath` from an absolute path under the root."""
        return JailedPath(root=self.root, relative=self.to_relative_path(absolute_path))

    def parent(self, path: JailedPath) -> JailedPath:
        """Return the directory one level above ``path`` (the root is its own parent)."""
        parent = posixpath.dirname(path.relative)
        return JailedPath(root=self.root, relative=parent.rstrip(SEPARATOR))

    def child(self, path: JailedPath, name: str) -> JailedPath:
        """Return ``name`` joined below ``path``."""
        return self.normalize(path.relative + SEPARATOR + name)


def is_direct_child(child: str, parent: str) -> bool:
    """Return True if ``parent`` is the immediate directory of ``child``.

    Both arguments are absolute paths. Only one level is checked: a
    grandchild is not a child.
    """
    return posixpath.dirname(child) == parent.rstrip(SEPARATOR)


__all__ = [
    "PathJail",
    "clean_path",
    "is_direct_child",
]
