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

"""Configuration of a jail.

Environment variables read by :meth:`JailConfig.from_env`:

- ``JAILIO_ROOT``: absolute root directory (required unless passed as an
  override).
- ``JAILIO_DEFAULT_PERMISSIONS``: nine-symbol permissions for new
  directories, default ``rwxrwxrwx``.
- ``JAILIO_TMP_PATH``: root-relative directory for temporary files, default
  ``/tmp``.
- ``JAILIO_ENCODING``: text encoding of streams, default ``utf-8``.
"""

from __future__ import annotations

import codecs
import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Final, Self

from .filesystem._path import clean_path
from .filesystem._permissions import validate_permissions
from .filesystem._types import SEPARATOR

__all__ = ["JailConfig"]

_ENV_FIELDS: Final[dict[str, str]] = {
    "root": "JAILIO_ROOT",
    "default_permissions": "JAILIO_DEFAULT_PERMISSIONS",
    "tmp_path": "JAILIO_TMP_PATH",
    "encoding": "JAILIO_ENCODING",
}


@dataclass(slots=True, frozen=True)
class JailConfig:
    """Immutable settings of a :class:`~jailio.filesystem.Jail`.

    Values are canonicalized on construction: the root and the temporary
    path use ``/`` separators without a trailing one, and the encoding name
    is normalized by :func:`codecs.lookup`.

    Raises:
        ValueError: If the root is relative or reduces to the filesystem root,
            the permissions are malformed, or the encoding is unknown.
    """

    root: str
    default_permissions: str = "rwxrwxrwx"
    tmp_path: str = "/tmp"
    encoding: str = "utf-8"

    def __post_init__(self) -> None:
        if not os.path.isabs(self.root):
            msg = f"Jail root must be an absolute path: {self.root!r}"
            raise ValueError(msg)
        root = clean_path(self.root).rstrip(SEPARATOR)
        if not root:
            msg = f"Jail root must not be the filesystem root: {self.root!r}"
            raise ValueError(msg)
        _ = validate_permissions(self.default_permissions)
        tmp_path = clean_path(SEPARATOR + self.tmp_path).rstrip(SEPARATOR)
        try:
            encoding = codecs.lookup(self.encoding).name
        except LookupError as error:
            msg = f"Unknown encoding: {self.encoding!r}"
            raise ValueError(msg) from error
        object.__setattr__(self, "root", root)
        object.__setattr__(self, "tmp_path", tmp_path or SEPARATOR)
        object.__setattr__(self, "encoding", encoding)

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None, **overrides: str) -> Self:
        """Build a configuration from environment variables.

        Keyword overrides take precedence over the environment.

        Raises:
            ValueError: If no root is configured or a value is invalid.
        """
        source = os.environ if env is None else env
        values = {
            name: source[variable]
            for name, variable in _ENV_FIELDS.items()
            if source.get(variable)
        }
        values.update(overrides)
        if "root" not in values:
            msg = "JAILIO_ROOT is not set."
            raise ValueError(msg)
        return cls(**values)
