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

"""Root-confined file access with advisory-locked, line-oriented streams."""

from __future__ import annotations

from . import errors, filesystem, logging
from .config import JailConfig
from .errors import (
    FormatError,
    InvalidCharacterError,
    JailioError,
    NotFoundError,
    PathEscapeError,
    PushbackOverflowError,
    StreamClosedError,
)
from .filesystem import Dir, File, Jail, LockedStream, LockUnavailable

__all__ = [
    "Dir",
    "File",
    "FormatError",
    "InvalidCharacterError",
    "Jail",
    "JailConfig",
    "JailioError",
    "LockUnavailable",
    "LockedStream",
    "NotFoundError",
    "PathEscapeError",
    "PushbackOverflowError",
    "StreamClosedError",
    "errors",
    "filesystem",
    "logging",
]
