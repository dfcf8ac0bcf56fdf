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

"""Base exception hierarchy for :mod:`jailio`."""

from __future__ import annotations


class JailioError(Exception):
    """Base class for all jailio exceptions.

    Every library-specific failure derives from this class so callers can
    catch them with a single handler while standard Python exceptions
    (``OSError`` from the host, ``UnicodeDecodeError`` from text reads)
    propagate normally.

    Example:
        Catch any jailio-specific error::

            try:
                with jail.file("/data/report.csv").open_reader() as reader:
                    rows = list(reader.records())
            except JailioError as e:
                logger.error("File access failed: %s", e)

    Note:
        Subclasses also inherit from the closest builtin exception type
        (``ValueError``, ``PermissionError``, ...) so handlers written
        against the standard hierarchy keep working.
    """


class PathEscapeError(JailioError, PermissionError):
    """Raised when a path cannot be confined to the jail root.

    Two situations produce this error:

    - A caller passes a path that already starts with the jail root. Joining
      it to the root again would double-root the result.
    - An absolute path handed to ``to_relative_path`` does not live under
      the jail root once separators and ``..`` segments are cleaned.

    Example::

        try:
            jail.file(user_supplied)
        except PathEscapeError:
            return forbidden()
    """


class StreamClosedError(JailioError, ValueError):
    """Raised when a locked stream is used after ``close()``.

    Closing is a one-way transition: every operation other than ``is_open``
    fails once the stream is closed, and closing twice is reported as
    misuse rather than silently ignored.
    """


class FormatError(JailioError, ValueError):
    """Raised when a CSV line has content between a closing enclosure and
    the next delimiter, e.g. ``a,"b"c,d``."""


class InvalidCharacterError(JailioError, ValueError):
    """Raised when a CSV dialect parameter is not exactly one character."""


class NotFoundError(JailioError, FileNotFoundError):
    """Raised when an operation requires an existing file that is absent."""


class PushbackOverflowError(JailioError, RuntimeError):
    """Raised when a character is pushed back while the one-slot buffer is
    still occupied."""


__all__ = [
    "FormatError",
    "InvalidCharacterError",
    "JailioError",
    "NotFoundError",
    "PathEscapeError",
    "PushbackOverflowError",
    "StreamClosedError",
]
