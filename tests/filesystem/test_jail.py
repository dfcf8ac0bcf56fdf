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

"""Tests for the jail facade."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import pytest

from jailio.errors import NotFoundError, PathEscapeError
from jailio.filesystem import Jail


def test_root_and_repr(jail: Jail, tmp_path: Path) -> None:
    assert jail.root == str(tmp_path)
    assert repr(jail) == f"Jail(root={str(tmp_path)!r})"


def test_paths_containing_root_are_rejected(jail: Jail, tmp_path: Path) -> None:
    with pytest.raises(PathEscapeError):
        jail.file(f"{tmp_path}/a.txt")
    with pytest.raises(PathEscapeError):
        jail.dir(str(tmp_path))


def test_as_file(jail: Jail) -> None:
    existing = jail.file("/a.txt")
    existing.touch()
    assert jail.as_file("/a.txt") == existing
    assert jail.as_file(existing) is existing
    with pytest.raises(NotFoundError, match="Not a valid file path"):
        jail.as_file("/missing.txt")


def test_as_dir(jail: Jail) -> None:
    docs = jail.dir("/docs")
    assert jail.as_dir(docs) is docs
    assert jail.as_dir("docs/") == docs


def test_to_relative_path(jail: Jail, tmp_path: Path) -> None:
    assert jail.to_relative_path(f"{tmp_path}/a/../b.txt") == "/a/b.txt"
    with pytest.raises(PathEscapeError):
        jail.to_relative_path("/elsewhere/b.txt")


class TestDefaultPermissions:
    def test_defaults(self, jail: Jail) -> None:
        assert jail.default_permissions == "rwxrwxrwx"
        assert jail.default_permissions_octal == 0o777

    def test_set_rwx(self, jail: Jail) -> None:
        jail.set_default_permissions("rwxr-x---")
        assert jail.default_permissions == "rwxr-x---"
        assert jail.default_permissions_octal == 0o750
        assert jail.config.default_permissions == "rwxr-x---"

    def test_set_octal(self, jail: Jail) -> None:
        jail.set_default_permissions_octal(0o2750)
        assert jail.default_permissions == "rwxr-s---"

    def test_invalid_value_keeps_previous(self, jail: Jail) -> None:
        with pytest.raises(ValueError):
            jail.set_default_permissions("rwx")
        assert jail.default_permissions == "rwxrwxrwx"

    def test_change_is_logged(
        self, jail: Jail, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.DEBUG, logger="jailio.filesystem._jail"):
            jail.set_default_permissions("rwx------")
        [record] = caplog.records
        assert record.event == "jail.defaults_changed"
        assert record.context == {
            "component": "jail",
            "field": "default_permissions",
            "value": "rwx------",
        }


class TestTemporaryFiles:
    def test_default_tmp_dir(self, jail: Jail) -> None:
        assert jail.tmp_dir() == jail.dir("/tmp")

    def test_new_temp_file(self, jail: Jail) -> None:
        first = jail.new_temp_file()
        second = jail.new_temp_file()
        assert first != second
        assert first.exists()
        assert first.is_child_of(jail.tmp_dir())
        assert first.full_name.startswith("tmp_")
        assert first.is_empty()

    def test_set_tmp_dir(self, jail: Jail) -> None:
        scratch = jail.dir("/scratch")
        scratch.touch()
        jail.set_tmp_dir("/scratch")
        assert jail.tmp_dir() == scratch
        assert jail.config.tmp_path == "/scratch"
        assert jail.new_temp_file().parent_dir() == scratch

    def test_set_tmp_dir_requires_existing_dir(self, jail: Jail) -> None:
        with pytest.raises(PermissionError):
            jail.set_tmp_dir("/missing")
        assert jail.tmp_dir() == jail.dir("/tmp")

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permission bits")
    def test_set_tmp_dir_requires_read_write(self, jail: Jail) -> None:
        locked = jail.dir("/locked")
        locked.touch()
        assert locked.set_permissions("r-x------")
        with pytest.raises(PermissionError):
            jail.set_tmp_dir(locked)
