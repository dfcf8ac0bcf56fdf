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

"""Tests for jailed files and directories."""

from __future__ import annotations

import hashlib
import logging
import sys
from pathlib import Path

import pytest

from jailio.config import JailConfig
from jailio.errors import NotFoundError
from jailio.filesystem import (
    Dir,
    File,
    HostFileOps,
    Jail,
    LockedStream,
    LockUnavailable,
    StorageKey,
    validate_filename,
)

posix_only = pytest.mark.skipif(
    sys.platform == "win32", reason="POSIX permission bits"
)


def _md5(text: str) -> str:
    return hashlib.md5(text.encode()).hexdigest()


class _IgnoringChmod(HostFileOps):
    def chmod(self, path: str, mode: int) -> None:
        del path, mode


class TestNames:
    def test_extensions(self, jail: Jail) -> None:
        report = jail.file("/docs/report.tar.gz")
        assert report.full_name == "report.tar.gz"
        assert report.name == "report.tar"
        assert report.last_extension == "gz"
        assert report.full_extension == "tar.gz"

    def test_file_without_extension(self, jail: Jail) -> None:
        readme = jail.file("README")
        assert readme.name == "README"
        assert readme.last_extension is None
        assert readme.full_extension is None

    def test_paths(self, jail: Jail, tmp_path: Path) -> None:
        report = jail.file("docs\\report.csv")
        assert report.path == "/docs/report.csv"
        assert report.full_path == f"{tmp_path}/docs/report.csv"
        assert str(report) == "/docs/report.csv"

    def test_root_dir(self, jail: Jail, tmp_path: Path) -> None:
        root = jail.dir("/")
        assert root.path == "/"
        assert root.full_path == str(tmp_path)
        assert root.parent_dir() == root


class TestIdentity:
    def test_equality_is_kind_and_path(self, jail: Jail) -> None:
        assert jail.file("/a/b.txt") == jail.file("a//b.txt/")
        assert jail.file("/a") != jail.dir("/a")
        assert len({jail.file("/a"), jail.file("a"), jail.dir("/a")}) == 2

    def test_parent_dir(self, jail: Jail) -> None:
        assert jail.file("/a/b/c.txt").parent_dir() == jail.dir("/a/b")
        assert jail.dir("/a").parent_dir() == jail.dir("/")

    def test_is_child_of_checks_one_level(self, jail: Jail) -> None:
        leaf = jail.file("/a/b/c.txt")
        assert leaf.is_child_of("/a/b")
        assert leaf.is_child_of(jail.dir("/a/b"))
        assert not leaf.is_child_of("/a")
        assert jail.dir("/a").is_child_of("/")

    def test_relative_to(self, jail: Jail) -> None:
        leaf = jail.file("/a/b/c.txt")
        assert leaf.relative_to("/a") == "/b/c.txt"
        assert leaf.relative_to(jail.dir("/")) == "/a/b/c.txt"
        with pytest.raises(ValueError, match="is not under"):
            leaf.relative_to("/a/bc")

    def test_storage_key(self, jail: Jail) -> None:
        nested = jail.file("/docs/a.txt").storage_key()
        assert nested == StorageKey(bucket=_md5("/docs")[0], key=_md5("a.txt"))
        assert nested.folder_name == f"_{_md5('/docs')[0]}"
        top = jail.dir("/docs").storage_key()
        assert top == StorageKey(bucket=_md5("/")[0], key=_md5("docs"))
        root = jail.dir("/").storage_key()
        assert root == StorageKey(bucket=_md5("")[0], key=_md5(""))


class TestFileContent:
    def test_set_and_get_content(self, jail: Jail) -> None:
        notes = jail.file("/notes.txt")
        assert not notes.exists()
        assert notes.set_content("héllo") == 6
        assert notes.exists()
        assert notes.get_content() == "héllo"
        assert notes.get_bytes() == "héllo".encode()
        assert notes.size() == 6
        assert notes.content_hash() == hashlib.sha1("héllo".encode()).hexdigest()

    def test_set_content_truncates(self, jail: Jail) -> None:
        notes = jail.file("/notes.txt")
        _ = notes.set_content("a much longer first version")
        _ = notes.set_content(b"short")
        assert notes.get_content() == "short"

    def test_touch_and_is_empty(self, jail: Jail) -> None:
        empty = jail.file("/empty.txt")
        empty.touch()
        assert empty.is_empty()

    def test_missing_file(self, jail: Jail) -> None:
        missing = jail.file("/missing.txt")
        with pytest.raises(NotFoundError):
            missing.size()
        with pytest.raises(NotFoundError):
            missing.get_content()

    def test_filename_matches(self, jail: Jail) -> None:
        prices = jail.file("/data/prices.csv")
        assert prices.filename_matches(r"\.csv$")
        assert not prices.filename_matches(r"^data")

    def test_streams(self, jail: Jail) -> None:
        log = jail.file("/app.log")
        writer = log.open_log_writer()
        assert isinstance(writer, LockedStream)
        with writer:
            _ = writer.write_line("started")
            if sys.platform != "win32":
                assert isinstance(log.open_log_writer(), LockUnavailable)
        with log.open_reader() as reader:
            assert list(reader) == ["started"]
        editor = log.open_writer()
        assert isinstance(editor, LockedStream)
        with editor:
            assert editor.read_line() == "started"


@posix_only
class TestPermissions:
    def test_set_and_query(self, jail: Jail) -> None:
        target = jail.file("/a.txt")
        target.touch()
        assert target.set_permissions("rw-r-----")
        assert target.permissions() == "rw-r-----"
        assert target.has_permissions("rw-------")
        assert not target.has_permissions("--x------")
        assert target.is_readable()
        assert target.is_writable()

    def test_invalid_string(self, jail: Jail) -> None:
        target = jail.file("/a.txt")
        target.touch()
        with pytest.raises(ValueError):
            target.set_permissions("rw")

    def test_mismatch_is_reported(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        jail = Jail(JailConfig(root=str(tmp_path)), ops=_IgnoringChmod())
        target = jail.file("/a.txt")
        target.touch()
        (tmp_path / "a.txt").chmod(0o644)
        with caplog.at_level(logging.DEBUG, logger="jailio.filesystem._element"):
            assert not target.set_permissions("rwx------")
        [record] = caplog.records
        assert record.event == "element.permissions_mismatch"
        assert record.context["actual"] == "rw-r--r--"

    def test_dir_touch_uses_default_permissions(self, jail: Jail) -> None:
        jail.set_default_permissions("rwx------")
        nested = jail.dir("/a/b")
        nested.touch()
        assert nested.exists()
        assert nested.permissions() == "rwx------"
        assert nested.is_writable()


class TestRelocation:
    def test_rename(self, jail: Jail) -> None:
        original = jail.file("/docs/a.txt")
        jail.dir("/docs").touch()
        _ = original.set_content("x")
        renamed = original.rename("b.txt")
        assert renamed == jail.file("/docs/b.txt")
        assert renamed.exists()
        assert not original.exists()

    def test_rename_refuses_existing_target(self, jail: Jail) -> None:
        jail.file("/a.txt").touch()
        jail.file("/b.txt").touch()
        with pytest.raises(FileExistsError):
            jail.file("/a.txt").rename("b.txt")

    @pytest.mark.parametrize("name", ["", ".", "..", "a/b", "a\\b"])
    def test_invalid_names(self, jail: Jail, name: str) -> None:
        jail.file("/a.txt").touch()
        with pytest.raises(ValueError):
            jail.file("/a.txt").rename(name)
        with pytest.raises(ValueError):
            validate_filename(name)

    def test_move_to_creates_target(self, jail: Jail) -> None:
        source = jail.file("/a.txt")
        _ = source.set_content("moved")
        moved = source.move_to("/archive/2024")
        assert moved == jail.file("/archive/2024/a.txt")
        assert moved.get_content() == "moved"
        assert not source.exists()
        renamed = moved.move_to(jail.dir("/"), "b.txt")
        assert renamed.path == "/b.txt"

    def test_copy(self, jail: Jail) -> None:
        source = jail.file("/a.txt")
        _ = source.set_content("copied")
        copy = source.copy("/backup", "a.bak")
        assert copy.path == "/backup/a.bak"
        assert copy.get_content() == "copied"
        assert source.exists()

    def test_delete(self, jail: Jail) -> None:
        target = jail.file("/a.txt")
        target.touch()
        target.delete()
        assert not target.exists()


class TestDir:
    def test_children(self, jail: Jail) -> None:
        docs = jail.dir("/docs")
        assert docs.file("a.txt") == jail.file("/docs/a.txt")
        assert docs.subdir("img") == jail.dir("/docs/img")
        assert jail.dir("/").file("top.txt").path == "/top.txt"
        with pytest.raises(ValueError):
            docs.file("../etc")

    def test_is_empty_and_delete(self, jail: Jail) -> None:
        docs = jail.dir("/docs")
        docs.touch()
        assert docs.is_empty()
        docs.file("a.txt").touch()
        assert not docs.is_empty()
        with pytest.raises(OSError):
            docs.delete()
        docs.delete(recursive=True)
        assert not docs.exists()
        with pytest.raises(NotFoundError):
            docs.is_empty()

    def test_rename_move_copy(self, jail: Jail) -> None:
        docs = jail.dir("/docs")
        docs.touch()
        docs.file("a.txt").touch()
        renamed = docs.rename("papers")
        assert renamed == jail.dir("/papers")
        assert renamed.file("a.txt").exists()
        moved = renamed.move_to("/archive")
        assert moved.path == "/archive/papers"
        copied = moved.copy("/", "mirror")
        assert copied.file("a.txt").exists()
        assert moved.exists()

    def test_file_and_dir_exists_by_kind(self, jail: Jail) -> None:
        jail.dir("/docs").touch()
        assert jail.dir("/docs").exists()
        assert not jail.file("/docs").exists()


def test_info(jail: Jail) -> None:
    report = jail.file("/docs/report.tar.gz")
    jail.dir("/docs").touch()
    _ = report.set_content("1234")
    info = report.info()
    assert info.kind == "file"
    assert info.path == "/docs/report.tar.gz"
    assert info.name == "report.tar"
    assert info.extension == "gz"
    assert info.full_extension == "tar.gz"
    assert info.size_bytes == 4
    assert info.empty is None
    dir_info = jail.dir("/docs").info()
    assert dir_info.kind == "dir"
    assert dir_info.empty is False
    assert dir_info.size_bytes is None
    assert isinstance(report, File)
    assert isinstance(jail.dir("/docs"), Dir)
