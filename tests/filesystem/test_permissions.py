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

"""Tests for the rwx / octal permission codec."""

from __future__ import annotations

import pytest
from hypothesis import given, settings, strategies as st

from jailio.filesystem import has_permissions, to_octal, to_rwx, validate_permissions

_plain_permissions = st.tuples(
    *(st.sampled_from([letter, "-"]) for letter in "rwxrwxrwx")
).map("".join)


@given(_plain_permissions)
@settings(max_examples=200)
def test_plain_strings_round_trip(rwx: str) -> None:
    assert to_rwx(to_octal(rwx)) == rwx


@given(st.integers(min_value=0, max_value=0o7777))
@settings(max_examples=200)
def test_every_mode_round_trips(mode: int) -> None:
    assert to_octal(to_rwx(mode)) == mode


@pytest.mark.parametrize(
    ("rwx", "mode"),
    [
        ("rwxr-xr-x", 0o755),
        ("rw-r--r--", 0o644),
        ("---------", 0o000),
        ("rwsr-xr-x", 0o4755),
        ("rwSr-xr-x", 0o4655),
        ("rwxr-sr-x", 0o2755),
        ("rwxr-Sr-x", 0o2745),
        ("rwxrwxrwt", 0o1777),
        ("rwxrwxrwT", 0o1776),
        ("rwsr-sr-t", 0o7755),
    ],
)
def test_known_conversions(rwx: str, mode: int) -> None:
    assert to_octal(rwx) == mode
    assert to_rwx(mode) == rwx


def test_to_rwx_ignores_file_type_bits() -> None:
    assert to_rwx(0o100644) == "rw-r--r--"


def test_to_octal_is_total_on_malformed_input() -> None:
    assert to_octal("rw") == 0o600
    assert to_octal("rwxrwxrwxrwx") == 0o777
    assert to_octal("?????????") == 0
    assert to_octal("xxxxxxxxx") == 0o111


def test_has_permissions_wildcards() -> None:
    assert has_permissions("rw-------", "rwxr--r--")
    assert not has_permissions("--x------", "rw-r--r--")
    assert has_permissions("---------", "---------")


def test_has_permissions_requires_exact_symbol() -> None:
    assert not has_permissions("--x------", "rws------")
    assert has_permissions("--s------", "rws------")


def test_has_permissions_rejects_wrong_length() -> None:
    with pytest.raises(ValueError, match="9 symbols"):
        has_permissions("rw", "rwxrwxrwx")


def test_validate_permissions() -> None:
    assert validate_permissions("rwxr-x---") == "rwxr-x---"
    with pytest.raises(ValueError, match="invalid symbols"):
        validate_permissions("rwxr-x--z")
    with pytest.raises(ValueError, match="9 symbols"):
        validate_permissions("rwx")
    assert validate_permissions("?????????", allow_unknown=True) == "?????????"
