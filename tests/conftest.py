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

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from jailio.config import JailConfig
from jailio.filesystem import HostFileOps, Jail


@pytest.fixture
def jail(tmp_path: Path) -> Jail:
    """Return a jail rooted at a fresh temporary directory."""

    return Jail(JailConfig(root=str(tmp_path)))


@pytest.fixture
def ops() -> HostFileOps:
    return HostFileOps()


@pytest.fixture
def write_file(tmp_path: Path) -> Callable[[str, bytes], str]:
    """Return a helper that writes raw bytes below the temporary root."""

    def write(relative: str, content: bytes) -> str:
        target = tmp_path / relative.lstrip("/")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)
        return str(target)

    return write
