# Copyright 2026 Google LLC
#
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
#
# SPDX-License-Identifier: Apache-2.0

"""Fake crates.io lookup for tests."""

from __future__ import annotations

from autopublish.versions import NEVER_PUBLISHED, SemanticVersion


class FakeRegistry:
    """Returns configured versions and records every lookup.

    Crates missing from the map report ``0.0.0``.
    """

    def __init__(self, versions: dict[str, str] | None = None) -> None:
        """Initialize with a {crate_name: version} map."""
        self._versions = {k: SemanticVersion.parse(v) for k, v in (versions or {}).items()}
        self.calls: list[str] = []

    async def current_version(self, crate_name: str) -> SemanticVersion:
        """Return the configured version for crate_name."""
        self.calls.append(crate_name)
        return self._versions.get(crate_name, NEVER_PUBLISHED)
