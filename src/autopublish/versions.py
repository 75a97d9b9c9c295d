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

"""Run-wide version selection.

Every run publishes the whole closure again at one shared version: the
highest version currently on crates.io across the closure, with the
major component bumped and minor/patch reset. The published crates track
a moving upstream with no SemVer discipline of their own, so every run
is treated as breaking.

Usage::

    current = SemanticVersion.parse('3.7.2')
    next_version(current)  # SemanticVersion(4, 0, 0)
"""

from __future__ import annotations

import functools
import re
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol

from autopublish.errors import AutoPublishError, E
from autopublish.logging import get_logger
from autopublish.metadata import Package

log = get_logger('autopublish.versions')

_SEMVER_RE = re.compile(
    r'^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)'
    r'(?:-([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?'
    r'(?:\+([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?$'
)


def _prerelease_key(prerelease: str) -> tuple[tuple[int, int | str], ...]:
    # Numeric identifiers sort before alphanumeric ones.
    return tuple((0, int(part)) if part.isdigit() else (1, part) for part in prerelease.split('.'))


@functools.total_ordering
@dataclass(frozen=True)
class SemanticVersion:
    """A ``MAJOR.MINOR.PATCH[-pre][+build]`` version.

    Comparison follows SemVer precedence: a prerelease sorts before the
    release it precedes and build metadata is ignored.
    """

    major: int
    minor: int
    patch: int
    prerelease: str = ''
    build: str = ''

    @classmethod
    def parse(cls, text: str) -> SemanticVersion:
        """Parse ``text`` as a SemVer version.

        Raises:
            AutoPublishError: If ``text`` is not a valid version.
        """
        m = _SEMVER_RE.match(text.strip())
        if not m:
            raise AutoPublishError(
                code=E.VERSION_INVALID,
                message=f'Version {text!r} is not valid (expected X.Y.Z)',
                hint='Use a version string like "1.2.3" (MAJOR.MINOR.PATCH).',
            )
        return cls(
            major=int(m.group(1)),
            minor=int(m.group(2)),
            patch=int(m.group(3)),
            prerelease=m.group(4) or '',
            build=m.group(5) or '',
        )

    def _key(self) -> tuple[object, ...]:
        if self.prerelease:
            return (self.major, self.minor, self.patch, 0, _prerelease_key(self.prerelease))
        return (self.major, self.minor, self.patch, 1, ())

    def __lt__(self, other: object) -> bool:
        """Compare by SemVer precedence."""
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return self._key() < other._key()

    def __str__(self) -> str:
        """Render the canonical version string."""
        text = f'{self.major}.{self.minor}.{self.patch}'
        if self.prerelease:
            text += f'-{self.prerelease}'
        if self.build:
            text += f'+{self.build}'
        return text


#: Version reported for a crate that has never been published.
NEVER_PUBLISHED = SemanticVersion(0, 0, 0)


class VersionSource(Protocol):
    """Anything that can report a crate's most recently published version."""

    async def current_version(self, crate_name: str) -> SemanticVersion:
        """Return the published version, or :data:`NEVER_PUBLISHED`."""
        ...


def next_version(current: SemanticVersion) -> SemanticVersion:
    """Return ``current`` with the major bumped and minor/patch reset."""
    return SemanticVersion(current.major + 1, 0, 0)


def max_version(versions: Iterable[SemanticVersion]) -> SemanticVersion:
    """Return the highest of ``versions``.

    Raises:
        AutoPublishError: If ``versions`` is empty.
    """
    values = list(versions)
    if not values:
        raise AutoPublishError(
            code=E.VERSION_NO_PACKAGES,
            message='No packages to compute a version for',
            hint='The publish set is empty; check the configured targets.',
        )
    return max(values)


async def version_to_publish(
    packages: Iterable[Package],
    registry: VersionSource,
    *,
    prefix: str,
) -> SemanticVersion:
    """Pick the single version every crate in this run is published at.

    Queries the registry once per crate, in order, under its prefixed
    name.
    """
    current: list[SemanticVersion] = []
    for pkg in packages:
        crate_name = f'{prefix}-{pkg.name}'
        log.info('fetching_current_version', crate=crate_name)
        current.append(await registry.current_version(crate_name))

    highest = max_version(current)
    chosen = next_version(highest)
    log.info('version_to_publish', current=str(highest), version=str(chosen))
    return chosen


__all__ = [
    'NEVER_PUBLISHED',
    'SemanticVersion',
    'VersionSource',
    'max_version',
    'next_version',
    'version_to_publish',
]
