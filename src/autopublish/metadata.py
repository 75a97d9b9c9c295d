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

"""Typed model of a ``cargo metadata`` snapshot.

``cargo metadata --format-version=1`` reports every package reachable
from a workspace plus a resolve table of post-resolution edges::

    {
      "packages": [{"id": ..., "name": ..., "version": ...,
                    "source": null | "registry+https://...",
                    "manifest_path": ...}, ...],
      "resolve": {"nodes": [{"id": ..., "dependencies": [id, ...]}, ...]}
    }

A package whose ``source`` is ``null`` lives in the source tree (local);
anything else is already on a registry and is never republished.

Package ids are opaque. Two packages may share a name (two versions of
the same crate in one resolve) and are still distinct nodes here.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from autopublish._run import cargo_command, run_command
from autopublish.errors import AutoPublishError, E
from autopublish.logging import get_logger

log = get_logger('autopublish.metadata')


@dataclass(frozen=True)
class Package:
    """A single node of the resolved graph.

    Attributes:
        id: Opaque identifier, unique per name + version + source.
        name: The crate name as written in its manifest.
        manifest_path: Absolute path to the crate's ``Cargo.toml``.
        source: Registry/git origin, or ``None`` for an in-tree crate.
        version: Resolved version string, informational only.
    """

    id: str
    name: str
    manifest_path: Path
    source: str | None = None
    version: str = ''

    @property
    def is_local(self) -> bool:
        """Whether the package comes from the source tree itself."""
        return self.source is None

    @property
    def crate_dir(self) -> Path:
        """Directory holding the crate's manifest."""
        return self.manifest_path.parent


@dataclass
class ResolvedGraph:
    """Package set plus resolution table of one metadata snapshot.

    Attributes:
        packages: Packages keyed by id, in the order cargo reported them.
        resolution: Direct dependency ids per package id.
    """

    packages: dict[str, Package] = field(default_factory=dict)
    resolution: dict[str, list[str]] = field(default_factory=dict)

    def __len__(self) -> int:
        """Return the number of packages in the snapshot."""
        return len(self.packages)

    def package(self, package_id: str) -> Package:
        """Return the package with ``package_id``.

        Raises:
            AutoPublishError: If the id is not in the package set.
        """
        try:
            return self.packages[package_id]
        except KeyError:
            raise AutoPublishError(
                code=E.METADATA_MISSING_PACKAGE,
                message=f'Dependency {package_id!r} is not in the package list',
                hint='The cargo metadata snapshot is incomplete or corrupt.',
            ) from None

    def find(self, name: str) -> Package:
        """Return the first package named ``name``.

        Raises:
            AutoPublishError: If no package has that name.
        """
        for pkg in self.packages.values():
            if pkg.name == name:
                return pkg
        raise AutoPublishError(
            code=E.METADATA_ROOT_NOT_FOUND,
            message=f'Failed to find {name} in cargo metadata',
            hint="Check the 'targets' list in autopublish.toml.",
        )

    def dependencies_of(self, pkg: Package) -> list[Package]:
        """Return the direct dependencies of ``pkg`` in resolve order.

        Every id is resolved up front so a dangling id aborts before any
        of its siblings are visited.

        Raises:
            AutoPublishError: If ``pkg`` has no resolve node, or one of
                its dependency ids is unknown.
        """
        try:
            dep_ids = self.resolution[pkg.id]
        except KeyError:
            raise AutoPublishError(
                code=E.METADATA_MISSING_NODE,
                message=f'Failed to find resolve node for package {pkg.name} ({pkg.id})',
                hint='The cargo metadata snapshot is incomplete or corrupt.',
            ) from None
        return [self.package(dep_id) for dep_id in dep_ids]


def _require(record: dict[str, Any], key: str, kind: type, context: str) -> Any:  # noqa: ANN401 - raw JSON
    value = record.get(key)
    if not isinstance(value, kind):
        raise AutoPublishError(
            code=E.METADATA_PARSE_ERROR,
            message=f'{context}: expected {kind.__name__} field {key!r}, got {type(value).__name__}',
        )
    return value


def parse_metadata(data: dict[str, Any]) -> ResolvedGraph:
    """Build a :class:`ResolvedGraph` from decoded ``cargo metadata`` JSON.

    Raises:
        AutoPublishError: If a required field is missing or mistyped.
    """
    if not isinstance(data, dict):
        raise AutoPublishError(
            code=E.METADATA_PARSE_ERROR,
            message=f'cargo metadata: expected a JSON object, got {type(data).__name__}',
        )

    graph = ResolvedGraph()
    for record in _require(data, 'packages', list, 'cargo metadata'):
        if not isinstance(record, dict):
            raise AutoPublishError(
                code=E.METADATA_PARSE_ERROR,
                message='cargo metadata: package records must be objects',
            )
        source = record.get('source')
        if source is not None and not isinstance(source, str):
            raise AutoPublishError(
                code=E.METADATA_PARSE_ERROR,
                message=f'package {record.get("id")!r}: source must be a string or null',
            )
        pkg_id = _require(record, 'id', str, 'package')
        graph.packages[pkg_id] = Package(
            id=pkg_id,
            name=_require(record, 'name', str, f'package {pkg_id!r}'),
            manifest_path=Path(_require(record, 'manifest_path', str, f'package {pkg_id!r}')),
            source=source,
            version=str(record.get('version') or ''),
        )

    resolve = data.get('resolve')
    if not isinstance(resolve, dict):
        raise AutoPublishError(
            code=E.METADATA_PARSE_ERROR,
            message='cargo metadata has no resolve table',
            hint='Do not pass --no-deps to cargo metadata.',
        )
    for node in _require(resolve, 'nodes', list, 'resolve'):
        if not isinstance(node, dict):
            raise AutoPublishError(
                code=E.METADATA_PARSE_ERROR,
                message='cargo metadata: resolve nodes must be objects',
            )
        node_id = _require(node, 'id', str, 'resolve node')
        deps = _require(node, 'dependencies', list, f'resolve node {node_id!r}')
        graph.resolution[node_id] = [str(d) for d in deps]

    log.debug('metadata_parsed', packages=len(graph.packages), nodes=len(graph.resolution))
    return graph


def parse_metadata_json(text: str) -> ResolvedGraph:
    """Decode ``cargo metadata`` stdout and build a :class:`ResolvedGraph`."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise AutoPublishError(
            code=E.METADATA_PARSE_ERROR,
            message=f'cargo metadata printed invalid JSON: {exc}',
        ) from exc
    return parse_metadata(data)


async def load_metadata(crate_dir: Path, *, toolchain: str = 'nightly') -> ResolvedGraph:
    """Run ``cargo metadata`` in ``crate_dir`` and parse its output.

    Raises:
        AutoPublishError: If cargo fails or its output is malformed.
    """
    cmd = cargo_command(toolchain, 'metadata', '--format-version=1')
    log.info('loading_metadata', dir=str(crate_dir))
    result = await asyncio.to_thread(run_command, cmd, cwd=crate_dir)
    if not result.ok:
        raise AutoPublishError(
            code=E.METADATA_COMMAND_FAILED,
            message=f'{result.command_str} failed in {crate_dir} (exit {result.return_code})',
            hint=result.stderr_tail or 'Is the requested toolchain installed?',
        )
    return parse_metadata_json(result.stdout)


__all__ = [
    'Package',
    'ResolvedGraph',
    'load_metadata',
    'parse_metadata',
    'parse_metadata_json',
]
