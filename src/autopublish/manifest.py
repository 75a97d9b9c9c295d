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

"""Cargo.toml rewriting for republished crates.

Turns an in-tree compiler crate manifest into one that can stand alone
on crates.io under a prefixed name.

Key Concepts (ELI5)::

    ┌─────────────────────────┬─────────────────────────────────────────────┐
    │ Concept                 │ ELI5 Explanation                            │
    ├─────────────────────────┼─────────────────────────────────────────────┤
    │ Identity                │ New name tag: ``rustc-ap-<name>``, the run │
    │                         │ version, license, description, repository. │
    ├─────────────────────────┼─────────────────────────────────────────────┤
    │ Path dependency         │ "Use the crate in the folder next door."   │
    │                         │ crates.io can't see that folder, so it     │
    │                         │ becomes "use rustc-ap-<dep> at version V". │
    ├─────────────────────────┼─────────────────────────────────────────────┤
    │ Format preservation     │ tomlkit edits the document in place, so    │
    │                         │ comments, order and spacing stay put.      │
    └─────────────────────────┴─────────────────────────────────────────────┘

Example::

    [dependencies]                      [dependencies]
    log = "0.4"                   →     log = "0.4"
    rustc_span = { path = "../x" }      rustc_span = {version = "4.0.0", package = "rustc-ap-rustc_span"}

Only ``[dependencies]`` is rewritten. Dev, build, and target-specific
dependency tables are left exactly as they were.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import tomlkit
import tomlkit.exceptions
from tomlkit import TOMLDocument
from tomlkit.items import InlineTable

from autopublish._io import read_file, write_file
from autopublish.errors import AutoPublishError, E
from autopublish.logging import get_logger
from autopublish.versions import SemanticVersion

log = get_logger('autopublish.manifest')


@dataclass(frozen=True)
class ManifestIdentity:
    """Fixed strings stamped into every rewritten manifest.

    Attributes:
        prefix: Prepended (with a dash) to every published crate name.
        license: SPDX-ish license expression.
        repository: URL of the repository the sources come from.
        upstream: ``owner/repo`` slug named in the description.
        publisher_repository: URL of this tool, named in the description.
    """

    prefix: str = 'rustc-ap'
    license: str = 'MIT / Apache-2.0'
    repository: str = 'https://github.com/rust-lang/rust'
    upstream: str = 'rust-lang/rust'
    publisher_repository: str = 'https://github.com/alexcrichton/rustc-auto-publish'

    def crate_name(self, name: str) -> str:
        """Return the published name for crate ``name``."""
        return f'{self.prefix}-{name}'

    def description(self, pkg_name: str, source_commit: str) -> str:
        """Return the description text for ``pkg_name`` at ``source_commit``."""
        return (
            f'Automatically published version of the package `{pkg_name}` '
            f'in the {self.upstream} repository from commit {source_commit} '
            'The publishing script for this crate lives at: '
            f'{self.publisher_repository}'
        )


def _table_or_none(doc: TOMLDocument, key: str, path: str) -> dict | None:
    value = doc.get(key)
    if value is None:
        return None
    if not isinstance(value, dict):
        raise AutoPublishError(
            code=E.MANIFEST_SHAPE,
            message=f'{path}: [{key}] is not a table',
        )
    return value


def parse_manifest(text: str, *, path: Path | str = 'Cargo.toml') -> TOMLDocument:
    """Parse Cargo.toml ``text`` into a format-preserving document.

    Raises:
        AutoPublishError: If ``text`` is not valid TOML.
    """
    try:
        return tomlkit.parse(text)
    except tomlkit.exceptions.ParseError as exc:
        raise AutoPublishError(
            code=E.MANIFEST_PARSE_ERROR,
            message=f'Failed to parse {path}: {exc}',
            hint='The upstream manifest is not valid TOML.',
        ) from exc


def _rewrite_identity(package: dict, pkg_name: str, version: str, source_commit: str, identity: ManifestIdentity) -> None:
    package['name'] = identity.crate_name(pkg_name)
    package['version'] = version
    package['license'] = identity.license
    package['description'] = identity.description(pkg_name, source_commit)
    package['repository'] = identity.repository


def _without_path(dep: InlineTable) -> InlineTable:
    # Rebuilt rather than edited so the remaining keys are evenly spaced.
    table = tomlkit.inline_table()
    for key, item in dep.value.body:
        if key is None or key.key == 'path':
            continue
        item.trivia.indent = ''
        item.trivia.trail = ''
        table.append(key.key, item)
    return table


def _rewrite_path_dependency(key: str, dep: dict, version: str, identity: ManifestIdentity, path: str) -> dict:
    if isinstance(dep, InlineTable):
        dep = _without_path(dep)
    else:
        del dep['path']
    alias = dep.get('package')
    if alias is not None:
        if not isinstance(alias, str):
            raise AutoPublishError(
                code=E.MANIFEST_SHAPE,
                message=f'{path}: dependencies.{key}.package is not a string',
            )
        dep['package'] = identity.crate_name(str(alias))
    dep['version'] = version
    if alias is None:
        dep['package'] = identity.crate_name(key)
    return dep


def rewrite(
    document: TOMLDocument,
    pkg_name: str,
    new_version: SemanticVersion | str,
    source_commit: str,
    *,
    identity: ManifestIdentity | None = None,
    path: Path | str = 'Cargo.toml',
) -> TOMLDocument:
    """Rewrite ``document`` in place for publishing and return it.

    Args:
        document: Parsed manifest of the crate.
        pkg_name: The crate's unprefixed name.
        new_version: The run version every crate is published at.
        source_commit: Upstream commit the sources were taken from.
        identity: Fixed identity strings. Defaults to the rustc-ap ones.
        path: Manifest location, used in error messages only.

    Raises:
        AutoPublishError: If ``[package]``, ``[lib]``, ``[dependencies]``
            or a dependency ``package`` alias has the wrong type.
    """
    identity = identity or ManifestIdentity()
    version = str(new_version)

    package = _table_or_none(document, 'package', str(path))
    if package is not None:
        _rewrite_identity(package, pkg_name, version, source_commit, identity)

    lib = _table_or_none(document, 'lib', str(path))
    if lib is not None:
        for key in ('name', 'crate-type'):
            if key in lib:
                del lib[key]

    deps = _table_or_none(document, 'dependencies', str(path))
    if deps is not None:
        rewritten = []
        for key, dep in list(deps.items()):
            if isinstance(dep, dict) and 'path' in dep:
                new_dep = _rewrite_path_dependency(key, dep, version, identity, str(path))
                if new_dep is not dep:
                    deps[key] = new_dep
                rewritten.append(key)
        if rewritten:
            log.debug('path_dependencies_rewritten', crate=pkg_name, deps=rewritten)

    return document


async def rewrite_manifest_file(
    manifest_path: Path,
    pkg_name: str,
    new_version: SemanticVersion | str,
    source_commit: str,
    *,
    identity: ManifestIdentity | None = None,
) -> str:
    """Rewrite the manifest at ``manifest_path`` in place.

    Returns:
        The new manifest text.
    """
    text = await read_file(manifest_path)
    doc = parse_manifest(text, path=manifest_path)
    rewrite(doc, pkg_name, new_version, source_commit, identity=identity, path=manifest_path)
    new_text = tomlkit.dumps(doc)
    await write_file(manifest_path, new_text)
    log.info('manifest_rewritten', crate=pkg_name, path=str(manifest_path), version=str(new_version))
    return new_text


__all__ = [
    'ManifestIdentity',
    'parse_manifest',
    'rewrite',
    'rewrite_manifest_file',
]
