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

"""Publish driver: rewrite, patch and ``cargo publish`` each crate in order.

Per crate::

    Cargo.toml ──rewrite──→ Cargo.toml (prefixed, pinned)
    lib.rs     ──patch────→ lib.rs     (rustc_private, no diagnostics macro)
    cargo +nightly publish --allow-dirty --no-verify

Crates go out strictly in publish-set order, one at a time, with a pause
between consecutive publishes so each lands in the crates.io index
before a dependent asks for it. The first failure aborts the run; crates
already published stay published.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

from autopublish._run import CommandResult, cargo_command, run_command
from autopublish.errors import AutoPublishError, E
from autopublish.logging import get_logger
from autopublish.manifest import ManifestIdentity, rewrite_manifest_file
from autopublish.metadata import Package
from autopublish.patch import patch_entry_point
from autopublish.versions import SemanticVersion

log = get_logger('autopublish.publisher')

DEFAULT_PUBLISH_DELAY = 10.0


async def publish_package(
    pkg: Package,
    version: SemanticVersion,
    source_commit: str,
    *,
    identity: ManifestIdentity | None = None,
    toolchain: str = 'nightly',
    feature: str = 'rustc_private',
    dry_run: bool = False,
) -> CommandResult:
    """Prepare and publish a single crate.

    Raises:
        AutoPublishError: If the manifest cannot be rewritten or
            ``cargo publish`` exits non-zero.
    """
    identity = identity or ManifestIdentity()
    log.info('publishing', crate=pkg.name, version=str(version), dry_run=dry_run)

    await rewrite_manifest_file(pkg.manifest_path, pkg.name, version, source_commit, identity=identity)
    await patch_entry_point(pkg.crate_dir, feature=feature)

    cmd = cargo_command(toolchain, 'publish', '--allow-dirty', '--no-verify')
    if dry_run:
        cmd.append('--dry-run')
    result = await asyncio.to_thread(run_command, cmd, cwd=pkg.crate_dir)
    if not result.ok:
        raise AutoPublishError(
            code=E.PUBLISH_FAILED,
            message=f'Failed to publish {identity.crate_name(pkg.name)} {version} (exit {result.return_code})',
            hint=result.stderr_tail or 'See the cargo output above.',
        )
    log.info('published', crate=identity.crate_name(pkg.name), version=str(version))
    return result


async def publish_all(
    packages: Sequence[Package],
    version: SemanticVersion,
    source_commit: str,
    *,
    identity: ManifestIdentity | None = None,
    toolchain: str = 'nightly',
    feature: str = 'rustc_private',
    publish_delay: float = DEFAULT_PUBLISH_DELAY,
    dry_run: bool = False,
) -> list[CommandResult]:
    """Publish ``packages`` in order, pausing between consecutive crates.

    No pause follows the last crate, and none is taken in dry-run mode.
    """
    results: list[CommandResult] = []
    for i, pkg in enumerate(packages):
        if i and publish_delay and not dry_run:
            log.debug('waiting_for_index', seconds=publish_delay)
            await asyncio.sleep(publish_delay)
        results.append(
            await publish_package(
                pkg,
                version,
                source_commit,
                identity=identity,
                toolchain=toolchain,
                feature=feature,
                dry_run=dry_run,
            )
        )
    log.info('publish_complete', count=len(results), version=str(version), dry_run=dry_run)
    return results


__all__ = [
    'DEFAULT_PUBLISH_DELAY',
    'publish_all',
    'publish_package',
]
