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

"""Fetching the upstream source tree from GitHub.

Endpoints used::

    GET https://api.github.com/repos/{owner}/{repo}/commits/{branch}
        Accept: application/vnd.github.VERSION.sha      → bare commit SHA
    GET https://github.com/{owner}/{repo}/archive/{sha}.tar.gz

The tarball unpacks to ``{repo}-{sha}/``. Its root ``Cargo.toml`` is
renamed to ``Cargo.toml.bk`` so member crates stop resolving against the
umbrella workspace, and a ``.ok`` marker records a completed extraction.
A tree that already has the marker is reused as is.
"""

from __future__ import annotations

import asyncio
import tarfile
from pathlib import Path

import aiofiles
import httpx

from autopublish._io import write_file
from autopublish.errors import AutoPublishError, E
from autopublish.logging import get_logger
from autopublish.net import DEFAULT_TIMEOUT, http_client

log = get_logger('autopublish.source')

GITHUB_API_URL = 'https://api.github.com'
GITHUB_URL = 'https://github.com'

OK_MARKER = '.ok'


def _extract(archive: Path, dest: Path) -> None:
    with tarfile.open(archive, mode='r:gz') as tar:
        tar.extractall(dest, filter='data')


class UpstreamSource:
    """A branch of a GitHub repository.

    Args:
        upstream: ``owner/repo`` slug.
        branch: Branch whose head is published.
        timeout: HTTP timeout in seconds.
    """

    def __init__(self, upstream: str = 'rust-lang/rust', *, branch: str = 'master', timeout: float = DEFAULT_TIMEOUT) -> None:
        """Initialize with the repository slug, branch and timeout."""
        self.upstream = upstream
        self.branch = branch
        self._timeout = timeout

    def tree_dir(self, dest: Path, commit: str) -> Path:
        """Return where the tree for ``commit`` lands inside ``dest``."""
        repo = self.upstream.rsplit('/', 1)[-1]
        return dest / f'{repo}-{commit}'

    async def latest_commit(self, token: str | None = None) -> str:
        """Return the SHA at the head of the branch.

        Args:
            token: Optional GitHub token, sent as basic auth to lift the
                anonymous rate limit.

        Raises:
            AutoPublishError: If the lookup fails or returns no SHA.
        """
        url = f'{GITHUB_API_URL}/repos/{self.upstream}/commits/{self.branch}'
        auth = ('x-access-token', token) if token else None
        headers = {'Accept': 'application/vnd.github.VERSION.sha'}
        log.info('fetching_latest_commit', upstream=self.upstream, branch=self.branch)
        try:
            async with http_client(timeout=self._timeout, headers=headers, auth=auth) as client:
                response = await client.get(url)
        except httpx.HTTPError as exc:
            raise AutoPublishError(
                code=E.SOURCE_COMMIT_LOOKUP_FAILED,
                message=f'GET {url} failed: {exc}',
            ) from exc

        if response.status_code != 200:
            raise AutoPublishError(
                code=E.SOURCE_COMMIT_LOOKUP_FAILED,
                message=f'GET {url} returned HTTP {response.status_code}',
                hint='Pass --token or set GITHUB_TOKEN if the API rate limit was hit.',
            )
        commit = response.text.strip()
        if not commit:
            raise AutoPublishError(
                code=E.SOURCE_COMMIT_LOOKUP_FAILED,
                message=f'GET {url} returned an empty body',
            )
        log.info('latest_commit', commit=commit)
        return commit

    async def download(self, commit: str, dest: Path) -> Path:
        """Download and unpack ``commit`` into ``dest``.

        Returns:
            The root of the extracted tree.

        Raises:
            AutoPublishError: If the download or extraction fails.
        """
        root = self.tree_dir(dest, commit)
        if (root / OK_MARKER).exists():
            log.info('source_tree_reused', path=str(root))
            return root

        url = f'{GITHUB_URL}/{self.upstream}/archive/{commit}.tar.gz'
        archive = dest / f'{commit}.tar.gz'
        dest.mkdir(parents=True, exist_ok=True)
        log.info('downloading_source', url=url)
        try:
            async with http_client(timeout=self._timeout) as client:
                async with client.stream('GET', url) as response:
                    if response.status_code != 200:
                        raise AutoPublishError(
                            code=E.SOURCE_DOWNLOAD_FAILED,
                            message=f'GET {url} returned HTTP {response.status_code}',
                            hint='Check that the commit exists upstream.',
                        )
                    async with aiofiles.open(archive, mode='wb') as f:
                        async for chunk in response.aiter_bytes():
                            await f.write(chunk)
        except httpx.HTTPError as exc:
            raise AutoPublishError(
                code=E.SOURCE_DOWNLOAD_FAILED,
                message=f'GET {url} failed: {exc}',
            ) from exc

        try:
            await asyncio.to_thread(_extract, archive, dest)
        except (tarfile.TarError, OSError) as exc:
            raise AutoPublishError(
                code=E.SOURCE_DOWNLOAD_FAILED,
                message=f'Failed to extract {archive}: {exc}',
            ) from exc
        finally:
            archive.unlink(missing_ok=True)

        if not root.is_dir():
            raise AutoPublishError(
                code=E.SOURCE_DOWNLOAD_FAILED,
                message=f'Archive for {commit} did not contain {root.name}/',
            )
        manifest = root / 'Cargo.toml'
        if manifest.exists():
            manifest.rename(root / 'Cargo.toml.bk')
        else:
            log.warning('workspace_manifest_missing', path=str(manifest))

        await write_file(root / OK_MARKER, '')
        log.info('source_extracted', path=str(root))
        return root


__all__ = [
    'OK_MARKER',
    'UpstreamSource',
]
