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

"""crates.io version lookup.

API endpoint used::

    GET /api/v1/crates/{name}    → {"crate": {"max_version": "3.0.0", ...}, ...}

A 404 means the crate was never published and maps to ``0.0.0``. Every
other non-200 status, a transport error, or a body without a valid
``crate.max_version`` aborts the run.
"""

from __future__ import annotations

import httpx

from autopublish.errors import AutoPublishError, E
from autopublish.logging import get_logger
from autopublish.net import DEFAULT_TIMEOUT, http_client
from autopublish.versions import NEVER_PUBLISHED, SemanticVersion

log = get_logger('autopublish.registry')


class CratesIoRegistry:
    """Read-only client for the crates.io API.

    Args:
        base_url: Base URL of the registry. Defaults to crates.io.
        timeout: HTTP request timeout in seconds.
    """

    DEFAULT_BASE_URL: str = 'https://crates.io'

    def __init__(
        self,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        """Initialize with the registry base URL and timeout."""
        self._base_url = base_url.rstrip('/')
        self._timeout = timeout

    async def current_version(self, crate_name: str) -> SemanticVersion:
        """Return the highest published version of ``crate_name``.

        Raises:
            AutoPublishError: On an unexpected status, an unreachable
                registry, or a malformed response.
        """
        url = f'{self._base_url}/api/v1/crates/{crate_name}'
        try:
            async with http_client(timeout=self._timeout) as client:
                response = await client.get(url)
        except httpx.HTTPError as exc:
            raise AutoPublishError(
                code=E.REGISTRY_UNREACHABLE,
                message=f'GET {url} failed: {exc}',
            ) from exc

        if response.status_code == 404:
            log.info('crate_never_published', crate=crate_name)
            return NEVER_PUBLISHED
        if response.status_code != 200:
            raise AutoPublishError(
                code=E.REGISTRY_STATUS,
                message=f'GET {url} returned HTTP {response.status_code}',
                hint='Only 200 and 404 are expected from the crates.io API.',
            )

        try:
            data = response.json()
            raw = data['crate']['max_version']
        except (ValueError, KeyError, TypeError) as exc:
            raise AutoPublishError(
                code=E.REGISTRY_MALFORMED,
                message=f'Unexpected response body from {url}: {exc}',
            ) from exc
        if not isinstance(raw, str):
            raise AutoPublishError(
                code=E.REGISTRY_MALFORMED,
                message=f'crate.max_version from {url} is not a string: {raw!r}',
            )

        try:
            version = SemanticVersion.parse(raw)
        except AutoPublishError as exc:
            raise AutoPublishError(
                code=E.REGISTRY_MALFORMED,
                message=f'crate.max_version from {url} is not a version: {raw!r}',
            ) from exc
        log.debug('crate_current_version', crate=crate_name, version=str(version))
        return version


__all__ = [
    'CratesIoRegistry',
]
