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

"""HTTP utilities for autopublish.

Provides a managed :class:`httpx.AsyncClient` used by the crates.io
lookup and the upstream source download. Requests are made exactly once:
a publish run is a batch job that a human or cron re-runs after a
failure, so any transport error or unexpected status is fatal.

Usage::

    from autopublish.net import http_client

    async with http_client(headers={'User-Agent': USER_AGENT}) as client:
        response = await client.get('https://crates.io/api/v1/crates/rustc-ap-rustc_ast')
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Final

import httpx

DEFAULT_TIMEOUT: Final[float] = 30.0

# crates.io rejects requests without a User-Agent.
USER_AGENT: Final[str] = 'rustc-auto-publish'


@asynccontextmanager
async def http_client(
    *,
    timeout: float = DEFAULT_TIMEOUT,
    base_url: str = '',
    headers: dict[str, str] | None = None,
    auth: tuple[str, str] | None = None,
) -> AsyncGenerator[httpx.AsyncClient]:
    """Create a managed async HTTP client that follows redirects.

    Args:
        timeout: Request timeout in seconds.
        base_url: Optional base URL for all requests.
        headers: Optional default headers. ``User-Agent`` defaults to
            :data:`USER_AGENT`.
        auth: Optional basic-auth ``(username, password)`` pair.

    Yields:
        An :class:`httpx.AsyncClient` instance.
    """
    default_headers = {'User-Agent': USER_AGENT}
    default_headers.update(headers or {})
    async with httpx.AsyncClient(
        timeout=httpx.Timeout(timeout),
        base_url=base_url,
        headers=default_headers,
        auth=auth,
        follow_redirects=True,
    ) as client:
        yield client


__all__ = [
    'DEFAULT_TIMEOUT',
    'USER_AGENT',
    'http_client',
]
