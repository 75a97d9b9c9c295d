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

"""Tests for autopublish.registry module."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from autopublish.errors import AutoPublishError, E
from autopublish.logging import configure_logging
from autopublish.registry import CratesIoRegistry
from autopublish.versions import NEVER_PUBLISHED, SemanticVersion

configure_logging(quiet=True)


def _mock_response(status_code: int = 200, json_data: object = None) -> MagicMock:
    """Create a mock httpx.Response."""
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = json_data if json_data is not None else {}
    resp.text = ''
    return resp


def _patched_client(response: MagicMock | None = None, *, side_effect: Exception | None = None):
    """Patch http_client so client.get returns ``response``."""
    client = MagicMock()
    client.get = AsyncMock(return_value=response, side_effect=side_effect)
    mock = patch('autopublish.registry.http_client')
    return mock, client


class TestCratesIoRegistryInit:
    """Tests for CratesIoRegistry construction."""

    def test_default_base_url(self) -> None:
        """Test default base url."""
        registry = CratesIoRegistry()
        assert registry._base_url == 'https://crates.io'

    def test_custom_base_url(self) -> None:
        """A trailing slash is stripped."""
        registry = CratesIoRegistry(base_url='http://localhost:3000/')
        assert registry._base_url == 'http://localhost:3000'

    def test_class_constants(self) -> None:
        """Test class constants."""
        assert CratesIoRegistry.DEFAULT_BASE_URL == 'https://crates.io'


class TestCurrentVersion:
    """Tests for CratesIoRegistry.current_version()."""

    @pytest.mark.asyncio
    async def test_returns_max_version_on_200(self) -> None:
        """crate.max_version is parsed."""
        mock, client = _patched_client(_mock_response(200, {'crate': {'max_version': '664.0.0'}}))
        with mock as mock_client:
            mock_client.return_value.__aenter__ = AsyncMock(return_value=client)
            mock_client.return_value.__aexit__ = AsyncMock(return_value=False)
            version = await CratesIoRegistry().current_version('rustc-ap-rustc_ast')

        assert version == SemanticVersion(664, 0, 0)
        client.get.assert_awaited_once_with('https://crates.io/api/v1/crates/rustc-ap-rustc_ast')

    @pytest.mark.asyncio
    async def test_404_means_never_published(self) -> None:
        """A missing crate reports 0.0.0."""
        mock, client = _patched_client(_mock_response(404))
        with mock as mock_client:
            mock_client.return_value.__aenter__ = AsyncMock(return_value=client)
            mock_client.return_value.__aexit__ = AsyncMock(return_value=False)
            version = await CratesIoRegistry().current_version('rustc-ap-new')
        assert version == NEVER_PUBLISHED

    @pytest.mark.asyncio
    async def test_500_is_fatal(self) -> None:
        """Any status other than 200 and 404 aborts."""
        mock, client = _patched_client(_mock_response(500))
        with mock as mock_client:
            mock_client.return_value.__aenter__ = AsyncMock(return_value=client)
            mock_client.return_value.__aexit__ = AsyncMock(return_value=False)
            with pytest.raises(AutoPublishError) as exc_info:
                await CratesIoRegistry().current_version('rustc-ap-x')
        assert exc_info.value.code == E.REGISTRY_STATUS
        assert 'HTTP 500' in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_missing_max_version_is_fatal(self) -> None:
        """A 200 body without crate.max_version is malformed."""
        mock, client = _patched_client(_mock_response(200, {'crate': {}}))
        with mock as mock_client:
            mock_client.return_value.__aenter__ = AsyncMock(return_value=client)
            mock_client.return_value.__aexit__ = AsyncMock(return_value=False)
            with pytest.raises(AutoPublishError) as exc_info:
                await CratesIoRegistry().current_version('rustc-ap-x')
        assert exc_info.value.code == E.REGISTRY_MALFORMED

    @pytest.mark.asyncio
    async def test_invalid_json_is_fatal(self) -> None:
        """A body that is not JSON is malformed."""
        resp = _mock_response(200)
        resp.json.side_effect = ValueError('Expecting value')
        mock, client = _patched_client(resp)
        with mock as mock_client:
            mock_client.return_value.__aenter__ = AsyncMock(return_value=client)
            mock_client.return_value.__aexit__ = AsyncMock(return_value=False)
            with pytest.raises(AutoPublishError) as exc_info:
                await CratesIoRegistry().current_version('rustc-ap-x')
        assert exc_info.value.code == E.REGISTRY_MALFORMED

    @pytest.mark.asyncio
    async def test_unparseable_version_is_fatal(self) -> None:
        """max_version must be a SemVer string."""
        mock, client = _patched_client(_mock_response(200, {'crate': {'max_version': 'latest'}}))
        with mock as mock_client:
            mock_client.return_value.__aenter__ = AsyncMock(return_value=client)
            mock_client.return_value.__aexit__ = AsyncMock(return_value=False)
            with pytest.raises(AutoPublishError) as exc_info:
                await CratesIoRegistry().current_version('rustc-ap-x')
        assert exc_info.value.code == E.REGISTRY_MALFORMED

    @pytest.mark.asyncio
    async def test_transport_error_is_fatal(self) -> None:
        """Connection failures are not retried."""
        mock, client = _patched_client(side_effect=httpx.ConnectError('refused'))
        with mock as mock_client:
            mock_client.return_value.__aenter__ = AsyncMock(return_value=client)
            mock_client.return_value.__aexit__ = AsyncMock(return_value=False)
            with pytest.raises(AutoPublishError) as exc_info:
                await CratesIoRegistry().current_version('rustc-ap-x')
        assert exc_info.value.code == E.REGISTRY_UNREACHABLE
        assert client.get.await_count == 1

    @pytest.mark.asyncio
    async def test_uses_custom_base_url(self) -> None:
        """Requests go to the configured registry."""
        mock, client = _patched_client(_mock_response(404))
        with mock as mock_client:
            mock_client.return_value.__aenter__ = AsyncMock(return_value=client)
            mock_client.return_value.__aexit__ = AsyncMock(return_value=False)
            await CratesIoRegistry(base_url='http://localhost:3000/').current_version('foo')
        client.get.assert_awaited_once_with('http://localhost:3000/api/v1/crates/foo')
