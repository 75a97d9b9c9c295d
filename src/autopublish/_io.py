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

"""Async file I/O helpers shared by the manifest and patch modules."""

from __future__ import annotations

from pathlib import Path

import aiofiles

from autopublish.errors import AutoPublishError, E


async def read_file(path: Path) -> str:
    """Read a UTF-8 text file asynchronously via aiofiles."""
    try:
        async with aiofiles.open(path, encoding='utf-8') as f:
            return await f.read()
    except OSError as exc:
        raise AutoPublishError(
            code=E.IO_READ_FAILED,
            message=f'Failed to read {path}: {exc}',
            hint=f'Check that {path} exists and is readable.',
        ) from exc


async def write_file(path: Path, content: str) -> None:
    """Overwrite a UTF-8 text file asynchronously via aiofiles."""
    try:
        async with aiofiles.open(path, mode='w', encoding='utf-8') as f:
            await f.write(content)
    except OSError as exc:
        raise AutoPublishError(
            code=E.IO_WRITE_FAILED,
            message=f'Failed to write {path}: {exc}',
            hint=f'Check file permissions for {path}.',
        ) from exc
