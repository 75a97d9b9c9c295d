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

"""Structured error system for autopublish.

Every failure in a publish run is fatal. Each one carries a unique
``AP-NAMED-KEY`` code, a human-readable message, and an optional hint.

Code categories::

    AP-CONFIG-*       Configuration errors
    AP-METADATA-*     ``cargo metadata`` snapshot errors
    AP-VERSION-*      Version arbitration errors
    AP-MANIFEST-*     Cargo.toml parse / shape errors
    AP-REGISTRY-*     crates.io lookup errors
    AP-SOURCE-*       Upstream source tree errors
    AP-PUBLISH-*      ``cargo publish`` errors
    AP-COMMAND-*      cargo could not be started or timed out
    AP-IO-*           File read / write errors

There is no partial-success model: a failure while publishing package
*k* leaves packages ``1..k-1`` on the registry and the rest unpublished.
Re-running recomputes everything.

Usage::

    from autopublish.errors import AutoPublishError, E

    raise AutoPublishError(
        code=E.METADATA_MISSING_PACKAGE,
        message='Dependency id not in package list',
        hint='The upstream tree layout probably changed.',
    )
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from enum import Enum
from typing import TextIO

from rich.console import Console
from rich.markup import escape as rich_escape


class ErrorCode(str, Enum):
    """Enumeration of all autopublish diagnostic codes."""

    # Configuration
    CONFIG_INVALID_KEY = 'AP-CONFIG-INVALID-KEY'
    CONFIG_INVALID_VALUE = 'AP-CONFIG-INVALID-VALUE'
    CONFIG_PARSE_ERROR = 'AP-CONFIG-PARSE-ERROR'

    # Graph metadata
    METADATA_COMMAND_FAILED = 'AP-METADATA-COMMAND-FAILED'
    METADATA_PARSE_ERROR = 'AP-METADATA-PARSE-ERROR'
    METADATA_MISSING_PACKAGE = 'AP-METADATA-MISSING-PACKAGE'
    METADATA_MISSING_NODE = 'AP-METADATA-MISSING-NODE'
    METADATA_ROOT_NOT_FOUND = 'AP-METADATA-ROOT-NOT-FOUND'

    # Versioning
    VERSION_INVALID = 'AP-VERSION-INVALID'
    VERSION_NO_PACKAGES = 'AP-VERSION-NO-PACKAGES'

    # Manifest rewriting
    MANIFEST_PARSE_ERROR = 'AP-MANIFEST-PARSE-ERROR'
    MANIFEST_SHAPE = 'AP-MANIFEST-SHAPE'

    # Registry
    REGISTRY_STATUS = 'AP-REGISTRY-STATUS'
    REGISTRY_MALFORMED = 'AP-REGISTRY-MALFORMED'
    REGISTRY_UNREACHABLE = 'AP-REGISTRY-UNREACHABLE'

    # Upstream source
    SOURCE_COMMIT_LOOKUP_FAILED = 'AP-SOURCE-COMMIT-LOOKUP-FAILED'
    SOURCE_DOWNLOAD_FAILED = 'AP-SOURCE-DOWNLOAD-FAILED'

    # Publishing
    PUBLISH_FAILED = 'AP-PUBLISH-FAILED'

    # Subprocesses
    COMMAND_TIMEOUT = 'AP-COMMAND-TIMEOUT'
    COMMAND_NOT_FOUND = 'AP-COMMAND-NOT-FOUND'

    # File I/O
    IO_READ_FAILED = 'AP-IO-READ-FAILED'
    IO_WRITE_FAILED = 'AP-IO-WRITE-FAILED'


# Convenience alias for shorter imports.
E = ErrorCode


@dataclass(frozen=True)
class ErrorInfo:
    """Metadata for a single error code.

    Attributes:
        code: The ``AP-NAMED-KEY`` error code.
        message: Human-readable description of what went wrong.
        hint: Optional suggestion for how to fix the error.
    """

    code: ErrorCode
    message: str
    hint: str = ''


class AutoPublishError(Exception):
    """Base exception for all autopublish errors.

    Args:
        code: The error code from :class:`ErrorCode`.
        message: Human-readable description of what went wrong.
        hint: Optional suggestion for how to fix the error.
    """

    def __init__(self, code: ErrorCode, message: str, hint: str = '') -> None:
        """Initialize with an error code, message, and optional hint."""
        self.info = ErrorInfo(code=code, message=message, hint=hint)
        super().__init__(f'[{code.value}] {message}')

    @property
    def code(self) -> ErrorCode:
        """The error code."""
        return self.info.code

    @property
    def hint(self) -> str:
        """Suggestion for fixing this error, or empty string."""
        return self.info.hint


ERRORS: dict[ErrorCode, ErrorInfo] = {
    E.METADATA_MISSING_PACKAGE: ErrorInfo(
        code=E.METADATA_MISSING_PACKAGE,
        message='A resolved dependency id is not present in the package list.',
        hint='The cargo metadata snapshot is incomplete; the upstream tree layout likely changed.',
    ),
    E.METADATA_ROOT_NOT_FOUND: ErrorInfo(
        code=E.METADATA_ROOT_NOT_FOUND,
        message='A configured target crate was not found in the cargo metadata.',
        hint="Check the 'targets' entries in autopublish.toml against the upstream tree.",
    ),
    E.MANIFEST_PARSE_ERROR: ErrorInfo(
        code=E.MANIFEST_PARSE_ERROR,
        message='A Cargo.toml could not be parsed.',
        hint='The manifest on disk is not valid TOML.',
    ),
    E.REGISTRY_STATUS: ErrorInfo(
        code=E.REGISTRY_STATUS,
        message='crates.io returned an unexpected HTTP status.',
        hint='Only 200 and 404 are accepted; re-run once the registry is healthy.',
    ),
    E.PUBLISH_FAILED: ErrorInfo(
        code=E.PUBLISH_FAILED,
        message='cargo publish failed.',
        hint='Packages before the failing one are already published. Re-running republishes everything.',
    ),
}


def explain(code: str) -> str | None:
    """Look up ``code`` in the catalog.

    Returns:
        ``None`` for a string that is not an ``AP-*`` code, a stock line
        for a code without a catalog entry, otherwise the catalog
        message followed by its hint.
    """
    try:
        info = ERRORS.get(ErrorCode(code))
    except ValueError:
        return None
    if info is None:
        return f'{code}: No detailed explanation available.'
    text = f'{code}: {info.message}'
    return f'{text}\n  Hint: {info.hint}' if info.hint else text


def render_error(exc: AutoPublishError, *, file: TextIO | None = None) -> None:
    """Print ``exc`` the way rustc prints a diagnostic.

    ::

        error[AP-PUBLISH-FAILED]: Failed to publish rustc-ap-rustc_ast 3.0.0 (exit 101)
          |
          = hint: error: crate version `3.0.0` is already uploaded

    Colours are used only when ``file`` (default stderr) is a terminal.
    """
    out = file or sys.stderr
    headline = f'error[{exc.code.value}]: {exc.info.message}'

    if not out.isatty():
        trailer = f'\n  |\n  = hint: {exc.hint}' if exc.hint else ''
        out.write(f'{headline}{trailer}\n\n')
        return

    console = Console(file=out, highlight=False)
    console.print(
        f'[bold red]error\\[{exc.code.value}][/bold red][bold]: {rich_escape(exc.info.message)}[/bold]',
    )
    if exc.hint:
        console.print('  [dim]|[/dim]')
        console.print(f'  [dim]=[/dim] [cyan]hint[/cyan]: {rich_escape(exc.hint)}')
    console.print()


__all__ = [
    'E',
    'ERRORS',
    'AutoPublishError',
    'ErrorCode',
    'ErrorInfo',
    'explain',
    'render_error',
]
