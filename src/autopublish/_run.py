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

"""Running cargo.

The tool shells out for exactly two things, ``cargo metadata`` and
``cargo publish``, both pinned to a rustup toolchain with ``+<name>``.
:func:`run_command` is synchronous; async callers dispatch it with
``asyncio.to_thread``. A non-zero exit is returned, not raised, so each
caller can attach its own error code. A timeout is always fatal.
"""

from __future__ import annotations

import subprocess  # noqa: S404 - subprocess is the core purpose of this module
import time
from dataclasses import dataclass
from pathlib import Path

from autopublish.errors import AutoPublishError, E
from autopublish.logging import get_logger

log = get_logger('autopublish.run')

# cargo metadata on the full rustc tree can take a while on a cold cache.
DEFAULT_TIMEOUT_SECONDS = 600

# How much of stderr is kept in error hints.
_STDERR_TAIL = 500


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one cargo invocation.

    Attributes:
        command: argv that was run.
        return_code: Process exit code.
        stdout: Captured standard output.
        stderr: Captured standard error.
        duration: Wall-clock time in milliseconds.
        cwd: Directory the command ran in.
    """

    command: list[str]
    return_code: int
    stdout: str = ''
    stderr: str = ''
    duration: float = 0.0
    cwd: Path | None = None

    @property
    def ok(self) -> bool:
        """Whether the command exited with status 0."""
        return self.return_code == 0

    @property
    def command_str(self) -> str:
        """The argv joined with spaces, for messages."""
        return ' '.join(self.command)

    @property
    def stderr_tail(self) -> str:
        """The last few hundred characters of stderr, stripped."""
        return self.stderr.strip()[-_STDERR_TAIL:]


def cargo_command(toolchain: str, *args: str) -> list[str]:
    """Build a ``cargo`` argv, pinning ``+<toolchain>`` when one is set."""
    cmd = ['cargo']
    if toolchain:
        cmd.append(f'+{toolchain}')
    cmd.extend(args)
    return cmd


def run_command(
    cmd: list[str],
    *,
    cwd: Path | None = None,
    timeout: int = DEFAULT_TIMEOUT_SECONDS,
) -> CommandResult:
    """Run ``cmd`` with captured output.

    Raises:
        AutoPublishError: If the command runs longer than ``timeout``
            seconds or cannot be started at all.
    """
    cmd_str = ' '.join(cmd)
    log.debug('run_command', cmd=cmd_str, cwd=str(cwd or '.'))

    start = time.monotonic()
    try:
        proc = subprocess.run(  # noqa: S603 -- argv built from config, never a shell string
            cmd,
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as exc:
        raise AutoPublishError(
            code=E.COMMAND_TIMEOUT,
            message=f'{cmd_str} did not finish within {timeout}s',
            hint=f'Ran in {cwd or "."}.',
        ) from exc
    except OSError as exc:
        raise AutoPublishError(
            code=E.COMMAND_NOT_FOUND,
            message=f'Could not run {cmd[0]}: {exc}',
            hint='Is cargo installed and on PATH?',
        ) from exc
    duration = (time.monotonic() - start) * 1000

    result = CommandResult(
        command=cmd,
        return_code=proc.returncode,
        stdout=proc.stdout,
        stderr=proc.stderr,
        duration=duration,
        cwd=cwd,
    )
    if result.ok:
        log.debug('command_ok', cmd=cmd_str, duration=duration)
    else:
        log.warning('command_failed', cmd=cmd_str, return_code=result.return_code, stderr=result.stderr_tail)
    return result


__all__ = [
    'CommandResult',
    'DEFAULT_TIMEOUT_SECONDS',
    'cargo_command',
    'run_command',
]
