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

"""Tests for autopublish._run module."""

from __future__ import annotations

import dataclasses
from pathlib import Path

import pytest
from autopublish._run import CommandResult, cargo_command, run_command
from autopublish.errors import AutoPublishError, E
from autopublish.logging import configure_logging

configure_logging(quiet=True)


class TestCommandResult:
    """Tests for CommandResult dataclass."""

    def test_ok_on_zero_returncode(self) -> None:
        """Ok should be True when return_code is 0."""
        assert CommandResult(command=['echo'], return_code=0).ok is True

    def test_not_ok_on_nonzero_returncode(self) -> None:
        """Ok should be False when return_code is non-zero."""
        assert CommandResult(command=['false'], return_code=1).ok is False

    def test_command_str(self) -> None:
        """command_str should join command list with spaces."""
        result = CommandResult(command=['cargo', '+nightly', 'publish'], return_code=0)
        assert result.command_str == 'cargo +nightly publish'

    def test_frozen(self) -> None:
        """CommandResult should be immutable."""
        result = CommandResult(command=['echo'], return_code=0)
        with pytest.raises(dataclasses.FrozenInstanceError):
            result.__setattr__('return_code', 1)


class TestCargoCommand:
    """Tests for cargo_command()."""

    def test_with_toolchain(self) -> None:
        """A toolchain is pinned with +."""
        assert cargo_command('nightly', 'metadata') == ['cargo', '+nightly', 'metadata']

    def test_without_toolchain(self) -> None:
        """An empty toolchain is left out."""
        assert cargo_command('', 'publish', '--no-verify') == ['cargo', 'publish', '--no-verify']


class TestRunCommand:
    """Tests for run_command()."""

    def test_successful_command(self) -> None:
        """Should capture stdout from a successful command."""
        result = run_command(['echo', 'hello'])
        assert result.ok
        assert result.stdout.strip() == 'hello'
        assert result.duration > 0

    def test_failed_command(self) -> None:
        """A non-zero exit is returned, not raised."""
        result = run_command(['false'])
        assert not result.ok
        assert result.return_code != 0

    def test_cwd(self, tmp_path: Path) -> None:
        """Should execute in the specified working directory."""
        result = run_command(['pwd'], cwd=tmp_path)
        assert result.ok
        assert str(tmp_path) in result.stdout
        assert result.cwd == tmp_path

    def test_stderr_tail(self) -> None:
        """stderr_tail keeps only the end of long output."""
        result = CommandResult(command=['cargo'], return_code=1, stderr='x' * 1000 + 'END\n')
        assert result.stderr_tail.endswith('END')
        assert len(result.stderr_tail) == 500

    def test_timeout_is_fatal(self) -> None:
        """A command that runs too long raises a coded error."""
        with pytest.raises(AutoPublishError) as exc_info:
            run_command(['sleep', '10'], timeout=1)
        assert exc_info.value.code == E.COMMAND_TIMEOUT

    def test_missing_program(self) -> None:
        """A program that does not exist raises a coded error."""
        with pytest.raises(AutoPublishError) as exc_info:
            run_command(['definitely-not-a-real-cargo-binary'])
        assert exc_info.value.code == E.COMMAND_NOT_FOUND
