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

"""Tests for autopublish.config module."""

from __future__ import annotations

from pathlib import Path

import pytest
from autopublish.config import CONFIG_FILENAME, PublishConfig, Target, load_config
from autopublish.errors import AutoPublishError, E
from autopublish.logging import configure_logging

configure_logging(quiet=True)


def _write(tmp_path: Path, text: str) -> Path:
    (tmp_path / CONFIG_FILENAME).write_text(text, encoding='utf-8')
    return tmp_path


class TestDefaults:
    """Tests for the built-in defaults."""

    def test_missing_file(self, tmp_path: Path) -> None:
        """No config file gives the defaults."""
        config = load_config(tmp_path)
        assert config == PublishConfig()
        assert config.config_path is None

    def test_default_values(self) -> None:
        """Defaults publish rustc_ast and rustc_parse as rustc-ap-*."""
        config = PublishConfig()
        assert config.prefix == 'rustc-ap'
        assert config.toolchain == 'nightly'
        assert config.publish_delay == 10.0
        assert config.targets == [
            Target(name='rustc_ast', dir='src/librustc_ast'),
            Target(name='rustc_parse', dir='src/librustc_parse'),
        ]

    def test_identity(self) -> None:
        """identity carries the manifest strings."""
        identity = PublishConfig(prefix='x', upstream='me/rust').identity
        assert identity.prefix == 'x'
        assert identity.upstream == 'me/rust'
        assert identity.license == 'MIT / Apache-2.0'


class TestLoadConfig:
    """Tests for load_config()."""

    def test_overrides(self, tmp_path: Path) -> None:
        """Values in the file replace defaults."""
        root = _write(
            tmp_path,
            'prefix = "my-ap"\npublish_delay = 0\ntoolchain = ""\n\n'
            '[[targets]]\nname = "rustc_span"\ndir = "compiler/rustc_span"\n',
        )
        config = load_config(root)
        assert config.prefix == 'my-ap'
        assert config.publish_delay == 0.0
        assert isinstance(config.publish_delay, float)
        assert config.toolchain == ''
        assert config.targets == [Target(name='rustc_span', dir='compiler/rustc_span')]
        assert config.config_path == root / CONFIG_FILENAME

    def test_empty_file(self, tmp_path: Path) -> None:
        """An empty file gives the defaults."""
        config = load_config(_write(tmp_path, ''))
        assert config.prefix == 'rustc-ap'

    def test_unknown_key_suggests(self, tmp_path: Path) -> None:
        """A typo gets a did-you-mean hint."""
        with pytest.raises(AutoPublishError) as exc_info:
            load_config(_write(tmp_path, 'prefx = "a"\n'))
        assert exc_info.value.code == E.CONFIG_INVALID_KEY
        assert "'prefix'" in exc_info.value.hint

    def test_wrong_type(self, tmp_path: Path) -> None:
        """Values are type-checked."""
        with pytest.raises(AutoPublishError) as exc_info:
            load_config(_write(tmp_path, 'prefix = 3\n'))
        assert exc_info.value.code == E.CONFIG_INVALID_VALUE

    def test_bool_is_not_a_number(self, tmp_path: Path) -> None:
        """publish_delay = true is rejected."""
        with pytest.raises(AutoPublishError) as exc_info:
            load_config(_write(tmp_path, 'publish_delay = true\n'))
        assert exc_info.value.code == E.CONFIG_INVALID_VALUE

    def test_negative_delay(self, tmp_path: Path) -> None:
        """A negative delay is rejected."""
        with pytest.raises(AutoPublishError) as exc_info:
            load_config(_write(tmp_path, 'publish_delay = -1\n'))
        assert exc_info.value.code == E.CONFIG_INVALID_VALUE

    def test_parse_error(self, tmp_path: Path) -> None:
        """Malformed TOML is reported."""
        with pytest.raises(AutoPublishError) as exc_info:
            load_config(_write(tmp_path, 'prefix = \n'))
        assert exc_info.value.code == E.CONFIG_PARSE_ERROR

    def test_target_missing_dir(self, tmp_path: Path) -> None:
        """Each target needs a non-empty dir."""
        with pytest.raises(AutoPublishError) as exc_info:
            load_config(_write(tmp_path, '[[targets]]\nname = "a"\ndir = ""\n'))
        assert exc_info.value.code == E.CONFIG_INVALID_VALUE
        assert 'targets[0].dir' in str(exc_info.value)

    def test_target_unknown_key(self, tmp_path: Path) -> None:
        """Targets only take name and dir."""
        with pytest.raises(AutoPublishError) as exc_info:
            load_config(_write(tmp_path, '[[targets]]\nname = "a"\ndirr = "b"\n'))
        assert exc_info.value.code == E.CONFIG_INVALID_KEY
        assert "'dir'" in exc_info.value.hint

    def test_empty_targets(self, tmp_path: Path) -> None:
        """An explicit empty target list is rejected."""
        with pytest.raises(AutoPublishError) as exc_info:
            load_config(_write(tmp_path, 'targets = []\n'))
        assert exc_info.value.code == E.CONFIG_INVALID_VALUE
