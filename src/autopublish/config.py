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

"""Configuration loading for autopublish.

Reads an optional ``autopublish.toml`` from the config root. Every key
has a default, so a missing file publishes ``rustc_ast`` and
``rustc_parse`` from ``rust-lang/rust`` master as ``rustc-ap-*``.

Example ``autopublish.toml``::

    prefix = "rustc-ap"
    toolchain = "nightly"
    publish_delay = 10

    [[targets]]
    name = "rustc_ast"
    dir = "src/librustc_ast"

    [[targets]]
    name = "rustc_parse"
    dir = "src/librustc_parse"

Unknown keys are rejected with a "did you mean" hint, and every value is
type-checked before a :class:`PublishConfig` is built.
"""

from __future__ import annotations

import difflib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import tomlkit
import tomlkit.exceptions

from autopublish.errors import AutoPublishError, E
from autopublish.logging import get_logger
from autopublish.manifest import ManifestIdentity

logger = get_logger(__name__)

CONFIG_FILENAME = 'autopublish.toml'


@dataclass(frozen=True)
class Target:
    """A crate to publish and the directory ``cargo metadata`` runs in.

    Attributes:
        name: Crate name as it appears in the metadata.
        dir: Crate directory relative to the source tree root.
    """

    name: str
    dir: str


def _default_targets() -> list[Target]:
    return [
        Target(name='rustc_ast', dir='src/librustc_ast'),
        Target(name='rustc_parse', dir='src/librustc_parse'),
    ]


@dataclass
class PublishConfig:
    """Validated settings for a publish run.

    Attributes:
        prefix: Prefix for every published crate name.
        license: License stamped into every manifest.
        repository: Repository URL stamped into every manifest.
        publisher_repository: URL of this tool, named in descriptions.
        upstream: GitHub ``owner/repo`` the sources come from.
        branch: Upstream branch whose head is published.
        toolchain: rustup toolchain for cargo (empty for the default).
        feature: Feature flag injected into each crate's entry point.
        registry_url: Base URL of the crates.io API.
        publish_delay: Seconds to wait between consecutive publishes.
        http_timeout: HTTP timeout in seconds.
        targets: Root crates, in publish-set order.
        config_path: Where the config was loaded from, if anywhere.
    """

    prefix: str = 'rustc-ap'
    license: str = 'MIT / Apache-2.0'
    repository: str = 'https://github.com/rust-lang/rust'
    publisher_repository: str = 'https://github.com/alexcrichton/rustc-auto-publish'
    upstream: str = 'rust-lang/rust'
    branch: str = 'master'
    toolchain: str = 'nightly'
    feature: str = 'rustc_private'
    registry_url: str = 'https://crates.io'
    publish_delay: float = 10.0
    http_timeout: float = 30.0
    targets: list[Target] = field(default_factory=_default_targets)
    config_path: Path | None = None

    @property
    def identity(self) -> ManifestIdentity:
        """Manifest identity strings derived from this config."""
        return ManifestIdentity(
            prefix=self.prefix,
            license=self.license,
            repository=self.repository,
            upstream=self.upstream,
            publisher_repository=self.publisher_repository,
        )


_NUMBER = (int, float)

_TYPE_MAP: dict[str, type | tuple[type, ...]] = {
    'prefix': str,
    'license': str,
    'repository': str,
    'publisher_repository': str,
    'upstream': str,
    'branch': str,
    'toolchain': str,
    'feature': str,
    'registry_url': str,
    'publish_delay': _NUMBER,
    'http_timeout': _NUMBER,
    'targets': list,
}

VALID_KEYS: frozenset[str] = frozenset(_TYPE_MAP)
VALID_TARGET_KEYS: frozenset[str] = frozenset({'name', 'dir'})


def _suggest_key(unknown: str, valid: frozenset[str]) -> str | None:
    """Return the closest valid key for a typo, or None."""
    matches = difflib.get_close_matches(unknown, valid, n=1, cutoff=0.6)
    return matches[0] if matches else None


def _validate_value_type(key: str, value: Any) -> None:  # noqa: ANN401 - dynamic config values
    """Raise if a config value has the wrong type."""
    expected = _TYPE_MAP[key]
    # bool is an int subclass but never a valid number here.
    if isinstance(value, bool) or not isinstance(value, expected):
        type_name = expected.__name__ if isinstance(expected, type) else 'number'
        raise AutoPublishError(
            code=E.CONFIG_INVALID_VALUE,
            message=f"'{key}' must be {type_name}, got {type(value).__name__}",
            hint=f'Check the value of {key} in {CONFIG_FILENAME}.',
        )


def _parse_targets(items: list[Any]) -> list[Target]:  # noqa: ANN401 - dynamic config values
    if not items:
        raise AutoPublishError(
            code=E.CONFIG_INVALID_VALUE,
            message="'targets' must name at least one crate",
            hint=f'Remove targets from {CONFIG_FILENAME} to use the defaults.',
        )
    targets: list[Target] = []
    for i, item in enumerate(items):
        context = f'targets[{i}]'
        if not isinstance(item, dict):
            raise AutoPublishError(
                code=E.CONFIG_INVALID_VALUE,
                message=f'{context} must be a table, got {type(item).__name__}',
                hint='Use [[targets]] sections with name and dir keys.',
            )
        for key in item:
            if key not in VALID_TARGET_KEYS:
                suggestion = _suggest_key(key, VALID_TARGET_KEYS)
                raise AutoPublishError(
                    code=E.CONFIG_INVALID_KEY,
                    message=f"Unknown key '{key}' in {context}",
                    hint=f"Did you mean '{suggestion}'?" if suggestion else 'Targets take only name and dir.',
                )
        for key in ('name', 'dir'):
            value = item.get(key)
            if not isinstance(value, str) or not value:
                raise AutoPublishError(
                    code=E.CONFIG_INVALID_VALUE,
                    message=f"{context}.{key} must be a non-empty string",
                    hint=f'Check the [[targets]] entries in {CONFIG_FILENAME}.',
                )
        targets.append(Target(name=item['name'], dir=item['dir']))
    return targets


def load_config(root: Path) -> PublishConfig:
    """Load and validate configuration from ``autopublish.toml``.

    Args:
        root: Directory containing ``autopublish.toml``.

    Returns:
        A validated :class:`PublishConfig`. Defaults if the file is absent.

    Raises:
        AutoPublishError: If the file cannot be parsed or holds invalid
            config.
    """
    config_path = root / CONFIG_FILENAME

    if not config_path.is_file():
        logger.debug('no_autopublish_config', path=str(config_path))
        return PublishConfig()

    try:
        text = config_path.read_text(encoding='utf-8')
    except OSError as exc:
        raise AutoPublishError(
            code=E.IO_READ_FAILED,
            message=f'Failed to read {config_path}: {exc}',
        ) from exc

    try:
        doc = tomlkit.parse(text)
    except tomlkit.exceptions.TOMLKitError as exc:
        raise AutoPublishError(
            code=E.CONFIG_PARSE_ERROR,
            message=f'Failed to parse {config_path}: {exc}',
        ) from exc

    raw: dict[str, Any] = doc.unwrap()  # noqa: ANN401

    for key in raw:
        if key not in VALID_KEYS:
            suggestion = _suggest_key(key, VALID_KEYS)
            raise AutoPublishError(
                code=E.CONFIG_INVALID_KEY,
                message=f"Unknown key '{key}' in {CONFIG_FILENAME}",
                hint=f"Did you mean '{suggestion}'?" if suggestion else f'Valid keys: {", ".join(sorted(VALID_KEYS))}.',
            )

    for key, value in raw.items():
        _validate_value_type(key, value)

    if raw.get('publish_delay', 0) < 0:
        raise AutoPublishError(
            code=E.CONFIG_INVALID_VALUE,
            message=f"'publish_delay' must be >= 0, got {raw['publish_delay']}",
        )
    if raw.get('http_timeout', 1) <= 0:
        raise AutoPublishError(
            code=E.CONFIG_INVALID_VALUE,
            message=f"'http_timeout' must be > 0, got {raw['http_timeout']}",
        )

    kwargs: dict[str, Any] = dict(raw)  # noqa: ANN401
    if 'targets' in kwargs:
        kwargs['targets'] = _parse_targets(kwargs['targets'])
    for key in ('publish_delay', 'http_timeout'):
        if key in kwargs:
            kwargs[key] = float(kwargs[key])

    logger.debug('config_loaded', path=str(config_path), keys=sorted(raw))
    return PublishConfig(**kwargs, config_path=config_path)


__all__ = [
    'CONFIG_FILENAME',
    'PublishConfig',
    'Target',
    'VALID_KEYS',
    'load_config',
]
