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

"""Source fixups that let compiler crates build outside the compiler tree.

Two textual edits on a crate's ``lib.rs``, each applied to the first
match only:

- the first ``#![feature(`` list gets the ``rustc_private`` flag
  prepended, since the published crates link against compiler internals;
- everything from ``__build_diagnostic_array! {`` onward is replaced by
  an empty function. That macro only expands inside the compiler build.

This is an upstream-specific workaround and nothing else depends on it.
"""

from __future__ import annotations

from pathlib import Path

from autopublish._io import read_file, write_file
from autopublish.logging import get_logger

log = get_logger('autopublish.patch')

_FEATURE_OPENER = '\n#![feature('
_DIAGNOSTIC_ARRAY = '__build_diagnostic_array! {'
_DIAGNOSTIC_STUB = 'fn _foo() {}\n'

ENTRY_POINTS: tuple[str, ...] = ('lib.rs', 'src/lib.rs')


def patch(text: str, *, feature: str = 'rustc_private') -> str:
    """Return ``text`` with the feature flag injected and the macro elided."""
    pos = text.find(_FEATURE_OPENER)
    if pos != -1:
        at = pos + len(_FEATURE_OPENER)
        flag = f'{feature}, '
        if not text.startswith(flag, at):
            text = text[:at] + flag + text[at:]

    pos = text.find(_DIAGNOSTIC_ARRAY)
    if pos != -1:
        text = text[:pos] + _DIAGNOSTIC_STUB
    return text


def find_entry_point(crate_dir: Path) -> Path | None:
    """Return the first existing library entry point under ``crate_dir``."""
    for rel in ENTRY_POINTS:
        candidate = crate_dir / rel
        if candidate.is_file():
            return candidate
    return None


async def patch_entry_point(crate_dir: Path, *, feature: str = 'rustc_private') -> bool:
    """Patch the crate's entry point in place.

    Returns:
        ``True`` if the file was rewritten.
    """
    entry = find_entry_point(crate_dir)
    if entry is None:
        log.debug('entry_point_missing', dir=str(crate_dir))
        return False

    original = await read_file(entry)
    patched = patch(original, feature=feature)
    if patched == original:
        return False
    await write_file(entry, patched)
    log.info('entry_point_patched', path=str(entry))
    return True


__all__ = [
    'ENTRY_POINTS',
    'find_entry_point',
    'patch',
    'patch_entry_point',
]
