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

"""Builders for small resolved graphs."""

from __future__ import annotations

from pathlib import Path

from autopublish.metadata import Package, ResolvedGraph

REGISTRY_SOURCE = 'registry+https://github.com/rust-lang/crates.io-index'


def pkg_id(name: str, version: str = '0.0.0') -> str:
    """Return a cargo-style package id for a local crate."""
    return f'{name} {version} (path+file:///src/{name})'


def make_graph(
    edges: dict[str, list[str]],
    *,
    external: set[str] | None = None,
    root: Path = Path('/src'),
) -> ResolvedGraph:
    """Build a graph where every name is one package and edges lists its deps.

    Names in external get a registry source; the rest are local.
    Every name mentioned anywhere gets a package and a resolve node.
    """
    external = external or set()
    names: list[str] = []
    for name, deps in edges.items():
        for n in (name, *deps):
            if n not in names:
                names.append(n)

    graph = ResolvedGraph()
    for name in names:
        graph.packages[pkg_id(name)] = Package(
            id=pkg_id(name),
            name=name,
            manifest_path=root / name / 'Cargo.toml',
            source=REGISTRY_SOURCE if name in external else None,
            version='0.0.0',
        )
        graph.resolution[pkg_id(name)] = [pkg_id(d) for d in edges.get(name, [])]
    return graph
