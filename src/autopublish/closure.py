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

"""Publish-order closure over local crates.

Starting from the target crates, walks the resolved graph depth-first
and collects every in-tree crate they need, dependencies first.

Key Concepts (ELI5)::

    ┌─────────────────────────┬─────────────────────────────────────────────┐
    │ Concept                 │ ELI5 Explanation                            │
    ├─────────────────────────┼─────────────────────────────────────────────┤
    │ Closure                 │ Everything the roots need from the tree,   │
    │                         │ and everything *that* needs, and so on.    │
    ├─────────────────────────┼─────────────────────────────────────────────┤
    │ Post-order              │ A crate is written down only after all of  │
    │                         │ its dependencies are. Foundations first.   │
    ├─────────────────────────┼─────────────────────────────────────────────┤
    │ Seen set                │ Names already entered. Entering a name     │
    │                         │ twice is skipped, which is what stops      │
    │                         │ cycles and diamonds from repeating.        │
    └─────────────────────────┴─────────────────────────────────────────────┘

Order for roots ``[A, B]`` where both need local ``C`` and ``C`` needs
the registry crate ``D``::

    A ──→ C ──→ D (registry, never entered)
    B ──→ C

    enter A → enter C → D skipped → emit C → emit A
    enter B → C already seen      → emit B

    PublishSet = [C, A, B]

Deduplication is keyed by crate *name*, not id. If two ids share a name,
whichever the traversal enters first is kept and the other is skipped.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field

from autopublish.logging import get_logger
from autopublish.metadata import Package, ResolvedGraph

log = get_logger('autopublish.closure')


@dataclass
class PublishSet:
    """Ordered, duplicate-free list of crates to publish.

    Attributes:
        packages: Crates in publish order (dependencies first).
        seen: Names already entered by the traversal. Passing it back
            into :func:`resolve` continues the same closure.
    """

    packages: list[Package] = field(default_factory=list)
    seen: set[str] = field(default_factory=set)
    _first_ids: dict[str, str] = field(default_factory=dict, init=False, repr=False)

    def __len__(self) -> int:
        """Return the number of crates to publish."""
        return len(self.packages)

    def __iter__(self) -> Iterator[Package]:
        """Iterate crates in publish order."""
        return iter(self.packages)

    def __getitem__(self, index: int) -> Package:
        """Return the crate at ``index`` in publish order."""
        return self.packages[index]

    @property
    def names(self) -> list[str]:
        """Crate names in publish order."""
        return [p.name for p in self.packages]


def _enter(graph: ResolvedGraph, pkg: Package, out: PublishSet) -> Iterator[Package] | None:
    """Mark ``pkg`` as seen and return its dependencies, or ``None`` if already seen."""
    if pkg.name in out.seen:
        first = out._first_ids.get(pkg.name)
        if first is not None and first != pkg.id:
            log.debug('duplicate_name_skipped', crate=pkg.name, id=pkg.id, kept=first)
        return None
    out.seen.add(pkg.name)
    out._first_ids[pkg.name] = pkg.id
    return iter(graph.dependencies_of(pkg))


def _walk(graph: ResolvedGraph, root: Package, out: PublishSet) -> None:
    """Depth-first post-order walk from ``root`` into local crates."""
    root_deps = _enter(graph, root, out)
    if root_deps is None:
        return
    stack: list[tuple[Package, Iterator[Package]]] = [(root, root_deps)]

    while stack:
        pkg, deps = stack[-1]
        for dep in deps:
            if not dep.is_local:
                continue
            dep_deps = _enter(graph, dep, out)
            if dep_deps is not None:
                stack.append((dep, dep_deps))
                break
        else:
            stack.pop()
            out.packages.append(pkg)


def resolve(
    graph: ResolvedGraph,
    roots: Sequence[Package],
    *,
    seen: set[str] | None = None,
) -> PublishSet:
    """Compute the dependency-first closure of ``roots``.

    Roots are walked in the order given. A later root whose dependencies
    were already emitted only contributes its own new crates, each placed
    before the root itself.

    Args:
        graph: The metadata snapshot the roots belong to.
        roots: Target crates, in caller order.
        seen: Names already visited by an earlier call. Updated in place.

    Returns:
        A :class:`PublishSet` holding only this call's new crates.

    Raises:
        AutoPublishError: If any visited crate references an id that is
            not in the snapshot.
    """
    out = PublishSet(seen=set() if seen is None else seen)
    for root in roots:
        _walk(graph, root, out)
    return out


def resolve_targets(snapshots: Iterable[tuple[ResolvedGraph, Package]]) -> PublishSet:
    """Fold :func:`resolve` over one ``(graph, root)`` pair per target.

    Each target crate is described by its own ``cargo metadata`` run, but
    all of them share one seen set so the result is a single global
    publish order.
    """
    total = PublishSet()
    for graph, root in snapshots:
        before = len(total)
        _walk(graph, root, total)
        log.debug('target_resolved', root=root.name, added=len(total) - before)

    log.info('publish_set_resolved', count=len(total), crates=total.names)
    return total


__all__ = [
    'PublishSet',
    'resolve',
    'resolve_targets',
]
