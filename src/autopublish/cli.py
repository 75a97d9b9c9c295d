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

"""CLI entry point for autopublish.

Subcommands::

    autopublish publish   Fetch upstream, resolve, version and publish everything
    autopublish plan      Show the publish order and version for a local tree
    autopublish explain   Explain an error code

Usage::

    # Publish the latest rust-lang/rust master:
    GITHUB_TOKEN=... autopublish publish

    # Check the rewrite and packaging without uploading:
    autopublish publish --dry-run --workdir /tmp/rustc-src

    # Preview the plan for an already-extracted tree:
    autopublish plan --source-dir /tmp/rustc-src/rust-<sha>

    # Explain an error:
    autopublish explain AP-PUBLISH-FAILED
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
import tempfile
from pathlib import Path

from rich_argparse import RichHelpFormatter

from autopublish import __version__
from autopublish.closure import PublishSet, resolve_targets
from autopublish.config import PublishConfig, load_config
from autopublish.errors import AutoPublishError, explain, render_error
from autopublish.logging import bind_run_context, configure_logging, get_logger
from autopublish.metadata import Package, ResolvedGraph, load_metadata
from autopublish.publisher import publish_all
from autopublish.registry import CratesIoRegistry
from autopublish.source import UpstreamSource
from autopublish.versions import SemanticVersion, version_to_publish

logger = get_logger(__name__)


async def _resolve_plan(config: PublishConfig, tree: Path) -> tuple[PublishSet, SemanticVersion]:
    """Resolve the publish set for ``tree`` and pick the run version."""
    snapshots: list[tuple[ResolvedGraph, Package]] = []
    for target in config.targets:
        graph = await load_metadata(tree / target.dir, toolchain=config.toolchain)
        snapshots.append((graph, graph.find(target.name)))

    publish_set = resolve_targets(snapshots)
    registry = CratesIoRegistry(base_url=config.registry_url, timeout=config.http_timeout)
    version = await version_to_publish(publish_set, registry, prefix=config.prefix)
    return publish_set, version


async def _publish_tree(config: PublishConfig, source: UpstreamSource, commit: str, workdir: Path, *, dry_run: bool) -> int:
    tree = await source.download(commit, workdir)
    publish_set, version = await _resolve_plan(config, tree)
    bind_run_context(version=str(version))
    print(f'going to publish {version}')  # noqa: T201 - CLI output
    await publish_all(
        publish_set.packages,
        version,
        commit,
        identity=config.identity,
        toolchain=config.toolchain,
        feature=config.feature,
        publish_delay=config.publish_delay,
        dry_run=dry_run,
    )
    return 0


async def _cmd_publish(args: argparse.Namespace) -> int:
    """Handle the ``publish`` subcommand."""
    config = load_config(args.config_root)
    source = UpstreamSource(config.upstream, branch=config.branch, timeout=config.http_timeout)
    commit = await source.latest_commit(args.token or None)
    bind_run_context(commit=commit)
    print(f'latest commit: {commit}')  # noqa: T201 - CLI output

    if args.workdir is not None:
        return await _publish_tree(config, source, commit, args.workdir, dry_run=args.dry_run)
    with tempfile.TemporaryDirectory(prefix='autopublish-') as tmp:
        return await _publish_tree(config, source, commit, Path(tmp), dry_run=args.dry_run)


async def _cmd_plan(args: argparse.Namespace) -> int:
    """Handle the ``plan`` subcommand."""
    config = load_config(args.config_root)
    publish_set, version = await _resolve_plan(config, args.source_dir)

    header = f'version {version}'
    if args.commit:
        header += f' from commit {args.commit}'
    print(header)  # noqa: T201 - CLI output
    identity = config.identity
    width = max((len(identity.crate_name(p.name)) for p in publish_set), default=0)
    for i, pkg in enumerate(publish_set, start=1):
        print(f'{i:>3}. {identity.crate_name(pkg.name):<{width}}  {pkg.crate_dir}')  # noqa: T201 - CLI output
    return 0


def _cmd_explain(args: argparse.Namespace) -> int:
    """Handle the ``explain`` subcommand."""
    result = explain(args.code)
    if result is None:
        print(f'Unknown error code: {args.code}')  # noqa: T201 - CLI output
        return 1
    print(result)  # noqa: T201 - CLI output
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser.

    Returns:
        Configured :class:`argparse.ArgumentParser`.
    """
    RichHelpFormatter.styles['argparse.groups'] = 'bold yellow'
    parser = argparse.ArgumentParser(
        prog='autopublish',
        description='Republish rustc crates to crates.io under a prefixed name.',
        formatter_class=RichHelpFormatter,
    )
    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}',
    )
    parser.add_argument(
        '--config-root',
        type=Path,
        default=Path.cwd(),
        metavar='DIR',
        help='Directory containing autopublish.toml (default: current directory).',
    )
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable debug logging.')
    parser.add_argument('--quiet', '-q', action='store_true', help='Only log warnings and errors.')
    parser.add_argument('--json-log', action='store_true', help='Emit logs as JSON lines.')

    subparsers = parser.add_subparsers(dest='command')

    publish_parser = subparsers.add_parser(
        'publish',
        help='Download the latest upstream commit and publish every crate.',
        formatter_class=RichHelpFormatter,
    )
    publish_parser.add_argument(
        '--token',
        default=os.environ.get('GITHUB_TOKEN'),
        help='GitHub token for the commit lookup (default: $GITHUB_TOKEN).',
    )
    publish_parser.add_argument(
        '--workdir',
        type=Path,
        default=None,
        metavar='DIR',
        help='Where to extract the source tree. Reused if already extracted (default: a temporary directory).',
    )
    publish_parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Pass --dry-run to cargo publish and skip the index delay.',
    )

    plan_parser = subparsers.add_parser(
        'plan',
        help='Show the publish order and version for an extracted tree.',
        formatter_class=RichHelpFormatter,
    )
    plan_parser.add_argument(
        '--source-dir',
        type=Path,
        required=True,
        metavar='DIR',
        help='Root of an already-extracted upstream tree.',
    )
    plan_parser.add_argument(
        '--commit',
        default=None,
        metavar='SHA',
        help='Upstream commit the tree was taken from, for display.',
    )

    explain_parser = subparsers.add_parser(
        'explain',
        help='Explain an error code.',
        formatter_class=RichHelpFormatter,
    )
    explain_parser.add_argument('code', help='Error code, e.g. AP-PUBLISH-FAILED.')

    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(verbose=args.verbose, quiet=args.quiet, json_log=args.json_log)

    try:
        command = args.command
        if command == 'publish':
            return asyncio.run(_cmd_publish(args))
        if command == 'plan':
            return asyncio.run(_cmd_plan(args))
        if command == 'explain':
            return _cmd_explain(args)

        parser.print_help()  # noqa: T201 - CLI output
        print(  # noqa: T201 - CLI output
            f'\n{parser.prog}: error: please provide a command',
            file=sys.stderr,
        )
        return 2

    except AutoPublishError as exc:
        render_error(exc)
        return 1
    except KeyboardInterrupt:
        logger.info('interrupted')
        return 130


def _main() -> None:
    """Wrapper for pyproject.toml [project.scripts] entry point."""
    sys.exit(main())


__all__ = [
    'build_parser',
    'main',
]
