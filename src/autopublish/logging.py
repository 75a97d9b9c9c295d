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

"""Structured logging for autopublish.

Events are snake_case names with key-value context, rendered by
`structlog <https://www.structlog.org/>`_ either as console lines or as
JSON objects. Everything goes to stderr; stdout is reserved for the
``plan`` listing.

A publish run binds its upstream commit and chosen version once with
:func:`bind_run_context`, so every later event carries them without each
call site repeating them.

Usage::

    from autopublish.logging import bind_run_context, configure_logging, get_logger

    configure_logging(verbose=True)
    bind_run_context(commit='a1b2c3d')
    log = get_logger(__name__)
    log.info('publishing', crate='rustc_ast', version='3.0.0')
"""

from __future__ import annotations

import logging
import sys

import structlog


def _level(*, verbose: bool, quiet: bool) -> int:
    if quiet:
        return logging.WARNING
    return logging.DEBUG if verbose else logging.INFO


def configure_logging(
    *,
    verbose: bool = False,
    quiet: bool = False,
    json_log: bool = False,
) -> None:
    """Route structlog events through stdlib logging to stderr.

    Args:
        verbose: Show debug events.
        quiet: Show only warnings and errors. Wins over ``verbose``.
        json_log: One JSON object per line instead of console output.
    """
    structlog.contextvars.clear_contextvars()

    pre_chain: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt='iso', utc=True),
    ]
    if json_log:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer(sort_keys=True)
        pre_chain.append(structlog.processors.format_exc_info)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty(), pad_event=28)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )
    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(_level(verbose=verbose, quiet=quiet))

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def bind_run_context(**values: str) -> None:
    """Attach ``values`` to every event logged for the rest of the run."""
    structlog.contextvars.bind_contextvars(**values)


def get_logger(name: str = 'autopublish') -> structlog.stdlib.BoundLogger:
    """Return a structlog logger named ``name``."""
    return structlog.get_logger(name)


__all__ = [
    'bind_run_context',
    'configure_logging',
    'get_logger',
]
