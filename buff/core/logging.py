"""Structured logging via structlog.

Configured once by the CLI before any command runs. Library modules keep
using `logging.getLogger(__name__)`; the stdlib bridge routes them to the
same stream.

Renderer selection:
  debug=True  — `ConsoleRenderer` and DEBUG level for troubleshooting.
  debug=False — `JSONRenderer` and WARNING level so normal runs stay quiet.

Output goes to stderr; stdout is reserved for command results.
"""

from __future__ import annotations

import logging
import sys

import structlog


def configure_structlog(debug: bool = False) -> None:
    """Configure structlog for the lifetime of the process.

    Calling multiple times is safe; the last call wins.
    """
    level = logging.DEBUG if debug else logging.WARNING

    shared_processors: list = [
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if debug:
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.WriteLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )

    # Bridge stdlib logging so buff.* modules and grpc share the stream.
    logging.basicConfig(
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
        level=level,
        force=True,
    )
