"""Log output for the formroute command line.

Library modules only create stdlib loggers. configure_logging attaches one
stderr handler to the "formroute" logger whose records are rendered by
structlog, either for a terminal or as JSON lines.
"""

from __future__ import annotations

import logging
import sys

import structlog

PACKAGE_LOGGER = "formroute"


def _renderer(log_json: bool) -> structlog.types.Processor:
    if log_json:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def build_formatter(log_json: bool = False) -> structlog.stdlib.ProcessorFormatter:
    """Formatter turning stdlib records into structlog events."""
    pre_chain: list[structlog.types.Processor] = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if log_json:
        pre_chain.append(structlog.processors.format_exc_info)
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=pre_chain,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _renderer(log_json),
        ],
    )


def configure_logging(*, verbose: bool = False, log_json: bool = False) -> None:
    """Send formroute records to stderr at DEBUG (verbose) or WARNING.

    Calling it again replaces the handler installed by the previous call.
    The root logger is left alone.
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(build_formatter(log_json))

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.handlers.clear()
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.propagate = False
