"""structlog setup for the command line.

Events from every ``routescan.*`` logger go through one stderr handler, so
``routescan scan --json`` keeps stdout for results.
"""

from __future__ import annotations

import logging
import os
import sys

import structlog

LEVEL_ENV = "ROUTESCAN_LOG_LEVEL"
FORMAT_ENV = "ROUTESCAN_LOG_FORMAT"

_HANDLER_NAME = "routescan-stderr"


class _StderrHandler(logging.StreamHandler):
    """Writes to whatever `sys.stderr` is when a record is emitted."""

    @property
    def stream(self):
        return sys.stderr

    @stream.setter
    def stream(self, value):
        pass


def _renderer(log_format: str) -> structlog.types.Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer(sort_keys=True)
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def setup_logging(level: str | None = None) -> None:
    """Route structlog events to stderr.

    ``level`` wins over ``ROUTESCAN_LOG_LEVEL`` (default INFO);
    ``ROUTESCAN_LOG_FORMAT`` picks ``console`` or ``json``. Calling this
    again replaces the previous handler.
    """
    log_level = (level or os.environ.get(LEVEL_ENV, "INFO")).upper()
    log_format = os.environ.get(FORMAT_ENV, "console").lower()

    pre_chain: list[structlog.types.Processor] = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
    ]
    if log_format == "json":
        pre_chain.append(structlog.processors.TimeStamper(fmt="iso", utc=True))
    pre_chain.append(structlog.processors.format_exc_info)

    structlog.configure(
        processors=pre_chain + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    handler = _StderrHandler()
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(log_format),
            ],
        )
    )

    logger = logging.getLogger("routescan")
    for existing in list(logger.handlers):
        if existing.get_name() == _HANDLER_NAME:
            logger.removeHandler(existing)
    logger.addHandler(handler)
    logger.setLevel(log_level)
    logger.propagate = False
    # lark logs grammar-building chatter at DEBUG.
    logging.getLogger("lark").setLevel(logging.WARNING)
