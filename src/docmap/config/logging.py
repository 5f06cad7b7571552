"""Route docmap's log output through structlog.

Storage modules log with ``logging.getLogger(__name__)`` and the query
trace with ``structlog.get_logger("docmap.diagnostics")``. Both end up on
one stderr handler, rendered either for a terminal or as JSON lines.
Driver chatter stays at WARNING whatever the docmap level is.
"""

from __future__ import annotations

import logging
import sys
from typing import IO, TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from docmap.config.settings import DocmapSettings

PACKAGE_LOGGER = "docmap"
QUIET_LOGGERS = ("pymongo",)


def _pre_chain() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _renderer(log_json: bool, stream: IO[str]) -> structlog.types.Processor:
    if log_json:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=stream.isatty())


def configure_logging(
    *,
    verbose: bool = False,
    log_json: bool = False,
    stream: IO[str] | None = None,
) -> None:
    """Install the structlog pipeline and a single root handler.

    Args:
        verbose: DEBUG for the ``docmap`` logger, which includes every
            recorded query. Otherwise WARNING.
        log_json: JSON lines instead of the console renderer.
        stream: Output stream; stderr when omitted.

    Safe to call repeatedly: the root handler is replaced, not stacked.
    """
    out = stream if stream is not None else sys.stderr
    pre_chain = _pre_chain()

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(out)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(log_json, out),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.WARNING)

    logging.getLogger(PACKAGE_LOGGER).setLevel(logging.DEBUG if verbose else logging.WARNING)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def configure_from_settings(settings: DocmapSettings, stream: IO[str] | None = None) -> None:
    """Apply the ``verbose`` and ``log_json`` flags of *settings*."""
    configure_logging(verbose=settings.verbose, log_json=settings.log_json, stream=stream)
