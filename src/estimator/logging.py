"""Structured logging configuration using structlog.

Estimator modules log raw pip integers under keys ending in ``_pips``; the
``render_pip_amounts`` processor turns them into exchange-style decimal
strings so log lines read as prices and quantities.
"""

import logging

import structlog

from estimator.config import AppSettings
from estimator.pipmath import pip_to_string

_PIP_KEY_SUFFIX = "_pips"


def render_pip_amounts(
    logger: object, method_name: str, event_dict: structlog.types.EventDict
) -> structlog.types.EventDict:
    """Replace ``<name>_pips=<int>`` entries with ``<name>="<decimal>"``."""
    for key in [k for k in event_dict if k.endswith(_PIP_KEY_SUFFIX)]:
        value = event_dict.pop(key)
        name = key[: -len(_PIP_KEY_SUFFIX)]
        event_dict[name] = pip_to_string(value) if isinstance(value, int) else value
    return event_dict


def setup_logging(settings: AppSettings | None = None) -> None:
    """Configure structlog for console or JSON rendering.

    Args:
        settings: Application settings; ``log_level`` and ``log_format`` are
            read from it. Defaults to settings loaded from the environment.
    """
    settings = settings or AppSettings()

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        render_pip_amounts,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
    ]

    if settings.log_format == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger that emits through the stdlib logger ``name``.

    Events always end up in ``logging``, so an application that never calls
    ``setup_logging`` gets the stdlib defaults (warnings and up on stderr)
    instead of structlog printing every debug event to stdout.
    """
    return structlog.wrap_logger(logging.getLogger(name))
