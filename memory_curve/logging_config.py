import logging

import structlog

from memory_curve.config import settings


def configure_logging(level: str = None, json_output: bool = None) -> None:
    """Configure structlog on top of the standard logging module.

    Falls back to ``settings.log_level`` / ``settings.log_json`` when no
    explicit values are passed. Timestamps are ISO-8601 in UTC.
    """
    level_name = (level or settings.log_level).upper()
    use_json = settings.log_json if json_output is None else json_output

    level_value = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(level=level_value, format="%(message)s")
    # basicConfig is a no-op once the root logger has handlers
    logging.getLogger().setLevel(level_value)

    renderer = structlog.processors.JSONRenderer() if use_json else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
