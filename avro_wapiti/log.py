"""structlog setup for the codec and its command-line tool"""
import logging
import sys

import structlog


def configure_logging(level: str = 'INFO', json: bool = False) -> None:
    """Configure structlog for the current process

    Library code only calls ``structlog.get_logger``; the host (or the CLI)
    decides how records are rendered by calling this once at startup.

    Args:
        level: Minimum level name (DEBUG, INFO, WARNING, ERROR).
        json: Render one JSON object per line instead of console output.
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level}")

    renderer = structlog.processors.JSONRenderer() if json else structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt='iso', utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        # resolve sys.stderr per logger so redirected streams are honored
        logger_factory=lambda *args: structlog.PrintLogger(file=sys.stderr),
        cache_logger_on_first_use=False,
    )
