"""structlog setup for collector runs.

Every CLI invocation gets its own ``session_<id>.jsonl`` file; scan progress,
fetch outcomes and checkpoint writes all land there as one JSON object per
line, Cyrillic titles kept readable.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, cast

import structlog

DEFAULT_LOG_DIR = Path("logs")

# Libraries that log each request on their own; the clients already log outcomes
NOISY_LOGGERS = ("httpx", "httpcore", "hpack")


def _formatter(renderer: Any) -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ]
    )


def setup_logging(
    session_id: str | None = None,
    log_level: str = "INFO",
    console_output: bool = True,
    log_dir: Path | None = None,
) -> Path:
    """Route structlog through stdlib logging for one collector session.

    Args:
        session_id: Suffix of the session log file, a timestamp when omitted
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        console_output: Also render events to stderr (off with ``--quiet``)
        log_dir: Where session files go; the environment config supplies
            ``logs`` or ``test_data/logs``

    Returns:
        Path of the JSONL file this session writes to.
    """
    log_dir = log_dir or DEFAULT_LOG_DIR
    log_dir.mkdir(parents=True, exist_ok=True)
    session_id = session_id or datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = log_dir / f"session_{session_id}.jsonl"

    level = getattr(logging, log_level.upper(), logging.INFO)
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)

    handlers: list[logging.Handler] = [logging.FileHandler(log_file, mode="a", encoding="utf-8")]
    handlers[0].setFormatter(_formatter(structlog.processors.JSONRenderer(ensure_ascii=False)))
    if console_output:
        console = logging.StreamHandler()
        console.setFormatter(_formatter(structlog.dev.ConsoleRenderer()))
        handlers.append(console)
    for handler in handlers:
        handler.setLevel(level)
        root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    return log_file


def get_logger(name: str) -> structlog.BoundLogger:
    """Logger bound to a collector module, e.g. ``get_logger(__name__)``."""
    return cast(structlog.BoundLogger, structlog.get_logger(name))
