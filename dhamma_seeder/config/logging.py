"""
Logging configuration for the Dhamma seeder.

Sets up structured logging with console output and optional file output.
"""

import os
import datetime
import logging
import structlog
from rich.console import Console
from rich.logging import RichHandler
from logging import FileHandler
from typing import Any, Optional, Tuple

# Initialize console for rich output
console = Console()


def setup_logging(log_dir: Optional[str] = None, verbose: bool = False) -> Tuple[Any, Optional[str]]:
    """
    Setup logging for console and, optionally, a per-run log file.

    Args:
        log_dir: Directory for the run log file; no file logging when None
        verbose: Log at DEBUG instead of INFO

    Returns:
        Tuple containing:
            - logger: The configured logger
            - log_file: Path to the log file, or None
    """
    level = logging.DEBUG if verbose else logging.INFO

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S.%f", utc=False),
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(min_level=level),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=structlog.dev.ConsoleRenderer(colors=False),
    )

    std_root_logger = logging.getLogger()
    # Repeated calls (tests, nested commands) must not stack handlers
    for handler in list(std_root_logger.handlers):
        if getattr(handler, "_dhamma_seeder", False):
            std_root_logger.removeHandler(handler)
            handler.close()

    rich_console_handler = RichHandler(console=console, rich_tracebacks=True, markup=False, show_path=False)
    rich_console_handler.setFormatter(formatter)
    rich_console_handler.setLevel(level)
    rich_console_handler._dhamma_seeder = True
    std_root_logger.addHandler(rich_console_handler)

    log_file = None
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        timestamp = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = os.path.join(log_dir, f"seed_{timestamp}.log")

        file_log_handler = FileHandler(log_file, mode="w", encoding="utf-8")
        file_log_handler.setFormatter(formatter)
        file_log_handler.setLevel(level)
        file_log_handler._dhamma_seeder = True
        std_root_logger.addHandler(file_log_handler)

    std_root_logger.setLevel(level)

    # Third-party HTTP clients are noisy at INFO
    for noisy in ("httpx", "httpcore", "hpack", "urllib3"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logger = structlog.get_logger(__name__)
    logger.debug("Logging configured", log_file=log_file)

    return logger, log_file
