"""Logging setup shared by the API process and scripts."""

import logging
from typing import Optional

LOGGER_NAME = "vitalwatch"


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> logging.Logger:
    """Setup logging configuration.

    Module loggers are created with `logging.getLogger(__name__)`; the
    handlers installed here sit on the root logger so they see them all,
    while the returned `vitalwatch` logger is used for process-level
    messages.

    Args:
        level: Logging level.
        log_file: Optional log file path.

    Returns:
        Configured logger.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper()))

    # Remove existing handlers
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    root.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    return logging.getLogger(LOGGER_NAME)
