import logging
import sys
from pathlib import Path
from typing import Optional, Union

LOGGER_NAME = "httpsend"
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Library default: stay silent unless the application configures logging
logging.getLogger(LOGGER_NAME).addHandler(logging.NullHandler())


def level_for_verbosity(verbose: bool = False, quiet: bool = False) -> str:
    """Map the CLI verbosity flags to a logging level name."""
    if verbose:
        return "DEBUG"
    if quiet:
        return "ERROR"
    return "WARNING"


def setup_logging(
    level: str = "WARNING",
    log_file: Optional[Union[str, Path]] = None,
    format_string: Optional[str] = None,
    force: bool = False,
) -> logging.Logger:
    """
    Set up logging for the httpsend package.

    Console output goes to stderr so that response bodies printed on stdout
    stay clean when piped.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path receiving the same records
        format_string: Optional custom format string for log messages
        force: If True, replace handlers installed by an earlier call

    Returns:
        The configured "httpsend" logger
    """
    numeric_level = getattr(logging, level.upper(), logging.WARNING)
    formatter = logging.Formatter(format_string or DEFAULT_FORMAT)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(numeric_level)

    configured = [h for h in logger.handlers if not isinstance(h, logging.NullHandler)]
    if force or not configured:
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()

        handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
        if log_file:
            handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

        for handler in handlers:
            handler.setLevel(numeric_level)
            handler.setFormatter(formatter)
            logger.addHandler(handler)

    # Prevent propagation to root logger to avoid duplicate logs
    logger.propagate = False

    return logger
