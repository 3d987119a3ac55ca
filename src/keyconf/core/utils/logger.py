# keyconf/core/utils/logger.py

"""
Logging for keyconf.

Every engine module logs through the one ``keyconf`` logger configured here,
so the command-line front end decides in a single place how much is shown.

Records always go to stderr. Stdout carries the colon separated records of
the list operations and is read by other programs.

Messages use the form ``[COMPONENT] message | Context: key=value, ...``
where COMPONENT is the component (or engine area) the message is about.
"""

import logging
import sys
from pathlib import Path
from typing import Any

_logger: logging.Logger | None = None

LOGGER_NAME = "keyconf"
DEFAULT_LOG_LEVEL = "WARNING"
DEFAULT_LOG_FORMAT = "keyconf: %(levelname)s: %(message)s"

_VERBOSITY_LEVELS = ("WARNING", "INFO", "DEBUG")


def _drop_handlers(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


def setup_logging(
    level: str = DEFAULT_LOG_LEVEL,
    log_file: str | None = None,
    format_string: str | None = None,
) -> logging.Logger:
    """
    Configure the ``keyconf`` logger.

    Args:
        level: Level name; records below it are discarded everywhere
        log_file: Optional file that receives a copy of every record
        format_string: Replaces ``DEFAULT_LOG_FORMAT``

    The CLI calls this once the verbosity flags are known. Calling it again
    discards the handlers installed by the previous call.
    """
    global _logger

    numeric = logging.getLevelName(level.upper())
    formatter = logging.Formatter(format_string or DEFAULT_LOG_FORMAT)

    logger = logging.getLogger(LOGGER_NAME)
    _drop_handlers(logger)
    logger.disabled = False
    logger.propagate = False
    logger.setLevel(numeric)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    for handler in handlers:
        handler.setLevel(numeric)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    _logger = logger
    return logger


def get_logger() -> logging.Logger:
    """The ``keyconf`` logger, configured with defaults on first use."""
    return _logger if _logger is not None else setup_logging()


def level_for_verbosity(verbose: int, quiet: bool) -> str:
    """Map ``--quiet`` and the ``--verbose`` count to a level name."""
    if quiet:
        return "ERROR"
    return _VERBOSITY_LEVELS[min(max(verbose, 0), len(_VERBOSITY_LEVELS) - 1)]


def _emit(level: int, module: str, message: str, context: str = "", **kwargs: Any) -> None:
    text = f"[{module.upper()}] {message}"
    if context:
        text += f" | Context: {context}"
    get_logger().log(level, text, **kwargs)


def log_error(
    module: str, error: str, context: str = "", exception: Exception | None = None
) -> None:
    """Log an error; ``exception`` adds its traceback to the record."""
    _emit(logging.ERROR, module, error, context, exc_info=exception)


def log_warning(module: str, warning: str, context: str = "") -> None:
    _emit(logging.WARNING, module, warning, context)


def log_info(module: str, message: str, context: str = "") -> None:
    _emit(logging.INFO, module, message, context)


def log_debug(module: str, message: str, context: str = "") -> None:
    _emit(logging.DEBUG, module, message, context)


def log_option_change(component: str, option: str, old_value: Any, new_value: Any) -> None:
    """Record an in-memory option change before it is written."""
    get_logger().info(f"{component}: {option}: {old_value} -> {new_value}")


def log_config_write(path: Path | str, error: str | None = None) -> None:
    """Record the outcome of rewriting a config file."""
    if error is None:
        get_logger().info(f"wrote {path}")
    else:
        get_logger().error(f"writing {path} failed: {error}")


def reset_logging() -> None:
    """
    Forget the configured logger.

    Tests use this so each one starts from a logger bound to its own
    captured stderr.
    """
    global _logger
    _drop_handlers(logging.getLogger(LOGGER_NAME))
    _logger = None
