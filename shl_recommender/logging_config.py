"""
Logging setup for the recommender.

Library modules only ask for named loggers through :func:`get_logger`.
Entry points (API server, scripts, tools) call :func:`setup_logging` once;
importing the package never touches the root logger.
"""

import logging
import sys
from pathlib import Path
from typing import Iterable, List, Optional

DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Chatty third-party loggers capped at WARNING unless the app runs at DEBUG
NOISY_LOGGERS = ("httpx", "httpcore", "urllib3", "sentence_transformers", "google", "langgraph")


def _ensure_utf8_stdout() -> None:
    """Switch console streams to UTF-8 so the ✓/✗ markers in log lines survive cp1252 consoles."""
    for stream in (sys.stdout, sys.stderr):
        reconfigure = getattr(stream, "reconfigure", None)
        if not callable(reconfigure):
            continue
        try:
            reconfigure(encoding="utf-8")
        except (ValueError, OSError):
            # Detached or already wrapped stream; keep its encoding
            pass


def _build_handlers(log_file: Optional[str], formatter: logging.Formatter) -> List[logging.Handler]:
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path, encoding="utf-8"))
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    format_string: Optional[str] = None,
    quiet: Iterable[str] = NOISY_LOGGERS,
) -> None:
    """
    Configure the root logger.

    Replaces any existing root handlers with a stdout handler and, when
    ``log_file`` is given, a UTF-8 file handler. Unknown level names fall
    back to INFO.

    Args:
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        log_file: Optional log file; parent directories are created
        format_string: Defaults to ``DEFAULT_FORMAT``
        quiet: Logger names held at WARNING unless ``level`` is DEBUG

    Example:
        >>> from shl_recommender.logging_config import setup_logging
        >>> setup_logging(level="INFO", log_file="logs/api.log")
    """
    _ensure_utf8_stdout()

    numeric_level = getattr(logging, str(level).upper(), logging.INFO)
    formatter = logging.Formatter(format_string or DEFAULT_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()
    for handler in _build_handlers(log_file, formatter):
        handler.setLevel(numeric_level)
        root_logger.addHandler(handler)

    if numeric_level > logging.DEBUG:
        for name in quiet:
            logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))


def get_logger(name: str) -> logging.Logger:
    """Logger for a module, typically ``get_logger(__name__)``."""
    return logging.getLogger(name)
