"""
Logging setup

natstore logs through the stdlib ``logging`` module. Clients receive the
package logger by default and accept any ``logging.Logger`` instead.
"""

import logging
import sys
from typing import IO, Optional

from pythonjsonlogger import jsonlogger

LOGGER_NAME = "natstore"

TEXT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
JSON_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def get_default_logger() -> logging.Logger:
    """Logger used by clients that were not given one"""
    return logging.getLogger(LOGGER_NAME)


def configure_logging(level: int = logging.INFO,
                      json_output: bool = True,
                      stream: Optional[IO[str]] = None) -> logging.Logger:
    """Attach a handler to the package logger

    JSON output carries ``extra`` fields (``location``, ``error_type``, ...)
    as top-level keys.

    Args:
        level: Minimum level to emit
        json_output: JSON lines when True, plain text otherwise
        stream: Output stream, stdout by default

    Returns:
        logging.Logger: The configured package logger
    """
    log = get_default_logger()
    handler = logging.StreamHandler(stream or sys.stdout)
    if json_output:
        handler.setFormatter(jsonlogger.JsonFormatter(JSON_FORMAT))
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))

    # replace, never stack, on repeated calls
    log.handlers = [handler]
    log.setLevel(level)
    return log
