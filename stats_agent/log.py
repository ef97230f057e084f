"""
Structured JSON logging for the stats agent.

Every record is a single JSON line so journald (or a tailing collector)
can parse agent and uvicorn output the same way.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Optional

ROOT_LOGGER = 'stats_agent'

# uvicorn configures these itself unless told otherwise
UVICORN_LOGGERS = ('uvicorn', 'uvicorn.error', 'uvicorn.access')


class JSONFormatter(logging.Formatter):
    """
    Formats log records as JSON objects.

    Output format:
    {
        "timestamp": "2026-02-08T20:30:00.123456Z",
        "level": "WARNING",
        "logger": "stats_agent.runner",
        "message": "Command failed",
        "thread": "collect_0",  # Omitted on the main thread
        "context": {...}  # Optional, from extra={'context': {...}}
    }
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            'timestamp': datetime.now(timezone.utc).strftime('%Y-%m-%dT%H:%M:%S.%fZ'),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }

        # Collection tasks run on the "collect_N" pool threads
        if record.threadName != 'MainThread':
            log_data['thread'] = record.threadName

        context = getattr(record, 'context', None)
        if context:
            log_data['context'] = context

        if record.exc_info:
            log_data['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
                'traceback': self.formatException(record.exc_info)
            }

        return json.dumps(log_data, default=str)


def _make_handler(handler: logging.Handler, level: int) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter())
    return handler


def setup_logging(level: str = 'INFO', log_file: Optional[str] = None) -> logging.Logger:
    """
    Configure JSON logging for the agent and the embedded uvicorn server.

    Args:
        level: Level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file to append logs to, in addition to stderr

    Returns:
        The package root logger
    """
    numeric_level = logging.getLevelName(level.upper())

    handlers = [_make_handler(logging.StreamHandler(), numeric_level)]
    if log_file:
        handlers.append(_make_handler(logging.FileHandler(log_file), numeric_level))

    replaced = set()
    for name in (ROOT_LOGGER,) + UVICORN_LOGGERS:
        logger = logging.getLogger(name)
        replaced.update(logger.handlers)
        logger.handlers = list(handlers)
        logger.setLevel(numeric_level)
        logger.propagate = False

    for handler in replaced - set(handlers):
        handler.close()

    return logging.getLogger(ROOT_LOGGER)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger below the package root so it inherits the JSON handlers.

    Example:
        logger = get_logger(__name__)
        logger.warning("Command failed", extra={'context': {'service': 'mysql'}})
    """
    if name != ROOT_LOGGER and not name.startswith(ROOT_LOGGER + '.'):
        name = f'{ROOT_LOGGER}.{name}'
    return logging.getLogger(name)
