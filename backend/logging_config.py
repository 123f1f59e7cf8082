"""
RAPTOR Logging Configuration

One handler on the root logger. Output is ANSI-colored on a terminal and plain
when redirected, so `--json` output piped from the CLI stays machine-readable.

Event helpers give the pipeline's recurring log lines a fixed shape:
    >>> REQUEST process [chars=5120 chunk_size=500 max_levels=3]
    >>> LEVEL 2 units=14
    <<< LEVEL 2 clusters=4 summaries=4
    <<< LLM qwen3 completed in 3.2s

Usage:
    from logging_config import setup_logging, log_level
    setup_logging(logging.DEBUG)
    log_level(logger, 1, "start", units=12)
"""

import logging
import sys
from typing import Optional, TextIO

ANSI = {
    "reset": "\033[0m",
    "bold": "\033[1m",
    "dim": "\033[2m",
    "gray": "\033[90m",
    "red": "\033[91m",
    "green": "\033[92m",
    "yellow": "\033[33m",
    "blue": "\033[94m",
    "cyan": "\033[96m",
}

# Marker colors for the event helpers below
EVENT_COLORS = {
    "REQUEST": ANSI["cyan"],
    "LEVEL": ANSI["green"],
    "LLM": ANSI["blue"],
}

# Libraries whose INFO output drowns the pipeline's own
NOISY_LOGGERS = ("httpx", "httpcore", "openai", "uvicorn.access")


class ColorFormatter(logging.Formatter):
    """`HH:MM:SS [LEVL] message`, with the level tag colored when enabled."""

    LEVEL_COLORS = {
        logging.DEBUG: ANSI["gray"],
        logging.INFO: ANSI["reset"],
        logging.WARNING: ANSI["yellow"],
        logging.ERROR: ANSI["red"],
        logging.CRITICAL: ANSI["red"] + ANSI["bold"],
    }

    def __init__(self, use_color: bool = True):
        super().__init__()
        self.use_color = use_color

    def _paint(self, text: str, color: str) -> str:
        if not self.use_color:
            return text
        return f"{color}{text}{ANSI['reset']}"

    def format(self, record: logging.LogRecord) -> str:
        timestamp = self._paint(self.formatTime(record, "%H:%M:%S"), ANSI["dim"])
        tag = self._paint(record.levelname[:4], self.LEVEL_COLORS.get(record.levelno, ANSI["reset"]))
        message = record.getMessage()
        if not self.use_color:
            for color in EVENT_COLORS.values():
                message = message.replace(color, "")
            message = message.replace(ANSI["reset"], "")

        line = f"{timestamp} [{tag}] {message}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(level: int = logging.INFO, stream: Optional[TextIO] = None) -> None:
    """Route all logging through one ColorFormatter handler.

    Args:
        level: Root log level
        stream: Destination (default stdout); color only if it is a TTY
    """
    stream = stream or sys.stdout
    handler = logging.StreamHandler(stream)
    handler.setFormatter(ColorFormatter(use_color=hasattr(stream, "isatty") and stream.isatty()))

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = [handler]

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


# =============================================================================
# EVENT HELPERS
# =============================================================================


def _marker(direction: str, event: str) -> str:
    return f"{EVENT_COLORS[event]}{direction} {event}{ANSI['reset']}"


def _fields(context: dict) -> str:
    return " ".join(f"{k}={v}" for k, v in context.items())


def log_request(logger: logging.Logger, endpoint: str, **context) -> None:
    """Log an accepted API request with its effective parameters."""
    logger.info(f"{_marker('>>>', 'REQUEST')} {endpoint} [{_fields(context)}]")


def log_level(logger: logging.Logger, level: int, state: str, **context) -> None:
    """Log entry to ('start') or exit from ('end') one tree level."""
    direction = ">>>" if state == "start" else "<<<"
    logger.info(f"{_marker(direction, 'LEVEL')} {level} {_fields(context)}".rstrip())


def log_llm(logger: logging.Logger, state: str, model: str = "", duration: float = 0) -> None:
    """Log a model call: 'start' before the request, 'end' with its duration."""
    if state == "start":
        logger.debug(f"{_marker('>>>', 'LLM')} calling {model}")
    else:
        logger.debug(f"{_marker('<<<', 'LLM')} {model} completed in {duration:.1f}s")
