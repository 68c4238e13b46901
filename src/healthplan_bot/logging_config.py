"""Loguru logging configuration for the bot.

The Teams AI and Bot Framework SDKs log through stdlib ``logging``;
``setup_logging()`` routes those records into loguru next to the bot's own
messages. Records logged through ``turn_logger()`` carry the channel and
conversation id of the turn they belong to.
"""

from __future__ import annotations

import logging
import sys

from loguru import logger

# The completion model writes every prompt and response here
MODEL_REQUEST_LOGGER = "healthplan_bot.openai"

INTERCEPTED_LOGGERS = (
    "uvicorn",
    "uvicorn.access",
    "uvicorn.error",
    "fastapi",
    "teams.ai",
    "botbuilder",
    "botframework",
    MODEL_REQUEST_LOGGER,
)

_TEXT_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<magenta>{extra[channel]}/{extra[conversation]}</magenta> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)


class InterceptHandler(logging.Handler):
    """Redirect stdlib logging records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back  # type: ignore[assignment]
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def turn_logger(activity):
    """Return a logger bound to the conversation of ``activity``."""
    conversation = activity.conversation.id if activity.conversation else "-"
    return logger.bind(channel=activity.channel_id or "-", conversation=conversation)


def setup_logging(*, level: str = "INFO", json: bool = False) -> None:
    """Configure loguru as the single logging backend.

    Args:
        level: Minimum log level (DEBUG, INFO, WARNING, ...). Model requests
            are logged at DEBUG.
        json: If True, emit structured JSON to stderr.
    """
    logger.remove()
    logger.configure(extra={"channel": "-", "conversation": "-"})

    if json:
        logger.add(sys.stderr, level=level, serialize=True)
    else:
        logger.add(sys.stderr, level=level, format=_TEXT_FORMAT, colorize=True)

    intercept = InterceptHandler()
    for name in INTERCEPTED_LOGGERS:
        stdlib_logger = logging.getLogger(name)
        stdlib_logger.handlers = [intercept]
        stdlib_logger.propagate = False

    logging.root.handlers = [intercept]
    logging.root.setLevel(logging.DEBUG)
