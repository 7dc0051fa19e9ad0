# backend/listing_media/services/logger/logger_service.py
"""
Logger Service - loguru-backed structured logging.

Provides a single place where sinks are installed and a factory that hands
out pre-configured service loggers bound to a logger name and source.
"""

import sys
from pathlib import Path
from typing import Any, Dict, Optional

from loguru import logger

from ...enums import LogEmoji, LoggerName, LogLevel, LogSource

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[logger_name]}</cyan>:<cyan>{extra[source]}</cyan> - "
    "<level>{message}</level>"
)
FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | "
    "{extra[logger_name]}:{extra[source]} - {message} | {extra[context]}"
)
FILE_ROTATION = "10 MB"
FILE_RETENTION = "14 days"

_initialized = False


def initialize_global_logger(
    level: LogLevel = LogLevel.INFO,
    log_file: Optional[str] = None,
    colorize: Optional[bool] = None,
) -> None:
    """
    Install console (and optional rotating file) sinks.

    Safe to call more than once; previous sinks are replaced.

    Args:
        level: Minimum level written to the sinks
        log_file: Optional path of a rotating log file
        colorize: Force ANSI colors on or off (auto-detected if None)
    """
    global _initialized

    logger.remove()
    logger.configure(
        extra={"logger_name": LoggerName.SYSTEM.value, "source": "system", "context": {}}
    )
    logger.add(
        sys.stderr,
        level=level.value,
        format=CONSOLE_FORMAT,
        colorize=colorize,
        backtrace=False,
        diagnose=False,
    )

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            level=level.value,
            format=FILE_FORMAT,
            rotation=FILE_ROTATION,
            retention=FILE_RETENTION,
            compression="zip",
            enqueue=True,
            backtrace=False,
            diagnose=False,
        )

    _initialized = True


def is_logger_initialized() -> bool:
    return _initialized


def get_service_logger(
    logger_name: LoggerName,
    source: LogSource = LogSource.SYSTEM,
    default_emoji: Optional[LogEmoji] = None,
):
    """
    Factory function to create a pre-configured logger for a specific service.

    Emoji priority (highest to lowest): emoji passed to the call, the
    instance default, then the level fallback.

    Args:
        logger_name: The logger name enum to use for all calls
        source: The log source enum to use for all calls (defaults to SYSTEM)
        default_emoji: Instance-level default emoji that overrides level-based fallbacks

    Returns:
        ServiceLogger instance with error, warning, info, debug methods

    Example:
        logger = get_service_logger(LoggerName.STORAGE_SERVICE, LogSource.STORAGE)
        logger.warning("Bunny PUT failed", extra_context={"status": 500})
    """
    bound = logger.bind(logger_name=logger_name.value, source=source.value)

    def _resolve_emoji(
        method_emoji: Optional[LogEmoji], fallback_emoji: LogEmoji
    ) -> LogEmoji:
        if method_emoji is not None:
            return method_emoji
        if default_emoji is not None:
            return default_emoji
        return fallback_emoji

    def _emit(
        level: str,
        message: str,
        emoji: LogEmoji,
        context: Optional[Dict[str, Any]],
        exception: Optional[BaseException] = None,
    ) -> None:
        text = f"{emoji.value} {message}"
        if context:
            text = f"{text} | {context}"
        # depth=2 so the record points at the caller, not at this factory
        bound.bind(context=context or {}).opt(exception=exception, depth=2).log(
            level, text
        )

    class ServiceLogger:
        name = logger_name
        log_source = source

        @staticmethod
        def error(
            message: str,
            exception: Optional[BaseException] = None,
            error_context: Optional[Dict[str, Any]] = None,
            emoji: Optional[LogEmoji] = None,
        ) -> None:
            """Log an error, attaching the traceback when an exception is given."""
            _emit(
                LogLevel.ERROR.value,
                message,
                _resolve_emoji(emoji, LogEmoji.ERROR),
                error_context,
                exception,
            )

        @staticmethod
        def warning(
            message: str,
            extra_context: Optional[Dict[str, Any]] = None,
            emoji: Optional[LogEmoji] = None,
        ) -> None:
            _emit(
                LogLevel.WARNING.value,
                message,
                _resolve_emoji(emoji, LogEmoji.WARNING),
                extra_context,
            )

        @staticmethod
        def info(
            message: str,
            extra_context: Optional[Dict[str, Any]] = None,
            emoji: Optional[LogEmoji] = None,
        ) -> None:
            _emit(
                LogLevel.INFO.value,
                message,
                _resolve_emoji(emoji, LogEmoji.INFO),
                extra_context,
            )

        @staticmethod
        def debug(
            message: str,
            extra_context: Optional[Dict[str, Any]] = None,
            emoji: Optional[LogEmoji] = None,
        ) -> None:
            _emit(
                LogLevel.DEBUG.value,
                message,
                _resolve_emoji(emoji, LogEmoji.DEBUG),
                extra_context,
            )

    return ServiceLogger()
