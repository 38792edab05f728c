"""Diagnostic logging for the inheritance cycle analyzer.

Messages go to stderr by default so that stdout stays free for the MCP stdio
transport.
"""

import os
import sys
from enum import IntEnum
from typing import Optional, TextIO


class DiagnosticLevel(IntEnum):
    """Diagnostic message levels in order of severity."""

    DEBUG = 0
    INFO = 1
    WARNING = 2
    ERROR = 3
    FATAL = 4


_LEVEL_NAMES = {
    "DEBUG": DiagnosticLevel.DEBUG,
    "INFO": DiagnosticLevel.INFO,
    "WARNING": DiagnosticLevel.WARNING,
    "ERROR": DiagnosticLevel.ERROR,
    "FATAL": DiagnosticLevel.FATAL,
}


def parse_level(level_str: str, default: DiagnosticLevel = DiagnosticLevel.INFO) -> DiagnosticLevel:
    """Map a level name (any case) to a DiagnosticLevel, or return default."""
    return _LEVEL_NAMES.get(str(level_str).upper(), default)


class DiagnosticLogger:
    """Writes levelled diagnostic lines to a stream."""

    def __init__(
        self, level: DiagnosticLevel = DiagnosticLevel.INFO, output_stream: TextIO = sys.stderr
    ):
        self.level = level
        self.output_stream = output_stream
        self._enabled = True

    def set_level(self, level: DiagnosticLevel):
        """Set the minimum diagnostic level to output."""
        self.level = level

    def set_output_stream(self, stream: TextIO):
        self.output_stream = stream

    def set_enabled(self, enabled: bool):
        """Enable or disable all diagnostic output."""
        self._enabled = enabled

    def is_enabled_for(self, level: DiagnosticLevel) -> bool:
        return self._enabled and level >= self.level

    def _format_message(self, level: DiagnosticLevel, message: str) -> str:
        return f"[{level.name}] {message}"

    def log(self, level: DiagnosticLevel, message: str):
        """Output a message at the given level if it passes the filter."""
        if self.is_enabled_for(level):
            print(self._format_message(level, message), file=self.output_stream, flush=True)

    def debug(self, message: str):
        self.log(DiagnosticLevel.DEBUG, message)

    def info(self, message: str):
        self.log(DiagnosticLevel.INFO, message)

    def warning(self, message: str):
        self.log(DiagnosticLevel.WARNING, message)

    def error(self, message: str):
        self.log(DiagnosticLevel.ERROR, message)

    def fatal(self, message: str):
        self.log(DiagnosticLevel.FATAL, message)


# Global diagnostic logger instance
_global_logger: Optional[DiagnosticLogger] = None


def get_logger() -> DiagnosticLogger:
    """Get the global diagnostic logger instance."""
    global _global_logger
    if _global_logger is None:
        _global_logger = _create_default_logger()
    return _global_logger


def _create_default_logger() -> DiagnosticLogger:
    """Create a logger with its level taken from the environment."""
    level = parse_level(os.environ.get("INHERITANCE_CYCLES_DIAGNOSTIC_LEVEL", "INFO"))
    return DiagnosticLogger(level=level, output_stream=sys.stderr)


def configure_from_config(config: dict):
    """Configure the global logger from a configuration dictionary.

    Expected config format:
    {
        "diagnostics": {
            "level": "info",  # debug, info, warning, error, fatal
            "enabled": true
        }
    }
    """
    diag_config = config.get("diagnostics", {})
    logger = get_logger()

    level_str = str(diag_config.get("level", "INFO")).upper()
    if level_str in _LEVEL_NAMES:
        logger.set_level(_LEVEL_NAMES[level_str])

    logger.set_enabled(bool(diag_config.get("enabled", True)))


# Convenience functions that use the global logger
def debug(message: str):
    """Output a debug diagnostic message."""
    get_logger().debug(message)


def info(message: str):
    """Output an info diagnostic message."""
    get_logger().info(message)


def warning(message: str):
    """Output a warning diagnostic message."""
    get_logger().warning(message)


def error(message: str):
    """Output an error diagnostic message."""
    get_logger().error(message)


def fatal(message: str):
    """Output a fatal error diagnostic message."""
    get_logger().fatal(message)
