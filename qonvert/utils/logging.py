"""
Centralized logging utilities for qonvert

Provides consistent logging patterns with configurable debug levels:
- [INFO] for general information
- [WARN] for warnings
- [ERROR] for errors
- [RESULT] for final results
- [DEBUG] for debug information
- [PROBE] for ffprobe frame counting
- [CMD] for external command lines
- [PROGRESS] for progress channel events
- [CLEANUP] for cleanup operations

Messages are written through tqdm so they do not tear active progress bars.

Usage:
    from qonvert.utils.logging import get_logger, set_debug_mode

    set_debug_mode(True)  # Enable debug messages

    logger = get_logger("job_processor")
    logger.info("This is an info message")
    logger.debug("This is a debug message")  # Only shows if debug enabled
"""

import os
from enum import Enum
from typing import Optional

from tqdm import tqdm

# Global logging configuration
_DEBUG_ENABLED = False
_QUIET_MODE = False
_LOG_LEVEL = "INFO"


class LogLevel(Enum):
    DEBUG = 0
    INFO = 1
    WARN = 2
    ERROR = 3


def _init_debug_mode():
    global _DEBUG_ENABLED
    if os.getenv('DEBUG', '').lower() in ('1', 'true', 'yes'):
        _DEBUG_ENABLED = True

_init_debug_mode()


def set_debug_mode(enabled: bool):
    """Enable or disable debug mode globally"""
    global _DEBUG_ENABLED
    _DEBUG_ENABLED = enabled


def set_quiet_mode(enabled: bool):
    """Enable or disable quiet mode (suppress INFO and DEBUG messages)"""
    global _QUIET_MODE
    _QUIET_MODE = enabled


def set_log_level(level: str):
    """Set the global log level: DEBUG, INFO, WARN, ERROR"""
    global _LOG_LEVEL
    _LOG_LEVEL = level.upper()


def get_debug_mode() -> bool:
    """Get current debug mode setting"""
    return _DEBUG_ENABLED


def _emit(line: str):
    tqdm.write(line)


class Logger:
    """Centralized logger with consistent formatting and configurable output"""

    def __init__(self, module_name: str = ""):
        self.module_name = module_name
        self.prefix = f"[{module_name}] " if module_name else ""

    def _should_log(self, level: LogLevel) -> bool:
        """Check if message should be logged based on current settings"""
        if _QUIET_MODE and level in (LogLevel.DEBUG, LogLevel.INFO):
            return False

        level_hierarchy = {
            "DEBUG": LogLevel.DEBUG,
            "INFO": LogLevel.INFO,
            "WARN": LogLevel.WARN,
            "ERROR": LogLevel.ERROR
        }

        current_level = level_hierarchy.get(_LOG_LEVEL, LogLevel.INFO)
        return level.value >= current_level.value

    def _log(self, level: str, message: str):
        log_level = LogLevel[level]
        if not self._should_log(log_level):
            return
        _emit(f"[{level}] {self.prefix}{message}")

    def _tagged(self, tag: str, message: str, level: LogLevel = LogLevel.INFO):
        if level is LogLevel.DEBUG and not _DEBUG_ENABLED:
            return
        if self._should_log(level):
            _emit(f"[{tag}] {message}")

    def debug(self, message: str):
        """Log debug message (only if debug mode enabled)"""
        if _DEBUG_ENABLED:
            self._log("DEBUG", message)

    def info(self, message: str):
        """Log informational message"""
        self._log("INFO", message)

    def warn(self, message: str):
        """Log warning message"""
        self._log("WARN", message)

    def error(self, message: str):
        """Log error message"""
        self._log("ERROR", message)

    def result(self, message: str):
        """Log result message"""
        self._tagged("RESULT", message)

    # Domain-specific logging methods
    def probe(self, message: str):
        """Log ffprobe frame counting message"""
        self._tagged("PROBE", message, LogLevel.DEBUG)

    def cmd(self, message: str):
        """Log command execution message"""
        self._tagged("CMD", message, LogLevel.DEBUG)

    def progress(self, message: str):
        """Log progress channel message"""
        self._tagged("PROGRESS", message, LogLevel.DEBUG)

    def cleanup(self, message: str):
        """Log cleanup operation"""
        self._tagged("CLEANUP", message, LogLevel.DEBUG)


def get_logger(module_name: str = "") -> Logger:
    """Get a logger instance for a module"""
    return Logger(module_name)


BAR_FORMAT = "{desc} {n_fmt}/{total_fmt} {percentage:3.0f}% |{bar:40}| {remaining} left"


def create_progress_bar(total: Optional[int] = None, desc: str = "", unit: str = "it",
                        position: Optional[int] = None, leave: bool = True, disable: bool = False):
    """Create a progress bar with consistent styling"""
    # without a total tqdm falls back to a plain counter
    bar_format = BAR_FORMAT if total else None
    return tqdm(total=total or None, desc=desc, unit=unit, position=position, leave=leave,
                bar_format=bar_format, dynamic_ncols=True, disable=disable)


def format_duration(seconds: float) -> str:
    """Format duration in seconds to a human-readable string"""
    if seconds < 60:
        return f"{seconds:.1f}s"
    elif seconds < 3600:
        return f"{seconds/60:.1f}m"
    else:
        hours = int(seconds // 3600)
        minutes = int((seconds % 3600) // 60)
        return f"{hours}h {minutes}m"
