"""
System utilities for qonvert.

This module provides system-level utilities including:
- Subprocess execution with consistent error handling
- Tracking of temporary endpoint directories
- Cleanup of leftovers on exit
"""

import atexit
import os
import shlex
import shutil
import subprocess
import threading
from pathlib import Path
from typing import Iterable, Optional

from ....utils.logging import get_logger

logger = get_logger("system_utils")


class _TempPaths:
    """Thread-safe registry of temporary paths removed at interpreter exit."""

    def __init__(self):
        self._paths: set[str] = set()
        self._lock = threading.Lock()

    def add(self, path: "str | os.PathLike[str]"):
        with self._lock:
            self._paths.add(str(path))

    def discard(self, path: "str | os.PathLike[str]"):
        with self._lock:
            self._paths.discard(str(path))

    def __contains__(self, path) -> bool:
        with self._lock:
            return str(path) in self._paths

    def __len__(self) -> int:
        with self._lock:
            return len(self._paths)

    def snapshot(self) -> list[str]:
        with self._lock:
            return sorted(self._paths)


TEMP_FILES = _TempPaths()


def remove_path(path: "str | os.PathLike[str]"):
    """Remove a file, socket or directory tree and stop tracking it."""
    target = Path(path)
    try:
        if target.is_dir() and not target.is_symlink():
            shutil.rmtree(target)
        elif target.exists() or target.is_symlink():
            target.unlink()
    except OSError as e:
        logger.debug(f"Failed to remove {target}: {e}")
    finally:
        TEMP_FILES.discard(target)


def _cleanup():
    """Cleanup temporary files on exit"""
    for path in TEMP_FILES.snapshot():
        logger.cleanup(f"removed {path}")
        remove_path(path)


atexit.register(_cleanup)


def cleanup_temp_files():
    """Public cleanup function (wrapper around _cleanup)."""
    _cleanup()


def quote_command(cmd: Iterable[str]) -> str:
    return " ".join(shlex.quote(str(c)) for c in cmd)


def run_command(cmd: list[str], timeout: Optional[int] = None, capture_output: bool = True,
                text: bool = True, check: bool = False) -> subprocess.CompletedProcess:
    """
    Standardized subprocess command runner with consistent error handling.

    Args:
        cmd: Command as list of strings
        timeout: Timeout in seconds (default: no timeout)
        capture_output: Whether to capture stdout/stderr (default: True)
        text: Whether to use text mode (default: True)
        check: Whether to raise exception on non-zero exit (default: False)

    Returns:
        CompletedProcess object
    """
    logger.cmd(quote_command(cmd))
    try:
        return subprocess.run(
            cmd,
            capture_output=capture_output,
            text=text,
            timeout=timeout,
            check=check,
            stdin=subprocess.DEVNULL,
        )
    except subprocess.TimeoutExpired:
        logger.error(f"Command timed out after {timeout}s: {' '.join(cmd[:3])}...")
        raise
    except subprocess.CalledProcessError as e:
        logger.debug(f"Command failed: {' '.join(cmd[:3])}... (exit code: {e.returncode})")
        raise
