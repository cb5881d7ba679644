"""Configuration management for qonvert."""

import os
from pathlib import Path
from typing import Optional, Dict, Any


DEFAULT_LIMIT = 5
DEFAULT_PROBE_WORKERS = 50


def load_env_file(env_path: Optional[Path] = None) -> Dict[str, str]:
    """Load environment variables from .env file."""
    if env_path is None:
        # Look for .env in current directory, then in package directory
        candidates = [
            Path.cwd() / ".env",
            Path(__file__).parent.parent / ".env",
        ]

        for candidate in candidates:
            if candidate.exists():
                env_path = candidate
                break

    env_vars = {}

    if env_path and env_path.exists():
        with open(env_path, 'r', encoding='utf-8') as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith('#'):
                    if '=' in line:
                        key, value = line.split('=', 1)
                        env_vars[key.strip()] = value.strip()

    return env_vars


def _setting(env_vars: Dict[str, str], key: str, env_name: str, default: str) -> str:
    return env_vars.get(key, os.getenv(env_name, default))


def _int_setting(env_vars: Dict[str, str], key: str, env_name: str, default: int) -> int:
    value = _setting(env_vars, key, env_name, str(default))
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{env_name} (or '{key}' in .env) must be an integer, got {value!r}") from None


def get_config(env_path: Optional[Path] = None) -> Dict[str, Any]:
    """Get configuration from environment variables and .env file.

    Keys in the .env file take precedence over the process environment.
    """
    env_vars = load_env_file(env_path)

    config = {
        'limit': _int_setting(env_vars, 'limit', 'QONVERT_LIMIT', DEFAULT_LIMIT),
        'probe_workers': _int_setting(env_vars, 'probe_workers', 'QONVERT_PROBE_WORKERS',
                                      DEFAULT_PROBE_WORKERS),
        'ffmpeg': _setting(env_vars, 'ffmpeg', 'QONVERT_FFMPEG', 'ffmpeg'),
        'ffprobe': _setting(env_vars, 'ffprobe', 'QONVERT_FFPROBE', 'ffprobe'),
        'debug': _setting(env_vars, 'debug', 'DEBUG', 'false').lower() in ('true', '1', 'yes'),
    }

    return config
