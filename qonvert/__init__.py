"""
Qonvert - A tiny CLI for batch video conversion with ffmpeg.
"""

__version__ = "1.0.0"

from .config import get_config, load_env_file

__all__ = [
    "get_config",
    "load_env_file",
]
