"""Helpers for tests that run the pipeline against the fake ffmpeg script."""

import json
import os
import stat
import sys
from pathlib import Path

FAKE_FFMPEG = Path(__file__).parent / "fake_ffmpeg.py"

ON_WINDOWS = os.name == "nt"


def make_fake_tool(directory: Path, name: str = "ffmpeg") -> str:
    """Write an executable wrapper that runs fake_ffmpeg.py with this interpreter."""
    wrapper = Path(directory) / name
    wrapper.write_text(f'#!/bin/sh\nexec "{sys.executable}" "{FAKE_FFMPEG}" "$@"\n')
    wrapper.chmod(wrapper.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return str(wrapper)


def write_scenario(path: Path, **scenario) -> Path:
    """Write a scenario file that doubles as the fake converter's input."""
    path = Path(path)
    path.write_text(json.dumps(scenario), encoding="utf-8")
    return path


def progress_block(frame: int, end: bool = False) -> str:
    """One ffmpeg -progress report block."""
    return (
        f"frame={frame}\n"
        "fps=24.00\n"
        "stream_0_0_q=28.0\n"
        "bitrate=1000.0kbits/s\n"
        "total_size=1024\n"
        "out_time_us=1000000\n"
        "dup_frames=0\n"
        "drop_frames=0\n"
        "speed=1.0x\n"
        f"progress={'end' if end else 'continue'}\n"
    )
