"""
File path handling for qonvert.

Turns command line arguments into absolute input paths and pairs each input
with its output path in the output directory.
"""

from pathlib import Path
from typing import List, Sequence, Union

from ..errors import PathResolutionError
from ..models import Job
from ....utils.logging import get_logger

logger = get_logger("file_manager")

PathLike = Union[str, Path]


def resolve_input_paths(args: Sequence[PathLike]) -> List[Path]:
    """
    Resolve command line inputs into absolute file paths.

    A single directory argument expands to the regular, non-hidden files
    directly inside it. When several arguments are given, each must be a
    file.
    """
    paths = [Path(arg).expanduser().absolute() for arg in args]

    for path in paths:
        if not path.exists():
            raise PathResolutionError(f"'{path}' does not exist")

    if len(paths) == 1 and paths[0].is_dir():
        return _files_in_dir(paths[0])

    for path in paths:
        if path.is_dir():
            raise PathResolutionError(
                "Either a single directory or multiple files can be used as input"
            )

    return paths


def _files_in_dir(directory: Path) -> List[Path]:
    files = sorted(
        entry for entry in directory.iterdir()
        if entry.is_file() and not entry.name.startswith('.')
    )
    logger.debug(f"Found {len(files)} files in {directory}")
    return files


def build_jobs(output_dir: PathLike, input_paths: Sequence[Path], output_type: str = "") -> List[Job]:
    """
    Pair every input with ``output_dir / <stem>.<output_type>``.

    An empty *output_type* keeps each input's own extension.
    """
    output_dir = Path(output_dir).expanduser().absolute()
    if not output_dir.is_dir():
        raise PathResolutionError(f"'{output_dir}' is not a valid directory")

    extension = output_type.strip().lstrip('.')
    jobs = []
    for input_path in input_paths:
        name = f"{input_path.stem}.{extension}" if extension else input_path.name
        output_path = output_dir / name
        if output_path == input_path:
            raise PathResolutionError(
                f"'{input_path}' would be overwritten by its own output; "
                "choose another output directory or type"
            )
        jobs.append(Job(input_path=input_path, output_path=output_path))

    return jobs
