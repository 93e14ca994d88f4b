"""Discovery of per-target configuration files.

A configuration file for ``App.exe`` is named ``App.exe.buildconfig``. It
may sit beside the target or in any ancestor directory; the name stays
anchored to the target at every level, so a config in an ancestor is one
written for this target, not one belonging to the ancestor itself.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger("asmdriver.config.locator")

CONFIG_EXTENSION = ".buildconfig"

# Directories shallower than this are never searched (``/`` is depth 0,
# ``/home`` depth 1, ``/home/user`` depth 2).
DEFAULT_MIN_DEPTH = 2


def config_file_name(target: Union[str, Path], extension: str = CONFIG_EXTENSION) -> str:
    """Return the configuration file name belonging to ``target``."""
    return f"{Path(target).name}{extension}"


def directory_depth(directory: Path) -> int:
    """Number of path components below the filesystem anchor."""
    parts = directory.parts
    return len(parts) - 1 if directory.anchor else len(parts)


def locate_config_file(
    target: Union[str, Path],
    extension: str = CONFIG_EXTENSION,
    min_depth: int = DEFAULT_MIN_DEPTH,
) -> Optional[Path]:
    """Find the nearest configuration file for ``target``.

    The search starts in the target's directory and walks up through its
    ancestors. Only the nearest match is returned.

    Args:
        target: File whose configuration is wanted.
        extension: Configuration file extension, including the dot.
        min_depth: Directories with fewer components than this are not
            searched, which bounds the walk.

    Returns:
        Path of the nearest matching file, or None when there is none.
    """
    target_path = Path(target).resolve()
    file_name = config_file_name(target_path, extension)
    search_dir = target_path.parent

    while directory_depth(search_dir) >= min_depth:
        candidate = search_dir / file_name
        if candidate.is_file():
            logger.debug("Found configuration '%s' for '%s'", candidate, target_path.name)
            return candidate
        parent = search_dir.parent
        if parent == search_dir:
            break
        search_dir = parent

    logger.debug("No %s found for '%s'", file_name, target_path)
    return None


def solution_config_path(
    solution: Union[str, Path], extension: str = CONFIG_EXTENSION
) -> Optional[Path]:
    """Return the configuration file sitting beside ``solution``, if any."""
    solution_path = Path(solution).resolve()
    candidate = solution_path.parent / config_file_name(solution_path, extension)
    return candidate if candidate.is_file() else None


__all__ = [
    "CONFIG_EXTENSION",
    "DEFAULT_MIN_DEPTH",
    "config_file_name",
    "directory_depth",
    "locate_config_file",
    "solution_config_path",
]
