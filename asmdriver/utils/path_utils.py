"""Path helpers shared by the configuration and build layers."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional, Union

from asmdriver.runtime.variables import VariableSet

logger = logging.getLogger("asmdriver.utils.path_utils")


def shorten_path(path: Union[str, Path], cwd: Optional[Union[str, Path]] = None) -> str:
    """Return ``path`` relative to ``cwd`` when that is shorter.

    Args:
        path: Path to display.
        cwd: Base directory; defaults to the current working directory.

    Returns:
        The shorter of the relative and the original spelling.
    """
    text = str(path)
    base = str(cwd) if cwd is not None else os.getcwd()
    try:
        relative = os.path.relpath(text, base)
    except ValueError:
        # Different drives on Windows.
        return text
    return relative if len(relative) < len(text) else text


def map_path(
    path: str,
    variables: VariableSet,
    ensure_exists: bool,
    report_errors: bool = False,
) -> Optional[str]:
    """Expand a path-valued setting against ``variables``.

    Args:
        path: Setting value, possibly containing ``%name%`` tokens.
        variables: Bindings used for expansion.
        ensure_exists: Return None when the expanded path is neither a
            file nor a directory.
        report_errors: Log a warning for each path dropped by
            ``ensure_exists``.

    Returns:
        The expanded path, or None when it was dropped.
    """
    result = variables.expand_path(path, strict=False)

    if ensure_exists and not os.path.exists(result):
        if report_errors:
            logger.warning("Could not find file '%s' -> '%s'!", path, result)
        return None

    return result


def ensure_directory(path: Union[str, Path]) -> Path:
    """Create ``path`` (and parents) if needed and return it."""
    directory = Path(path)
    directory.mkdir(parents=True, exist_ok=True)
    return directory


__all__ = ["shorten_path", "map_path", "ensure_directory"]
