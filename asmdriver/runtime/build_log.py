"""Durable per-input build logs.

Each translated input gets ``<input file name>.translog`` in its output
directory; each solution build gets ``<solution file name>.buildlog``.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterable, Sequence, Tuple, Union

from asmdriver import __version__
from asmdriver.config.schema import Configuration
from asmdriver.runtime.results import BuildResult, TranslationResult

logger = logging.getLogger("asmdriver.runtime.build_log")

TRANSLATION_LOG_EXTENSION = ".translog"
SOLUTION_LOG_EXTENSION = ".buildlog"


def translation_log_path(output_directory: Union[str, Path], input_file: str) -> Path:
    return Path(output_directory) / f"{Path(input_file).name}{TRANSLATION_LOG_EXTENSION}"


def render_translation_log(
    configuration: Configuration,
    input_file: str,
    result: TranslationResult,
    ignored_methods: Iterable[Tuple[str, Sequence[str]]],
) -> str:
    """Render the text of a translation log."""
    lines = [
        f"// asmdriver v{__version__}",
        f"// Build took {result.elapsed:07.2f} second(s).",
        f"// The following configuration was used when translating '{input_file}':",
        json.dumps(configuration.to_dict(), indent=2, sort_keys=True),
        "// The configuration was generated from the following configuration files:",
    ]
    lines.extend(configuration.contributing_paths)

    lines.append("// The following outputs were produced:")
    lines.extend(output.filename for output in result.files)

    lines.append("// The following method(s) were ignored due to untranslatable variables:")
    for method, variables in ignored_methods:
        lines.append(f"{method} because of {', '.join(variables)}")

    if result.failures:
        lines.append("// The following failure(s) were reported:")
        lines.extend(result.failures)

    lines.append("// Miscellaneous log output follows:")
    lines.append(result.log)
    return "\n".join(lines) + "\n"


def write_translation_log(
    output_directory: Union[str, Path],
    configuration: Configuration,
    input_file: str,
    result: TranslationResult,
    ignored_methods: Iterable[Tuple[str, Sequence[str]]],
) -> Path:
    """Write ``<input>.translog`` into ``output_directory``."""
    path = translation_log_path(output_directory, input_file)
    path.parent.mkdir(parents=True, exist_ok=True)
    text = render_translation_log(configuration, input_file, result, ignored_methods)
    with path.open("w", encoding="utf-8") as handle:
        handle.write(text)
    logger.debug("Wrote translation log %s", path)
    return path


def write_solution_log(
    output_directory: Union[str, Path],
    solution: str,
    build_result: BuildResult,
    build_seconds: float,
    profile_name: str,
    process_seconds: float,
) -> Path:
    """Write ``<solution>.buildlog`` into ``output_directory``."""
    path = Path(output_directory) / f"{Path(solution).name}{SOLUTION_LOG_EXTENSION}"
    path.parent.mkdir(parents=True, exist_ok=True)

    with path.open("w", encoding="utf-8") as handle:
        handle.write(
            f"Build of solution '{solution}' processed {len(build_result.all_items_built)} "
            f"task(s) and produced {len(build_result.output_files)} result file(s):\n"
        )
        for output in build_result.output_files:
            handle.write(f"{output}\n")
        handle.write("----\n")
        handle.write(f"Elapsed build time: {build_seconds:06.1f} second(s).\n")
        handle.write(f"Selected profile '{profile_name}' to process results of this build.\n")
        handle.write(f"Elapsed processing time: {process_seconds:06.1f} second(s).\n")

    logger.debug("Wrote solution build log %s", path)
    return path


__all__ = [
    "SOLUTION_LOG_EXTENSION",
    "TRANSLATION_LOG_EXTENSION",
    "render_translation_log",
    "translation_log_path",
    "write_solution_log",
    "write_translation_log",
]
