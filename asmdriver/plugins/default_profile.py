"""The profile used when no registered profile claims a build."""

from __future__ import annotations

import logging
from pathlib import Path

from asmdriver.plugins.base import BaseProfile
from asmdriver.runtime.results import TranslationResult
from asmdriver.runtime.variables import VariableSet

logger = logging.getLogger("asmdriver.plugins.default_profile")


class DefaultProfile(BaseProfile):
    """Translate with the merged configuration and write every output file."""

    @property
    def name(self) -> str:
        return "Default"

    def write_outputs(
        self,
        variables: VariableSet,
        result: TranslationResult,
        output_directory: str,
        manifest_prefix: str,
    ) -> None:
        out_dir = Path(output_directory)
        out_dir.mkdir(parents=True, exist_ok=True)

        for output in result.files:
            target = out_dir / output.filename
            target.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(output.contents, bytes):
                target.write_bytes(output.contents)
            else:
                target.write_text(output.contents, encoding="utf-8")
            logger.debug("Wrote %s (%d bytes)", target, output.size)

        manifest = out_dir / f"{manifest_prefix}manifest.txt"
        with manifest.open("w", encoding="utf-8") as handle:
            for output in result.files:
                handle.write(f"{output.filename}\t{output.size}\n")


__all__ = ["DefaultProfile"]
