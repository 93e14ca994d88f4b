"""Build groups: cohesive batches of files translated together."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List

from asmdriver.config.schema import Configuration
from asmdriver.runtime.variables import VariableSet

if TYPE_CHECKING:  # pragma: no cover
    from asmdriver.plugins.base import BaseProfile

COMMAND_LINE_GROUP = "<command line>"


@dataclass
class BuildGroup:
    """One translation batch.

    Attributes:
        name: Solution path, or ``<command line>`` for loose assemblies.
        base_configuration: Configuration every file starts from.
        base_variables: Variables every file starts from.
        files_to_build: Files to translate, in order.
        profile: Profile used unless a file's configuration names another.
        skipped_assemblies: Files suppressed by deduplication. Fixed
            before the group is scheduled and disjoint from
            ``files_to_build``.
    """

    name: str
    base_configuration: Configuration
    base_variables: VariableSet
    files_to_build: List[str]
    profile: "BaseProfile"
    skipped_assemblies: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        skipped = set(self.skipped_assemblies)
        overlap = [path for path in self.files_to_build if path in skipped]
        if overlap:
            raise ValueError(
                f"Build group '{self.name}' schedules skipped file(s): {overlap}"
            )


__all__ = ["BuildGroup", "COMMAND_LINE_GROUP"]
