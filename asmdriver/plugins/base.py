"""
Extension points: profiles and analyzers.

Profiles decide how the results of a build are post-processed and how
translated outputs reach the disk. Analyzers observe translation and may
ask the translator to skip members. Concrete plugins subclass these and
are registered with ``PluginRegistry``.
"""

from __future__ import annotations

from abc import ABC
from typing import TYPE_CHECKING, Any, Iterable

if TYPE_CHECKING:  # pragma: no cover
    from asmdriver.config.schema import Configuration
    from asmdriver.runtime.results import BuildResult, TranslationResult
    from asmdriver.runtime.variables import VariableSet


class BaseProfile(ABC):
    """Policy object controlling post-build processing and output writing.

    Every hook has a neutral default so profiles only override what they
    change.
    """

    @property
    def name(self) -> str:
        return type(self).__name__

    def applies_to(self, build_result: "BuildResult") -> bool:
        """Whether this profile should process a solution's build result."""
        return False

    def adapt_configuration(self, configuration: "Configuration") -> "Configuration":
        """Return the configuration this profile wants to translate with."""
        return configuration

    def process_build_result(
        self,
        variables: "VariableSet",
        configuration: "Configuration",
        build_result: "BuildResult",
    ) -> None:
        """Post-process a solution build before its outputs are translated."""

    def process_skipped_assembly(
        self,
        configuration: "Configuration",
        assembly_path: str,
        result: "TranslationResult",
    ) -> None:
        """Handle an assembly that deduplication kept out of the schedule."""

    def write_outputs(
        self,
        variables: "VariableSet",
        result: "TranslationResult",
        output_directory: str,
        manifest_prefix: str,
    ) -> None:
        """Write translated outputs to ``output_directory``."""


class BaseAnalyzer(ABC):
    """Observer of translation that may veto members."""

    @property
    def name(self) -> str:
        return type(self).__name__

    def set_configuration(self, configuration: "Configuration") -> None:
        """Receive the merged configuration of the file about to translate."""

    def add_assemblies(self, assemblies: Iterable[Any]) -> None:
        """Receive the assemblies loaded by the translator."""

    def analyze(self, type_info: Any) -> None:
        """Analyze the loaded assemblies before code generation."""

    def member_can_be_skipped(self, member: Any) -> bool:
        return False


__all__ = ["BaseProfile", "BaseAnalyzer"]
