"""
Protocol definitions for the external collaborators.

The driver only decides what to build and with which settings; building
solutions, reading assembly metadata and translating are done by objects
implementing these protocols. Tests substitute in-memory fakes.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol, runtime_checkable

from asmdriver.config.schema import Configuration
from asmdriver.runtime.results import (
    AssemblyMetadata,
    BuildResult,
    TranslationRequest,
    TranslationResult,
)


@runtime_checkable
class SolutionBuilder(Protocol):
    """Builds a solution and reports its outputs."""

    def build(
        self,
        solution_path: str,
        configuration: Optional[str],
        platform: Optional[str],
        target: str,
        log_verbosity: Optional[str],
    ) -> BuildResult:
        ...


@runtime_checkable
class MetadataReader(Protocol):
    """Reads assembly identity and references without a full load.

    Implementations raise ``UnreadableAssemblyError`` for foreign or
    corrupt binaries and release any file handle before returning.
    """

    def read(self, path: str) -> AssemblyMetadata:
        ...


@runtime_checkable
class AssemblyResolver(Protocol):
    """Resolves an assembly-qualified name to a file path."""

    def resolve(self, assembly_name: str) -> Optional[str]:
        ...


@runtime_checkable
class Translator(Protocol):
    """Translates one assembly under a fully merged configuration."""

    def load_type_info(self, configuration: Configuration) -> Any:
        """Build the (expensive) type information shared across files."""
        ...

    def translate(self, request: TranslationRequest) -> TranslationResult:
        ...
