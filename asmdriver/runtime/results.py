"""Value types exchanged with the external collaborators."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence, Union

if TYPE_CHECKING:  # pragma: no cover
    from asmdriver.config.schema import Configuration
    from asmdriver.runtime.progress import TranslationListener
    from asmdriver.runtime.variables import VariableSet

EXECUTABLE_EXTENSIONS = (".exe",)
ASSEMBLY_EXTENSIONS = (".exe", ".dll")


def is_executable(path: Union[str, Path]) -> bool:
    """Whether ``path`` names an executable entry-point assembly."""
    return Path(path).suffix.lower() in EXECUTABLE_EXTENSIONS


@dataclass
class BuildResult:
    """Result reported by the external solution build tool.

    Attributes:
        solution_path: Solution that was built.
        output_files: Produced output file paths, in build order.
        all_items_built: Identifiers of every build item processed.
        target_files_used: Project/target files the build consumed.
    """

    solution_path: str
    output_files: List[str] = field(default_factory=list)
    all_items_built: List[str] = field(default_factory=list)
    target_files_used: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BuildResult":
        return cls(
            solution_path=str(data["solution_path"]),
            output_files=[str(p) for p in data.get("output_files") or []],
            all_items_built=[str(p) for p in data.get("all_items_built") or []],
            target_files_used=[str(p) for p in data.get("target_files_used") or []],
        )


def normalize_build_result(result: BuildResult) -> BuildResult:
    """Round-trip ``result`` through JSON.

    Build tools may hand back objects that keep references into their own
    process state; the round-trip leaves only plain values.
    """
    return BuildResult.from_dict(json.loads(json.dumps(result.to_dict())))


@dataclass
class AssemblyMetadata:
    """Metadata-only view of one assembly.

    Attributes:
        path: File the metadata was read from.
        full_name: Assembly identity (e.g. ``Core, Version=1.0.0.0``).
        references: Identities of the assemblies it references.
    """

    path: str
    full_name: str
    references: List[str] = field(default_factory=list)

    @property
    def is_executable(self) -> bool:
        return is_executable(self.path)


@dataclass
class OutputFile:
    """One artifact produced by the translator."""

    filename: str
    contents: Union[str, bytes] = ""

    @property
    def size(self) -> int:
        data = self.contents.encode("utf-8") if isinstance(self.contents, str) else self.contents
        return len(data)


@dataclass
class TranslationResult:
    """Outcome of translating a single input file.

    Attributes:
        elapsed: Translation wall time in seconds.
        files: Produced artifacts in output order.
        log: Miscellaneous diagnostic text from the translator.
        failures: One entry per per-method or per-assembly failure.
    """

    elapsed: float = 0.0
    files: List[OutputFile] = field(default_factory=list)
    log: str = ""
    failures: List[str] = field(default_factory=list)

    @property
    def failure_count(self) -> int:
        return len(self.failures)


@dataclass
class TranslationRequest:
    """Everything the translator needs for one input file."""

    filename: str
    configuration: "Configuration"
    variables: "VariableSet"
    listener: "TranslationListener"
    type_info: Optional[Any] = None
    analyzers: Sequence[Any] = ()

    @property
    def use_threads(self) -> bool:
        return self.configuration.use_threads is not False

    @property
    def use_local_proxies(self) -> bool:
        return self.configuration.use_local_proxies is not False


__all__ = [
    "ASSEMBLY_EXTENSIONS",
    "EXECUTABLE_EXTENSIONS",
    "AssemblyMetadata",
    "BuildResult",
    "OutputFile",
    "TranslationRequest",
    "TranslationResult",
    "is_executable",
    "normalize_build_result",
]
