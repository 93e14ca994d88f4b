"""Shared fakes for the external collaborators."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

import pytest

from asmdriver.config.schema import Configuration
from asmdriver.errors import UnreadableAssemblyError
from asmdriver.plugins.base import BaseProfile
from asmdriver.plugins.registry import PluginRegistry
from asmdriver.runtime.context import RunContext
from asmdriver.runtime.results import (
    AssemblyMetadata,
    BuildResult,
    OutputFile,
    TranslationRequest,
    TranslationResult,
)
from asmdriver.runtime.toolchain import Toolchain


class FakeReader:
    """Metadata reader driven by a name -> referenced names table.

    Identities are file stems, so ``App.exe`` has identity ``App``.
    """

    def __init__(self, references: Dict[str, List[str]], unreadable: Iterable[str] = ()) -> None:
        self.references = references
        self.unreadable = set(unreadable)
        self.calls: List[str] = []

    def read(self, path: str) -> AssemblyMetadata:
        self.calls.append(path)
        name = Path(path).name
        if name in self.unreadable:
            raise UnreadableAssemblyError(path, "bad image format")
        return AssemblyMetadata(
            path=path,
            full_name=Path(path).stem,
            references=list(self.references.get(name, [])),
        )


class FakeTranslator:
    """Translator that records requests and emits one ``.js`` file per input."""

    def __init__(self, failures: Optional[Dict[str, int]] = None) -> None:
        self.failures = failures or {}
        self.requests: List[TranslationRequest] = []
        self.type_info_loads = 0
        self.ignored: Dict[str, List[Tuple[str, List[str]]]] = {}

    def load_type_info(self, configuration: Configuration) -> object:
        self.type_info_loads += 1
        return {"load": self.type_info_loads}

    def translate(self, request: TranslationRequest) -> TranslationResult:
        self.requests.append(request)
        name = Path(request.filename).name
        for method, variables in self.ignored.get(name, []):
            request.listener.method_ignored(method, variables)
        request.listener.progress("decompile", 1, 1)
        request.listener.stage_finished("decompile")
        count = self.failures.get(name, 0)
        return TranslationResult(
            elapsed=0.25,
            files=[OutputFile(f"{Path(name).stem}.js", f"// {name}\n")],
            log="translated",
            failures=[f"failure {i} in {name}" for i in range(count)],
        )

    @property
    def translated_names(self) -> List[str]:
        return [Path(r.filename).name for r in self.requests]


class FakeBuilder:
    """Solution builder returning preconfigured output lists."""

    def __init__(self, outputs: Dict[str, List[str]]) -> None:
        self.outputs = outputs
        self.calls: List[tuple] = []

    def build(self, solution_path, configuration, platform, target, log_verbosity) -> BuildResult:
        self.calls.append((solution_path, configuration, platform, target, log_verbosity))
        outputs = self.outputs[Path(solution_path).name]
        return BuildResult(
            solution_path=solution_path,
            output_files=list(outputs),
            all_items_built=[f"item{i}" for i in range(len(outputs))],
        )


class FakeResolver:
    def __init__(self, names: Dict[str, str]) -> None:
        self.names = names

    def resolve(self, assembly_name: str) -> Optional[str]:
        return self.names.get(assembly_name)


class RecordingProfile(BaseProfile):
    """Profile that records every hook invocation."""

    def __init__(self, accepts: bool = False) -> None:
        self.accepts = accepts
        self.skipped: List[str] = []
        self.processed_builds: List[BuildResult] = []
        self.written: List[str] = []

    def applies_to(self, build_result: BuildResult) -> bool:
        return self.accepts

    def process_build_result(self, variables, configuration, build_result) -> None:
        self.processed_builds.append(build_result)

    def process_skipped_assembly(self, configuration, assembly_path, result) -> None:
        self.skipped.append(assembly_path)

    def write_outputs(self, variables, result, output_directory, manifest_prefix) -> None:
        self.written.append(manifest_prefix)


@pytest.fixture
def make_files(tmp_path: Path):
    """Create empty files under ``tmp_path`` and return their paths as strings."""

    def _make(*names: str, directory: Optional[Path] = None) -> List[str]:
        base = directory or tmp_path
        base.mkdir(parents=True, exist_ok=True)
        paths = []
        for name in names:
            path = base / name
            path.write_bytes(b"MZ")
            paths.append(str(path))
        return paths

    return _make


@pytest.fixture
def registry() -> PluginRegistry:
    return PluginRegistry()


@pytest.fixture
def context(registry: PluginRegistry) -> RunContext:
    return RunContext(registry=registry)


@pytest.fixture
def fake_reader_cls():
    return FakeReader


@pytest.fixture
def fake_translator() -> FakeTranslator:
    return FakeTranslator()


@pytest.fixture
def fake_translator_cls():
    return FakeTranslator


@pytest.fixture
def fake_builder_cls():
    return FakeBuilder


@pytest.fixture
def fake_resolver_cls():
    return FakeResolver


@pytest.fixture
def recording_profile_cls():
    return RecordingProfile


@pytest.fixture
def toolchain(fake_translator: FakeTranslator) -> Toolchain:
    return Toolchain(translator=fake_translator, reader=FakeReader({}))
