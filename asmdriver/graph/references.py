"""Assembly reference graph and build-set deduplication.

Translating an executable also translates everything it references, so a
library that is transitively reachable from another executable in the
same build set does not need to be scheduled on its own.

The graph is a ``networkx.DiGraph`` whose nodes are assembly identities
(full names) and whose edges point from an assembly to each identity it
references. Candidates are attached to their identity node through the
``candidate`` node attribute.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set

import networkx as nx

from asmdriver.errors import UnreadableAssemblyError
from asmdriver.runtime.protocols import MetadataReader
from asmdriver.runtime.results import AssemblyMetadata

logger = logging.getLogger("asmdriver.graph.references")


@dataclass
class DeduplicationResult:
    """Partition of a candidate set.

    Attributes:
        keep: Candidates to translate, in candidate order.
        skip: Candidates produced anyway by some executable, in candidate order.
        unreadable: Candidates that could not be read as assemblies; they
            appear in neither ``keep`` nor ``skip``.
        referenced_by: Skipped path -> the executable that pulled it in.
    """

    keep: List[str] = field(default_factory=list)
    skip: List[str] = field(default_factory=list)
    unreadable: List[str] = field(default_factory=list)
    referenced_by: Dict[str, str] = field(default_factory=dict)


class AssemblyReferenceGraph:
    """Reference relation between the readable members of a candidate set."""

    def __init__(self, assemblies: Iterable[AssemblyMetadata]) -> None:
        self.assemblies: List[AssemblyMetadata] = list(assemblies)
        self._graph = nx.DiGraph()
        self._by_identity: Dict[str, AssemblyMetadata] = {}

        for assembly in self.assemblies:
            # First candidate wins when two files share one identity.
            self._by_identity.setdefault(assembly.full_name, assembly)
            self._graph.add_node(assembly.full_name)

        for assembly in self.assemblies:
            for reference in assembly.references:
                self._graph.add_edge(assembly.full_name, reference)

        for identity, assembly in self._by_identity.items():
            self._graph.nodes[identity]["candidate"] = assembly.path

    @property
    def graph(self) -> nx.DiGraph:
        return self._graph

    @property
    def roots(self) -> List[AssemblyMetadata]:
        """Executable candidates, in candidate order."""
        return [assembly for assembly in self.assemblies if assembly.is_executable]

    def candidate_for(self, identity: str) -> Optional[AssemblyMetadata]:
        return self._by_identity.get(identity)

    def closure(self, root: AssemblyMetadata) -> Set[str]:
        """Identities transitively referenced from ``root``.

        Work-stack traversal: every reference is recorded; references that
        match another candidate are pushed to continue the walk. A
        candidate is expanded at most once, so shared dependencies and
        reference cycles are harmless.
        """
        references: Set[str] = set()
        expanded: Set[str] = set()
        stack: List[str] = [root.full_name]

        while stack:
            identity = stack.pop()
            if identity in expanded:
                continue
            expanded.add(identity)

            for reference in self._graph.successors(identity):
                references.add(reference)
                if reference in self._by_identity and reference not in expanded:
                    stack.append(reference)

        return references


def read_candidates(
    candidates: Iterable[str], reader: MetadataReader
) -> tuple[List[AssemblyMetadata], List[str]]:
    """Read metadata for each candidate, separating unreadable files."""
    readable: List[AssemblyMetadata] = []
    unreadable: List[str] = []

    for path in candidates:
        try:
            readable.append(reader.read(path))
        except UnreadableAssemblyError as exc:
            logger.warning('Invalid assembly: "%s". It will not be loaded.', path)
            if exc.reason:
                logger.warning("    Reason: %s", exc.reason.strip())
            unreadable.append(path)

    return readable, unreadable


def deduplicate(candidates: Iterable[str], reader: MetadataReader) -> DeduplicationResult:
    """Split ``candidates`` into files to translate and redundant files.

    A non-executable candidate is redundant when it lies in the reference
    closure of an executable candidate other than itself. Executables are
    always kept. Unreadable files are reported and excluded from both
    lists.

    Args:
        candidates: Candidate file paths, in scheduling order.
        reader: Metadata reader used to obtain identities and references.

    Returns:
        DeduplicationResult partitioning the candidates.
    """
    assemblies, unreadable = read_candidates(candidates, reader)
    graph = AssemblyReferenceGraph(assemblies)

    closures = [(root, graph.closure(root)) for root in graph.roots]
    result = DeduplicationResult(unreadable=unreadable)

    for assembly in assemblies:
        if assembly.path in result.skip or assembly.path in result.keep:
            continue

        referencing_root: Optional[AssemblyMetadata] = None
        if not assembly.is_executable:
            for root, closure in closures:
                if root.path == assembly.path:
                    continue
                if assembly.full_name in closure:
                    referencing_root = root
                    break

        if referencing_root is None:
            result.keep.append(assembly.path)
            continue

        logger.info(
            "Not translating '%s' directly because '%s' references it.",
            Path(assembly.path).name,
            Path(referencing_root.path).name,
        )
        result.skip.append(assembly.path)
        result.referenced_by[assembly.path] = referencing_root.path

    return result


__all__ = [
    "AssemblyReferenceGraph",
    "DeduplicationResult",
    "deduplicate",
    "read_candidates",
]
