"""Assembly reference graph and build-set deduplication."""

from asmdriver.graph.references import (
    AssemblyReferenceGraph,
    DeduplicationResult,
    deduplicate,
    read_candidates,
)

__all__ = [
    "AssemblyReferenceGraph",
    "DeduplicationResult",
    "deduplicate",
    "read_candidates",
]
