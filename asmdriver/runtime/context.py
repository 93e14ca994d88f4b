"""Run-scoped state shared across build groups.

Process-wide caches are held here and passed into the orchestrator
explicitly instead of living in module globals:

* ``ProcessedAssemblies`` - insert-only record of skipped assemblies whose
  profile hook already ran.
* ``TypeInfoCache`` - translator type information reused while the
  relevant part of the configuration stays the same.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Hashable, Optional, Set

from asmdriver.plugins.registry import PluginRegistry

logger = logging.getLogger("asmdriver.runtime.context")


class ProcessedAssemblies:
    """Thread-safe, insert-only set of processed skipped assemblies."""

    def __init__(self) -> None:
        self._paths: Set[str] = set()
        self._lock = threading.Lock()

    def claim(self, path: str) -> bool:
        """Record ``path``; return True only for the first claim."""
        with self._lock:
            if path in self._paths:
                return False
            self._paths.add(path)
            return True

    def __contains__(self, path: object) -> bool:
        with self._lock:
            return path in self._paths

    def __len__(self) -> int:
        with self._lock:
            return len(self._paths)


class TypeInfoCache:
    """Single-slot cache keyed by a hashable configuration view.

    The cached resource is replaced, and the old one closed, whenever a
    lookup arrives with a different key.
    """

    def __init__(self) -> None:
        self._key: Optional[Hashable] = None
        self._value: Any = None
        self._lock = threading.Lock()

    def get(self, key: Hashable, factory: Callable[[], Any]) -> Any:
        with self._lock:
            if self._value is not None and self._key == key:
                logger.debug("Reusing cached type information")
                return self._value

            self._dispose()
            self._value = factory()
            self._key = key
            return self._value

    def invalidate(self) -> None:
        with self._lock:
            self._dispose()

    def _dispose(self) -> None:
        if self._value is not None:
            close = getattr(self._value, "close", None)
            if callable(close):
                close()
        self._key = None
        self._value = None


@dataclass
class RunContext:
    """Explicit state for one driver run.

    Args:
        registry: Registered profiles and analyzers.
        processed_assemblies: Skipped assemblies already handed to a profile.
        type_info_cache: Reusable translator type information.
    """

    registry: PluginRegistry
    processed_assemblies: ProcessedAssemblies = field(default_factory=ProcessedAssemblies)
    type_info_cache: TypeInfoCache = field(default_factory=TypeInfoCache)

    def close(self) -> None:
        self.type_info_cache.invalidate()


__all__ = ["ProcessedAssemblies", "TypeInfoCache", "RunContext"]
