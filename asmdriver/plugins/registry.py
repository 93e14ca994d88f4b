"""Registry of profiles and analyzers.

Plugins are registered explicitly (``register_profile``), loaded from a
``module:attribute`` spec, or discovered through package entry points.
Entry-point discovery happens only at the process boundary (CLI start-up);
the orchestrator sees nothing but the registry.
"""

# Entry-point loading logs and skips broken plugins so one bad package cannot stop a build.
# pylint: disable=broad-exception-caught

from __future__ import annotations

import importlib
import logging
from importlib.metadata import entry_points
from typing import Any, Dict, List, Optional, Union

from asmdriver.errors import ProfileNotFoundError
from asmdriver.plugins.base import BaseAnalyzer, BaseProfile
from asmdriver.plugins.default_profile import DefaultProfile
from asmdriver.runtime.results import BuildResult

logger = logging.getLogger("asmdriver.plugins.registry")

PROFILE_ENTRY_POINT_GROUP = "asmdriver.profiles"
ANALYZER_ENTRY_POINT_GROUP = "asmdriver.analyzers"


def import_object(spec: str) -> Any:
    """Import ``module:attribute`` (or ``module.attribute``)."""
    if ":" in spec:
        module_name, _, attr_path = spec.partition(":")
    else:
        module_name, _, attr_path = spec.rpartition(".")
    if not module_name or not attr_path:
        raise ValueError(f"Invalid object spec '{spec}' (expected module:attribute)")

    obj: Any = importlib.import_module(module_name)
    for attr in attr_path.split("."):
        obj = getattr(obj, attr)
    return obj


def _instantiate(obj: Any) -> Any:
    return obj() if isinstance(obj, type) else obj


class PluginRegistry:
    """Profiles and analyzers available to a run, in registration order."""

    _instance: Optional["PluginRegistry"] = None

    def __init__(self, default_profile: Optional[BaseProfile] = None) -> None:
        """Initialize the registry.

        Args:
            default_profile: Profile used when none applies; defaults to
                ``DefaultProfile``.
        """
        self._profiles: Dict[str, BaseProfile] = {}
        self._analyzers: Dict[str, BaseAnalyzer] = {}
        self.default_profile: BaseProfile = default_profile or DefaultProfile()

    @classmethod
    def get_instance(cls) -> "PluginRegistry":
        """Get the process-wide registry used by the CLI."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def register_profile(self, profile: Union[BaseProfile, type]) -> BaseProfile:
        instance = _instantiate(profile)
        if not isinstance(instance, BaseProfile):
            raise TypeError(f"{instance!r} is not a profile")
        if instance.name in self._profiles:
            logger.warning("Overwriting existing profile '%s'", instance.name)
        self._profiles[instance.name] = instance
        logger.debug("Registered profile '%s'", instance.name)
        return instance

    def register_analyzer(self, analyzer: Union[BaseAnalyzer, type]) -> BaseAnalyzer:
        instance = _instantiate(analyzer)
        if not isinstance(instance, BaseAnalyzer):
            raise TypeError(f"{instance!r} is not an analyzer")
        if instance.name in self._analyzers:
            logger.warning("Overwriting existing analyzer '%s'", instance.name)
        self._analyzers[instance.name] = instance
        logger.debug("Registered analyzer '%s'", instance.name)
        return instance

    def get_profile(self, name: str) -> Optional[BaseProfile]:
        if name in self._profiles:
            return self._profiles[name]
        if name == self.default_profile.name:
            return self.default_profile
        return None

    def list_profiles(self) -> List[BaseProfile]:
        return list(self._profiles.values())

    def list_analyzers(self) -> List[BaseAnalyzer]:
        return list(self._analyzers.values())

    def set_default_profile(self, name: str) -> None:
        """Make the registered profile ``name`` the fallback profile."""
        profile = self.get_profile(name)
        if profile is None:
            raise ProfileNotFoundError(name)
        self.default_profile = profile

    def select_profile(self, build_result: BuildResult) -> BaseProfile:
        """First registered profile accepting ``build_result``, else the default."""
        for profile in self._profiles.values():
            if profile.applies_to(build_result):
                logger.info("Auto-selected the profile '%s' for this project.", profile.name)
                return profile
        return self.default_profile

    def load_from_module(self, spec: str) -> None:
        """Register every profile/analyzer exported by ``module:attribute``."""
        obj = import_object(spec)
        candidates = obj if isinstance(obj, (list, tuple)) else [obj]
        for candidate in candidates:
            self._register_any(candidate, spec)

    def load_entry_points(self, group: str) -> int:
        """Register plugins advertised under an entry-point group.

        Returns:
            Number of plugins registered.
        """
        loaded = 0
        for ep in entry_points(group=group):
            try:
                self._register_any(ep.load(), ep.name)
                loaded += 1
            except Exception as exc:  # noqa: BLE001
                logger.warning("Failed to load plugin '%s': %s", ep.name, exc)
        return loaded

    def _register_any(self, candidate: Any, origin: str) -> None:
        instance = _instantiate(candidate)
        if isinstance(instance, BaseProfile):
            self.register_profile(instance)
        elif isinstance(instance, BaseAnalyzer):
            self.register_analyzer(instance)
        else:
            raise TypeError(f"'{origin}' is neither a profile nor an analyzer")


__all__ = [
    "ANALYZER_ENTRY_POINT_GROUP",
    "PROFILE_ENTRY_POINT_GROUP",
    "PluginRegistry",
    "import_object",
]
