"""Profiles, analyzers and their registry."""

from asmdriver.plugins.base import BaseAnalyzer, BaseProfile
from asmdriver.plugins.default_profile import DefaultProfile
from asmdriver.plugins.registry import PluginRegistry

__all__ = ["BaseAnalyzer", "BaseProfile", "DefaultProfile", "PluginRegistry"]
