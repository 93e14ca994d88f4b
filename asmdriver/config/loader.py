"""Helpers for loading build configuration layers from TOML/JSON sources.

``load_configuration`` accepts:

* None -> empty ``Configuration`` (every setting inherits)
* dict -> ``Configuration.from_dict``
* Path / path-like string -> load a .toml/.json document from disk
* Inline JSON/TOML strings

A malformed source raises ``ConfigurationError``; there is no
best-effort partial configuration.
"""

from __future__ import annotations

import json
import logging
import tomllib
from importlib import resources
from pathlib import Path
from typing import Any, Dict, Optional, Union

from asmdriver.config.schema import Configuration
from asmdriver.errors import ConfigurationError
from asmdriver.utils.path_utils import shorten_path

logger = logging.getLogger("asmdriver.config.loader")

ConfigSource = Union[str, Path, Dict[str, Any], None]

DEFAULTS_RESOURCE = "defaults.toml"


def _detect_format(text: str, suffix: str = "") -> str:
    suffix = suffix.lower()
    if suffix in {".toml", ".tml"}:
        return "toml"
    if suffix == ".json":
        return "json"
    # A leading "[" is a TOML table header; top-level JSON must be an object.
    return "json" if text.lstrip().startswith("{") else "toml"


def _parse(text: str, fmt: str, origin: str) -> Dict[str, Any]:
    try:
        if fmt == "json":
            data = json.loads(text)
        else:
            data = tomllib.loads(text)
    except (json.JSONDecodeError, tomllib.TOMLDecodeError) as exc:
        raise ConfigurationError(f"malformed {fmt.upper()}: {exc}", origin) from exc

    if not isinstance(data, dict):
        raise ConfigurationError("top-level configuration must be a mapping", origin)
    return data


def load_configuration_file(path: Union[str, Path]) -> Configuration:
    """Load one configuration file and record its provenance.

    Args:
        path: Path to a JSON or TOML document. Files carrying the
            ``.buildconfig`` extension are sniffed for their format.

    Returns:
        Configuration whose ``path`` is the file's directory and whose
        ``contributing_paths`` holds the file's absolute path.

    Raises:
        ConfigurationError: If the file cannot be read or parsed.
    """
    full_path = Path(path).resolve()
    try:
        text = full_path.read_text(encoding="utf-8")
    except OSError as exc:
        logger.error("Error reading '%s': %s", path, exc)
        raise ConfigurationError(f"cannot read file: {exc}", str(path)) from exc

    fmt = _detect_format(text, full_path.suffix)
    try:
        config = Configuration.from_dict(_parse(text, fmt, str(full_path)), str(full_path))
    except ConfigurationError as exc:
        logger.error("Error reading '%s': %s", shorten_path(str(full_path)), exc)
        raise

    config.path = str(full_path.parent)
    config.contributing_paths = [str(full_path)]
    logger.info("Applied settings from '%s'.", shorten_path(str(full_path)))
    return config


def load_configuration(source: ConfigSource) -> Configuration:
    """Load a Configuration layer from various sources.

    Args:
        source: One of:
            * None: returns an empty Configuration
            * dict: treated as an already-parsed configuration mapping
            * str/Path: either a filesystem path to a configuration file
              or an inline TOML/JSON string (auto-detected)

    Returns:
        Configuration instance.
    """
    if source is None:
        logger.debug("No config source provided; using an empty configuration")
        return Configuration()

    if isinstance(source, dict):
        logger.debug("Loading Configuration from provided dict")
        return Configuration.from_dict(source, "<dict>")

    if isinstance(source, (str, Path)):
        path = Path(source)
        try:
            is_file = path.is_file()
        except (OSError, ValueError):
            is_file = False
        if is_file:
            return load_configuration_file(path)

        text = str(source)
        fmt = _detect_format(text)
        logger.debug("Loading configuration from inline %s string", fmt)
        return Configuration.from_dict(_parse(text, fmt, "<inline>"), "<inline>")

    raise TypeError(f"Unsupported config source type: {type(source)!r}")


def load_defaults() -> Configuration:
    """Load the built-in defaults shipped with the package."""
    resource = resources.files("asmdriver.config").joinpath(DEFAULTS_RESOURCE)
    with resources.as_file(resource) as defaults_path:
        config = load_configuration_file(defaults_path)
    return config


__all__ = [
    "ConfigSource",
    "load_configuration",
    "load_configuration_file",
    "load_defaults",
]
