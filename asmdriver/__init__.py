"""asmdriver - configuration cascade and build-set resolution for assembly translation."""

__version__ = "0.4.0"

__all__ = ["__version__"]
