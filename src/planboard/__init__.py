"""planboard: weekly calendar with automatic reminder placement."""

__version__ = "0.1.0"
