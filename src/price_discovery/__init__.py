"""Price discovery and caching for mandi commodity prices."""

__version__ = "0.1.0"
