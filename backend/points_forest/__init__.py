"""Points Forest reward service."""

__version__ = "1.0.0"
