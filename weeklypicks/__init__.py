"""Weekly stock picks publishing service."""

__version__ = "1.0.0"
