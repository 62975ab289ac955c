"""buff: package registry client."""

__version__ = "0.1.0"
