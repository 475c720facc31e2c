"""Buffered JSON output stream and value encoders built on it."""

__version__ = "0.1.0"
__all__ = ["stream", "encoders"]