"""Proxy mode popup."""

__version__ = "0.3.0"
