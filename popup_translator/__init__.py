"""Streaming translation core of the popup translator."""

__version__ = "0.1.0"
