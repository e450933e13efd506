"""Shared listening rooms with a single server-authoritative playback timeline."""

__version__ = "0.1.0"
