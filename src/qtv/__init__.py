"""Branching interactive video player driven by quick-time events."""

__version__ = "0.1.0"
