"""Presentation layer: the adapter contract and its terminal implementation."""

from .base import PresentationAdapter
from .media import MediaPlayer, ClipPlayer, SilentPlayer, probe_duration
from .console import MediaPresentation, ConsolePresentation, ConsoleInput
from .placement import POSITIONS, resolve_placement, describe_placement

__all__ = [
    "PresentationAdapter",
    # Media
    "MediaPlayer",
    "ClipPlayer",
    "SilentPlayer",
    "probe_duration",
    # Console
    "MediaPresentation",
    "ConsolePresentation",
    "ConsoleInput",
    # Placement
    "POSITIONS",
    "resolve_placement",
    "describe_placement",
]
