"""Prompt placement: turn authored positioning data into screen fractions."""

from typing import Any, Mapping, Optional, Tuple

from ..models.scene import Placement

DEFAULT_MARGIN = 0.1

# Named positions as (x, y) fractions of the screen, origin top-left.
POSITIONS = {
    "center": (0.5, 0.5),
    "top": (0.5, DEFAULT_MARGIN),
    "bottom": (0.5, 1.0 - DEFAULT_MARGIN),
    "left": (DEFAULT_MARGIN, 0.5),
    "right": (1.0 - DEFAULT_MARGIN, 0.5),
    "top-left": (DEFAULT_MARGIN, DEFAULT_MARGIN),
    "top-right": (1.0 - DEFAULT_MARGIN, DEFAULT_MARGIN),
    "bottom-left": (DEFAULT_MARGIN, 1.0 - DEFAULT_MARGIN),
    "bottom-right": (1.0 - DEFAULT_MARGIN, 1.0 - DEFAULT_MARGIN),
}


def parse_offset(value: Any) -> float:
    """Parse a CSS-like offset ("30%", "0.3", 0.3) into a fraction.

    Raises:
        ValueError: If the value is not a percentage or a number in [0, 1].
    """
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("%"):
            fraction = float(text[:-1]) / 100.0
        else:
            fraction = float(text)
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        fraction = float(value)
    else:
        raise ValueError(f"Invalid offset: {value!r}")

    if not 0.0 <= fraction <= 1.0:
        raise ValueError(f"Offset out of range: {value!r}")
    return fraction


def _axis(placement: Mapping[str, Any], near: str, far: str) -> Optional[float]:
    if near in placement:
        return parse_offset(placement[near])
    if far in placement:
        return 1.0 - parse_offset(placement[far])
    return None


def resolve_placement(placement: Placement) -> Tuple[float, float]:
    """Resolve placement data into (x, y) screen fractions.

    Args:
        placement: One of:
            - None: center of screen
            - a named position: "center", "top", "bottom", "left", "right",
              "top-left", "top-right", "bottom-left", "bottom-right"
            - a mapping with "top"/"bottom" and "left"/"right" offsets as
              percentages or fractions, e.g. {"top": "30%", "left": "30%"}.
              A missing axis is centered.

    Returns:
        Fractions of screen width and height.

    Raises:
        ValueError: If the placement is not understood.
    """
    if placement is None:
        return POSITIONS["center"]

    if isinstance(placement, str):
        if placement not in POSITIONS:
            raise ValueError(f"Unknown position: {placement}. Available: {list(POSITIONS.keys())}")
        return POSITIONS[placement]

    if isinstance(placement, Mapping):
        x = _axis(placement, "left", "right")
        y = _axis(placement, "top", "bottom")
        return (0.5 if x is None else x, 0.5 if y is None else y)

    raise ValueError(f"Unsupported placement: {placement!r}")


def describe_placement(placement: Placement) -> str:
    """Return a short human-readable placement, e.g. "30% across, 30% down"."""
    try:
        x, y = resolve_placement(placement)
    except ValueError:
        return "unplaced"
    return f"{x:.0%} across, {y:.0%} down"
