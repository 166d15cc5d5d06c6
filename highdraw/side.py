"""
Side flag derived from the device location.

The flag only decides on which side of the table the player is drawn; it is
computed once before a session starts and passed through unchanged.
"""

from typing import Optional

# Fixed reference coordinate separating the west side from the east side
REFERENCE_COORDINATE = 34.817549168324334


def is_west_side(coordinate: float, reference: float = REFERENCE_COORDINATE) -> bool:
    """
    Whether a coordinate lies west of the reference value.

    >>> is_west_side(30.0)
    True
    >>> is_west_side(35.2)
    False
    """
    return coordinate < reference


def side_label(west_side: bool) -> str:
    return "West Side" if west_side else "East Side"


def parse_coordinate(value: Optional[str]) -> Optional[float]:
    """
    Parse a coordinate given on the command line or in the environment.

    Returns:
        The coordinate, or None when no usable value was given
    """
    if value is None or not str(value).strip():
        return None
    try:
        coordinate = float(value)
    except ValueError:
        return None
    if not -180.0 <= coordinate <= 180.0:
        return None
    return coordinate
