# starxref/utils/coordinate_parsing.py
"""
Coordinate parsing utilities for command line arguments.

This module provides parsing and validation functions for command line
arguments that require special handling beyond argparse's built-in capabilities.
"""

import logging
import math

from astropy.coordinates import SkyCoord
import astropy.units as u

from ..data.source import QueryPosition
from ..exceptions import ConfigurationError, InvalidPositionError
from ..config import MAX_SEARCH_RADIUS_ARCSEC, ASTROPY_FRAME

log = logging.getLogger(__name__)


def parse_position(position_str: str) -> QueryPosition:
    """
    Parse a "RA,DEC" position string.

    Decimal degrees are tried first; otherwise both parts are handed to astropy
    as sexagesimal values (RA in hours, Dec in degrees).

    Args:
        position_str: Comma-separated position (e.g., "10.684,41.269" or
                      "00h42m44.3s,+41d16m09s")

    Returns:
        QueryPosition in degrees

    Raises:
        ConfigurationError: If the format is invalid or values are out of bounds

    Examples:
        >>> parse_position("10.684,41.269")
        QueryPosition(ra_deg=10.684, dec_deg=41.269)
    """
    if not position_str or not position_str.strip():
        raise ConfigurationError("Empty position provided")

    parts = position_str.strip().split(',')
    if len(parts) != 2:
        raise ConfigurationError(
            f"Invalid position format. Expected 'RA,DEC' (e.g., '10.684,41.269'), got '{position_str}'"
        )

    ra_text, dec_text = parts[0].strip(), parts[1].strip()
    try:
        ra_deg = float(ra_text)
        dec_deg = float(dec_text)
    except ValueError:
        ra_deg, dec_deg = _parse_sexagesimal(ra_text, dec_text, position_str)

    try:
        return QueryPosition(ra_deg, dec_deg)
    except InvalidPositionError as e:
        raise ConfigurationError(f"Invalid position '{position_str}': {e}") from e


def _parse_sexagesimal(ra_text: str, dec_text: str, original: str):
    try:
        coord = SkyCoord(ra_text, dec_text, unit=(u.hourangle, u.deg), frame=ASTROPY_FRAME)
    except (ValueError, TypeError) as e:
        raise ConfigurationError(
            f"Invalid coordinate values in '{original}'. "
            f"Use decimal degrees or sexagesimal RA/Dec"
        ) from e
    log.debug(f"Parsed sexagesimal position '{original}' as "
              f"({coord.ra.deg:.6f}, {coord.dec.deg:+.6f})")
    return float(coord.ra.deg), float(coord.dec.deg)


def parse_search_radius(radius_str: str) -> float:
    """
    Parse and validate a search radius in arcseconds.

    Raises:
        ConfigurationError: If the value is not a finite number in [0, MAX_SEARCH_RADIUS_ARCSEC]
    """
    try:
        radius = float(radius_str)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Search radius must be a number, got '{radius_str}'") from e

    if not math.isfinite(radius) or radius < 0:
        raise ConfigurationError(f"Search radius must be a finite, non-negative number, got {radius}")
    if radius > MAX_SEARCH_RADIUS_ARCSEC:
        raise ConfigurationError(
            f"Search radius {radius}\" exceeds the maximum of {MAX_SEARCH_RADIUS_ARCSEC}\""
        )
    if radius == 0:
        log.warning("Search radius of 0\" only matches exact positions")
    return radius
