"""
Angular separation and radius tests for equatorial positions.

Separations use the haversine form of the great-circle distance, which stays
accurate for arcsecond-scale separations and accounts for the cos(dec)
compression of right ascension near the poles.
"""

import math
from typing import Union

import numpy as np

from ..config import ARCSEC_PER_DEGREE, MAX_DEC_DEG
from ..data.source import QueryPosition


def arcsec_to_deg(arcsec: float) -> float:
    """Convert arcseconds to degrees."""
    return arcsec / ARCSEC_PER_DEGREE


def angular_separation_arcsec(a: QueryPosition, b: QueryPosition) -> float:
    """
    Great-circle separation between two equatorial positions.

    Args:
        a: First position (J2000, degrees)
        b: Second position (J2000, degrees)

    Returns:
        Separation in arcseconds.
    """
    ra1, dec1 = math.radians(a.ra_deg), math.radians(a.dec_deg)
    ra2, dec2 = math.radians(b.ra_deg), math.radians(b.dec_deg)

    sin_ddec = math.sin((dec2 - dec1) / 2.0)
    sin_dra = math.sin((ra2 - ra1) / 2.0)
    h = sin_ddec ** 2 + math.cos(dec1) * math.cos(dec2) * sin_dra ** 2
    # Rounding can push h marginally outside [0, 1]
    h = min(1.0, max(0.0, h))

    return math.degrees(2.0 * math.asin(math.sqrt(h))) * ARCSEC_PER_DEGREE


def within_radius(a: QueryPosition, b: QueryPosition, radius_arcsec: float) -> bool:
    """True if b lies within radius_arcsec of a (boundary inclusive)."""
    return angular_separation_arcsec(a, b) <= radius_arcsec


def angular_separation_arcsec_array(ra_deg: Union[np.ndarray, list],
                                    dec_deg: Union[np.ndarray, list],
                                    position: QueryPosition) -> np.ndarray:
    """
    Vectorised haversine separation of many positions from a single one.

    Args:
        ra_deg: Candidate right ascensions in degrees
        dec_deg: Candidate declinations in degrees
        position: Reference position

    Returns:
        Array of separations in arcseconds, same length as the inputs.
    """
    ra = np.radians(np.asarray(ra_deg, dtype=float))
    dec = np.radians(np.asarray(dec_deg, dtype=float))
    ra0 = math.radians(position.ra_deg)
    dec0 = math.radians(position.dec_deg)

    h = (np.sin((dec - dec0) / 2.0) ** 2
         + np.cos(dec) * math.cos(dec0) * np.sin((ra - ra0) / 2.0) ** 2)
    h = np.clip(h, 0.0, 1.0)

    return np.degrees(2.0 * np.arcsin(np.sqrt(h))) * ARCSEC_PER_DEGREE


def ra_search_window_deg(dec_deg: float, radius_arcsec: float) -> float:
    """
    Half-width in RA (degrees) of the box that encloses a cone of the given radius.

    Returns 180.0 when the cone reaches a pole, meaning every RA must be searched.
    """
    radius_deg = arcsec_to_deg(radius_arcsec)
    if abs(dec_deg) + radius_deg >= MAX_DEC_DEG:
        return 180.0

    # Widest point of the cone sits at the declination nearest the pole
    cos_dec = math.cos(math.radians(abs(dec_deg) + radius_deg))
    return min(180.0, radius_deg / cos_dec)
