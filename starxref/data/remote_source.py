"""
Remote SAO cross-match queries against SIMBAD (TAP) and VizieR.

Two independent query shapes are supported:

* an ADQL identifier cross-match on SIMBAD, mapping a Gaia DR3 designation to
  the SAO identifier of the same object;
* a VizieR cone search on the SAO catalog around a sky position.

A third VizieR query fetches a full SAO entry by number for LocalCatalogCache.
Every transport failure (connection error, timeout, non-2xx status) is logged
and reported as "not found"; nothing is retried.
"""

import asyncio
import logging
from typing import Dict, Optional

import aiohttp

from .extraction import (
    extract_tagged_integer, extract_first_cell_integer,
    extract_field_names, extract_first_row_cells
)
from .source import CrossMatchEntry, QueryPosition
from ..core.spatial import arcsec_to_deg
from ..exceptions import InvalidPositionError
from ..config import (
    SIMBAD_TAP_URL, VIZIER_VOTABLE_URL, SIMBAD_TAP_REQUEST, SIMBAD_TAP_LANG,
    SIMBAD_TAP_FORMAT, VIZIER_SAO_CATALOG, SAO_IDENTIFIER_TAG,
    GAIA_DESIGNATION_PREFIX, VIZIER_CONE_COLUMNS, VIZIER_ENTRY_COLUMNS,
    VIZIER_MAX_RESULTS, DEFAULT_SIMBAD_TIMEOUT_SECONDS,
    DEFAULT_VIZIER_TIMEOUT_SECONDS, DEFAULT_COORDINATE_SEARCH_RADIUS_ARCSEC,
    URL_COORDINATE_DECIMALS, URL_RADIUS_DECIMALS
)

log = logging.getLogger(__name__)

_UNRESERVED = frozenset(
    "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_.~"
)


def encode_query_component(text: str) -> str:
    """
    Percent-encode a query string value.

    ASCII letters, digits and ``- _ . ~`` pass through, a space becomes ``+``
    and every other byte of the UTF-8 encoding becomes ``%XX`` (uppercase hex).
    """
    encoded = []
    for byte in text.encode('utf-8'):
        char = chr(byte)
        if char in _UNRESERVED:
            encoded.append(char)
        elif char == ' ':
            encoded.append('+')
        else:
            encoded.append(f"%{byte:02X}")
    return "".join(encoded)


def build_simbad_query(source_id: int,
                       provider_name: str = GAIA_DESIGNATION_PREFIX,
                       tag: str = SAO_IDENTIFIER_TAG) -> str:
    """ADQL query joining ident to ids, returning identifiers starting with tag for one external designation."""
    return (
        "SELECT ident.id FROM ident "
        "JOIN ids ON ident.oidref = ids.oidref "
        f"WHERE ids.id = '{provider_name} {source_id}' "
        f"AND ident.id LIKE '{tag}%'"
    )


def _format_coordinate(value: float) -> str:
    return f"{value:.{URL_COORDINATE_DECIMALS}f}"


def _format_radius(value: float) -> str:
    return f"{value:.{URL_RADIUS_DECIMALS}f}"


class RemoteCrossMatchClient:
    """
    Client for the SIMBAD and VizieR services used as remote resolution tiers.

    The aiohttp session is owned by the caller, which keeps connection pooling
    and shutdown under its control and lets tests substitute a fake session.
    """

    def __init__(self,
                 session: aiohttp.ClientSession,
                 simbad_timeout: float = DEFAULT_SIMBAD_TIMEOUT_SECONDS,
                 vizier_timeout: float = DEFAULT_VIZIER_TIMEOUT_SECONDS,
                 simbad_url: str = SIMBAD_TAP_URL,
                 vizier_url: str = VIZIER_VOTABLE_URL):
        """
        Initialize the remote client.

        Args:
            session: aiohttp ClientSession for making HTTP requests
            simbad_timeout: Total timeout in seconds for SIMBAD identifier queries
            vizier_timeout: Total timeout in seconds for VizieR queries
            simbad_url: SIMBAD TAP synchronous endpoint
            vizier_url: VizieR VOTable endpoint
        """
        self.session = session
        self.simbad_timeout = simbad_timeout
        self.vizier_timeout = vizier_timeout
        self.simbad_url = simbad_url
        self.vizier_url = vizier_url

    def build_simbad_url(self, source_id: int) -> str:
        encoded = encode_query_component(build_simbad_query(source_id))
        return (f"{self.simbad_url}?REQUEST={SIMBAD_TAP_REQUEST}&LANG={SIMBAD_TAP_LANG}"
                f"&FORMAT={SIMBAD_TAP_FORMAT}&QUERY={encoded}")

    def build_cone_url(self, position: QueryPosition, radius_arcsec: float) -> str:
        radius_deg = arcsec_to_deg(radius_arcsec)
        return (f"{self.vizier_url}?-source={VIZIER_SAO_CATALOG}"
                f"&-c={_format_coordinate(position.ra_deg)}+{_format_coordinate(position.dec_deg)}"
                f"&-c.rs={_format_radius(radius_deg)}"
                f"&-out.max={VIZIER_MAX_RESULTS}"
                f"&-out={','.join(VIZIER_CONE_COLUMNS)}")

    def build_entry_url(self, sao_number: int) -> str:
        return (f"{self.vizier_url}?-source={VIZIER_SAO_CATALOG}"
                f"&-out.max={VIZIER_MAX_RESULTS}"
                f"&SAO={int(sao_number)}"
                f"&-out={','.join(VIZIER_ENTRY_COLUMNS)}")

    async def query_simbad_for_sao(self, source_id: int) -> Optional[int]:
        """
        Ask SIMBAD for the SAO identifier of a Gaia DR3 source.

        Args:
            source_id: Gaia DR3 source_id

        Returns:
            The SAO number, or None if SIMBAD has none or the query failed.
        """
        url = self.build_simbad_url(source_id)
        body = await self._fetch(url, self.simbad_timeout, f"SIMBAD cross-match for Gaia DR3 {source_id}")
        if body is None:
            return None

        sao_number = extract_tagged_integer(body, SAO_IDENTIFIER_TAG)
        if sao_number is None:
            log.debug(f"No SAO identifier in SIMBAD response for Gaia DR3 {source_id}")
        else:
            log.debug(f"SIMBAD matched Gaia DR3 {source_id} to SAO {sao_number}")
        return sao_number

    async def cross_match_vizier(self, position: QueryPosition,
                                 radius_arcsec: float = DEFAULT_COORDINATE_SEARCH_RADIUS_ARCSEC) -> Optional[int]:
        """
        Cone search on the VizieR SAO catalog.

        Args:
            position: Search center (J2000, degrees)
            radius_arcsec: Search radius in arcseconds

        Returns:
            The SAO number of the first row, or None if nothing matched or the query failed.
        """
        if not isinstance(position, QueryPosition):
            raise InvalidPositionError(f"Expected QueryPosition, got {type(position).__name__}")

        url = self.build_cone_url(position, radius_arcsec)
        label = f"VizieR cone search at ({position.ra_deg:.5f}, {position.dec_deg:+.5f}) r={radius_arcsec}\""
        body = await self._fetch(url, self.vizier_timeout, label)
        if body is None:
            return None

        sao_number = extract_first_cell_integer(body)
        if sao_number is None:
            log.debug(f"No SAO entry found by {label}")
        return sao_number

    async def query_sao_entry(self, sao_number: int) -> Optional[CrossMatchEntry]:
        """
        Fetch a complete SAO catalog entry by number from VizieR.

        Returns:
            CrossMatchEntry, or None if the number is unknown or the response is unusable.
        """
        url = self.build_entry_url(sao_number)
        body = await self._fetch(url, self.vizier_timeout, f"VizieR lookup of SAO {sao_number}")
        if body is None:
            return None

        fields = extract_field_names(body)
        cells = extract_first_row_cells(body)
        if not fields or not cells:
            log.debug(f"SAO {sao_number} not found on VizieR")
            return None

        row: Dict[str, str] = dict(zip(fields, cells))
        ra = extract_float_value(row.get('_RAJ2000'))
        dec = extract_float_value(row.get('_DEJ2000'))
        if ra is None or dec is None:
            log.warning(f"VizieR entry for SAO {sao_number} lacks usable coordinates")
            return None

        try:
            position = QueryPosition(ra, dec)
        except InvalidPositionError as e:
            log.warning(f"VizieR entry for SAO {sao_number} has invalid coordinates: {e}")
            return None

        returned_number = extract_int_value(row.get('SAO'))
        return CrossMatchEntry(
            sao_number=returned_number if returned_number is not None else int(sao_number),
            position=position,
            magnitude=extract_float_value(row.get('Vmag')),
            spectral_type=extract_string_value(row.get('SpType')),
            name=None
        )

    async def _fetch(self, url: str, timeout: float, label: str) -> Optional[str]:
        """
        Single GET attempt. Returns the body text, or None on any transport failure.
        """
        log.debug(f"Requesting {label}: {url}")
        try:
            async with self.session.get(url, timeout=aiohttp.ClientTimeout(total=timeout)) as response:
                response.raise_for_status()
                return await response.text()
        except asyncio.TimeoutError:
            log.warning(f"{label} timed out after {timeout}s")
        except aiohttp.ClientResponseError as e:
            log.warning(f"{label} failed with HTTP status {e.status}")
        except aiohttp.ClientError as e:
            log.warning(f"{label} failed: {type(e).__name__}: {e}")
        except UnicodeDecodeError as e:
            log.warning(f"{label} returned an undecodable body: {e}")
        return None


# Helper functions for VOTable cell conversion
def extract_float_value(raw: Optional[str]) -> Optional[float]:
    """Extract float value from a VOTable cell."""
    if raw is None or not str(raw).strip():
        return None
    try:
        return float(raw)
    except (ValueError, TypeError):
        return None


def extract_int_value(raw: Optional[str]) -> Optional[int]:
    """Extract int value from a VOTable cell."""
    if raw is None or not str(raw).strip():
        return None
    try:
        return int(str(raw).strip())
    except (ValueError, TypeError):
        return None


def extract_string_value(raw: Optional[str]) -> Optional[str]:
    """Extract string value from a VOTable cell."""
    if raw is None:
        return None
    value = str(raw).strip()
    return value or None
