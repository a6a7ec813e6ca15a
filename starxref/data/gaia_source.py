"""
Gaia DR3 archive as the primary astrometric provider.

Cone and identifier queries go through astroquery's Gaia TAP interface; names
are first mapped to a Gaia DR3 designation with SIMBAD's identifier list.
astroquery is synchronous, so every call runs in a worker thread.
"""

import asyncio
import logging
import re
from typing import Any, List, Optional

import numpy as np
from astroquery.gaia import Gaia
from astroquery.simbad import Simbad

from .source import AstrometricProvider, CelestialObject, QueryPosition
from ..exceptions import InvalidPositionError, ProviderUnavailableError
from ..config import (
    DEFAULT_GAIA_TABLE, DEFAULT_GAIA_CONE_RADIUS_DEG, DEFAULT_GAIA_MAG_LIMIT,
    DEFAULT_GAIA_MAX_ROWS, GAIA_SOURCE_ID_PATTERN
)

log = logging.getLogger(__name__)

GAIA_COLUMNS = "source_id, ra, dec, phot_g_mean_mag, parallax, pmra, pmdec, bp_rp"

_GAIA_ID_RE = re.compile(GAIA_SOURCE_ID_PATTERN)


def _masked_float(value: Any) -> Optional[float]:
    if value is None or np.ma.is_masked(value):
        return None
    try:
        result = float(value)
    except (ValueError, TypeError):
        return None
    return result if np.isfinite(result) else None


def _row_value(row, colnames: List[str], name: str) -> Any:
    # Older archive tables report SOURCE_ID in upper case
    for candidate in (name, name.upper()):
        if candidate in colnames:
            return row[candidate]
    return None


def build_cone_query(center: QueryPosition, radius_deg: float, max_magnitude: float,
                     max_results: int, gaia_table: str = DEFAULT_GAIA_TABLE) -> str:
    """ADQL cone query ordered from brightest to faintest."""
    return (
        f"SELECT TOP {int(max_results)} {GAIA_COLUMNS} "
        f"FROM {gaia_table} "
        f"WHERE 1 = CONTAINS(POINT('ICRS', ra, dec), "
        f"CIRCLE('ICRS', {center.ra_deg}, {center.dec_deg}, {radius_deg})) "
        f"AND phot_g_mean_mag <= {max_magnitude} "
        f"ORDER BY phot_g_mean_mag ASC"
    )


def build_id_query(source_id: int, gaia_table: str = DEFAULT_GAIA_TABLE) -> str:
    return f"SELECT {GAIA_COLUMNS} FROM {gaia_table} WHERE source_id = {int(source_id)}"


def extract_gaia_source_id(identifiers: List[str]) -> Optional[int]:
    """First Gaia DR3 source_id found in a list of SIMBAD identifiers."""
    for identifier in identifiers:
        match = _GAIA_ID_RE.search(str(identifier))
        if match:
            return int(match.group(1))
    return None


class GaiaArchiveProvider(AstrometricProvider):
    """
    Astrometric provider backed by the ESA Gaia archive.

    Usage:
        with GaiaArchiveProvider() as provider:
            stars = await provider.query_cone(center, 0.5, 9.0, 100)
    """

    def __init__(self,
                 gaia_table: str = DEFAULT_GAIA_TABLE,
                 gaia_client=None,
                 simbad_client=None):
        """
        Args:
            gaia_table: Gaia data release table to query
            gaia_client: Optional Gaia client for dependency injection (testing)
            simbad_client: Optional SIMBAD client for dependency injection (testing)
        """
        self.gaia_table = gaia_table
        self.gaia = gaia_client or Gaia
        self.simbad = simbad_client or Simbad
        self._open = False

    def open(self) -> bool:
        if not self._open:
            self._open = True
            log.info(f"Gaia archive provider opened (table={self.gaia_table})")
        return self.is_available()

    def close(self) -> None:
        if self._open:
            self._open = False
            log.debug("Gaia archive provider closed")

    def is_available(self) -> bool:
        return self._open

    def _require_open(self) -> None:
        if not self._open:
            raise ProviderUnavailableError("Gaia archive provider is not open")

    async def query_cone(self, center: QueryPosition,
                         radius_deg: float = DEFAULT_GAIA_CONE_RADIUS_DEG,
                         max_magnitude: float = DEFAULT_GAIA_MAG_LIMIT,
                         max_results: int = DEFAULT_GAIA_MAX_ROWS) -> List[CelestialObject]:
        """
        Stars within radius_deg of center brighter than max_magnitude (G band).

        Raises:
            ProviderUnavailableError: If the provider is not open
            ValueError: If radius_deg or max_results is not positive
        """
        self._require_open()
        if radius_deg <= 0:
            raise ValueError(f"radius_deg must be positive, got {radius_deg}")
        if max_results <= 0:
            raise ValueError(f"max_results must be positive, got {max_results}")

        query = build_cone_query(center, radius_deg, max_magnitude, max_results, self.gaia_table)
        log.debug(f"Gaia cone query: {query}")
        table = await self._run_query(query)
        objects = self._table_to_objects(table)
        log.info(f"Gaia cone search at ({center.ra_deg:.4f}, {center.dec_deg:+.4f}) "
                 f"r={radius_deg} deg returned {len(objects)} stars")
        return objects

    async def query_by_id(self, source_id: int) -> Optional[CelestialObject]:
        self._require_open()
        table = await self._run_query(build_id_query(source_id, self.gaia_table))
        objects = self._table_to_objects(table)
        if not objects:
            log.info(f"Gaia DR3 {source_id} not found in {self.gaia_table}")
            return None
        return objects[0]

    async def query_by_name(self, name: str) -> Optional[CelestialObject]:
        """
        Resolve a name through SIMBAD to its Gaia DR3 designation, then fetch it.

        Returns:
            CelestialObject with name set, or None if SIMBAD knows no Gaia DR3 counterpart.
        """
        self._require_open()
        try:
            ids_table = await asyncio.to_thread(self.simbad.query_objectids, name)
        except Exception as e:
            log.warning(f"SIMBAD identifier query failed for '{name}': {e}")
            return None

        if ids_table is None or len(ids_table) == 0:
            log.info(f"SIMBAD does not know '{name}'")
            return None

        # astroquery renamed the column from 'ID' to 'id'
        column = 'id' if 'id' in ids_table.colnames else 'ID'
        source_id = extract_gaia_source_id([row[column] for row in ids_table])
        if source_id is None:
            log.info(f"No Gaia DR3 designation for '{name}' in SIMBAD")
            return None

        obj = await self.query_by_id(source_id)
        if obj is not None:
            obj.name = name
        return obj

    async def _run_query(self, query: str):
        try:
            job = await asyncio.to_thread(self.gaia.launch_job, query)
            return job.get_results()
        except Exception as e:
            raise ProviderUnavailableError(f"Gaia archive query failed: {e}") from e

    @staticmethod
    def _table_to_objects(table) -> List[CelestialObject]:
        if table is None or len(table) == 0:
            return []

        colnames = list(table.colnames)
        objects = []
        for row in table:
            ra = _masked_float(_row_value(row, colnames, 'ra'))
            dec = _masked_float(_row_value(row, colnames, 'dec'))
            source_id = _row_value(row, colnames, 'source_id')
            if ra is None or dec is None or source_id is None or np.ma.is_masked(source_id):
                continue
            try:
                position = QueryPosition(ra, dec)
            except InvalidPositionError as e:
                log.debug(f"Skipping Gaia row with invalid position: {e}")
                continue

            magnitude = _masked_float(_row_value(row, colnames, 'phot_g_mean_mag'))
            objects.append(CelestialObject(
                position=position,
                magnitude=magnitude if magnitude is not None else float('nan'),
                source_id=int(source_id),
                parallax=_masked_float(_row_value(row, colnames, 'parallax')),
                pm_ra=_masked_float(_row_value(row, colnames, 'pmra')),
                pm_dec=_masked_float(_row_value(row, colnames, 'pmdec')),
                color_index=_masked_float(_row_value(row, colnames, 'bp_rp'))
            ))
        return objects
