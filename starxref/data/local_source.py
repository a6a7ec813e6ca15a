"""
Local Gaia-SAO cross-match store backed by SQLite.

The store holds one row per Gaia DR3 source with a known SAO counterpart.
Identifier lookups hit the primary key; positional lookups pre-select a
declination/RA box through an index and pick the nearest row by exact
great-circle separation.
"""

import logging
import os
import sqlite3
import threading
from typing import Dict, Iterable, Optional

import numpy as np
import pandas as pd
from astropy.coordinates import SkyCoord
import astropy.units as u

from .source import CelestialObject, CrossMatchEntry, CrossMatchStore, QueryPosition
from ..core.spatial import (
    angular_separation_arcsec_array, arcsec_to_deg, ra_search_window_deg
)
from ..exceptions import CrossMatchStoreError
from ..config import (
    CROSSMATCH_TABLE, CROSSMATCH_COLUMNS, DEFAULT_CROSSMATCH_DB_PATH,
    DEFAULT_SQLITE_CACHE_SIZE_KB, MIN_DEC_DEG, MAX_DEC_DEG, MAX_RA_DEG
)

log = logging.getLogger(__name__)


class LocalCrossMatchStore(CrossMatchStore):
    """
    Gaia-SAO cross-match store using a SQLite database.

    A missing or malformed database does not raise: the store simply reports
    itself unavailable so that resolution falls back to online queries.

    Note: Build the database with scripts/build_xmatch_database.py or
    create_crossmatch_database().
    """

    def __init__(self, database_path: str = DEFAULT_CROSSMATCH_DB_PATH):
        """Open the cross-match database read-only.

        Args:
            database_path: Path to the SQLite file containing the
                          gaia_sao_xmatch table.
        """
        self.database_path = database_path
        self.conn = None
        self._lock = threading.Lock()
        self._available = False

        if not os.path.exists(database_path):
            log.warning(f"Gaia-SAO cross-match database not found: {database_path}. "
                        "Using online queries only.")
            return

        try:
            # check_same_thread=False: access is serialised by self._lock
            self.conn = sqlite3.connect(f'file:{database_path}?mode=ro', uri=True,
                                        check_same_thread=False)
            self.conn.execute('PRAGMA temp_store = MEMORY')
            self.conn.execute(f'PRAGMA cache_size = -{DEFAULT_SQLITE_CACHE_SIZE_KB}')
            self._verify_database_structure()
            self._available = True
            log.info(f"Connected to Gaia-SAO cross-match database: {database_path}")
        except (sqlite3.Error, CrossMatchStoreError) as e:
            log.warning(f"Gaia-SAO cross-match database unusable ({database_path}): {e}. "
                        "Using online queries only.")
            self.close()

    def _verify_database_structure(self) -> None:
        cursor = self.conn.execute(f"PRAGMA table_info({CROSSMATCH_TABLE})")
        columns = {row[1] for row in cursor.fetchall()}
        if not columns:
            raise CrossMatchStoreError(f"Database missing required table: '{CROSSMATCH_TABLE}'")

        missing = [c for c in CROSSMATCH_COLUMNS if c not in columns and c != 'vmag']
        if missing:
            raise CrossMatchStoreError(f"Table '{CROSSMATCH_TABLE}' missing columns: {missing}")

    def is_available(self) -> bool:
        return self._available and self.conn is not None

    def close(self) -> None:
        """Close database connection."""
        if self.conn:
            self.conn.close()
            self.conn = None
            log.debug("Cross-match database connection closed")
        self._available = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def find_by_identifier(self, source_id: int) -> Optional[int]:
        """SAO number cross-matched to a Gaia DR3 source_id.

        Raises:
            CrossMatchStoreError: If the store is unavailable or the query fails
        """
        if not self.is_available():
            raise CrossMatchStoreError("Cross-match database is not available")

        try:
            with self._lock:
                row = self.conn.execute(
                    f"SELECT sao_number FROM {CROSSMATCH_TABLE} WHERE gaia_id = ?",
                    (int(source_id),)
                ).fetchone()
        except sqlite3.Error as e:
            log.error(f"Database error looking up Gaia DR3 {source_id}: {e}")
            raise CrossMatchStoreError(f"Database query failed: {e}") from e

        if row is None or row[0] is None:
            return None
        return int(row[0])

    def find_by_position(self, position: QueryPosition, radius_arcsec: float) -> Optional[int]:
        """SAO number of the nearest cross-matched star within radius_arcsec.

        Raises:
            CrossMatchStoreError: If the store is unavailable or the query fails
        """
        if not self.is_available():
            raise CrossMatchStoreError("Cross-match database is not available")

        radius_deg = arcsec_to_deg(radius_arcsec)
        dec_min = max(MIN_DEC_DEG, position.dec_deg - radius_deg)
        dec_max = min(MAX_DEC_DEG, position.dec_deg + radius_deg)

        query = (f"SELECT sao_number, ra_deg, dec_deg FROM {CROSSMATCH_TABLE} "
                 "WHERE dec_deg BETWEEN ? AND ?")
        params = [dec_min, dec_max]

        ra_half_width = ra_search_window_deg(position.dec_deg, radius_arcsec)
        if ra_half_width < 180.0:
            ra_lo = position.ra_deg - ra_half_width
            ra_hi = position.ra_deg + ra_half_width
            if ra_lo < 0.0:
                query += " AND (ra_deg >= ? OR ra_deg <= ?)"
                params += [ra_lo + MAX_RA_DEG, ra_hi]
            elif ra_hi > MAX_RA_DEG:
                query += " AND (ra_deg >= ? OR ra_deg <= ?)"
                params += [ra_lo, ra_hi - MAX_RA_DEG]
            else:
                query += " AND ra_deg BETWEEN ? AND ?"
                params += [ra_lo, ra_hi]

        try:
            with self._lock:
                rows = self.conn.execute(query, params).fetchall()
        except sqlite3.Error as e:
            log.error(f"Database error in positional lookup at "
                      f"({position.ra_deg:.5f}, {position.dec_deg:+.5f}): {e}")
            raise CrossMatchStoreError(f"Database query failed: {e}") from e

        if not rows:
            return None

        candidates = np.array(rows, dtype=float)
        separations = angular_separation_arcsec_array(candidates[:, 1], candidates[:, 2], position)
        best = int(np.argmin(separations))
        if separations[best] > radius_arcsec:
            return None

        log.debug(f"Local positional match SAO {int(candidates[best, 0])} "
                  f"at {separations[best]:.2f}\"")
        return int(candidates[best, 0])

    def get_catalog_statistics(self) -> Dict[str, int]:
        """Row counts of the cross-match table.

        Raises:
            CrossMatchStoreError: If the store is unavailable or the query fails
        """
        if not self.is_available():
            raise CrossMatchStoreError("Cross-match database is not available")

        try:
            with self._lock:
                total, distinct_sao = self.conn.execute(
                    f"SELECT COUNT(*), COUNT(DISTINCT sao_number) FROM {CROSSMATCH_TABLE}"
                ).fetchone()
        except sqlite3.Error as e:
            log.error(f"Error getting cross-match statistics: {e}")
            raise CrossMatchStoreError(f"Database query failed: {e}") from e

        return {'crossmatch_count': total, 'distinct_sao_count': distinct_sao}

    def statistics(self) -> str:
        if not self.is_available():
            return "Local database not available"
        try:
            stats = self.get_catalog_statistics()
        except CrossMatchStoreError as e:
            return f"Local database statistics unavailable: {e}"
        return (f"Gaia-SAO cross-match database: {self.database_path}\n"
                f"  Cross-matched Gaia sources: {stats['crossmatch_count']}\n"
                f"  Distinct SAO numbers: {stats['distinct_sao_count']}")


def create_crossmatch_database(df_xmatch: pd.DataFrame, output_path: str) -> int:
    """
    Create the Gaia-SAO cross-match SQLite database with proper indexing.

    Args:
        df_xmatch: Table with gaia_id, sao_number, ra_deg, dec_deg and optionally vmag
        output_path: Path for output SQLite database

    Returns:
        Number of rows written.

    Raises:
        CrossMatchStoreError: If required columns are missing or writing fails
    """
    required = [c for c in CROSSMATCH_COLUMNS if c != 'vmag']
    missing = [c for c in required if c not in df_xmatch.columns]
    if missing:
        raise CrossMatchStoreError(f"Cross-match table missing columns: {missing}")

    df = df_xmatch.copy()
    if 'vmag' not in df.columns:
        df['vmag'] = np.nan
    df = df[CROSSMATCH_COLUMNS].dropna(subset=required)
    df = df.drop_duplicates(subset='gaia_id', keep='first')

    log.info(f"Creating Gaia-SAO cross-match database: {output_path}")
    conn = sqlite3.connect(output_path)
    try:
        conn.execute(f'DROP TABLE IF EXISTS {CROSSMATCH_TABLE}')
        conn.execute(f"""
CREATE TABLE {CROSSMATCH_TABLE} (
    gaia_id INTEGER PRIMARY KEY,
    sao_number INTEGER NOT NULL,
    ra_deg REAL NOT NULL,
    dec_deg REAL NOT NULL,
    vmag REAL
)
        """)
        df.astype({'gaia_id': 'int64', 'sao_number': 'int64'}).to_sql(
            CROSSMATCH_TABLE, conn, if_exists='append', index=False
        )
        conn.execute(f'CREATE INDEX idx_{CROSSMATCH_TABLE}_coords ON {CROSSMATCH_TABLE}(dec_deg, ra_deg)')
        conn.execute(f'CREATE INDEX idx_{CROSSMATCH_TABLE}_sao ON {CROSSMATCH_TABLE}(sao_number)')
        conn.commit()
    except sqlite3.Error as e:
        raise CrossMatchStoreError(f"Failed to write cross-match database: {e}") from e
    finally:
        conn.close()

    log.info(f"Created {CROSSMATCH_TABLE} table with {len(df)} entries")
    return len(df)


def crossmatch_catalogs(gaia_objects: Iterable[CelestialObject],
                        sao_entries: Iterable[CrossMatchEntry],
                        max_separation_arcsec: float) -> pd.DataFrame:
    """
    Positional Gaia-to-SAO cross-match for building a store.

    Each Gaia source is paired with its nearest SAO entry; pairs further apart
    than max_separation_arcsec are dropped, and when several Gaia sources land
    on the same SAO star only the closest one is kept.

    Returns:
        DataFrame with CROSSMATCH_COLUMNS plus separation_arcsec, using the
        Gaia position of each source.
    """
    gaia = [obj for obj in gaia_objects if obj.has_source_id]
    sao = list(sao_entries)
    columns = CROSSMATCH_COLUMNS + ['separation_arcsec']
    if not gaia or not sao:
        log.warning("Nothing to cross-match: empty Gaia or SAO input")
        return pd.DataFrame(columns=columns)

    gaia_coords = SkyCoord(ra=[o.position.ra_deg for o in gaia] * u.deg,
                           dec=[o.position.dec_deg for o in gaia] * u.deg)
    sao_coords = SkyCoord(ra=[e.position.ra_deg for e in sao] * u.deg,
                          dec=[e.position.dec_deg for e in sao] * u.deg)
    idx, sep2d, _ = gaia_coords.match_to_catalog_sky(sao_coords)
    separations = sep2d.to(u.arcsec).value

    df = pd.DataFrame({
        'gaia_id': [o.source_id for o in gaia],
        'sao_number': [sao[i].sao_number for i in idx],
        'ra_deg': [o.position.ra_deg for o in gaia],
        'dec_deg': [o.position.dec_deg for o in gaia],
        'vmag': [sao[i].magnitude if sao[i].magnitude is not None else np.nan for i in idx],
        'separation_arcsec': separations,
    })
    df = df[df['separation_arcsec'] <= max_separation_arcsec]
    df = df.sort_values('separation_arcsec').drop_duplicates(subset='sao_number', keep='first')
    df = df.sort_values('gaia_id').reset_index(drop=True)

    log.info(f"Cross-matched {len(df)} of {len(gaia)} Gaia sources to SAO "
             f"within {max_separation_arcsec}\"")
    return df[columns]
