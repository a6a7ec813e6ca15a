"""
In-memory SAO catalog cache with remote fallback.

Backs direct "full data for SAO number N" lookups. The map is filled in bulk
from a catalog export and, on a miss, by a single VizieR point query whose
result is kept for later calls.
"""

import csv
import logging
import os
import threading
from typing import Dict, Iterable, List, Optional

import pandas as pd

from .source import CrossMatchEntry, QueryPosition
from .remote_source import RemoteCrossMatchClient
from ..exceptions import CatalogParsingError, InvalidPositionError
from ..config import (
    SAO_CATALOG_COLUMN_ALIASES, SAO_CATALOG_REQUIRED_COLUMNS, ENCODING_FALLBACK_ORDER
)

log = logging.getLogger(__name__)


def _optional_float(value) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    try:
        return float(value)
    except (ValueError, TypeError):
        return None


def _optional_string(value) -> Optional[str]:
    if value is None or pd.isna(value):
        return None
    text = str(value).strip()
    return text or None


class LocalCatalogCache:
    """
    Map from SAO number to CrossMatchEntry.

    Reads and writes are guarded by a lock, so one cache can be shared by
    concurrent resolution tasks and worker threads.
    """

    def __init__(self, remote_client: Optional[RemoteCrossMatchClient] = None):
        """
        Args:
            remote_client: Client used for the single-entry fallback query.
                           Without it, misses are final.
        """
        self.remote_client = remote_client
        self._entries: Dict[int, CrossMatchEntry] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, sao_number) -> bool:
        with self._lock:
            return sao_number in self._entries

    def add_entry(self, entry: CrossMatchEntry) -> None:
        with self._lock:
            self._entries[entry.sao_number] = entry

    def add_entries(self, entries: Iterable[CrossMatchEntry]) -> int:
        count = 0
        with self._lock:
            for entry in entries:
                self._entries[entry.sao_number] = entry
                count += 1
        return count

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def entries(self) -> List[CrossMatchEntry]:
        """Snapshot of all cached entries, ordered by SAO number."""
        with self._lock:
            return [self._entries[n] for n in sorted(self._entries)]

    def get_cached(self, sao_number: int) -> Optional[CrossMatchEntry]:
        """Cache-only lookup, never touches the network."""
        with self._lock:
            return self._entries.get(sao_number)

    async def find_by_number(self, sao_number: int) -> Optional[CrossMatchEntry]:
        """
        Full SAO entry for a catalog number.

        Args:
            sao_number: SAO catalog number

        Returns:
            The cached entry; on a miss, the entry fetched from VizieR (then cached);
            None if neither source knows the number.
        """
        entry = self.get_cached(sao_number)
        if entry is not None:
            return entry

        if self.remote_client is None:
            log.debug(f"SAO {sao_number} not cached and no remote client configured")
            return None

        entry = await self.remote_client.query_sao_entry(sao_number)
        if entry is None:
            log.info(f"SAO {sao_number} not found locally or on VizieR")
            return None

        self.add_entry(entry)
        return entry

    def load_catalog(self, catalog_path: str) -> int:
        """
        Bulk-load an SAO catalog export (CSV or TSV, delimiter auto-detected).

        Recognised columns are listed in SAO_CATALOG_COLUMN_ALIASES; sao, ra and
        dec are required. Rows with unusable values are skipped.

        Args:
            catalog_path: Path to the catalog file

        Returns:
            Number of entries loaded.

        Raises:
            CatalogParsingError: If the file cannot be read or lacks required columns.
        """
        if not os.path.exists(catalog_path):
            raise CatalogParsingError(f"SAO catalog file not found: {catalog_path}")

        df = self._read_catalog_table(catalog_path)
        df = self._normalise_columns(df, catalog_path)

        entries = []
        skipped = 0
        for row in df.itertuples(index=False):
            try:
                sao_number = int(row.sao)
                position = QueryPosition(float(row.ra_deg), float(row.dec_deg))
            except (ValueError, TypeError, InvalidPositionError):
                skipped += 1
                continue

            entries.append(CrossMatchEntry(
                sao_number=sao_number,
                position=position,
                magnitude=_optional_float(getattr(row, 'vmag', None)),
                spectral_type=_optional_string(getattr(row, 'spectral_type', None)),
                name=_optional_string(getattr(row, 'name', None))
            ))

        if skipped:
            log.warning(f"Skipped {skipped} malformed rows in {catalog_path}")

        loaded = self.add_entries(entries)
        log.info(f"Loaded {loaded} SAO entries from {catalog_path}")
        return loaded

    @staticmethod
    def _read_catalog_table(catalog_path: str) -> pd.DataFrame:
        last_error = None
        for encoding in ENCODING_FALLBACK_ORDER:
            try:
                # sep=None lets the python engine sniff comma/tab/semicolon files
                return pd.read_csv(catalog_path, sep=None, engine='python',
                                   encoding=encoding, comment='#')
            except UnicodeDecodeError as e:
                log.debug(f"Could not decode {catalog_path} as {encoding}, trying next encoding")
                last_error = e
            except (pd.errors.ParserError, pd.errors.EmptyDataError, csv.Error, ValueError, OSError) as e:
                raise CatalogParsingError(f"Could not parse SAO catalog {catalog_path}: {e}") from e

        raise CatalogParsingError(f"Could not decode SAO catalog {catalog_path}: {last_error}")

    @staticmethod
    def _normalise_columns(df: pd.DataFrame, catalog_path: str) -> pd.DataFrame:
        df.columns = [str(c).strip() for c in df.columns]
        rename = {}
        for canonical, aliases in SAO_CATALOG_COLUMN_ALIASES.items():
            for alias in aliases:
                if alias in df.columns:
                    rename[alias] = canonical
                    break

        df = df.rename(columns=rename)
        missing = [c for c in SAO_CATALOG_REQUIRED_COLUMNS if c not in df.columns]
        if missing:
            raise CatalogParsingError(
                f"SAO catalog {catalog_path} missing required columns: {missing}"
            )

        keep = [c for c in SAO_CATALOG_COLUMN_ALIASES if c in df.columns]
        return df[keep]
