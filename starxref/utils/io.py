import csv
import logging
from dataclasses import asdict
from typing import List, Dict, Any, Optional

import numpy as np
import pandas as pd
from astropy.coordinates import SkyCoord
import astropy.units as u

from ..data.source import CelestialObject, QueryPosition
from ..exceptions import InvalidPositionError
from ..config import (
    OBJECT_CSV_COLUMNS, OBJECT_CSV_REQUIRED_COLUMNS, ENCODING_FALLBACK_ORDER,
    ASTROPY_FRAME, ASTROPY_FORMAT, DEFAULT_COORDINATE_PRECISION
)

log = logging.getLogger(__name__)


class DataLoadError(Exception):
    """Exception raised when data cannot be loaded from a file."""
    pass


class DataSaveError(Exception):
    """Exception raised when data cannot be saved to a file."""
    pass


def _read_table(filepath: str) -> pd.DataFrame:
    for encoding in ENCODING_FALLBACK_ORDER:
        try:
            log.debug(f"Attempting to read CSV with encoding: {encoding}")
            # dtype=str keeps 19-digit Gaia source_ids exact
            df = pd.read_csv(filepath, sep=None, engine='python', encoding=encoding,
                             dtype=str, skipinitialspace=True)
            log.info(f"CSV loaded successfully. Rows: {len(df)}, Encoding: {encoding}")
            return df
        except UnicodeDecodeError:
            log.debug(f"Encoding {encoding} failed, trying next...")
            continue
        except FileNotFoundError as e:
            log.error(f"File not found: {e}")
            raise DataLoadError(f"File not found: {filepath}")
        except PermissionError as e:
            log.error(f"Permission denied: {e}")
            raise DataLoadError(f"Permission denied accessing file: {filepath}")
        except pd.errors.EmptyDataError as e:
            log.error(f"Empty data file: {e}")
            raise DataLoadError(f"File contains no data: {filepath}")
        except (pd.errors.ParserError, csv.Error, ValueError) as e:
            log.error(f"Data parsing error in {filepath}: {e}")
            raise DataLoadError(f"Could not parse CSV format in file: {filepath}")

    log.error(f"Could not decode file with any supported encoding: {filepath}")
    raise DataLoadError(f"Could not decode file '{filepath}' with any supported encoding")


def _normalise_columns(df: pd.DataFrame) -> pd.DataFrame:
    rename = {}
    for column in df.columns:
        key = str(column).strip().upper()
        if key in OBJECT_CSV_COLUMNS:
            rename[column] = OBJECT_CSV_COLUMNS[key]
    return df.rename(columns=rename)


def _optional_text(value) -> Optional[str]:
    if value is None or pd.isna(value):
        return None
    text = str(value).strip()
    return text or None


def _optional_int(value) -> Optional[int]:
    text = _optional_text(value)
    if text is None:
        return None
    try:
        return int(text)
    except ValueError:
        # Exported tables sometimes write integers as "123.0"
        whole, dot, fraction = text.partition('.')
        if dot and whole and not fraction.strip('0'):
            return int(whole)
        raise


def _optional_float(value) -> Optional[float]:
    text = _optional_text(value)
    return float(text) if text is not None else None


def load_objects_csv(filepath: str) -> List[CelestialObject]:
    """Loads stars to enrich from a CSV file with delimiter detection.

    Column names are matched case-insensitively against OBJECT_CSV_COLUMNS;
    ra_deg and dec_deg are required. Rows with an unusable position are skipped.

    Args:
        filepath: Path to the CSV file.

    Returns:
        One CelestialObject per usable row, in file order.

    Raises:
        DataLoadError: If the file cannot be loaded, parsed, or lacks required columns.
    """
    df = _normalise_columns(_read_table(filepath))

    missing = [c for c in OBJECT_CSV_REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise DataLoadError(f"Required columns {missing} not found in {filepath}")

    objects = []
    skipped = 0
    for index, row in enumerate(df.to_dict('records')):
        try:
            position = QueryPosition(_optional_float(row.get('ra_deg')),
                                     _optional_float(row.get('dec_deg')))
            source_id = _optional_int(row.get('source_id'))
            magnitude = _optional_float(row.get('magnitude'))
            sao_number = _optional_int(row.get('sao_number'))
        except (InvalidPositionError, ValueError, TypeError) as e:
            log.warning(f"Skipping row {index + 1} of {filepath}: {e}")
            skipped += 1
            continue

        objects.append(CelestialObject(
            position=position,
            magnitude=magnitude if magnitude is not None else float('nan'),
            source_id=source_id if source_id is not None else -1,
            spectral_type=_optional_text(row.get('spectral_type')),
            name=_optional_text(row.get('name')),
            sao_number=sao_number
        ))

    if skipped:
        log.warning(f"Skipped {skipped} rows with unusable values in {filepath}")
    return objects


def objects_to_records(objects: List[CelestialObject]) -> List[Dict[str, Any]]:
    """Flatten CelestialObjects into CSV-ready dictionaries."""
    records = []
    for obj in objects:
        record = asdict(obj)
        position = record.pop('position')
        records.append({
            'source_id': obj.source_id if obj.has_source_id else None,
            'ra_deg': position['ra_deg'],
            'dec_deg': position['dec_deg'],
            'magnitude': None if obj.magnitude is None or np.isnan(obj.magnitude) else obj.magnitude,
            'spectral_type': record['spectral_type'],
            'name': record['name'],
            'sao_number': record['sao_number'],
            'parallax': record['parallax'],
            'pm_ra': record['pm_ra'],
            'pm_dec': record['pm_dec'],
            'color_index': record['color_index'],
        })
    return records


def save_results_to_csv(results: List[Dict[str, Any]], filepath: str) -> None:
    """Saves enrichment results to a CSV file.

    Args:
        results: List of dictionaries, one per star (see objects_to_records).
        filepath: Output path for the CSV file (will be created/overwritten).

    Raises:
        DataSaveError: If file writing fails due to permissions, disk space,
                      encoding issues, or invalid data structure.
    """
    if not results:
        log.warning("No results to save.")
        return

    try:
        df = pd.DataFrame(results)
        # float64 cannot hold 19-digit source_ids exactly
        for column in ('source_id', 'sao_number'):
            if column in df.columns:
                df[column] = pd.array([record.get(column) for record in results], dtype='Int64')
        df.to_csv(filepath, index=False, encoding='utf-8')
        log.info(f"Results successfully saved to {filepath} ({len(df)} rows)")
    except FileNotFoundError as e:
        log.error(f"Directory not found when saving to {filepath}: {e}")
        raise DataSaveError(f"Directory not found: {filepath}")
    except PermissionError as e:
        log.error(f"Permission denied when saving to {filepath}: {e}")
        raise DataSaveError(f"Permission denied: {filepath}")
    except UnicodeEncodeError as e:
        log.error(f"Unicode encoding error when saving to {filepath}: {e}")
        raise DataSaveError(f"Unicode encoding error in data: {e}")
    except (ValueError, TypeError) as e:
        log.error(f"Invalid data structure when saving to {filepath}: {e}")
        raise DataSaveError(f"Invalid results structure: {e}")
    except OSError as e:
        log.error(f"OS error when saving to {filepath}: {e}")
        raise DataSaveError(f"OS error (disk space, path length, etc.): {e}")


def format_coordinates_astropy(ra_deg: Optional[float], dec_deg: Optional[float],
                               precision: Optional[int] = None) -> str:
    """Formats an equatorial position in degrees as an HMS/DMS string.

    Returns:
        Formatted coordinate string, or "N/A" for missing inputs.
    """
    if ra_deg is None or dec_deg is None:
        return "N/A"

    if precision is None:
        precision = DEFAULT_COORDINATE_PRECISION

    coords = SkyCoord(ra=float(ra_deg) * u.deg, dec=float(dec_deg) * u.deg, frame=ASTROPY_FRAME)
    return coords.to_string(ASTROPY_FORMAT, sep=' ', precision=precision, pad=True)
