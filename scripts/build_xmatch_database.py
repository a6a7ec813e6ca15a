#!/usr/bin/env python3
"""
Build the Gaia-SAO cross-match SQLite database.

Two input modes:
  --xmatch FILE         a ready-made table with gaia_id, sao_number, ra_deg,
                        dec_deg and optionally vmag columns
  --gaia FILE --sao FILE  a Gaia source list (source_id, ra, dec) and an SAO
                        catalog export, matched by position here
"""

import argparse
import logging
import sys
from pathlib import Path

import pandas as pd

from starxref.config import DEFAULT_CROSSMATCH_DB_PATH, DEFAULT_SEARCH_RADIUS_ARCSEC
from starxref.data.catalog_cache import LocalCatalogCache
from starxref.data.local_source import create_crossmatch_database, crossmatch_catalogs
from starxref.exceptions import StarXrefError
from starxref.utils.io import DataLoadError, load_objects_csv

# Configure logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
log = logging.getLogger(__name__)


def build_from_catalogs(gaia_path: str, sao_path: str, max_separation_arcsec: float) -> pd.DataFrame:
    gaia_objects = load_objects_csv(gaia_path)
    log.info(f"Loaded {len(gaia_objects)} Gaia sources from {gaia_path}")

    cache = LocalCatalogCache()
    cache.load_catalog(sao_path)
    sao_entries = cache.entries()

    return crossmatch_catalogs(gaia_objects, sao_entries, max_separation_arcsec)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description='Build the Gaia-SAO cross-match database')
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument('--xmatch', help='Ready-made cross-match table (CSV/TSV)')
    source.add_argument('--gaia', help='Gaia DR3 source list (CSV with source_id, ra, dec)')
    parser.add_argument('--sao', help='SAO catalog export (required with --gaia)')
    parser.add_argument('--max-separation', type=float, default=DEFAULT_SEARCH_RADIUS_ARCSEC,
                        help=f'Maximum Gaia-SAO separation in arcsec (default: {DEFAULT_SEARCH_RADIUS_ARCSEC})')
    parser.add_argument('--output', default=DEFAULT_CROSSMATCH_DB_PATH, help='Output SQLite database path')
    parser.add_argument('--force', action='store_true', help='Overwrite existing database')

    args = parser.parse_args(argv)

    if args.gaia and not args.sao:
        parser.error("--sao is required with --gaia")

    if Path(args.output).exists() and not args.force:
        log.error(f"Output file {args.output} already exists. Use --force to overwrite.")
        return 1

    try:
        if args.xmatch:
            df_xmatch = pd.read_csv(args.xmatch, sep=None, engine='python', comment='#')
        else:
            df_xmatch = build_from_catalogs(args.gaia, args.sao, args.max_separation)

        rows = create_crossmatch_database(df_xmatch, args.output)
        log.info(f"Database build completed successfully: {rows} cross-matched sources in {args.output}")
        return 0

    except (StarXrefError, DataLoadError) as e:
        log.error(f"Database build failed: {e}")
        return 1
    except (OSError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        log.error(f"Could not read input: {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
