"""
Command line interface for StarXref.

Subcommands:
    enrich  Fill in SAO numbers for a CSV of stars
    lookup  Show the SAO catalog entry for a number
    cone    Find the SAO star nearest a position (VizieR)
    name    Resolve a star name through Gaia and SIMBAD, then cross-match it
"""

import argparse
import asyncio
import logging
import os
import time
from typing import List, Optional

import aiohttp

from ..data.catalog_cache import LocalCatalogCache
from ..data.gaia_source import GaiaArchiveProvider
from ..data.local_source import LocalCrossMatchStore
from ..data.remote_source import RemoteCrossMatchClient
from ..data.resolver import IdentifierResolver
from ..exceptions import StarXrefError
from ..utils.coordinate_parsing import parse_position, parse_search_radius
from ..utils.io import (
    DataLoadError, DataSaveError, load_objects_csv, objects_to_records,
    save_results_to_csv, format_coordinates_astropy
)
from ..config import (
    DEFAULT_CROSSMATCH_DB_PATH, DEFAULT_SEARCH_RADIUS_ARCSEC,
    DEFAULT_COORDINATE_SEARCH_RADIUS_ARCSEC, DEFAULT_CONCURRENT_REQUESTS,
    MIN_CONCURRENT_REQUESTS, MAX_CONCURRENT_REQUESTS,
    DEFAULT_SIMBAD_TIMEOUT_SECONDS, DEFAULT_VIZIER_TIMEOUT_SECONDS,
    DEFAULT_LOG_LEVEL, DEFAULT_LOG_FORMAT, CLI_DISPLAY_LINE_WIDTH, CLI_HEADER_CHAR,
    CLI_VALUE_NOT_AVAILABLE
)

log = logging.getLogger(__name__)


def _concurrency(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer value: '{value}'")
    if not (MIN_CONCURRENT_REQUESTS <= number <= MAX_CONCURRENT_REQUESTS):
        raise argparse.ArgumentTypeError(
            f"must be between {MIN_CONCURRENT_REQUESTS} and {MAX_CONCURRENT_REQUESTS}, got {number}"
        )
    return number


def _radius(value: str) -> float:
    try:
        return parse_search_radius(value)
    except StarXrefError as e:
        raise argparse.ArgumentTypeError(str(e))


def _default_output_path(input_file: str) -> str:
    root, ext = os.path.splitext(input_file)
    return f"{root}_sao{ext or '.csv'}"


def create_argument_parser() -> argparse.ArgumentParser:
    """Create command line argument parser with proper defaults from config."""
    parser = argparse.ArgumentParser(
        prog='starxref',
        description='StarXref - SAO catalog cross-identification for Gaia DR3 stars',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s enrich stars.csv --database-path gaia_sao_xmatch.db --output stars_sao.csv
  %(prog)s enrich stars.csv --offline --radius 3
  %(prog)s lookup 308 --catalog sao_catalog.tsv
  %(prog)s cone --position "37.95456,89.26411" --radius 10
  %(prog)s name "Polaris"
        """
    )
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Enable debug logging.')
    parser.add_argument('--simbad-timeout', type=float, default=DEFAULT_SIMBAD_TIMEOUT_SECONDS,
                        help=f'SIMBAD request timeout in seconds (default: {DEFAULT_SIMBAD_TIMEOUT_SECONDS}).')
    parser.add_argument('--vizier-timeout', type=float, default=DEFAULT_VIZIER_TIMEOUT_SECONDS,
                        help=f'VizieR request timeout in seconds (default: {DEFAULT_VIZIER_TIMEOUT_SECONDS}).')

    subparsers = parser.add_subparsers(dest='command', required=True)

    enrich = subparsers.add_parser('enrich', help='Fill in SAO numbers for a CSV of stars.')
    enrich.add_argument('input_file',
                        help='CSV with ra_deg, dec_deg and optionally source_id, magnitude, '
                             'name, spectral_type, sao_number columns.')
    enrich.add_argument('--database-path', default=DEFAULT_CROSSMATCH_DB_PATH,
                        help=f'Gaia-SAO cross-match database (default: {DEFAULT_CROSSMATCH_DB_PATH}).')
    enrich.add_argument('--output', '-o',
                        help='Output CSV (default: <input>_sao.csv).')
    enrich.add_argument('--radius', type=_radius, default=DEFAULT_SEARCH_RADIUS_ARCSEC,
                        help=f'Local positional match radius in arcsec (default: {DEFAULT_SEARCH_RADIUS_ARCSEC}).')
    enrich.add_argument('--concurrent', type=_concurrency, default=DEFAULT_CONCURRENT_REQUESTS,
                        help=f'Maximum stars resolved concurrently (default: {DEFAULT_CONCURRENT_REQUESTS}).')
    enrich.add_argument('--offline', action='store_true',
                        help='Use the local database only; never query SIMBAD or VizieR.')

    lookup = subparsers.add_parser('lookup', help='Show the SAO catalog entry for a number.')
    lookup.add_argument('sao_number', type=int, help='SAO catalog number.')
    lookup.add_argument('--catalog',
                        help='SAO catalog export (CSV/TSV) to search before querying VizieR.')
    lookup.add_argument('--offline', action='store_true',
                        help='Search the catalog file only.')

    cone = subparsers.add_parser('cone', help='Find the SAO star nearest a position (VizieR).')
    cone.add_argument('--position', required=True,
                      help='Position as "RA,DEC" in decimal degrees or sexagesimal.')
    cone.add_argument('--radius', type=_radius, default=DEFAULT_COORDINATE_SEARCH_RADIUS_ARCSEC,
                      help=f'Search radius in arcsec (default: {DEFAULT_COORDINATE_SEARCH_RADIUS_ARCSEC}).')

    name = subparsers.add_parser('name', help='Resolve a star name, then cross-match it to SAO.')
    name.add_argument('star_name', help='Star name or catalog designation known to SIMBAD.')
    name.add_argument('--database-path', default=DEFAULT_CROSSMATCH_DB_PATH,
                      help=f'Gaia-SAO cross-match database (default: {DEFAULT_CROSSMATCH_DB_PATH}).')
    name.add_argument('--radius', type=_radius, default=DEFAULT_SEARCH_RADIUS_ARCSEC,
                      help=f'Local positional match radius in arcsec (default: {DEFAULT_SEARCH_RADIUS_ARCSEC}).')

    return parser


def _print_header(title: str) -> None:
    print("\n" + CLI_HEADER_CHAR * CLI_DISPLAY_LINE_WIDTH)
    print(title)
    print(CLI_HEADER_CHAR * CLI_DISPLAY_LINE_WIDTH)


def _fmt(value, format_spec: str = '') -> str:
    if value is None:
        return CLI_VALUE_NOT_AVAILABLE
    return format(value, format_spec)


def _create_remote_client(session: aiohttp.ClientSession,
                          args: argparse.Namespace) -> RemoteCrossMatchClient:
    return RemoteCrossMatchClient(session,
                                  simbad_timeout=args.simbad_timeout,
                                  vizier_timeout=args.vizier_timeout)


async def _run_enrich(args: argparse.Namespace) -> int:
    objects = load_objects_csv(args.input_file)
    if not objects:
        log.warning(f"No usable stars in {args.input_file}")
        return 1

    output = args.output or _default_output_path(args.input_file)
    already_set = sum(1 for obj in objects if obj.has_sao_number)
    log.info(f"Loaded {len(objects)} stars ({already_set} with SAO numbers already)")

    with LocalCrossMatchStore(args.database_path) as store:
        if args.offline:
            if not store.is_available():
                log.error(f"--offline requires a usable database, but {args.database_path} is not available")
                return 1
            resolver = IdentifierResolver(store, None)
            resolved = await resolver.resolve_many(objects, args.radius, args.concurrent)
        else:
            async with aiohttp.ClientSession() as session:
                resolver = IdentifierResolver(store, _create_remote_client(session, args))
                resolved = await resolver.resolve_many(objects, args.radius, args.concurrent)

    save_results_to_csv(objects_to_records(objects), output)
    resolver.log_statistics()

    stats = resolver.get_statistics()
    _print_header("SAO CROSS-IDENTIFICATION SUMMARY")
    print(f"Input stars:          {len(objects)}")
    print(f"With SAO number:      {resolved}")
    print(f"  already present:    {stats['already_set']}")
    print(f"  local (source_id):  {stats['local_identifier']}")
    print(f"  local (position):   {stats['local_position']}")
    print(f"  SIMBAD:             {stats['remote_identifier']}")
    print(f"  VizieR cone:        {stats['remote_cone']}")
    print(f"Unresolved:           {stats['unresolved']}")
    print("-" * CLI_DISPLAY_LINE_WIDTH)
    print(f"Results saved to {output}")
    return 0


async def _run_lookup(args: argparse.Namespace) -> int:
    async def _find(remote: Optional[RemoteCrossMatchClient]):
        cache = LocalCatalogCache(remote)
        if args.catalog:
            cache.load_catalog(args.catalog)
        return await cache.find_by_number(args.sao_number)

    if args.offline:
        entry = await _find(None)
    else:
        async with aiohttp.ClientSession() as session:
            entry = await _find(_create_remote_client(session, args))

    if entry is None:
        print(f"SAO {args.sao_number}: not found")
        return 1

    _print_header(f"SAO {entry.sao_number}")
    print(f"Position (J2000): {format_coordinates_astropy(entry.position.ra_deg, entry.position.dec_deg)}")
    print(f"RA, Dec (deg):    {entry.position.ra_deg:.6f}, {entry.position.dec_deg:+.6f}")
    print(f"V magnitude:      {_fmt(entry.magnitude, '.2f')}")
    print(f"Spectral type:    {_fmt(entry.spectral_type)}")
    if entry.name:
        print(f"Name:             {entry.name}")
    return 0


async def _run_cone(args: argparse.Namespace) -> int:
    position = parse_position(args.position)
    async with aiohttp.ClientSession() as session:
        resolver = IdentifierResolver(None, _create_remote_client(session, args))
        sao_number = await resolver.find_sao_by_coordinates(position, args.radius)

    label = format_coordinates_astropy(position.ra_deg, position.dec_deg)
    if sao_number is None:
        print(f"No SAO star within {args.radius}\" of {label}")
        return 1
    print(f"SAO {sao_number} within {args.radius}\" of {label}")
    return 0


async def _run_name(args: argparse.Namespace) -> int:
    with GaiaArchiveProvider() as provider:
        star = await provider.query_by_name(args.star_name)
    if star is None:
        print(f"'{args.star_name}': no Gaia DR3 counterpart found")
        return 1

    with LocalCrossMatchStore(args.database_path) as store:
        async with aiohttp.ClientSession() as session:
            resolver = IdentifierResolver(store, _create_remote_client(session, args))
            await resolver.resolve(star, args.radius)

    _print_header(f"{star.name} = Gaia DR3 {star.source_id}")
    print(f"Position (J2000): {format_coordinates_astropy(star.position.ra_deg, star.position.dec_deg)}")
    print(f"G magnitude:      {_fmt(star.magnitude, '.3f')}")
    print(f"Parallax (mas):   {_fmt(star.parallax, '.4f')}")
    print(f"SAO number:       {_fmt(star.sao_number)}")
    return 0 if star.has_sao_number else 1


COMMANDS = {
    'enrich': _run_enrich,
    'lookup': _run_lookup,
    'cone': _run_cone,
    'name': _run_name,
}


async def main_async(args: argparse.Namespace) -> int:
    """
    Run one subcommand.

    Returns:
        Process exit code: 0 on success, 1 when nothing was found or the input
        was unusable.
    """
    try:
        return await COMMANDS[args.command](args)
    except (DataLoadError, DataSaveError, StarXrefError) as e:
        log.error(f"{type(e).__name__}: {e}")
        return 1


def main(args_list: Optional[List[str]] = None) -> int:
    """Main entry point for the StarXref CLI.

    Args:
        args_list: Optional list of command line arguments.
                  If None, will parse from sys.argv
    """
    parser = create_argument_parser()
    args = parser.parse_args(args_list)

    logging.basicConfig(level=logging.DEBUG if args.verbose else DEFAULT_LOG_LEVEL,
                        format=DEFAULT_LOG_FORMAT)

    start_time = time.time()
    exit_code = asyncio.run(main_async(args))
    log.info(f"Total execution time: {time.time() - start_time:.2f} seconds")
    return exit_code


if __name__ == "__main__":
    raise SystemExit(main())
