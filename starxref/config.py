"""
Configuration constants for StarXref.

This module centralizes all configuration parameters used throughout the application,
making them easily configurable and maintainable.
"""

# Remote Services
SIMBAD_TAP_URL = "https://simbad.cds.unistra.fr/simbad/sim-tap/sync"
VIZIER_VOTABLE_URL = "https://vizier.cds.unistra.fr/viz-bin/votable"

# SIMBAD TAP protocol parameters (synchronous ADQL query, VOTable response)
SIMBAD_TAP_REQUEST = "doQuery"
SIMBAD_TAP_LANG = "ADQL"
SIMBAD_TAP_FORMAT = "votable"

# Catalog identifiers
VIZIER_SAO_CATALOG = "I/131A/sao"
SAO_IDENTIFIER_TAG = "SAO "             # Prefix of SAO identifiers in SIMBAD
GAIA_DESIGNATION_PREFIX = "Gaia DR3"    # Provider name used in external designations

# VizieR output columns
VIZIER_CONE_COLUMNS = ["SAO", "_RAJ2000", "_DEJ2000", "Vmag"]
VIZIER_ENTRY_COLUMNS = ["SAO", "_RAJ2000", "_DEJ2000", "Vmag", "SpType"]
VIZIER_MAX_RESULTS = 1

# Timeouts (seconds)
DEFAULT_SIMBAD_TIMEOUT_SECONDS = 30
DEFAULT_VIZIER_TIMEOUT_SECONDS = 30

# Search radii (arcseconds)
DEFAULT_SEARCH_RADIUS_ARCSEC = 5.0            # Local store positional lookup
REMOTE_CONE_RADIUS_ARCSEC = 5.0               # Fixed radius of the VizieR fallback tier
DEFAULT_COORDINATE_SEARCH_RADIUS_ARCSEC = 10.0  # Direct coordinate lookups
MAX_SEARCH_RADIUS_ARCSEC = 3600.0             # Sanity bound for CLI input

# Unit conversions
ARCSEC_PER_DEGREE = 3600.0

# Coordinate Validation
MIN_RA_DEG = 0.0
MAX_RA_DEG = 360.0
MIN_DEC_DEG = -90.0
MAX_DEC_DEG = 90.0

# Precision used when writing coordinates into query URLs
URL_COORDINATE_DECIMALS = 6
URL_RADIUS_DECIMALS = 10      # Cone radius in degrees

# Local Gaia-SAO cross-match store
DEFAULT_CROSSMATCH_DB_PATH = "gaia_sao_xmatch.db"
CROSSMATCH_TABLE = 'gaia_sao_xmatch'
CROSSMATCH_COLUMNS = ['gaia_id', 'sao_number', 'ra_deg', 'dec_deg', 'vmag']
DEFAULT_SQLITE_CACHE_SIZE_KB = 64 * 1024  # 64MB page cache

# SAO catalog file loading (LocalCatalogCache.load_catalog)
# Canonical column -> accepted aliases found in VizieR exports
SAO_CATALOG_COLUMN_ALIASES = {
    'sao': ['sao', 'SAO', 'sao_number'],
    'ra_deg': ['ra_deg', '_RAJ2000', 'RAJ2000', 'ra'],
    'dec_deg': ['dec_deg', '_DEJ2000', 'DEJ2000', 'dec'],
    'vmag': ['vmag', 'Vmag', 'magnitude'],
    'spectral_type': ['spectral_type', 'SpType', 'sptype'],
    'name': ['name', 'Name'],
}
SAO_CATALOG_REQUIRED_COLUMNS = ['sao', 'ra_deg', 'dec_deg']
ENCODING_FALLBACK_ORDER = ['utf-8', 'latin-1']  # Preferred encoding order for astronomical catalogs

# Primary astrometric provider (Gaia archive)
DEFAULT_GAIA_TABLE = 'gaiadr3.gaia_source'
DEFAULT_GAIA_CONE_RADIUS_DEG = 1.0
DEFAULT_GAIA_MAG_LIMIT = 15.0
DEFAULT_GAIA_MAX_ROWS = 10000
GAIA_SOURCE_ID_PATTERN = r'Gaia DR3\s+(\d+)'

# Batch resolution
DEFAULT_CONCURRENT_REQUESTS = 20
MIN_CONCURRENT_REQUESTS = 1
MAX_CONCURRENT_REQUESTS = 100

# Logging Configuration
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# CSV columns for batch enrichment
OBJECT_CSV_COLUMNS = {
    'SOURCE_ID': 'source_id',
    'RA': 'ra_deg',
    'RA_DEG': 'ra_deg',
    'DEC': 'dec_deg',
    'DEC_DEG': 'dec_deg',
    'MAGNITUDE': 'magnitude',
    'SPECTRAL_TYPE': 'spectral_type',
    'NAME': 'name',
    'SAO_NUMBER': 'sao_number',
}
OBJECT_CSV_REQUIRED_COLUMNS = ['ra_deg', 'dec_deg']

# CLI display
CLI_DISPLAY_LINE_WIDTH = 72
CLI_HEADER_CHAR = "="
CLI_VALUE_NOT_AVAILABLE = "N/A"

# Coordinate display
ASTROPY_FRAME = 'icrs'
ASTROPY_FORMAT = 'hmsdms'
DEFAULT_COORDINATE_PRECISION = 2
