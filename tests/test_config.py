# test_config.py
"""Test module for configuration constants and validation."""

import re

import pytest
from starxref import config


class TestRemoteServices:
    """Test remote service configuration."""

    def test_urls(self):
        assert config.SIMBAD_TAP_URL.startswith("https://")
        assert config.SIMBAD_TAP_URL.endswith("/sync")
        assert config.VIZIER_VOTABLE_URL.startswith("https://")

    def test_tap_parameters(self):
        assert config.SIMBAD_TAP_REQUEST == "doQuery"
        assert config.SIMBAD_TAP_LANG == "ADQL"
        assert config.SIMBAD_TAP_FORMAT == "votable"

    def test_catalog_identifiers(self):
        assert config.VIZIER_SAO_CATALOG == "I/131A/sao"
        assert config.SAO_IDENTIFIER_TAG == "SAO "
        assert config.GAIA_DESIGNATION_PREFIX == "Gaia DR3"

    def test_vizier_columns(self):
        assert config.VIZIER_CONE_COLUMNS[0] == "SAO"
        assert config.VIZIER_CONE_COLUMNS == ["SAO", "_RAJ2000", "_DEJ2000", "Vmag"]
        assert config.VIZIER_ENTRY_COLUMNS[:4] == config.VIZIER_CONE_COLUMNS
        assert config.VIZIER_MAX_RESULTS == 1

    def test_timeouts(self):
        assert config.DEFAULT_SIMBAD_TIMEOUT_SECONDS == 30
        assert config.DEFAULT_VIZIER_TIMEOUT_SECONDS == 30


class TestSearchRadii:
    """Test search radius defaults."""

    def test_defaults(self):
        assert config.DEFAULT_SEARCH_RADIUS_ARCSEC == 5.0
        assert config.REMOTE_CONE_RADIUS_ARCSEC == 5.0
        assert config.DEFAULT_COORDINATE_SEARCH_RADIUS_ARCSEC == 10.0

    def test_maximum_above_defaults(self):
        assert config.MAX_SEARCH_RADIUS_ARCSEC > config.DEFAULT_COORDINATE_SEARCH_RADIUS_ARCSEC

    def test_unit_conversion(self):
        assert config.ARCSEC_PER_DEGREE == 3600.0


class TestCoordinateRanges:
    """Test coordinate validation constants."""

    def test_ranges(self):
        assert config.MIN_RA_DEG == 0.0
        assert config.MAX_RA_DEG == 360.0
        assert config.MIN_DEC_DEG == -90.0
        assert config.MAX_DEC_DEG == 90.0

    def test_url_precision(self):
        assert config.URL_COORDINATE_DECIMALS == 6
        assert config.URL_RADIUS_DECIMALS > config.URL_COORDINATE_DECIMALS


class TestLocalStoreConfiguration:
    """Test local cross-match store configuration."""

    def test_table_and_columns(self):
        assert config.CROSSMATCH_TABLE == 'gaia_sao_xmatch'
        assert config.CROSSMATCH_COLUMNS[:2] == ['gaia_id', 'sao_number']
        assert 'ra_deg' in config.CROSSMATCH_COLUMNS
        assert 'dec_deg' in config.CROSSMATCH_COLUMNS

    def test_catalog_aliases_cover_required_columns(self):
        for column in config.SAO_CATALOG_REQUIRED_COLUMNS:
            assert column in config.SAO_CATALOG_COLUMN_ALIASES
            assert column in config.SAO_CATALOG_COLUMN_ALIASES[column]

    def test_vizier_column_names_are_aliases(self):
        aliases = {a for names in config.SAO_CATALOG_COLUMN_ALIASES.values() for a in names}
        for column in config.VIZIER_ENTRY_COLUMNS:
            assert column in aliases

    def test_encoding_order(self):
        assert config.ENCODING_FALLBACK_ORDER[0] == 'utf-8'


class TestGaiaConfiguration:

    def test_gaia_defaults(self):
        assert config.DEFAULT_GAIA_TABLE == 'gaiadr3.gaia_source'
        assert config.DEFAULT_GAIA_CONE_RADIUS_DEG > 0
        assert config.DEFAULT_GAIA_MAX_ROWS > 0

    @pytest.mark.parametrize("text,expected", [
        ("Gaia DR3 576402619921510144", "576402619921510144"),
        ("Gaia DR3  12", "12"),
        ("Gaia DR2 12", None),
    ])
    def test_source_id_pattern(self, text, expected):
        match = re.search(config.GAIA_SOURCE_ID_PATTERN, text)
        assert (match.group(1) if match else None) == expected


class TestConcurrencyAndCli:

    def test_concurrency_bounds(self):
        assert config.MIN_CONCURRENT_REQUESTS == 1
        assert config.MIN_CONCURRENT_REQUESTS <= config.DEFAULT_CONCURRENT_REQUESTS <= config.MAX_CONCURRENT_REQUESTS

    def test_csv_columns(self):
        for column in config.OBJECT_CSV_REQUIRED_COLUMNS:
            assert column in config.OBJECT_CSV_COLUMNS.values()
        assert all(key == key.upper() for key in config.OBJECT_CSV_COLUMNS)

    def test_log_format(self):
        assert "%(levelname)s" in config.DEFAULT_LOG_FORMAT
        assert "%(message)s" in config.DEFAULT_LOG_FORMAT
