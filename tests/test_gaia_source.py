"""
Tests for the Gaia archive astrometric provider.

The Gaia and SIMBAD clients are injected mocks returning astropy Tables.
"""

from unittest.mock import Mock

import numpy as np
import pytest
from astropy.table import MaskedColumn, Table

from starxref.data.gaia_source import (
    GaiaArchiveProvider, build_cone_query, build_id_query, extract_gaia_source_id
)
from starxref.data.source import QueryPosition
from starxref.exceptions import ProviderUnavailableError


def _gaia_table(rows=None):
    rows = rows if rows is not None else [
        (576402619921510144, 37.95456, 89.26411, 1.94, 7.54, 44.5, -11.9, 0.64),
        (576402619921510145, 37.96000, 89.26000, 12.3, 1.10, 3.0, 2.0, 1.20),
    ]
    names = ('source_id', 'ra', 'dec', 'phot_g_mean_mag', 'parallax', 'pmra', 'pmdec', 'bp_rp')
    if not rows:
        return Table(names=names, dtype=(np.int64,) + (float,) * 7)
    return Table(rows=rows, names=names)


@pytest.fixture
def mock_gaia():
    gaia = Mock()
    job = Mock()
    job.get_results.return_value = _gaia_table()
    gaia.launch_job.return_value = job
    return gaia


@pytest.fixture
def mock_simbad():
    simbad = Mock()
    simbad.query_objectids.return_value = Table(
        {'id': ['* alf UMi', 'HD 8890', 'Gaia DR2 576402619921510144', 'Gaia DR3 576402619921510144', 'SAO 308']}
    )
    return simbad


@pytest.fixture
def provider(mock_gaia, mock_simbad):
    with GaiaArchiveProvider(gaia_client=mock_gaia, simbad_client=mock_simbad) as p:
        yield p


class TestQueryBuilding:

    def test_cone_query(self):
        query = build_cone_query(QueryPosition(10.0, 20.0), 0.5, 9.0, 100)
        assert query.startswith("SELECT TOP 100 ")
        assert "FROM gaiadr3.gaia_source" in query
        assert "CIRCLE('ICRS', 10.0, 20.0, 0.5)" in query
        assert "phot_g_mean_mag <= 9.0" in query
        assert query.endswith("ORDER BY phot_g_mean_mag ASC")

    def test_id_query(self):
        assert build_id_query(42).endswith("WHERE source_id = 42")

    def test_extract_gaia_id_prefers_dr3(self):
        ids = ['HD 8890', 'Gaia DR2 111', 'Gaia DR3 222']
        assert extract_gaia_source_id(ids) == 222

    def test_extract_gaia_id_missing(self):
        assert extract_gaia_source_id(['HD 8890', 'Gaia DR2 111']) is None


class TestLifecycle:

    def test_closed_by_default(self, mock_gaia):
        provider = GaiaArchiveProvider(gaia_client=mock_gaia)
        assert not provider.is_available()

    def test_open_close(self, mock_gaia):
        provider = GaiaArchiveProvider(gaia_client=mock_gaia)
        assert provider.open() is True
        assert provider.is_available()
        provider.close()
        assert not provider.is_available()

    def test_context_manager_releases(self, mock_gaia):
        with GaiaArchiveProvider(gaia_client=mock_gaia) as provider:
            assert provider.is_available()
        assert not provider.is_available()

    @pytest.mark.asyncio
    async def test_query_when_closed_raises(self, mock_gaia):
        provider = GaiaArchiveProvider(gaia_client=mock_gaia)
        with pytest.raises(ProviderUnavailableError):
            await provider.query_by_id(1)
        mock_gaia.launch_job.assert_not_called()


class TestQueryCone:

    @pytest.mark.asyncio
    async def test_rows_become_objects(self, provider, mock_gaia):
        stars = await provider.query_cone(QueryPosition(37.95, 89.26), 0.1, 13.0, 10)

        assert len(stars) == 2
        polaris = stars[0]
        assert polaris.source_id == 576402619921510144
        assert polaris.position == QueryPosition(37.95456, 89.26411)
        assert polaris.magnitude == pytest.approx(1.94)
        assert polaris.parallax == pytest.approx(7.54)
        assert polaris.color_index == pytest.approx(0.64)
        assert polaris.sao_number is None
        assert "TOP 10" in mock_gaia.launch_job.call_args[0][0]

    @pytest.mark.asyncio
    async def test_masked_values_become_none(self, provider, mock_gaia):
        table = _gaia_table()
        table['parallax'] = MaskedColumn(table['parallax'], mask=[True, False])
        mock_gaia.launch_job.return_value.get_results.return_value = table

        stars = await provider.query_cone(QueryPosition(37.95, 89.26), 0.1, 13.0, 10)
        assert stars[0].parallax is None
        assert stars[1].parallax == pytest.approx(1.10)

    @pytest.mark.asyncio
    async def test_uppercase_source_id_column(self, provider, mock_gaia):
        table = _gaia_table()
        table.rename_column('source_id', 'SOURCE_ID')
        mock_gaia.launch_job.return_value.get_results.return_value = table

        stars = await provider.query_cone(QueryPosition(37.95, 89.26), 0.1, 13.0, 10)
        assert stars[1].source_id == 576402619921510145

    @pytest.mark.asyncio
    async def test_empty_result(self, provider, mock_gaia):
        mock_gaia.launch_job.return_value.get_results.return_value = _gaia_table([])
        assert await provider.query_cone(QueryPosition(1.0, 1.0), 0.1, 10.0, 10) == []

    @pytest.mark.asyncio
    async def test_invalid_arguments(self, provider):
        with pytest.raises(ValueError):
            await provider.query_cone(QueryPosition(1.0, 1.0), 0.0, 10.0, 10)
        with pytest.raises(ValueError):
            await provider.query_cone(QueryPosition(1.0, 1.0), 0.1, 10.0, 0)

    @pytest.mark.asyncio
    async def test_backend_failure(self, provider, mock_gaia):
        mock_gaia.launch_job.side_effect = ConnectionError("archive down")
        with pytest.raises(ProviderUnavailableError):
            await provider.query_cone(QueryPosition(1.0, 1.0), 0.1, 10.0, 10)


class TestQueryByIdAndName:

    @pytest.mark.asyncio
    async def test_by_id(self, provider, mock_gaia):
        star = await provider.query_by_id(576402619921510144)
        assert star.source_id == 576402619921510144
        assert "source_id = 576402619921510144" in mock_gaia.launch_job.call_args[0][0]

    @pytest.mark.asyncio
    async def test_by_id_not_found(self, provider, mock_gaia):
        mock_gaia.launch_job.return_value.get_results.return_value = _gaia_table([])
        assert await provider.query_by_id(1) is None

    @pytest.mark.asyncio
    async def test_by_name(self, provider, mock_gaia, mock_simbad):
        star = await provider.query_by_name("Polaris")

        mock_simbad.query_objectids.assert_called_once_with("Polaris")
        assert star.name == "Polaris"
        assert "source_id = 576402619921510144" in mock_gaia.launch_job.call_args[0][0]

    @pytest.mark.asyncio
    async def test_by_name_uppercase_id_column(self, provider, mock_simbad):
        mock_simbad.query_objectids.return_value = Table({'ID': ['Gaia DR3 576402619921510144']})
        star = await provider.query_by_name("Polaris")
        assert star is not None

    @pytest.mark.asyncio
    async def test_unknown_name(self, provider, mock_simbad, mock_gaia):
        mock_simbad.query_objectids.return_value = None
        assert await provider.query_by_name("Nonexistent") is None
        mock_gaia.launch_job.assert_not_called()

    @pytest.mark.asyncio
    async def test_name_without_gaia_designation(self, provider, mock_simbad, mock_gaia):
        mock_simbad.query_objectids.return_value = Table({'id': ['HD 1', 'SAO 2']})
        assert await provider.query_by_name("HD 1") is None
        mock_gaia.launch_job.assert_not_called()

    @pytest.mark.asyncio
    async def test_simbad_failure(self, provider, mock_simbad):
        mock_simbad.query_objectids.side_effect = ConnectionError("simbad down")
        assert await provider.query_by_name("Polaris") is None
