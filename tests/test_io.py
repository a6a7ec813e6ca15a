"""
Tests for CSV loading and saving of stars.
"""

import math

import pandas as pd
import pytest

from starxref.data.source import CelestialObject, QueryPosition
from starxref.utils.io import (
    DataLoadError, DataSaveError, load_objects_csv, objects_to_records,
    save_results_to_csv, format_coordinates_astropy
)


class TestLoadObjectsCsv:

    def test_full_columns(self, tmp_path):
        path = tmp_path / "stars.csv"
        path.write_text(
            "source_id,ra_deg,dec_deg,magnitude,name,spectral_type,sao_number\n"
            "576402619921510144,37.95456,89.26411,1.94,Polaris,F7Ib,\n"
            "3017364132949533184,83.82208,-5.39111,6.7,,,132071\n"
        )
        objects = load_objects_csv(str(path))

        assert len(objects) == 2
        polaris = objects[0]
        # 19-digit identifiers survive without float rounding
        assert polaris.source_id == 576402619921510144
        assert polaris.position == QueryPosition(37.95456, 89.26411)
        assert polaris.magnitude == pytest.approx(1.94)
        assert polaris.name == "Polaris"
        assert polaris.spectral_type == "F7Ib"
        assert polaris.sao_number is None
        assert objects[1].sao_number == 132071
        assert objects[1].name is None

    def test_gaia_archive_column_names(self, tmp_path):
        path = tmp_path / "gaia.csv"
        path.write_text("SOURCE_ID;RA;DEC\n1;10.0;20.0\n")
        objects = load_objects_csv(str(path))
        assert objects[0].source_id == 1
        assert objects[0].position == QueryPosition(10.0, 20.0)

    def test_position_only(self, tmp_path):
        path = tmp_path / "pos.csv"
        path.write_text("ra_deg,dec_deg\n10.0,20.0\n")
        obj = load_objects_csv(str(path))[0]
        assert not obj.has_source_id
        assert math.isnan(obj.magnitude)

    def test_bad_rows_skipped(self, tmp_path):
        path = tmp_path / "bad.csv"
        path.write_text("source_id,ra_deg,dec_deg\n1,10.0,20.0\n2,400.0,20.0\nx,10.0,20.0\n4,,20.0\n")
        objects = load_objects_csv(str(path))
        assert [o.source_id for o in objects] == [1]

    def test_integers_written_with_decimal_zero(self, tmp_path):
        path = tmp_path / "exported.csv"
        path.write_text(
            "source_id,ra_deg,dec_deg,sao_number\n"
            "576402619921510145.0,37.95456,89.26411,308.00\n"
            "2,10.0,20.0,12.5\n"
        )
        objects = load_objects_csv(str(path))

        assert len(objects) == 1
        assert objects[0].source_id == 576402619921510145
        assert objects[0].sao_number == 308

    def test_missing_required_column(self, tmp_path):
        path = tmp_path / "nodec.csv"
        path.write_text("source_id,ra_deg\n1,10.0\n")
        with pytest.raises(DataLoadError, match="dec_deg"):
            load_objects_csv(str(path))

    def test_missing_file(self, tmp_path):
        with pytest.raises(DataLoadError, match="File not found"):
            load_objects_csv(str(tmp_path / "absent.csv"))

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.csv"
        path.write_text("")
        with pytest.raises(DataLoadError):
            load_objects_csv(str(path))


class TestSaveResults:

    def test_round_trip_of_enriched_objects(self, tmp_path):
        objects = [
            CelestialObject(QueryPosition(37.95456, 89.26411), magnitude=1.94,
                            source_id=576402619921510144, name="Polaris", sao_number=308),
            CelestialObject(QueryPosition(10.0, 20.0)),
        ]
        path = tmp_path / "out.csv"

        save_results_to_csv(objects_to_records(objects), str(path))

        df = pd.read_csv(path, dtype={'source_id': str, 'sao_number': str})
        assert list(df.columns[:3]) == ['source_id', 'ra_deg', 'dec_deg']
        assert df['source_id'].iloc[0] == "576402619921510144"
        assert df['sao_number'].iloc[0] == "308"
        assert pd.isna(df['sao_number'].iloc[1])
        assert pd.isna(df['source_id'].iloc[1])
        assert pd.isna(df['magnitude'].iloc[1])

    def test_empty_results_write_nothing(self, tmp_path):
        path = tmp_path / "none.csv"
        save_results_to_csv([], str(path))
        assert not path.exists()

    def test_missing_directory(self, tmp_path):
        with pytest.raises(DataSaveError):
            save_results_to_csv([{'a': 1}], str(tmp_path / "missing" / "out.csv"))


class TestRecords:

    def test_record_fields(self):
        obj = CelestialObject(QueryPosition(1.0, 2.0), magnitude=5.0, source_id=7,
                              spectral_type="G2V", parallax=10.0)
        record = objects_to_records([obj])[0]
        assert record['source_id'] == 7
        assert record['ra_deg'] == 1.0
        assert record['dec_deg'] == 2.0
        assert record['spectral_type'] == "G2V"
        assert record['parallax'] == 10.0
        assert record['sao_number'] is None


class TestFormatCoordinates:

    def test_polaris(self):
        text = format_coordinates_astropy(37.954542, 89.264111)
        assert text.startswith("02 31 49.09")
        assert "+89 15 50.8" in text

    def test_missing(self):
        assert format_coordinates_astropy(None, 1.0) == "N/A"
