"""
Tests for scripts/build_xmatch_database.py.
"""

import pytest

from scripts.build_xmatch_database import main
from starxref.data.local_source import LocalCrossMatchStore


@pytest.fixture
def xmatch_csv(tmp_path):
    path = tmp_path / "xmatch.csv"
    path.write_text(
        "gaia_id,sao_number,ra_deg,dec_deg,vmag\n"
        "576402619921510144,308,37.95456,89.26411,2.0\n"
        "3017364132949533184,132071,83.82208,-5.39111,6.7\n"
    )
    return str(path)


def test_build_from_xmatch_table(xmatch_csv, tmp_path):
    output = str(tmp_path / "out.db")

    assert main(['--xmatch', xmatch_csv, '--output', output]) == 0

    with LocalCrossMatchStore(output) as store:
        assert store.is_available()
        assert store.find_by_identifier(576402619921510144) == 308
        assert store.find_by_identifier(3017364132949533184) == 132071


def test_existing_output_requires_force(xmatch_csv, tmp_path):
    output = tmp_path / "out.db"
    output.write_bytes(b"")

    assert main(['--xmatch', xmatch_csv, '--output', str(output)]) == 1
    assert main(['--xmatch', xmatch_csv, '--output', str(output), '--force']) == 0


def test_build_from_gaia_and_sao_catalogs(tmp_path):
    gaia = tmp_path / "gaia.csv"
    gaia.write_text(
        "source_id,ra,dec\n"
        "576402619921510144,37.95456,89.26411\n"
        "1,200.0,-40.0\n"
    )
    sao = tmp_path / "sao.tsv"
    sao.write_text(
        "SAO\t_RAJ2000\t_DEJ2000\tVmag\n"
        "308\t37.95460\t89.26410\t2.0\n"
        "11\t10.0\t10.0\t9.0\n"
    )
    output = str(tmp_path / "built.db")

    assert main(['--gaia', str(gaia), '--sao', str(sao), '--output', output]) == 0

    with LocalCrossMatchStore(output) as store:
        assert store.find_by_identifier(576402619921510144) == 308
        assert store.find_by_identifier(1) is None
        assert store.get_catalog_statistics()['crossmatch_count'] == 1


def test_gaia_mode_requires_sao(tmp_path):
    with pytest.raises(SystemExit):
        main(['--gaia', str(tmp_path / "gaia.csv"), '--output', str(tmp_path / "x.db")])


def test_unreadable_input(tmp_path):
    assert main(['--xmatch', str(tmp_path / "absent.csv"), '--output', str(tmp_path / "x.db")]) == 1
