from pathlib import Path

import pytest

from gbrowse.cli import load_config, main

CONFIG = str(Path(__file__).parent.parent / "default.yaml")


def test_resolve_and_plan(capsys):
    assert main(["chrII:9000-11000", "--config", CONFIG]) == 0
    out = capsys.readouterr().out
    assert "chrII" in out
    assert "9,000" in out
    assert "Genes" in out
    assert "CDS" in out
    assert "global" in out


def test_named_gene(capsys):
    assert main(["Gene:RPL32", "-c", CONFIG, "--tracks", "CDS"]) == 0
    out = capsys.readouterr().out
    assert "RPL32" in out
    assert "chrII:9000..11000" in out


def test_automatic_class(capsys):
    assert main(["FIG1", "-c", CONFIG, "--tracks"]) == 0
    out = capsys.readouterr().out
    assert "400,000" in out


def test_not_found(capsys):
    assert main(["nothing_here", "-c", CONFIG]) == 1
    assert "not found" in capsys.readouterr().out


def test_bad_location(capsys):
    assert main(["chrII:1-2-3", "-c", CONFIG]) == 2
    assert "error" in capsys.readouterr().err


@pytest.mark.parametrize("option", ["Genes=x", "Genes=8"])
def test_bad_track_option(option, capsys):
    assert main(["chrII:9000-11000", "-c", CONFIG, "-o", option]) == 2
    assert "error" in capsys.readouterr().err


def test_track_option(capsys):
    assert main(["chrII:9000-11000", "-c", CONFIG, "-t", "CDS", "-o", "CDS=1"]) == 0
    out = capsys.readouterr().out
    assert "off" in out
    assert "none" in out


def test_missing_database(tmp_path, capsys):
    config = tmp_path / "empty.yaml"
    config.write_text("general:\n  description: nothing\n")
    assert main(["chrI", "-c", str(config)]) == 2
    assert "No database" in capsys.readouterr().err


def test_load_config_from_directory(tmp_path):
    (tmp_path / "01.yeast.yaml").write_text("general:\n  description: yeast\n")
    (tmp_path / "02.worm.yaml").write_text("general:\n  description: worm\n")
    assert load_config(tmp_path).description() == "worm"
    assert load_config(tmp_path, "yeast").description() == "yeast"
