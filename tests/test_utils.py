from gbrowse.utils import as_bool, commas, fold_whitespace, is_overview, shellwords, split_zoom


def test_commas():
    assert commas(1234567) == "1,234,567"
    assert commas(12) == "12"


def test_fold_whitespace():
    assert fold_whitespace(" a\n\tb ") == "a b"
    assert fold_whitespace(["CDS:SGD", "CDS:curated"]) == "CDS:SGD CDS:curated"
    assert fold_whitespace(3) == 3
    assert fold_whitespace(None) is None


def test_shellwords():
    assert shellwords('"Named genes" EST') == ["Named genes", "EST"]
    assert shellwords(None) == []
    assert shellwords("") == []


def test_zoom_and_overview_suffixes():
    assert split_zoom("Gene:500") == ("Gene", 500)
    assert split_zoom("Gene") == ("Gene", None)
    assert is_overview("overview")
    assert is_overview("Clone:overview")
    assert not is_overview("myoverview")


def test_as_bool():
    assert as_bool("yes")
    assert not as_bool("0")
    assert not as_bool(" off ")
    assert as_bool(1)
    assert not as_bool(None)
