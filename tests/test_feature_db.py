import gzip
import shutil
from pathlib import Path

import pysam
import pytest

from gbrowse.config import BrowserConfig, ConfigurationError
from gbrowse.database.annotations import ColumnSpec, GFFStream
from gbrowse.database.feature_db import MemoryFeatureDB, open_database, wildcard_to_re
from gbrowse.database.segment import RawFeature, Segment

YEAST = Path(__file__).parent.parent / "examples" / "yeast_sample.gff3"

GFF2 = "\n".join([
    "##gff-version 2",
    "CHROMOSOME_IV\tcurated\tgene\t1000\t5000\t.\t+\t.\tGene \"unc-9\" ; Note \"innexin\"",
    "CHROMOSOME_IV\tcurated\texon\t1000\t1500\t.\t+\t.\tGene \"unc-9\"",
    "CHROMOSOME_IV\tgenbank\tclone\t800\t6000\t.\t.\t.\tClone B0019",
    "CHROMOSOME_IV\tcurated\tintron\t1501\t3999\t.\t+\t.\t.",
    "short\tline",
    "",
])


@pytest.fixture
def yeast():
    return MemoryFeatureDB.from_gff(YEAST)


def test_column_spec():
    assert ColumnSpec("start", int).parse("12") == 12
    assert ColumnSpec("score", float, 0.0).parse(".") == 0.0
    assert ColumnSpec("phase", int, None).parse("x") is None


def test_gff3_attributes():
    attrs, cls, name = GFFStream.format_group_entry("ID=YAL068C;Name=PAU8;Note=seripauperin%2C8;Parent=a,b")
    assert attrs == {'ID': 'YAL068C', 'Name': 'PAU8', 'Note': 'seripauperin,8', 'Parent': 'a'}
    assert (cls, name) == ("", "")


def test_gff2_group():
    attrs, cls, name = GFFStream.format_group_entry('Gene "unc-9" ; Note "innexin"')
    assert (cls, name) == ("Gene", "unc-9")
    assert attrs['Note'] == "innexin"


def test_parse_gff3_line():
    stream = GFFStream(YEAST)
    feature = stream.parse_line("chrI\tSGD\tCDS\t1807\t2169\t.\t-\t0\tParent=YAL068C;Name=PAU8;Class=Gene\n")
    assert feature == RawFeature("chrI", 1807, 2169, "CDS:SGD", "PAU8", cls="Gene", strand="-")
    assert feature.method == "CDS"
    assert feature.source == "SGD"


def test_sequence_regions():
    assert GFFStream(YEAST).sequence_regions() == {"chrI": 230218, "chrII": 813184}


def test_gff2_file(tmp_path):
    path = tmp_path / "worm.gff"
    path.write_text(GFF2)
    features = list(GFFStream(path).stream())
    assert [(f.type, f.name, f.cls) for f in features] == [
        ("gene:curated", "unc-9", "Gene"),
        ("exon:curated", "unc-9", "Gene"),
        ("clone:genbank", "B0019", "Clone"),
        ("intron:curated", "", "intron"),
    ]


def test_stream_filters_region():
    features = list(GFFStream(YEAST).stream("chrII", 50_000, 60_000))
    assert [f.name for f in features] == ["RPS8A"]


def test_query_range():
    names = {f.name for f in GFFStream(YEAST).query_range("chrI", 2000, 2500)}
    assert names == {"PAU8", "YAL067W-A"}


def test_gzipped_file_without_index(tmp_path, caplog):
    path = tmp_path / "yeast.gff3.gz"
    with open(YEAST, "rb") as src, gzip.open(path, "wb") as dst:
        shutil.copyfileobj(src, dst)
    stream = GFFStream(path)
    assert stream.tabix is None
    assert "No index found" in caplog.text
    assert len(list(stream.stream())) == 14


def test_tabix_indexed_file(tmp_path):
    plain = tmp_path / "yeast.gff3"
    shutil.copy(YEAST, plain)
    indexed = pysam.tabix_index(str(plain), preset="gff", force=True)
    stream = GFFStream(indexed)
    try:
        assert stream.tabix is not None
        assert [f.name for f in stream.stream("chrII", 50_000, 60_000)] == ["RPS8A"]
        assert list(stream.stream("chrIII")) == []
        assert stream.sequence_regions()["chrII"] == 813184
    finally:
        stream.close()


def test_load_yeast(yeast):
    assert len(yeast) == 14
    assert yeast.references == {"chrI": 230218, "chrII": 813184}


def test_reference_lookup(yeast):
    assert yeast.by_name_range("chrII") == [Segment("chrII", 1, 813184)]
    assert yeast.by_name_range("CHRII", start=100, stop=200) == [Segment("chrII", 100, 200)]


def test_named_lookup_needs_class(yeast):
    assert yeast.by_name_range("PAU8") == []
    assert yeast.by_name_range("PAU8", "gene") == [Segment("chrI", 1807, 2169, cls="Gene", name="PAU8")]


def test_named_lookup_merges_parts(yeast):
    # the RPL32 gene and both of its CDS parts
    assert yeast.by_name_range("RPL32", "Gene") == [Segment("chrII", 9000, 11000, cls="Gene", name="RPL32")]
    assert len(yeast.fetch_subfeatures_by_name("Gene", "RPL32")) == 3
    assert yeast.fetch_subfeatures_by_name("Clone", "RPL32") == []


def test_range_is_relative_to_named_feature(yeast):
    segment, = yeast.by_name_range("RPL32", "Gene", 101, 200)
    assert (segment.start, segment.end) == (9100, 9199)


def test_wildcard_lookup(yeast):
    assert [s.name for s in yeast.by_wildcard_name("YAL06*")] == ["YAL069W", "YAL067W-A"]
    assert [s.name for s in yeast.by_wildcard_name("chr*")] == ["chrI", "chrII"]
    assert [s.name for s in yeast.by_wildcard_name("chr*", "Gene")] == []
    assert [s.name for s in yeast.by_wildcard_name("est12.?", None)] == []
    assert [s.name for s in yeast.by_wildcard_name("est12*")] == ["est12.f", "est12.r"]


def test_wildcard_to_re():
    assert wildcard_to_re("unc*").fullmatch("UNC-9")
    assert not wildcard_to_re("unc*").fullmatch("xunc")
    assert wildcard_to_re("*.f").fullmatch("yk12.f")
    assert not wildcard_to_re("*.f").fullmatch("yk12xf")


def test_features_in_range(yeast):
    found = yeast.features_in_range("chrI", 7000, 8000, ["gene:SGD", "similarity"])
    assert [(f.type, f.name) for f in found] == [("gene:SGD", "SEO1"), ("similarity:EST", "est12.f")]
    assert len(yeast.features_in_range("chrI", 7000, 8000)) == 2


def test_open_database(tmp_path):
    shutil.copy(YEAST, tmp_path / "yeast.gff3")
    config = BrowserConfig({'general': {'database': 'yeast.gff3'}}, path=tmp_path / "yeast.yaml")
    db = open_database(config)
    assert len(db) == 14


def test_open_database_errors(tmp_path):
    missing = BrowserConfig({'general': {'database': 'nope.gff3'}}, path=tmp_path / "x.yaml")
    with pytest.raises(ConfigurationError, match="does not exist"):
        open_database(missing)
    unknown = BrowserConfig({'general': {'database': 'dbi:mysql:elegans', 'adaptor': 'dbi::mysql'}})
    with pytest.raises(ConfigurationError, match="Unknown database adaptor"):
        open_database(unknown)
