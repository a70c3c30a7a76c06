from gbrowse.database.segment import RawFeature, Segment


def test_segment_defaults():
    segment = Segment("chrII", "100", 200)
    assert segment.start == 100
    assert segment.cls == "Sequence"
    assert segment.name == "chrII"
    assert str(segment) == "chrII:100..200"


def test_reversed_segment():
    segment = Segment("I", 500, 101)
    assert segment.reversed
    assert (segment.low, segment.high, segment.length) == (101, 500, 400)
    assert segment.overlaps(450, 600)
    assert not segment.overlaps(501, 600)


def test_segment_to_dict():
    assert Segment("I", 1, 10, cls="Gene", name="abc-1").to_dict() == {
        'ref': 'I', 'start': 1, 'end': 10, 'class': 'Gene', 'name': 'abc-1', 'length': 10,
    }


def test_raw_feature():
    feature = RawFeature("I", 10, 20, "exon:curated", "unc-9.a", cls="Transcript")
    assert (feature.method, feature.source) == ("exon", "curated")
    assert RawFeature("I", 1, 2, "exon").source is None
    assert feature.to_segment() == Segment("I", 10, 20, cls="Transcript", name="unc-9.a")
    assert feature.short_repr() == "RawFeature('exon:curated', I:10-20, name='unc-9.a')"
