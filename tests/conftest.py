import pytest

from gbrowse.config import BrowserConfig
from gbrowse.database.feature_db import MemoryFeatureDB
from gbrowse.database.segment import RawFeature


class RecordingDB(MemoryFeatureDB):
    """MemoryFeatureDB that remembers every lookup made against it."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.calls = []

    def by_name_range(self, name, cls=None, start=None, stop=None):
        self.calls.append(('by_name_range', name, cls, start, stop))
        return super().by_name_range(name, cls, start, stop)

    def by_wildcard_name(self, pattern, cls=None, start=None, stop=None):
        self.calls.append(('by_wildcard_name', pattern, cls, start, stop))
        return super().by_wildcard_name(pattern, cls, start, stop)

    def fetch_subfeatures_by_name(self, cls, name):
        self.calls.append(('fetch_subfeatures_by_name', cls, name))
        return super().fetch_subfeatures_by_name(cls, name)

    def calls_to(self, method):
        return [c for c in self.calls if c[0] == method]


GENES = [
    RawFeature("CHROMOSOME_IV", 1000, 5000, "gene:curated", "unc-9", cls="Gene"),
    RawFeature("CHROMOSOME_IV", 1000, 1500, "exon:curated", "unc-9", cls="Gene"),
    RawFeature("CHROMOSOME_IV", 4000, 5000, "exon:curated", "unc-9", cls="Gene"),
    RawFeature("CHROMOSOME_IV", 20000, 26000, "gene:curated", "unc-10", cls="Gene"),
    RawFeature("CHROMOSOME_X", 700, 900, "clone:genbank", "B0019", cls="Clone"),
    RawFeature("chrV", 100, 400, "gene:curated", "lin-12", cls="Gene"),
]

REFERENCES = {"CHROMOSOME_IV": 17_000_000, "CHROMOSOME_X": 500_000, "chrV": 20_000_000}


@pytest.fixture
def db():
    return RecordingDB(GENES, references=REFERENCES)


@pytest.fixture
def config():
    return BrowserConfig({
        'general': {
            'automatic classes': 'Gene Clone',
            'zoom levels': '100 1000 10000 100000',
            'label density': 10,
            'bump density': 50,
        },
        'DNA': {'glyph': 'dna'},
        'Gene': {'feature': 'gene:curated', 'key': 'Genes', 'glyph': 'generic'},
        'Gene:5000': {'feature': 'gene:curated', 'glyph': 'box'},
        'Gene:50000': {'feature': 'gene:curated', 'glyph': 'line'},
        'Exon': {'feature': 'exon', 'key': 'Exons'},
        'EST': {'feature': 'similarity alignment', 'connector': 'dashed'},
        'Clone': {'feature': 'clone', 'global feature': 0},
        'overview': {'feature': 'gene:curated'},
    }, name='worm')
