"""Merging scattered sub-features into contiguous display spans.

When a name matches many parts spread over a reference (the exons of a
long gene, the hits of a clone), showing one segment per part is useless
and showing their full extent may be too coarse. Parts are clustered per
reference instead: a new span starts whenever the gap to the next part, or
the span built so far, reaches ``max_range``. With ten or more parts the gap
distribution is also used, and any gap of at least twice its standard
deviation splits the span, so clusters are found even when ``max_range`` is
far off the typical spacing.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Sequence

import numpy as np

from gbrowse.database.segment import REFERENCE_CLASS, RawFeature, Segment

if TYPE_CHECKING:
    from gbrowse.database.feature_db import FeatureDatabase

logger = logging.getLogger(__name__)

DEFAULT_MAX_RANGE = 100_000
MIN_STATISTICAL_FEATURES = 10


@dataclass(frozen=True)
class MergeSpan:
    """A contiguous range on one reference produced by clustering."""
    ref: str
    start: int
    end: int
    cls: str = REFERENCE_CLASS

    def to_segment(self) -> Segment:
        return Segment(self.ref, self.start, self.end, cls=self.cls, name=self.ref)


def statistical_cutoff(features: Sequence[RawFeature], max_range: int) -> float:
    """Gap length that splits a span, given features sorted by low coordinate.

    Below ten features this is just ``max_range``; otherwise twice the
    population standard deviation of the gaps between neighbours.
    """
    if len(features) < MIN_STATISTICAL_FEATURES:
        return max_range
    lows = np.array([f.low for f in features], dtype=np.int64)
    highs = np.array([f.high for f in features], dtype=np.int64)
    gaps = lows[1:] - highs[:-1]
    return 2.0 * float(np.std(gaps))


def _merge_reference(features: List[RawFeature], max_range: int) -> List[MergeSpan]:
    # sorted() is stable, so equal (low, high) keep their input order
    ordered = sorted(features, key=lambda f: (f.low, f.high))
    cutoff = statistical_cutoff(ordered, max_range)

    ref = ordered[0].ref
    cls = ordered[0].ref_class
    spans = []
    span_start: Optional[int] = None
    span_stop: Optional[int] = None

    for f in ordered:
        if span_stop is not None and (f.low - span_stop >= max_range
                                      or span_stop - span_start >= max_range
                                      or f.low - span_stop >= cutoff):
            spans.append(MergeSpan(ref, span_start, span_stop, cls))
            span_start, span_stop = f.low, f.high
        else:
            if span_start is None:
                span_start = f.low
            span_stop = f.high if span_stop is None else max(span_stop, f.high)

    spans.append(MergeSpan(ref, span_start, span_stop, cls))
    logger.debug(f"merged {len(ordered)} features on {ref} into {len(spans)} spans (cutoff {cutoff:.1f})")
    return spans


def merge_spans(features: Iterable[RawFeature], max_range: int = DEFAULT_MAX_RANGE) -> List[MergeSpan]:
    """Cluster features into spans, reference by reference.

    References come out in the order they are first seen.
    """
    if max_range <= 0:
        raise ValueError(f"max_range must be positive, got {max_range}")

    by_ref: Dict[str, List[RawFeature]] = {}
    for f in features:
        by_ref.setdefault(f.ref, []).append(f)

    spans = []
    for ref_features in by_ref.values():
        spans.extend(_merge_reference(ref_features, max_range))
    return spans


class SegmentMerger:
    """Merges features into segments.

    With a database each span is fetched back from it as a segment of the
    reference; without one, or when the database has nothing for the span,
    a plain Segment is built from the span.
    """

    def __init__(self, db: Optional['FeatureDatabase'] = None):
        self.db = db

    def merge(self, features: Iterable[RawFeature], max_range: int = DEFAULT_MAX_RANGE) -> List[Segment]:
        return [self.materialize(span) for span in merge_spans(features, max_range)]

    def materialize(self, span: MergeSpan) -> Segment:
        if self.db is not None:
            found = self.db.by_name_range(span.ref, span.cls, span.start, span.end)
            if found:
                return found[0]
        return span.to_segment()


def merge(features: Iterable[RawFeature], max_range: int = DEFAULT_MAX_RANGE,
          db: Optional['FeatureDatabase'] = None) -> List[Segment]:
    return SegmentMerger(db).merge(features, max_range)
