"""Feature database capability.

Location resolution only needs three lookups from a feature database: an
exact name lookup with an optional range, a wildcard name lookup, and a
fetch of all the parts that share a name. ``FeatureDatabase`` names exactly
those; ``MemoryFeatureDB`` implements them over features held in memory,
typically loaded from a GFF file.
"""

import logging
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Tuple, Union

from gbrowse.config import BrowserConfig, ConfigurationError
from gbrowse.database.annotations import GFFStream
from gbrowse.database.segment import REFERENCE_CLASS, RawFeature, Segment

logger = logging.getLogger(__name__)


class FeatureDatabase(ABC):
    """The lookups location resolution makes against a feature source."""

    @abstractmethod
    def by_name_range(self, name: str, cls: Optional[str] = None,
                      start: Optional[int] = None, stop: Optional[int] = None) -> List[Segment]:
        """Segments for an exact name, optionally restricted to a range."""
        pass

    @abstractmethod
    def by_wildcard_name(self, pattern: str, cls: Optional[str] = None,
                         start: Optional[int] = None, stop: Optional[int] = None) -> List[Segment]:
        """Segments whose names match a ``*`` wildcard pattern."""
        pass

    @abstractmethod
    def fetch_subfeatures_by_name(self, cls: Optional[str], name: str) -> List[RawFeature]:
        """Every individual part carrying a name, unmerged."""
        pass


def wildcard_to_re(pattern: str) -> 're.Pattern':
    return re.compile(".*".join(re.escape(p) for p in pattern.split("*")), re.IGNORECASE)


class MemoryFeatureDB(FeatureDatabase):
    """Feature database held in memory.

    Reference sequences are landmarks of class ``Sequence``; an exact lookup
    without a class searches that class only, while wildcard lookups without
    a class search everything. Parts sharing a reference, class and name
    form one named feature. Ranges given with a named feature are relative
    to its start. Names and classes match case-insensitively, and results
    come back in the order features were added.
    """

    reference_class = REFERENCE_CLASS

    def __init__(self, features: Iterable[RawFeature] = (),
                 references: Optional[Dict[str, int]] = None):
        self._features: List[RawFeature] = []
        self._references: Dict[str, int] = {}
        self._by_name: Dict[str, List[RawFeature]] = {}
        for ref, length in (references or {}).items():
            self.add_reference(ref, length)
        for feature in features:
            self.add_feature(feature)

    @classmethod
    def from_gff(cls, filepath: Union[str, Path]) -> 'MemoryFeatureDB':
        stream = GFFStream(filepath)
        try:
            db = cls(references=stream.sequence_regions())
            for feature in stream.stream():
                db.add_feature(feature)
        finally:
            stream.close()
        logger.info(f"Loaded {len(db)} features on {len(db.references)} references from {filepath}")
        return db

    @property
    def references(self) -> Dict[str, int]:
        return dict(self._references)

    def __len__(self):
        return len(self._features)

    def add_reference(self, name: str, length: int):
        self._references[name] = int(length)

    def add_feature(self, feature: RawFeature):
        self._features.append(feature)
        if feature.high > self._references.get(feature.ref, 0):
            self._references[feature.ref] = feature.high
        if feature.name:
            self._by_name.setdefault(feature.name.lower(), []).append(feature)

    def by_name_range(self, name: str, cls: Optional[str] = None,
                      start: Optional[int] = None, stop: Optional[int] = None) -> List[Segment]:
        cls = cls or self.reference_class
        segments = []
        if self._is_reference_class(cls):
            ref = self._find_reference(name)
            if ref is not None:
                segments.append(self._reference_segment(ref, start, stop))
        parts = self._by_name.get(name.lower(), [])
        for segment in self._named_segments(parts, cls, start, stop):
            if segment not in segments:
                segments.append(segment)
        return segments

    def by_wildcard_name(self, pattern: str, cls: Optional[str] = None,
                         start: Optional[int] = None, stop: Optional[int] = None) -> List[Segment]:
        regex = wildcard_to_re(pattern)
        segments = []
        if cls is None or self._is_reference_class(cls):
            for ref in self._references:
                if regex.fullmatch(ref):
                    segments.append(self._reference_segment(ref, start, stop))
        parts = [f for f in self._features if f.name and regex.fullmatch(f.name)]
        segments.extend(self._named_segments(parts, cls, start, stop))
        return segments

    def fetch_subfeatures_by_name(self, cls: Optional[str], name: str) -> List[RawFeature]:
        return [f for f in self._by_name.get(name.lower(), []) if self._class_matches(f, cls)]

    def features_in_range(self, ref: str, start: int, end: int,
                          types: Optional[Iterable[str]] = None) -> List[RawFeature]:
        """Features overlapping a range, optionally restricted to types.

        A type without a ``:source`` qualifier matches any source.
        """
        wanted = {t.lower() for t in types} if types is not None else None
        found = []
        for f in self._features:
            if f.ref != ref or not f.overlaps(start, end):
                continue
            if wanted is not None and f.type.lower() not in wanted and f.method.lower() not in wanted:
                continue
            found.append(f)
        return found

    def _is_reference_class(self, cls: str) -> bool:
        return cls.lower() == self.reference_class.lower()

    @staticmethod
    def _class_matches(feature: RawFeature, cls: Optional[str]) -> bool:
        return cls is None or feature.cls.lower() == cls.lower()

    def _find_reference(self, name: str) -> Optional[str]:
        if name in self._references:
            return name
        lname = name.lower()
        for ref in self._references:
            if ref.lower() == lname:
                return ref
        return None

    def _reference_segment(self, ref: str, start: Optional[int], stop: Optional[int]) -> Segment:
        start = 1 if start is None else start
        stop = self._references[ref] if stop is None else stop
        return Segment(ref, start, stop, cls=self.reference_class, name=ref)

    def _named_segments(self, parts: List[RawFeature], cls: Optional[str],
                        start: Optional[int], stop: Optional[int]) -> List[Segment]:
        groups: Dict[Tuple[str, str, str], List[RawFeature]] = {}
        for f in parts:
            if not self._class_matches(f, cls):
                continue
            groups.setdefault((f.ref, f.cls.lower(), f.name.lower()), []).append(f)

        segments = []
        for group in groups.values():
            low = min(f.low for f in group)
            high = max(f.high for f in group)
            seg_start = low if start is None else low + start - 1
            seg_stop = high if stop is None else low + stop - 1
            first = group[0]
            segments.append(Segment(first.ref, seg_start, seg_stop, cls=first.cls, name=first.name))
        return segments


def open_database(config: BrowserConfig) -> FeatureDatabase:
    """Open the feature database named in a configuration's ``database`` setting."""
    settings = config.database_settings()
    adaptor = settings['adaptor'].lower()
    openers: Dict[str, Callable[[str], FeatureDatabase]] = {
        'gff': MemoryFeatureDB.from_gff,
        'memory': MemoryFeatureDB.from_gff,
    }
    opener = openers.get(adaptor)
    if opener is None:
        raise ConfigurationError(f"Unknown database adaptor {adaptor!r} in {config.name or 'configuration'}")
    if not Path(settings['database']).exists():
        raise ConfigurationError(f"Database {settings['database']} does not exist")
    return opener(settings['database'])
