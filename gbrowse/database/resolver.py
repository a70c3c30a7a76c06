"""Resolving location queries into segments.

Users type locations in many shapes: ``chrII:10,000-20,000``, ``Gene:unc-9``,
``IV``, ``CHROMOSOME_IV``, ``unc*``. A query is parsed against the grammar

    [<class>:]<name>[:<start>(,|-|..)<stop>]

and looked up in the feature database. While nothing is found, a fixed chain
of naming heuristics is tried: chromosome prefixes, prefix stripping, an
implicit trailing wildcard, then the configured automatic classes. Queries
that name a wildcard explicitly skip all of that and return every match.

A result that is ambiguous (several segments) or too long to display is
broken down into its parts and merged into display-sized spans.
"""

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional

from gbrowse.config import TOO_MANY_SEGMENTS, BrowserConfig
from gbrowse.database.merger import SegmentMerger
from gbrowse.database.segment import REFERENCE_CLASS, Segment

if TYPE_CHECKING:
    from gbrowse.database.feature_db import FeatureDatabase

logger = logging.getLogger(__name__)

CHROMOSOME_PREFIXES = ("CHROMOSOME_", "Chr", "chr")

_NAME = r"[\w.*\-]+"
RANGE_COMMA = re.compile(rf"^(?:(\w+):)?({_NAME}):(-?\d+),(-?\d+)$")
RANGE_SPAN = re.compile(rf"^(?:(\w+):)?({_NAME}):(-?[\d,]+)(?:-|\.\.)(-?[\d,]+)$")
CLASS_NAME = re.compile(r"^(\w+):(.+)$")
LOOKS_LIKE_RANGE = re.compile(r"^[\d,.\-]*\d[\d,.\-]*$")
BARE_TOKEN = re.compile(r"^[\dIVXA-F]+$")
CHROMOSOME_PREFIX = re.compile(r"^(chromosome_?|chr)", re.IGNORECASE)


class LocationSyntaxError(ValueError):
    """A location query that cannot be interpreted."""


@dataclass(frozen=True)
class LocationQuery:
    name: str
    cls: Optional[str] = None
    start: Optional[int] = None
    stop: Optional[int] = None

    @property
    def is_wildcard(self) -> bool:
        return "*" in self.name

    @property
    def has_range(self) -> bool:
        return self.start is not None


def _coordinate(text: str, location: str) -> int:
    digits = text.replace(",", "")
    try:
        return int(digits)
    except ValueError:
        raise LocationSyntaxError(f"Invalid coordinate {text!r} in location {location!r}") from None


def parse_location(location: str) -> LocationQuery:
    """Parse a location query.

    Raises:
        LocationSyntaxError: empty or non-ASCII text, or a range whose
            coordinates aren't numbers
    """
    if location is None or not location.strip():
        raise LocationSyntaxError("Empty location")
    text = location.strip()
    if not text.isascii():
        raise LocationSyntaxError(f"Location must be ASCII: {location!r}")

    m = RANGE_COMMA.match(text) or RANGE_SPAN.match(text)
    if m:
        cls, name, start, stop = m.groups()
        return LocationQuery(name, cls, _coordinate(start, text), _coordinate(stop, text))

    m = CLASS_NAME.match(text)
    if m:
        cls, name = m.groups()
        suffix = name.rsplit(":", 1)[-1]
        if ":" in name and LOOKS_LIKE_RANGE.match(suffix):
            raise LocationSyntaxError(f"Malformed range {suffix!r} in location {location!r}")
        if LOOKS_LIKE_RANGE.match(name) and re.search(r"[,\-]|\.\.", name):
            raise LocationSyntaxError(f"Malformed range {name!r} in location {location!r}")
        return LocationQuery(name, cls)

    return LocationQuery(text)


class SegmentResolver:
    """Resolves location text against a feature database."""

    def __init__(self, db: 'FeatureDatabase', config: Optional[BrowserConfig] = None):
        self.db = db
        self.config = config if config is not None else BrowserConfig()
        self.merger = SegmentMerger(db)

    def resolve(self, location: str) -> List[Segment]:
        """Resolve a location query into segments.

        An empty list means nothing matched.
        """
        query = parse_location(location)

        # explicit wildcards get every match, unmerged
        if query.is_wildcard:
            segments = self.db.by_wildcard_name(query.name, query.cls, query.start, query.stop)
            logger.debug(f"wildcard {query.name!r}: {len(segments)} matches")
            return list(segments)

        segments = self._lookup(query)
        if not segments:
            logger.debug(f"no match for {location!r}")
            return []
        return self._split_oversized(segments)

    def _lookup(self, query: LocationQuery) -> List[Segment]:
        name, cls, start, stop = query.name, query.cls, query.start, query.stop

        segments = self.db.by_name_range(name, cls, start, stop)

        if not segments and BARE_TOKEN.match(name):
            for prefix in CHROMOSOME_PREFIXES:
                logger.debug(f"trying {prefix}{name}")
                segments = self.db.by_name_range(f"{prefix}{name}", cls, start, stop)
                if segments:
                    break

        if not segments and CHROMOSOME_PREFIX.match(name):
            stripped = CHROMOSOME_PREFIX.sub("", name, count=1)
            if stripped:
                logger.debug(f"trying {stripped} without chromosome prefix")
                segments = self.db.by_name_range(stripped)

        if not segments and len(name) > 3:
            logger.debug(f"trying {name}*")
            segments = self.db.by_wildcard_name(f"{name}*", REFERENCE_CLASS, start, stop)

        if not segments and cls is None:
            segments = self._lookup_automatic(name, start, stop)

        return list(segments)

    def _lookup_automatic(self, name: str, start: Optional[int], stop: Optional[int]) -> List[Segment]:
        names = [name, f"{name}*"] if len(name) > 3 else [name]
        for auto_class in self.config.automatic_classes():
            for n in names:
                logger.debug(f"trying automatic class {auto_class}:{n}")
                if n.endswith("*"):
                    segments = self.db.by_wildcard_name(n, auto_class, start, stop)
                else:
                    segments = self.db.by_name_range(n, auto_class, start, stop)
                if segments:
                    return segments
        return []

    def _split_oversized(self, segments: List[Segment]) -> List[Segment]:
        max_length = max(s.length for s in segments)
        if len(segments) == 1 and max_length <= self.config.max_segment():
            return segments

        first = segments[0]
        parts = self.db.fetch_subfeatures_by_name(first.cls, first.name or first.ref)
        if 1 < len(parts) < TOO_MANY_SEGMENTS:
            max_range = self.config.zoom_levels()[-1]
            logger.debug(f"merging {len(parts)} parts of {first.name} at {max_range}")
            return self.merger.merge(parts, max_range)
        return segments


def resolve(location: str, db: 'FeatureDatabase', config: Optional[BrowserConfig] = None) -> List[Segment]:
    return SegmentResolver(db, config).resolve(location)
