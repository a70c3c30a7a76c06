"""Genome browser rendering layer.

Resolves location queries into segments, merges scattered matches into
display spans, and plans track labels and layout under semantic zooming.
"""

import logging

from gbrowse.config import Browser, BrowserConfig, ConfigurationError, get_config
from gbrowse.database.feature_db import FeatureDatabase, MemoryFeatureDB, open_database
from gbrowse.database.merger import SegmentMerger, merge
from gbrowse.database.resolver import LocationSyntaxError, SegmentResolver, parse_location, resolve
from gbrowse.database.segment import RawFeature, Segment
from gbrowse.display.labels import LabelResolver
from gbrowse.display.layout import TrackDecision, TrackLayoutPlanner
from gbrowse.display.tracks import TrackAssembler
from gbrowse.utils import commas

__all__ = ['logger',
            'get_config', 'Browser', 'BrowserConfig', 'ConfigurationError',
            'Segment', 'RawFeature', 'FeatureDatabase', 'MemoryFeatureDB', 'open_database',
            'SegmentResolver', 'LocationSyntaxError', 'parse_location', 'resolve',
            'SegmentMerger', 'merge',
            'LabelResolver', 'TrackLayoutPlanner', 'TrackDecision', 'TrackAssembler',
            'commas']

logger = logging.getLogger(__name__)
