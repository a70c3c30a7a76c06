"""
Track assembly for one render pass.

Given the tracks a user asked for and the features fetched for the
displayed segment, this module works out what each track holds and how it
should be laid out. Drawing is left to the caller.
"""

import logging
import random
import re
from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from gbrowse.database.segment import RawFeature, Segment
from gbrowse.display.labels import LabelResolver, base_label
from gbrowse.display.layout import TrackCounter, TrackDecision, TrackLayoutPlanner, apply_limit
from gbrowse.utils import as_bool, shellwords

if TYPE_CHECKING:
    from gbrowse.config import BrowserConfig

logger = logging.getLogger(__name__)

# paired reads come in as similarity/alignment features named foo.f / foo.r etc.
PAIRED_METHODS = re.compile(r"^(similarity|alignment)$", re.IGNORECASE)
PAIR_SUFFIX = re.compile(r"\.[frpq35]$", re.IGNORECASE)
HIT_COORDS = re.compile(r":\d+,\d+$")


class TrackKind(Enum):
    FEATURE = "feature"
    GLOBAL = "global"          # drawn once over the whole segment
    THIRD_PARTY = "third_party"  # filled by an uploaded feature file


@dataclass
class RenderedTrack:
    label: str
    kind: TrackKind
    style: Dict[str, Any] = field(default_factory=dict)
    features: List[RawFeature] = field(default_factory=list)
    groups: List[List[RawFeature]] = field(default_factory=list)
    decision: Optional[TrackDecision] = None

    @property
    def count(self) -> int:
        return len(self.features) + sum(len(g) for g in self.groups)


@dataclass
class RenderPlan:
    segment_length: int
    tracks: List[RenderedTrack] = field(default_factory=list)
    counts: Optional[TrackCounter] = None

    def get(self, label: str) -> Optional[RenderedTrack]:
        for track in self.tracks:
            if track.label == label:
                return track
        return None

    def decisions(self) -> Dict[str, TrackDecision]:
        return {t.label: t.decision for t in self.tracks if t.decision is not None}


def pair_base_name(name: str) -> str:
    return PAIR_SUFFIX.sub("", name)


def group_pairs(features: Iterable[RawFeature]) -> List[List[RawFeature]]:
    """Group paired reads by name with their ``.f/.r``-style suffix removed."""
    pairs: Dict[str, List[RawFeature]] = {}
    for f in features:
        pairs.setdefault(pair_base_name(f.name), []).append(f)
    return list(pairs.values())


class TrackAssembler:
    """Sorts one render's features into tracks and decides their layout."""

    def __init__(self, config: 'BrowserConfig', planner: Optional[TrackLayoutPlanner] = None):
        self.config = config
        self.labels = LabelResolver(config)
        self.planner = planner or TrackLayoutPlanner.from_config(config)

    def is_global(self, label: str) -> bool:
        return (self.config.setting(label, 'glyph') == 'dna'
                or as_bool(self.config.setting(label, 'global feature')))

    def feature_types(self, tracks: Sequence[str], length: Optional[int] = None) -> List[str]:
        """Feature types to fetch for the requested tracks at this length."""
        types = []
        for label in tracks:
            for ftype in self.labels.label2type(label, length):
                if ftype not in types:
                    types.append(ftype)
        return types

    def assemble(self, segment_length: int, tracks: Sequence[str], features: Iterable[RawFeature],
                 options: Optional[Dict[str, int]] = None, limits: Optional[Dict[str, int]] = None,
                 feature_files: Optional[Dict[str, Any]] = None,
                 rng: Optional[random.Random] = None) -> RenderPlan:
        """Build the render plan for one segment.

        Args:
            segment_length: Length of the displayed segment
            tracks: Track labels in display order
            features: Features fetched for the segment
            options: Per-track option codes (0-5)
            limits: Per-track hard caps on the number of features shown
            feature_files: Third-party feature sources keyed by track label
            rng: Random source used when applying limits

        Returns:
            RenderPlan with one RenderedTrack per accepted label
        """
        options = options or {}
        limits = limits or {}
        feature_files = feature_files or {}

        plan = RenderPlan(segment_length)
        by_label: Dict[str, RenderedTrack] = {}
        global_tracks = []

        for label in tracks:
            if label in feature_files:
                plan.tracks.append(RenderedTrack(label, TrackKind.THIRD_PARTY))
                continue
            if not self.config.has_stanza(label):
                logger.warning(f"invalid track: {label}")
                continue
            style = self.labels.style(label, segment_length)
            if self.is_global(label):
                track = RenderedTrack(label, TrackKind.GLOBAL, style)
                global_tracks.append(label)
            else:
                track = RenderedTrack(label, TrackKind.FEATURE, style)
                by_label[label] = track
            plan.tracks.append(track)

        counter = TrackCounter(global_tracks)
        paired: Dict[str, List[RawFeature]] = defaultdict(list)

        for feature in features:
            stanza = self.labels.feature_to_label(feature, segment_length)
            label = base_label(stanza) if stanza else None
            track = by_label.get(label)
            if track is None:
                continue
            counter.add(label)
            if PAIRED_METHODS.match(feature.method):
                paired[label].append(feature)
            else:
                track.features.append(feature)

        for label, pair_features in paired.items():
            by_label[label].groups.extend(group_pairs(pair_features))

        for label, track in by_label.items():
            if not counter.count(label):
                continue
            limit = limits.get(label)
            if limit and limit > 0:
                self._limit_track(track, limit, rng)
                counter.cap(label, limit)
            track.decision = self.planner.plan(label, counter.count(label), options.get(label, 0))

        plan.counts = counter
        return plan

    @staticmethod
    def _limit_track(track: RenderedTrack, limit: int, rng: Optional[random.Random]):
        parts: List[Union[RawFeature, List[RawFeature]]] = list(track.features) + list(track.groups)
        kept = apply_limit(parts, limit, rng)
        track.features = [p for p in kept if not isinstance(p, list)]
        track.groups = [p for p in kept if isinstance(p, list)]


@dataclass
class OverviewTrack:
    label: str
    features: List[RawFeature] = field(default_factory=list)
    bump: bool = False
    label_features: bool = False


def plan_overview(config: 'BrowserConfig', features: Iterable[RawFeature]) -> Dict[str, OverviewTrack]:
    """Landmark tracks for the chromosome overview.

    A feature joins the overview track that declares its type, or failing
    that its method. Bump and label follow the track's own ``bump`` and
    ``label`` settings where given, and feature density otherwise.
    """
    type2track: Dict[str, str] = {}
    tracks: Dict[str, OverviewTrack] = {}
    for label in config.overview_tracks():
        tracks[label] = OverviewTrack(label)
        for ftype in shellwords(config.setting(label, 'feature')):
            type2track[ftype.lower()] = label

    for feature in features:
        label = type2track.get(feature.type.lower()) or type2track.get(feature.method.lower())
        if label is None:
            continue
        tracks[label].features.append(feature)

    max_bump = config.bump_density()
    max_label = config.label_density()
    for label, track in tracks.items():
        count = len(track.features)
        if not count:
            continue
        bump = config.setting(label, 'bump')
        show = config.setting(label, 'label')
        track.bump = as_bool(bump) if bump is not None else count <= max_bump
        track.label_features = as_bool(show) if show is not None else count <= max_label
    return {label: t for label, t in tracks.items() if t.features}


@dataclass
class HitGroup:
    ref: str
    hits: List[RawFeature] = field(default_factory=list)
    bump: bool = False
    label: bool = False


HitLike = Union[Segment, RawFeature, Tuple]


def _hit_name(name: str) -> str:
    name = HIT_COORDS.sub("", name or "")
    if len(name) > 10:
        name = name[:7] + "..."
    return name


def group_hits(hits: Iterable[HitLike], config: Optional['BrowserConfig'] = None) -> Dict[str, HitGroup]:
    """Sort search hits by reference sequence for the overview.

    Hits may be Segments, RawFeatures or ``(ref, start, stop[, name])``
    tuples. Both bump and label are switched on while the number of hits on
    a reference stays within the bump density.
    """
    max_bump = config.bump_density() if config is not None else TrackLayoutPlanner().max_bump
    groups: Dict[str, HitGroup] = {}
    for hit in hits:
        if isinstance(hit, tuple):
            ref, start, stop = hit[:3]
            name = hit[3] if len(hit) > 3 and hit[3] else ""
            feature = RawFeature(ref, start, stop, name=name)
        elif isinstance(hit, (Segment, RawFeature)):
            feature = RawFeature(hit.ref, hit.start, hit.end, name=_hit_name(hit.name))
        else:
            raise TypeError(f"Unsupported hit {hit!r}")
        groups.setdefault(feature.ref, HitGroup(feature.ref)).hits.append(feature)

    for group in groups.values():
        group.bump = group.label = len(group.hits) <= max_bump
    return {ref: groups[ref] for ref in sorted(groups)}
