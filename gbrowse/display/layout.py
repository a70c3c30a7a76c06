"""
Per-track bump and label policy.

After one render pass has counted how many features each track received,
every non-empty track gets a decision on whether its features are bumped
(stacked so they don't collide), labelled, and connected.

Option codes, supplied per track by the caller:

    0  automatic: bump and label depending on feature density
    1  no bump, no labels
    2  bump, no labels
    3  bump and labels
    4  fast bump, no labels
    5  fast bump and labels
"""

import logging
import random
from dataclasses import dataclass
from enum import IntEnum
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Sequence, Tuple, TypeVar

from gbrowse.config import DEFAULT_BUMP_DENSITY, DEFAULT_LABEL_DENSITY

if TYPE_CHECKING:
    from gbrowse.config import BrowserConfig

logger = logging.getLogger(__name__)

T = TypeVar('T')

CONNECTOR_NONE = "none"


class BumpMode(IntEnum):
    OFF = 0
    ON = 1
    FAST = 2


_FIXED_POLICY: Dict[int, Tuple[BumpMode, bool]] = {
    1: (BumpMode.OFF, False),
    2: (BumpMode.ON, False),
    3: (BumpMode.ON, True),
    4: (BumpMode.FAST, False),
    5: (BumpMode.FAST, True),
}


@dataclass(frozen=True)
class TrackDecision:
    """Final layout settings for one track in one render."""
    track: str
    count: int
    bump_mode: BumpMode
    label: bool
    connector: Optional[str] = None  # None keeps the track's configured connector

    @property
    def bump(self) -> bool:
        return self.bump_mode != BumpMode.OFF

    @property
    def fast_bump(self) -> bool:
        return self.bump_mode == BumpMode.FAST

    def to_dict(self):
        return {
            'track': self.track,
            'count': self.count,
            'bump': int(self.bump_mode),
            'label': self.label,
            'connector': self.connector,
        }


class TrackCounter:
    """Feature counts per track for a single render pass.

    Whole-segment tracks are never counted.
    """

    def __init__(self, global_tracks: Iterable[str] = ()):
        self._global = set(global_tracks)
        self._counts: Dict[str, int] = {}

    def add(self, track: str, n: int = 1):
        if track in self._global:
            return
        self._counts[track] = self._counts.get(track, 0) + n

    def cap(self, track: str, limit: int):
        if track in self._counts and limit < self._counts[track]:
            self._counts[track] = limit

    def count(self, track: str) -> int:
        return self._counts.get(track, 0)

    def tracks(self) -> List[str]:
        return list(self._counts)

    def items(self):
        return self._counts.items()

    def __getitem__(self, track: str) -> int:
        return self.count(track)

    def __contains__(self, track: str) -> bool:
        return self.count(track) > 0

    def __len__(self):
        return len(self._counts)


def apply_limit(items: Sequence[T], limit: Optional[int], rng: Optional[random.Random] = None) -> List[T]:
    """Randomly drop items until at most ``limit`` remain, keeping their order.

    A missing or non-positive limit keeps everything.
    """
    items = list(items)
    if not limit or limit <= 0 or len(items) <= limit:
        return items
    rng = rng or random.Random()
    keep = sorted(rng.sample(range(len(items)), limit))
    return [items[i] for i in keep]


class TrackLayoutPlanner:
    """Turns per-track feature counts into bump/label/connector decisions."""

    def __init__(self, max_bump: int = DEFAULT_BUMP_DENSITY, max_label: int = DEFAULT_LABEL_DENSITY):
        self.max_bump = max_bump
        self.max_label = max_label

    @classmethod
    def from_config(cls, config: 'BrowserConfig') -> 'TrackLayoutPlanner':
        return cls(max_bump=config.bump_density(), max_label=config.label_density())

    def plan(self, track: str, count: int, option: Optional[int] = 0) -> Optional[TrackDecision]:
        """Decide one track's layout.

        Returns None for a track with no features; the caller keeps its
        configured settings.
        """
        if not count:
            return None

        option = option or 0
        if option == 0:
            bump_mode = BumpMode.ON if count <= self.max_bump else BumpMode.OFF
            label = count <= self.max_label
        elif option in _FIXED_POLICY:
            bump_mode, label = _FIXED_POLICY[option]
        else:
            raise ValueError(f"Invalid track option {option!r} for {track}: must be 0-5")

        connector = CONNECTOR_NONE if bump_mode == BumpMode.OFF else None
        return TrackDecision(track, count, bump_mode, label, connector)

    def plan_all(self, counter: TrackCounter,
                 options: Optional[Dict[str, int]] = None) -> Dict[str, TrackDecision]:
        options = options or {}
        decisions = {}
        for track, count in counter.items():
            decision = self.plan(track, count, options.get(track, 0))
            if decision is not None:
                decisions[track] = decision
                logger.debug(f"{track}: {count} features, bump={decision.bump_mode.name}, label={decision.label}")
        return decisions


def plan(track: str, count: int, option: Optional[int], max_bump: int = DEFAULT_BUMP_DENSITY,
         max_label: int = DEFAULT_LABEL_DENSITY) -> Optional[TrackDecision]:
    return TrackLayoutPlanner(max_bump, max_label).plan(track, count, option)
