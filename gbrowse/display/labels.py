"""
Semantic zooming for track labels.

A track can be configured several times: once plainly (``Gene``) and once
per zoom cutoff (``Gene:50000``). When the displayed region is at least as
long as a cutoff, the stanza with the largest qualifying cutoff overrides the
plain one. The same rule decides which track a feature type lands in.
"""

import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from gbrowse.utils import shellwords, split_zoom

if TYPE_CHECKING:
    from gbrowse.config import BrowserConfig
    from gbrowse.database.segment import RawFeature

logger = logging.getLogger(__name__)


def base_label(label: str) -> str:
    """Strip a zoom cutoff, giving the track a stanza belongs to."""
    return split_zoom(label)[0]


class LabelResolver:
    """Resolves track labels against one configuration."""

    def __init__(self, config: 'BrowserConfig'):
        self.config = config

    def semantic_label(self, label: str, length: Optional[int]) -> str:
        """Pick the stanza that applies to ``label`` at a display length.

        Among stanzas ``label:N`` with ``N <= length`` the largest N wins;
        with none qualifying the plain label is returned.
        """
        if not length or length <= 0:
            return label
        qualifying = [n for n in self.config.zoom_stanzas(label) if n <= length]
        if not qualifying:
            return label
        return f"{label}:{max(qualifying)}"

    def type_to_label(self, feature_type: str, length: Optional[int] = 0) -> Optional[str]:
        """Find the stanza that displays a feature type.

        Zoom-suffixed stanzas whose cutoff is within ``length`` win, largest
        cutoff first; otherwise the first plain stanza in lexicographic order.

        Args:
            feature_type: Feature type, matched case-insensitively
            length: Length of the displayed region

        Returns:
            Stanza name, or None if no stanza declares the type
        """
        if not feature_type:
            return None
        length = length or 0
        candidates = self.config.type_index().get(feature_type.lower())
        if not candidates:
            return None

        normal = []
        lowres = []
        for stanza in candidates:
            cutoff = split_zoom(stanza)[1]
            if cutoff is None:
                normal.append(stanza)
            elif cutoff <= length:
                lowres.append((cutoff, stanza))

        if lowres:
            lowres.sort(key=lambda c: (-c[0], c[1]))
            return lowres[0][1]
        if normal:
            return sorted(normal)[0]
        return None

    def feature_to_label(self, feature: 'RawFeature', length: Optional[int] = 0) -> Optional[str]:
        """Label for a feature: its full type, then its base type, then the type itself."""
        ftype = getattr(feature, 'type', None)
        if not ftype:
            return None
        basetype = ftype.split(":", 1)[0]
        return (self.type_to_label(ftype, length)
                or self.type_to_label(basetype, length)
                or ftype)

    def label2type(self, label: str, length: Optional[int] = None) -> List[str]:
        """Feature types to fetch for a track at a display length."""
        stanza = self.semantic_label(label, length)
        return shellwords(self.config.setting(stanza, 'feature'))

    def style(self, label: str, length: Optional[int] = None) -> Dict[str, Any]:
        """Track options, with the semantic stanza's options laid over the base stanza's."""
        stanza = self.semantic_label(label, length)
        style = self.config.track_options(label)
        if stanza != label:
            style.update(self.config.track_options(stanza))
        return style


def semantic_label(label: str, length: Optional[int], config: 'BrowserConfig') -> str:
    return LabelResolver(config).semantic_label(label, length)


def type_to_label(feature_type: str, length: Optional[int], config: 'BrowserConfig') -> Optional[str]:
    return LabelResolver(config).type_to_label(feature_type, length)


def feature_to_label(feature: 'RawFeature', length: Optional[int], config: 'BrowserConfig') -> Optional[str]:
    return LabelResolver(config).feature_to_label(feature, length)
