"""Browser configuration.

A configuration is a YAML mapping of stanzas. The ``general`` stanza holds
browser-wide settings; every other stanza is a track, keyed by its label.
Track labels may carry a zoom cutoff (``Gene:50000``, active when the
displayed region is at least that long) or mark an overview track
(``overview`` or ``Gene:overview``)::

    general:
      database: yeast.gff3
      automatic classes: Gene Clone
      zoom levels: 100 1000 10000 100000
    Gene:
      feature: gene:sgd
      key: Named genes
    Gene:50000:
      feature: gene:sgd
      glyph: box

Settings are read back with whitespace folded, so multi-line values and
YAML lists both come out as single space-separated strings.
"""

import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

import yaml

from gbrowse.utils import fold_whitespace, is_overview, shellwords, split_zoom

logger = logging.getLogger(__name__)

DEFAULT_WIDTH = 800
TOO_MANY_SEGMENTS = 5_000
MAX_SEGMENT = 1_000_000
DEFAULT_RANGES = "100 500 1000 5000 10000 25000 100000 200000 400000"
DEFAULT_LABEL_DENSITY = 10
DEFAULT_BUMP_DENSITY = 50
DEFAULT_ADAPTOR = "gff"

GENERAL = "general"


class ConfigurationError(RuntimeError):
    """A required setting is missing or a configuration cannot be read."""


class BrowserConfig:
    """Immutable view over one data source's settings."""

    def __init__(self, stanzas: Optional[Dict[str, Dict[str, Any]]] = None,
                 name: str = "", path: Optional[Union[str, Path]] = None):
        self.name = name
        self.path = Path(path) if path else None
        self._stanzas: Dict[str, Dict[str, Any]] = {}
        for stanza, options in (stanzas or {}).items():
            key = str(stanza)
            if key.lower() == GENERAL:
                key = GENERAL
            self._stanzas[key] = dict(options or {})
        self._type_index: Optional[Dict[str, List[str]]] = None

    @classmethod
    def from_file(cls, path: Union[str, Path], name: str = "") -> 'BrowserConfig':
        path = Path(path)
        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except OSError as e:
            raise ConfigurationError(f"Couldn't read configuration {path}: {e}") from e
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"{path}: configuration must be a mapping of stanzas")
        logger.info(f"Loaded configuration from {path}")
        return cls(data, name=name or path.stem, path=path)

    def setting(self, stanza: str, option: Optional[str] = None) -> Any:
        """Return a setting, or None if it isn't defined.

        With a single argument the ``general`` stanza is assumed. The general
        stanza name is matched case-insensitively; track stanzas are not.
        """
        if option is None:
            stanza, option = GENERAL, stanza
        elif stanza.lower() == GENERAL:
            stanza = GENERAL
        return fold_whitespace(self._stanzas.get(stanza, {}).get(option))

    def has_stanza(self, stanza: str) -> bool:
        return stanza in self._stanzas

    def configured_types(self) -> List[str]:
        """All track stanza names in file order."""
        return [s for s in self._stanzas if s != GENERAL]

    def labels(self, order: Optional[Sequence[int]] = None) -> List[str]:
        """Track labels, excluding zoom-level and overview stanzas."""
        labels = [l for l in self.configured_types()
                  if not is_overview(l) and split_zoom(l)[1] is None]
        if order:
            return [labels[i] for i in order]
        return labels

    def overview_tracks(self) -> List[str]:
        return [l for l in self.configured_types() if is_overview(l)]

    def zoom_stanzas(self, label: str) -> Dict[int, str]:
        """Map each zoom cutoff configured for ``label`` to its stanza."""
        cutoffs = {}
        for stanza in self.configured_types():
            base, cutoff = split_zoom(stanza)
            if cutoff is not None and base == label:
                cutoffs[cutoff] = stanza
        return cutoffs

    def type_index(self) -> Dict[str, List[str]]:
        """Lower-cased feature type -> stanzas whose ``feature`` option declares it.

        Built once per configuration. Overview stanzas are left out.
        """
        if self._type_index is None:
            inverted: Dict[str, List[str]] = {}
            for stanza in self.configured_types():
                if is_overview(stanza):
                    continue
                for ftype in shellwords(self.setting(stanza, 'feature')):
                    inverted.setdefault(ftype.lower(), []).append(stanza)
            self._type_index = inverted
        return self._type_index

    def default_labels(self) -> List[str]:
        return shellwords(self.setting('default features'))

    def automatic_classes(self) -> List[str]:
        return shellwords(self.setting('automatic classes'))

    def zoom_levels(self) -> List[int]:
        value = self.setting('zoom levels') or DEFAULT_RANGES
        try:
            return [int(v) for v in str(value).split()]
        except ValueError as e:
            raise ConfigurationError(f"zoom levels must be integers, got {value!r}") from e

    def label_density(self) -> int:
        return self._int_setting('label density', DEFAULT_LABEL_DENSITY)

    def bump_density(self) -> int:
        return self._int_setting('bump density', DEFAULT_BUMP_DENSITY)

    def max_segment(self) -> int:
        return self._int_setting('max_segment', MAX_SEGMENT)

    def width(self) -> int:
        return self._int_setting('width', DEFAULT_WIDTH)

    def description(self) -> Optional[str]:
        return self.setting('description')

    def citation(self, label: str) -> Optional[str]:
        return self.setting(label, 'citation')

    def track_options(self, stanza: str) -> Dict[str, Any]:
        """Raw options of one stanza, folded the same way as ``setting``."""
        return {k: fold_whitespace(v) for k, v in self._stanzas.get(stanza, {}).items()}

    def database_settings(self) -> Dict[str, Any]:
        """Arguments needed to open this source's feature database."""
        dsn = self.setting('database')
        if not dsn:
            raise ConfigurationError(f"No database defined in {self.name or 'configuration'}")
        database = Path(str(dsn))
        if not database.is_absolute() and self.path is not None:
            database = self.path.parent / database
        settings = {
            'adaptor': self.setting('adaptor') or DEFAULT_ADAPTOR,
            'database': str(database),
        }
        for option in ('fasta_files', 'user', 'pass'):
            value = self.setting(option)
            if value:
                settings[option] = value
        aggregators = shellwords(self.setting('aggregators'))
        if aggregators:
            settings['aggregators'] = aggregators
        return settings

    def _int_setting(self, option: str, default: int) -> int:
        value = self.setting(option)
        if not value:
            return default
        try:
            return int(value)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"{option} must be an integer, got {value!r}") from e

    def __repr__(self):
        return f"BrowserConfig({self.name!r}, {len(self.configured_types())} tracks)"


def get_config(path: Optional[Union[str, Path]] = None) -> BrowserConfig:
    """Load the local configuration, falling back to the default one."""
    if path is None:
        path = "./local.yaml" if os.path.exists("./local.yaml") else "./default.yaml"
    if not os.path.exists(path):
        raise ConfigurationError(f"No configuration found at {path}")
    return BrowserConfig.from_file(path)


class Browser:
    """Registry of data sources read from a configuration directory.

    Each ``*.yaml`` file in the directory is one source. The symbolic name
    of a source is the file stem with any leading ``NN.`` stripped, so
    ``03.fly.yaml`` becomes ``fly``. One source is current at any time.
    """

    def __init__(self, conf_dir: Optional[Union[str, Path]] = None):
        self._conf: Dict[str, Dict[str, Any]] = {}
        self._source: Optional[str] = None
        if conf_dir is not None:
            self.read_configuration(conf_dir)

    def read_configuration(self, conf_dir: Union[str, Path]) -> bool:
        """Parse the configuration files in ``conf_dir``.

        Files whose modification time hasn't changed since the last read
        are skipped.
        """
        conf_dir = Path(conf_dir)
        if not conf_dir.is_dir():
            raise ConfigurationError(f"{conf_dir}: not a directory")

        conf_files = sorted(list(conf_dir.glob("*.yaml")) + list(conf_dir.glob("*.yml")))
        for path in conf_files:
            name = re.sub(r"^\d+\.", "", path.stem)
            mtime = path.stat().st_mtime
            known = self._conf.get(name)
            if known is not None and known['mtime'] >= mtime:
                continue
            self._conf[name] = {'data': BrowserConfig.from_file(path, name=name), 'mtime': mtime}
            logger.info(f"Added data source: {name}")

        if self._source is None and self._conf:
            self._source = sorted(self._conf)[0]
        return True

    def add_source(self, name: str, config: BrowserConfig):
        self._conf[name] = {'data': config, 'mtime': float('inf')}
        if self._source is None:
            self._source = name

    def sources(self) -> List[str]:
        return sorted(self._conf)

    def source(self, new_source: Optional[str] = None) -> Optional[str]:
        """Get or set the current source.

        Returns the source that was current before the call. An unknown
        source is reported and the current one is kept.
        """
        current = self._source
        if new_source is not None:
            if new_source not in self._conf:
                logger.warning(f"invalid source: {new_source}")
                return current
            self._source = new_source
        return current

    @property
    def config(self) -> BrowserConfig:
        if self._source is None:
            raise ConfigurationError("No data sources have been configured")
        return self._conf[self._source]['data']

    def setting(self, stanza: str, option: Optional[str] = None) -> Any:
        return self.config.setting(stanza, option)

    def description(self, source: Optional[str] = None) -> Optional[str]:
        entry = self._conf.get(source or self._source)
        if entry is None:
            return None
        return entry['data'].description()

    def labels(self, order: Optional[Sequence[int]] = None) -> List[str]:
        return self.config.labels(order)

    def default_labels(self) -> List[str]:
        return self.config.default_labels()

    def citation(self, label: str) -> Optional[str]:
        return self.config.citation(label)

    def database_settings(self) -> Dict[str, Any]:
        return self.config.database_settings()

    def label_resolver(self):
        from gbrowse.display.labels import LabelResolver
        return LabelResolver(self.config)

    def label2type(self, label: str, length: Optional[int] = None) -> List[str]:
        return self.label_resolver().label2type(label, length)

    def type2label(self, feature_type: str, length: int = 0) -> Optional[str]:
        """Stanza that displays a feature type.

        Unlike the track label, this keeps any zoom suffix (``Gene:5000``);
        pass it through ``base_label`` to get the track.
        """
        return self.label_resolver().type_to_label(feature_type, length)

    def feature2label(self, feature, length: int = 0) -> Optional[str]:
        return self.label_resolver().feature_to_label(feature, length)
