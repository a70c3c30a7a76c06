"""Streaming GFF annotation files into RawFeatures.

Files may be plain, gzipped, or bgzipped and tabix-indexed. Indexed files
are read through pysam, which also allows region queries; anything else is
read line by line.

Both GFF3 (``key=value;`` attributes) and GFF2 (``Class "name" ; key value``
groups) attribute columns are understood. A feature's name is taken from
``Name``, then the GFF2 group name, then ``ID``, then ``Parent``; its class
from ``Class``, then the GFF2 group class, then its GFF type.
"""

import gzip
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple, Union
from urllib.parse import unquote

import pysam

from gbrowse.database.segment import REFERENCE_CLASS, RawFeature

logger = logging.getLogger(__name__)


@dataclass
class ColumnSpec:
    """Specification for parsing a column from tabular data.

    Attributes:
        name: Column name
        type_: Type converter function (int, float, str, etc.)
        default: Default value if parsing fails or value is missing
    """
    name: str
    type_: Callable[[str], Any] = str
    default: Any = None

    def parse(self, value: str) -> Any:
        """Parse a string value according to this spec."""
        if value is None or value == "" or value == ".":
            return self.default
        try:
            return self.type_(value)
        except (ValueError, TypeError):
            return self.default


class AnnotationStream(ABC):
    """Abstract base class for annotation streams."""

    def __init__(self, source_name: str):
        self.source_name = source_name

    @abstractmethod
    def parse_line(self, line: str) -> Optional[RawFeature]:
        """Parse a single line into a RawFeature."""
        pass

    @abstractmethod
    def stream(self, chrom: Optional[str] = None,
               start: Optional[int] = None,
               end: Optional[int] = None) -> Iterator[RawFeature]:
        """Stream features, optionally filtered by region."""
        pass

    def query_range(self, chrom: str, start: int, end: int) -> List[RawFeature]:
        """Query features in a specific range."""
        return [f for f in self.stream(chrom, start, end) if f.overlaps(start, end)]


class GFFStream(AnnotationStream):
    """GFF annotation file, optionally bgzipped and tabix-indexed."""

    columns: List[ColumnSpec] = [
        ColumnSpec("seqid", str, ""),
        ColumnSpec("source", str, ""),
        ColumnSpec("type", str, ""),
        ColumnSpec("start", int, None),
        ColumnSpec("end", int, None),
        ColumnSpec("score", float, None),
        ColumnSpec("strand", str, ""),
        ColumnSpec("phase", int, None),
        ColumnSpec("attributes", str, ""),
    ]
    comment_chars: Tuple[str, ...] = ('#', 'track')
    delimiter: str = '\t'

    def __init__(self, filepath: Union[str, Path], source_name: str = "GFF"):
        super().__init__(source_name)
        self.filepath = Path(filepath).absolute()

        self.tabix = None
        if self.filepath.suffix == '.gz':
            index_file = Path(str(self.filepath) + '.tbi')
            if index_file.exists():
                try:
                    self.tabix = pysam.TabixFile(str(self.filepath))
                    logger.info(f"Using indexed access for {self.filepath}")
                except (OSError, ValueError) as e:
                    logger.warning(f"Failed to open tabix index: {e}")
            else:
                logger.warning(f"No index found for {self.filepath}, reading sequentially.")

    def close(self):
        if self.tabix is not None:
            self.tabix.close()
            self.tabix = None

    def _read_lines(self) -> Iterator[str]:
        if '.gz' in self.filepath.suffixes:
            with gzip.open(self.filepath, "rt") as f:
                yield from f
        else:
            with open(self.filepath, "r") as f:
                yield from f

    def header(self) -> List[str]:
        """The ``##`` pragma lines at the top of the file."""
        if self.tabix is not None:
            lines = [l.decode() if isinstance(l, bytes) else l for l in self.tabix.header]
        else:
            lines = []
            for line in self._read_lines():
                if not line.startswith('#'):
                    break
                lines.append(line)
        return [l.rstrip("\n") for l in lines if l.startswith('##')]

    def sequence_regions(self) -> Dict[str, int]:
        """Reference lengths declared with ``##sequence-region`` pragmas."""
        regions = {}
        for line in self.header():
            parts = line.split()
            if parts[0] == '##sequence-region' and len(parts) >= 4:
                try:
                    regions[parts[1]] = int(parts[3])
                except ValueError:
                    logger.warning(f"Malformed pragma in {self.filepath}: {line}")
        return regions

    def stream(self, chrom: Optional[str] = None,
               start: Optional[int] = None,
               end: Optional[int] = None) -> Iterator[RawFeature]:
        if self.tabix is not None:
            contigs = [chrom] if chrom else list(self.tabix.contigs)
            for contig in contigs:
                if contig not in self.tabix.contigs:
                    continue
                query_start = max(int(start) - 1, 0) if start else None
                query_end = int(end) if end else None
                for line in self.tabix.fetch(contig, query_start, query_end):
                    feature = self.parse_line(line)
                    if feature is not None:
                        yield feature
            return

        for line in self._read_lines():
            feature = self.parse_line(line)
            if feature is None:
                continue
            if chrom and feature.ref != chrom:
                continue
            if start and feature.high < start:
                continue
            if end and feature.low > end:
                continue
            yield feature

    def parse_line(self, line: str) -> Optional[RawFeature]:
        if not line.strip() or any(line.startswith(c) for c in self.comment_chars):
            return None

        parts = line.rstrip("\n").split(self.delimiter)
        if len(parts) < 8:
            logger.warning(f"Skipping short GFF line in {self.filepath}: {line.strip()!r}")
            return None

        data = {}
        for i, col in enumerate(self.columns):
            data[col.name] = col.parse(parts[i]) if i < len(parts) else col.default
        if data['start'] is None or data['end'] is None:
            logger.warning(f"Skipping GFF line without coordinates: {line.strip()!r}")
            return None

        attrs, group_class, group_name = self.format_group_entry(data['attributes'])

        name = attrs.get('Name') or group_name or attrs.get('ID') or attrs.get('Parent') or ""
        cls = attrs.get('Class') or group_class or data['type']
        ftype = f"{data['type']}:{data['source']}" if data['source'] else data['type']

        return RawFeature(
            ref=data['seqid'],
            start=data['start'],
            end=data['end'],
            type=ftype,
            name=name,
            cls=cls,
            ref_class=REFERENCE_CLASS,
            strand=data['strand'] if data['strand'] in ('+', '-') else "",
        )

    @staticmethod
    def format_group_entry(group_entry: str) -> Tuple[Dict[str, str], str, str]:
        """Split the attribute column.

        Returns:
            Tuple of (attributes, group class, group name); the group fields
            are only filled for GFF2 groups.
        """
        attrs: Dict[str, str] = {}
        group_class = group_name = ""
        if not group_entry:
            return attrs, group_class, group_name

        if '=' in group_entry:
            for part in group_entry.split(';'):
                if '=' not in part:
                    continue
                k, v = part.split('=', 1)
                # multi-valued attributes keep their first value
                attrs[k.strip()] = unquote(v.strip().split(',')[0])
            return attrs, group_class, group_name

        for i, part in enumerate(group_entry.split(';')):
            kv = part.strip().split(None, 1)
            if len(kv) != 2:
                continue
            k, v = kv[0], kv[1].strip().strip('"')
            if i == 0:
                group_class, group_name = k, v
            attrs.setdefault(k, v)
        return attrs, group_class, group_name
