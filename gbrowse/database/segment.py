from dataclasses import dataclass
from typing import Any, Dict, Optional

REFERENCE_CLASS = "Sequence"


@dataclass(frozen=True)
class Segment:
    """A resolved coordinate range on one reference sequence.

    Coordinates are 1-based and inclusive. An end smaller than the start
    marks a segment displayed in reverse orientation.
    """
    ref: str
    start: int
    end: int
    cls: str = REFERENCE_CLASS
    name: str = ""

    def __post_init__(self):
        object.__setattr__(self, 'start', int(self.start))
        object.__setattr__(self, 'end', int(self.end))
        if not self.name:
            object.__setattr__(self, 'name', self.ref)

    @property
    def low(self) -> int:
        return min(self.start, self.end)

    @property
    def high(self) -> int:
        return max(self.start, self.end)

    @property
    def length(self) -> int:
        return self.high - self.low + 1

    @property
    def reversed(self) -> bool:
        return self.end < self.start

    def overlaps(self, start: int, end: int) -> bool:
        """Check if segment overlaps with given range."""
        return not (self.high < min(start, end) or self.low > max(start, end))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'ref': self.ref,
            'start': self.start,
            'end': self.end,
            'class': self.cls,
            'name': self.name,
            'length': self.length,
        }

    def __str__(self):
        return f"{self.ref}:{self.start}..{self.end}"


@dataclass(frozen=True)
class RawFeature:
    """An annotation record as it comes out of a feature source.

    ``type`` follows the GFF ``method:source`` convention, so ``method`` is
    the type with any ``:qualifier`` stripped. ``cls`` is the class of the
    feature's own name (e.g. ``Gene``), ``ref_class`` the class of the
    reference sequence it sits on.
    """
    ref: str
    start: int
    end: int
    type: str = ""
    name: str = ""
    cls: str = REFERENCE_CLASS
    ref_class: str = REFERENCE_CLASS
    strand: str = ""

    def __post_init__(self):
        object.__setattr__(self, 'start', int(self.start))
        object.__setattr__(self, 'end', int(self.end))

    @property
    def low(self) -> int:
        return min(self.start, self.end)

    @property
    def high(self) -> int:
        return max(self.start, self.end)

    @property
    def length(self) -> int:
        return self.high - self.low + 1

    @property
    def method(self) -> str:
        return self.type.split(":", 1)[0]

    @property
    def source(self) -> Optional[str]:
        parts = self.type.split(":", 1)
        return parts[1] if len(parts) > 1 else None

    def overlaps(self, start: int, end: int) -> bool:
        """Check if feature overlaps with given range."""
        return not (self.high < min(start, end) or self.low > max(start, end))

    def to_segment(self) -> Segment:
        return Segment(self.ref, self.start, self.end, cls=self.cls, name=self.name)

    def short_repr(self):
        loc = f"{self.ref}:{self.start}-{self.end}"
        parts = [f"RawFeature({self.type!r}, {loc}"]
        if self.name:
            parts.append(f", name={self.name!r}")
        parts.append(")")
        return "".join(parts)
