import re
import shlex
from typing import Any, List, Optional, Tuple

ZOOM_SUFFIX = re.compile(r"^(.*):(\d+)$")
OVERVIEW_SUFFIX = re.compile(r"(^|:)overview$")


def commas(index) -> str:
    """Format an integer with digit-group separators, e.g. 1234567 -> 1,234,567."""
    return format(int(index), ",")


def fold_whitespace(value: Any) -> Any:
    """Fold a configuration value the way settings are read back.

    Strings have runs of whitespace (newlines, tabs) collapsed to single
    spaces; lists are joined with spaces; other scalars pass through.
    """
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        return " ".join(str(fold_whitespace(v)) for v in value)
    if isinstance(value, str):
        return re.sub(r"\s+", " ", value).strip()
    return value


def shellwords(value: Any) -> List[str]:
    """Split a setting into words, honouring quotes."""
    value = fold_whitespace(value)
    if value is None or value == "":
        return []
    return shlex.split(str(value))


def split_zoom(label: str) -> Tuple[str, Optional[int]]:
    """Split ``Label:N`` into ``("Label", N)``; unsuffixed labels give ``None``."""
    m = ZOOM_SUFFIX.match(label)
    if not m:
        return label, None
    return m.group(1), int(m.group(2))


def is_overview(label: str) -> bool:
    return bool(OVERVIEW_SUFFIX.search(label))


def as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() not in ("", "0", "false", "no", "off")
    return bool(value)
