"""Value formatting helpers shared by the resolver and the report pipeline.

Everything here is total: malformed input degrades to ``MISSING_VALUE``
instead of raising.
"""

from __future__ import annotations

import json
import re
import unicodedata
from datetime import datetime
from typing import Any

MISSING_VALUE = "—"

_NUMBER_RE = re.compile(r"^-?\d+(\.\d+)?$")


def safe_str(value: Any) -> str:
    """Render any JSON-ish value as display text."""
    if value is None:
        return MISSING_VALUE
    if isinstance(value, str):
        return value if value.strip() else MISSING_VALUE
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, (list, tuple)):
        if not value:
            return MISSING_VALUE
        return ", ".join(safe_str(item) for item in value)
    if isinstance(value, dict):
        return json.dumps(value, sort_keys=True, default=str)
    return str(value)


def dig(obj: Any, *path: str) -> Any:
    """Walk nested dicts; any missing or non-dict level yields None."""
    current = obj
    for key in path:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def first_present(*values: Any) -> Any:
    """First value that is not None and not an empty string."""
    for value in values:
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return None


def parse_timestamp(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def fmt_date(value: Any) -> str:
    """``2025-01-15T10:30:00Z`` -> ``15 January 2025, 10:30``."""
    if value is None or value == "":
        return MISSING_VALUE
    parsed = parse_timestamp(value)
    if parsed is None:
        return safe_str(value)
    return f"{parsed.day} {parsed:%B %Y, %H:%M}"


def fmt_day(value: datetime) -> str:
    """``15 January 2025``."""
    return f"{value.day} {value:%B %Y}"


def fmt_percent(value: Any) -> str:
    """Numeric (or numeric-string) value as a percentage; absent or malformed -> placeholder."""
    if value is None or isinstance(value, bool):
        return MISSING_VALUE
    if isinstance(value, int):
        return f"{value}%"
    if isinstance(value, float):
        return f"{value:g}%"
    if isinstance(value, str) and _NUMBER_RE.match(value.strip()):
        return f"{value.strip()}%"
    return MISSING_VALUE


def safe_filename_part(name: str, separator: str = "-") -> str:
    """Collapse a display name to ASCII alphanumerics joined by single separators."""
    ascii_name = (
        unicodedata.normalize("NFKD", name or "")
        .encode("ascii", "ignore")
        .decode("ascii")
    )
    collapsed = re.sub(r"[^A-Za-z0-9]+", separator, ascii_name).strip(separator)
    return collapsed or "Unknown"


def humanize_key(key: str) -> str:
    """``Decision_DocumentExpiry`` -> ``Document Expiry``."""
    text = key.replace("Decision_", "")
    text = re.sub(r"(?<=[a-z0-9])([A-Z])", r" \1", text)
    return text.replace("_", " ").strip()
