"""General-purpose helper utilities shared across the application."""

from __future__ import annotations

import math
import re
import unicodedata
from datetime import datetime, timezone
from typing import Any, Iterable

import pandas as pd


__all__ = [
    "MULTIVALUE_SEP",
    "_dedupe_preserve_order",
    "is_empty",
    "natural_sort_key",
    "normalize_str",
    "now_utc_iso",
    "parse_leading_number",
    "parse_number",
    "safe_lower",
    "slugify",
    "split_multivalue",
]


MULTIVALUE_SEP = re.compile(r"[;,|]")

_NUMBER_STRIP_RE = re.compile(r"[^\d.\-]")
_LEADING_NUMBER_RE = re.compile(r"^\s*[-+]?(\d+(\.\d*)?|\.\d+)")
_DIGIT_RUN_RE = re.compile(r"(\d+)")


def normalize_str(value: Any) -> str:
    """Return ``value`` as a trimmed string, mapping ``None``/NaN to ``""``."""

    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    try:
        if pd.isna(value):
            return ""
    except (TypeError, ValueError):
        pass
    return str(value).strip()


def is_empty(value: Any) -> bool:
    return normalize_str(value) == ""


def safe_lower(value: Any) -> str:
    return normalize_str(value).lower()


def parse_number(value: Any) -> float | None:
    """Return the number left after stripping non-numeric characters."""

    text = _NUMBER_STRIP_RE.sub("", normalize_str(value))
    if not text:
        return None
    try:
        number = float(text)
    except ValueError:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def parse_leading_number(value: Any, default: float = 0.0) -> float:
    """Parse the numeric prefix of ``value`` (``"12 votes"`` -> 12)."""

    match = _LEADING_NUMBER_RE.match(normalize_str(value))
    if not match:
        return default
    try:
        return float(match.group(0))
    except ValueError:  # pragma: no cover - regex guarantees a float literal
        return default


def split_multivalue(value: Any) -> list[str]:
    """Split a ``;``/``,``/``|`` separated cell into trimmed, non-empty parts."""

    text = normalize_str(value)
    if not text:
        return []
    return [part.strip() for part in MULTIVALUE_SEP.split(text) if part.strip()]


def natural_sort_key(value: Any) -> tuple:
    """Case-insensitive key where digit runs compare numerically."""

    text = normalize_str(value).casefold()
    parts = _DIGIT_RUN_RE.split(text)
    key: list[tuple[int, Any]] = []
    for index, part in enumerate(parts):
        if not part:
            continue
        if index % 2:
            key.append((0, int(part)))
        else:
            key.append((1, part))
    return tuple(key)


def _dedupe_preserve_order(values: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    result: list[str] = []
    for value in values:
        text = str(value).strip()
        if not text:
            continue
        key = text.casefold()
        if key in seen:
            continue
        seen.add(key)
        result.append(text)
    return result


def slugify(value: Any) -> str:
    text = unicodedata.normalize("NFKD", normalize_str(value).lower())
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    text = re.sub(r"[^a-z0-9]+", "-", text)
    return text.strip("-")


def now_utc_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
