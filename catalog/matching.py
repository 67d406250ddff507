"""Cell matchers used by the catalog filters."""

from __future__ import annotations

import math
import re
from typing import Any, Callable

from helpers import is_empty, parse_number, safe_lower, split_multivalue

_PLUS_RE = re.compile(r"^(\d+)\s*\+$")
_DASH_RE = re.compile(r"^(\d+)\s*(-|–|to)\s*(\d+)$")
_SINGLE_RE = re.compile(r"^(\d+)$")


def parse_rangeish(value: Any) -> tuple[float, float] | None:
    """Parse ``"2-4"``, ``"2 to 4"``, ``"10+"`` or ``"3"`` into an inclusive range."""

    text = safe_lower(value)
    if not text:
        return None
    match = _PLUS_RE.match(text)
    if match:
        return float(match.group(1)), math.inf
    match = _DASH_RE.match(text)
    if match:
        return float(match.group(1)), float(match.group(3))
    match = _SINGLE_RE.match(text)
    if match:
        number = float(match.group(1))
        return number, number
    return None


def exact_or_contains(value: Any, needle: Any) -> bool:
    if is_empty(needle):
        return True
    return str(needle).lower() in safe_lower(value)


def exact_match(value: Any, needle: Any) -> bool:
    if is_empty(needle):
        return True
    return safe_lower(value) == safe_lower(needle)


def range_matches(value: Any, query: Any) -> bool:
    if is_empty(query):
        return True
    value_range = parse_rangeish(value)
    query_range = parse_rangeish(query)
    if value_range and query_range:
        low_a, high_a = value_range
        low_b, high_b = query_range
        return max(low_a, low_b) <= min(high_a, high_b)
    return exact_or_contains(value, query)


def multivalue_contains(value: Any, needle: Any) -> bool:
    if is_empty(needle):
        return True
    parts = [part.lower() for part in split_multivalue(value)]
    return str(needle).lower() in parts


def number_equals(value: Any, needle: Any) -> bool:
    if is_empty(needle):
        return True
    value_number = parse_number(value)
    needle_number = parse_number(needle)
    if value_number is not None and needle_number is not None:
        return value_number == needle_number
    return exact_or_contains(value, needle)


def free_paid_match(value: Any, needle: Any) -> bool:
    if is_empty(needle):
        return True
    text = safe_lower(value)
    if needle == "Free":
        return "free" in text
    if needle == "Paid":
        return "free" not in text
    return exact_or_contains(value, needle)


MATCHERS: dict[str, Callable[[Any, Any], bool]] = {
    "contains": exact_or_contains,
    "exact": exact_match,
    "freepaid": free_paid_match,
    "multivalue": multivalue_contains,
    "number": number_equals,
    "range": range_matches,
}


def get_matcher(kind: str) -> Callable[[Any, Any], bool]:
    return MATCHERS.get(kind, exact_or_contains)


def search_matches(row: Any, fields: tuple[str, ...], term: Any) -> bool:
    """Case-insensitive substring search across ``fields`` of ``row``."""

    if is_empty(term):
        return True
    needle = safe_lower(term)
    return any(needle in safe_lower(row.get(field, "")) for field in fields)


__all__ = [
    "MATCHERS",
    "exact_match",
    "exact_or_contains",
    "free_paid_match",
    "get_matcher",
    "multivalue_contains",
    "number_equals",
    "parse_rangeish",
    "range_matches",
    "search_matches",
]
