"""In-memory catalog state backed by the CSV files in the data directory."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from threading import Lock
from typing import Any, Callable, Iterable

import pandas as pd

from helpers import (
    _dedupe_preserve_order,
    natural_sort_key,
    normalize_str,
    parse_number,
    split_multivalue,
)

from . import crowdfunding
from .columns import GAMES, SCHEMAS, CollectionSchema
from .loader import CatalogLoadError, load_collection

SUBMIT_OPTION_FALLBACKS: dict[str, list[str]] = {
    "Free or Paid": ["Free", "Paid"],
    "Number of Players": ["1", "1–2", "1–4", "2", "2–4", "3–6", "4+"],
    "Age Range": ["8+", "10+", "12+", "14+"],
    "Theme": [],
    "Main Mechanism": [],
    "Secondary Mechanism": [],
    "Gameplay Complexity": ["Light", "Medium", "Heavy"],
    "Gameplay Mode": ["Solo", "Cooperative", "Competitive"],
    "Game Category": ["Solo", "Cooperative", "Competitive"],
    "PnP Crafting Challenge Level": ["Low", "Medium", "High"],
}

_SUBMIT_SPLIT_COLUMNS = frozenset({"Secondary Mechanism"})


def normalize_mode(value: Any) -> str:
    """Fold free-text gameplay modes onto Solo, Cooperative and Competitive."""

    text = normalize_str(value)
    lowered = text.lower()
    if not lowered:
        return ""
    if "solo" in lowered:
        return "Solo"
    if "coop" in lowered or "co-op" in lowered or "cooperative" in lowered:
        return "Cooperative"
    if "compet" in lowered:
        return "Competitive"
    return text


def normalize_free_paid(value: Any) -> str:
    lowered = normalize_str(value).lower()
    if not lowered:
        return ""
    return "Free" if "free" in lowered else "Paid"


def _natural_unique(values: Iterable[str]) -> list[str]:
    return _dedupe_preserve_order(sorted(values, key=natural_sort_key))


def _format_number(number: float) -> str:
    return str(int(number)) if number.is_integer() else str(number)


def distinct_values(
    df: pd.DataFrame,
    column: str,
    *,
    split: bool = False,
    transform: Callable[[Any], str] | None = None,
) -> list[str]:
    """Distinct non-empty values of ``column`` in natural, case-insensitive order."""

    if df.empty or column not in df.columns:
        return []
    values: list[str] = []
    for raw in df[column]:
        parts = split_multivalue(raw) if split else [normalize_str(raw)]
        for part in parts:
            text = transform(part) if transform else part
            if text:
                values.append(text)
    return _natural_unique(values)


def numeric_values(df: pd.DataFrame, column: str) -> list[str]:
    if df.empty or column not in df.columns:
        return []
    numbers = {number for number in (parse_number(raw) for raw in df[column]) if number is not None}
    return [_format_number(number) for number in sorted(numbers)]


@dataclass
class CatalogState:
    """Cache parsed collection frames keyed on the source file's mtime."""

    data_dir_factory: Callable[[], Path]
    logger: logging.Logger | None = None

    _frames: dict[tuple[str, bool], tuple[float, pd.DataFrame]] = field(default_factory=dict)
    _lock: Lock = field(default_factory=Lock)

    @property
    def data_dir(self) -> Path:
        return Path(self.data_dir_factory())

    def path_for(self, schema: CollectionSchema) -> Path:
        return self.data_dir / schema.csv_file

    def get_frame(self, schema: CollectionSchema, *, raw: bool = False) -> pd.DataFrame:
        """Return the loaded frame for ``schema``, reloading when the file changed."""

        path = self.path_for(schema)
        try:
            mtime = os.path.getmtime(path)
        except OSError as exc:
            if self.logger:
                self.logger.error("Catalog file %s is not readable", path)
            raise CatalogLoadError(schema.name) from exc

        key = (schema.name, raw)
        with self._lock:
            cached = self._frames.get(key)
            if cached is not None and cached[0] == mtime:
                return cached[1]

        df = load_collection(schema, self.data_dir, raw=raw)
        with self._lock:
            self._frames[key] = (mtime, df)
        if self.logger:
            self.logger.info("Loaded %d %s from %s", len(df), schema.noun_for(len(df)), path)
        return df

    def raw_games(self) -> pd.DataFrame:
        return self.get_frame(GAMES, raw=True)

    def preload(self, names: Iterable[str] | None = None) -> dict[str, int]:
        """Warm the cache, returning row counts for the collections that loaded."""

        counts: dict[str, int] = {}
        for name in names or SCHEMAS:
            schema = SCHEMAS[name]
            try:
                counts[name] = len(self.get_frame(schema))
            except CatalogLoadError:
                if self.logger:
                    self.logger.warning("Skipping %s during preload", name)
        return counts

    def clear(self) -> None:
        with self._lock:
            self._frames.clear()

    def filter_options(self, schema: CollectionSchema) -> dict[str, list[str]]:
        """Option lists for every filter the collection exposes."""

        df = self.get_frame(schema)
        options: dict[str, list[str]] = {}
        for column, kind in schema.filters.items():
            if column == "Status":
                options[column] = list(crowdfunding.STATUSES)
            elif kind == "freepaid":
                options[column] = ["Free", "Paid"]
            elif kind == "multivalue":
                options[column] = distinct_values(df, column, split=True)
            elif kind == "number":
                options[column] = numeric_values(df, column)
            else:
                options[column] = distinct_values(df, column)
        return options

    def submit_options(self) -> dict[str, list[str]]:
        """Dropdown values for the submission form, derived from games.csv."""

        try:
            df = self.get_frame(GAMES)
        except CatalogLoadError:
            if self.logger:
                self.logger.warning("Using fallback submit options; games catalog unavailable")
            return {column: list(values) for column, values in SUBMIT_OPTION_FALLBACKS.items()}

        options: dict[str, list[str]] = {}
        for column in SUBMIT_OPTION_FALLBACKS:
            if column == "Free or Paid":
                options[column] = distinct_values(df, column, transform=normalize_free_paid)
            elif column == "Gameplay Mode":
                options[column] = distinct_values(df, column, transform=normalize_mode)
            else:
                options[column] = distinct_values(
                    df, column, split=column in _SUBMIT_SPLIT_COLUMNS
                )
        return options


__all__ = [
    "CatalogState",
    "SUBMIT_OPTION_FALLBACKS",
    "distinct_values",
    "normalize_free_paid",
    "normalize_mode",
    "numeric_values",
]
