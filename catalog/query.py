"""Filter, sort and paginate pipeline shared by every catalog collection."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Mapping

import pandas as pd

from helpers import (
    is_empty,
    natural_sort_key,
    normalize_str,
    parse_number,
)

from . import crowdfunding
from .columns import CollectionSchema
from .images import image_url_for
from .matching import get_matcher

INDEX_COLUMN = "_idx"
STATUS_COLUMN = "_status"
STATUS_LABEL_COLUMN = "_status_label"
SORT_LAUNCH_COLUMN = "_sort_launch"
SORT_END_COLUMN = "_sort_end"

ELLIPSIS = "…"
DEFAULT_SORT = "relevance"
DEFAULT_PAGE_SIZE = 25


@dataclass
class CatalogQuery:
    """Active view state for one collection listing."""

    filters: dict[str, str] = field(default_factory=dict)
    search: str = ""
    sort: str = DEFAULT_SORT
    page: int = 1

    @classmethod
    def from_args(cls, args: Mapping[str, Any], schema: CollectionSchema) -> "CatalogQuery":
        filters = {
            column: normalize_str(args.get(column))
            for column in schema.filters
            if not is_empty(args.get(column))
        }
        try:
            page = int(str(args.get("page", 1)).strip() or 1)
        except (TypeError, ValueError):
            page = 1
        return cls(
            filters=filters,
            search=normalize_str(args.get("q")),
            sort=normalize_str(args.get("sort")) or DEFAULT_SORT,
            page=page,
        )


@dataclass
class CatalogPage:
    schema: CollectionSchema
    items: list[dict[str, Any]]
    total: int
    page: int
    total_pages: int
    page_size: int
    sort: str

    @property
    def pages(self) -> list[int | str]:
        return page_window(self.page, self.total_pages)

    @property
    def meta(self) -> str:
        return (
            f"{self.total:,} {self.schema.noun_for(self.total)} "
            f"• Page {self.page} of {self.total_pages}"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "collection": self.schema.name,
            "items": self.items,
            "total": self.total,
            "page": self.page,
            "total_pages": self.total_pages,
            "page_size": self.page_size,
            "pages": self.pages,
            "sort": self.sort,
            "meta": self.meta,
        }


def with_campaign_status(df: pd.DataFrame, now: datetime | None = None) -> pd.DataFrame:
    """Return a copy of ``df`` with derived status and sort-key columns."""

    df = df.copy()
    statuses = [crowdfunding.compute_status(row, now) for row in df.to_dict("records")]
    df[STATUS_COLUMN] = [status.status for status in statuses]
    df[STATUS_LABEL_COLUMN] = [status.label for status in statuses]
    df[SORT_LAUNCH_COLUMN] = [status.sort_launch for status in statuses]
    df[SORT_END_COLUMN] = [status.sort_end for status in statuses]
    return df


def filter_frame(
    df: pd.DataFrame,
    schema: CollectionSchema,
    filters: Mapping[str, Any],
    search: str = "",
) -> pd.DataFrame:
    """Keep rows matching every active filter and the free-text search."""

    if df.empty:
        return df
    mask = pd.Series(True, index=df.index)
    for column, value in filters.items():
        kind = schema.filters.get(column)
        if kind is None or is_empty(value):
            continue
        source = STATUS_COLUMN if column == "Status" else column
        if source not in df.columns:
            continue
        matcher = get_matcher(kind)
        matched = df[source].map(lambda cell: matcher(cell, value))
        mask &= matched.astype(bool)

    if not is_empty(search):
        needle = normalize_str(search).lower()
        hits = pd.Series(False, index=df.index)
        for search_field in schema.search_fields:
            if search_field not in df.columns:
                continue
            text = df[search_field].fillna("").astype(str).str.lower()
            hits |= text.str.contains(needle, regex=False)
        mask &= hits

    return df[mask]


def _year_key(value: Any, *, descending: bool) -> tuple[bool, float]:
    year = parse_number(value)
    if year is None:
        return True, 0.0
    return False, -year if descending else year


def _row_sort_key(schema: CollectionSchema, key: str) -> Callable[[Mapping[str, Any]], Any]:
    title = schema.title_field

    def by_title(row: Mapping[str, Any]) -> Any:
        return natural_sort_key(row.get(title))

    def by_year_desc(row: Mapping[str, Any]) -> Any:
        return _year_key(row.get("Release Year"), descending=True), by_title(row)

    def by_year_asc(row: Mapping[str, Any]) -> Any:
        return _year_key(row.get("Release Year"), descending=False), by_title(row)

    def by_creator(row: Mapping[str, Any]) -> Any:
        return natural_sort_key(row.get(schema.creator_field or title))

    def by_launch(row: Mapping[str, Any]) -> Any:
        return row.get(SORT_LAUNCH_COLUMN, math.inf)

    def by_end(row: Mapping[str, Any]) -> Any:
        return row.get(SORT_END_COLUMN, math.inf)

    def by_position(row: Mapping[str, Any]) -> Any:
        return row.get(INDEX_COLUMN, 0)

    return {
        "az": by_title,
        "newest": by_year_desc,
        "release-asc": by_year_asc,
        "creator": by_creator,
        "launch": by_launch,
        "end": by_end,
    }.get(key, by_position)


def sort_frame(df: pd.DataFrame, schema: CollectionSchema, sort_by: str) -> pd.DataFrame:
    """Order rows for ``sort_by``; unknown keys fall back to CSV order."""

    key = sort_by if sort_by in schema.sort_options else DEFAULT_SORT
    if df.empty:
        return df
    records = df.to_dict("records")
    sort_key = _row_sort_key(schema, key)
    order = sorted(range(len(records)), key=lambda pos: sort_key(records[pos]))
    return df.iloc[order]


def clamp_page(page: int, total: int, page_size: int) -> tuple[int, int]:
    """Return ``(page, total_pages)`` with ``page`` clamped into range."""

    total_pages = max(1, math.ceil(total / page_size)) if page_size > 0 else 1
    return min(max(1, page), total_pages), total_pages


def page_window(current: int, total_pages: int, window: int = 2) -> list[int | str]:
    """Page numbers to render: first, last and ``window`` pages around ``current``."""

    if total_pages < 1:
        return []
    pages: list[int | str] = [1]
    start = max(2, current - window)
    end = min(total_pages - 1, current + window)
    if start > 2:
        pages.append(ELLIPSIS)
    pages.extend(range(start, end + 1))
    if end < total_pages - 1:
        pages.append(ELLIPSIS)
    if total_pages >= 2:
        pages.append(total_pages)
    return pages


def serialize_row(row: Mapping[str, Any], schema: CollectionSchema) -> dict[str, Any]:
    item: dict[str, Any] = {
        "id": int(row.get(INDEX_COLUMN, 0)),
        "fields": {column: normalize_str(row.get(column)) for column in schema.columns},
        "image_url": image_url_for(row, schema.image_field),
    }
    if STATUS_COLUMN in row:
        item["status"] = row[STATUS_COLUMN]
        item["status_label"] = row.get(STATUS_LABEL_COLUMN, "")
    return item


def run_query(
    df: pd.DataFrame,
    schema: CollectionSchema,
    query: CatalogQuery,
    *,
    page_size: int = DEFAULT_PAGE_SIZE,
    now: datetime | None = None,
) -> CatalogPage:
    """Filter, sort and slice ``df`` into one page of serialized rows."""

    if schema.name == "crowdfunding":
        df = with_campaign_status(df, now)
    filtered = filter_frame(df, schema, query.filters, query.search)
    ordered = sort_frame(filtered, schema, query.sort)

    total = len(ordered)
    page, total_pages = clamp_page(query.page, total, page_size)
    start = (page - 1) * page_size
    page_rows = ordered.iloc[start:start + page_size]

    sort_key = query.sort if query.sort in schema.sort_options else DEFAULT_SORT
    return CatalogPage(
        schema=schema,
        items=[serialize_row(row, schema) for row in page_rows.to_dict("records")],
        total=total,
        page=page,
        total_pages=total_pages,
        page_size=page_size,
        sort=sort_key,
    )


__all__ = [
    "CatalogPage",
    "CatalogQuery",
    "DEFAULT_PAGE_SIZE",
    "DEFAULT_SORT",
    "ELLIPSIS",
    "INDEX_COLUMN",
    "STATUS_COLUMN",
    "clamp_page",
    "filter_frame",
    "page_window",
    "run_query",
    "serialize_row",
    "sort_frame",
    "with_campaign_status",
]
