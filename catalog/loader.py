"""CSV loading and canonicalization for catalog collections."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Callable, Sequence

import pandas as pd

from .columns import CollectionSchema
from .query import INDEX_COLUMN

logger = logging.getLogger(__name__)


class CatalogLoadError(RuntimeError):
    """Raised when a collection CSV cannot be read or parsed."""

    def __init__(self, collection: str, message: str | None = None) -> None:
        super().__init__(message or f"Error loading {collection}.")
        self.collection = collection


def _read_options() -> dict[str, Any]:
    return {
        "header": None,
        "index_col": False,
        "dtype": str,
        "keep_default_na": False,
        "skip_blank_lines": True,
        "encoding": "utf-8-sig",
        "engine": "python",
    }


def _header_width(path: str | os.PathLike[str]) -> int:
    head = pd.read_csv(path, nrows=1, **_read_options())
    return head.shape[1]


def _overflow_handler(
    path: str | os.PathLike[str], width: int
) -> Callable[[list[str]], list[str]]:
    def truncate(bad_line: list[str]) -> list[str]:
        logger.warning(
            "Dropping %d extra cell(s) from a row in %s", len(bad_line) - width, path
        )
        return bad_line[:width]

    return truncate


def read_csv_table(path: str | os.PathLike[str]) -> tuple[list[str], pd.DataFrame]:
    """Read ``path`` as text cells and return ``(headers, rows)``.

    Headers are taken from the first row as written, duplicates included; the
    rows frame is indexed by column position. Rows longer than the header are
    truncated, shorter ones are padded with ``""``.
    """

    width = _header_width(path)
    table = pd.read_csv(
        path, on_bad_lines=_overflow_handler(path, width), **_read_options()
    ).fillna("")
    headers = [str(value) for value in table.iloc[0]]
    rows = table.iloc[1:].reset_index(drop=True)
    rows.columns = range(rows.shape[1])
    return headers, rows


def read_csv_frame(path: str | os.PathLike[str]) -> pd.DataFrame:
    """Read ``path`` keyed by raw header; a repeated header keeps its right-most column."""

    headers, rows = read_csv_table(path)
    last_position = {header: position for position, header in enumerate(headers)}
    keep = sorted(last_position.values())
    df = rows[keep].copy()
    df.columns = [headers[position] for position in keep]
    return df


def canonicalize_frame(
    df: pd.DataFrame, schema: CollectionSchema, headers: Sequence[Any] | None = None
) -> pd.DataFrame:
    """Project ``df`` onto the schema's canonical columns plus ``_idx``.

    ``headers`` names the columns of ``df`` by position when its own labels are
    positional.
    """

    positions = schema.header_positions(list(df.columns) if headers is None else headers)
    records = [
        schema.remap_values(values, positions)
        for values in df.itertuples(index=False, name=None)
    ]
    canonical = pd.DataFrame.from_records(records, columns=list(schema.columns))
    if canonical.empty:
        canonical = pd.DataFrame(columns=list(schema.columns))
    canonical[INDEX_COLUMN] = range(len(canonical))
    return canonical


def with_row_index(df: pd.DataFrame) -> pd.DataFrame:
    df = df.copy()
    df[INDEX_COLUMN] = range(len(df))
    return df


def load_collection(
    schema: CollectionSchema, data_dir: str | os.PathLike[str], *, raw: bool = False
) -> pd.DataFrame:
    """Load the collection CSV from ``data_dir``.

    ``raw`` keeps every header as written so that columns outside the canonical
    set (download counts, ratings) stay reachable.
    """

    path = Path(data_dir) / schema.csv_file
    try:
        if raw:
            return with_row_index(read_csv_frame(path))
        headers, rows = read_csv_table(path)
    except FileNotFoundError as exc:
        logger.error("Catalog file %s is missing", path)
        raise CatalogLoadError(schema.name) from exc
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError, OSError) as exc:
        logger.exception("Failed to parse catalog file %s", path)
        raise CatalogLoadError(schema.name) from exc

    return canonicalize_frame(rows, schema, headers)


__all__ = [
    "CatalogLoadError",
    "canonicalize_frame",
    "load_collection",
    "read_csv_frame",
    "read_csv_table",
    "with_row_index",
]
