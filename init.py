"""Application startup orchestration helpers."""

from __future__ import annotations

import logging
from typing import Callable, Iterable

from catalog.state import CatalogState

logger = logging.getLogger(__name__)


def initialize_app(
    *,
    ensure_dirs: Callable[[], None],
    catalog_state: CatalogState,
    collections: Iterable[str] | None = None,
    check_content_api: Callable[[], bool] | None = None,
) -> dict[str, int]:
    """Perform the core startup tasks required for the application.

    The initializer ensures the data directory exists, warms the catalog cache
    for every collection CSV it can read, and reports whether submissions can
    reach the content repository. A collection that fails to load is logged
    and retried on the first request rather than blocking startup.

    Returns the number of rows loaded per collection.
    """

    ensure_dirs()

    counts = catalog_state.preload(collections)
    if counts:
        logger.info(
            "Catalog ready: %s",
            ", ".join(f"{name}={count}" for name, count in sorted(counts.items())),
        )
    else:
        logger.warning("No catalog collections could be loaded from %s", catalog_state.data_dir)

    if check_content_api is not None and not check_content_api():
        logger.info("Submission endpoint will answer 503 until credentials are set")

    return counts


__all__ = ["initialize_app"]
