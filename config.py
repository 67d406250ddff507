"""Application-wide configuration helpers and constants."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Final

from dotenv import load_dotenv

BASE_DIR: Final[Path] = Path(__file__).resolve().parent

load_dotenv(BASE_DIR / ".env")


logger = logging.getLogger(__name__)


def _clean_text(value: str | None) -> str:
    """Return ``value`` stripped of surrounding whitespace."""

    if value is None:
        return ""
    return value.strip()


def _path_from(env_value: str | None, default: str | Path) -> Path:
    """Resolve a filesystem path using an environment override when provided."""

    text = _clean_text(env_value)
    candidate = Path(text) if text else Path(default)
    candidate = candidate.expanduser()
    if candidate.is_absolute():
        try:
            return candidate.resolve()
        except (OSError, RuntimeError):  # pragma: no cover - fallback for exotic paths
            return candidate
    return candidate


def _coerce_positive_float(value: str | None, default: float) -> float:
    """Return ``value`` coerced to a positive float or ``default`` when invalid."""

    text = _clean_text(value)
    if not text:
        return default
    try:
        numeric = float(text)
    except (TypeError, ValueError):
        return default
    return numeric if numeric > 0 else default


def _coerce_positive_int(value: str | None, default: int) -> int:
    """Return ``value`` coerced to a positive integer or ``default`` when invalid."""

    text = _clean_text(value)
    if not text:
        return default
    try:
        numeric = int(float(text))
    except (TypeError, ValueError):
        return default
    return numeric if numeric > 0 else default


DATA_DIR_PATH: Final[Path] = _path_from(os.environ.get("DATA_DIR"), BASE_DIR / "data")
DATA_DIR: Final[str] = os.fspath(DATA_DIR_PATH)
SPOTLIGHT_FILE: Final[str] = (
    _clean_text(os.environ.get("SPOTLIGHT_FILE")) or "spotlight.json"
)

LOG_DIR_PATH: Final[Path] = _path_from(os.environ.get("LOG_DIR"), BASE_DIR / "logs")
LOG_DIR: Final[str] = os.fspath(LOG_DIR_PATH)
LOG_FILE_PATH: Final[Path] = _path_from(
    os.environ.get("LOG_FILE"), LOG_DIR_PATH / "app.log"
)
LOG_FILE: Final[str] = os.fspath(LOG_FILE_PATH)

PAGE_SIZE: Final[int] = _coerce_positive_int(os.environ.get("PAGE_SIZE"), 25)

GITHUB_API_URL: Final[str] = (
    _clean_text(os.environ.get("GITHUB_API_URL")) or "https://api.github.com"
).rstrip("/")
GITHUB_TOKEN: Final[str] = _clean_text(os.environ.get("GITHUB_TOKEN"))
GITHUB_OWNER: Final[str] = _clean_text(os.environ.get("GITHUB_OWNER"))
GITHUB_REPO: Final[str] = _clean_text(os.environ.get("GITHUB_REPO"))
GITHUB_BRANCH: Final[str] = _clean_text(os.environ.get("GITHUB_BRANCH")) or "main"
GITHUB_TIMEOUT_SECONDS: Final[float] = _coerce_positive_float(
    os.environ.get("GITHUB_TIMEOUT"), 40.0
)
GIT_AUTHOR_NAME: Final[str] = (
    _clean_text(os.environ.get("GIT_AUTHOR_NAME")) or "PnPFinder Bot"
)
GIT_AUTHOR_EMAIL: Final[str] = (
    _clean_text(os.environ.get("GIT_AUTHOR_EMAIL")) or "bot@pnpfinder.com"
)

REPORT_EMAIL: Final[str] = (
    _clean_text(os.environ.get("REPORT_EMAIL")) or "help@pnpfinder.com"
)
MAX_IMAGE_BYTES: Final[int] = _coerce_positive_int(
    os.environ.get("MAX_IMAGE_BYTES"), 5 * 1024 * 1024
)
SUBMIT_MAX_ATTEMPTS: Final[int] = _coerce_positive_int(
    os.environ.get("SUBMIT_MAX_ATTEMPTS"), 3
)


def get_data_dir() -> Path:
    """Return the directory holding the catalog CSV files."""

    return _path_from(os.environ.get("DATA_DIR"), DATA_DIR_PATH)


def content_api_configured() -> bool:
    """Return ``True`` when the repository credentials for submissions are set."""

    missing = [
        name
        for name, value in (
            ("GITHUB_TOKEN", GITHUB_TOKEN),
            ("GITHUB_OWNER", GITHUB_OWNER),
            ("GITHUB_REPO", GITHUB_REPO),
        )
        if not value
    ]
    if missing:
        logger.warning(
            "Submissions disabled until %s are configured.", ", ".join(missing)
        )
    return not missing


def _validate_settings() -> None:
    """Sanity-check critical configuration values."""

    if not GITHUB_BRANCH:
        raise RuntimeError("GITHUB_BRANCH must not be empty")
    if "@" not in REPORT_EMAIL:
        raise RuntimeError("REPORT_EMAIL must be an email address")


_validate_settings()


__all__ = [
    "BASE_DIR",
    "DATA_DIR",
    "DATA_DIR_PATH",
    "GITHUB_API_URL",
    "GITHUB_BRANCH",
    "GITHUB_OWNER",
    "GITHUB_REPO",
    "GITHUB_TIMEOUT_SECONDS",
    "GITHUB_TOKEN",
    "GIT_AUTHOR_EMAIL",
    "GIT_AUTHOR_NAME",
    "LOG_DIR",
    "LOG_DIR_PATH",
    "LOG_FILE",
    "LOG_FILE_PATH",
    "MAX_IMAGE_BYTES",
    "PAGE_SIZE",
    "REPORT_EMAIL",
    "SPOTLIGHT_FILE",
    "SUBMIT_MAX_ATTEMPTS",
    "content_api_configured",
    "get_data_dir",
]
