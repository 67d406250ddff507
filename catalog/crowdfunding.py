"""Campaign status derivation for crowdfunding rows."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Mapping

from helpers import normalize_str

STATUSES: tuple[str, ...] = ("Upcoming", "Live", "Ended")

LAUNCH_FIELD = "Launch Date (YYYY-MM-DD)"
END_FIELD = "End Date (YYYY-MM-DD)"

_ISO_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")
_SLASH_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")


def _safe_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_date_flexible(value: Any) -> date | None:
    """Parse ``YYYY-MM-DD``, ``MM/DD/YYYY`` or an unambiguous ``DD/MM/YYYY``."""

    text = normalize_str(value)
    if not text:
        return None

    match = _ISO_RE.match(text)
    if match:
        return _safe_date(int(match.group(1)), int(match.group(2)), int(match.group(3)))

    match = _SLASH_RE.match(text)
    if match:
        first, second, year = int(match.group(1)), int(match.group(2)), int(match.group(3))
        if first > 12 and second <= 12:
            return _safe_date(year, second, first)
        return _safe_date(year, first, second)

    return None


def _format_date(value: date) -> str:
    return f"{value:%b} {value.day}, {value.year}"


def _days_until(now: datetime, target: date) -> int:
    """Whole days from ``now`` to local midnight of ``target``, rounded up."""

    delta = datetime.combine(target, datetime.min.time()) - now
    return math.ceil(delta.total_seconds() / 86400)


def _plural_days(days: int) -> str:
    return f"{days} day{'' if days == 1 else 's'}"


def _timestamp(value: date | None, missing: float) -> float:
    if value is None:
        return missing
    return datetime.combine(value, datetime.min.time()).timestamp()


@dataclass(frozen=True)
class CampaignStatus:
    status: str
    label: str
    sort_launch: float
    sort_end: float


def compute_status(row: Mapping[str, Any], now: datetime | None = None) -> CampaignStatus:
    """Classify a campaign as Upcoming, Live or Ended relative to ``now``."""

    now = now or datetime.now()
    launch = parse_date_flexible(row.get(LAUNCH_FIELD) or row.get("Launch Date"))
    end = parse_date_flexible(row.get(END_FIELD) or row.get("End Date"))
    launch_at = datetime.combine(launch, datetime.min.time()) if launch else None
    end_at = datetime.combine(end, datetime.min.time()) if end else None

    if launch_at and now < launch_at:
        days = _days_until(now, launch)
        label = (
            f"Launches in {_plural_days(days)}" if days <= 7 else f"Launches {_format_date(launch)}"
        )
        return CampaignStatus(
            "Upcoming", label, _timestamp(launch, math.inf), _timestamp(end, math.inf)
        )
    if launch_at and end_at and launch_at <= now <= end_at:
        days = _days_until(now, end)
        return CampaignStatus(
            "Live", f"Ends in {_plural_days(days)}", _timestamp(launch, math.inf), _timestamp(end, math.inf)
        )
    if end_at and now > end_at:
        return CampaignStatus(
            "Ended", f"Ended {_format_date(end)}", _timestamp(launch, -math.inf), _timestamp(end, math.inf)
        )
    if end_at and not launch_at and now <= end_at:
        return CampaignStatus("Live", f"Ends {_format_date(end)}", 0.0, _timestamp(end, math.inf))
    label = f"Launches {_format_date(launch)}" if launch else "Date TBA"
    return CampaignStatus(
        "Upcoming", label, _timestamp(launch, math.inf), _timestamp(end, math.inf)
    )


__all__ = [
    "CampaignStatus",
    "END_FIELD",
    "LAUNCH_FIELD",
    "STATUSES",
    "compute_status",
    "parse_date_flexible",
]
