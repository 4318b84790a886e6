from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from config import get_settings

PRESETS = ("today", "last7", "thisMonth", "last30")
DEFAULT_PERIOD = "last30"


@dataclass(frozen=True)
class Window:
    """Inclusive [start, end] range expenses are filtered by."""

    slug: str
    start: datetime
    end: datetime


def local_now() -> datetime:
    """Naive wall-clock time in the configured timezone."""
    return datetime.now(ZoneInfo(get_settings().timezone)).replace(tzinfo=None)


def _day_start(d: date) -> datetime:
    return datetime.combine(d, time.min)


def _day_end(d: date) -> datetime:
    return datetime.combine(d, time.max)


def resolve_window(
    period: Optional[str],
    start: Optional[str] = None,
    end: Optional[str] = None,
    *,
    today: Optional[date] = None,
) -> Window:
    today = today or local_now().date()
    period = period or DEFAULT_PERIOD
    if period == "custom":
        if not start or not end:
            raise ValueError("Custom period requires start and end dates")
        start_date = date.fromisoformat(start)
        end_date = date.fromisoformat(end)
        if start_date > end_date:
            raise ValueError("Start date must be before end date")
        return Window("custom", _day_start(start_date), _day_end(end_date))
    if period == "today":
        first = today
    elif period == "last7":
        first = today - timedelta(days=6)
    elif period == "thisMonth":
        first = today.replace(day=1)
    elif period == "last30":
        first = today - timedelta(days=29)
    else:
        raise ValueError(f"Unknown period: {period}")
    return Window(period, _day_start(first), _day_end(today))
