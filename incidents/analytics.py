"""
Dashboard analytics over the live incident snapshot.

compute_stats() is a pure function of (incidents, now, language, tz): it reads
no other state, so the live feed can memoize it on the snapshot version.
"""
from collections import defaultdict
from datetime import date, datetime, timedelta, tzinfo
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from pydantic import BaseModel

from incidents.translations import format_short_date, message
from incidents.types import IncidentRecord, IncidentStatus, as_utc

TREND_DAYS = 7


class CategoryStats(BaseModel):
    name: str
    count: int
    percentage: int
    avg_urgency: float
    avg_resolution_time: str


class DailyCount(BaseModel):
    label: str
    day: date
    count: int


class IncidentStats(BaseModel):
    total: int
    completion_rate: int
    avg_resolution_time: str
    categories: list[CategoryStats]
    high_impact: CategoryStats
    daily_counts: list[DailyCount]


def round_half_up(value: float, digits: int = 0) -> float:
    """Round like the dashboard always has (0.5 goes up), not banker's rounding."""
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def format_duration(delta: timedelta) -> str:
    """
    Human duration, largest unit first: "45m", "2h 15m", "3d 4h".

    Minutes are dropped once the duration reaches a full day.
    """
    minutes = int(round_half_up(max(delta.total_seconds(), 0) / 60))
    if minutes < 60:
        return f"{minutes}m"
    hours, minutes = divmod(minutes, 60)
    if hours < 24:
        return f"{hours}h {minutes}m"
    days, hours = divmod(hours, 24)
    return f"{days}d {hours}h"


def resolution_time(incident: IncidentRecord) -> Optional[timedelta]:
    """resolvedAt - createdAt for resolved incidents that carry a resolution time."""
    if incident.status != IncidentStatus.RESOLVED or incident.resolved_at is None:
        return None
    return as_utc(incident.resolved_at) - as_utc(incident.created_at)


def average_resolution_time(incidents: Iterable[IncidentRecord], lang: str = "es") -> str:
    durations = [d for d in (resolution_time(i) for i in incidents) if d is not None]
    if not durations:
        return message("not_available", lang)
    return format_duration(sum(durations, timedelta()) / len(durations))


def local_date(value: datetime, tz: Optional[tzinfo]) -> date:
    return as_utc(value).astimezone(tz).date()


def compute_stats(
    incidents: list[IncidentRecord],
    now: datetime,
    lang: str = "es",
    tz: Optional[tzinfo] = None,
) -> Optional[IncidentStats]:
    """
    Summary statistics for the staff analytics view.

    Args:
        incidents: current snapshot, any order.
        now:       reference instant; "today" is its calendar date in tz.
        lang:      language of the daily-count labels and "N/A".
        tz:        local timezone of the property (None = now's own timezone;
                   naive timestamps are UTC).

    Returns:
        IncidentStats, or None for an empty snapshot.
    """
    if not incidents:
        return None

    total = len(incidents)
    resolved = sum(1 for i in incidents if i.status == IncidentStatus.RESOLVED)
    completion_rate = int(round_half_up(100 * resolved / total))

    groups: dict[str, list[IncidentRecord]] = defaultdict(list)
    for incident in incidents:
        groups[incident.category.value].append(incident)

    categories = [
        CategoryStats(
            name=name,
            count=len(members),
            percentage=int(round_half_up(100 * len(members) / total)),
            avg_urgency=round_half_up(
                sum(m.urgency_level for m in members) / len(members), 1
            ),
            avg_resolution_time=average_resolution_time(members, lang),
        )
        for name, members in groups.items()
    ]
    # Stable: equal counts keep first-seen order
    categories.sort(key=lambda c: c.count, reverse=True)

    # max() keeps the first of equal averages, i.e. the more frequent category
    high_impact = max(categories, key=lambda c: c.avg_urgency)

    now = as_utc(now)
    if tz is None:
        tz = now.tzinfo
    today = now.astimezone(tz).date()
    per_day: dict[date, int] = defaultdict(int)
    for incident in incidents:
        per_day[local_date(incident.created_at, tz)] += 1

    daily_counts = []
    for offset in range(TREND_DAYS - 1, -1, -1):
        day = today - timedelta(days=offset)
        daily_counts.append(
            DailyCount(label=format_short_date(day, lang), day=day, count=per_day.get(day, 0))
        )

    return IncidentStats(
        total=total,
        completion_rate=completion_rate,
        avg_resolution_time=average_resolution_time(incidents, lang),
        categories=categories,
        high_impact=high_impact,
        daily_counts=daily_counts,
    )
