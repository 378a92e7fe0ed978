"""Effective-interval math shared by conflict detection and slot finding."""

from dataclasses import dataclass
from datetime import datetime, timedelta

from src.config import settings
from src.models.timeline import TimelineItem

DEFAULT_DURATION = timedelta(hours=settings.default_duration_hours)


@dataclass(frozen=True)
class ScheduledItem:
    """An item paired with the interval used for overlap math."""

    item: TimelineItem
    start: datetime
    end: datetime

    def overlaps(self, other: "ScheduledItem") -> bool:
        return self.end > other.start and other.end > self.start


def effective_interval(
    item: TimelineItem,
    default_duration: timedelta = DEFAULT_DURATION,
) -> tuple[datetime, datetime] | None:
    """Start/end pair for an item, or None if it has no start.

    An end that is missing or not after the start is replaced by
    ``start + default_duration``.
    """
    if item.starts_at is None:
        return None
    start = item.starts_at
    if item.ends_at is not None and item.ends_at > start:
        return start, item.ends_at
    return start, start + default_duration


def schedule(
    items: list[TimelineItem],
    default_duration: timedelta = DEFAULT_DURATION,
) -> list[ScheduledItem]:
    """Scheduled items sorted by (start, id); unscheduled items dropped."""
    scheduled = []
    for item in items:
        interval = effective_interval(item, default_duration)
        if interval is None:
            continue
        scheduled.append(ScheduledItem(item=item, start=interval[0], end=interval[1]))
    scheduled.sort(key=lambda s: (s.start, s.item.id))
    return scheduled


def merge_intervals(
    intervals: list[tuple[datetime, datetime]],
) -> list[tuple[datetime, datetime]]:
    """Union of intervals as a sorted list of disjoint intervals.

    Touching intervals (one ends where the next starts) are merged.
    """
    merged: list[tuple[datetime, datetime]] = []
    for start, end in sorted(intervals):
        if merged and start <= merged[-1][1]:
            if end > merged[-1][1]:
                merged[-1] = (merged[-1][0], end)
        else:
            merged.append((start, end))
    return merged
