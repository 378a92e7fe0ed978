"""Open-slot search over a project's timeline.

The finder is a pure function over a snapshot of items: it computes the
occupied set with the same effective-interval rule as conflict
detection, takes its complement within the requested range, and
proposes every free gap long enough for the requested duration.
"""

from datetime import datetime, time, timedelta
from enum import Enum
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator, model_validator

from src.config import settings
from src.models.timeline import TimelineItem, parse_timestamp
from src.scheduling.intervals import ScheduledItem, merge_intervals, schedule


class SlotConstraint(str, Enum):
    NOT_OVERLAPPING_TRAVEL = "not_overlapping_travel"
    AVOID_TIMEZONE_JUMPS = "avoid_timezone_jumps"
    PREFER_BUSINESS_HOURS = "prefer_business_hours"


class SlotSearchOptions(BaseModel):
    """Parameters for a slot search."""

    date_range: tuple[datetime, datetime]
    duration_hours: float = Field(gt=0)
    project_id: str | None = None
    city: str | None = None
    territory: str | None = None
    constraints: list[SlotConstraint] = Field(default_factory=list)
    max_results: int = Field(default=settings.slot_max_results, ge=1)
    timezone: str = Field(default="UTC", description="Zone for business hours")

    @field_validator("date_range", mode="before")
    @classmethod
    def _parse_range(cls, value: object) -> object:
        if isinstance(value, (list, tuple)) and len(value) == 2:
            parsed = [parse_timestamp(v) if isinstance(v, str) else v for v in value]
            if any(p is None for p in parsed):
                msg = "dateRange must contain valid ISO 8601 timestamps"
                raise ValueError(msg)
            return tuple(parsed)
        return value

    @field_validator("timezone")
    @classmethod
    def _known_zone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            msg = f"Unknown timezone: {value}"
            raise ValueError(msg) from e
        return value

    @model_validator(mode="after")
    def _ordered_range(self) -> "SlotSearchOptions":
        start, end = self.date_range
        if start.tzinfo is None:
            start = start.replace(tzinfo=ZoneInfo("UTC"))
        if end.tzinfo is None:
            end = end.replace(tzinfo=ZoneInfo("UTC"))
        if start >= end:
            msg = "dateRange start must be before end"
            raise ValueError(msg)
        self.date_range = (start, end)
        return self


class TimeSlot(BaseModel):
    """A proposed free window."""

    start: datetime
    end: datetime
    duration_hours: float
    business_hours: bool = False
    city: str | None = None
    territory: str | None = None


class SlotSearchMeta(BaseModel):
    scanned_items: int
    requested_duration: float
    city: str | None = None
    territory: str | None = None
    constraints: list[SlotConstraint] = Field(default_factory=list)


class SlotSearchResult(BaseModel):
    slots: list[TimeSlot]
    meta: SlotSearchMeta


def _matches_scope(item: TimelineItem, options: SlotSearchOptions) -> bool:
    """Items labelled for another territory/city do not block the search."""
    if options.territory and item.territory:
        if item.territory.lower() != options.territory.strip().lower():
            return False
    if options.city and item.city:
        if item.city.lower() != options.city.strip().lower():
            return False
    return True


def _scan(items: list[TimelineItem], options: SlotSearchOptions) -> list[TimelineItem]:
    range_start, range_end = options.date_range
    scanned = []
    for item in items:
        if item.starts_at is None:
            continue
        if not range_start <= item.starts_at <= range_end:
            continue
        if options.project_id and item.project_id != options.project_id:
            continue
        if not _matches_scope(item, options):
            continue
        scanned.append(item)
    return scanned


def _free_gaps(
    scheduled: list[ScheduledItem],
    range_start: datetime,
    range_end: datetime,
) -> list[tuple[datetime, datetime]]:
    """Complement of the occupied set within the range."""
    clipped = []
    for entry in scheduled:
        start = max(entry.start, range_start)
        end = min(entry.end, range_end)
        if start < end:
            clipped.append((start, end))

    gaps = []
    cursor = range_start
    for start, end in merge_intervals(clipped):
        if start > cursor:
            gaps.append((cursor, start))
        cursor = max(cursor, end)
    if cursor < range_end:
        gaps.append((cursor, range_end))
    return gaps


def _gap_allowed(
    gap: tuple[datetime, datetime],
    scheduled: list[ScheduledItem],
    constraints: set[SlotConstraint],
) -> bool:
    gap_start, gap_end = gap
    before = [s for s in scheduled if s.end == gap_start]
    after = [s for s in scheduled if s.start == gap_end]

    if SlotConstraint.NOT_OVERLAPPING_TRAVEL in constraints:
        if any(s.item.is_travel for s in before + after):
            return False

    if SlotConstraint.AVOID_TIMEZONE_JUMPS in constraints:
        zones_before = {s.item.timezone for s in before if s.item.timezone}
        zones_after = {s.item.timezone for s in after if s.item.timezone}
        if zones_before and zones_after and zones_before.isdisjoint(zones_after):
            return False

    return True


def _business_windows(
    gap: tuple[datetime, datetime],
    zone: ZoneInfo,
) -> list[tuple[datetime, datetime]]:
    """Portions of a gap that fall inside local business hours."""
    gap_start, gap_end = gap
    open_at = time(hour=settings.business_hours_start)
    windows = []
    day = gap_start.astimezone(zone).date()
    last_day = gap_end.astimezone(zone).date()
    while day <= last_day:
        window_start = datetime.combine(day, open_at, tzinfo=zone)
        if settings.business_hours_end >= 24:
            window_end = datetime.combine(day + timedelta(days=1), time(0), tzinfo=zone)
        else:
            window_end = datetime.combine(
                day, time(hour=settings.business_hours_end), tzinfo=zone
            )
        start = max(gap_start, window_start)
        end = min(gap_end, window_end)
        if start < end:
            windows.append((start, end))
        day += timedelta(days=1)
    return windows


def find_slots(
    items: list[TimelineItem],
    options: SlotSearchOptions,
) -> SlotSearchResult:
    """Propose open slots that avoid every scanned item.

    Args:
        items: Snapshot of candidate items (any project)
        options: Range, duration, scoping and constraints

    Returns:
        Chronological slots (business-hour windows first when
        preferred), truncated to ``max_results``; empty when no gap
        is long enough
    """
    range_start, range_end = options.date_range
    duration = timedelta(hours=options.duration_hours)
    constraints = set(options.constraints)

    scanned = _scan(items, options)
    scheduled = schedule(scanned)

    eligible = [
        gap
        for gap in _free_gaps(scheduled, range_start, range_end)
        if gap[1] - gap[0] >= duration and _gap_allowed(gap, scheduled, constraints)
    ]

    def to_slot(window: tuple[datetime, datetime], business: bool) -> TimeSlot:
        return TimeSlot(
            start=window[0],
            end=window[1],
            duration_hours=(window[1] - window[0]).total_seconds() / 3600,
            business_hours=business,
            city=options.city,
            territory=options.territory,
        )

    slots: list[TimeSlot] = []
    if SlotConstraint.PREFER_BUSINESS_HOURS in constraints:
        zone = ZoneInfo(options.timezone)
        fallback = []
        for gap in eligible:
            windows = [
                w for w in _business_windows(gap, zone) if w[1] - w[0] >= duration
            ]
            if windows:
                slots.extend(to_slot(w, True) for w in windows)
            else:
                fallback.append(gap)
        slots.extend(to_slot(gap, False) for gap in fallback)
    else:
        slots = [to_slot(gap, False) for gap in eligible]

    return SlotSearchResult(
        slots=slots[: options.max_results],
        meta=SlotSearchMeta(
            scanned_items=len(scanned),
            requested_duration=options.duration_hours,
            city=options.city,
            territory=options.territory,
            constraints=options.constraints,
        ),
    )
