"""Conflict detection across lanes and territories.

Findings are derived on every read and never persisted. The pairwise
scan is O(n^2) in the number of scheduled items, which is fine for
per-project item counts; a sweep-line grouped by lane/territory would be
needed for much larger sets.

Rules (per unordered pair):
1. Lane overlap: intervals overlap and both items share a lane -> warning
2. Territory proximity: same territory and start times closer than the
   buffer -> error, even without an interval overlap
3. Travel gap (opt-in): consecutive items in different territories with
   less than the buffer between them -> warning
"""

from collections import defaultdict
from datetime import timedelta
from enum import Enum

from pydantic import BaseModel, Field

from src.models.timeline import TimelineItem
from src.scheduling.intervals import DEFAULT_DURATION, ScheduledItem, schedule

DEFAULT_TERRITORY_BUFFER_HOURS = 4.0


class ConflictSeverity(str, Enum):
    WARNING = "warning"
    ERROR = "error"


class ConflictKind(str, Enum):
    LANE = "lane"
    TERRITORY = "territory"
    TRAVEL = "travel"


class ConflictRecord(BaseModel):
    """A derived scheduling conflict between two items."""

    id: str = Field(description="Deterministic '{a}:{b}:{kind}' key")
    item_ids: tuple[str, str]
    kind: ConflictKind
    severity: ConflictSeverity
    message: str


def _format_hours(hours: float) -> str:
    return f"{hours:g}h"


def _conflict(
    first: ScheduledItem,
    second: ScheduledItem,
    kind: ConflictKind,
    severity: ConflictSeverity,
    message: str,
) -> ConflictRecord:
    return ConflictRecord(
        id=f"{first.item.id}:{second.item.id}:{kind.value}",
        item_ids=(first.item.id, second.item.id),
        kind=kind,
        severity=severity,
        message=message,
    )


def detect_conflicts(
    items: list[TimelineItem],
    territory_buffer_hours: float = DEFAULT_TERRITORY_BUFFER_HOURS,
    *,
    exclude_terminal: bool = False,
    travel_buffer: bool = False,
    default_duration: timedelta = DEFAULT_DURATION,
) -> list[ConflictRecord]:
    """Return pairwise conflicts for a project's items.

    Args:
        items: Snapshot of the project's timeline items
        territory_buffer_hours: Minimum gap between same-territory starts
            (exclusive boundary; negative values are treated as 0)
        exclude_terminal: Skip done/cancelled items
        travel_buffer: Also flag tight hops between different territories
        default_duration: Duration assumed for items without an end

    Returns:
        Conflicts in scan order; a pair may yield several kinds
    """
    buffer = timedelta(hours=max(territory_buffer_hours, 0.0))
    candidates = [i for i in items if not (exclude_terminal and i.is_terminal)]
    scheduled = schedule(candidates, default_duration)

    conflicts: list[ConflictRecord] = []
    seen: set[str] = set()

    def emit(record: ConflictRecord) -> None:
        if record.id not in seen:
            seen.add(record.id)
            conflicts.append(record)

    for i, a in enumerate(scheduled):
        for b in scheduled[i + 1 :]:
            if a.item.id == b.item.id:
                continue

            lane = a.item.effective_lane
            if lane and lane == b.item.effective_lane and a.overlaps(b):
                emit(
                    _conflict(
                        a,
                        b,
                        ConflictKind.LANE,
                        ConflictSeverity.WARNING,
                        f"{a.item.title} overlaps with {b.item.title} in the {lane} lane",
                    )
                )

            territory = a.item.territory
            if territory and territory == b.item.territory:
                if abs(a.start - b.start) < buffer:
                    emit(
                        _conflict(
                            a,
                            b,
                            ConflictKind.TERRITORY,
                            ConflictSeverity.ERROR,
                            f"{a.item.title} and {b.item.title} are both in "
                            f"{territory} without the "
                            f"{_format_hours(territory_buffer_hours)} buffer",
                        )
                    )

            if travel_buffer and a.item.territory and b.item.territory:
                if a.item.territory != b.item.territory:
                    # scheduled is sorted, so a starts no later than b
                    gap = b.start - a.end
                    if gap < buffer:
                        gap_hours = max(0, round(gap.total_seconds() / 3600))
                        emit(
                            _conflict(
                                a,
                                b,
                                ConflictKind.TRAVEL,
                                ConflictSeverity.WARNING,
                                f"{b.item.title} starts {gap_hours}h after "
                                f"{a.item.title} in a different territory",
                            )
                        )

    return conflicts


def build_conflict_index(
    conflicts: list[ConflictRecord],
) -> dict[str, list[ConflictRecord]]:
    """Map each item id to the conflicts it takes part in."""
    index: dict[str, list[ConflictRecord]] = defaultdict(list)
    for conflict in conflicts:
        for item_id in conflict.item_ids:
            index[item_id].append(conflict)
    return dict(index)


def conflicting_item_ids(conflicts: list[ConflictRecord]) -> set[str]:
    """Union of item ids involved in any conflict."""
    return {item_id for conflict in conflicts for item_id in conflict.item_ids}
