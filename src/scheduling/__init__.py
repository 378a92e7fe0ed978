"""Pure scheduling engines over timeline item snapshots.

Provides:
- detect_conflicts: Lane/territory/travel conflicts between item pairs
- find_slots: Free windows of a requested duration
"""

from src.scheduling.conflicts import (
    ConflictKind,
    ConflictRecord,
    ConflictSeverity,
    build_conflict_index,
    conflicting_item_ids,
    detect_conflicts,
)
from src.scheduling.intervals import effective_interval, schedule
from src.scheduling.slots import (
    SlotConstraint,
    SlotSearchOptions,
    SlotSearchResult,
    TimeSlot,
    find_slots,
)

__all__ = [
    "ConflictKind",
    "ConflictRecord",
    "ConflictSeverity",
    "build_conflict_index",
    "conflicting_item_ids",
    "detect_conflicts",
    "effective_interval",
    "schedule",
    "SlotConstraint",
    "SlotSearchOptions",
    "SlotSearchResult",
    "TimeSlot",
    "find_slots",
]
