# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Availability index — who is free to substitute, and when.

Reads a live sequence of availability entries; never mutates it.
Intervals are half-open: an entry ``[08:00, 10:00)`` does not cover 10:00.
"""

from typing import Sequence

from substitutes.metrics import AVAILABILITY_LOOKUPS
from substitutes.models.domain import AvailabilityEntry
from substitutes.services.timekeeping import INVALID_MINUTES, canonical_day, time_to_minutes


class AvailabilityIndex:
    """Point-in-time and range-overlap queries over availability entries."""

    def __init__(self, entries: Sequence[AvailabilityEntry]) -> None:
        self._entries = entries

    def _windows(self, day: str):
        """Yield ``(entry, start, end)`` for valid entries on a canonical day."""
        if not day:
            return
        for entry in self._entries:
            if canonical_day(entry.day) != day:
                continue
            start = time_to_minutes(entry.start_time)
            end = time_to_minutes(entry.end_time)
            # Entries with unparseable bounds never match.
            if start == INVALID_MINUTES or end == INVALID_MINUTES:
                continue
            yield entry, start, end

    def find_at_instant(self, day: str, time: str) -> list[str]:
        """Teachers whose window on ``day`` contains ``time``."""
        AVAILABILITY_LOOKUPS.labels(kind="instant").inc()
        target = time_to_minutes(time)
        return [
            entry.teacher
            for entry, start, end in self._windows(canonical_day(day))
            if start <= target < end
        ]

    def find_overlapping(self, day: str, start_time: str, end_time: str) -> list[str]:
        """Teachers whose window on ``day`` overlaps ``[start_time, end_time)``.

        Windows that only touch the range at an endpoint do not overlap.
        """
        AVAILABILITY_LOOKUPS.labels(kind="range").inc()
        target_start = time_to_minutes(start_time)
        target_end = time_to_minutes(end_time)
        if target_start == INVALID_MINUTES or target_end == INVALID_MINUTES:
            return []
        return [
            entry.teacher
            for entry, start, end in self._windows(canonical_day(day))
            if target_start < end and start < target_end
        ]
