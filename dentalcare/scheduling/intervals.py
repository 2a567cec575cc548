"""Half-open datetime interval helpers used by the availability calculator.

An interval ``[start, end)`` contains ``start`` but not ``end``, so two
intervals that only touch at a boundary do not overlap.
"""

from datetime import datetime, timedelta
from typing import Iterable, NamedTuple


class Interval(NamedTuple):
    start: datetime
    end: datetime

    @property
    def minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)

    def overlaps(self, other: 'Interval') -> bool:
        return self.start < other.end and other.start < self.end

    def contains(self, other: 'Interval') -> bool:
        return self.start <= other.start and other.end <= self.end


def merge_intervals(intervals: Iterable[Interval]) -> list[Interval]:
    """Sort intervals and join the ones that overlap or touch."""
    ordered = sorted(interval for interval in intervals if interval.start < interval.end)
    if not ordered:
        return []

    merged = [ordered[0]]
    for current in ordered[1:]:
        last = merged[-1]
        if current.start <= last.end:
            if current.end > last.end:
                merged[-1] = Interval(last.start, current.end)
        else:
            merged.append(current)

    return merged


def subtract_interval(interval: Interval, block: Interval) -> list[Interval]:
    """Remove ``block`` from ``interval``; returns zero, one or two pieces."""
    if not interval.overlaps(block):
        return [interval]

    pieces = []
    if block.start > interval.start:
        pieces.append(Interval(interval.start, block.start))
    if block.end < interval.end:
        pieces.append(Interval(block.end, interval.end))
    return pieces


def subtract_intervals(intervals: Iterable[Interval], blocks: Iterable[Interval]) -> list[Interval]:
    remaining = merge_intervals(intervals)
    for block in merge_intervals(blocks):
        next_remaining = []
        for interval in remaining:
            next_remaining.extend(subtract_interval(interval, block))
        remaining = next_remaining
    return remaining


def clip_intervals(intervals: Iterable[Interval], lower: datetime, upper: datetime) -> list[Interval]:
    clipped = []
    for interval in intervals:
        start = max(interval.start, lower)
        end = min(interval.end, upper)
        if start < end:
            clipped.append(Interval(start, end))
    return clipped


def slot_starts(intervals: Iterable[Interval], duration_minutes: int, increment_minutes: int) -> list[datetime]:
    """Start times on the increment grid whose whole slot fits a free interval.

    The grid is anchored at midnight, so a free interval starting at 09:10
    offers 09:30 as its first start with a 30 minute increment.
    """
    duration = timedelta(minutes=duration_minutes)
    starts: list[datetime] = []

    for interval in intervals:
        midnight = interval.start.replace(hour=0, minute=0, second=0, microsecond=0)
        offset_minutes = (interval.start - midnight).total_seconds() / 60
        steps = -(-offset_minutes // increment_minutes)
        current = midnight + timedelta(minutes=steps * increment_minutes)

        while current + duration <= interval.end:
            starts.append(current)
            current += timedelta(minutes=increment_minutes)

    return starts
