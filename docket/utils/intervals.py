"""
Minute-of-day interval helpers used by conflict detection and placement.

All intervals are half-open: [start_minutes, end_minutes).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional


@dataclass
class TimeInterval:
    start_minutes: int
    end_minutes: int

    @property
    def length(self) -> int:
        return max(0, self.end_minutes - self.start_minutes)


def overlaps(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    """Check whether two half-open intervals share any minute."""
    return start_a < end_b and start_b < end_a


def merge_intervals(intervals: Iterable[TimeInterval]) -> list[TimeInterval]:
    """Merge overlapping or touching intervals into a sorted, disjoint list."""
    ordered = sorted(
        (i for i in intervals if i.end_minutes > i.start_minutes),
        key=lambda i: (i.start_minutes, i.end_minutes),
    )
    merged: list[TimeInterval] = []
    for interval in ordered:
        if merged and interval.start_minutes <= merged[-1].end_minutes:
            merged[-1].end_minutes = max(merged[-1].end_minutes, interval.end_minutes)
            continue
        merged.append(TimeInterval(interval.start_minutes, interval.end_minutes))
    return merged


def subtract_intervals(base: list[TimeInterval], remove: list[TimeInterval]) -> list[TimeInterval]:
    if not remove:
        return base
    intervals = base
    for block in remove:
        next_intervals: list[TimeInterval] = []
        for interval in intervals:
            if block.end_minutes <= interval.start_minutes or block.start_minutes >= interval.end_minutes:
                next_intervals.append(interval)
                continue
            if block.start_minutes > interval.start_minutes:
                next_intervals.append(
                    TimeInterval(interval.start_minutes, min(block.start_minutes, interval.end_minutes))
                )
            if block.end_minutes < interval.end_minutes:
                next_intervals.append(
                    TimeInterval(max(block.end_minutes, interval.start_minutes), interval.end_minutes)
                )
        intervals = next_intervals
    return [interval for interval in intervals if interval.end_minutes > interval.start_minutes]


def clip_intervals(
    intervals: Iterable[TimeInterval],
    start_minutes: int,
    end_minutes: int,
) -> list[TimeInterval]:
    """Clip intervals to [start_minutes, end_minutes), dropping empty results."""
    clipped: list[TimeInterval] = []
    for interval in intervals:
        if interval.end_minutes <= start_minutes or interval.start_minutes >= end_minutes:
            continue
        clipped.append(
            TimeInterval(
                max(interval.start_minutes, start_minutes),
                min(interval.end_minutes, end_minutes),
            )
        )
    return clipped


def total_minutes(intervals: Iterable[TimeInterval]) -> int:
    return sum(interval.length for interval in intervals)


def first_gap(
    occupied: Iterable[TimeInterval],
    window_start: int,
    window_end: int,
    needed_minutes: int,
) -> Optional[int]:
    """
    Find the earliest start in the window with `needed_minutes` of free time.

    Occupied intervals are scanned in time order and the cursor jumps past
    each one that would collide, so the result is the first gap large
    enough, counted from the top of the window.

    Returns:
        Start minute of the gap, or None if no contiguous gap fits.
    """
    if needed_minutes <= 0 or window_end - window_start < needed_minutes:
        return None
    cursor = window_start
    for interval in merge_intervals(occupied):
        if interval.end_minutes <= cursor:
            continue
        if interval.start_minutes >= window_end:
            break
        if interval.start_minutes - cursor >= needed_minutes:
            return cursor
        cursor = max(cursor, interval.end_minutes)
    if window_end - cursor >= needed_minutes:
        return cursor
    return None
