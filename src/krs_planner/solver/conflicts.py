"""
Time-overlap conflict model.

Meetings are half-open intervals [start, end): a class ending at 10:00 and
another starting at 10:00 on the same day do not conflict.
"""

from __future__ import annotations

from krs_planner.models import Meeting, Section


def meetings_overlap(a: Meeting, b: Meeting) -> bool:
    return a.day == b.day and a.start < b.end and b.start < a.end


def sections_conflict(a: Section, b: Section) -> bool:
    """True iff some meeting of `a` overlaps some meeting of `b`."""
    if a is b:
        return False
    return any(meetings_overlap(ma, mb) for ma in a.meetings for mb in b.meetings)
