"""
Per-day timeline derived from a variant, consumed by the rule evaluator.
"""

from __future__ import annotations

from typing import Dict, List, Mapping

from krs_planner.models import DAYS, RuleContext, Section, TimeBlock


def build_context(picks: Mapping[str, Section]) -> RuleContext:
    by_day: Dict[str, List[TimeBlock]] = {day: [] for day in DAYS}

    for section in picks.values():
        for meeting in section.meetings:
            blocks = by_day.get(meeting.day)
            if blocks is not None:   # unknown day labels are dropped
                blocks.append(TimeBlock(start_min=meeting.start, end_min=meeting.end))

    distinct_days = 0
    for blocks in by_day.values():
        blocks.sort(key=lambda b: b.start_min)
        if blocks:
            distinct_days += 1

    return RuleContext(by_day=by_day, distinct_days=distinct_days)
