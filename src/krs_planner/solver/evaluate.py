"""
Rule evaluation over a RuleContext.

Each rule kind has one checker in _CHECKS. The table is checked against
models.RULE_TYPES at import time, so adding a rule kind without a checker
fails loudly instead of silently passing every variant.

Evaluation never raises: a rule naming a day that is not in the context
simply sees no blocks on it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from krs_planner.models import (DAYS, CompactDaysRule, MaxDaysPerWeekRule,
    MaxGapRule, NoDayRule, NoGapsRule, Rule, RULE_TYPES, RuleContext,
    ScheduleVariant, SCOPE_ALL, TimeBlock, TimeWindowRule, to_clock)
from krs_planner.solver.context import build_context


@dataclass(frozen=True)
class RuleOutcome:
    passed:  bool
    message: Optional[str] = None


@dataclass
class EvaluationResult:
    ok:              bool
    failed_rule_ids: List[str]     = field(default_factory=list)
    messages:        Dict[str, str] = field(default_factory=dict)


_PASS = RuleOutcome(True)


def _blocks(ctx: RuleContext, day: str) -> List[TimeBlock]:
    return ctx.by_day.get(day, [])


def _check_no_day(rule: NoDayRule, ctx: RuleContext) -> RuleOutcome:
    for day in rule.days:
        if _blocks(ctx, day):
            return RuleOutcome(False, f"Has activity on banned day: {day}")
    return _PASS


def _check_time_window(rule: TimeWindowRule, ctx: RuleContext) -> RuleOutcome:
    if rule.scope == SCOPE_ALL:
        days: Iterable[str] = DAYS
    elif rule.day:
        days = (rule.day,)
    else:
        return _PASS

    for day in days:
        for block in _blocks(ctx, day):
            if rule.earliest_start_min is not None and block.start_min < rule.earliest_start_min:
                return RuleOutcome(
                    False, f"Activity starts before {to_clock(rule.earliest_start_min)} on {day}")
            if rule.latest_end_min is not None and block.end_min > rule.latest_end_min:
                return RuleOutcome(
                    False, f"Activity ends after {to_clock(rule.latest_end_min)} on {day}")
    return _PASS


def _gaps(ctx: RuleContext, days: Optional[Sequence[str]]):
    """Yield (day, idle minutes) for each consecutive pair of blocks."""
    for day in (days if days is not None else DAYS):
        blocks = _blocks(ctx, day)
        for prev, nxt in zip(blocks, blocks[1:]):
            yield day, nxt.start_min - prev.end_min


def _check_no_gaps(rule: NoGapsRule, ctx: RuleContext) -> RuleOutcome:
    for day, gap in _gaps(ctx, rule.days):
        if gap > 0:
            return RuleOutcome(False, f"Gap detected on {day}")
    return _PASS


def _check_max_gap(rule: MaxGapRule, ctx: RuleContext) -> RuleOutcome:
    for day, gap in _gaps(ctx, rule.days):
        if gap > rule.max_gap_min:
            return RuleOutcome(False, f"Gap exceeds {rule.max_gap_min} min on {day}")
    return _PASS


def _check_distinct_days(limit: int, ctx: RuleContext) -> RuleOutcome:
    if ctx.distinct_days > limit:
        return RuleOutcome(False, f"Distinct days ({ctx.distinct_days}) exceed {limit}")
    return _PASS


def _check_max_days(rule: MaxDaysPerWeekRule, ctx: RuleContext) -> RuleOutcome:
    return _check_distinct_days(rule.max_days, ctx)


def _check_compact_days(rule: CompactDaysRule, ctx: RuleContext) -> RuleOutcome:
    return _check_distinct_days(rule.max_distinct_days, ctx)


_CHECKS: Dict[str, Callable[..., RuleOutcome]] = {
    NoDayRule.type:          _check_no_day,
    TimeWindowRule.type:     _check_time_window,
    NoGapsRule.type:         _check_no_gaps,
    MaxGapRule.type:         _check_max_gap,
    MaxDaysPerWeekRule.type: _check_max_days,
    CompactDaysRule.type:    _check_compact_days,
}

_missing = set(RULE_TYPES) - set(_CHECKS)
if _missing:
    raise RuntimeError(f"No evaluator for rule type(s): {sorted(_missing)}")


def evaluate_rule(rule: Rule, ctx: RuleContext) -> RuleOutcome:
    if not rule.enabled:
        return _PASS
    return _CHECKS[rule.type](rule, ctx)


def evaluate_rules(rules: Sequence[Rule], variant: ScheduleVariant) -> EvaluationResult:
    """Apply every enabled rule to one variant and collect all failures."""
    ctx = build_context(variant.picks)
    failed:   List[str]      = []
    messages: Dict[str, str] = {}

    for rule in rules:
        outcome = evaluate_rule(rule, ctx)
        if not outcome.passed and rule.id not in messages:
            failed.append(rule.id)
            messages[rule.id] = outcome.message or ""

    return EvaluationResult(ok=not failed, failed_rule_ids=failed, messages=messages)
