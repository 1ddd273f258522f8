"""
Exact feasibility check with OR-Tools CP-SAT.

The randomised generator can give up before it finds anything. This module
answers the complementary question: does *any* assignment exist at all?

Model:
  x[c,s] = 1  iff  course c takes section s      (add_exactly_one per course)
  conflicting sections of different courses      (add_at_most_one per pair)
  sections clashing with a frozen pick           x == 0
  noDay / timeWindow                             per-section filter, x == 0
  maxDaysPerWeek / compactDays                   day-used BoolVars, sum <= limit

noGaps / maxGap depend on the whole sorted day and are not encoded, so the
model is a relaxation: INFEASIBLE is a proof, while a witness is re-checked
with the rule evaluator and downgraded to RELAXED_FEASIBLE if a gap rule
rejects it.

Reference: OR-Tools CP-SAT Python API
https://developers.google.com/optimization/reference/python/sat/python/cp_model
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence

from ortools.sat.python import cp_model

from krs_planner.models import (DAYS, CompactDaysRule, Course, MaxDaysPerWeekRule,
    MaxGapRule, NoDayRule, NoGapsRule, Rule, ScheduleVariant, Section, TimeWindowRule)
from krs_planner.solver.conflicts import sections_conflict
from krs_planner.solver.context import build_context
from krs_planner.solver.evaluate import evaluate_rule, evaluate_rules
from krs_planner.solver.generator import find_frozen_conflict

logger = logging.getLogger(__name__)


@dataclass
class FeasibilityReport:
    status:           str   # FEASIBLE/RELAXED_FEASIBLE/INFEASIBLE/UNKNOWN/MODEL_INVALID
    witness:          Optional[Dict[str, str]] = None   # course id -> section id
    relaxed_rule_ids: List[str]                = field(default_factory=list)
    diagnostics:      List[str]                = field(default_factory=list)


def _status_str(s: object) -> str:
    """Convert a CP-SAT solver status value to a readable string."""
    mapping = {
        int(cp_model.OPTIMAL):       "FEASIBLE",   # no objective: optimal == feasible
        int(cp_model.FEASIBLE):      "FEASIBLE",
        int(cp_model.INFEASIBLE):    "INFEASIBLE",
        int(cp_model.MODEL_INVALID): "MODEL_INVALID",
    }
    return mapping.get(int(s), "UNKNOWN")  # type: ignore[call-overload]


def _blocked_by(section: Section, filters: Sequence[Rule]) -> Optional[str]:
    """Id of the first noDay/timeWindow rule that rejects `section` on its own."""
    ctx = build_context({"_": section})
    for rule in filters:
        if not evaluate_rule(rule, ctx).passed:
            return rule.id
    return None


def _meeting_days(section: Section) -> List[str]:
    return sorted({m.day for m in section.meetings if m.day in DAYS})


def prove_feasibility(
    courses: Sequence[Course],
    rules: Sequence[Rule],
    frozen_picks: Optional[Mapping[str, Section]] = None,
    max_time_in_seconds: float = 10.0,
    seed: int = 0,
) -> FeasibilityReport:
    frozen  = dict(frozen_picks or {})
    enabled = [r for r in rules if r.enabled]
    filters = [r for r in enabled if isinstance(r, (NoDayRule, TimeWindowRule))]
    relaxed = [r.id for r in enabled if isinstance(r, (NoGapsRule, MaxGapRule))]
    day_limits = (
        [r.max_days for r in enabled if isinstance(r, MaxDaysPerWeekRule)]
        + [r.max_distinct_days for r in enabled if isinstance(r, CompactDaysRule)]
    )

    clash = find_frozen_conflict(frozen)
    if clash is not None:
        return FeasibilityReport(
            "INFEASIBLE", diagnostics=[f"Frozen sections of '{clash[0]}' and '{clash[1]}' overlap."])

    for cid, section in frozen.items():
        rule_id = _blocked_by(section, filters)
        if rule_id is not None:
            return FeasibilityReport(
                "INFEASIBLE",
                diagnostics=[f"Frozen section '{section.id}' of '{cid}' violates rule '{rule_id}'."])

    mutable = [c for c in courses if c.id not in frozen]
    empty   = [c.id for c in mutable if not c.sections]
    if empty:
        return FeasibilityReport("INFEASIBLE", diagnostics=[f"Course(s) without sections: {empty}"])

    model = cp_model.CpModel()

    x: Dict[tuple, cp_model.IntVar] = {}
    for ci, course in enumerate(mutable):
        for si, section in enumerate(course.sections):
            var = model.new_bool_var(f"x_c{ci}_s{si}")
            x[ci, si] = var
            if (any(sections_conflict(section, f) for f in frozen.values())
                    or _blocked_by(section, filters) is not None):
                model.add(var == 0)
        model.add_exactly_one(x[ci, si] for si in range(len(course.sections)))

    keys = list(x)
    for a, (ca, sa) in enumerate(keys):
        for cb, sb in keys[a + 1:]:
            if ca != cb and sections_conflict(mutable[ca].sections[sa], mutable[cb].sections[sb]):
                model.add_at_most_one([x[ca, sa], x[cb, sb]])

    if day_limits:
        used = {day: model.new_bool_var(f"day_{day}") for day in DAYS}
        for section in frozen.values():
            for day in _meeting_days(section):
                model.add(used[day] == 1)
        for (ci, si), var in x.items():
            for day in _meeting_days(mutable[ci].sections[si]):
                model.add_implication(var, used[day])
        model.add(sum(used.values()) <= min(day_limits))

    solver = cp_model.CpSolver()
    solver.parameters.max_time_in_seconds = max_time_in_seconds
    solver.parameters.num_workers         = 1
    solver.parameters.random_seed         = seed % (2 ** 31)
    status = solver.solve(model)
    name   = _status_str(status)
    logger.debug("Feasibility model: %d section vars, status %s, %.3fs",
                 len(x), name, solver.wall_time)

    if name != "FEASIBLE":
        diagnostics = []
        if name == "INFEASIBLE":
            diagnostics.append("No assignment satisfies the clash, day and time-window constraints.")
        elif name == "UNKNOWN":
            diagnostics.append(f"No answer within {max_time_in_seconds}s.")
        return FeasibilityReport(name, relaxed_rule_ids=relaxed, diagnostics=diagnostics)

    picks: Dict[str, Section] = dict(frozen)
    for (ci, si), var in x.items():
        if solver.value(var) == 1:
            picks[mutable[ci].id] = mutable[ci].sections[si]
    witness = ScheduleVariant(picks=picks)

    outcome = evaluate_rules(enabled, witness)
    if outcome.ok:
        return FeasibilityReport("FEASIBLE", witness=witness.section_ids(),
                                 relaxed_rule_ids=relaxed)
    return FeasibilityReport(
        "RELAXED_FEASIBLE",
        witness          = witness.section_ids(),
        relaxed_rule_ids = relaxed,
        diagnostics      = [f"Witness fails rule(s) {outcome.failed_rule_ids}; "
                            "a gap-respecting assignment may still exist."],
    )
