"""
Randomised, restart-based backtracking search for distinct valid variants.

Outline:
  1. frozen picks that clash with each other abort the call
  2. courses with no section compatible with the frozen picks are noted
  3. mutable courses are ordered fewest-sections-first, ties broken by the RNG
  4. RESTARTS independent passes, each with ceil(max_attempts / RESTARTS)
     leaf evaluations; the RNG moves one step between passes
  5. depth-first assignment over a freshly shuffled copy of each course's
     sections, pruning any section that clashes with a pick already made
  6. complete assignments ("leaves") are merged with the frozen picks,
     run through the rule evaluator and deduplicated by variant key
  7. the search stops at `target` variants or `max_attempts` leaves

When nothing is found, the result explains why: the rules that failed most
often and the courses that most often ran out of compatible sections.

All randomness comes from one Lcg seeded per call, so equal inputs and an
equal seed reproduce the same variants in the same order and the same
counters.
"""

from __future__ import annotations

import logging
import math
import time
from collections import Counter
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from krs_planner.models import Course, GeneratorOptions, Rule, ScheduleVariant, Section
from krs_planner.solver.conflicts import sections_conflict
from krs_planner.solver.evaluate import evaluate_rules
from krs_planner.solver.result import (FIXED_SELECTION_CONFLICT, NO_COMPATIBLE_SECTIONS,
    NO_SECTIONS_OFFERED, BlockerSubject, FailureHit, GeneratorResult, GeneratorStats)
from krs_planner.solver.rng import LCG_MODULUS, Lcg

logger = logging.getLogger(__name__)

RESTARTS = 25
MAX_REPORTED = 3


def find_frozen_conflict(frozen_picks: Mapping[str, Section]) -> Optional[Tuple[str, str]]:
    """Return the first pair of frozen course ids whose sections clash."""
    items = list(frozen_picks.items())
    for i, (id_a, sec_a) in enumerate(items):
        for id_b, sec_b in items[i + 1:]:
            if sections_conflict(sec_a, sec_b):
                return id_a, id_b
    return None


def find_infeasible_courses(courses: Sequence[Course],
                            frozen_picks: Mapping[str, Section]) -> List[BlockerSubject]:
    """Courses none of whose sections fit next to the frozen picks."""
    blockers: List[BlockerSubject] = []
    for course in courses:
        others = [s for cid, s in frozen_picks.items() if cid != course.id]
        if not course.sections:
            blockers.append(BlockerSubject(course.id, reason=NO_SECTIONS_OFFERED))
            continue
        feasible = any(
            not any(sections_conflict(section, fixed) for fixed in others)
            for section in course.sections
        )
        if not feasible:
            blockers.append(BlockerSubject(course.id, reason=NO_COMPATIBLE_SECTIONS))
    return blockers


def order_courses(courses: Sequence[Course], rng: Lcg) -> List[Course]:
    # One tie-break draw per course, taken in input order.
    tiebreak = [rng.random() for _ in courses]
    order = sorted(range(len(courses)),
                   key=lambda i: (len(courses[i].sections), tiebreak[i]))
    return [courses[i] for i in order]


class _Search:
    """Backtracking state shared by all restarts of one generate() call."""

    def __init__(self, courses: List[Course], rules: Sequence[Rule],
                 frozen: Dict[str, Section], target: int, max_attempts: int,
                 rng: Lcg) -> None:
        self.courses      = courses
        self.rules        = rules
        self.frozen       = frozen
        self.target       = target
        self.max_attempts = max_attempts
        self.rng          = rng
        self.per_restart  = math.ceil(max_attempts / RESTARTS)

        # insert before recursing, delete after returning
        self.picks: Dict[str, Section] = {}

        self.variants:  List[ScheduleVariant] = []
        self.seen_keys: set                   = set()
        self.rule_failures: Counter           = Counter()
        self.dead_ends:     Counter           = Counter()

        self.total_recursions = 0
        self.total_attempts   = 0
        self.restart_attempts = 0

    def done(self) -> bool:
        return len(self.variants) >= self.target or self.total_attempts >= self.max_attempts

    def _stop(self) -> bool:
        return self.done() or self.restart_attempts >= self.per_restart

    def run_restart(self) -> None:
        self.restart_attempts = 0
        self._backtrack(0)

    def _clashes(self, section: Section) -> bool:
        return (
            any(sections_conflict(section, picked) for picked in self.picks.values())
            or any(sections_conflict(section, fixed) for fixed in self.frozen.values())
        )

    def _backtrack(self, idx: int) -> None:
        self.total_recursions += 1
        if self._stop():
            return
        if idx == len(self.courses):
            self._evaluate_leaf()
            return

        course    = self.courses[idx]
        fit       = 0
        attempted = 0
        for section in self.rng.shuffle(course.sections):
            if self._stop():
                break
            attempted += 1
            if self._clashes(section):
                continue
            fit += 1
            self.picks[course.id] = section
            self._backtrack(idx + 1)
            del self.picks[course.id]

        if fit == 0 and attempted > 0:
            self.dead_ends[course.id] += 1

    def _evaluate_leaf(self) -> None:
        self.total_attempts   += 1
        self.restart_attempts += 1

        variant = ScheduleVariant(picks={**self.picks, **self.frozen})
        outcome = evaluate_rules(self.rules, variant)
        if not outcome.ok:
            self.rule_failures.update(outcome.failed_rule_ids)
            return

        key = variant.key()
        if key not in self.seen_keys:
            self.seen_keys.add(key)
            self.variants.append(variant)


def _default_seed() -> int:
    return int(time.time() * 1000) % LCG_MODULUS


def _finish(result: GeneratorResult, started: float) -> GeneratorResult:
    result.stats.elapsed_ms = round((time.perf_counter() - started) * 1000, 3)
    return result


def _summarise_failures(failures: Counter) -> Optional[List[FailureHit]]:
    if not failures:
        return None
    return [FailureHit(rule_id, hits) for rule_id, hits in failures.most_common(MAX_REPORTED)]


def _collect_blockers(prechecked: List[BlockerSubject],
                      dead_ends: Counter) -> Optional[List[BlockerSubject]]:
    blockers = list(prechecked)
    listed   = {b.course_id for b in blockers}
    for course_id, hits in dead_ends.most_common():
        if len(blockers) >= MAX_REPORTED:
            break
        if course_id not in listed:
            blockers.append(BlockerSubject(course_id, hits=hits))
            listed.add(course_id)
    return blockers or None


def _frozen_only(frozen: Dict[str, Section], rules: Sequence[Rule],
                 stats: GeneratorStats) -> GeneratorResult:
    variant = ScheduleVariant(picks=dict(frozen))
    outcome = evaluate_rules(rules, variant)
    if outcome.ok:
        return GeneratorResult(variants=[variant], stats=stats)
    return GeneratorResult(
        failure_summary=[FailureHit(rule_id, 1) for rule_id in outcome.failed_rule_ids[:MAX_REPORTED]],
        stats=stats,
    )


def generate(
    courses: Sequence[Course],
    rules: Sequence[Rule],
    options: GeneratorOptions,
    frozen_picks: Optional[Mapping[str, Section]] = None,
) -> GeneratorResult:
    """Find up to options.target distinct variants satisfying `rules`.

    `courses` are the courses still to be assigned; any course whose id is
    also in `frozen_picks` is treated as frozen and not searched over.
    Every returned variant contains the frozen picks unchanged.
    """
    started = time.perf_counter()
    frozen  = dict(frozen_picks or {})
    seed    = options.seed if options.seed is not None else _default_seed()
    stats   = GeneratorStats(max_attempts=options.max_attempts, seed=seed)

    if options.target <= 0:
        return _finish(GeneratorResult(stats=stats), started)

    clash = find_frozen_conflict(frozen)
    if clash is not None:
        logger.info("Frozen sections of %s and %s overlap; search skipped", *clash)
        blockers = [BlockerSubject(cid, reason=FIXED_SELECTION_CONFLICT) for cid in clash]
        return _finish(GeneratorResult(blocker_subjects=blockers, stats=stats), started)

    mutable = [c for c in courses if c.id not in frozen]
    if not mutable:
        if not frozen:
            return _finish(GeneratorResult(stats=stats), started)
        return _finish(_frozen_only(frozen, rules, stats), started)

    prechecked = find_infeasible_courses(courses, frozen)
    for blocker in prechecked:
        logger.debug("Course %s: %s", blocker.course_id, blocker.reason)

    rng    = Lcg(seed)
    search = _Search(order_courses(mutable, rng), rules, frozen,
                     options.target, options.max_attempts, rng)

    for _ in range(RESTARTS):
        if search.done():
            break
        stats.restarts += 1
        search.run_restart()
        logger.debug("Restart %d: %d leaves, %d variants so far",
                     stats.restarts, search.restart_attempts, len(search.variants))
        rng.advance()

    stats.total_recursions = search.total_recursions
    stats.total_attempts   = search.total_attempts
    stats.budget_exhausted = search.total_attempts >= options.max_attempts

    result = GeneratorResult(variants=search.variants, stats=stats)
    if not search.variants:
        result.failure_summary  = _summarise_failures(search.rule_failures)
        result.blocker_subjects = _collect_blockers(prechecked, search.dead_ends)

    logger.info("Generated %d/%d variant(s) in %d leaf attempt(s) over %d restart(s), seed=%d",
                len(search.variants), options.target, search.total_attempts,
                stats.restarts, seed)
    return _finish(result, started)
