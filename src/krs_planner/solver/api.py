"""
Plan-level entry point: resolve ids against a catalog, validate rules,
run the generator and label blocker courses with their display names.
"""

from __future__ import annotations

import logging
from typing import Dict, List

from krs_planner.models import Catalog, Course, PlanRequest, Section
from krs_planner.solver.generator import generate
from krs_planner.solver.result import GeneratorResult
from krs_planner.solver.validate import ensure_valid

logger = logging.getLogger(__name__)


class PlanError(ValueError):
    """Raised when a plan refers to courses or sections the catalog lacks."""


def resolve_frozen(catalog: Catalog, frozen: Dict[str, str]) -> Dict[str, Section]:
    picks: Dict[str, Section] = {}
    for course_id, section_id in frozen.items():
        section = catalog.get_section(course_id, section_id)
        if section is None:
            raise PlanError(f"Unknown frozen section '{section_id}' for course '{course_id}'")
        picks[course_id] = section
    return picks


def resolve_courses(catalog: Catalog, course_ids: List[str]) -> List[Course]:
    courses: List[Course] = []
    for cid in course_ids:
        course = catalog.get_course(cid)
        if course is None:
            raise PlanError(f"Unknown course id '{cid}'")
        courses.append(course)
    return courses


def plan_variants(catalog: Catalog, request: PlanRequest) -> GeneratorResult:
    rules = [r for r in request.rules if r.enabled]
    ensure_valid(rules)

    frozen   = resolve_frozen(catalog, request.frozen)
    selected = resolve_courses(catalog, request.selected_course_ids)
    unselected = [cid for cid in frozen if cid not in request.selected_course_ids]
    if unselected:
        logger.warning("Frozen course(s) not in selection, kept anyway: %s", unselected)

    result = generate(selected, rules, request.options, frozen_picks=frozen)

    for blocker in result.blocker_subjects or []:
        blocker.name = catalog.course_name(blocker.course_id)
    return result
