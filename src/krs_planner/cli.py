"""
Command-line interface for the KRS section planner.

Usage examples:
    python -m krs_planner.cli --catalog data/sample_catalog.json --plan data/sample_plan.json
    python -m krs_planner.cli --catalog data/sample_catalog.json --select ALG BIO --seed 7
    python -m krs_planner.cli --catalog jadwal.txt --catalog-text --select ... --prove

Exit codes:
    0  at least one variant produced
    1  bad arguments, unreadable input, unknown ids or invalid rules
    2  search finished without a single valid variant
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List

from krs_planner.io_json import ConfigError, load_catalog, load_plan, load_rules, save_result
from krs_planner.models import Catalog, PlanRequest
from krs_planner.solver.api import PlanError, plan_variants, resolve_courses, resolve_frozen
from krs_planner.solver.feasibility import prove_feasibility
from krs_planner.solver.result import GeneratorResult
from krs_planner.solver.validate import RuleValidationError
from krs_planner.text_import import parse_master_text


def _parse_freeze(items: List[str]) -> Dict[str, str]:
    frozen: Dict[str, str] = {}
    for item in items:
        course_id, sep, section_id = item.partition("=")
        if not sep or not course_id or not section_id:
            raise ValueError(f"--freeze expects COURSE=SECTION, got {item!r}")
        frozen[course_id] = section_id
    return frozen


def _load_catalog(path: str, as_text: bool) -> Catalog:
    if as_text:
        imported = parse_master_text(Path(path).read_text(encoding="utf-8"))
        s = imported.stats
        print(f"Imported {len(imported.courses)} course(s) "
              f"[layout A: {s.format_a}, layout B: {s.format_b}, "
              f"guessed: {s.unknown}, lecturer lines: {s.lecturer_lines}, "
              f"bad times: {s.bad_times}]")
        return Catalog(courses=imported.courses)
    return load_catalog(path)


def _build_request(args: argparse.Namespace) -> PlanRequest:
    request = load_plan(args.plan) if args.plan else PlanRequest()
    if args.rules:
        request.rules = load_rules(args.rules)
    if args.select:
        request.selected_course_ids = list(args.select)
    if args.freeze:
        request.frozen.update(_parse_freeze(args.freeze))
    if args.target is not None:
        request.options.target = args.target
    if args.max_attempts is not None:
        request.options.max_attempts = args.max_attempts
    if args.seed is not None:
        request.options.seed = args.seed
    return request


def _print_result(catalog: Catalog, result: GeneratorResult) -> None:
    st = result.stats
    print(f"\nVariants  : {len(result.variants)}")
    print(f"  seed: {st.seed}   restarts: {st.restarts}   leaves: "
          f"{st.total_attempts}/{st.max_attempts}   recursions: {st.total_recursions}")
    print(f"  elapsed_ms: {st.elapsed_ms}   budget_exhausted: {st.budget_exhausted}")

    for n, variant in enumerate(result.variants, 1):
        print(f"\nVariant {n}:")
        for course_id, section in sorted(variant.picks.items()):
            times = ", ".join(m.describe() for m in section.meetings)
            print(f"  {catalog.course_name(course_id)}  [{section.label}]  {times}")

    for hit in result.failure_summary or []:
        print(f"[DIAG] rule '{hit.rule_id}' rejected {hit.hits} candidate(s)")
    for b in result.blocker_subjects or []:
        detail = b.reason or f"dead end {b.hits}x"
        print(f"[DIAG] blocker: {b.name or b.course_id} ({detail})")


def main() -> None:
    parser = argparse.ArgumentParser(
        description="KRS planner: pick one clash-free section per course",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "examples:\n"
            "  krs-cli --catalog data/sample_catalog.json --plan data/sample_plan.json\n"
            "  krs-cli --catalog cat.json --select ALG BIO --freeze ALG=ALG-B --seed 7\n"
        ),
    )
    parser.add_argument("--catalog", required=True, metavar="FILE",
                        help="course catalog (JSON, or pasted table with --catalog-text)")
    parser.add_argument("--catalog-text", action="store_true",
                        help="treat --catalog as a pasted schedule table")
    parser.add_argument("--plan",  default=None, metavar="FILE",
                        help="plan JSON: selected courses, frozen picks, rules, options")
    parser.add_argument("--rules", default=None, metavar="FILE",
                        help="rules JSON (overrides the plan's rules)")
    parser.add_argument("--select", nargs="+", default=None, metavar="COURSE",
                        help="course ids to schedule (default: every catalog course)")
    parser.add_argument("--freeze", nargs="+", default=None, metavar="COURSE=SECTION",
                        help="keep these sections fixed")
    parser.add_argument("--target",       type=int, default=None, help="variants wanted")
    parser.add_argument("--max-attempts", type=int, default=None, help="leaf evaluation budget")
    parser.add_argument("--seed",         type=int, default=None, help="RNG seed")
    parser.add_argument("--prove", action="store_true",
                        help="when nothing is found, check feasibility with CP-SAT")
    parser.add_argument("--out", default=None, metavar="FILE",
                        help="write result JSON to this path (optional)")
    parser.add_argument("--verbose", "-v", action="store_true", help="debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    # ── 1. load inputs ────────────────────────────────────────────────────────
    try:
        catalog = _load_catalog(args.catalog, args.catalog_text)
        request = _build_request(args)
    except FileNotFoundError as e:
        print(f"[ERROR] File not found: {e.filename}", file=sys.stderr)
        sys.exit(1)
    except (ConfigError, ValueError) as e:
        print(f"[ERROR] Could not load input: {e}", file=sys.stderr)
        sys.exit(1)

    if not request.selected_course_ids:
        request.selected_course_ids = [c.id for c in catalog.courses]

    # ── 2. generate ───────────────────────────────────────────────────────────
    try:
        result = plan_variants(catalog, request)
    except RuleValidationError as e:
        print("[ERROR] Invalid rules:", file=sys.stderr)
        for line in str(e).splitlines():
            print(f"  {line}", file=sys.stderr)
        sys.exit(1)
    except PlanError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        sys.exit(1)

    _print_result(catalog, result)

    # ── 3. optional exact check ───────────────────────────────────────────────
    if not result.variants and args.prove:
        frozen  = resolve_frozen(catalog, request.frozen)
        courses = resolve_courses(catalog, request.selected_course_ids)
        report  = prove_feasibility(courses, request.rules, frozen_picks=frozen,
                                    seed=result.stats.seed)
        print(f"\nFeasibility: {report.status}")
        if report.relaxed_rule_ids:
            print(f"  not encoded: {report.relaxed_rule_ids}")
        for d in report.diagnostics:
            print(f"[DIAG] {d}")

    # ── 4. write output file (optional) ──────────────────────────────────────
    if args.out:
        save_result(result, args.out)
        print(f"\nResult written to: {args.out}")

    sys.exit(0 if result.ok else 2)


if __name__ == "__main__":
    main()
