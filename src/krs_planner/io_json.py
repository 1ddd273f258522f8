"""
JSON serialisation / deserialisation for catalogs, rules, plans and results.

Uses only the Python standard-library json module. Structural validation is
applied before domain objects are built so that a malformed file produces a
ConfigError naming the offending path rather than a KeyError deep in the
search.

Reference: Python docs, json
https://docs.python.org/3/library/json.html
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from krs_planner.models import (Catalog, Course, GeneratorOptions, Meeting,
    PlanRequest, Rule, RULE_TYPES, SCOPE_ALL, SCOPE_DAY, Section, to_clock, to_minutes)
from krs_planner.solver.result import GeneratorResult


class ConfigError(ValueError):
    """Raised when an input JSON file is structurally invalid."""


# Older exports spelled the time-window scopes differently.
_SCOPE_ALIASES = {
    "all": SCOPE_ALL, "allDays": SCOPE_ALL,
    "day": SCOPE_DAY, "singleDay": SCOPE_DAY,
}


def _require(obj: Dict[str, Any], key: str, ctx: str) -> Any:
    if key not in obj:
        raise ConfigError(f"Missing required key '{key}' in {ctx}")
    return obj[key]


def _as_list(obj: Any, ctx: str) -> List[Any]:
    if not isinstance(obj, list):
        raise ConfigError(f"Expected a JSON array in {ctx}, got {type(obj).__name__}")
    return obj


def _as_dict(obj: Any, ctx: str) -> Dict[str, Any]:
    if not isinstance(obj, dict):
        raise ConfigError(
            f"Expected a JSON object in {ctx}, got {type(obj).__name__}"
        )
    return obj


def _minutes(value: Any, ctx: str) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    try:
        return to_minutes(str(value))
    except ValueError:
        raise ConfigError(f"Bad time {value!r} in {ctx}") from None


def _check_unique_ids(items: list, ctx: str) -> None:
    seen: set = set()
    dupes: set = set()
    for item in items:
        item_id = getattr(item, "id", None)
        if not item_id:
            raise ConfigError(f"Empty or missing 'id' in {ctx}")
        if item_id in seen:
            dupes.add(item_id)
        seen.add(item_id)
    if dupes:
        raise ConfigError(f"Duplicate ids in {ctx}: {sorted(dupes)}")


def _read_json(path: str | Path) -> Any:
    with Path(path).open("r", encoding="utf-8") as f:
        return json.load(f)


def _write_json(data: Any, path: str | Path) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with p.open("w", encoding="utf-8") as f:
        # ensure_ascii=False keeps Indonesian course names readable.
        json.dump(data, f, ensure_ascii=False, indent=2)


# ── catalog ──────────────────────────────────────────────────────────────────

def meeting_from_dict(raw: Any, ctx: str) -> Meeting:
    m = _as_dict(raw, ctx)
    return Meeting(
        day   = str(_require(m, "day", ctx)),
        start = _minutes(_require(m, "start", ctx), f"{ctx}.start"),
        end   = _minutes(_require(m, "end",   ctx), f"{ctx}.end"),
        room  = str(m.get("room", "")),
    )


def section_from_dict(raw: Any, ctx: str) -> Section:
    s = _as_dict(raw, ctx)
    capacity = s.get("capacity")
    return Section(
        id        = str(_require(s, "id", ctx)),
        label     = str(s.get("label", s["id"])),
        meetings  = tuple(
            meeting_from_dict(m, f"{ctx}.meetings[{i}]")
            for i, m in enumerate(_as_list(s.get("meetings", []), f"{ctx}.meetings"))
        ),
        lecturers = tuple(str(x) for x in s.get("lecturers", [])),
        capacity  = int(capacity) if capacity is not None else None,
    )


def course_from_dict(raw: Any, ctx: str) -> Course:
    c = _as_dict(raw, ctx)
    sections = tuple(
        section_from_dict(s, f"{ctx}.sections[{i}]")
        for i, s in enumerate(_as_list(_require(c, "sections", ctx), f"{ctx}.sections"))
    )
    if not sections:
        raise ConfigError(f"Course in {ctx} has no sections")
    _check_unique_ids(list(sections), f"{ctx}.sections")
    return Course(
        id       = str(_require(c, "id", ctx)),
        code     = str(c.get("code", "")),
        name     = str(c.get("name", c["id"])),
        credits  = int(c.get("credits", 0)),
        sections = sections,
    )


def catalog_from_dict(raw: Any) -> Catalog:
    raw  = _as_dict(raw, "root")
    meta = _as_dict(raw.get("meta") or {}, "meta")
    courses = [
        course_from_dict(c, f"courses[{i}]")
        for i, c in enumerate(_as_list(_require(raw, "courses", "root"), "courses"))
    ]
    _check_unique_ids(courses, "courses")
    return Catalog(courses=courses, meta=meta)


def catalog_to_dict(catalog: Catalog) -> Dict[str, Any]:
    return {
        "meta": catalog.meta,
        "courses": [
            {
                "id": c.id, "code": c.code, "name": c.name, "credits": c.credits,
                "sections": [
                    {
                        "id": s.id, "label": s.label, "capacity": s.capacity,
                        "lecturers": list(s.lecturers),
                        "meetings": [
                            {"day": m.day, "start": to_clock(m.start),
                             "end": to_clock(m.end), "room": m.room}
                            for m in s.meetings
                        ],
                    }
                    for s in c.sections
                ],
            }
            for c in catalog.courses
        ],
    }


def load_catalog(path: str | Path) -> Catalog:
    """Load and validate a Catalog from a JSON file."""
    return catalog_from_dict(_read_json(path))


def save_catalog(catalog: Catalog, path: str | Path) -> None:
    _write_json(catalog_to_dict(catalog), path)


# ── rules ────────────────────────────────────────────────────────────────────

def _days(value: Any, ctx: str) -> Optional[Tuple[str, ...]]:
    if value is None:
        return None
    return tuple(str(d) for d in _as_list(value, ctx))


def rule_from_dict(raw: Any, ctx: str = "rule") -> Rule:
    r = _as_dict(raw, ctx)
    rtype = _require(r, "type", ctx)
    cls = RULE_TYPES.get(rtype)
    if cls is None:
        raise ConfigError(f"Unknown rule type {rtype!r} in {ctx}")

    common = {
        "id":      str(_require(r, "id", ctx)),
        "enabled": r.get("enabled", True),
        "label":   r.get("label"),
    }
    if rtype == "noDay":
        return cls(days=_days(_require(r, "days", ctx), f"{ctx}.days"), **common)
    if rtype == "timeWindow":
        scope = r.get("scope", SCOPE_ALL)
        return cls(
            scope              = _SCOPE_ALIASES.get(scope, scope),
            day                = r.get("day"),
            earliest_start_min = r.get("earliest_start_min"),
            latest_end_min     = r.get("latest_end_min"),
            **common,
        )
    if rtype == "noGaps":
        return cls(days=_days(r.get("days"), f"{ctx}.days"), **common)
    if rtype == "maxGap":
        return cls(max_gap_min=_require(r, "max_gap_min", ctx),
                   days=_days(r.get("days"), f"{ctx}.days"), **common)
    if rtype == "maxDaysPerWeek":
        return cls(max_days=_require(r, "max_days", ctx), **common)
    return cls(max_distinct_days=_require(r, "max_distinct_days", ctx), **common)


def rule_to_dict(rule: Rule) -> Dict[str, Any]:
    d: Dict[str, Any] = {"type": rule.type}
    for name, value in vars(rule).items():
        d[name] = list(value) if isinstance(value, tuple) else value
    return d


def rules_from_list(raw: Any, ctx: str = "rules") -> List[Rule]:
    return [rule_from_dict(r, f"{ctx}[{i}]") for i, r in enumerate(_as_list(raw, ctx))]


def load_rules(path: str | Path) -> List[Rule]:
    """Rules file: a JSON array, or an object with a "rules" array."""
    raw = _read_json(path)
    if isinstance(raw, dict):
        raw = _require(raw, "rules", "root")
    return rules_from_list(raw)


# ── plan / result ────────────────────────────────────────────────────────────

def load_plan(path: str | Path) -> PlanRequest:
    raw     = _as_dict(_read_json(path), "root")
    frozen  = _as_dict(raw.get("frozen") or {}, "frozen")
    options = _as_dict(raw.get("options") or {}, "options")
    seed    = options.get("seed")
    return PlanRequest(
        selected_course_ids = [str(x) for x in _as_list(_require(raw, "selected", "root"), "selected")],
        frozen              = {str(k): str(v) for k, v in frozen.items()},
        rules               = rules_from_list(raw.get("rules") or []),
        options             = GeneratorOptions(
            target       = int(options.get("target", 10)),
            max_attempts = int(options.get("max_attempts", 1000)),
            seed         = int(seed) if seed is not None else None,
        ),
    )


def save_result(result: GeneratorResult, path: str | Path) -> None:
    _write_json(result.to_dict(), path)
