"""
Rule validation that runs before the generator is invoked.

The generator assumes well-formed rules; catching a time window whose
earliest start is after its latest end here means the student sees a
field-level message instead of an empty result with no explanation.

validate_rules() never raises. ensure_valid() is the raising wrapper used
by the plan facade and the CLI.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence

from krs_planner.models import (DAYS, CompactDaysRule, MaxDaysPerWeekRule,
    MaxGapRule, MINUTES_PER_DAY, NoDayRule, NoGapsRule, Rule, RULE_TYPES,
    SCOPE_ALL, SCOPE_DAY, TimeWindowRule)


class RuleValidationError(ValueError):
    """Raised by ensure_valid() when any rule is malformed."""


@dataclass(frozen=True)
class ValidationError:
    rule_id: Optional[str]
    path:    str
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _check_range(value: object, low: int, high: int, rule_id: str, path: str,
                 errors: List[ValidationError]) -> None:
    if not _is_int(value) or not low <= value <= high:  # type: ignore[operator]
        errors.append(ValidationError(
            rule_id, path, f"must be an integer between {low} and {high}"))


def _check_days(days: Sequence[str], rule_id: str, path: str,
                errors: List[ValidationError]) -> None:
    for i, day in enumerate(days):
        if day not in DAYS:
            errors.append(ValidationError(rule_id, f"{path}[{i}]", f"invalid day {day!r}"))


def _validate_no_day(rule: NoDayRule, path: str, errors: List[ValidationError]) -> None:
    if not rule.days:
        errors.append(ValidationError(rule.id, f"{path}.days", "days must be a non-empty list"))
    else:
        _check_days(rule.days, rule.id, f"{path}.days", errors)


def _validate_time_window(rule: TimeWindowRule, path: str, errors: List[ValidationError]) -> None:
    if rule.scope not in (SCOPE_ALL, SCOPE_DAY):
        errors.append(ValidationError(
            rule.id, f"{path}.scope", f"scope must be '{SCOPE_ALL}' or '{SCOPE_DAY}'"))
    if rule.scope == SCOPE_DAY:
        if not rule.day:
            errors.append(ValidationError(
                rule.id, f"{path}.day", "day is required when scope is 'day'"))
        elif rule.day not in DAYS:
            errors.append(ValidationError(rule.id, f"{path}.day", f"invalid day {rule.day!r}"))

    if rule.earliest_start_min is not None:
        _check_range(rule.earliest_start_min, 0, MINUTES_PER_DAY, rule.id,
                     f"{path}.earliest_start_min", errors)
    if rule.latest_end_min is not None:
        _check_range(rule.latest_end_min, 0, MINUTES_PER_DAY, rule.id,
                     f"{path}.latest_end_min", errors)
    if (_is_int(rule.earliest_start_min) and _is_int(rule.latest_end_min)
            and rule.earliest_start_min >= rule.latest_end_min):  # type: ignore[operator]
        errors.append(ValidationError(
            rule.id, path, "earliest_start_min must be less than latest_end_min"))


def _validate_no_gaps(rule: NoGapsRule, path: str, errors: List[ValidationError]) -> None:
    if rule.days is not None:
        _check_days(rule.days, rule.id, f"{path}.days", errors)


def _validate_max_gap(rule: MaxGapRule, path: str, errors: List[ValidationError]) -> None:
    _check_range(rule.max_gap_min, 0, MINUTES_PER_DAY, rule.id, f"{path}.max_gap_min", errors)
    if rule.days is not None:
        _check_days(rule.days, rule.id, f"{path}.days", errors)


def _validate_max_days(rule: MaxDaysPerWeekRule, path: str, errors: List[ValidationError]) -> None:
    _check_range(rule.max_days, 1, len(DAYS), rule.id, f"{path}.max_days", errors)


def _validate_compact_days(rule: CompactDaysRule, path: str, errors: List[ValidationError]) -> None:
    _check_range(rule.max_distinct_days, 1, len(DAYS), rule.id,
                 f"{path}.max_distinct_days", errors)


_VALIDATORS: Dict[str, Callable[..., None]] = {
    NoDayRule.type:          _validate_no_day,
    TimeWindowRule.type:     _validate_time_window,
    NoGapsRule.type:         _validate_no_gaps,
    MaxGapRule.type:         _validate_max_gap,
    MaxDaysPerWeekRule.type: _validate_max_days,
    CompactDaysRule.type:    _validate_compact_days,
}

_missing = set(RULE_TYPES) - set(_VALIDATORS)
if _missing:
    raise RuntimeError(f"No validator for rule type(s): {sorted(_missing)}")


def validate_rules(rules: Sequence[Rule]) -> List[ValidationError]:
    """Return field-level errors for `rules`; empty list = all valid."""
    errors: List[ValidationError] = []
    seen:   set = set()

    for i, rule in enumerate(rules):
        path = f"rules[{i}]"
        validator = _VALIDATORS.get(getattr(rule, "type", None))  # type: ignore[arg-type]
        if validator is None:
            errors.append(ValidationError(None, f"{path}.type", "unknown rule type"))
            continue
        if not rule.id:
            errors.append(ValidationError(None, f"{path}.id", "id is required"))
        elif rule.id in seen:
            errors.append(ValidationError(rule.id, f"{path}.id", f"duplicate rule id {rule.id!r}"))
        seen.add(rule.id)
        if not isinstance(rule.enabled, bool):
            errors.append(ValidationError(rule.id, f"{path}.enabled", "enabled must be a boolean"))
        validator(rule, path, errors)

    return errors


def ensure_valid(rules: Sequence[Rule]) -> None:
    errors = validate_rules(rules)
    if errors:
        raise RuleValidationError("\n".join(str(e) for e in errors))
