"""
Data model layer for the study-plan (KRS) section planner.

Every domain object is a plain Python dataclass. Catalog objects (Meeting,
Section, Course) and rules are frozen: the search engine treats them as
read-only values and relies on them being hashable.

Design note, course/section identity:
  A Section belongs to exactly one Course. Section ids produced by the
  importers embed the course id, so they are unique across a catalog,
  but the engine only ever compares them within a (course id, section)
  pair and never merges two courses.

Times are stored as minute-of-day integers (0..1440). The JSON and text
layers convert from "HH:MM" with to_minutes().
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, List, Optional, Tuple, Type, Union

DAYS: Tuple[str, ...] = ("Senin", "Selasa", "Rabu", "Kamis", "Jumat", "Sabtu", "Minggu")

MINUTES_PER_DAY = 1440

SCOPE_ALL = "all"
SCOPE_DAY = "day"


def to_minutes(clock: str) -> int:
    """Convert "HH:MM" (or a bare "H") to minute-of-day.

    Blank input maps to 0, mirroring the importer's "00:00" fallback.
    Raises ValueError for non-numeric parts.
    """
    clock = (clock or "").strip()
    if not clock:
        return 0
    hours, _, minutes = clock.partition(":")
    return int(hours.strip()) * 60 + int(minutes.strip() or 0)


def to_clock(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


@dataclass(frozen=True)
class Meeting:
    """One weekly meeting, e.g. Senin 07:00-09:30 in room Patt.III-1A."""
    day:   str
    start: int   # minute of day
    end:   int   # minute of day
    room:  str = ""

    def describe(self) -> str:
        return f"{self.day} {to_clock(self.start)}-{to_clock(self.end)}"


@dataclass(frozen=True)
class Section:
    id:        str
    label:     str
    meetings:  Tuple[Meeting, ...] = ()
    lecturers: Tuple[str, ...]     = ()
    capacity:  Optional[int]       = None


@dataclass(frozen=True)
class Course:
    id:       str
    code:     str
    name:     str
    credits:  int                  = 0
    sections: Tuple[Section, ...]  = ()

    def get_section(self, section_id: str) -> Optional[Section]:
        return next((s for s in self.sections if s.id == section_id), None)


# ── rules ────────────────────────────────────────────────────────────────────
#
# One dataclass per rule kind; `type` is the tag used in JSON and in the
# evaluator/validator dispatch tables. Optional fields left as None mean
# "not set" (e.g. a time window with only a latest end).

@dataclass(frozen=True)
class NoDayRule:
    type: ClassVar[str] = "noDay"
    id:      str
    days:    Tuple[str, ...] = ()
    enabled: bool            = True
    label:   Optional[str]   = None


@dataclass(frozen=True)
class TimeWindowRule:
    type: ClassVar[str] = "timeWindow"
    id:                 str
    scope:              str           = SCOPE_ALL
    day:                Optional[str] = None
    earliest_start_min: Optional[int] = None
    latest_end_min:     Optional[int] = None
    enabled:            bool          = True
    label:              Optional[str] = None


@dataclass(frozen=True)
class NoGapsRule:
    type: ClassVar[str] = "noGaps"
    id:      str
    days:    Optional[Tuple[str, ...]] = None   # None = all days
    enabled: bool                      = True
    label:   Optional[str]             = None


@dataclass(frozen=True)
class MaxGapRule:
    type: ClassVar[str] = "maxGap"
    id:          str
    max_gap_min: int                       = 0
    days:        Optional[Tuple[str, ...]] = None
    enabled:     bool                      = True
    label:       Optional[str]             = None


@dataclass(frozen=True)
class MaxDaysPerWeekRule:
    type: ClassVar[str] = "maxDaysPerWeek"
    id:       str
    max_days: int           = 7
    enabled:  bool          = True
    label:    Optional[str] = None


@dataclass(frozen=True)
class CompactDaysRule:
    type: ClassVar[str] = "compactDays"
    id:                str
    max_distinct_days: int           = 7
    enabled:           bool          = True
    label:             Optional[str] = None


Rule = Union[
    NoDayRule,
    TimeWindowRule,
    NoGapsRule,
    MaxGapRule,
    MaxDaysPerWeekRule,
    CompactDaysRule,
]

RULE_TYPES: Dict[str, Type[Any]] = {
    cls.type: cls
    for cls in (NoDayRule, TimeWindowRule, NoGapsRule, MaxGapRule,
                MaxDaysPerWeekRule, CompactDaysRule)
}


# ── search values ────────────────────────────────────────────────────────────

@dataclass
class ScheduleVariant:
    """A complete course id -> Section assignment."""
    picks: Dict[str, Section] = field(default_factory=dict)

    def key(self) -> str:
        return "|".join(
            f"{course_id}:{section.id}"
            for course_id, section in sorted(self.picks.items())
        )

    def section_ids(self) -> Dict[str, str]:
        return {course_id: section.id for course_id, section in self.picks.items()}


@dataclass(frozen=True)
class TimeBlock:
    start_min: int
    end_min:   int


@dataclass
class RuleContext:
    by_day:        Dict[str, List[TimeBlock]]
    distinct_days: int = 0


@dataclass
class GeneratorOptions:
    target:       int           = 10
    max_attempts: int           = 1000
    # None = derive from the wall clock; the effective value is in stats.
    seed:         Optional[int] = None


@dataclass
class PlanRequest:
    """What the caller wants generated: which courses, which are fixed."""
    selected_course_ids: List[str]      = field(default_factory=list)
    frozen:              Dict[str, str] = field(default_factory=dict)  # course id -> section id
    rules:               List[Rule]     = field(default_factory=list)
    options:             GeneratorOptions = field(default_factory=GeneratorOptions)


@dataclass
class Catalog:
    courses: List[Course]    = field(default_factory=list)
    meta:    Dict[str, Any]  = field(default_factory=dict)

    def get_course(self, course_id: str) -> Optional[Course]:
        return next((c for c in self.courses if c.id == course_id), None)

    def get_section(self, course_id: str, section_id: str) -> Optional[Section]:
        course = self.get_course(course_id)
        return course.get_section(section_id) if course else None

    def course_name(self, course_id: str) -> str:
        course = self.get_course(course_id)
        return course.name if course else course_id
