from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from krs_planner.models import ScheduleVariant

FIXED_SELECTION_CONFLICT = "fixed selection conflict"
NO_COMPATIBLE_SECTIONS   = "no compatible classes with frozen selection"
NO_SECTIONS_OFFERED      = "no classes offered"


@dataclass(frozen=True)
class FailureHit:
    rule_id: str
    hits:    int


@dataclass
class BlockerSubject:
    course_id: str
    name:      Optional[str] = None   # filled in by the caller's catalog lookup
    hits:      Optional[int] = None
    reason:    Optional[str] = None


@dataclass
class GeneratorStats:
    total_recursions: int   = 0
    restarts:         int   = 0
    total_attempts:   int   = 0
    max_attempts:     int   = 0
    seed:             int   = 0
    elapsed_ms:       float = 0.0
    budget_exhausted: bool  = False

    def counters(self) -> Dict[str, Any]:
        """Everything except wall-clock time; equal for equal seeds."""
        d = asdict(self)
        d.pop("elapsed_ms")
        return d


@dataclass
class GeneratorResult:
    variants:         List[ScheduleVariant]          = field(default_factory=list)
    failure_summary:  Optional[List[FailureHit]]     = None
    blocker_subjects: Optional[List[BlockerSubject]] = None
    stats:            GeneratorStats                 = field(default_factory=GeneratorStats)

    @property
    def ok(self) -> bool:
        return bool(self.variants)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "variants": [v.section_ids() for v in self.variants],
            "failure_summary": (
                [asdict(f) for f in self.failure_summary]
                if self.failure_summary is not None else None
            ),
            "blocker_subjects": (
                [asdict(b) for b in self.blocker_subjects]
                if self.blocker_subjects is not None else None
            ),
            "stats": asdict(self.stats),
        }
