"""
Importer for the faculty's pasted schedule table ("jadwal master").

Rows come in two historical layouts:

  A: PRODI  CODE  NAME  SKS    CLASS  CAP  DAY HH:MM-HH:MM  ROOM
  B: PRODI  CODE  NAME  CLASS  SKS    CAP  DAY HH:MM-HH:MM  ROOM

Columns are normally separated by tabs or runs of spaces. Some exports
collapse everything to single spaces; for those rows (which start with
the programme name) the class token "SI-..." is located to split the
course name from the remaining columns.

Any non-row line after a row is a lecturer of the last section seen.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from krs_planner.models import Course, Meeting, Section, to_minutes

PROGRAMME = "SISTEM INFORMASI"

_COLUMN_SPLIT = re.compile(r"\t|\s{2,}")
_CLASS_TOKEN  = re.compile(r"^SI-[A-Z0-9]+$")
_NUMERIC      = re.compile(r"^\d+$")
_LEADING_INT  = re.compile(r"^\s*\d+")


@dataclass
class ImportStats:
    format_a:       int = 0
    format_b:       int = 0
    unknown:        int = 0
    lecturer_lines: int = 0
    bad_times:      int = 0


@dataclass
class ImportResult:
    courses: List[Course] = field(default_factory=list)
    stats:   ImportStats  = field(default_factory=ImportStats)


@dataclass
class _Row:
    code:     str
    name:     str
    sks:      int
    klass:    str
    capacity: Optional[int]
    schedule: str
    room:     str


@dataclass
class _SectionDraft:
    id:        str
    label:     str
    capacity:  Optional[int]
    meetings:  List[Meeting] = field(default_factory=list)
    lecturers: List[str]     = field(default_factory=list)


@dataclass
class _CourseDraft:
    id:       str
    code:     str
    name:     str
    sks:      int
    sections: Dict[str, _SectionDraft] = field(default_factory=dict)


def _leading_int(text: str) -> Optional[int]:
    m = _LEADING_INT.match(text or "")
    return int(m.group()) if m else None


def _col(columns: List[str], i: int) -> str:
    return columns[i].strip() if i < len(columns) else ""


def _split_single_spaced(line: str) -> Optional[List[str]]:
    parts = line.split()
    if len(parts) < 9:
        return None
    class_idx = next(
        (j for j in range(3, len(parts)) if _CLASS_TOKEN.match(parts[j])), None)
    if class_idx is None or class_idx + 5 >= len(parts):
        return None
    return [
        PROGRAMME,
        parts[2],
        " ".join(parts[3:class_idx]),
        parts[class_idx],
        parts[class_idx + 1],
        parts[class_idx + 2],
        f"{parts[class_idx + 3]} {parts[class_idx + 4]}",
        parts[class_idx + 5],
    ]


def _classify(columns: List[str], stats: ImportStats) -> Optional[_Row]:
    col3 = _col(columns, 3)
    col4 = _col(columns, 4)

    if _leading_int(col3) is not None:
        stats.format_a += 1
        return _Row(_col(columns, 1), _col(columns, 2), _leading_int(col3) or 0,
                    col4, None, _col(columns, 6), _col(columns, 7))
    if _leading_int(col4) is not None and _CLASS_TOKEN.match(col3):
        stats.format_b += 1
        return _Row(_col(columns, 1), _col(columns, 2), _leading_int(col4) or 0,
                    col3, _leading_int(_col(columns, 5)) or None,
                    _col(columns, 6), _col(columns, 7))
    if _NUMERIC.match(_col(columns, 1)):
        # looks like a course code; best guess is layout A
        stats.unknown += 1
        return _Row(_col(columns, 1), _col(columns, 2), _leading_int(col3) or 0,
                    col4, None, _col(columns, 6), _col(columns, 7))
    return None


def _meeting(schedule: str, room: str) -> Optional[Meeting]:
    """None when the time range is not a clock value (e.g. "Senin TBA")."""
    day, _, time_range = schedule.partition(" ")
    start, _, end = time_range.strip().partition("-")
    try:
        return Meeting(day=day, start=to_minutes(start), end=to_minutes(end), room=room)
    except ValueError:
        return None


def parse_master_text(text: str) -> ImportResult:
    stats   = ImportStats()
    courses: Dict[str, _CourseDraft] = {}
    current: Optional[_SectionDraft] = None

    for line in (ln.strip() for ln in text.splitlines()):
        if not line:
            continue

        columns = _COLUMN_SPLIT.split(line)
        if len(columns) < 7 and line.startswith(PROGRAMME):
            columns = _split_single_spaced(line) or columns

        row = _classify(columns, stats) if len(columns) >= 7 else None
        if row is not None and row.code and row.name:
            course_id = f"{row.code}-{row.name}"
            course = courses.setdefault(
                course_id, _CourseDraft(course_id, row.code, row.name, row.sks))
            section_id = f"{course_id}-{row.klass}"
            section = course.sections.setdefault(
                section_id, _SectionDraft(section_id, row.klass, row.capacity))
            meeting = _meeting(row.schedule, row.room)
            if meeting is None:
                stats.bad_times += 1
            else:
                section.meetings.append(meeting)
            current = section
            continue

        if current is not None:
            stats.lecturer_lines += 1
            if line not in current.lecturers and not line.startswith(PROGRAMME):
                current.lecturers.append(line)

    return ImportResult(
        courses=[
            Course(
                id=c.id, code=c.code, name=c.name, credits=c.sks,
                sections=tuple(
                    Section(id=s.id, label=s.label, meetings=tuple(s.meetings),
                            lecturers=tuple(s.lecturers), capacity=s.capacity)
                    for s in c.sections.values()
                ),
            )
            for c in courses.values()
        ],
        stats=stats,
    )
