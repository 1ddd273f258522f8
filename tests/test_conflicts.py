"""Tests for the half-open interval conflict model."""
from itertools import product

from krs_planner.models import Meeting, Section
from krs_planner.solver.conflicts import meetings_overlap, sections_conflict


def _sec(sid: str, *meetings: tuple) -> Section:
    return Section(id=sid, label=sid,
                   meetings=tuple(Meeting(day=d, start=s, end=e) for d, s, e in meetings))


A = _sec("A", ("Senin", 480, 600))     # 08:00-10:00
B = _sec("B", ("Senin", 600, 720))     # 10:00-12:00
C = _sec("C", ("Senin", 540, 660))     # 09:00-11:00
D = _sec("D", ("Selasa", 480, 600))
E = _sec("E", ("Rabu", 420, 500), ("Senin", 700, 800))


def test_overlap_same_day() -> None:
    assert sections_conflict(A, C)
    assert sections_conflict(B, C)


def test_touching_boundary_is_not_a_conflict() -> None:
    assert not sections_conflict(A, B)
    assert not meetings_overlap(A.meetings[0], B.meetings[0])


def test_different_days_never_conflict() -> None:
    assert not sections_conflict(A, D)


def test_any_meeting_pair_counts() -> None:
    # E's Senin meeting 11:40-13:20 overlaps B 10:00-12:00
    assert sections_conflict(E, B)
    assert not sections_conflict(E, A)


def test_symmetry() -> None:
    for a, b in product([A, B, C, D, E], repeat=2):
        assert sections_conflict(a, b) == sections_conflict(b, a)


def test_section_never_conflicts_with_itself() -> None:
    for s in (A, B, C, D, E):
        assert not sections_conflict(s, s)


def test_section_without_meetings() -> None:
    assert not sections_conflict(_sec("X"), A)


def test_equal_ids_in_different_courses_still_compared() -> None:
    # section labels like "A" repeat across courses
    algebra_a = _sec("A", ("Senin", 480, 600))
    biology_a = _sec("A", ("Senin", 540, 660))
    assert sections_conflict(algebra_a, biology_a)
    assert sections_conflict(biology_a, algebra_a)
