"""Tests for the randomised backtracking generator."""
from krs_planner.models import (DAYS, Course, GeneratorOptions, MaxDaysPerWeekRule,
    Meeting, NoDayRule, NoGapsRule, Section, TimeWindowRule)
from krs_planner.solver.evaluate import evaluate_rules
from krs_planner.solver.generator import RESTARTS, generate, order_courses
from krs_planner.solver.result import (FIXED_SELECTION_CONFLICT, NO_COMPATIBLE_SECTIONS)
from krs_planner.solver.rng import Lcg


def _sec(sid: str, day: str, start: int, end: int) -> Section:
    return Section(id=sid, label=sid, meetings=(Meeting(day=day, start=start, end=end),))


def _course(cid: str, *sections: Section) -> Course:
    return Course(id=cid, code=cid, name=cid.title(), credits=3, sections=sections)


def _wide_catalog(n_courses: int = 4, n_sections: int = 3) -> list:
    """No two sections of different courses clash: each course owns a time band."""
    courses = []
    for i in range(n_courses):
        start = 420 + 120 * i
        courses.append(_course(
            f"C{i}",
            *(_sec(f"C{i}-{j}", DAYS[j], start, start + 100) for j in range(n_sections)),
        ))
    return courses


def _opts(target: int = 10, max_attempts: int = 1000, seed: int = 42) -> GeneratorOptions:
    return GeneratorOptions(target=target, max_attempts=max_attempts, seed=seed)


# ── scenarios ────────────────────────────────────────────────────────────────

def test_all_combinations_clash_reports_dead_end() -> None:
    algebra = _course("ALG", _sec("A", "Senin", 480, 600), _sec("B", "Senin", 600, 720))
    biology = _course("BIO", _sec("C", "Senin", 540, 660))
    result = generate([algebra, biology], [], _opts())

    assert result.variants == []
    assert result.failure_summary is None
    assert result.blocker_subjects is not None
    assert result.blocker_subjects[0].course_id == "ALG"
    assert result.blocker_subjects[0].hits == RESTARTS
    assert result.stats.total_attempts == 0
    assert result.stats.restarts == RESTARTS
    assert not result.stats.budget_exhausted


def test_single_clash_free_combination_found() -> None:
    algebra = _course("ALG", _sec("A", "Senin", 480, 600), _sec("B2", "Senin", 660, 720))
    biology = _course("BIO", _sec("C", "Senin", 540, 660))
    result = generate([algebra, biology], [], _opts())

    assert len(result.variants) == 1
    assert result.variants[0].section_ids() == {"ALG": "B2", "BIO": "C"}


def test_equal_section_ids_across_courses_clash() -> None:
    algebra = _course("ALG", _sec("A", "Senin", 480, 600))
    biology = _course("BIO", _sec("A", "Senin", 540, 660))
    result = generate([algebra, biology], [], _opts(seed=1))

    assert result.variants == []
    assert result.stats.total_attempts == 0


def test_frozen_course_in_course_list_is_not_a_blocker() -> None:
    fixed = _sec("F-1", "Senin", 480, 560)
    frozen_course = _course("F", fixed, _sec("F-2", "Senin", 500, 600))
    blocked = _course("LAB", _sec("L1", "Senin", 500, 540))
    result = generate([frozen_course, blocked], [], _opts(), frozen_picks={"F": fixed})

    assert result.variants == []
    assert [(b.course_id, b.reason) for b in result.blocker_subjects or []][0] == (
        "LAB", NO_COMPATIBLE_SECTIONS)
    assert "F" not in {b.course_id for b in result.blocker_subjects or []}


def test_banned_day_counts_every_leaf() -> None:
    saturday = _course("SAT", _sec("S1", "Sabtu", 480, 600))
    rule = NoDayRule(id="no-sabtu", days=("Sabtu",))
    result = generate([saturday], [rule], _opts(max_attempts=100))

    assert result.variants == []
    assert result.failure_summary is not None
    assert result.failure_summary[0].rule_id == "no-sabtu"
    assert result.failure_summary[0].hits == result.stats.total_attempts
    assert result.stats.total_attempts > 0


def test_frozen_conflict_aborts_without_search() -> None:
    frozen = {
        "ALG": _sec("A", "Senin", 480, 600),
        "BIO": _sec("C", "Senin", 540, 660),
    }
    result = generate(_wide_catalog(), [], _opts(), frozen_picks=frozen)

    assert result.variants == []
    assert [b.course_id for b in result.blocker_subjects or []] == ["ALG", "BIO"]
    assert all(b.reason == FIXED_SELECTION_CONFLICT for b in result.blocker_subjects or [])
    assert result.stats.total_recursions == 0
    assert result.stats.restarts == 0


# ── degenerate inputs ────────────────────────────────────────────────────────

def test_all_frozen_returns_frozen_map() -> None:
    courses = _wide_catalog(2)
    frozen  = {c.id: c.sections[1] for c in courses}
    result  = generate(courses, [], _opts(), frozen_picks=frozen)

    assert len(result.variants) == 1
    assert result.variants[0].picks == frozen
    assert result.stats.restarts == 0


def test_all_frozen_still_checked_against_rules() -> None:
    courses = _wide_catalog(2)
    frozen  = {c.id: c.sections[0] for c in courses}      # both on Senin
    result  = generate([], [NoDayRule(id="free-senin", days=("Senin",))], _opts(),
                       frozen_picks=frozen)
    assert result.variants == []
    assert result.failure_summary is not None
    assert result.failure_summary[0].rule_id == "free-senin"


def test_nothing_to_schedule() -> None:
    result = generate([], [], _opts())
    assert result.variants == []
    assert result.failure_summary is None
    assert result.blocker_subjects is None


def test_zero_target_performs_no_search() -> None:
    result = generate(_wide_catalog(), [], _opts(target=0))
    assert result.variants == []
    assert result.stats.total_recursions == 0
    assert result.stats.total_attempts == 0


# ── properties ───────────────────────────────────────────────────────────────

def test_determinism_for_equal_seed() -> None:
    rules = [MaxDaysPerWeekRule(id="days", max_days=2)]
    r1 = generate(_wide_catalog(5), rules, _opts(target=8, seed=1234))
    r2 = generate(_wide_catalog(5), rules, _opts(target=8, seed=1234))

    assert [v.key() for v in r1.variants] == [v.key() for v in r2.variants]
    assert r1.stats.counters() == r2.stats.counters()


def test_seed_reported_in_stats() -> None:
    result = generate(_wide_catalog(), [], _opts(seed=99))
    assert result.stats.seed == 99
    unseeded = generate(_wide_catalog(), [], GeneratorOptions(target=1, seed=None))
    assert isinstance(unseeded.stats.seed, int)


def test_variants_are_distinct() -> None:
    result = generate(_wide_catalog(), [], _opts(target=40))
    keys = [v.key() for v in result.variants]
    assert len(keys) == len(set(keys))
    assert len(result.variants) == 40


def test_frozen_picks_preserved_and_rules_hold() -> None:
    courses = _wide_catalog(4)
    frozen  = {"F": _sec("F-1", "Minggu", 420, 520)}
    rules   = [NoDayRule(id="no-senin", days=("Senin",)),
               TimeWindowRule(id="window", earliest_start_min=420, latest_end_min=900)]
    result  = generate(courses, rules, _opts(target=20), frozen_picks=frozen)

    assert result.variants
    for variant in result.variants:
        assert variant.picks["F"] == frozen["F"]
        assert set(variant.picks) == {"F", "C0", "C1", "C2", "C3"}
        assert evaluate_rules(rules, variant).ok
        assert all(s.meetings[0].day != "Senin" for s in variant.picks.values())


def test_stops_at_target() -> None:
    result = generate(_wide_catalog(), [], _opts(target=2))
    assert len(result.variants) == 2
    assert not result.stats.budget_exhausted


def test_budget_is_split_across_restarts() -> None:
    # ceil(50 / 25) = 2 leaves per restart, 81 valid combinations available
    result = generate(_wide_catalog(), [], _opts(target=1000, max_attempts=50))
    assert result.stats.total_attempts == 50
    assert result.stats.restarts == RESTARTS
    assert result.stats.budget_exhausted


def test_small_budget_ends_early() -> None:
    result = generate(_wide_catalog(), [], _opts(target=1000, max_attempts=5))
    assert result.stats.total_attempts == 5
    assert result.stats.restarts == 5
    assert result.stats.budget_exhausted


def test_course_incompatible_with_frozen_listed_first() -> None:
    blocked = _course("LAB", _sec("L1", "Minggu", 420, 520))
    frozen  = {"F": _sec("F-1", "Minggu", 480, 560)}
    result  = generate([blocked] + _wide_catalog(2), [], _opts(), frozen_picks=frozen)

    assert result.variants == []
    assert result.blocker_subjects is not None
    assert result.blocker_subjects[0].course_id == "LAB"
    assert result.blocker_subjects[0].reason == NO_COMPATIBLE_SECTIONS
    assert len({b.course_id for b in result.blocker_subjects}) == len(result.blocker_subjects)


def test_failure_summary_keeps_top_three() -> None:
    rules = [
        NoDayRule(id="a", days=DAYS),
        MaxDaysPerWeekRule(id="b", max_days=1),
        NoGapsRule(id="c"),
        TimeWindowRule(id="d", latest_end_min=400),
    ]
    result = generate(_wide_catalog(2, 1), rules, _opts(max_attempts=50))
    assert result.variants == []
    assert result.failure_summary is not None
    assert len(result.failure_summary) == 3
    hits = [f.hits for f in result.failure_summary]
    assert hits == sorted(hits, reverse=True)


def test_order_courses_most_constrained_first() -> None:
    courses = [
        _course("BIG", *(_sec(f"b{j}", "Senin", 60 * j, 60 * j + 30) for j in range(4))),
        _course("ONE", _sec("o", "Rabu", 0, 60)),
        _course("TWO", _sec("t1", "Rabu", 60, 120), _sec("t2", "Kamis", 0, 60)),
    ]
    assert [c.id for c in order_courses(courses, Lcg(7))] == ["ONE", "TWO", "BIG"]


def test_lcg_sequence_and_shuffle() -> None:
    assert Lcg(0).advance() == 1013904223
    assert Lcg(2 ** 32).state == 0
    items = list(range(10))
    shuffled = Lcg(5).shuffle(items)
    assert sorted(shuffled) == items
    assert shuffled == Lcg(5).shuffle(items)
    assert items == list(range(10))
