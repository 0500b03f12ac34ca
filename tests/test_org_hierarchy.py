import random

import pytest

from app.services.org_hierarchy import OrgHierarchyResolver, parse_grade


@pytest.fixture
def resolver(db_session, first_choice):
    return OrgHierarchyResolver(db_session, rng=first_choice)


def numbers(employees):
    return sorted(e.employee_number for e in employees)


def test_parse_grade():
    assert parse_grade("07") == 7
    assert parse_grade(" 41 ") == 41
    assert parse_grade("G7") is None
    assert parse_grade(None) is None


# --- Subject validation ---

def test_blank_or_unknown_subject_has_no_counterparts(resolver, make_employee):
    make_employee("E1", "07")
    make_employee("E2", "08")
    assert resolver.select_subordinate("") is None
    assert resolver.select_peer("   ") is None
    assert resolver.select_superior("NOPE") is None


def test_subject_without_grade_has_no_counterparts(resolver, make_employee):
    make_employee("E1", "")
    make_employee("E2", "08")
    assert resolver.select_subordinate("E1") is None


def test_subject_with_malformed_grade_has_no_counterparts(resolver, make_employee):
    make_employee("E1", "G7")
    make_employee("E2", "08")
    make_employee("E3", "G7")
    assert resolver.eligible_subordinates("E1") == []
    assert resolver.eligible_peers("E1") == []
    assert resolver.eligible_superiors("E1") == []


def test_inactive_staff_are_invisible(resolver, make_employee):
    make_employee("E1", "07")
    make_employee("E2", "08", person_type_id=1200)
    assert resolver.select_subordinate("E1") is None


# --- Subordinates ---

def test_subordinates_have_higher_grade_number_in_same_office(resolver, make_employee):
    make_employee("E1", "06")
    make_employee("E2", "08")
    make_employee("E3", "06")
    make_employee("E4", "04")
    assert numbers(resolver.eligible_subordinates("E1")) == ["E2"]


def test_subordinates_exclude_office_head_pm_grade_and_malformed_grades(resolver, make_employee):
    make_employee("E1", "06", head_of_office_id="E2")
    make_employee("E2", "08")
    make_employee("E3", "41")
    make_employee("E4", "XX")
    make_employee("E5", "09")
    assert numbers(resolver.eligible_subordinates("E1")) == ["E5"]


def test_subordinate_fallback_stops_at_division(resolver, make_employee):
    make_employee("E1", "06", office_id=1, division_id=10, department_id=100)
    # Only reachable through the division
    make_employee("DIV", "08", office_id=2, division_id=10, department_id=200)
    # Only reachable through the department
    make_employee("DEP", "08", office_id=3, division_id=11, department_id=100)
    assert numbers(resolver.eligible_subordinates("E1")) == ["DIV"]


def test_subordinate_fallback_reaches_department(resolver, make_employee):
    make_employee("E1", "06", office_id=1, division_id=10, department_id=100)
    make_employee("DEP", "08", office_id=3, division_id=11, department_id=100)
    assert numbers(resolver.eligible_subordinates("E1")) == ["DEP"]


def test_subordinate_levels_without_unit_are_skipped(resolver, make_employee):
    make_employee("E1", "06", division_id=None, department_id=None, office_id=5)
    make_employee("E2", "08", office_id=6, division_id=None, department_id=None)
    assert resolver.eligible_subordinates("E1") == []


def test_pm_subject_only_sees_subordinates_above_grade_four(resolver, make_employee):
    make_employee("PM", "41")
    make_employee("E2", "45")
    make_employee("E3", "41")
    make_employee("E4", "03")
    assert numbers(resolver.eligible_subordinates("PM")) == ["E2"]


def test_governor_subordinates_are_department_heads_reporting_to_them(resolver, make_employee):
    make_employee("GOV", "01", job_name="DEPUTY GOVERNOR")
    make_employee("D1", "41", job_name="Director", head_of_dept_id="D1", supervisor_id="GOV")
    make_employee("D2", "02", job_name="Director", head_of_dept_id="D2", head_of_office_id="GOV")
    make_employee("D3", "02", job_name="Director", head_of_dept_id="D3", supervisor_id="OTHER")
    make_employee("D4", "02", job_name="Director", head_of_dept_id="SOMEONE", supervisor_id="GOV")
    make_employee("GOV2", "01", job_name="GOVERNOR", head_of_dept_id="GOV2", supervisor_id="GOV")
    assert numbers(resolver.eligible_subordinates("GOV")) == ["D1", "D2"]


# --- Peers ---

def test_peers_share_grade_and_skip_office_head_and_pm(resolver, make_employee):
    make_employee("E1", "07", head_of_office_id="E2")
    make_employee("E2", "07")
    make_employee("E3", "07")
    make_employee("E4", "08")
    make_employee("E5", "41")
    assert numbers(resolver.eligible_peers("E1")) == ["E3"]


def test_pm_subject_has_no_pm_peers(resolver, make_employee):
    make_employee("PM1", "41")
    make_employee("PM2", "41")
    assert resolver.eligible_peers("PM1") == []


def test_peer_fallback_uses_division_when_office_is_empty(resolver, make_employee):
    make_employee("E1", "07", office_id=1)
    make_employee("E2", "07", office_id=2, division_id=10, department_id=300)
    make_employee("E3", "07", office_id=3, division_id=12, department_id=100)
    assert numbers(resolver.eligible_peers("E1")) == ["E2"]


def test_governor_peers_are_other_governors(resolver, make_employee):
    make_employee("GOV1", "01", job_name="GOVERNOR")
    make_employee("GOV2", "02", job_name="Deputy Governor", office_id=9)
    make_employee("E3", "01", job_name="Director")
    assert numbers(resolver.eligible_peers("GOV1")) == ["GOV2"]


# --- Superiors ---

def test_superiors_exclude_supervisor_and_office_head(resolver, make_employee):
    make_employee("E1", "07", supervisor_id="SUP", head_of_office_id="HOO")
    make_employee("SUP", "05")
    make_employee("HOO", "03")
    make_employee("SEN", "04")
    make_employee("JUN", "08")
    assert numbers(resolver.eligible_superiors("E1")) == ["SEN"]


def test_superiors_skip_pm_outside_department_level(resolver, make_employee):
    make_employee("E1", "07", office_id=1, division_id=10, department_id=100)
    make_employee("PM", "41", office_id=1, division_id=10, department_id=100)
    make_employee("SEN", "04", office_id=1, division_id=10, department_id=100)
    assert numbers(resolver.eligible_superiors("E1")) == ["SEN"]


def test_department_level_accepts_pm_as_superior(resolver, make_employee):
    make_employee("E1", "07", office_id=1, division_id=10, department_id=100)
    make_employee("PM", "41", office_id=2, division_id=11, department_id=100)
    assert numbers(resolver.eligible_superiors("E1")) == ["PM"]


def test_pm_subject_only_sees_superiors_below_grade_four(resolver, make_employee):
    make_employee("PM", "41")
    make_employee("E2", "03")
    make_employee("E3", "05")
    assert numbers(resolver.eligible_superiors("PM")) == ["E2"]


def test_pm_subject_superior_search_moves_on_when_office_has_no_senior_grade(resolver, make_employee):
    make_employee("PM", "41", office_id=1, division_id=10)
    make_employee("E5", "05", office_id=1, division_id=10)
    make_employee("E3", "03", office_id=2, division_id=10)
    assert numbers(resolver.eligible_superiors("PM")) == ["E3"]


def test_pm_subject_subordinate_search_moves_on_when_office_has_none(resolver, make_employee):
    make_employee("PM", "41", office_id=1, division_id=10)
    make_employee("E4", "03", office_id=1, division_id=10)
    make_employee("E6", "45", office_id=2, division_id=10)
    assert numbers(resolver.eligible_subordinates("PM")) == ["E6"]


# --- Random selection ---

def test_selection_draws_from_eligible_set_with_injected_source(resolver, first_choice, make_employee):
    make_employee("E1", "06")
    make_employee("E2", "08")
    make_employee("E3", "09")
    picked = resolver.select_subordinate("E1")
    assert picked.employee_number in ("E2", "E3")
    assert numbers(first_choice.calls[0]) == ["E2", "E3"]


def test_selection_with_seeded_generator_is_reproducible(db_session, make_employee):
    make_employee("E1", "06")
    for i in range(2, 8):
        make_employee(f"E{i}", "08")
    first = OrgHierarchyResolver(db_session, rng=random.Random(7)).select_subordinate("E1")
    second = OrgHierarchyResolver(db_session, rng=random.Random(7)).select_subordinate("E1")
    assert first.employee_number == second.employee_number


def test_no_candidates_returns_none_without_drawing(resolver, first_choice, make_employee):
    make_employee("E1", "06")
    assert resolver.select_peer("E1") is None
    assert first_choice.calls == []


# --- Head subordinates ---

def test_head_of_office_gets_whole_office(resolver, make_employee):
    make_employee("HOO", "03", head_of_office_id="HOO")
    make_employee("E2", "07", head_of_office_id="HOO")
    make_employee("E3", "08", office_id=2)
    assert numbers(resolver.get_head_subordinates("HOO")) == ["E2", "HOO"]


def test_head_of_division_gets_office_heads_in_division(resolver, make_employee):
    make_employee("HOD", "02", office_id=9, head_of_div_id="HOD", head_of_office_id="X")
    make_employee("OH1", "03", office_id=1, head_of_office_id="OH1")
    make_employee("OH2", "03", office_id=2, head_of_office_id="OH2")
    make_employee("E4", "07", office_id=1, head_of_office_id="OH1")
    assert numbers(resolver.get_head_subordinates("HOD")) == ["OH1", "OH2"]


def test_head_of_department_gets_division_heads_in_department(resolver, make_employee):
    make_employee("HDEP", "01", head_of_dept_id="HDEP", head_of_office_id="X", head_of_div_id="Y")
    make_employee("DH1", "02", division_id=10, head_of_div_id="DH1", head_of_office_id="X")
    make_employee("DH2", "02", division_id=11, head_of_div_id="DH2", head_of_office_id="X")
    make_employee("E4", "07", head_of_div_id="DH1")
    assert numbers(resolver.get_head_subordinates("HDEP")) == ["DH1", "DH2"]


def test_non_head_has_no_head_subordinates(resolver, make_employee):
    make_employee("E1", "07", head_of_office_id="HOO")
    assert resolver.get_head_subordinates("E1") == []
    assert resolver.get_head_subordinates("NOPE") == []
