import random
from typing import Callable, Iterable, List, Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.employee import EmployeeDetails
from app.services.base import BaseService
from app.services.employee_directory import EmployeeDirectory

# Fallback order when looking for counterparts; the first non-empty level wins
LEVELS = ("office", "division", "department")

# Grade boundary applied to Permanent Member subjects
PM_GRADE_BOUNDARY = 4


def parse_grade(value: Optional[str]) -> Optional[int]:
    try:
        return int((value or "").strip())
    except ValueError:
        return None


def _same_id(a: Optional[str], b: Optional[str]) -> bool:
    return (a or "").strip().upper() == (b or "").strip().upper()


class OrgHierarchyResolver(BaseService):
    """
    Picks 360-degree review counterparts from the staff directory.

    Grades are numeric ranks where a lower number is more senior. Subordinates
    have a higher grade number, superiors a lower one, peers the same one.
    Candidates are searched in the subject's office, then division, then
    department, and one is drawn at random from the first level that has any.
    """

    def __init__(self, db: Session, rng: Optional[random.Random] = None):
        super().__init__(db)
        self.directory = EmployeeDirectory(db)
        self.rng = rng or random.Random(settings.review_agent.random_seed)
        self.pm_grade = settings.review_agent.pm_grade

    # --- Public API ---

    def select_subordinate(self, employee_number: str) -> Optional[EmployeeDetails]:
        return self._pick(self.eligible_subordinates(employee_number))

    def select_peer(self, employee_number: str) -> Optional[EmployeeDetails]:
        return self._pick(self.eligible_peers(employee_number))

    def select_superior(self, employee_number: str) -> Optional[EmployeeDetails]:
        return self._pick(self.eligible_superiors(employee_number))

    def get_head_subordinates(self, employee_number: str) -> List[EmployeeDetails]:
        """Direct reports of an organisational head, by the unit the subject heads."""
        emp = self.directory.get_employee(employee_number)
        if emp is None:
            return []
        if _same_id(emp.employee_number, emp.head_of_office_id):
            return self.directory.list_by_office(emp.office_id)
        if _same_id(emp.employee_number, emp.head_of_div_id) and emp.division_id is not None:
            return self.directory.list_office_heads_in_division(emp.division_id)
        if _same_id(emp.employee_number, emp.head_of_dept_id) and emp.department_id is not None:
            return self.directory.list_division_heads_in_department(emp.department_id)
        return []

    # --- Eligible sets ---

    def eligible_subordinates(self, employee_number: str) -> List[EmployeeDetails]:
        emp = self._load_subject(employee_number)
        if emp is None:
            return []

        if self._is_governor(emp):
            heads = [
                h for h in self.directory.list_department_heads()
                if _same_id(h.head_of_office_id, emp.employee_number)
                or _same_id(h.supervisor_id, emp.employee_number)
            ]
            return self._dedupe(heads, emp)

        subject_grade = parse_grade(emp.grade)
        if subject_grade is None:
            return []

        subject_is_pm = emp.grade.strip() == self.pm_grade

        def lower_ranked(candidate: EmployeeDetails, level: str) -> bool:
            grade = parse_grade(candidate.grade)
            if grade is None:
                return False
            if subject_is_pm:
                return grade > subject_grade and grade > PM_GRADE_BOUNDARY
            return grade > subject_grade

        return self._fallback(emp, lower_ranked, exclude_pm=lambda level: True)

    def eligible_peers(self, employee_number: str) -> List[EmployeeDetails]:
        emp = self._load_subject(employee_number)
        if emp is None:
            return []

        if self._is_governor(emp):
            return self._dedupe(self.directory.list_governors(), emp)

        if parse_grade(emp.grade) is None:
            return []

        def same_rank(candidate: EmployeeDetails, level: str) -> bool:
            return _same_id(candidate.grade, emp.grade)

        return self._fallback(emp, same_rank, exclude_pm=lambda level: True)

    def eligible_superiors(self, employee_number: str) -> List[EmployeeDetails]:
        emp = self._load_subject(employee_number)
        if emp is None:
            return []

        subject_grade = parse_grade(emp.grade)
        if subject_grade is None:
            return []

        subject_is_pm = emp.grade.strip() == self.pm_grade

        def higher_ranked(candidate: EmployeeDetails, level: str) -> bool:
            grade = parse_grade(candidate.grade)
            if subject_is_pm:
                return grade is not None and grade < PM_GRADE_BOUNDARY
            # Permanent Members sit at the root of a department
            if level == "department" and (candidate.grade or "").strip() == self.pm_grade:
                return True
            return grade is not None and grade < subject_grade

        return self._fallback(
            emp,
            higher_ranked,
            exclude_pm=lambda level: level != "department",
            exclude_supervisor=True,
        )

    # --- Helpers ---

    def _load_subject(self, employee_number: str) -> Optional[EmployeeDetails]:
        if not employee_number or not employee_number.strip():
            return None
        emp = self.directory.get_employee(employee_number)
        if emp is None or not (emp.grade or "").strip():
            return None
        return emp

    def _is_governor(self, emp: EmployeeDetails) -> bool:
        return any(_same_id(g.employee_number, emp.employee_number) for g in self.directory.list_governors())

    def _fallback(
        self,
        emp: EmployeeDetails,
        accept: Callable[[EmployeeDetails, str], bool],
        exclude_pm: Callable[[str], bool],
        exclude_supervisor: bool = False,
    ) -> List[EmployeeDetails]:
        unit_ids = {
            "office": emp.office_id if emp.office_id and emp.office_id > 0 else None,
            "division": emp.division_id,
            "department": emp.department_id,
        }
        for level in LEVELS:
            raw = self.directory.list_by_unit(level, unit_ids[level], emp.employee_number)
            candidates = self._filter(
                (c for c in raw if accept(c, level)),
                emp,
                exclude_pm=exclude_pm(level),
                exclude_supervisor=exclude_supervisor,
            )
            if candidates:
                self.log_info(
                    f"Found {len(candidates)} counterpart candidates for {emp.employee_number} at {level} level",
                    extra={"employee_number": emp.employee_number, "level": level},
                )
                return candidates
        return []

    def _filter(
        self,
        candidates: Iterable[EmployeeDetails],
        emp: EmployeeDetails,
        exclude_pm: bool,
        exclude_supervisor: bool,
    ) -> List[EmployeeDetails]:
        excluded = {emp.employee_number.strip().upper()}
        if (emp.head_of_office_id or "").strip():
            excluded.add(emp.head_of_office_id.strip().upper())
        if exclude_supervisor and (emp.supervisor_id or "").strip():
            excluded.add(emp.supervisor_id.strip().upper())

        seen = set()
        result = []
        for candidate in candidates:
            number = (candidate.employee_number or "").strip().upper()
            if not number or number in excluded or number in seen:
                continue
            if exclude_pm and (candidate.grade or "").strip() == self.pm_grade:
                continue
            seen.add(number)
            result.append(candidate)
        return result

    def _dedupe(self, candidates: Iterable[EmployeeDetails], emp: EmployeeDetails) -> List[EmployeeDetails]:
        """Governor paths: drop blanks, the subject and repeats, with no grade rules."""
        subject = emp.employee_number.strip().upper()
        seen = set()
        result = []
        for candidate in candidates:
            number = (candidate.employee_number or "").strip().upper()
            if not number or number == subject or number in seen:
                continue
            seen.add(number)
            result.append(candidate)
        return result

    def _pick(self, candidates: List[EmployeeDetails]) -> Optional[EmployeeDetails]:
        if not candidates:
            return None
        return self.rng.choice(candidates)
