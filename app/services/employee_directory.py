"""
Read-only access to the staff directory.
Only active staff (person type 1120 by default) are ever returned.
"""
from typing import List, Optional
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.employee import EmployeeDetails


def clean_position(position: Optional[str], job_name: Optional[str] = None) -> str:
    """Text before the first "." of the position, or the job name when the position is blank."""
    if position and position.strip():
        return position.split(".", 1)[0]
    return job_name or ""


class EmployeeDirectory:
    def __init__(self, db: Session):
        self.db = db
        self.active_person_type_id = settings.review_agent.active_person_type_id
        self.governor_keyword = settings.review_agent.governor_keyword

    def _active(self):
        return self.db.query(EmployeeDetails).filter(
            EmployeeDetails.person_type_id == self.active_person_type_id
        )

    def get_employee(self, employee_number: Optional[str]) -> Optional[EmployeeDetails]:
        if not employee_number or not employee_number.strip():
            return None
        return self._active().filter(EmployeeDetails.employee_number == employee_number).first()

    def list_all(self) -> List[EmployeeDetails]:
        return self._active().filter(EmployeeDetails.employee_number.isnot(None)).all()

    def list_by_office(self, office_id: int) -> List[EmployeeDetails]:
        return self._active().filter(EmployeeDetails.office_id == office_id).all()

    def list_by_division(self, division_id: int) -> List[EmployeeDetails]:
        return self._active().filter(EmployeeDetails.division_id == division_id).all()

    def list_by_department(self, department_id: int) -> List[EmployeeDetails]:
        return self._active().filter(EmployeeDetails.department_id == department_id).all()

    def list_governors(self) -> List[EmployeeDetails]:
        """Governor/DG staff: job name contains the governor keyword."""
        return self._active().filter(
            EmployeeDetails.job_name.ilike(f"%{self.governor_keyword}%")
        ).all()

    def list_department_heads(self) -> List[EmployeeDetails]:
        """Self-headed department heads, excluding governors."""
        return self._active().filter(
            EmployeeDetails.head_of_dept_id == EmployeeDetails.employee_number,
            ~EmployeeDetails.job_name.ilike(f"%{self.governor_keyword}%"),
        ).all()

    def list_office_heads_in_division(self, division_id: int) -> List[EmployeeDetails]:
        return self._active().filter(
            EmployeeDetails.division_id == division_id,
            EmployeeDetails.employee_number == EmployeeDetails.head_of_office_id,
        ).all()

    def list_division_heads_in_department(self, department_id: int) -> List[EmployeeDetails]:
        return self._active().filter(
            EmployeeDetails.department_id == department_id,
            EmployeeDetails.employee_number == EmployeeDetails.head_of_div_id,
        ).all()

    def list_by_unit(self, unit: str, unit_id: Optional[int], exclude: str) -> List[EmployeeDetails]:
        """
        Everyone in the same office, division or department except `exclude`.
        Grade comparison is left to the caller so malformed grades can be skipped.
        """
        if unit_id is None:
            return []
        column = {
            "office": EmployeeDetails.office_id,
            "division": EmployeeDetails.division_id,
            "department": EmployeeDetails.department_id,
        }[unit]
        return self._active().filter(
            column == unit_id,
            EmployeeDetails.employee_number != exclude,
        ).all()
