"""
Employee Directory Model.
Read-only mirror of the ERP staff view consumed by the review agent.
"""
from sqlalchemy import Column, Integer, String
from app.database import Base


class EmployeeDetails(Base):
    __tablename__ = "employee_details"

    employee_number = Column(String, primary_key=True, index=True)
    user_name = Column(String, nullable=True)
    email_address = Column(String, nullable=True)
    first_name = Column(String, nullable=True)
    middle_names = Column(String, nullable=True)
    last_name = Column(String, nullable=True)

    # Numeric rank stored as text; "41" is the Permanent Member sentinel
    grade = Column(String, nullable=True)
    job_name = Column(String, nullable=True)
    position = Column(String, nullable=True)

    office_id = Column(Integer, nullable=False, index=True)
    office_name = Column(String, nullable=True)
    division_id = Column(Integer, nullable=True, index=True)
    division_name = Column(String, nullable=True)
    department_id = Column(Integer, nullable=True, index=True)
    department_name = Column(String, nullable=True)

    supervisor_id = Column(String, nullable=True)
    head_of_office_id = Column(String, nullable=True)
    head_of_div_id = Column(String, nullable=True)
    head_of_div_name = Column(String, nullable=True)
    head_of_dept_id = Column(String, nullable=True)

    person_type_id = Column(Integer, nullable=False, default=1120)

    def __repr__(self):
        return f"<EmployeeDetails {self.employee_number} grade={self.grade}>"

    @property
    def full_name(self) -> str:
        """Directory display name: "Last, First Middle"."""
        given = " ".join(p for p in (self.first_name, self.middle_names) if p)
        return f"{self.last_name or ''}, {given}".strip(", ").strip()

    @property
    def name_initial(self) -> str:
        if self.last_name and self.first_name:
            return self.last_name[0] + self.first_name[0]
        return ""
