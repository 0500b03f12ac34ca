from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import List, Optional


class EmployeeRecordResponse(BaseModel):
    employee_number: str
    full_name: str
    name_initial: str
    grade: Optional[str] = None
    job_name: Optional[str] = None
    position: Optional[str] = None
    office_id: int
    office_name: Optional[str] = None
    division_id: Optional[int] = None
    division_name: Optional[str] = None
    department_id: Optional[int] = None
    department_name: Optional[str] = None
    supervisor_id: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class PopulateScopeRequest(BaseModel):
    """
    Population scope. At most one unit may be named; none means the whole organisation.
    """
    employee_number: Optional[str] = None
    office_id: Optional[int] = None
    division_id: Optional[int] = None
    department_id: Optional[int] = None

    @model_validator(mode="after")
    def check_single_unit(self):
        named = [
            v for v in (self.employee_number, self.office_id, self.division_id, self.department_id)
            if v is not None
        ]
        if len(named) > 1:
            raise ValueError("Specify at most one of employee_number, office_id, division_id, department_id")
        return self

    @property
    def label(self) -> str:
        if self.employee_number is not None:
            return f"employee:{self.employee_number}"
        if self.office_id is not None:
            return f"office:{self.office_id}"
        if self.division_id is not None:
            return f"division:{self.division_id}"
        if self.department_id is not None:
            return f"department:{self.department_id}"
        return "all"


class CalculateReviewProfileRequest(BaseModel):
    employee_number: str = Field(..., min_length=1)
    review_period_id: int
    is_technical: bool = False


class PartialMatchRequest(BaseModel):
    description1: str
    description2: str


class PartialMatchResponse(BaseModel):
    description1: str
    description2: str
    is_match: bool


class ReviewRunFailure(BaseModel):
    employee_number: str
    review_type: Optional[str] = None
    operation: str
    error: str


class ReviewRunSummary(BaseModel):
    scope: str
    review_period_id: Optional[int] = None
    attempted: int = 0
    succeeded: int = 0
    failed: List[ReviewRunFailure] = []
    cancelled: bool = False


class CompetencyReviewProfileResponse(BaseModel):
    employee_number: str
    review_period_id: int
    competency_id: int
    competency_name: Optional[str] = None
    competency_category_name: Optional[str] = None
    expected_rating_value: int
    average_rating_id: Optional[int] = None
    average_rating_value: int
    average_score: float
    competency_gap: int
    have_gap: bool

    model_config = ConfigDict(from_attributes=True)


# Resolve forward references for Pydantic V2
ReviewRunSummary.model_rebuild()
