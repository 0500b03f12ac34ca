# Models package
# Importing modules here ensures they are registered with SQLAlchemy Base
from . import (
    employee, organogram, review_period,
    competency, competency_review,
)

# Explicit class exports for cleaner imports
from .employee import EmployeeDetails
from .organogram import Office
from .review_period import ReviewPeriod
from .competency import (
    AssignJobGradeGroup,
    BehavioralCompetency,
    Competency,
    CompetencyCategory,
    CompetencyCategoryGrading,
    JobGrade,
    JobGradeGroup,
    JobRole,
    JobRoleCompetency,
    Rating,
    ReviewType,
    ReviewTypeName,
)
from .competency_review import CompetencyReview, CompetencyReviewProfile

__all__ = [
    "EmployeeDetails",
    "Office",
    "ReviewPeriod",
    "AssignJobGradeGroup",
    "BehavioralCompetency",
    "Competency",
    "CompetencyCategory",
    "CompetencyCategoryGrading",
    "JobGrade",
    "JobGradeGroup",
    "JobRole",
    "JobRoleCompetency",
    "Rating",
    "ReviewType",
    "ReviewTypeName",
    "CompetencyReview",
    "CompetencyReviewProfile",
]
