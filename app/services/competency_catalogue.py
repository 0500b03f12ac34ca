"""
Queries against the competency catalogue and the review store.
Nothing here is cached; every call reads through the session.
"""
from typing import Dict, List, Optional
from sqlalchemy.orm import Session, joinedload

from app.models.competency import (
    AssignJobGradeGroup,
    BehavioralCompetency,
    Competency,
    CompetencyCategoryGrading,
    JobGrade,
    JobGradeGroup,
    JobRole,
    JobRoleCompetency,
    Rating,
    ReviewType,
)
from app.models.competency_review import CompetencyReview, CompetencyReviewProfile
from app.models.organogram import Office
from app.models.review_period import ReviewPeriod


class CompetencyCatalogue:
    def __init__(self, db: Session):
        self.db = db

    # --- Periods & review types ---

    def get_current_period(self) -> Optional[ReviewPeriod]:
        return self.db.query(ReviewPeriod).filter(
            ReviewPeriod.is_active.is_(True),
            ReviewPeriod.is_approved.is_(True),
            ReviewPeriod.soft_deleted.is_(False),
        ).order_by(ReviewPeriod.id).first()

    def get_period(self, period_id: int) -> Optional[ReviewPeriod]:
        return self.db.query(ReviewPeriod).filter(ReviewPeriod.id == period_id).first()

    def list_review_types(self) -> List[ReviewType]:
        return self.db.query(ReviewType).filter(
            ReviewType.is_active.is_(True),
            ReviewType.soft_deleted.is_(False),
        ).order_by(ReviewType.id).all()

    def get_review_type_by_name(self, name: str) -> Optional[ReviewType]:
        return self.db.query(ReviewType).filter(
            ReviewType.review_type_name == name,
            ReviewType.is_active.is_(True),
            ReviewType.soft_deleted.is_(False),
        ).first()

    # --- Organisation lookups ---

    def get_grade_group(self, grade_code: Optional[str]) -> Optional[JobGradeGroup]:
        if not grade_code:
            return None
        assignment = (
            self.db.query(AssignJobGradeGroup)
            .join(JobGrade, JobGrade.id == AssignJobGradeGroup.job_grade_id)
            .filter(
                JobGrade.grade_code == grade_code,
                AssignJobGradeGroup.soft_deleted.is_(False),
            )
            .first()
        )
        return assignment.job_grade_group if assignment else None

    def get_office(self, office_id: int) -> Optional[Office]:
        return self.db.query(Office).filter(
            Office.id == office_id,
            Office.soft_deleted.is_(False),
        ).first()

    def find_job_role(self, name: Optional[str]) -> Optional[JobRole]:
        """First job role whose name contains `name`, case-insensitively."""
        if not name or not name.strip():
            return None
        return self.db.query(JobRole).filter(
            JobRole.job_role_name.ilike(f"%{name}%"),
            JobRole.soft_deleted.is_(False),
        ).order_by(JobRole.id).first()

    # --- Competency mappings ---

    def list_behavioral_competencies(self, grade_group_id: int) -> List[BehavioralCompetency]:
        return self.db.query(BehavioralCompetency).filter(
            BehavioralCompetency.job_grade_group_id == grade_group_id,
            BehavioralCompetency.soft_deleted.is_(False),
        ).order_by(BehavioralCompetency.id).all()

    def list_job_role_competencies(self, office_id: int, job_role_id: int) -> List[JobRoleCompetency]:
        return self.db.query(JobRoleCompetency).filter(
            JobRoleCompetency.office_id == office_id,
            JobRoleCompetency.job_role_id == job_role_id,
            JobRoleCompetency.soft_deleted.is_(False),
        ).order_by(JobRoleCompetency.id).all()

    def list_office_competencies(self, office_id: int) -> List[JobRoleCompetency]:
        return (
            self.db.query(JobRoleCompetency)
            .options(joinedload(JobRoleCompetency.job_role))
            .filter(
                JobRoleCompetency.office_id == office_id,
                JobRoleCompetency.soft_deleted.is_(False),
            )
            .order_by(JobRoleCompetency.id)
            .all()
        )

    # --- Ratings & weights ---

    def list_ratings(self) -> List[Rating]:
        return self.db.query(Rating).filter(
            Rating.is_active.is_(True),
            Rating.soft_deleted.is_(False),
        ).order_by(Rating.value).all()

    def get_category_weight(self, category_id: int, review_type_name: str) -> Optional[float]:
        grading = (
            self.db.query(CompetencyCategoryGrading)
            .join(ReviewType, ReviewType.id == CompetencyCategoryGrading.review_type_id)
            .filter(
                ReviewType.review_type_name == review_type_name,
                CompetencyCategoryGrading.competency_category_id == category_id,
                CompetencyCategoryGrading.soft_deleted.is_(False),
            )
            .first()
        )
        return grading.weight_percentage if grading else None

    # --- Review store ---

    def review_exists(
        self,
        employee_number: str,
        period_id: int,
        review_type_id: int,
        is_technical: Optional[bool] = None,
        competency_id: Optional[int] = None,
    ) -> bool:
        """Any non-deleted review for the subject in this period and type."""
        query = self.db.query(CompetencyReview.id).filter(
            CompetencyReview.employee_number == employee_number,
            CompetencyReview.review_period_id == period_id,
            CompetencyReview.review_type_id == review_type_id,
            CompetencyReview.soft_deleted.is_(False),
        )
        if is_technical is not None:
            query = query.filter(CompetencyReview.is_technical.is_(is_technical))
        if competency_id is not None:
            query = query.filter(CompetencyReview.competency_id == competency_id)
        return query.first() is not None

    def reviewer_review_exists(
        self,
        employee_number: str,
        period_id: int,
        review_type_id: int,
        competency_id: int,
        reviewer_id: str,
    ) -> bool:
        """Technical review by this reviewer, soft-deleted rows included."""
        return self.db.query(CompetencyReview.id).filter(
            CompetencyReview.employee_number == employee_number,
            CompetencyReview.review_period_id == period_id,
            CompetencyReview.competency_id == competency_id,
            CompetencyReview.is_technical.is_(True),
            CompetencyReview.review_type_id == review_type_id,
            CompetencyReview.reviewer_id == reviewer_id,
        ).first() is not None

    def list_scored_reviews(self, employee_number: str, period_id: int, is_technical: bool) -> List[CompetencyReview]:
        """
        Reviews feeding profile aggregation.
        Behavioral reviews only count once scored; technical ones count with zero.
        """
        query = (
            self.db.query(CompetencyReview)
            .options(
                joinedload(CompetencyReview.competency).joinedload(Competency.category),
                joinedload(CompetencyReview.review_period),
                joinedload(CompetencyReview.expected_rating),
            )
            .filter(
                CompetencyReview.employee_number == employee_number,
                CompetencyReview.review_period_id == period_id,
                CompetencyReview.is_technical.is_(is_technical),
                CompetencyReview.soft_deleted.is_(False),
            )
        )
        if not is_technical:
            query = query.filter(CompetencyReview.actual_rating_value != 0)
        return query.order_by(CompetencyReview.id).all()

    def get_profile(self, employee_number: str, period_id: int, competency_id: int) -> Optional[CompetencyReviewProfile]:
        return self.db.query(CompetencyReviewProfile).filter(
            CompetencyReviewProfile.employee_number == employee_number,
            CompetencyReviewProfile.review_period_id == period_id,
            CompetencyReviewProfile.competency_id == competency_id,
            CompetencyReviewProfile.soft_deleted.is_(False),
        ).first()



def group_by_competency(reviews: List[CompetencyReview]) -> Dict[int, List[CompetencyReview]]:
    """Reviews keyed by competency id, preserving first-seen order."""
    grouped: Dict[int, List[CompetencyReview]] = {}
    for review in reviews:
        grouped.setdefault(review.competency_id, []).append(review)
    return grouped
