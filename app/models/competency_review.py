"""
Competency review records and the aggregated per-competency profiles.
Both tables are written exclusively by the review agent.
"""
from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime, ForeignKey, Index
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.database import Base


class CompetencyReview(Base):
    __tablename__ = "competency_reviews"
    __table_args__ = (
        Index(
            "ix_competency_reviews_population",
            "employee_number", "review_period_id", "review_type_id", "is_technical",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    employee_number = Column(String, nullable=False, index=True)
    review_period_id = Column(Integer, ForeignKey("review_periods.id"), nullable=False)
    competency_id = Column(Integer, ForeignKey("competencies.id"), nullable=False)
    review_type_id = Column(Integer, ForeignKey("review_types.id"), nullable=False)
    expected_rating_id = Column(Integer, ForeignKey("ratings.id"), nullable=False)

    reviewer_id = Column(String, nullable=True)
    reviewer_name = Column(String, nullable=True)
    review_date = Column(DateTime(timezone=True), nullable=True)

    # Filled by the rating submission flow; 0 means not yet scored
    actual_rating_id = Column(Integer, nullable=True)
    actual_rating_name = Column(String, nullable=True)
    actual_rating_value = Column(Integer, default=0, nullable=False)

    is_technical = Column(Boolean, default=False, nullable=False)

    # Denormalized subject metadata
    employee_name = Column(String, nullable=True)
    employee_initial = Column(String, nullable=True)
    employee_grade = Column(String, nullable=True)
    employee_department = Column(String, nullable=True)

    soft_deleted = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    review_type = relationship("ReviewType")
    review_period = relationship("ReviewPeriod")
    competency = relationship("Competency")
    expected_rating = relationship("Rating", foreign_keys=[expected_rating_id])

    def __repr__(self):
        return (
            f"<CompetencyReview {self.employee_number} competency={self.competency_id} "
            f"type={self.review_type_id} reviewer={self.reviewer_id}>"
        )


class CompetencyReviewProfile(Base):
    __tablename__ = "competency_review_profiles"
    __table_args__ = (
        Index(
            "ix_competency_review_profiles_subject",
            "employee_number", "review_period_id", "competency_id",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    review_period_id = Column(Integer, ForeignKey("review_periods.id"), nullable=False)
    review_period_name = Column(String, nullable=True)

    average_rating_id = Column(Integer, nullable=True)
    average_rating_name = Column(String, nullable=True)
    average_rating_value = Column(Integer, default=0, nullable=False)
    expected_rating_id = Column(Integer, nullable=True)
    expected_rating_name = Column(String, nullable=True)
    expected_rating_value = Column(Integer, default=0, nullable=False)
    average_score = Column(Float, default=0.0, nullable=False)

    employee_number = Column(String, nullable=False, index=True)
    employee_name = Column(String, nullable=True)
    competency_id = Column(Integer, ForeignKey("competencies.id"), nullable=False)
    competency_name = Column(String, nullable=True)
    competency_category_name = Column(String, nullable=True)

    competency_gap = Column(Integer, default=0, nullable=False)
    have_gap = Column(Boolean, default=False, nullable=False)

    # Organisational snapshot at calculation time
    office_id = Column(String, nullable=True)
    office_name = Column(String, nullable=True)
    division_id = Column(String, nullable=True)
    division_name = Column(String, nullable=True)
    department_id = Column(String, nullable=True)
    department_name = Column(String, nullable=True)
    job_role_id = Column(String, nullable=True)
    job_role_name = Column(String, nullable=True)
    grade_name = Column(String, nullable=True)

    soft_deleted = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return (
            f"<CompetencyReviewProfile {self.employee_number} competency={self.competency_id} "
            f"score={self.average_score}>"
        )
