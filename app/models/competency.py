"""
Competency catalogue models.
Categories, competencies, ratings, review types, job roles and grade groups,
plus the mappings that say which competencies each employee is reviewed on.
"""
from sqlalchemy import Column, Integer, String, Float, Boolean, ForeignKey, Text, UniqueConstraint
from sqlalchemy.orm import relationship
import enum
from app.database import Base


class ReviewTypeName(str, enum.Enum):
    SELF = "Self"
    SUPERVISOR = "Supervisor"
    PEERS = "Peers"
    SUBORDINATES = "Subordinates"
    SUPERIOR = "Superior"


class CompetencyCategory(Base):
    __tablename__ = "competency_categories"

    id = Column(Integer, primary_key=True, index=True)
    category_name = Column(String(50), unique=True, nullable=False)
    is_technical = Column(Boolean, default=False, nullable=False)
    soft_deleted = Column(Boolean, default=False, nullable=False)

    competencies = relationship("Competency", back_populates="category")
    gradings = relationship("CompetencyCategoryGrading", back_populates="category")


class Competency(Base):
    __tablename__ = "competencies"

    id = Column(Integer, primary_key=True, index=True)
    competency_category_id = Column(Integer, ForeignKey("competency_categories.id"), nullable=False)
    competency_name = Column(String(70), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    soft_deleted = Column(Boolean, default=False, nullable=False)

    category = relationship("CompetencyCategory", back_populates="competencies")

    def __repr__(self):
        return f"<Competency {self.id}: {self.competency_name}>"


class Rating(Base):
    __tablename__ = "ratings"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), unique=True, nullable=False)
    value = Column(Integer, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    soft_deleted = Column(Boolean, default=False, nullable=False)


class ReviewType(Base):
    __tablename__ = "review_types"

    id = Column(Integer, primary_key=True, index=True)
    review_type_name = Column(String(50), unique=True, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    soft_deleted = Column(Boolean, default=False, nullable=False)

    def __repr__(self):
        return f"<ReviewType {self.id}: {self.review_type_name}>"


class CompetencyCategoryGrading(Base):
    """Weight percentage a review type carries for a competency category."""
    __tablename__ = "competency_category_gradings"

    id = Column(Integer, primary_key=True, index=True)
    competency_category_id = Column(Integer, ForeignKey("competency_categories.id"), nullable=False)
    review_type_id = Column(Integer, ForeignKey("review_types.id"), nullable=False)
    weight_percentage = Column(Float, nullable=False)
    soft_deleted = Column(Boolean, default=False, nullable=False)

    category = relationship("CompetencyCategory", back_populates="gradings")
    review_type = relationship("ReviewType")


class JobRole(Base):
    __tablename__ = "job_roles"

    id = Column(Integer, primary_key=True, index=True)
    job_role_name = Column(String, nullable=False)
    # Dot-delimited "unit.role.speciality" text used for fuzzy matching
    description = Column(String, nullable=True)
    soft_deleted = Column(Boolean, default=False, nullable=False)


class JobGrade(Base):
    __tablename__ = "job_grades"

    id = Column(Integer, primary_key=True, index=True)
    grade_code = Column(String(10), unique=True, nullable=False)
    grade_name = Column(String, nullable=True)
    soft_deleted = Column(Boolean, default=False, nullable=False)


class JobGradeGroup(Base):
    __tablename__ = "job_grade_groups"

    id = Column(Integer, primary_key=True, index=True)
    group_name = Column(String, unique=True, nullable=False)
    order = Column(Integer, default=0)
    soft_deleted = Column(Boolean, default=False, nullable=False)


class AssignJobGradeGroup(Base):
    __tablename__ = "assign_job_grade_groups"

    id = Column(Integer, primary_key=True, index=True)
    job_grade_group_id = Column(Integer, ForeignKey("job_grade_groups.id"), nullable=False)
    job_grade_id = Column(Integer, ForeignKey("job_grades.id"), nullable=False)
    soft_deleted = Column(Boolean, default=False, nullable=False)

    job_grade = relationship("JobGrade")
    job_grade_group = relationship("JobGradeGroup")


class BehavioralCompetency(Base):
    """Behavioral competency and expected rating required of a grade group."""
    __tablename__ = "behavioral_competencies"
    __table_args__ = (UniqueConstraint("competency_id", "job_grade_group_id", name="uq_behavioral_competency"),)

    id = Column(Integer, primary_key=True, index=True)
    competency_id = Column(Integer, ForeignKey("competencies.id"), nullable=False)
    job_grade_group_id = Column(Integer, ForeignKey("job_grade_groups.id"), nullable=False)
    rating_id = Column(Integer, ForeignKey("ratings.id"), nullable=False)
    soft_deleted = Column(Boolean, default=False, nullable=False)

    competency = relationship("Competency")
    rating = relationship("Rating")
    job_grade_group = relationship("JobGradeGroup")


class JobRoleCompetency(Base):
    """Technical competency and expected rating required of a job role in an office."""
    __tablename__ = "job_role_competencies"
    __table_args__ = (UniqueConstraint("office_id", "job_role_id", "competency_id", name="uq_job_role_competency"),)

    id = Column(Integer, primary_key=True, index=True)
    office_id = Column(Integer, ForeignKey("offices.id"), nullable=False, index=True)
    job_role_id = Column(Integer, ForeignKey("job_roles.id"), nullable=False)
    competency_id = Column(Integer, ForeignKey("competencies.id"), nullable=False)
    rating_id = Column(Integer, ForeignKey("ratings.id"), nullable=False)
    soft_deleted = Column(Boolean, default=False, nullable=False)

    competency = relationship("Competency")
    job_role = relationship("JobRole")
    rating = relationship("Rating")
