import math
import threading
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.competency import JobRole, Rating, ReviewTypeName
from app.models.competency_review import CompetencyReview, CompetencyReviewProfile
from app.models.employee import EmployeeDetails
from app.schemas.review_agent import ReviewRunFailure, ReviewRunSummary
from app.services.base import BaseService
from app.services.competency_catalogue import CompetencyCatalogue, group_by_competency
from app.services.employee_directory import EmployeeDirectory, clean_position

# Rating id stored when no catalogue rating has the computed value
FALLBACK_RATING_ID = 1


def round_rating(value: float) -> int:
    """Half rounds up: 3.5 -> 4, 3.49 -> 3."""
    floor = math.floor(value)
    if abs(value - floor) >= 0.5:
        return int(floor) + 1
    return int(floor)


def compute_competency_gap(expected: int, actual: int) -> int:
    return max(expected - actual, 0)


def compute_have_gap(expected: int, actual: int) -> bool:
    return expected > actual


def find_rating_by_value(ratings: List[Rating], value: int) -> Optional[Rating]:
    return next((r for r in ratings if r.value == value), None)


def _mean(values: List[int]) -> float:
    return sum(values) / len(values) if values else 0.0


class ScoreAggregator(BaseService):
    """
    Turns submitted review ratings into one CompetencyReviewProfile per
    employee, review period and competency.

    Behavioral profiles average every scored review. Technical profiles blend
    the subject's own rating with everyone else's using the category weights
    configured for the Self and Supervisor review types.
    """

    def __init__(self, db: Session, cancel_event: Optional[threading.Event] = None):
        super().__init__(db)
        self.catalogue = CompetencyCatalogue(db)
        self.directory = EmployeeDirectory(db)
        self.cancel_event = cancel_event

    def calculate(self, employee_number: str, review_period_id: int, is_technical: bool) -> List[CompetencyReviewProfile]:
        if is_technical:
            return self.calculate_technical(employee_number, review_period_id)
        return self.calculate_behavioral(employee_number, review_period_id)

    def calculate_behavioral(self, employee_number: str, review_period_id: int) -> List[CompetencyReviewProfile]:
        emp = self.directory.get_employee(employee_number)
        if emp is None:
            return []
        job_role = self.catalogue.find_job_role(clean_position(emp.position, emp.job_name))

        ratings = self.catalogue.list_ratings()
        if not ratings:
            self.log_warning("No active ratings configured, skipping behavioral aggregation")
            return []

        reviews = self.catalogue.list_scored_reviews(employee_number, review_period_id, is_technical=False)
        profiles = []
        for competency_id, group in group_by_competency(reviews).items():
            rounded = round_rating(_mean([r.actual_rating_value for r in group]))
            profiles.append(self._upsert_profile(
                emp, job_role, review_period_id, group[0], ratings, rounded,
                create_score=float(rounded),
                update_score=float(rounded),
            ))

        self.commit()
        self.log_info(
            f"Calculated {len(profiles)} behavioral profiles for {employee_number}",
            extra={"employee_number": employee_number, "operation": "calculate_behavioral"},
        )
        return profiles

    def calculate_technical(self, employee_number: str, review_period_id: int) -> List[CompetencyReviewProfile]:
        ratings = self.catalogue.list_ratings()
        if not ratings:
            self.log_warning("No active ratings configured, skipping technical aggregation")
            return []

        emp = self.directory.get_employee(employee_number)
        if emp is None:
            return []
        job_role = self.catalogue.find_job_role(clean_position(emp.position, emp.job_name))

        # Unscored technical reviews count as zero
        reviews = self.catalogue.list_scored_reviews(employee_number, review_period_id, is_technical=True)
        subject = employee_number.strip().upper()
        profiles = []
        for competency_id, group in group_by_competency(reviews).items():
            first = group[0]
            if first.competency is None:
                continue

            self_weight, other_weight = self._weights(first.competency.competency_category_id)
            own = [r.actual_rating_value for r in group if (r.reviewer_id or "").strip().upper() == subject]
            others = [r.actual_rating_value for r in group if (r.reviewer_id or "").strip().upper() != subject]

            weighted = (_mean(own) * self_weight) / 100 + (_mean(others) * other_weight) / 100
            rounded = round_rating(weighted)

            # New profiles keep the raw weighted sum, existing ones the rounded value
            profiles.append(self._upsert_profile(
                emp, job_role, review_period_id, first, ratings, rounded,
                create_score=weighted,
                update_score=float(rounded),
            ))

        self.commit()
        self.log_info(
            f"Calculated {len(profiles)} technical profiles for {employee_number}",
            extra={"employee_number": employee_number, "operation": "calculate_technical"},
        )
        return profiles

    def recalculate_all(self) -> ReviewRunSummary:
        """Technical then behavioral aggregation for every active employee in the current period."""
        summary = ReviewRunSummary(scope="all")
        period = self.catalogue.get_current_period()
        if period is None:
            self.log_warning("No current review period, skipping recalculation")
            return summary
        period_id = period.id
        summary.review_period_id = period_id

        employees = self.directory.list_all()
        numbers = [e.employee_number for e in employees]
        self.log_info(
            f"Recalculating review profiles for {len(numbers)} employees (period {period_id})",
            extra={"operation": "recalculate"},
        )

        for number in numbers:
            if self.cancel_event is not None and self.cancel_event.is_set():
                summary.cancelled = True
                self.log_warning(
                    f"Recalculation cancelled after {summary.attempted} employees",
                    extra={"operation": "recalculate"},
                )
                break
            summary.attempted += 1
            failures = []
            for operation, calculate in (
                ("calculate_technical", self.calculate_technical),
                ("calculate_behavioral", self.calculate_behavioral),
            ):
                try:
                    calculate(number, period_id)
                except Exception as e:
                    self.db.rollback()
                    self.log_error(
                        f"Failed to {operation.replace('_', ' ')} for {number}: {e}",
                        extra={"employee_number": number, "operation": operation},
                        exc_info=True,
                    )
                    failures.append(ReviewRunFailure(employee_number=number, operation=operation, error=str(e)))
            if failures:
                summary.failed.extend(failures)
            else:
                summary.succeeded += 1
        return summary

    # --- Helpers ---

    def _weights(self, category_id: int):
        agent = settings.review_agent
        self_weight = self.catalogue.get_category_weight(category_id, ReviewTypeName.SELF.value)
        other_weight = self.catalogue.get_category_weight(category_id, ReviewTypeName.SUPERVISOR.value)
        return (
            self_weight if self_weight is not None else agent.default_self_weight,
            other_weight if other_weight is not None else agent.default_supervisor_weight,
        )

    def _upsert_profile(
        self,
        emp: EmployeeDetails,
        job_role: Optional[JobRole],
        review_period_id: int,
        first_review: CompetencyReview,
        ratings: List[Rating],
        rounded: int,
        create_score: float,
        update_score: float,
    ) -> CompetencyReviewProfile:
        profile = self.catalogue.get_profile(emp.employee_number, review_period_id, first_review.competency_id)
        if profile is None:
            profile = self._new_profile(emp, review_period_id, first_review)
            profile.average_score = create_score
            self.db.add(profile)
        else:
            profile.average_score = update_score

        profile.employee_name = emp.full_name
        profile.office_id = str(emp.office_id)
        profile.office_name = emp.office_name
        profile.division_id = str(emp.division_id) if emp.division_id is not None else None
        profile.division_name = emp.division_name
        profile.department_id = str(emp.department_id) if emp.department_id is not None else None
        profile.department_name = emp.department_name
        profile.grade_name = emp.grade
        if job_role is not None:
            profile.job_role_id = str(job_role.id)
            profile.job_role_name = job_role.job_role_name

        matched = find_rating_by_value(ratings, rounded)
        if matched is not None:
            profile.average_rating_id = matched.id
            profile.average_rating_name = matched.name
            profile.average_rating_value = matched.value
        else:
            profile.average_rating_id = FALLBACK_RATING_ID
            profile.average_rating_name = None
            profile.average_rating_value = 0

        expected = profile.expected_rating_value or 0
        profile.competency_gap = compute_competency_gap(expected, profile.average_rating_value)
        profile.have_gap = compute_have_gap(expected, profile.average_rating_value)
        return profile

    def _new_profile(self, emp: EmployeeDetails, review_period_id: int, first_review: CompetencyReview) -> CompetencyReviewProfile:
        profile = CompetencyReviewProfile(
            employee_number=emp.employee_number,
            review_period_id=review_period_id,
            competency_id=first_review.competency_id,
            expected_rating_id=first_review.expected_rating_id,
            expected_rating_value=0,
        )
        if first_review.review_period is not None:
            profile.review_period_name = first_review.review_period.name
        if first_review.competency is not None:
            profile.competency_name = first_review.competency.competency_name
            if first_review.competency.category is not None:
                profile.competency_category_name = first_review.competency.category.category_name
        if first_review.expected_rating is not None:
            profile.expected_rating_name = first_review.expected_rating.name
            profile.expected_rating_value = first_review.expected_rating.value
        return profile
