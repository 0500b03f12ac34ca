import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from app.core.exceptions import InvalidScopeError, ReviewRunCancelled
from app.models.competency import JobRoleCompetency, ReviewType, ReviewTypeName
from app.models.competency_review import CompetencyReview
from app.models.employee import EmployeeDetails
from app.models.review_period import ReviewPeriod
from app.schemas.review_agent import PopulateScopeRequest, ReviewRunFailure, ReviewRunSummary
from app.services.base import BaseService
from app.services.competency_catalogue import CompetencyCatalogue
from app.services.employee_directory import EmployeeDirectory, clean_position
from app.services.org_hierarchy import OrgHierarchyResolver
from app.services.partial_match import is_partial_match


@dataclass
class ReviewSubject:
    """An employee resolved against the catalogue, ready for population."""
    employee: EmployeeDetails
    position: str
    grade_group_id: int
    office_id: int
    job_role_id: int

    @property
    def job_description(self) -> str:
        emp = self.employee
        return f"{self.position}.{emp.office_name or ''}.{emp.job_name or ''}"


class ReviewPopulationEngine(BaseService):
    """
    Creates the competency review records of the current review period.

    Every batch is decomposed into single employees processed in order. Each
    review type of an employee is committed on its own, so a failure rolls
    back that review type only. Re-running a batch creates nothing new for
    review types that are already populated.
    """

    def __init__(
        self,
        db: Session,
        resolver: Optional[OrgHierarchyResolver] = None,
        cancel_event: Optional[threading.Event] = None,
    ):
        super().__init__(db)
        self.catalogue = CompetencyCatalogue(db)
        self.directory = EmployeeDirectory(db)
        self.resolver = resolver or OrgHierarchyResolver(db)
        self.cancel_event = cancel_event
        self._handlers: Dict[str, Callable[[ReviewSubject, int, int], int]] = {
            ReviewTypeName.SELF.value: self._populate_self,
            ReviewTypeName.SUPERVISOR.value: self._populate_supervisor,
            ReviewTypeName.PEERS.value: self._populate_peers,
            ReviewTypeName.SUBORDINATES.value: self._populate_subordinates,
            ReviewTypeName.SUPERIOR.value: self._populate_superior,
        }

    # --- Scope entry points ---

    def populate(self, scope: PopulateScopeRequest) -> ReviewRunSummary:
        if scope.employee_number is not None:
            return self.populate_for_employee(scope.employee_number)
        if scope.office_id is not None:
            return self.populate_for_office(scope.office_id)
        if scope.division_id is not None:
            return self.populate_for_division(scope.division_id)
        if scope.department_id is not None:
            return self.populate_for_department(scope.department_id)
        return self.populate_for_all()

    def populate_for_employee(self, employee_number: str) -> ReviewRunSummary:
        def load():
            emp = self.directory.get_employee(employee_number)
            return [emp] if emp else []
        return self._run(f"employee:{employee_number}", load)

    def populate_for_office(self, office_id: int) -> ReviewRunSummary:
        return self._run(f"office:{office_id}", lambda: self.directory.list_by_office(office_id))

    def populate_for_division(self, division_id: int) -> ReviewRunSummary:
        return self._run(f"division:{division_id}", lambda: self.directory.list_by_division(division_id))

    def populate_for_department(self, department_id: int) -> ReviewRunSummary:
        return self._run(f"department:{department_id}", lambda: self.directory.list_by_department(department_id))

    def populate_for_all(self) -> ReviewRunSummary:
        return self._run("all", self.directory.list_all)

    def populate_all_for_review_type(self, review_type_name: str) -> ReviewRunSummary:
        """Whole organisation, a single review type looked up by name."""
        known = [t.value for t in ReviewTypeName]
        if review_type_name not in known:
            raise InvalidScopeError(
                f"Unknown review type '{review_type_name}'",
                details={"allowed": known},
            )
        scope = f"all:{review_type_name}"
        review_type = self.catalogue.get_review_type_by_name(review_type_name)
        if review_type is None:
            self.log_warning(f"Review type {review_type_name} is not active, nothing to populate")
            return ReviewRunSummary(scope=scope)
        return self._run(scope, self.directory.list_all, review_types=[review_type])

    # --- Batch driver ---

    def _run(
        self,
        scope: str,
        load_employees: Callable[[], List[EmployeeDetails]],
        review_types: Optional[List[ReviewType]] = None,
    ) -> ReviewRunSummary:
        summary = ReviewRunSummary(scope=scope)

        period = self.catalogue.get_current_period()
        if period is None:
            self.log_warning(f"No current review period, skipping population for {scope}")
            return summary
        summary.review_period_id = period.id

        employees = load_employees()
        if not employees:
            self.log_info(f"No employees in scope {scope}")
            return summary

        review_types = review_types if review_types is not None else self.catalogue.list_review_types()
        if not review_types:
            self.log_warning("No active review types configured")
            return summary

        self.log_info(
            f"Populating reviews for {len(employees)} employees in {scope} (period {period.id})",
            extra={"operation": "populate", "scope": scope},
        )
        try:
            for emp in employees:
                self._check_cancelled()
                summary.attempted += 1
                failures = self._process_employee(period, review_types, emp)
                if failures:
                    summary.failed.extend(failures)
                else:
                    summary.succeeded += 1
        except ReviewRunCancelled:
            summary.cancelled = True
            self.log_warning(
                f"Population for {scope} cancelled after {summary.attempted} employees",
                extra={"operation": "populate", "scope": scope},
            )

        self.log_info(
            f"Population for {scope} finished: {summary.succeeded} succeeded, {len(summary.failed)} failed",
            extra={"operation": "populate", "scope": scope},
        )
        return summary

    def _check_cancelled(self):
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise ReviewRunCancelled()

    def _process_employee(
        self,
        period: ReviewPeriod,
        review_types: List[ReviewType],
        emp: EmployeeDetails,
    ) -> List[ReviewRunFailure]:
        number = emp.employee_number
        try:
            subject = self._resolve_subject(emp)
        except Exception as e:
            self.db.rollback()
            self.log_error(
                f"Failed to resolve {number} for review population: {e}",
                extra={"employee_number": number, "operation": "resolve_subject"},
                exc_info=True,
            )
            return [ReviewRunFailure(employee_number=number, operation="resolve_subject", error=str(e))]

        if subject is None:
            return []

        period_id = period.id
        failures = []
        for review_type in review_types:
            self._check_cancelled()
            type_name = (review_type.review_type_name or "").strip()
            type_id = review_type.id
            handler = self._handlers.get(type_name)
            if handler is None:
                continue
            try:
                created = handler(subject, period_id, type_id)
                self.commit()
            except ReviewRunCancelled:
                raise
            except Exception as e:
                self.db.rollback()
                self.log_error(
                    f"Failed to populate {type_name} reviews for {number}: {e}",
                    extra={
                        "employee_number": number,
                        "review_type": type_name,
                        "operation": "populate_reviews",
                    },
                    exc_info=True,
                )
                failures.append(ReviewRunFailure(
                    employee_number=number,
                    review_type=type_name,
                    operation="populate_reviews",
                    error=str(e),
                ))
                continue
            if created:
                self.log_info(
                    f"Created {created} {type_name} reviews for {number}",
                    extra={"employee_number": number, "review_type": type_name},
                )
        return failures

    def _resolve_subject(self, emp: EmployeeDetails) -> Optional[ReviewSubject]:
        grade_group = self.catalogue.get_grade_group(emp.grade)
        office = self.catalogue.get_office(emp.office_id)
        position = clean_position(emp.position, emp.job_name)
        job_role = self.catalogue.find_job_role(position)

        if office is None or grade_group is None:
            self.log_info(
                f"Skipping {emp.employee_number}: missing grade group or office",
                extra={"employee_number": emp.employee_number},
            )
            return None

        return ReviewSubject(
            employee=emp,
            position=position,
            grade_group_id=grade_group.id,
            office_id=office.id,
            # 0 never matches a mapping, which sends the technical leg to the fuzzy fallback
            job_role_id=job_role.id if job_role else 0,
        )

    # --- Per review type ---

    def _populate_self(self, subject: ReviewSubject, period_id: int, review_type_id: int) -> int:
        emp = subject.employee
        return self._populate_direct(subject, period_id, review_type_id, emp.employee_number, emp.full_name)

    def _populate_supervisor(self, subject: ReviewSubject, period_id: int, review_type_id: int) -> int:
        supervisor = self.directory.get_employee(subject.employee.supervisor_id)
        if supervisor is None:
            self.log_info(
                f"{subject.employee.employee_number} has no active supervisor, skipping supervisor reviews",
                extra={"employee_number": subject.employee.employee_number, "review_type": ReviewTypeName.SUPERVISOR.value},
            )
            return 0
        return self._populate_direct(
            subject, period_id, review_type_id, supervisor.employee_number, supervisor.full_name
        )

    def _populate_peers(self, subject: ReviewSubject, period_id: int, review_type_id: int) -> int:
        return self._populate_counterpart(subject, period_id, review_type_id, self.resolver.select_peer)

    def _populate_subordinates(self, subject: ReviewSubject, period_id: int, review_type_id: int) -> int:
        return self._populate_counterpart(subject, period_id, review_type_id, self.resolver.select_subordinate)

    def _populate_superior(self, subject: ReviewSubject, period_id: int, review_type_id: int) -> int:
        return self._populate_counterpart(subject, period_id, review_type_id, self.resolver.select_superior)

    def _populate_direct(
        self,
        subject: ReviewSubject,
        period_id: int,
        review_type_id: int,
        reviewer_id: str,
        reviewer_name: str,
    ) -> int:
        """Self and Supervisor: a behavioral leg and a technical leg, each checked separately."""
        emp = subject.employee
        reviews: List[CompetencyReview] = []

        if not self.catalogue.review_exists(emp.employee_number, period_id, review_type_id, is_technical=False):
            for bc in self.catalogue.list_behavioral_competencies(subject.grade_group_id):
                reviews.append(self._new_review(
                    subject, bc.competency_id, bc.rating_id, reviewer_id, reviewer_name,
                    period_id, review_type_id, is_technical=False,
                ))

        if not self.catalogue.review_exists(emp.employee_number, period_id, review_type_id, is_technical=True):
            mappings = self.catalogue.list_job_role_competencies(subject.office_id, subject.job_role_id)
            if not mappings:
                mappings = self._fuzzy_technical_mappings(subject, period_id, review_type_id, reviewer_id)
            for jrc in mappings:
                reviews.append(self._new_review(
                    subject, jrc.competency_id, jrc.rating_id, reviewer_id, reviewer_name,
                    period_id, review_type_id, is_technical=True,
                ))

        if reviews:
            self.db.add_all(reviews)
            self.db.flush()
        return len(reviews)

    def _fuzzy_technical_mappings(
        self,
        subject: ReviewSubject,
        period_id: int,
        review_type_id: int,
        reviewer_id: str,
    ) -> List[JobRoleCompetency]:
        """Office technical competencies whose job role description resembles the subject's."""
        emp = subject.employee
        description = subject.job_description
        seen = set()
        matched = []
        for jrc in self.catalogue.list_office_competencies(subject.office_id):
            role_description = jrc.job_role.description if jrc.job_role else ""
            if not is_partial_match(role_description or "", description):
                continue
            if jrc.competency_id in seen:
                continue
            seen.add(jrc.competency_id)

            if self.catalogue.review_exists(
                emp.employee_number, period_id, review_type_id,
                is_technical=True, competency_id=jrc.competency_id,
            ):
                continue
            if self.catalogue.reviewer_review_exists(
                emp.employee_number, period_id, review_type_id, jrc.competency_id, reviewer_id,
            ):
                continue
            matched.append(jrc)

        if matched:
            self.log_info(
                f"Matched {len(matched)} technical competencies for {emp.employee_number} by job description",
                extra={"employee_number": emp.employee_number},
            )
        return matched

    def _populate_counterpart(
        self,
        subject: ReviewSubject,
        period_id: int,
        review_type_id: int,
        select: Callable[[str], Optional[EmployeeDetails]],
    ) -> int:
        """Peers, Subordinates, Superior: behavioral only, reviewed by one drawn counterpart."""
        emp = subject.employee
        if self.catalogue.review_exists(emp.employee_number, period_id, review_type_id):
            return 0

        behaviorals = self.catalogue.list_behavioral_competencies(subject.grade_group_id)
        reviewer = select(emp.employee_number)
        if reviewer is None or not behaviorals:
            return 0
        if reviewer.employee_number.strip().upper() == emp.employee_number.strip().upper():
            return 0

        reviews = [
            self._new_review(
                subject, bc.competency_id, bc.rating_id, reviewer.employee_number, reviewer.full_name,
                period_id, review_type_id, is_technical=False,
            )
            for bc in behaviorals
        ]
        self.db.add_all(reviews)
        self.db.flush()
        return len(reviews)

    def _new_review(
        self,
        subject: ReviewSubject,
        competency_id: int,
        expected_rating_id: int,
        reviewer_id: str,
        reviewer_name: str,
        period_id: int,
        review_type_id: int,
        is_technical: bool,
    ) -> CompetencyReview:
        emp = subject.employee
        return CompetencyReview(
            competency_id=competency_id,
            employee_number=emp.employee_number,
            expected_rating_id=expected_rating_id,
            reviewer_id=reviewer_id,
            reviewer_name=reviewer_name,
            review_period_id=period_id,
            review_type_id=review_type_id,
            review_date=datetime.now(timezone.utc),
            employee_name=emp.full_name,
            employee_initial=emp.name_initial,
            employee_grade=emp.grade,
            employee_department=emp.department_name,
            is_technical=is_technical,
            actual_rating_value=0,
        )
