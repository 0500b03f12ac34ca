from typing import List, Optional
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
import logging

from app.database import get_db
from app.core.exceptions import NotFoundError
from app.core.schemas import ApiResponse
from app.schemas.review_agent import (
    CalculateReviewProfileRequest,
    CompetencyReviewProfileResponse,
    EmployeeRecordResponse,
    PartialMatchRequest,
    PartialMatchResponse,
    PopulateScopeRequest,
    ReviewRunSummary,
)
from app.services.competency_catalogue import CompetencyCatalogue
from app.services.employee_directory import EmployeeDirectory
from app.services.org_hierarchy import OrgHierarchyResolver
from app.services.partial_match import is_partial_match
from app.services.review_population import ReviewPopulationEngine
from app.services.score_aggregator import ScoreAggregator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/competency", tags=["competency-review"])


# --- Dependency providers ---

def get_org_resolver(db: Session = Depends(get_db)) -> OrgHierarchyResolver:
    return OrgHierarchyResolver(db)


def get_population_engine(
    db: Session = Depends(get_db),
    resolver: OrgHierarchyResolver = Depends(get_org_resolver),
) -> ReviewPopulationEngine:
    return ReviewPopulationEngine(db, resolver=resolver)


def get_score_aggregator(db: Session = Depends(get_db)) -> ScoreAggregator:
    return ScoreAggregator(db)


def _require_employee(db: Session, employee_number: str):
    emp = EmployeeDirectory(db).get_employee(employee_number)
    if emp is None:
        raise NotFoundError(f"Employee {employee_number} not found", details={"employee_number": employee_number})
    return emp


def _employee_response(emp) -> Optional[EmployeeRecordResponse]:
    return EmployeeRecordResponse.model_validate(emp) if emp is not None else None


# --- Reviewer selection ---

@router.get("/reviewers/{employee_number}/subordinate", response_model=ApiResponse[Optional[EmployeeRecordResponse]])
def get_random_subordinate(
    employee_number: str,
    db: Session = Depends(get_db),
    resolver: OrgHierarchyResolver = Depends(get_org_resolver),
):
    _require_employee(db, employee_number)
    return ApiResponse.ok(_employee_response(resolver.select_subordinate(employee_number)))


@router.get("/reviewers/{employee_number}/peer", response_model=ApiResponse[Optional[EmployeeRecordResponse]])
def get_random_peer(
    employee_number: str,
    db: Session = Depends(get_db),
    resolver: OrgHierarchyResolver = Depends(get_org_resolver),
):
    _require_employee(db, employee_number)
    return ApiResponse.ok(_employee_response(resolver.select_peer(employee_number)))


@router.get("/reviewers/{employee_number}/superior", response_model=ApiResponse[Optional[EmployeeRecordResponse]])
def get_random_superior(
    employee_number: str,
    db: Session = Depends(get_db),
    resolver: OrgHierarchyResolver = Depends(get_org_resolver),
):
    _require_employee(db, employee_number)
    return ApiResponse.ok(_employee_response(resolver.select_superior(employee_number)))


@router.get("/reviewers/{employee_number}/head-subordinates", response_model=ApiResponse[List[EmployeeRecordResponse]])
def get_head_subordinates(
    employee_number: str,
    db: Session = Depends(get_db),
    resolver: OrgHierarchyResolver = Depends(get_org_resolver),
):
    _require_employee(db, employee_number)
    subordinates = resolver.get_head_subordinates(employee_number)
    return ApiResponse.ok(
        [EmployeeRecordResponse.model_validate(e) for e in subordinates],
        metadata={"count": len(subordinates)},
    )


# --- Review population ---

@router.post("/reviews/populate", response_model=ApiResponse[ReviewRunSummary])
def populate_reviews(
    scope: PopulateScopeRequest,
    engine: ReviewPopulationEngine = Depends(get_population_engine),
):
    logger.info(f"Review population requested for {scope.label}")
    return ApiResponse.ok(engine.populate(scope))


@router.get("/reviews/populate/all", response_model=ApiResponse[ReviewRunSummary])
def populate_all_reviews(engine: ReviewPopulationEngine = Depends(get_population_engine)):
    return ApiResponse.ok(engine.populate_for_all())


@router.get("/reviews/populate/office/{office_id}", response_model=ApiResponse[ReviewRunSummary])
def populate_office_reviews(office_id: int, engine: ReviewPopulationEngine = Depends(get_population_engine)):
    return ApiResponse.ok(engine.populate_for_office(office_id))


@router.get("/reviews/populate/division/{division_id}", response_model=ApiResponse[ReviewRunSummary])
def populate_division_reviews(division_id: int, engine: ReviewPopulationEngine = Depends(get_population_engine)):
    return ApiResponse.ok(engine.populate_for_division(division_id))


@router.get("/reviews/populate/department/{department_id}", response_model=ApiResponse[ReviewRunSummary])
def populate_department_reviews(department_id: int, engine: ReviewPopulationEngine = Depends(get_population_engine)):
    return ApiResponse.ok(engine.populate_for_department(department_id))


@router.get("/reviews/populate/employee/{employee_number}", response_model=ApiResponse[ReviewRunSummary])
def populate_employee_reviews(employee_number: str, engine: ReviewPopulationEngine = Depends(get_population_engine)):
    return ApiResponse.ok(engine.populate_for_employee(employee_number))


@router.post("/reviews/populate/all/{review_type_name}", response_model=ApiResponse[ReviewRunSummary])
def populate_all_reviews_for_type(
    review_type_name: str,
    engine: ReviewPopulationEngine = Depends(get_population_engine),
):
    return ApiResponse.ok(engine.populate_all_for_review_type(review_type_name))


# --- Score aggregation ---

@router.post("/reviews/calculate", response_model=ApiResponse[List[CompetencyReviewProfileResponse]])
def calculate_review_profile(
    request: CalculateReviewProfileRequest,
    db: Session = Depends(get_db),
    aggregator: ScoreAggregator = Depends(get_score_aggregator),
):
    _require_employee(db, request.employee_number)
    if CompetencyCatalogue(db).get_period(request.review_period_id) is None:
        raise NotFoundError(
            f"Review period {request.review_period_id} not found",
            details={"review_period_id": request.review_period_id},
        )
    profiles = aggregator.calculate(request.employee_number, request.review_period_id, request.is_technical)
    return ApiResponse.ok(
        [CompetencyReviewProfileResponse.model_validate(p) for p in profiles],
        metadata={"is_technical": request.is_technical},
    )


@router.post("/reviews/recalculate", response_model=ApiResponse[ReviewRunSummary])
def recalculate_review_profiles(aggregator: ScoreAggregator = Depends(get_score_aggregator)):
    return ApiResponse.ok(aggregator.recalculate_all())


# --- Job role matching ---

@router.post("/partial-match", response_model=ApiResponse[PartialMatchResponse])
def check_partial_match(request: PartialMatchRequest):
    return ApiResponse.ok(PartialMatchResponse(
        description1=request.description1,
        description2=request.description2,
        is_match=is_partial_match(request.description1, request.description2),
    ))
