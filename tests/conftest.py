import pytest
import os
from types import SimpleNamespace
from datetime import date
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set env before importing app components
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"

from app.database import Base, get_db
from app.main import app
from app.models.employee import EmployeeDetails
from app.models.organogram import Office
from app.models.review_period import ReviewPeriod
from app.models.competency import (
    AssignJobGradeGroup,
    BehavioralCompetency,
    Competency,
    CompetencyCategory,
    JobGrade,
    JobGradeGroup,
    JobRole,
    JobRoleCompetency,
    Rating,
    ReviewType,
)
from fastapi.testclient import TestClient

# SQLite in-memory database configuration
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"


class FirstChoice:
    """Deterministic stand-in for random.Random: always the first candidate."""

    def __init__(self):
        self.calls = []

    def choice(self, seq):
        self.calls.append(list(seq))
        return seq[0]


@pytest.fixture(scope="function")
def db_session():
    """
    A fresh database per test.
    Services commit and roll back on their own, so tests cannot share an outer transaction.
    """
    engine = create_engine(
        SQLALCHEMY_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    yield session

    session.close()
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def client(db_session):
    """Get a TestClient that uses the test database session via dependency override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def first_choice():
    return FirstChoice()


@pytest.fixture(scope="function")
def make_employee(db_session):
    """Factory for directory rows; defaults place everyone in office 1 / division 10 / department 100."""
    def _make(employee_number, grade, **kwargs):
        values = dict(
            first_name=f"First{employee_number}",
            last_name=f"Last{employee_number}",
            office_id=1,
            office_name="Treasury Office",
            division_id=10,
            division_name="Banking Division",
            department_id=100,
            department_name="Banking Department",
            job_name="Officer",
            person_type_id=1120,
        )
        values.update(kwargs)
        emp = EmployeeDetails(employee_number=employee_number, grade=grade, **values)
        db_session.add(emp)
        db_session.commit()
        return emp
    return _make


@pytest.fixture(scope="function")
def catalogue(db_session):
    """
    A small but complete competency catalogue:
    current period, the five review types, ratings 1-5, one grade group
    covering the common grades, two behavioral and two technical competencies,
    office 1 with a "Cash Officer" job role mapped to Cash Management.
    """
    period = ReviewPeriod(
        name="2026 Annual Review", start_date=date(2026, 1, 1), end_date=date(2026, 12, 31),
        is_active=True, is_approved=True,
    )
    db_session.add(period)

    review_types = {}
    for type_id, name in ((1, "Supervisor"), (2, "Peers"), (3, "Self"), (4, "Subordinates"), (5, "Superior")):
        review_types[name] = ReviewType(id=type_id, review_type_name=name)
        db_session.add(review_types[name])

    ratings = {}
    for value, name in ((1, "Poor"), (2, "Fair"), (3, "Good"), (4, "Very Good"), (5, "Excellent")):
        ratings[value] = Rating(id=value, name=name, value=value)
        db_session.add(ratings[value])

    group = JobGradeGroup(group_name="Officers")
    db_session.add(group)
    db_session.flush()
    for code in ("02", "03", "04", "05", "06", "07", "08", "09", "41"):
        grade = JobGrade(grade_code=code, grade_name=f"Grade {code}")
        db_session.add(grade)
        db_session.flush()
        db_session.add(AssignJobGradeGroup(job_grade_group_id=group.id, job_grade_id=grade.id))

    behavioral = CompetencyCategory(category_name="Behavioral", is_technical=False)
    technical = CompetencyCategory(category_name="Technical", is_technical=True)
    db_session.add_all([behavioral, technical])
    db_session.flush()

    integrity = Competency(competency_name="Integrity", competency_category_id=behavioral.id)
    teamwork = Competency(competency_name="Teamwork", competency_category_id=behavioral.id)
    cash = Competency(competency_name="Cash Management", competency_category_id=technical.id)
    contracts = Competency(competency_name="Contract Drafting", competency_category_id=technical.id)
    db_session.add_all([integrity, teamwork, cash, contracts])
    db_session.flush()

    db_session.add_all([
        BehavioralCompetency(competency_id=integrity.id, job_grade_group_id=group.id, rating_id=ratings[3].id),
        BehavioralCompetency(competency_id=teamwork.id, job_grade_group_id=group.id, rating_id=ratings[3].id),
    ])

    office = Office(id=1, office_name="Treasury Office", division_id=10)
    db_session.add(office)

    cash_officer = JobRole(job_role_name="Cash Officer", description="Banking.Treasury Office.Cash Operations")
    analyst = JobRole(job_role_name="Treasury Analyst", description="Banking.Treasury Office.Cash Management")
    counsel = JobRole(job_role_name="Legal Counsel", description="Legal.Compliance Unit.Contracts")
    db_session.add_all([cash_officer, analyst, counsel])
    db_session.flush()

    db_session.add_all([
        JobRoleCompetency(office_id=office.id, job_role_id=cash_officer.id, competency_id=cash.id, rating_id=ratings[4].id),
        JobRoleCompetency(office_id=office.id, job_role_id=analyst.id, competency_id=cash.id, rating_id=ratings[4].id),
        JobRoleCompetency(office_id=office.id, job_role_id=counsel.id, competency_id=contracts.id, rating_id=ratings[3].id),
    ])
    db_session.commit()

    return SimpleNamespace(
        period=period,
        review_types=review_types,
        ratings=ratings,
        grade_group=group,
        behavioral_category=behavioral,
        technical_category=technical,
        integrity=integrity,
        teamwork=teamwork,
        cash=cash,
        contracts=contracts,
        office=office,
        cash_officer=cash_officer,
        analyst=analyst,
        counsel=counsel,
    )
