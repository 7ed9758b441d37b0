"""
Lab tests and the visit -> lab test lookup.

``labtests.visit_id`` is a plain column, not a managed relation, and the
access paths disagree on whether to trust it directly or to join through
``visits``. Lookups therefore run an ordered chain of strategies and take
the first one that does not raise; when all of them fail the caller gets
an empty list instead of an error.
"""

import logging
from typing import Callable, NamedTuple, Sequence

from sqlalchemy import func, select, text
from sqlalchemy.orm import Session

from core.exceptions import NotFoundError
from core.time_utils import format_datetime, now_naive
from models.lab_test import LabTest
from models.visit import Visit
from schemas.requests import LabTestRequest, LabTestUpdateRequest
from schemas.views import LabTestView

logger = logging.getLogger(__name__)

DEFAULT_TEST_NAME = "Unknown Test"
DEFAULT_REFERENCE_RANGE = "Pending"
DEFAULT_STATUS = "pending"


class LookupStrategy(NamedTuple):
    name: str
    fetch: Callable[[Session, int], list[LabTest]]


def _dedupe(rows) -> list[LabTest]:
    by_id: dict[int, LabTest] = {}
    for row in rows:
        by_id.setdefault(row.test_id, row)
    return [by_id[k] for k in sorted(by_id)]


# -----------------------------
# Strategies
# -----------------------------
def direct_filter(db: Session, visit_id: int) -> list[LabTest]:
    return (
        db.query(LabTest)
        .filter(LabTest.visit_id == visit_id)
        .order_by(LabTest.test_id)
        .all()
    )


def orm_select(db: Session, visit_id: int) -> list[LabTest]:
    stmt = select(LabTest).where(LabTest.visit_id == visit_id).order_by(LabTest.test_id)
    return list(db.scalars(stmt).all())


NATIVE_BY_VISIT = text(
    "SELECT * FROM labtests WHERE visit_id = :visit_id ORDER BY test_id"
).columns(*LabTest.__table__.columns)

COMPREHENSIVE_BY_VISIT = text(
    "SELECT t.* FROM labtests t WHERE t.visit_id = :visit_id "
    "UNION "
    "SELECT t.* FROM labtests t JOIN visits v ON t.visit_id = v.id WHERE v.id = :visit_id"
).columns(*LabTest.__table__.columns)

NATIVE_BY_VISIT_AND_PATIENT = text(
    "SELECT * FROM labtests WHERE visit_id = :visit_id AND patient_id = :patient_id "
    "ORDER BY test_id"
).columns(*LabTest.__table__.columns)


def native_sql(db: Session, visit_id: int) -> list[LabTest]:
    stmt = select(LabTest).from_statement(NATIVE_BY_VISIT)
    return list(db.scalars(stmt, {"visit_id": visit_id}).all())


def comprehensive(db: Session, visit_id: int) -> list[LabTest]:
    stmt = select(LabTest).from_statement(COMPREHENSIVE_BY_VISIT)
    return _dedupe(db.scalars(stmt, {"visit_id": visit_id}).all())


def through_visit(db: Session, visit_id: int) -> list[LabTest]:
    return (
        db.query(LabTest)
        .join(Visit, LabTest.visit_id == Visit.id)
        .filter(Visit.id == visit_id)
        .order_by(LabTest.test_id)
        .all()
    )


VISIT_CHAIN: tuple[LookupStrategy, ...] = (
    LookupStrategy("direct_filter", direct_filter),
    LookupStrategy("orm_select", orm_select),
    LookupStrategy("native_sql", native_sql),
    LookupStrategy("comprehensive", comprehensive),
    LookupStrategy("through_visit", through_visit),
)


def _run_chain(db: Session, chain: Sequence[LookupStrategy], visit_id: int) -> list[LabTest]:
    last_error: Exception | None = None
    for strategy in chain:
        try:
            # A failed strategy only rolls back to this savepoint.
            with db.begin_nested():
                rows = strategy.fetch(db, visit_id)
        except Exception as exc:
            logger.warning("Lab-test lookup %s failed for visit %s: %s", strategy.name, visit_id, exc)
            last_error = exc
            continue
        logger.info("Lab-test lookup %s found %d rows for visit %s", strategy.name, len(rows), visit_id)
        return rows

    logger.error(
        "Unable to retrieve lab tests for visit %s, every lookup failed. Last error: %s",
        visit_id,
        last_error,
    )
    return []


# -----------------------------
# Lookups
# -----------------------------
def lab_tests_by_visit(
    db: Session,
    visit_id: int,
    chain: Sequence[LookupStrategy] = VISIT_CHAIN,
) -> list[LabTest]:
    return _run_chain(db, chain, visit_id)


def lab_tests_by_visit_and_patient(
    db: Session,
    visit_id: int,
    patient_id: str,
    chain: Sequence[LookupStrategy] = VISIT_CHAIN,
) -> list[LabTest]:
    """Filter on both identifiers, falling back to the visit alone.

    Legacy rows may carry a stale or empty patient_id, so an empty result
    here is not trusted either.
    """
    try:
        stmt = select(LabTest).from_statement(NATIVE_BY_VISIT_AND_PATIENT)
        with db.begin_nested():
            rows = list(db.scalars(stmt, {"visit_id": visit_id, "patient_id": patient_id}).all())
    except Exception as exc:
        logger.warning(
            "Lab-test lookup by visit %s and patient %s failed: %s", visit_id, patient_id, exc
        )
        return lab_tests_by_visit(db, visit_id, chain)

    if not rows:
        logger.info(
            "No lab tests for visit %s and patient %s, falling back to visit only",
            visit_id,
            patient_id,
        )
        return lab_tests_by_visit(db, visit_id, chain)
    return rows


def lab_tests_by_visit_direct(db: Session, visit_id: int) -> list[LabTest]:
    """Native SQL first, the comprehensive union when that comes back empty."""
    try:
        with db.begin_nested():
            rows = native_sql(db, visit_id)
            if not rows:
                rows = comprehensive(db, visit_id)
                logger.info("Comprehensive query found %d lab tests for visit %s", len(rows), visit_id)
        return rows
    except Exception as exc:
        logger.error("Direct lab-test query failed for visit %s: %s", visit_id, exc)
        return []


# -----------------------------
# CRUD
# -----------------------------
def get_all_lab_tests(db: Session) -> list[LabTest]:
    tests = db.query(LabTest).order_by(LabTest.test_id).all()
    logger.info("Found %d lab tests in database", len(tests))
    return tests


def get_lab_test(db: Session, test_id: int) -> LabTest:
    lab_test = db.query(LabTest).filter(LabTest.test_id == test_id).first()
    if lab_test is None:
        raise NotFoundError(f"Lab test not found with ID: {test_id}")
    return lab_test


def count_lab_tests(db: Session) -> int:
    return db.scalar(select(func.count()).select_from(LabTest)) or 0


def add_lab_test(db: Session, request: LabTestRequest) -> LabTest:
    visit = db.query(Visit).filter(Visit.id == request.visit_id).first()
    if visit is None:
        raise NotFoundError(f"Visit not found with ID: {request.visit_id}")

    result = request.result or ""
    lab_test = LabTest(
        visit_id=request.visit_id,
        patient_id=request.patient_id or visit.patient_id,
        test_name=(request.name or "").strip() or DEFAULT_TEST_NAME,
        result=result,
        reference_range=request.reference_range or DEFAULT_REFERENCE_RANGE,
        status=request.status or DEFAULT_STATUS,
        test_given_at=request.test_given_at or now_naive(),
    )
    if result:
        lab_test.result_updated_at = request.result_updated_at or now_naive()

    db.add(lab_test)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(lab_test)

    logger.info("Lab test created with ID: %s for visit %s", lab_test.test_id, lab_test.visit_id)
    return lab_test


def update_lab_test(db: Session, test_id: int, patch: LabTestUpdateRequest) -> LabTest:
    lab_test = get_lab_test(db, test_id)
    fields = patch.provided_fields()

    if "name" in fields:
        lab_test.test_name = fields["name"]

    result = fields.get("result")
    if result is not None and result != lab_test.result:
        lab_test.result = result
        if result:
            lab_test.result_updated_at = now_naive()

    if "reference_range" in fields:
        lab_test.reference_range = fields["reference_range"]
    if "status" in fields:
        lab_test.status = fields["status"]
    if fields.get("patient_id"):
        lab_test.patient_id = fields["patient_id"]

    # Explicit timestamps win over the automatic stamp above.
    if "test_given_at" in fields:
        lab_test.test_given_at = fields["test_given_at"]
    if "result_updated_at" in fields:
        lab_test.result_updated_at = fields["result_updated_at"]

    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(lab_test)

    logger.info("Lab test updated with ID: %s", test_id)
    return lab_test


def delete_lab_test(db: Session, test_id: int) -> None:
    lab_test = get_lab_test(db, test_id)
    db.delete(lab_test)
    db.commit()
    logger.info("Lab test deleted with ID: %s", test_id)


# -----------------------------
# Views
# -----------------------------
def to_lab_test_view(lab_test: LabTest) -> LabTestView:
    return LabTestView(
        test_id=lab_test.test_id,
        visit_id=lab_test.visit_id,
        patient_id=lab_test.patient_id,
        name=lab_test.test_name,
        result=lab_test.result,
        reference_range=lab_test.reference_range,
        status=lab_test.status,
        test_given_at=lab_test.test_given_at,
        result_updated_at=lab_test.result_updated_at,
        formatted_test_date=format_datetime(lab_test.test_given_at),
        formatted_result_date=format_datetime(lab_test.result_updated_at),
    )
