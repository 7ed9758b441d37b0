import logging

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from core.exceptions import NotFoundError
from core.time_utils import day_bounds, format_date, format_time, now_naive
from models.patient import Patient
from models.visit import Visit
from schemas.requests import RegistrationRequest, VisitCreateRequest, VisitUpdateRequest
from schemas.views import VisitView
from services.labtest_service import to_lab_test_view
from services.patient_service import get_patient

logger = logging.getLogger(__name__)

# Fields a visit update may overwrite; prescription is handled separately.
PATCHABLE_FIELDS = (
    "doctor_id",
    "op_no",
    "reg_no",
    "bp",
    "weight",
    "temperature",
    "symptoms",
    "complaint",
    "status",
    "notes",
)


# -----------------------------
# Visit counting rule
# -----------------------------
def should_increment_visit_count(patient: Patient, prescription: str | None) -> bool:
    """
    A visit counts once the doctor has actually prescribed something.

    True while the patient's counter is still 0 and a non-empty
    prescription is being saved, whether or not the visit already carried
    the same text. Creating patients or visits never counts, nor do later
    prescriptions once the counter has moved.
    """
    return (patient.total_visits or 0) == 0 and bool(prescription)


def _record_first_visit(db: Session, patient_id: str) -> bool:
    # Conditional write: of two concurrent first prescriptions only one matches.
    table = Patient.__table__
    result = db.execute(
        update(table)
        .where(table.c.patient_id == patient_id, table.c.total_visits == 0)
        .values(total_visits=1)
    )
    return result.rowcount == 1


# -----------------------------
# Create visits
# -----------------------------
def create_initial_visit(db: Session, patient: Patient, registration: RegistrationRequest) -> Visit:
    """First visit of a registration; flushed only, the caller commits."""
    visit = Visit(
        patient_id=patient.patient_id,
        bp=registration.bp,
        weight=registration.weight,
        temperature=registration.temperature,
        symptoms=registration.symptoms,
        complaint=registration.complaint,
        status=registration.status,
        visit_date=now_naive(),
    )
    db.add(visit)
    db.flush()
    logger.info("Visit %s created for patient %s", visit.id, patient.patient_id)
    return visit


def create_visit(db: Session, request: VisitCreateRequest) -> Visit:
    patient = get_patient(db, request.patient_id)

    visit = Visit(
        patient_id=patient.patient_id,
        doctor_id=request.doctor_id,
        op_no=request.op_no,
        reg_no=request.reg_no,
        bp=request.bp,
        weight=request.weight,
        temperature=request.temperature,
        symptoms=request.symptoms,
        complaint=request.complaint,
        status=request.status,
        prescription=request.prescription,
        notes=request.notes,
        visit_date=now_naive(),
    )
    db.add(visit)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    db.refresh(visit)

    logger.info("Visit created with ID: %s for patient %s", visit.id, patient.patient_id)
    return visit


# -----------------------------
# Update visit attributes
# -----------------------------
def update_visit(db: Session, visit_id: int, patch: VisitUpdateRequest) -> Visit:
    """
    Field-by-field update: every supplied non-null value overwrites the
    stored one, everything else is left alone. An empty prescription is
    ignored rather than clearing the stored one.

    The first-prescription counter bump runs in the same transaction as the
    visit change.
    """
    visit = get_visit(db, visit_id)
    fields = patch.provided_fields()

    for key in PATCHABLE_FIELDS:
        if key in fields:
            setattr(visit, key, fields[key])

    prescription = fields.get("prescription")
    if prescription:
        visit.prescription = prescription

    try:
        if prescription:
            patient = get_patient(db, visit.patient_id)
            if should_increment_visit_count(patient, visit.prescription):
                if _record_first_visit(db, patient.patient_id):
                    logger.info(
                        "First prescription saved, total visits of patient %s set to 1",
                        patient.patient_id,
                    )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(visit)
    logger.info("Visit updated with ID: %s", visit.id)
    return visit


# -----------------------------
# Reads
# -----------------------------
def get_visit(db: Session, visit_id: int) -> Visit:
    visit = db.query(Visit).filter(Visit.id == visit_id).first()
    if visit is None:
        raise NotFoundError(f"Visit not found with ID: {visit_id}")
    return visit


def get_all_visits(db: Session) -> list[Visit]:
    visits = db.query(Visit).order_by(Visit.id).all()
    logger.info("Found %d visits in database", len(visits))
    return visits


def get_visits_by_patient(db: Session, patient_id: str) -> list[Visit]:
    return db.query(Visit).filter(Visit.patient_id == patient_id).order_by(Visit.id).all()


def get_visits_by_doctor(db: Session, doctor_id: str) -> list[Visit]:
    return db.query(Visit).filter(Visit.doctor_id == doctor_id).order_by(Visit.id).all()


def _visits_on_day(db: Session, day_offset: int) -> list[Visit]:
    start, end = day_bounds(day_offset)
    return (
        db.query(Visit)
        .filter(Visit.visit_date >= start, Visit.visit_date < end)
        .order_by(Visit.visit_date.desc(), Visit.id.desc())
        .all()
    )


def get_today_visits(db: Session) -> list[Visit]:
    return _visits_on_day(db, 0)


def get_yesterday_visits(db: Session) -> list[Visit]:
    return _visits_on_day(db, -1)


def get_visits_with_lab_tests(db: Session, patient_id: str) -> list[Visit]:
    """Visits of a patient, newest first, with their lab tests loaded up front."""
    try:
        return (
            db.query(Visit)
            .options(selectinload(Visit.lab_tests))
            .filter(Visit.patient_id == patient_id)
            .order_by(Visit.visit_date.desc(), Visit.id.desc())
            .all()
        )
    except SQLAlchemyError as exc:
        logger.error("Eager lab-test fetch failed for patient %s: %s", patient_id, exc)
        db.rollback()
        logger.info("Falling back to standard visit fetch")
        return get_visits_by_patient(db, patient_id)


# -----------------------------
# Views
# -----------------------------
def to_visit_view(visit: Visit) -> VisitView:
    return VisitView(
        visit_id=visit.id,
        patient_id=visit.patient_id,
        doctor_id=visit.doctor_id,
        doctor_name=visit.doctor.name if visit.doctor is not None else None,
        op_no=visit.op_no,
        reg_no=visit.reg_no,
        bp=visit.bp,
        weight=visit.weight,
        temperature=visit.temperature,
        symptoms=visit.symptoms,
        complaint=visit.complaint,
        status=visit.status,
        prescription=visit.prescription,
        notes=visit.notes,
        visit_date=format_date(visit.visit_date),
        visit_time=format_time(visit.visit_date),
        lab_tests=[to_lab_test_view(t) for t in visit.lab_tests],
    )
