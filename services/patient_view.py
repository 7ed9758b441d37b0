import logging

from sqlalchemy.orm import Session

from core.photo import encode_photo
from core.time_utils import format_date, format_time
from models.patient import Patient
from models.visit import Visit
from schemas.views import PatientView
from services.patient_service import get_patient

logger = logging.getLogger(__name__)


def get_latest_visit(db: Session, patient_id: str) -> Visit | None:
    return (
        db.query(Visit)
        .filter(Visit.patient_id == patient_id)
        .order_by(Visit.visit_date.desc(), Visit.id.desc())
        .first()
    )


def compose_patient_view(db: Session, patient: Patient) -> PatientView:
    """
    Flatten a patient and their most recent visit into the list-view shape.

    Visit fields (vitals, symptoms, complaint, status, registration / OP
    numbers, date and time) stay None when the patient has no visit yet.
    """
    view = PatientView(
        patient_id=patient.patient_id,
        photo=encode_photo(patient.photo),
        surname=patient.surname,
        name=patient.name,
        father_name=patient.father_name,
        age=patient.age,
        blood_group=patient.blood_group,
        gender=patient.gender,
        national_id=patient.national_id,
        phone_number=patient.phone_number,
        address=patient.address,
        total_visits=patient.total_visits or 0,
    )

    latest = get_latest_visit(db, patient.patient_id)
    if latest is None:
        return view

    view.reg_no = latest.reg_no
    view.op_no = latest.op_no
    view.bp = latest.bp
    view.weight = latest.weight
    view.temperature = latest.temperature
    view.symptoms = latest.symptoms
    view.complaints = latest.complaint
    view.status = latest.status
    if latest.visit_date is not None:
        view.last_visit = format_date(latest.visit_date)
        view.visit_date = format_date(latest.visit_date)
        view.visit_time = format_time(latest.visit_date)
    return view


def compose_patient_views(db: Session, patients: list[Patient]) -> list[PatientView]:
    return [compose_patient_view(db, p) for p in patients]


def refresh_patient_view(db: Session, patient_id: str) -> PatientView:
    """Drop cached state and rebuild the view from what is stored now."""
    logger.info("Refreshing patient details for ID: %s", patient_id)
    db.expire_all()
    return compose_patient_view(db, get_patient(db, patient_id))
