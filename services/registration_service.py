import logging

from sqlalchemy.orm import Session

from core.logging_config import mask_national_id
from schemas.requests import RegistrationRequest
from schemas.views import RegistrationResult
from services.id_allocator import PatientIdAllocator
from services.patient_service import resolve_patient
from services.patient_view import compose_patient_view
from services.visit_service import create_initial_visit

logger = logging.getLogger(__name__)


def register_patient(
    db: Session,
    registration: RegistrationRequest,
    allocator: PatientIdAllocator | None = None,
) -> RegistrationResult:
    """
    Register a patient at the front desk and open their visit.

    A first-time national-ID creates the patient; a known one with the same
    name (case-insensitive) reuses it. Either way a new visit is opened.
    Patient and visit are committed together or not at all. The visit
    counter is left alone here; it only moves on the first prescription.
    """
    logger.info(
        "Starting patient registration for national-ID %s",
        mask_national_id(registration.national_id),
    )
    try:
        patient, is_new = resolve_patient(db, registration, allocator)
        create_initial_visit(db, patient, registration)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(patient)
    view = compose_patient_view(db, patient)

    if is_new:
        logger.info("Registration completed for new patient %s", patient.patient_id)
        return RegistrationResult.for_new_patient(view)

    logger.info("Visit added for existing patient %s", patient.patient_id)
    return RegistrationResult.for_existing_patient(view)
