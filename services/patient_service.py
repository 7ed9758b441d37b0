import logging

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.exceptions import ConflictError, NotFoundError
from core.logging_config import mask_national_id
from core.photo import decode_photo, is_data_url
from core.time_utils import day_bounds
from models.patient import Patient
from models.visit import Visit
from schemas.requests import PatientUpdateRequest, RegistrationRequest
from services.id_allocator import PatientIdAllocator, default_allocator

logger = logging.getLogger(__name__)

# A lost insert race is retried this many times before giving up.
MAX_RESOLVE_ATTEMPTS = 3


# ------------------------------------------
# Lookups
# ------------------------------------------
def get_patient_by_national_id(db: Session, national_id: str) -> Patient | None:
    return db.query(Patient).filter(Patient.national_id == national_id).first()


def find_patient(db: Session, patient_id: str) -> Patient | None:
    return db.query(Patient).filter(Patient.patient_id == patient_id).first()


def get_patient(db: Session, patient_id: str) -> Patient:
    patient = find_patient(db, patient_id)
    if patient is None:
        raise NotFoundError(f"Patient not found with ID: {patient_id}")
    return patient


def get_all_patients(db: Session) -> list[Patient]:
    patients = db.query(Patient).order_by(Patient.patient_id).all()
    logger.info("Found %d patients in database", len(patients))
    return patients


# ------------------------------------------
# New or returning patient
# ------------------------------------------
def _names_match(stored: str | None, incoming: str | None) -> bool:
    return (stored or "").lower() == (incoming or "").lower()


def _new_patient(patient_id: str, registration: RegistrationRequest, photo: bytes | None) -> Patient:
    return Patient(
        patient_id=patient_id,
        photo=photo,
        surname=registration.surname,
        name=registration.name,
        father_name=registration.father_name,
        age=registration.age,
        blood_group=registration.blood_group,
        gender=registration.gender,
        national_id=registration.national_id,
        phone_number=registration.phone_number,
        address=registration.address,
        total_visits=0,
    )


def resolve_patient(
    db: Session,
    registration: RegistrationRequest,
    allocator: PatientIdAllocator | None = None,
) -> tuple[Patient, bool]:
    """
    Decide whether ``registration`` is a new patient or a returning one.

    The national-ID is the identity key; the name is only checked against
    it. Returns ``(patient, is_new)``. A new patient is added and flushed
    but not committed, so the caller can bundle it with the first visit.

    Raises ValidationError for an undecodable photo (before touching the
    store) and ConflictError when the national-ID belongs to someone with a
    different name.

    Losing an insert race on the unique national-ID rolls the session back
    and re-runs the lookup, so resolve must be the first write of the unit
    of work.
    """
    allocator = allocator or default_allocator
    photo = decode_photo(registration.photo)
    masked = mask_national_id(registration.national_id)

    for attempt in range(1, MAX_RESOLVE_ATTEMPTS + 1):
        existing = get_patient_by_national_id(db, registration.national_id)

        if existing is not None:
            logger.info("Found existing patient %s for national-ID %s", existing.patient_id, masked)
            if not _names_match(existing.name, registration.name):
                logger.error(
                    "National-ID %s already registered to patient %s under a different name",
                    masked,
                    existing.patient_id,
                )
                raise ConflictError(
                    f"A patient with national-ID {registration.national_id} already exists "
                    f"with name: {existing.name}. Please verify your information or contact admin."
                )
            return existing, False

        logger.info("No patient with national-ID %s, creating a new record", masked)
        patient = _new_patient(allocator.next(db), registration, photo)
        db.add(patient)
        try:
            db.flush()
        except IntegrityError:
            # Someone else registered the same national-ID in between.
            db.rollback()
            logger.warning(
                "Insert race on national-ID %s (attempt %d/%d), retrying lookup",
                masked,
                attempt,
                MAX_RESOLVE_ATTEMPTS,
            )
            continue

        logger.info("Patient saved with ID: %s", patient.patient_id)
        return patient, True

    raise ConflictError(
        f"Could not register national-ID {registration.national_id}: "
        "the record kept changing, verify input and retry"
    )


# ------------------------------------------
# Update patient basic info
# ------------------------------------------
def update_patient(db: Session, patient_id: str, patch: PatientUpdateRequest) -> Patient:
    """Partial update: only supplied fields change.

    The photo is replaced only when a ``data:image`` URL is sent.
    """
    patient = get_patient(db, patient_id)
    fields = patch.provided_fields()

    photo = fields.pop("photo", None)
    if is_data_url(photo):
        patient.photo = decode_photo(photo)

    for key, value in fields.items():
        setattr(patient, key, value)

    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        logger.error("Update of patient %s violates a uniqueness constraint", patient_id)
        raise ConflictError(
            f"Patient {patient_id} could not be updated: national-ID already in use"
        ) from exc

    db.refresh(patient)
    logger.info("Patient %s updated", patient_id)
    return patient


# ------------------------------------------
# Search / listing
# ------------------------------------------
def search_patients(db: Session, query: str | None) -> list[Patient]:
    if query is None or not query.strip():
        return get_all_patients(db)

    term = query.strip()
    like = f"%{term.lower()}%"
    return (
        db.query(Patient)
        .filter(
            or_(
                Patient.name.ilike(like),
                Patient.surname.ilike(like),
                Patient.national_id.contains(term),
            )
        )
        .order_by(Patient.patient_id)
        .all()
    )


def _distinct_patients(visits: list[Visit]) -> list[Patient]:
    # Keyed by patient_id; the first visit seen for a patient decides its position.
    seen: dict[str, Patient] = {}
    for visit in visits:
        if visit.patient_id not in seen and visit.patient is not None:
            seen[visit.patient_id] = visit.patient
    return list(seen.values())


def get_patients_by_visit_category(db: Session, category: str | None) -> list[Patient]:
    """Patients with a visit "today" or "yesterday"; any other category lists everyone."""
    offsets = {"today": 0, "yesterday": -1}
    offset = offsets.get((category or "all").strip().lower())
    if offset is None:
        return get_all_patients(db)

    start, end = day_bounds(offset)
    visits = (
        db.query(Visit)
        .filter(Visit.visit_date >= start, Visit.visit_date < end)
        .order_by(Visit.visit_date.desc(), Visit.id.desc())
        .all()
    )
    return _distinct_patients(visits)
