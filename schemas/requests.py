"""
Inbound request contracts.

Clients send the same logical field under several spellings (camelCase,
snake_case and a few legacy names such as ``aadharNumber``). Every field
lists the spellings it accepts and they all land on one attribute, so the
services only ever see the canonical name.
"""

from datetime import datetime
from typing import Any, Optional, Type, TypeVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from core.exceptions import ValidationError


def _aliases(*names: str) -> AliasChoices:
    return AliasChoices(*names)


class _Request(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def provided_fields(self) -> dict[str, Any]:
        """Fields the caller actually supplied with a non-null value."""
        return self.model_dump(exclude_none=True)


# -----------------------------
# Patients
# -----------------------------
class RegistrationRequest(_Request):
    surname: str = Field(min_length=1, max_length=100)
    name: str = Field(min_length=1, max_length=100)
    father_name: Optional[str] = Field(None, validation_alias=_aliases("fatherName", "father_name"))
    age: Optional[int] = Field(None, ge=0)
    blood_group: Optional[str] = Field(None, validation_alias=_aliases("bloodGroup", "blood_group"))
    gender: Optional[str] = None
    national_id: str = Field(
        pattern=r"^[0-9]{12}$",
        validation_alias=_aliases("nationalId", "national_id", "aadharNumber", "aadhar_number"),
    )
    phone_number: Optional[str] = Field(
        None,
        pattern=r"^$|^[0-9]{10}$",
        validation_alias=_aliases("phoneNumber", "phone_number", "phone"),
    )
    address: Optional[str] = None
    photo: Optional[str] = None

    # First visit
    bp: Optional[str] = None
    weight: Optional[str] = None
    temperature: Optional[str] = None
    symptoms: Optional[str] = None
    complaint: Optional[str] = Field(None, validation_alias=_aliases("complaint", "complaints"))
    status: Optional[str] = None


class PatientUpdateRequest(_Request):
    surname: Optional[str] = Field(None, max_length=100)
    name: Optional[str] = Field(None, max_length=100)
    father_name: Optional[str] = Field(None, validation_alias=_aliases("fatherName", "father_name"))
    age: Optional[int] = Field(None, ge=0)
    blood_group: Optional[str] = Field(None, validation_alias=_aliases("bloodGroup", "blood_group"))
    gender: Optional[str] = None
    national_id: Optional[str] = Field(
        None,
        pattern=r"^[0-9]{12}$",
        validation_alias=_aliases("nationalId", "national_id", "aadharNumber", "aadhar_number"),
    )
    phone_number: Optional[str] = Field(
        None,
        pattern=r"^$|^[0-9]{10}$",
        validation_alias=_aliases("phoneNumber", "phone_number", "phone"),
    )
    address: Optional[str] = None
    photo: Optional[str] = None


# -----------------------------
# Visits
# -----------------------------
class VisitUpdateRequest(_Request):
    doctor_id: Optional[str] = Field(None, validation_alias=_aliases("doctorId", "doctor_id"))
    op_no: Optional[str] = Field(None, validation_alias=_aliases("opNo", "op_no"))
    reg_no: Optional[str] = Field(None, validation_alias=_aliases("regNo", "reg_no"))
    bp: Optional[str] = None
    weight: Optional[str] = None
    temperature: Optional[str] = None
    symptoms: Optional[str] = None
    complaint: Optional[str] = Field(None, validation_alias=_aliases("complaint", "complaints"))
    status: Optional[str] = None
    prescription: Optional[str] = None
    notes: Optional[str] = None


class VisitCreateRequest(VisitUpdateRequest):
    patient_id: str = Field(min_length=1, validation_alias=_aliases("patientId", "patient_id"))


# -----------------------------
# Lab tests
# -----------------------------
class LabTestUpdateRequest(_Request):
    patient_id: Optional[str] = Field(None, validation_alias=_aliases("patientId", "patient_id"))
    name: Optional[str] = Field(None, validation_alias=_aliases("name", "testName", "test_name"))
    result: Optional[str] = None
    reference_range: Optional[str] = Field(
        None, validation_alias=_aliases("referenceRange", "reference_range")
    )
    status: Optional[str] = None
    test_given_at: Optional[datetime] = Field(
        None, validation_alias=_aliases("testGivenAt", "test_given_at")
    )
    result_updated_at: Optional[datetime] = Field(
        None, validation_alias=_aliases("resultUpdatedAt", "result_updated_at")
    )


class LabTestRequest(LabTestUpdateRequest):
    visit_id: int = Field(validation_alias=_aliases("visitId", "visit_id"))
    name: str = Field(validation_alias=_aliases("name", "testName", "test_name"))


RequestT = TypeVar("RequestT", bound=BaseModel)


def parse_request(model: Type[RequestT], payload: dict[str, Any] | None) -> RequestT:
    """Validate a raw payload into ``model``, raising the core ValidationError."""
    if payload is None:
        raise ValidationError(f"{model.__name__} payload cannot be empty")
    try:
        return model.model_validate(payload)
    except PydanticValidationError as exc:
        details = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'payload'}: {err['msg']}"
            for err in exc.errors()
        )
        raise ValidationError(f"Invalid {model.__name__}: {details}") from exc
