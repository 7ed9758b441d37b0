"""Outbound read models, serialised with camelCase keys via ``by_alias``."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _View(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True)


class LabTestView(_View):
    test_id: Optional[int] = None
    visit_id: Optional[int] = None
    patient_id: Optional[str] = None
    name: Optional[str] = None
    result: Optional[str] = None
    reference_range: Optional[str] = None
    status: Optional[str] = None
    test_given_at: Optional[datetime] = None
    result_updated_at: Optional[datetime] = None
    formatted_test_date: Optional[str] = None
    formatted_result_date: Optional[str] = None


class VisitView(_View):
    visit_id: int
    patient_id: str
    doctor_id: Optional[str] = None
    doctor_name: Optional[str] = None
    op_no: Optional[str] = None
    reg_no: Optional[str] = None
    bp: Optional[str] = None
    weight: Optional[str] = None
    temperature: Optional[str] = None
    symptoms: Optional[str] = None
    complaint: Optional[str] = None
    status: Optional[str] = None
    prescription: Optional[str] = None
    notes: Optional[str] = None
    visit_date: Optional[str] = None
    visit_time: Optional[str] = None
    lab_tests: list[LabTestView] = Field(default_factory=list)


class PatientView(_View):
    """Patient demographics flattened with their most recent visit."""

    patient_id: str
    photo: Optional[str] = None
    surname: Optional[str] = None
    name: Optional[str] = None
    father_name: Optional[str] = None
    age: Optional[int] = None
    blood_group: Optional[str] = None
    gender: Optional[str] = None
    national_id: Optional[str] = None
    phone_number: Optional[str] = None
    address: Optional[str] = None
    total_visits: int = 0

    # From the latest visit, absent when the patient has none
    last_visit: Optional[str] = None
    reg_no: Optional[str] = None
    op_no: Optional[str] = None
    bp: Optional[str] = None
    weight: Optional[str] = None
    temperature: Optional[str] = None
    symptoms: Optional[str] = None
    complaints: Optional[str] = None
    status: Optional[str] = None
    visit_date: Optional[str] = None
    visit_time: Optional[str] = None


class RegistrationResult(_View):
    patient: PatientView
    is_new_patient: bool
    message: str

    @classmethod
    def for_new_patient(cls, patient: PatientView) -> "RegistrationResult":
        return cls(
            patient=patient,
            is_new_patient=True,
            message=f"New patient created successfully with ID: {patient.patient_id}",
        )

    @classmethod
    def for_existing_patient(cls, patient: PatientView) -> "RegistrationResult":
        return cls(
            patient=patient,
            is_new_patient=False,
            message=f"Added new visit for existing patient with ID: {patient.patient_id}",
        )
