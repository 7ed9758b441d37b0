from .requests import (
    RegistrationRequest,
    PatientUpdateRequest,
    VisitCreateRequest,
    VisitUpdateRequest,
    LabTestRequest,
    LabTestUpdateRequest,
    parse_request,
)
from .views import LabTestView, VisitView, PatientView, RegistrationResult

__all__ = [
    "RegistrationRequest",
    "PatientUpdateRequest",
    "VisitCreateRequest",
    "VisitUpdateRequest",
    "LabTestRequest",
    "LabTestUpdateRequest",
    "parse_request",
    "LabTestView",
    "VisitView",
    "PatientView",
    "RegistrationResult",
]
