# Service modules import models and each other; import them directly
# (e.g. ``from services.visit_service import update_visit``).

from .id_allocator import PatientIdAllocator, next_patient_id
from .registration_service import register_patient

__all__ = ["PatientIdAllocator", "next_patient_id", "register_patient"]
