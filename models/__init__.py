from .patient import Patient, patient_id_seq
from .doctor import Doctor
from .visit import Visit
from .lab_test import LabTest
from .sequence import IdSequence

__all__ = ["Patient", "patient_id_seq", "Doctor", "Visit", "LabTest", "IdSequence"]
