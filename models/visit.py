# models/visit.py

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy import Text
from sqlalchemy.orm import relationship
from core.time_utils import now_naive

from core.database import Base


class Visit(Base):
    __tablename__ = "visits"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Link to patient (no cascade)
    patient_id = Column(String(10), ForeignKey("patients.patient_id"), nullable=False, index=True)

    # Attending doctor, optional
    doctor_id = Column(String(50), nullable=True, index=True)

    # Front-desk numbers
    op_no = Column(String(10), nullable=True)
    reg_no = Column(String(10), nullable=True)

    # Vitals, stored as entered ("120/80", "70kg", "98.6°F")
    bp = Column(String(10), nullable=True)
    weight = Column(String(10), nullable=True)
    temperature = Column(String(10), nullable=True)

    symptoms = Column(Text, nullable=True)
    complaint = Column(Text, nullable=True)
    status = Column(String(10), nullable=True)

    # Doctor inputs
    prescription = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)

    visit_date = Column(DateTime, default=now_naive, index=True)

    # ORM relationships
    patient = relationship("Patient", backref="visits")
    doctor = relationship(
        "Doctor",
        primaryjoin="foreign(Visit.doctor_id) == Doctor.doctor_id",
        lazy="joined",
        viewonly=True,
    )

    # labtests.visit_id is a plain column, so the join condition is spelled out
    lab_tests = relationship(
        "LabTest",
        primaryjoin="Visit.id == foreign(LabTest.visit_id)",
        order_by="LabTest.test_id",
        viewonly=True,
    )

    def __repr__(self):
        return f"<Visit {self.id} for Patient {self.patient_id}>"
