# models/patient.py

from sqlalchemy import Column, Integer, String, Text, LargeBinary, Sequence
from core.database import Base

# Native sequence for engines that have one (PostgreSQL); others fall back
# to the id_sequences counter table.
patient_id_seq = Sequence("patient_id_seq", start=1, metadata=Base.metadata)


class Patient(Base):
    __tablename__ = "patients"

    # Zero-padded sequence value ("001", "002", ... "1000")
    patient_id = Column(String(10), primary_key=True)

    photo = Column(LargeBinary, nullable=True)

    # Demographics
    surname = Column(String(50), nullable=False)
    name = Column(String(50), nullable=False)
    father_name = Column(String(50), nullable=True)
    age = Column(Integer, nullable=True)
    blood_group = Column(String(5), nullable=True)
    gender = Column(String(10), nullable=True)

    # Deduplication key
    national_id = Column(String(12), unique=True, index=True, nullable=False)

    phone_number = Column(String(15), nullable=True)
    address = Column(Text, nullable=True)

    # Changed only by the first-prescription rule
    total_visits = Column(Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<Patient {self.patient_id} - {self.name}>"
