from core.time_utils import now_naive

from sqlalchemy import Column, String, DateTime
from core.database import Base


class Doctor(Base):
    __tablename__ = "doctors"

    doctor_id = Column(String(50), primary_key=True)
    name = Column(String(100), nullable=True)
    email = Column(String(100), unique=True, nullable=True)
    role = Column(String(50), nullable=True)
    status = Column(String(20), nullable=True)
    department = Column(String(100), nullable=True)
    created_at = Column(DateTime, default=now_naive)

    def __repr__(self):
        return f"<Doctor {self.doctor_id} ({self.name})>"
