from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship
from core.database import Base


class LabTest(Base):
    __tablename__ = "labtests"

    test_id = Column(Integer, primary_key=True, autoincrement=True)

    # Owning visit, stored as a plain column rather than a managed FK
    visit_id = Column(Integer, index=True, nullable=True)

    # Copied from the visit for direct filtering; may be stale or empty on legacy rows
    patient_id = Column(String(10), index=True, nullable=True)

    test_name = Column(String(100), nullable=True)
    result = Column(String(100), nullable=True)
    reference_range = Column(String(100), nullable=True)
    status = Column(String(20), nullable=True)

    test_given_at = Column(DateTime, nullable=True)
    result_updated_at = Column(DateTime, nullable=True)

    visit = relationship(
        "Visit",
        primaryjoin="foreign(LabTest.visit_id) == Visit.id",
        viewonly=True,
    )

    def __repr__(self):
        return f"<LabTest {self.test_id} {self.test_name} for Visit {self.visit_id}>"
