from sqlalchemy import Column, BigInteger, String
from core.database import Base


class IdSequence(Base):
    """Named counter row, the sequence stand-in on engines without one."""

    __tablename__ = "id_sequences"

    name = Column(String(50), primary_key=True)
    value = Column(BigInteger, nullable=False, default=0)

    def __repr__(self):
        return f"<IdSequence {self.name}={self.value}>"
