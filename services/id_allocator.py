import logging

from sqlalchemy import Sequence, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.exceptions import AllocationError
from models.patient import patient_id_seq
from models.sequence import IdSequence

logger = logging.getLogger(__name__)

PATIENT_ID_SEQUENCE = "patient_id_seq"
PATIENT_ID_WIDTH = 3


def format_patient_id(value: int, width: int = PATIENT_ID_WIDTH) -> str:
    """1 -> "001", 42 -> "042"; values past the width just grow ("1000")."""
    return f"{value:0{width}d}"


class PatientIdAllocator:
    """
    Hands out patient identifiers from a shared monotonic counter.

    Engines with native sequences use ``nextval``. Everything else bumps a
    row of ``id_sequences`` with a single ``UPDATE ... RETURNING``, so there
    is no read-then-write window; the row lock (or SQLite's write lock)
    serialises concurrent callers. The counter is never reset or reused.
    """

    def __init__(self, sequence_name: str = PATIENT_ID_SEQUENCE, width: int = PATIENT_ID_WIDTH):
        self.sequence_name = sequence_name
        self.width = width
        self._sequence = (
            patient_id_seq if sequence_name == patient_id_seq.name else Sequence(sequence_name)
        )

    def next(self, db: Session) -> str:
        try:
            if db.get_bind().dialect.supports_sequences:
                value = db.scalar(select(self._sequence.next_value()))
            else:
                value = self._bump_counter(db)
        except SQLAlchemyError as exc:
            logger.error("Error generating patient ID: %s", exc)
            raise AllocationError(f"Error generating patient ID: {exc}") from exc

        if value is None:
            raise AllocationError(
                f"Failed to generate patient ID: counter {self.sequence_name!r} is not initialised"
            )

        patient_id = format_patient_id(int(value), self.width)
        logger.info("Generated patient ID: %s", patient_id)
        return patient_id

    def _bump_counter(self, db: Session):
        table = IdSequence.__table__
        stmt = (
            update(table)
            .where(table.c.name == self.sequence_name)
            .values(value=table.c.value + 1)
            .returning(table.c.value)
        )
        return db.execute(stmt).scalar_one_or_none()


default_allocator = PatientIdAllocator()


def next_patient_id(db: Session) -> str:
    return default_allocator.next(db)
