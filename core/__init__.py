from .database import get_db_context, session_scope, engine, SessionLocal, Base
from .exceptions import (
    PatientRecordsError,
    NotFoundError,
    ConflictError,
    ValidationError,
    AllocationError,
)

__all__ = [
    "get_db_context",
    "session_scope",
    "engine",
    "SessionLocal",
    "Base",
    "PatientRecordsError",
    "NotFoundError",
    "ConflictError",
    "ValidationError",
    "AllocationError",
]
