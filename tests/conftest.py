import pytest
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from core.database import make_engine
from core.setup_db import init_db
from schemas.requests import RegistrationRequest, parse_request


@pytest.fixture
def engine():
    engine = make_engine("sqlite://", poolclass=StaticPool)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def file_session_factory(tmp_path):
    """File-backed database for tests that need real concurrent connections."""
    engine = make_engine(f"sqlite:///{tmp_path / 'records.db'}")
    init_db(engine)
    yield sessionmaker(bind=engine, autocommit=False, autoflush=False)
    engine.dispose()


def make_registration(**overrides) -> RegistrationRequest:
    payload = {
        "surname": "Rao",
        "name": "Asha",
        "fatherName": "Kumar",
        "age": 34,
        "bloodGroup": "B+",
        "gender": "Female",
        "nationalId": "123456789012",
        "phoneNumber": "9876543210",
        "address": "12 Lake Road",
        "bp": "120/80",
        "weight": "58kg",
        "temperature": "98.4°F",
        "symptoms": "Headache",
        "complaint": "Fever since two days",
        "status": "Active",
    }
    payload.update(overrides)
    return parse_request(RegistrationRequest, payload)


@pytest.fixture
def registration_factory():
    return make_registration
