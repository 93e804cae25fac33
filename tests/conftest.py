import pytest

from kyc_backend.db import init_db, make_engine, make_session_factory
from kyc_backend.metrics import metrics
from kyc_backend.service import VerificationService


@pytest.fixture
def session_factory(tmp_path):
    """Fresh SQLite database file per test."""
    engine = make_engine(f"sqlite:///{(tmp_path / 'kyc_test.db').as_posix()}")
    init_db(engine)
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture
def session(session_factory):
    s = session_factory()
    yield s
    s.close()


@pytest.fixture
def service(session_factory):
    return VerificationService(session_factory=session_factory, max_reopens=None)


@pytest.fixture(autouse=True)
def reset_metrics():
    metrics.reset()
    yield
    metrics.reset()


@pytest.fixture
def sample_fields():
    return {"name": "Asha Verma", "aadhaar_number": "123412341234", "dob": "1990-01-01"}
