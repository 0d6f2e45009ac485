"""Shared test fixtures and configuration."""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from gatepass.main import app
from gatepass.db.base import Base
from gatepass.api.deps import get_db, get_otp_sender
from gatepass.db.models import RoleType
from gatepass.services.auth import OtpSender

from tests.utils import add_member, create_society


# Test database setup
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture(autouse=True)
def disable_rate_limiting_for_tests(request):
    """Disable rate limiting for all tests except rate limiting tests."""
    from gatepass.core.rate_limit import limiter

    # Check if this is a rate limiting test (marked with @pytest.mark.rate_limit)
    if "rate_limit" in request.keywords:
        # For rate limit tests, reset the limiter state before test
        limiter.reset()
        yield
        # Clean up after rate limit test
        limiter.reset()
    else:
        limiter.enabled = False
        try:
            yield
        finally:
            limiter.enabled = True


@pytest.fixture(scope="function")
def db_engine():
    """Create a fresh database for each test."""
    engine = create_engine(
        SQLALCHEMY_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(db_engine):
    """Create a new database session for a test."""
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


class RecordingOtpSender(OtpSender):
    """Captures login codes instead of delivering them."""

    def __init__(self):
        self.sent = {}

    def send(self, phone: str, code: str) -> None:
        self.sent[phone] = code


@pytest.fixture
def otp_sender():
    return RecordingOtpSender()


@pytest.fixture(scope="function")
def client(db_session, otp_sender):
    """Create a test client with a test database."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_otp_sender] = lambda: otp_sender
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def society(db_session):
    """Society with units A-101, A-102, B-204 and C-301 (C-301 has no resident)."""
    return create_society(db_session)


@pytest.fixture
def units(society):
    return society[1]


@pytest.fixture
def resident(db_session, society):
    """Resident of A-101."""
    return add_member(db_session, society[0], "+919876500001", RoleType.RESIDENT, society[1]["A-101"], "Priya Sharma")


@pytest.fixture
def family_member(db_session, society):
    """Second resident of A-101."""
    return add_member(db_session, society[0], "+919876500002", RoleType.RESIDENT, society[1]["A-101"], "Arjun Sharma")


@pytest.fixture
def neighbour(db_session, society):
    """Resident of B-204."""
    return add_member(db_session, society[0], "+919876500003", RoleType.RESIDENT, society[1]["B-204"], "Meera Iyer")


@pytest.fixture
def guard(db_session, society):
    return add_member(db_session, society[0], "+919876500004", RoleType.GUARD, full_name="Ramesh Singh")


@pytest.fixture
def manager(db_session, society):
    return add_member(db_session, society[0], "+919876500005", RoleType.MANAGER, full_name="Sunita Rao")
