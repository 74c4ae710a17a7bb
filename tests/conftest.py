"""
Shared test fixtures.

Sets up an isolated test database so tests never touch
the real database. Tables are created before and dropped after
every test, so each test starts from an empty ledger.
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from residence_ledger.config import Settings
from residence_ledger.main import app
from residence_ledger.models.base import Base, get_db
from residence_ledger.services.chart_of_accounts import ChartOfAccounts


# SQLite keeps the tests free of database infrastructure.
TEST_DATABASE_URL = "sqlite:///./test.db"

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
)

TestSessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
)


@pytest.fixture(autouse=True)
def setup_database():
    """Create all tables before each test, drop them after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session():
    """Provide a database session for direct service testing."""
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def client(db_session):
    """
    Provide a test client with the test database.

    The get_db dependency is overridden so the FastAPI app uses
    the test session instead of the real database.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def settings():
    """A fresh settings object tests may change without affecting others."""
    return Settings()


@pytest.fixture
def chart(db_session):
    chart = ChartOfAccounts(db_session)
    chart.ensure_base_accounts()
    db_session.commit()
    return chart

