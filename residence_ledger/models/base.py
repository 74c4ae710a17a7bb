"""
Database engine, session management, and base model.

Every model inherits from Base. Every request gets a session
from get_db().
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from residence_ledger.config import get_settings

settings = get_settings()

# --- Engine ---
# pool_pre_ping=True tests connections before handing them out,
# so a database restart does not surface as a failed posting.
engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
)

# --- Session Factory ---
# autocommit=False: the caller decides when a posting becomes
# visible. A transaction and all of its lines are committed
# together or not at all.
# autoflush=False: nothing is sent to the database until the
# services flush explicitly.
SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    pass


# --- Dependency for FastAPI ---
def get_db():
    """
    Provide a database session for a single request.

    The try/finally guarantees the session is closed even when
    the endpoint raises, so connections never leak from the pool.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
