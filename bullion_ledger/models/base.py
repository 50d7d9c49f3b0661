"""
Engine, session factory and declarative base.

Services receive a Session and only flush; commit and rollback
belong to the atomicity coordinator.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from bullion_ledger.config import get_settings

settings = get_settings()

# --- Engine ---
# pool_pre_ping: drop connections the server closed while idle
engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
)

# --- Session Factory ---
# autocommit=False: the atomicity coordinator decides when
# a group of writes (stock, ledger, voucher, sequence) is
# committed or rolled back together.
# autoflush=False: SQL is only sent on explicit flush or commit.
SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
)


def is_autocommit(bind) -> bool:
    """
    True when statements on this engine or connection commit on their own.

    Checks the execution options first (set per connection by the
    atomicity coordinator), then the engine-wide isolation level.
    """
    level = bind.get_execution_options().get("isolation_level")
    if level is None:
        level = getattr(bind.dialect, "isolation_level", None)
    return (level or "").upper() == "AUTOCOMMIT"


# --- Declarative base ---
class Base(DeclarativeBase):
    pass


# --- Dependency for FastAPI ---
def get_db():
    """
    One session per request, closed when the response is sent.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
