"""
Shared fixtures and builders.

Every test runs against a fresh SQLite schema in ./test.db.
Builders (make_tenant, make_ledger, seed_stock) commit, so the
service under test always starts outside a transaction.
"""

import os

# Must be set before bullion_ledger reads its settings
TEST_DATABASE_URL = "sqlite:///./test.db"
os.environ.setdefault("DATABASE_URL", TEST_DATABASE_URL)

from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from bullion_ledger.main import app  # noqa: E402
from bullion_ledger.models import Base, StockMode, Tenant  # noqa: E402
from bullion_ledger.models.base import get_db  # noqa: E402
from bullion_ledger.schemas.ledger import LedgerCreate, OpeningBalance  # noqa: E402
from bullion_ledger.services.atomicity import AtomicityCoordinator  # noqa: E402
from bullion_ledger.services.ledger_service import LedgerService  # noqa: E402
from bullion_ledger.services.stock_service import StockService  # noqa: E402


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
    """Fresh schema for every test."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session():
    """Session shared by the test and, through the client, the app."""
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def client(db_session):
    """TestClient whose requests use db_session."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


# --- Domain fixtures ---

def make_tenant(db_session, name="Shree Jewellers", stock_mode=StockMode.BULK,
                auto_increment=True) -> Tenant:
    tenant = Tenant(
        name=name,
        stock_mode=stock_mode,
        voucher_auto_increment=auto_increment,
    )
    db_session.add(tenant)
    db_session.commit()
    return tenant


def make_ledger(db_session, tenant, name="Ramesh Soni", amount="0",
                gold="0", silver="0", **kwargs):
    return LedgerService(db_session).create_ledger(tenant.id, LedgerCreate(
        name=name,
        opening_balance=OpeningBalance(
            amount=Decimal(amount),
            gold_fine_weight=Decimal(gold),
            silver_fine_weight=Decimal(silver),
        ),
        **kwargs,
    ))


def seed_stock(db_session, tenant, gold="0", silver="0"):
    """Put metal into stock without touching cash in hand."""
    service = StockService(db_session)
    stock = AtomicityCoordinator(db_session).with_optional_atomic_group(
        lambda: service.restore(tenant.id, Decimal(gold), Decimal(silver))
    )
    return stock


@pytest.fixture
def tenant(db_session):
    return make_tenant(db_session)


@pytest.fixture
def ledger(db_session, tenant):
    return make_ledger(db_session, tenant)


@pytest.fixture
def headers(tenant):
    return {"X-Tenant-ID": str(tenant.id)}
