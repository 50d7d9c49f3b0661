"""
Tenant-scoped record lookups shared by the services.

Every lookup filters on tenant_id, so a record id belonging to
another tenant behaves exactly like a missing one.
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from bullion_ledger.errors import InvalidError, NotFoundError
from bullion_ledger.models.karigar import KarigarTransaction
from bullion_ledger.models.ledger import Ledger
from bullion_ledger.models.settlement import Settlement
from bullion_ledger.models.tenant import Tenant
from bullion_ledger.models.voucher import Voucher


def load_tenant(db: Session, tenant_id: int) -> Tenant:
    tenant = db.get(Tenant, tenant_id)
    if not tenant:
        raise NotFoundError(f"Tenant {tenant_id} not found")
    if not tenant.is_active:
        raise InvalidError(f"Tenant {tenant_id} is not active")
    return tenant


def _load(db: Session, model, tenant_id: int, record_id: int, label: str):
    record = db.execute(
        select(model).where(model.id == record_id, model.tenant_id == tenant_id)
    ).scalar_one_or_none()
    if not record:
        raise NotFoundError(f"{label} not found")
    return record


def load_ledger(db: Session, tenant_id: int, ledger_id: int) -> Ledger:
    return _load(db, Ledger, tenant_id, ledger_id, "Ledger")


def load_voucher(db: Session, tenant_id: int, voucher_id: int) -> Voucher:
    return _load(db, Voucher, tenant_id, voucher_id, "Voucher")


def load_settlement(db: Session, tenant_id: int, settlement_id: int) -> Settlement:
    return _load(db, Settlement, tenant_id, settlement_id, "Settlement")


def load_karigar_transaction(
    db: Session, tenant_id: int, transaction_id: int
) -> KarigarTransaction:
    return _load(db, KarigarTransaction, tenant_id, transaction_id, "Karigar transaction")
