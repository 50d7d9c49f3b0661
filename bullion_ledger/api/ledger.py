"""
Ledger API endpoints.

Routes map one to one onto LedgerService methods. Service
errors become JSON responses in main.py.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from bullion_ledger.api.deps import get_tenant_id
from bullion_ledger.models.base import get_db
from bullion_ledger.schemas.ledger import (
    LedgerCreate,
    LedgerResponse,
    MessageResponse,
    OpeningBalance,
    RecalculateResponse,
)
from bullion_ledger.services.ledger_service import LedgerService

router = APIRouter(prefix="/ledgers", tags=["Ledgers"])


@router.post("", response_model=LedgerResponse, status_code=201)
def create_ledger(
    request: LedgerCreate,
    tenant_id: int = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    """Open a ledger for a customer or supplier."""
    return LedgerService(db).create_ledger(tenant_id, request)


@router.get("/{ledger_id}", response_model=LedgerResponse)
def get_ledger(
    ledger_id: int,
    tenant_id: int = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    return LedgerService(db).get_ledger(tenant_id, ledger_id)


@router.put("/{ledger_id}/opening-balance", response_model=LedgerResponse)
def update_opening_balance(
    ledger_id: int,
    request: OpeningBalance,
    tenant_id: int = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    """Change the opening balance; balances follow while the ledger is empty."""
    return LedgerService(db).update_opening_balance(tenant_id, ledger_id, request)


@router.delete("/{ledger_id}/transactions", response_model=LedgerResponse)
def purge_transactions(
    ledger_id: int,
    tenant_id: int = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    """
    Delete every voucher and settlement of the ledger.

    Balances go back to the opening balance. Stock is untouched.
    """
    return LedgerService(db).purge_transactions(tenant_id, ledger_id)


@router.delete("/{ledger_id}", response_model=MessageResponse)
def delete_ledger(
    ledger_id: int,
    tenant_id: int = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    LedgerService(db).delete_ledger(tenant_id, ledger_id)
    return MessageResponse(message="Ledger deleted successfully")


@router.post("/{ledger_id}/recalculate-balance", response_model=RecalculateResponse)
def recalculate_balance(
    ledger_id: int,
    tenant_id: int = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    """Rebuild the ledger's balances from its opening balance and live records."""
    ledger, fixed = LedgerService(db).recompute_ledger_balances(tenant_id, ledger_id)
    return RecalculateResponse(
        vouchers_fixed=fixed,
        ledger=LedgerResponse.model_validate(ledger),
    )
