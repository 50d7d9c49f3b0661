"""
Settlement and karigar API endpoints.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from bullion_ledger.api.deps import get_tenant_id
from bullion_ledger.models.base import get_db
from bullion_ledger.models.enums import RecordKind
from bullion_ledger.schemas.settlement import (
    KarigarCreate,
    KarigarResponse,
    SettlementCreate,
    SettlementResponse,
)
from bullion_ledger.schemas.voucher import ReversalResponse
from bullion_ledger.services.transaction_processor import TransactionProcessor

router = APIRouter(tags=["Settlements"])


@router.post("/settlements", response_model=SettlementResponse, status_code=201)
def create_settlement(
    request: SettlementCreate,
    tenant_id: int = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    """Record a metal settlement against a ledger."""
    return TransactionProcessor(db).process_transaction(
        tenant_id, request.ledger_id, RecordKind.SETTLEMENT, request
    )


@router.delete("/settlements/{settlement_id}", response_model=ReversalResponse)
def delete_settlement(
    settlement_id: int,
    tenant_id: int = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    result = TransactionProcessor(db).reversal.reverse_transaction(
        tenant_id, RecordKind.SETTLEMENT, settlement_id
    )
    return ReversalResponse.model_validate(result)


@router.post("/karigar", response_model=KarigarResponse, status_code=201)
def create_karigar_transaction(
    request: KarigarCreate,
    tenant_id: int = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    """Hand metal to, or take it back from, an artisan."""
    return TransactionProcessor(db).process_transaction(
        tenant_id, None, RecordKind.KARIGAR, request
    )


@router.delete("/karigar/{transaction_id}", response_model=ReversalResponse)
def delete_karigar_transaction(
    transaction_id: int,
    tenant_id: int = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    result = TransactionProcessor(db).reversal.reverse_transaction(
        tenant_id, RecordKind.KARIGAR, transaction_id
    )
    return ReversalResponse.model_validate(result)
