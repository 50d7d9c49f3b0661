"""
Voucher API endpoints.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from bullion_ledger.api.deps import get_tenant_id
from bullion_ledger.models.base import get_db
from bullion_ledger.schemas.voucher import (
    ReversalResponse,
    VoucherCancel,
    VoucherCreate,
    VoucherResponse,
    VoucherUpdate,
)
from bullion_ledger.services.transaction_processor import TransactionProcessor

router = APIRouter(prefix="/vouchers", tags=["Vouchers"])


@router.post("", response_model=VoucherResponse, status_code=201)
def create_voucher(
    request: VoucherCreate,
    tenant_id: int = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    """Create a sale/purchase bill or a voucher-style settlement."""
    return TransactionProcessor(db).create_voucher(tenant_id, request)


@router.get("/{voucher_id}", response_model=VoucherResponse)
def get_voucher(
    voucher_id: int,
    tenant_id: int = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    return TransactionProcessor(db).get_voucher(tenant_id, voucher_id)


@router.put("/{voucher_id}", response_model=VoucherResponse)
def update_voucher(
    voucher_id: int,
    request: VoucherUpdate,
    tenant_id: int = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    """
    Replace an active voucher.

    Only allowed inside the reversal window; the old effects are
    reversed and the new ones applied in one step.
    """
    return TransactionProcessor(db).update_voucher(tenant_id, voucher_id, request)


@router.post("/{voucher_id}/cancel", response_model=ReversalResponse)
def cancel_voucher(
    voucher_id: int,
    request: VoucherCancel | None = None,
    tenant_id: int = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    reason = request.reason if request else None
    result = TransactionProcessor(db).reversal.cancel_voucher(tenant_id, voucher_id, reason)
    return ReversalResponse.model_validate(result)


@router.delete("/{voucher_id}", response_model=ReversalResponse)
def delete_voucher(
    voucher_id: int,
    tenant_id: int = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    processor = TransactionProcessor(db)
    result = processor.reversal.delete_voucher(tenant_id, voucher_id)
    return ReversalResponse.model_validate(result)
