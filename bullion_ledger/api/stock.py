"""
Stock API endpoints.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from bullion_ledger.api.deps import get_tenant_id
from bullion_ledger.models.base import get_db
from bullion_ledger.schemas.stock import (
    DailyRatesRequest,
    StockAddRequest,
    StockResponse,
)
from bullion_ledger.services.atomicity import AtomicityCoordinator
from bullion_ledger.services.stock_service import StockService

router = APIRouter(prefix="/stock", tags=["Stock"])


def _run(db: Session, work):
    service = StockService(db)
    return AtomicityCoordinator(db).with_optional_atomic_group(
        lambda: work(service), stock=service
    )


@router.get("", response_model=StockResponse)
def get_stock(
    tenant_id: int = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    return _run(db, lambda service: service.get_stock(tenant_id))


@router.post("/add", response_model=StockResponse, status_code=201)
def add_stock(
    request: StockAddRequest,
    tenant_id: int = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    """Record bought-in metal and the cash paid for it."""
    return _run(db, lambda service: service.add_stock(
        tenant_id,
        gold=request.gold,
        silver=request.silver,
        cash_amount=request.cash_amount,
        date=request.date,
    ))


@router.post("/undo", response_model=StockResponse)
def undo_last_input(
    tenant_id: int = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    """Undo the most recent manual stock addition."""
    return _run(db, lambda service: service.undo_last_input(tenant_id))


@router.put("/daily-rates", response_model=StockResponse)
def set_daily_rates(
    request: DailyRatesRequest,
    tenant_id: int = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    return _run(db, lambda service: service.set_daily_rates(
        tenant_id, request.gold_rate, request.silver_rate
    ))
