"""
Per-tenant voucher number sequence.

allocate_sequence() is the only writer of VoucherSequence. It uses
a compare-and-swap UPDATE so two concurrent allocations can never
hand out the same number; the loser gets a ConflictError.
"""

from sqlalchemy import insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from bullion_ledger.errors import ConflictError, InternalError
from bullion_ledger.models.base import is_autocommit
from bullion_ledger.models.tenant import VoucherSequence


class SequenceService:

    def __init__(self, db: Session):
        self.db = db

    def _load(self, tenant_id: int) -> VoucherSequence | None:
        return self.db.execute(
            select(VoucherSequence)
            .where(VoucherSequence.tenant_id == tenant_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def _ensure(self, tenant_id: int) -> VoucherSequence:
        sequence = self._load(tenant_id)
        if sequence:
            return sequence

        statement = insert(VoucherSequence).values(tenant_id=tenant_id, next_value=1)
        try:
            if is_autocommit(self.db.connection()):
                self.db.execute(statement)
            else:
                with self.db.begin_nested():
                    self.db.execute(statement)
        except IntegrityError:
            pass  # created by a concurrent request

        sequence = self._load(tenant_id)
        if sequence is None:
            raise InternalError(f"Voucher sequence for tenant {tenant_id} could not be created")
        return sequence

    def allocate_sequence(self, tenant_id: int) -> int:
        """Hand out the next voucher number for a tenant."""
        sequence = self._ensure(tenant_id)
        current = sequence.next_value

        result = self.db.execute(
            update(VoucherSequence)
            .where(
                VoucherSequence.tenant_id == tenant_id,
                VoucherSequence.next_value == current,
            )
            .values(next_value=current + 1)
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount == 0:
            raise ConflictError(
                "Voucher number was allocated concurrently, please retry"
            )
        return current
