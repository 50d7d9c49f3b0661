"""
Tests for voucher number allocation.
"""

from types import SimpleNamespace

import pytest

from bullion_ledger.errors import ConflictError
from bullion_ledger.services.sequence_service import SequenceService

from conftest import make_tenant


class TestAllocateSequence:

    def test_numbers_start_at_one_and_increase(self, db_session, tenant):
        service = SequenceService(db_session)

        numbers = [service.allocate_sequence(tenant.id) for _ in range(3)]

        assert numbers == [1, 2, 3]

    def test_tenants_have_separate_sequences(self, db_session, tenant):
        other = make_tenant(db_session, name="Other")
        service = SequenceService(db_session)

        service.allocate_sequence(tenant.id)
        service.allocate_sequence(tenant.id)

        assert service.allocate_sequence(other.id) == 1

    def test_stale_read_loses_the_race(self, db_session, tenant, monkeypatch):
        service = SequenceService(db_session)
        service.allocate_sequence(tenant.id)
        db_session.commit()

        # Another request already took number 1
        monkeypatch.setattr(service, "_ensure", lambda tenant_id: SimpleNamespace(next_value=1))

        with pytest.raises(ConflictError, match="allocated concurrently"):
            service.allocate_sequence(tenant.id)
