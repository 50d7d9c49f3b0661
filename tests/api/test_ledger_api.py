"""
Tests for the ledger endpoints.
"""

from decimal import Decimal


def create(client, headers, **body):
    payload = {"name": "Ramesh Soni", "phone_number": "98765 43210"}
    payload.update(body)
    return client.post("/ledgers", json=payload, headers=headers)


def test_create_ledger_returns_201(client, headers):
    response = create(client, headers, opening_balance={"amount": "2500", "gold_fine_weight": "1.5"})

    assert response.status_code == 201
    data = response.json()
    assert data["name"] == "Ramesh Soni"
    assert data["phone_number"] == "9876543210"
    assert Decimal(data["cash_balance"]) == Decimal("2500")
    assert Decimal(data["amount"]) == Decimal("2500")
    assert Decimal(data["gold_fine_weight"]) == Decimal("1.5")


def test_invalid_phone_is_422(client, headers):
    assert create(client, headers, phone_number="123").status_code == 422


def test_missing_tenant_header_is_422(client):
    assert client.post("/ledgers", json={"name": "Ramesh"}).status_code == 422


def test_get_missing_ledger_is_404(client, headers):
    response = client.get("/ledgers/999", headers=headers)

    assert response.status_code == 404
    assert response.json() == {
        "success": False, "kind": "not_found", "detail": "Ledger not found",
    }


def test_update_opening_balance(client, headers, ledger):
    response = client.put(
        f"/ledgers/{ledger.id}/opening-balance",
        json={"amount": "300"},
        headers=headers,
    )

    assert response.status_code == 200
    assert Decimal(response.json()["cash_balance"]) == Decimal("300")


def test_purge_then_delete(client, headers, ledger):
    client.post("/vouchers", json={
        "ledger_id": ledger.id, "payment_type": "add_cash", "cash_received": "50",
    }, headers=headers)

    blocked = client.delete(f"/ledgers/{ledger.id}", headers=headers)
    assert blocked.status_code == 400
    assert blocked.json()["kind"] == "invalid"

    purged = client.delete(f"/ledgers/{ledger.id}/transactions", headers=headers)
    assert purged.status_code == 200
    assert purged.json()["has_vouchers"] is False
    assert Decimal(purged.json()["cash_balance"]) == Decimal("0")

    deleted = client.delete(f"/ledgers/{ledger.id}", headers=headers)
    assert deleted.status_code == 200
    assert deleted.json()["success"] is True


def test_recalculate_balance(client, headers, ledger):
    client.post("/vouchers", json={
        "ledger_id": ledger.id, "payment_type": "add_gold", "cash_received": "2",
    }, headers=headers)

    response = client.post(f"/ledgers/{ledger.id}/recalculate-balance", headers=headers)

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["vouchers_fixed"] == 0
    assert Decimal(data["ledger"]["gold_fine_weight"]) == Decimal("-2")
