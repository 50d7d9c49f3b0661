"""
Tests for the voucher endpoints.
"""

from decimal import Decimal

from conftest import seed_stock


def sale(ledger, fine="10", amount="50000"):
    return {
        "ledger_id": ledger.id,
        "payment_type": "credit",
        "items": [{"item_name": "Necklace", "metal_type": "gold",
                   "fine_weight": fine, "amount": amount}],
    }


def test_create_voucher(client, headers, db_session, tenant, ledger):
    seed_stock(db_session, tenant, gold="10")

    response = client.post("/vouchers", json=sale(ledger), headers=headers)

    assert response.status_code == 201
    data = response.json()
    assert data["voucher_number"] == "1"
    assert data["status"] == "active"
    assert Decimal(data["total"]) == Decimal("50000")
    assert len(data["items"]) == 1
    assert data["items"][0]["hsn_code"] == "7108"

    ledger_data = client.get(f"/ledgers/{ledger.id}", headers=headers).json()
    assert Decimal(ledger_data["cash_balance"]) == Decimal("50000")


def test_insufficient_stock_is_400(client, headers, ledger):
    response = client.post("/vouchers", json=sale(ledger), headers=headers)

    assert response.status_code == 400
    assert response.json()["kind"] == "insufficient_stock"


def test_unknown_payment_type_is_422(client, headers, ledger):
    body = dict(sale(ledger), payment_type="barter")
    assert client.post("/vouchers", json=body, headers=headers).status_code == 422


def test_get_voucher_of_other_tenant_is_404(client, headers, db_session, tenant, ledger):
    seed_stock(db_session, tenant, gold="10")
    voucher_id = client.post("/vouchers", json=sale(ledger), headers=headers).json()["id"]

    response = client.get(f"/vouchers/{voucher_id}", headers={"X-Tenant-ID": "999"})

    assert response.status_code == 404


def test_update_voucher(client, headers, db_session, tenant, ledger):
    seed_stock(db_session, tenant, gold="10")
    voucher_id = client.post("/vouchers", json=sale(ledger), headers=headers).json()["id"]

    response = client.put(
        f"/vouchers/{voucher_id}", json=sale(ledger, fine="2", amount="10000"), headers=headers
    )

    assert response.status_code == 200
    assert Decimal(response.json()["total"]) == Decimal("10000")
    stock = client.get("/stock", headers=headers).json()
    assert Decimal(stock["gold"]) == Decimal("8")


def test_cancel_voucher_twice(client, headers, db_session, tenant, ledger):
    seed_stock(db_session, tenant, gold="10")
    voucher_id = client.post("/vouchers", json=sale(ledger), headers=headers).json()["id"]

    first = client.post(
        f"/vouchers/{voucher_id}/cancel", json={"reason": "Wrong rate"}, headers=headers
    )
    second = client.post(f"/vouchers/{voucher_id}/cancel", headers=headers)

    assert first.status_code == 200
    assert first.json()["reversed"] is True
    assert first.json()["strategy"] == "snapshot"
    assert second.status_code == 409
    assert second.json()["kind"] == "already_reversed"

    voucher = client.get(f"/vouchers/{voucher_id}", headers=headers).json()
    assert voucher["status"] == "cancelled"
    assert voucher["cancelled_reason"] == "Wrong rate"


def test_delete_voucher(client, headers, db_session, tenant, ledger):
    seed_stock(db_session, tenant, gold="10")
    voucher_id = client.post("/vouchers", json=sale(ledger), headers=headers).json()["id"]

    response = client.delete(f"/vouchers/{voucher_id}", headers=headers)

    assert response.status_code == 200
    assert response.json()["record_id"] == voucher_id
    assert response.json()["kind"] == "voucher"
    assert client.get(f"/vouchers/{voucher_id}", headers=headers).status_code == 404
