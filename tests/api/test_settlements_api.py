"""
Tests for the settlement and karigar endpoints.
"""

from decimal import Decimal

from conftest import make_ledger, seed_stock


def test_settlement_lifecycle(client, headers, ledger):
    created = client.post("/settlements", json={
        "ledger_id": ledger.id, "metal_type": "gold", "direction": "receipt",
        "fine_given": "2", "metal_rate": "6000",
    }, headers=headers)

    assert created.status_code == 201
    assert Decimal(created.json()["amount"]) == Decimal("12000")

    deleted = client.delete(f"/settlements/{created.json()['id']}", headers=headers)
    assert deleted.status_code == 200
    assert deleted.json()["kind"] == "settlement"

    again = client.delete(f"/settlements/{created.json()['id']}", headers=headers)
    assert again.status_code == 409


def test_payment_over_balance_is_400(client, headers, db_session, tenant):
    ledger = make_ledger(db_session, tenant, gold="3")
    seed_stock(db_session, tenant, gold="10")

    response = client.post("/settlements", json={
        "ledger_id": ledger.id, "metal_type": "gold", "fine_given": "5",
    }, headers=headers)

    assert response.status_code == 400
    assert response.json()["kind"] == "insufficient_balance"


def test_karigar_lifecycle(client, headers, db_session, tenant):
    seed_stock(db_session, tenant, silver="100")

    created = client.post("/karigar", json={
        "type": "given", "karigar_name": "Mohan", "item_name": "Payal",
        "metal_type": "silver", "fine_weight": "40",
    }, headers=headers)
    assert created.status_code == 201
    assert Decimal(client.get("/stock", headers=headers).json()["silver"]) == Decimal("60")

    deleted = client.delete(f"/karigar/{created.json()['id']}", headers=headers)
    assert deleted.status_code == 200
    assert deleted.json()["reversed"] is True
    assert Decimal(client.get("/stock", headers=headers).json()["silver"]) == Decimal("100")


def test_karigar_zero_fine_is_400(client, headers):
    response = client.post("/karigar", json={
        "type": "received", "karigar_name": "Mohan", "item_name": "Payal",
        "metal_type": "silver", "fine_weight": "0",
    }, headers=headers)

    assert response.status_code == 400
    assert response.json()["detail"] == "Fine weight must be greater than zero"
