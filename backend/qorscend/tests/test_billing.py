import uuid

from .conftest import client, ensure_auth_headers, register_user, TestingSessionLocal
from qorscend import models


def _user_id(email: str) -> uuid.UUID:
    session = TestingSessionLocal()
    try:
        return session.query(models.User).filter_by(email=email).one().id
    finally:
        session.close()


def _invoice_count(user_id: uuid.UUID) -> int:
    session = TestingSessionLocal()
    try:
        return session.query(models.Invoice).filter_by(user_id=user_id).count()
    finally:
        session.close()


def test_overview_creates_free_subscription(client):
    headers = ensure_auth_headers(client)
    resp = client.get("/api/billing/overview", headers=headers)
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["subscription"]["tier"] == "free"
    assert data["subscription"]["status"] == "active"
    assert data["subscription"]["currentPeriodEnd"]
    assert data["usage"]["codeConversions"] == {"used": 0, "limit": 10, "unlimited": False}
    assert data["usage"]["benchmarks"]["used"] == 0
    assert data["usage"]["storage"]["used"] == 0


def test_storage_usage_in_megabytes(client):
    token, email, _ = register_user(client)
    headers = {"Authorization": f"Bearer {token}"}
    user_id = _user_id(email)
    session = TestingSessionLocal()
    try:
        for size in (1048576, 524288, 1234):
            session.add(
                models.DataFile(
                    user_id=user_id,
                    filename=f"{size}.csv",
                    original_name=f"{size}.csv",
                    file_type="csv",
                    file_size=size,
                    file_path=f"/tmp/{size}.csv",
                )
            )
        session.commit()
    finally:
        session.close()

    usage = client.get("/api/billing/overview", headers=headers).json()["data"]["usage"]
    assert usage["storage"]["used"] == round((1048576 + 524288 + 1234) / (1024 * 1024), 2)
    assert usage["dataFiles"]["used"] == 3


def test_plans_are_public(client):
    resp = client.get("/api/billing/plans")
    assert resp.status_code == 200
    plans = {plan["id"]: plan for plan in resp.json()["data"]}
    assert set(plans) == {"free", "pro", "enterprise"}
    assert plans["pro"]["price"] == 29
    assert plans["enterprise"]["limits"]["codeConversions"] == -1


def test_upgrade_to_pro_without_subscription_issues_one_invoice(client):
    token, email, _ = register_user(client)
    headers = {"Authorization": f"Bearer {token}"}

    resp = client.post("/api/billing/subscription/upgrade", json={"planId": "PRO"}, headers=headers)
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["tier"] == "pro"
    assert data["status"] == "active"
    invoice = data["invoice"]
    assert invoice["plan"] == "pro"
    assert invoice["amount"] == 29
    assert invoice["currency"] == "USD"
    assert invoice["status"] == "paid"
    assert invoice["number"].startswith("INV-")
    assert _invoice_count(_user_id(email)) == 1

    history = client.get("/api/billing/history", headers=headers).json()["data"]["invoices"]
    assert [i["number"] for i in history] == [invoice["number"]]

    overview = client.get("/api/billing/overview", headers=headers).json()["data"]
    assert overview["subscription"]["amount"] == 29
    assert overview["usage"]["codeConversions"]["limit"] == 1000


def test_upgrade_to_free_issues_no_invoice(client):
    token, email, _ = register_user(client)
    headers = {"Authorization": f"Bearer {token}"}
    resp = client.post("/api/billing/subscription/upgrade", json={"planId": "free"}, headers=headers)
    assert resp.status_code == 200
    assert "invoice" not in resp.json()["data"]
    assert _invoice_count(_user_id(email)) == 0


def test_enterprise_usage_reports_unlimited(client):
    headers = ensure_auth_headers(client)
    client.post("/api/billing/subscription/change", json={"planId": "enterprise"}, headers=headers)
    usage = client.get("/api/billing/overview", headers=headers).json()["data"]["usage"]
    assert usage["workflows"] == {"used": 0, "limit": None, "unlimited": True}


def test_plan_id_validation(client):
    headers = ensure_auth_headers(client)
    missing = client.post("/api/billing/subscription/change", json={}, headers=headers)
    assert missing.status_code == 400
    assert missing.json()["error"] == "Plan ID is required"
    invalid = client.post("/api/billing/subscription/upgrade", json={"planId": "platinum"}, headers=headers)
    assert invalid.status_code == 400
    assert invalid.json()["error"] == "Invalid plan ID"


def test_cancel_subscription(client):
    headers = ensure_auth_headers(client)
    none_yet = client.post("/api/billing/subscription/cancel", headers=headers)
    assert none_yet.status_code == 404
    assert none_yet.json()["error"] == "No active subscription found"

    client.post("/api/billing/subscription/change", json={"planId": "pro"}, headers=headers)
    resp = client.post("/api/billing/subscription/cancel", headers=headers)
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["tier"] == "free"
    assert data["status"] == "canceled"
    assert data["currentPeriodEnd"] is None


def _defaults(methods):
    return [m for m in methods if m["isDefault"]]


def test_payment_method_default_invariants(client):
    headers = ensure_auth_headers(client)
    first = client.post(
        "/api/billing/payment-methods",
        json={"type": "card", "brand": "visa", "last4": "4242", "expiryMonth": 12, "expiryYear": 2030},
        headers=headers,
    )
    assert first.status_code == 201
    assert first.json()["data"]["isDefault"] is True

    second = client.post(
        "/api/billing/payment-methods", json={"type": "paypal", "email": "pay@example.com"}, headers=headers
    ).json()["data"]
    third = client.post(
        "/api/billing/payment-methods", json={"type": "card", "brand": "amex", "last4": "0005"}, headers=headers
    ).json()["data"]
    assert second["isDefault"] is False and third["isDefault"] is False

    methods = client.get("/api/billing/payment-methods", headers=headers).json()["data"]
    assert len(_defaults(methods)) == 1
    assert methods[0]["id"] == first.json()["data"]["id"]

    switched = client.post(f"/api/billing/payment-methods/{third['id']}/default", headers=headers)
    assert switched.status_code == 200
    methods = client.get("/api/billing/payment-methods", headers=headers).json()["data"]
    assert [m["id"] for m in _defaults(methods)] == [third["id"]]

    deleted = client.delete(f"/api/billing/payment-methods/{third['id']}", headers=headers)
    assert deleted.status_code == 200
    methods = client.get("/api/billing/payment-methods", headers=headers).json()["data"]
    assert len(methods) == 2
    assert [m["id"] for m in _defaults(methods)] == [first.json()["data"]["id"]]


def test_deleting_only_method_leaves_no_default(client):
    headers = ensure_auth_headers(client)
    only = client.post(
        "/api/billing/payment-methods", json={"type": "paypal", "email": "solo@example.com"}, headers=headers
    ).json()["data"]
    assert only["isDefault"] is True

    deleted = client.delete(f"/api/billing/payment-methods/{only['id']}", headers=headers)
    assert deleted.status_code == 200
    assert client.get("/api/billing/payment-methods", headers=headers).json()["data"] == []

    replacement = client.post(
        "/api/billing/payment-methods", json={"type": "card", "brand": "visa", "last4": "1111"}, headers=headers
    ).json()["data"]
    assert replacement["isDefault"] is True


def test_payment_method_validation_and_ownership(client):
    headers = ensure_auth_headers(client)
    no_type = client.post("/api/billing/payment-methods", json={}, headers=headers)
    assert no_type.status_code == 400
    card = client.post("/api/billing/payment-methods", json={"type": "card", "brand": "visa"}, headers=headers)
    assert card.status_code == 400
    paypal = client.post("/api/billing/payment-methods", json={"type": "paypal"}, headers=headers)
    assert paypal.status_code == 400

    mine = client.post(
        "/api/billing/payment-methods", json={"type": "paypal", "email": "me@example.com"}, headers=headers
    ).json()["data"]
    other = ensure_auth_headers(client)
    stolen = client.delete(f"/api/billing/payment-methods/{mine['id']}", headers=other)
    assert stolen.status_code == 404
    assert stolen.json()["error"] == "Payment method not found"


def test_billing_address_upsert(client):
    headers = ensure_auth_headers(client)
    assert client.get("/api/billing/address", headers=headers).json()["data"] is None

    incomplete = client.post("/api/billing/address", json={"firstName": "Ada"}, headers=headers)
    assert incomplete.status_code == 400
    assert incomplete.json()["error"] == "All fields are required"

    address = {
        "firstName": "Ada",
        "lastName": "Lovelace",
        "address": "12 St James's Square",
        "city": "London",
        "state": "LDN",
        "zipCode": "SW1Y 4JH",
        "country": "UK",
    }
    created = client.post("/api/billing/address", json=address, headers=headers)
    assert created.status_code == 200
    updated = client.post("/api/billing/address", json={**address, "city": "Cambridge"}, headers=headers)
    assert updated.json()["data"]["id"] == created.json()["data"]["id"]
    assert client.get("/api/billing/address", headers=headers).json()["data"]["city"] == "Cambridge"


def test_billing_requires_auth(client):
    resp = client.get("/api/billing/overview")
    assert resp.status_code == 401
    assert resp.json()["success"] is False
