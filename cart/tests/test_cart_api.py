from decimal import Decimal
from unittest.mock import patch

import pytest
from cart.tests.factories import UserFactory
from catalog.tests.factories import ProductFactory, TieredProductFactory
from django.db import DatabaseError
from rest_framework.test import APIClient


@pytest.mark.django_db
def test_guest_cart_endpoints_add_update_delete_clear():
    session_id = "sess-123"
    product = ProductFactory(fixed_price=Decimal("500.00"))
    client = APIClient()

    r_detail = client.get("/api/v1/cart/", HTTP_X_SESSION_ID=session_id)
    assert r_detail.status_code == 200
    assert r_detail.json()["success"] is True
    assert r_detail.json()["data"]["lines"] == []
    assert r_detail.json()["data"]["subtotal"] == "0.00"

    r_add = client.post(
        "/api/v1/cart/items/",
        {"product_id": product.id, "quantity": 2},
        format="json",
        HTTP_X_SESSION_ID=session_id,
    )
    assert r_add.status_code == 201
    line_id = r_add.json()["data"]["lines"][0]["id"]
    assert r_add.json()["data"]["subtotal"] == "1000.00"

    r_upd = client.patch(
        f"/api/v1/cart/items/{line_id}/",
        {"quantity": 3},
        format="json",
        HTTP_X_SESSION_ID=session_id,
    )
    assert r_upd.status_code == 200
    body = r_upd.json()["data"]
    assert Decimal(body["subtotal"]) == Decimal(body["lines"][0]["unit_price"]) * body["lines"][0]["quantity"]

    r_del = client.delete(f"/api/v1/cart/items/{line_id}/", HTTP_X_SESSION_ID=session_id)
    assert r_del.status_code == 200
    assert r_del.json()["data"]["lines"] == []

    client.post("/api/v1/cart/items/", {"product_id": product.id}, format="json", HTTP_X_SESSION_ID=session_id)
    r_clear = client.post("/api/v1/cart/clear/", HTTP_X_SESSION_ID=session_id)
    assert r_clear.status_code == 200
    assert r_clear.json()["data"]["item_count"] == 0


@pytest.mark.django_db
def test_guest_requests_without_session_header_are_rejected():
    client = APIClient()
    r = client.get("/api/v1/cart/")
    assert r.status_code == 400
    assert r.json() == {
        "success": False,
        "error": {"code": "missing_session", "detail": "X-Session-Id header is required"},
    }


@pytest.mark.django_db
def test_authenticated_cart_is_keyed_by_account():
    user = UserFactory()
    product = TieredProductFactory()
    client = APIClient()
    client.force_authenticate(user=user)

    r = client.post("/api/v1/cart/items/", {"product_id": product.id, "tier_unit": "Basket"}, format="json")

    assert r.status_code == 201
    data = r.json()["data"]
    assert data["owner"] == f"acct:{user.pk}"
    assert data["lines"][0]["price_kind"] == "tier"
    assert data["lines"][0]["unit_price"] == "4500.00"


@pytest.mark.django_db
def test_cart_errors_use_failure_envelope():
    product = TieredProductFactory()
    client = APIClient()

    bad_tier = client.post(
        "/api/v1/cart/items/",
        {"product_id": product.id, "tier_unit": "crate"},
        format="json",
        HTTP_X_SESSION_ID="sess-err",
    )
    assert bad_tier.status_code == 400
    assert bad_tier.json()["error"]["code"] == "unresolvable_price"

    missing = client.post("/api/v1/cart/items/", {"product_id": 999999}, format="json", HTTP_X_SESSION_ID="sess-err")
    assert missing.status_code == 404

    invalid = client.post("/api/v1/cart/items/", {"quantity": 1}, format="json", HTTP_X_SESSION_ID="sess-err")
    assert invalid.status_code == 400
    assert invalid.json()["success"] is False
    assert invalid.json()["error"]["code"] == "validation_error"


@pytest.mark.django_db
def test_authenticated_storage_failure_is_503():
    user = UserFactory()
    product = ProductFactory()
    client = APIClient()
    client.force_authenticate(user=user)

    with patch("cart.services._write_add", side_effect=DatabaseError("db down")):
        r = client.post("/api/v1/cart/items/", {"product_id": product.id}, format="json")

    assert r.status_code == 503
    assert r.json()["error"]["code"] == "transient_storage"
