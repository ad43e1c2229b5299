from decimal import Decimal
from unittest.mock import patch

import pytest
from cart.tests.factories import UserFactory
from catalog.tests.factories import ProductFactory
from django.core import mail
from django.db import OperationalError
from orders.models import Order
from rest_framework.test import APIClient

ADDRESS = {"full_name": "Ada Obi", "line1": "12 Marina", "city": "Lagos", "state": "Lagos"}


def _guest_with_cart(session_id, quantity=2):
    client = APIClient()
    product = ProductFactory(fixed_price=Decimal("500.00"), weight_kg=Decimal("0.500"))
    client.post(
        "/api/v1/cart/items/",
        {"product_id": product.id, "quantity": quantity},
        format="json",
        HTTP_X_SESSION_ID=session_id,
    )
    return client


@pytest.mark.django_db
def test_checkout_creates_order_then_returns_it_again():
    client = _guest_with_cart("sess-co-1")

    r1 = client.post(
        "/api/v1/checkout/",
        {"shipping_address": ADDRESS, "email": "ada@example.com"},
        format="json",
        HTTP_X_SESSION_ID="sess-co-1",
    )
    assert r1.status_code == 201
    data = r1.json()["data"]
    assert r1.json()["success"] is True
    assert data["outcome"] == "created"
    assert data["order"]["subtotal"] == "1000.00"
    assert data["order"]["shipping_fee"] == "1200.00"
    assert data["order"]["total"] == "2200.00"
    assert data["invoice"]["number"] == data["order"]["number"]
    assert data["settlement"]["accounts"][0]["account_number"] == "0123456789"
    assert len(mail.outbox) == 1

    r2 = client.post(
        "/api/v1/checkout/", {"shipping_address": ADDRESS}, format="json", HTTP_X_SESSION_ID="sess-co-1"
    )
    assert r2.status_code == 200
    assert r2.json()["data"]["outcome"] == "existing"
    assert r2.json()["data"]["order"]["id"] == data["order"]["id"]
    assert Order.objects.count() == 1


@pytest.mark.django_db
def test_checkout_validation_errors():
    client = _guest_with_cart("sess-co-2")

    missing_city = client.post(
        "/api/v1/checkout/", {"shipping_address": {"line1": "x"}}, format="json", HTTP_X_SESSION_ID="sess-co-2"
    )
    assert missing_city.status_code == 400
    assert missing_city.json()["success"] is False

    empty = APIClient().post(
        "/api/v1/checkout/", {"shipping_address": ADDRESS}, format="json", HTTP_X_SESSION_ID="sess-co-empty"
    )
    assert empty.status_code == 400
    assert empty.json()["error"]["code"] == "invalid_cart"
    assert not Order.objects.exists()


@pytest.mark.django_db
def test_current_order_and_invoice_endpoints():
    client = _guest_with_cart("sess-co-3")

    none_yet = client.get("/api/v1/orders/current/", HTTP_X_SESSION_ID="sess-co-3")
    assert none_yet.status_code == 404

    created = client.post(
        "/api/v1/checkout/", {"shipping_address": ADDRESS}, format="json", HTTP_X_SESSION_ID="sess-co-3"
    ).json()["data"]

    current = client.get("/api/v1/orders/current/", HTTP_X_SESSION_ID="sess-co-3")
    assert current.status_code == 200
    body = current.json()["data"]
    assert body["order"]["number"] == created["order"]["number"]
    assert body["checkout"]["reference"] == created["checkout"]["reference"]
    assert body["settlement"]["payment_reference"] == created["order"]["payment_reference"]
    assert len(body["order"]["items"]) == 1

    invoice = client.get("/api/v1/orders/current/invoice/", HTTP_X_SESSION_ID="sess-co-3")
    assert invoice.status_code == 200
    assert invoice.json()["data"]["number"] == created["order"]["number"]
    assert invoice.json()["data"]["status"] == "sent"


@pytest.mark.django_db
def test_confirm_payment_requires_staff():
    client = _guest_with_cart("sess-co-4")
    created = client.post(
        "/api/v1/checkout/", {"shipping_address": ADDRESS}, format="json", HTTP_X_SESSION_ID="sess-co-4"
    ).json()["data"]
    url = f"/api/v1/orders/{created['order']['id']}/confirm-payment/"

    shopper = APIClient()
    shopper.force_authenticate(user=UserFactory())
    assert shopper.post(url).status_code == 403

    staff = APIClient()
    staff.force_authenticate(user=UserFactory(is_staff=True))
    r = staff.post(url)
    assert r.status_code == 200
    assert r.json()["data"]["status"] == "confirmed"
    assert r.json()["data"]["payment_status"] == "paid"

    # A paid order is no longer current
    assert client.get("/api/v1/orders/current/", HTTP_X_SESSION_ID="sess-co-4").status_code == 404
    assert staff.post("/api/v1/orders/999999/confirm-payment/").status_code == 404


@pytest.mark.django_db
def test_storage_outage_is_a_retryable_failure_envelope():
    client = _guest_with_cart("sess-co-5")

    with patch("orders.services.latest_open_order", side_effect=OperationalError("db blip")):
        r = client.post(
            "/api/v1/checkout/", {"shipping_address": ADDRESS}, format="json", HTTP_X_SESSION_ID="sess-co-5"
        )

    assert r.status_code == 503
    assert r["Content-Type"] == "application/json"
    assert r.json() == {
        "success": False,
        "error": {"code": "transient_storage", "detail": "Order storage is unavailable, please retry"},
    }
    assert not Order.objects.exists()


@pytest.mark.django_db
def test_current_order_reads_answer_503_when_storage_is_down():
    client = _guest_with_cart("sess-co-6")
    client.post("/api/v1/checkout/", {"shipping_address": ADDRESS}, format="json", HTTP_X_SESSION_ID="sess-co-6")

    with patch("orders.views.get_current_order", side_effect=OperationalError("db blip")):
        order = client.get("/api/v1/orders/current/", HTTP_X_SESSION_ID="sess-co-6")
        invoice = client.get("/api/v1/orders/current/invoice/", HTTP_X_SESSION_ID="sess-co-6")

    for r in (order, invoice):
        assert r.status_code == 503
        assert r.json()["success"] is False
        assert r.json()["error"]["code"] == "transient_storage"
