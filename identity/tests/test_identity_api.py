import pytest
from cart.tests.factories import UserFactory
from catalog.tests.factories import ProductFactory
from identity.models import BrowsingContext
from rest_framework.test import APIClient


@pytest.mark.django_db
def test_resolve_issues_context_key_and_guest_owner():
    client = APIClient()

    r = client.post("/api/v1/identity/resolve/")
    body = r.json()
    assert r.status_code == 200
    assert body["success"] is True
    context_key = body["data"]["context_key"]
    assert body["data"]["kind"] == "anonymous"
    assert body["data"]["owner"].startswith("anon:guest_")

    again = client.post("/api/v1/identity/resolve/", HTTP_X_SESSION_ID=context_key).json()
    assert again["data"]["owner"] == body["data"]["owner"]


@pytest.mark.django_db
def test_resolve_returns_account_owner_when_signed_in():
    user = UserFactory()
    client = APIClient()
    client.force_authenticate(user=user)

    r = client.post("/api/v1/identity/resolve/", HTTP_X_SESSION_ID="ctx-api-1")

    assert r.status_code == 200
    assert r.json()["data"]["owner"] == f"acct:{user.pk}"


@pytest.mark.django_db
def test_merge_endpoint_moves_guest_cart_into_account():
    product = ProductFactory()
    client = APIClient()
    client.post("/api/v1/cart/items/", {"product_id": product.id, "quantity": 2}, format="json", HTTP_X_SESSION_ID="ctx-api-2")
    user = UserFactory()
    client.force_authenticate(user=user)

    r = client.post("/api/v1/identity/merge/", {}, format="json", HTTP_X_SESSION_ID="ctx-api-2")
    body = r.json()

    assert r.status_code == 200
    assert body["success"] is True
    assert body["data"]["outcome"] == "converted"
    assert body["data"]["owner"]["owner"] == f"acct:{user.pk}"
    assert body["data"]["cart"]["item_count"] == 2
    assert BrowsingContext.objects.get(context_key="ctx-api-2").anonymous_token is None

    cart = client.get("/api/v1/cart/", HTTP_X_SESSION_ID="ctx-api-2").json()
    assert cart["data"]["owner"] == f"acct:{user.pk}"
    assert cart["data"]["item_count"] == 2


@pytest.mark.django_db
def test_merge_endpoint_requires_authentication():
    client = APIClient()
    r = client.post("/api/v1/identity/merge/", {}, format="json", HTTP_X_SESSION_ID="ctx-api-3")
    assert r.status_code == 401
    assert r.json()["success"] is False


@pytest.mark.django_db
def test_sign_out_returns_new_guest_owner():
    client = APIClient()
    first = client.post("/api/v1/identity/resolve/", HTTP_X_SESSION_ID="ctx-api-4").json()["data"]

    r = client.post("/api/v1/identity/sign-out/", HTTP_X_SESSION_ID="ctx-api-4")

    assert r.status_code == 200
    assert r.json()["data"]["kind"] == "anonymous"
    assert r.json()["data"]["owner"] != first["owner"]


@pytest.mark.django_db
def test_token_obtain_pair_authenticates_merge():
    user = UserFactory(username="ada")
    client = APIClient()

    r = client.post("/api/v1/auth/token/", {"username": "ada", "password": "pass"}, format="json")
    assert r.status_code == 200
    access = r.json()["access"]

    client.credentials(HTTP_AUTHORIZATION=f"Bearer {access}")
    merged = client.post("/api/v1/identity/merge/", {}, format="json", HTTP_X_SESSION_ID="ctx-api-5")
    assert merged.status_code == 200
    assert merged.json()["data"]["owner"]["owner"] == f"acct:{user.pk}"
