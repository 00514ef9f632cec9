from decimal import Decimal

import pytest
from common.choices import OrderStatus, Role
from orders.models import Order
from orders.services import cancel_order
from orders.tests.factories import advance, place_order, stocked_variant
from rest_framework.test import APIClient
from users.tests.factories import UserFactory

S = OrderStatus


def client_for(user):
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.mark.django_db
def test_customer_lists_only_own_orders_and_staff_sees_all():
    alice, bob = UserFactory(), UserFactory()
    mine = place_order(alice, (stocked_variant(), 1))
    place_order(bob, (stocked_variant(), 1))

    body = client_for(alice).get("/api/v1/orders/").json()
    assert [o["id"] for o in body["results"]] == [mine.id]

    body = client_for(UserFactory(role=Role.STAFF)).get("/api/v1/orders/").json()
    assert body["count"] == 2


@pytest.mark.django_db
def test_order_list_filters_status_and_number():
    user = UserFactory()
    first = place_order(user, (stocked_variant(), 1))
    second = place_order(user, (stocked_variant(), 1))
    cancel_order(order_id=second.id, role=Role.CUSTOMER, actor=user)
    client = client_for(user)

    by_status = client.get("/api/v1/orders/", {"status": "cancelled"}).json()["results"]
    by_number = client.get("/api/v1/orders/", {"number": first.number}).json()["results"]

    assert [o["id"] for o in by_status] == [second.id]
    assert [o["id"] for o in by_number] == [first.id]


@pytest.mark.django_db
def test_order_detail_of_another_customer_is_404():
    order = place_order(UserFactory(), (stocked_variant(), 1))

    resp = client_for(UserFactory()).get(f"/api/v1/orders/{order.id}/")

    assert resp.status_code == 404
    assert resp.json()["code"] == "not_found"


@pytest.mark.django_db
def test_order_detail_includes_items_and_events():
    user = UserFactory()
    variant = stocked_variant(price=Decimal("1250.00"))
    order = place_order(user, (variant, 2))

    body = client_for(user).get(f"/api/v1/orders/{order.id}/").json()

    assert body["number"] == order.number
    assert body["items"][0]["variant_code"] == variant.code
    assert body["items"][0]["line_total"] == "2500.00"
    assert body["events"][0]["event"] == "created"
    assert body["refund"] is None


@pytest.mark.django_db
def test_transitions_endpoint_lists_allowed_and_moves_forward():
    order = place_order(UserFactory(), (stocked_variant(), 1))
    staff = client_for(UserFactory(role=Role.STAFF))

    allowed = staff.get(f"/api/v1/orders/{order.id}/transitions/").json()
    resp = staff.post(f"/api/v1/orders/{order.id}/transitions/", {"status": "processing"}, format="json")

    assert allowed == {"status": "pending", "allowed": ["cancelled", "processing"]}
    assert resp.status_code == 200
    assert resp.json()["status"] == "processing"


@pytest.mark.django_db
def test_backward_transition_by_staff_returns_409_with_allowed_states():
    order = advance(place_order(UserFactory(), (stocked_variant(), 1)), S.PROCESSING, S.READY_FOR_PICKUP)

    resp = client_for(UserFactory(role=Role.STAFF)).post(
        f"/api/v1/orders/{order.id}/transitions/", {"status": "processing"}, format="json"
    )

    assert resp.status_code == 409
    body = resp.json()
    assert body["code"] == "invalid_state_transition"
    assert body["current_state"] == "ready-for-pickup"
    assert body["allowed"] == ["cancelled", "completed"]


@pytest.mark.django_db
def test_customer_cannot_transition_status():
    user = UserFactory()
    order = place_order(user, (stocked_variant(), 1))

    resp = client_for(user).post(f"/api/v1/orders/{order.id}/transitions/", {"status": "processing"}, format="json")

    assert resp.status_code == 403
    assert resp.json() == {
        "detail": "You do not have permission to perform this action.",
        "code": "permission_denied",
    }


@pytest.mark.django_db
def test_customer_cancel_endpoint_is_idempotent():
    user = UserFactory()
    order = place_order(user, (stocked_variant(), 1))
    client = client_for(user)

    first = client.post(f"/api/v1/orders/{order.id}/cancel/", {"reason": "Oops"}, format="json")
    second = client.post(f"/api/v1/orders/{order.id}/cancel/", {}, format="json")

    assert first.status_code == second.status_code == 200
    assert second.json()["status"] == "cancelled"
    assert second.json()["canceled_by"] == "customer"


@pytest.mark.django_db
def test_manual_order_endpoint():
    customer = UserFactory()
    variant = stocked_variant(price=Decimal("999.00"))
    staff = client_for(UserFactory(role=Role.STAFF))

    resp = staff.post(
        "/api/v1/orders/manual/",
        {"user_id": customer.id, "items": [{"variant_id": variant.id, "quantity": 1}], "payment_method": "cash"},
        format="json",
    )

    assert resp.status_code == 201
    body = resp.json()
    assert body["is_manual_order"] is True
    assert body["user"] == customer.id
    assert body["total"] == "999.00"


@pytest.mark.django_db
def test_manual_order_forbidden_for_customers():
    variant = stocked_variant()

    resp = client_for(UserFactory()).post(
        "/api/v1/orders/manual/", {"items": [{"variant_id": variant.id, "quantity": 1}]}, format="json"
    )

    assert resp.status_code == 403


@pytest.mark.django_db
def test_refund_request_and_processing_flow():
    user = UserFactory()
    order = advance(
        place_order(user, (stocked_variant(price=Decimal("400.00")), 1)), S.PROCESSING, S.READY_FOR_PICKUP, S.COMPLETED
    )
    staff = client_for(UserFactory(role=Role.STAFF))

    req = client_for(user).post(
        f"/api/v1/orders/{order.id}/refund-request/", {"items": [0], "reason": "Wobbly"}, format="json"
    )
    queue = staff.get("/api/v1/orders/refund-requests/").json()
    refund = staff.post(
        f"/api/v1/orders/{order.id}/refund/",
        {"refund_method": "gcash", "refund_amount": "400.00", "refund_reason": "Wobbly", "items_refunded": [0]},
        format="json",
    )
    again = staff.post(
        f"/api/v1/orders/{order.id}/refund/",
        {"refund_method": "gcash", "refund_amount": "1.00", "refund_reason": "Again"},
        format="json",
    )

    assert req.status_code == 200
    assert req.json()["items"][0]["refund_status"] == "pending"
    assert [o["id"] for o in queue["results"]] == [order.id]
    assert refund.status_code == 200
    assert refund.json()["status"] == "completed"
    assert refund.json()["display_status"] == "refunded"
    assert again.status_code == 409
    assert again.json()["code"] == "already_refunded"


@pytest.mark.django_db
def test_idempotent_failure_is_replayed():
    order = advance(place_order(UserFactory(), (stocked_variant(), 1)), S.PROCESSING)
    staff = client_for(UserFactory(role=Role.STAFF))
    url = f"/api/v1/orders/{order.id}/transitions/"

    first = staff.post(url, {"status": "completed"}, format="json", HTTP_IDEMPOTENCY_KEY="t-1")
    second = staff.post(url, {"status": "completed"}, format="json", HTTP_IDEMPOTENCY_KEY="t-1")
    reused = staff.post(url, {"status": "cancelled"}, format="json", HTTP_IDEMPOTENCY_KEY="t-1")

    assert first.status_code == second.status_code == 409
    assert first.json() == second.json()
    assert reused.status_code == 409
    assert reused.json()["detail"] == "Idempotency key reused with different request payload"
    assert Order.objects.get(pk=order.id).status == S.PROCESSING


@pytest.mark.django_db
def test_verify_payment_endpoint():
    order = place_order(UserFactory(), (stocked_variant(), 1))

    resp = client_for(UserFactory(role=Role.ADMIN)).post(
        f"/api/v1/orders/{order.id}/verify-payment/", {"approved": True}, format="json"
    )

    assert resp.status_code == 200
    assert resp.json()["payment_status"] == "verified"
    assert resp.json()["status"] == "pending"
