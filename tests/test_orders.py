from datetime import datetime, timedelta
from unittest import mock

import pytest
from pymongo.errors import ServerSelectionTimeoutError

from database import Database
from errors import InvalidInput, InvalidTransition
from orders import check_transition, ensure_requestable

BUYER = "buyer@example.com"
OTHER = "other@example.com"


def place(client, auth, payload, email=BUYER):
    resp = client.post("/orders", json=payload, headers=auth(email))
    assert resp.status_code == 200
    return resp.json()


def set_status(client, auth, order_id, status, email=BUYER):
    return client.patch(f"/orders/{order_id}/status", json={"status": status}, headers=auth(email))


class TestCheckTransition:
    @pytest.mark.parametrize("current", ["cancelled", "delivered"])
    @pytest.mark.parametrize("requested", ["accepted", "cancelled", "delivered"])
    def test_terminal_states_reject_everything(self, current, requested):
        with pytest.raises(InvalidTransition):
            check_transition(current, requested)

    @pytest.mark.parametrize("current", ["pending", "cancelled", "delivered"])
    def test_delivery_requires_acceptance(self, current):
        with pytest.raises(InvalidTransition):
            check_transition(current, "delivered")

    @pytest.mark.parametrize("current,requested", [
        ("pending", "accepted"),
        ("pending", "cancelled"),
        ("accepted", "delivered"),
        ("accepted", "cancelled"),
    ])
    def test_allowed(self, current, requested):
        check_transition(current, requested)

    @pytest.mark.parametrize("requested", ["pending", "paid", "shipped", ""])
    def test_unknown_status(self, requested):
        with pytest.raises(InvalidInput):
            ensure_requestable(requested)


def test_order_created_pending(client, auth, order_payload):
    order = place(client, auth, order_payload)
    assert order["orderStatus"] == "pending"
    assert order["paymentStatus"] == "pending"
    assert order["userEmail"] == BUYER
    assert order["paidAt"] is None
    assert order["id"]


def test_order_rejects_unknown_fields(client, auth, order_payload):
    order_payload["orderStatus"] = "delivered"
    resp = client.post("/orders", json=order_payload, headers=auth(BUYER))
    assert resp.status_code == 422


def test_order_requires_token(client, order_payload):
    resp = client.post("/orders", json=order_payload)
    assert resp.status_code == 401


def test_order_rejects_bad_token(client, order_payload):
    resp = client.post("/orders", json=order_payload, headers={"Authorization": "Bearer not-a-token"})
    assert resp.status_code == 401


def test_fraud_user_cannot_order(client, auth, make_user, order_payload):
    make_user(BUYER, status="fraud")
    resp = client.post("/orders", json=order_payload, headers=auth(BUYER))
    assert resp.status_code == 403


def test_lifecycle_scenario(client, auth, order_payload):
    order_id = place(client, auth, order_payload)["id"]

    resp = set_status(client, auth, order_id, "delivered")
    assert resp.status_code == 400
    assert resp.json()["code"] == "INVALID_TRANSITION"

    resp = set_status(client, auth, order_id, "accepted")
    assert resp.status_code == 200
    assert resp.json()["orderStatus"] == "accepted"

    resp = set_status(client, auth, order_id, "delivered")
    assert resp.status_code == 200
    assert resp.json()["orderStatus"] == "delivered"

    resp = set_status(client, auth, order_id, "cancelled")
    assert resp.status_code == 400


@pytest.mark.parametrize("requested", ["accepted", "cancelled", "delivered"])
def test_cancelled_order_is_closed(client, auth, order_payload, requested):
    order_id = place(client, auth, order_payload)["id"]
    assert set_status(client, auth, order_id, "cancelled").status_code == 200

    resp = set_status(client, auth, order_id, requested)
    assert resp.status_code == 400
    assert "cancelled" in resp.json()["detail"]


def test_invalid_status_value(client, auth, order_payload):
    order_id = place(client, auth, order_payload)["id"]
    resp = set_status(client, auth, order_id, "pending")
    assert resp.status_code == 400
    assert resp.json()["code"] == "INVALID_INPUT"


def test_invalid_status_checked_before_lookup(client, auth):
    resp = set_status(client, auth, "64b7f0c2a1b2c3d4e5f60718", "shipped")
    assert resp.status_code == 400
    assert resp.json()["code"] == "INVALID_INPUT"


def test_status_of_missing_order(client, auth):
    resp = set_status(client, auth, "64b7f0c2a1b2c3d4e5f60718", "accepted")
    assert resp.status_code == 404


def test_status_with_malformed_id(client, auth):
    resp = set_status(client, auth, "not-an-id", "accepted")
    assert resp.status_code == 400


@pytest.mark.parametrize("status", ["pending", "accepted", "cancelled"])
def test_mark_paid_from_any_status(client, auth, order_payload, status):
    order_id = place(client, auth, order_payload)["id"]
    if status != "pending":
        set_status(client, auth, order_id, status)

    resp = client.patch(f"/orders/{order_id}/pay", headers=auth(BUYER))
    assert resp.status_code == 200
    body = resp.json()
    assert body["paymentStatus"] == "paid"
    assert body["paidAt"] is not None
    assert body["orderStatus"] == status


def test_mark_paid_twice_stays_paid(client, auth, order_payload, db):
    order_id = place(client, auth, order_payload)["id"]
    client.patch(f"/orders/{order_id}/pay", headers=auth(BUYER))
    resp = client.patch(f"/orders/{order_id}/pay", headers=auth(BUYER))
    assert resp.json()["paymentStatus"] == "paid"
    assert db.orders.count_documents({"paymentStatus": "paid"}) == 1


def test_mark_paid_missing_order(client, auth):
    resp = client.patch("/orders/64b7f0c2a1b2c3d4e5f60718/pay", headers=auth(BUYER))
    assert resp.status_code == 404


def test_delete_own_order(client, auth, order_payload, db):
    order_id = place(client, auth, order_payload)["id"]
    set_status(client, auth, order_id, "accepted")

    resp = client.delete(f"/orders/{order_id}", headers=auth(BUYER))
    assert resp.status_code == 200
    assert resp.json()["success"] is True
    assert db.orders.count_documents({}) == 0


def test_delete_someone_elses_order(client, auth, order_payload, db):
    order_id = place(client, auth, order_payload)["id"]
    resp = client.delete(f"/orders/{order_id}", headers=auth(OTHER))
    assert resp.status_code == 403
    assert db.orders.count_documents({}) == 1


def test_delete_missing_order(client, auth):
    resp = client.delete("/orders/64b7f0c2a1b2c3d4e5f60718", headers=auth(BUYER))
    assert resp.status_code == 404


def test_list_orders_self_only(client, auth, order_payload):
    place(client, auth, order_payload)
    place(client, auth, order_payload, email=OTHER)

    resp = client.get("/orders", params={"email": BUYER}, headers=auth(BUYER))
    assert resp.status_code == 200
    assert [o["userEmail"] for o in resp.json()] == [BUYER]

    resp = client.get("/orders", params={"email": BUYER}, headers=auth(OTHER))
    assert resp.status_code == 403


def test_list_orders_without_email(client, auth):
    resp = client.get("/orders", headers=auth(BUYER))
    assert resp.status_code == 403


def test_chef_orders_newest_first(client, auth, db):
    now = datetime(2024, 5, 1, 12, 0)
    for i, chef in enumerate(["chef-1", "chef-1", "chef-2", "chef-1"]):
        db.orders.insert_one({
            "userEmail": BUYER,
            "chefId": chef,
            "mealId": f"meal-{i}",
            "mealName": "Khichuri",
            "price": 5,
            "quantity": 1,
            "orderTime": now + timedelta(minutes=i),
            "orderStatus": "pending",
            "paymentStatus": "pending",
        })

    resp = client.get("/chef/orders", params={"chefId": "chef-1"}, headers=auth(BUYER))
    assert resp.status_code == 200
    assert [o["mealId"] for o in resp.json()] == ["meal-3", "meal-1", "meal-0"]


def test_chef_orders_requires_chef_id(client, auth):
    resp = client.get("/chef/orders", headers=auth(BUYER))
    assert resp.status_code == 400


def test_storage_failure_is_internal_error(client, auth):
    broken = mock.MagicMock()
    broken.find_one.side_effect = ServerSelectionTimeoutError("no servers")
    with mock.patch.object(Database, "orders", new_callable=mock.PropertyMock, return_value=broken):
        resp = set_status(client, auth, "64b7f0c2a1b2c3d4e5f60718", "accepted")
    assert resp.status_code == 500
    assert resp.json()["code"] == "INTERNAL_FAILURE"
