import pytest
from fastapi.testclient import TestClient

from tests.conftest import RESIDENT

API = "/api/v1"


@pytest.fixture
def room(make_room):
    return make_room(capacity=1, price="12000")


def checkout(client, headers, room):
    response = client.post(
        f"{API}/bookings/checkout",
        json={"room_id": room.id, "plan_id": room.plans[0].id},
        headers=headers,
    )
    assert response.status_code == 200, response.text
    return response.json()


def verify(client, headers, room, order_id, payment_id, signature, **resident):
    return client.post(
        f"{API}/bookings/verify",
        json={
            "order_id": order_id,
            "payment_id": payment_id,
            "signature": signature,
            "room_id": room.id,
            "plan_id": room.plans[0].id,
            "resident_details": {**RESIDENT, **resident},
        },
        headers=headers,
    )


def test_health(client):
    response = client.get(f"{API}/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["version"] == "1.0.0"
    assert "X-Request-ID" in response.headers


def test_unauthenticated_request_uses_error_envelope(client):
    response = client.get(f"{API}/bookings/status")
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "AUTHENTICATION_FAILED"


def test_bad_token(client):
    response = client.get(f"{API}/bookings/status", headers={"Authorization": "Bearer nope"})
    assert response.status_code == 401


def test_student_cannot_create_rooms(client, student, auth_headers):
    response = client.post(
        f"{API}/rooms",
        json={
            "room_number": "301",
            "floor_id": "floor-3",
            "room_type": "AC",
            "capacity": 2,
            "pricing_plans": [{"duration": 1, "unit": "year", "price": "20000"}],
        },
        headers=auth_headers(student),
    )
    assert response.status_code == 403
    assert response.json()["error"]["code"] == "AUTHORIZATION_FAILED"


def test_admin_creates_room(client, admin, auth_headers):
    response = client.post(
        f"{API}/rooms",
        json={
            "room_number": "301",
            "floor_id": "floor-3",
            "room_type": "AC",
            "capacity": 2,
            "pricing_plans": [{"duration": 1, "unit": "year", "price": "20000"}],
        },
        headers=auth_headers(admin),
    )
    assert response.status_code == 201
    body = response.json()
    assert body["bathroom_type"] == "Attached"
    assert body["occupant_count"] == 0

    listed = client.get(
        f"{API}/rooms", params={"available_only": True}, headers=auth_headers(admin)
    ).json()
    assert [r["room_number"] for r in listed] == ["301"]


def test_validation_error_envelope(client, student, auth_headers):
    response = client.post(f"{API}/bookings/checkout", json={"room_id": "r1"}, headers=auth_headers(student))
    assert response.status_code == 422
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert "plan_id" in error["details"]["field_errors"]


def test_checkout_and_verify_flow(client, student, room, auth_headers, sign):
    headers = auth_headers(student)
    order = checkout(client, headers, room)
    assert order["amount"] == 1_200_000
    assert order["key_id"] == "rzp_test_key"
    assert order["room"]["id"] == room.id

    response = verify(client, headers, room, order["order_id"], "pay_A1", sign(order["order_id"], "pay_A1"))
    assert response.status_code == 201, response.text
    committed = response.json()
    assert committed["replayed"] is False
    assert float(committed["total_amount"]) == 12000.0

    status = client.get(f"{API}/bookings/status", headers=headers).json()
    assert status == {"has_booking": True, "booking_id": committed["booking_id"], "status": "Pending"}

    mine = client.get(f"{API}/bookings/my", headers=headers).json()
    assert mine["room"]["occupant_count"] == 1
    assert mine["payment_status"] == "Paid"

    invoices = client.get(f"{API}/resident/my-invoices", headers=headers).json()
    assert [i["status"] for i in invoices] == ["Paid"]

    notes = client.get(f"{API}/notifications", headers=headers).json()
    assert notes["unread_count"] == 1

    # Second submission of the same proof
    again = verify(client, headers, room, order["order_id"], "pay_A1", sign(order["order_id"], "pay_A1"))
    assert again.status_code == 201
    assert again.json()["booking_id"] == committed["booking_id"]
    assert again.json()["replayed"] is True


def test_invalid_signature_is_400(client, student, room, auth_headers):
    headers = auth_headers(student)
    order = checkout(client, headers, room)

    response = verify(client, headers, room, order["order_id"], "pay_A1", "0" * 64)
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_PAYMENT_SIGNATURE"
    assert client.get(f"{API}/bookings/status", headers=headers).json()["has_booking"] is False


def test_gateway_outage_after_payment_is_accepted_not_failed(client, student, room, auth_headers, sign, fake_razorpay):
    headers = auth_headers(student)
    order = checkout(client, headers, room)
    fake_razorpay.fail_with = "timeout"

    response = verify(client, headers, room, order["order_id"], "pay_A1", sign(order["order_id"], "pay_A1"))

    assert response.status_code == 202
    error = response.json()["error"]
    assert error["code"] == "BOOKING_PENDING_CONFIRMATION"
    assert error["details"]["payment_received"] is True


def test_gateway_outage_at_checkout_is_503(client, student, room, auth_headers, fake_razorpay):
    fake_razorpay.fail_with = "network"
    response = client.post(
        f"{API}/bookings/checkout",
        json={"room_id": room.id, "plan_id": room.plans[0].id},
        headers=auth_headers(student),
    )
    assert response.status_code == 503
    assert response.json()["error"]["details"]["retryable"] is True


def test_lost_race_is_409_and_reconcilable(client, student, other_student, admin, room, auth_headers, sign):
    first, second = auth_headers(student), auth_headers(other_student)
    order_a = checkout(client, first, room)
    order_b = checkout(client, second, room)

    ok = verify(client, first, room, order_a["order_id"], "pay_A1", sign(order_a["order_id"], "pay_A1"))
    assert ok.status_code == 201

    lost = verify(client, second, room, order_b["order_id"], "pay_B1", sign(order_b["order_id"], "pay_B1"),
                  full_name="Bilal Khan")
    assert lost.status_code == 409
    assert lost.json()["error"]["code"] == "ROOM_UNAVAILABLE"

    admin_headers = auth_headers(admin)
    flagged = client.get(f"{API}/payments/reconciliation", headers=admin_headers).json()
    assert [(r["payment_id"], r["status"]) for r in flagged] == [("pay_B1", "REFUND_REQUIRED")]

    refunded = client.post(f"{API}/payments/reconciliation/{flagged[0]['id']}/refund", headers=admin_headers)
    assert refunded.status_code == 200
    assert refunded.json()["status"] == "REFUNDED"
    assert refunded.json()["refund_id"] == "rfnd_0001"
    assert client.get(f"{API}/payments/reconciliation", headers=admin_headers).json() == []


def test_resident_lifecycle_over_http(client, student, admin, room, auth_headers, sign):
    headers = auth_headers(student)
    order = checkout(client, headers, room)
    booking_id = verify(
        client, headers, room, order["order_id"], "pay_A1", sign(order["order_id"], "pay_A1")
    ).json()["booking_id"]
    admin_headers = auth_headers(admin)

    assert client.post(f"{API}/resident/check-out/{booking_id}", headers=admin_headers).status_code == 409

    checked_in = client.post(f"{API}/resident/check-in/{booking_id}", headers=admin_headers)
    assert checked_in.status_code == 200
    assert checked_in.json()["status"] == "CheckedIn"

    checked_out = client.post(f"{API}/resident/check-out/{booking_id}", headers=admin_headers)
    assert checked_out.json()["status"] == "CheckedOut"
    assert client.get(f"{API}/rooms/{room.id}", headers=admin_headers).json()["is_occupied"] is False


def test_billing_over_http(client, student, admin, auth_headers):
    admin_headers = auth_headers(admin)
    created = client.post(
        f"{API}/billing/charges",
        json={"student_id": student.id, "charge_type": "Fine", "description": "Late entry", "amount": "150.00"},
        headers=admin_headers,
    )
    assert created.status_code == 201
    assert created.json()["invoice_number"].startswith("FIN-")

    pending = client.get(f"{API}/billing/my-pending", headers=auth_headers(student)).json()
    assert float(pending["total_due"]) == 150.0

    paid = client.post(f"{API}/billing/invoices/{created.json()['id']}/mark-paid", headers=admin_headers)
    assert paid.json()["status"] == "Paid"
    assert client.post(f"{API}/billing/mark-overdue", headers=admin_headers).json() == {"marked_overdue": 0}


def test_shutdown_releases_gateway_client(app, gateway):
    with TestClient(app) as c:
        assert c.get(f"{API}/health").status_code == 200
    assert gateway._client.is_closed


def test_resident_dashboard_over_http(client, student, other_student, admin, room, auth_headers, sign):
    headers = auth_headers(student)
    order = checkout(client, headers, room)
    verify(client, headers, room, order["order_id"], "pay_A1", sign(order["order_id"], "pay_A1"))
    admin_headers = auth_headers(admin)

    rows = client.get(f"{API}/resident/dashboard-view", headers=admin_headers).json()
    by_name = {row["username"]: row for row in rows}
    assert by_name["asha"]["residency_status"] == "Pending"
    assert by_name["asha"]["room"]["room_number"] == room.room_number
    assert by_name["bilal"]["residency_status"] == "Unassigned"

    unassigned = client.get(f"{API}/resident/dashboard-view", params={"status": "Unassigned"}, headers=admin_headers)
    assert [row["username"] for row in unassigned.json()] == ["bilal"]
    assert client.get(f"{API}/resident/dashboard-view", headers=headers).status_code == 403


def test_invoice_listing_and_reminder_over_http(client, student, admin, auth_headers):
    admin_headers = auth_headers(admin)
    client.post(
        f"{API}/billing/charges",
        json={"student_id": student.id, "charge_type": "Fine", "description": "Late entry", "amount": "150.00"},
        headers=admin_headers,
    )

    invoices = client.get(f"{API}/billing/all-invoices", params={"status": "Pending"}, headers=admin_headers)
    assert invoices.status_code == 200
    assert [i["student"]["username"] for i in invoices.json()] == ["asha"]

    reminder = client.post(f"{API}/billing/send-reminder", json={"student_id": student.id}, headers=admin_headers)
    assert reminder.status_code == 200
    body = reminder.json()
    assert float(body["total_due"]) == 150.0
    assert body["notified"] is True
    assert body["email_sent"] is False

    notifications = client.get(f"{API}/notifications", headers=auth_headers(student)).json()["notifications"]
    assert any("Reminder" in n["message"] for n in notifications)


def test_room_deletion_over_http(client, admin, make_room, auth_headers, db):
    admin_headers = auth_headers(admin)
    empty, occupied = make_room(), make_room(capacity=2)
    occupied.occupant_count = 1
    db.commit()

    assert client.delete(f"{API}/rooms/{empty.id}", headers=admin_headers).status_code == 204
    assert client.get(f"{API}/rooms/{empty.id}", headers=admin_headers).status_code == 404

    refused = client.delete(f"{API}/rooms/{occupied.id}", headers=admin_headers)
    assert refused.status_code == 409
    assert refused.json()["error"]["code"] == "ROOM_IN_USE"
    assert refused.json()["error"]["details"]["reason"] == "occupied"
