import base64
import json

import pytest

from hostel_app.core.exceptions import GatewayRejectedError, GatewayUnavailableError
from hostel_app.services.payment.payment_gateway import GatewayOrder, compute_signature

from tests.conftest import GATEWAY_SECRET


def test_create_order_sends_amount_and_notes(gateway, fake_razorpay):
    order = gateway.create_order(1_200_000, "INR", "receipt_1", {"room_id": "r1"})

    assert order.amount == 1_200_000
    assert order.currency == "INR"
    assert order.notes == {"room_id": "r1"}

    request = fake_razorpay.requests[-1]
    assert json.loads(request.content)["amount"] == 1_200_000
    expected_auth = base64.b64encode(f"rzp_test_key:{GATEWAY_SECRET}".encode()).decode()
    assert request.headers["Authorization"] == f"Basic {expected_auth}"


def test_fetch_order_returns_notes(gateway):
    created = gateway.create_order(50_000, "INR", "receipt_2", {"plan_id": "p1"})
    fetched = gateway.fetch_order(created.id)
    assert fetched.id == created.id
    assert fetched.notes["plan_id"] == "p1"


def test_empty_notes_list_becomes_dict():
    order = GatewayOrder.from_payload({"id": "order_1", "amount": 100, "currency": "INR", "notes": []})
    assert order.notes == {}


def test_public_key_id_never_exposes_secret(gateway):
    assert gateway.public_key_id == "rzp_test_key"
    assert GATEWAY_SECRET not in gateway.public_key_id


class TestVerifyPayment:

    def test_valid_signature(self, gateway):
        signature = compute_signature(GATEWAY_SECRET, "order_1", "pay_1")
        assert gateway.verify_payment("order_1", "pay_1", signature) is True

    def test_tampered_payment_id(self, gateway):
        signature = compute_signature(GATEWAY_SECRET, "order_1", "pay_1")
        assert gateway.verify_payment("order_1", "pay_2", signature) is False

    def test_signature_from_other_secret(self, gateway):
        signature = compute_signature("someone-else", "order_1", "pay_1")
        assert gateway.verify_payment("order_1", "pay_1", signature) is False

    @pytest.mark.parametrize("signature", ["", "not-hex", "ü" * 64])
    def test_malformed_signature_never_raises(self, gateway, signature):
        assert gateway.verify_payment("order_1", "pay_1", signature) is False

    def test_uppercase_hex_is_accepted(self, gateway):
        signature = compute_signature(GATEWAY_SECRET, "order_1", "pay_1").upper()
        assert gateway.verify_payment("order_1", "pay_1", signature) is True


class TestFailureMapping:

    def test_timeout_is_unavailable(self, gateway, fake_razorpay):
        fake_razorpay.fail_with = "timeout"
        with pytest.raises(GatewayUnavailableError) as exc:
            gateway.create_order(100, "INR", "r")
        assert exc.value.details == {"retryable": True, "reason": "timeout"}
        assert exc.value.status_code == 503

    def test_connection_error_is_unavailable(self, gateway, fake_razorpay):
        fake_razorpay.fail_with = "network"
        with pytest.raises(GatewayUnavailableError) as exc:
            gateway.fetch_order("order_1")
        assert exc.value.details["reason"] == "network"

    def test_bad_credentials_are_unavailable(self, gateway, fake_razorpay):
        fake_razorpay.fail_with = 401
        with pytest.raises(GatewayUnavailableError) as exc:
            gateway.create_order(100, "INR", "r")
        assert exc.value.details["reason"] == "auth"

    def test_server_error_is_unavailable(self, gateway, fake_razorpay):
        fake_razorpay.fail_with = 502
        with pytest.raises(GatewayUnavailableError):
            gateway.create_order(100, "INR", "r")

    def test_client_error_is_rejection(self, gateway):
        with pytest.raises(GatewayRejectedError) as exc:
            gateway.fetch_order("order_missing")
        assert exc.value.details["gateway_status"] == 400
        assert exc.value.message == "The id provided does not exist"

    def test_single_attempt_on_failure(self, gateway, fake_razorpay):
        fake_razorpay.fail_with = "timeout"
        with pytest.raises(GatewayUnavailableError):
            gateway.create_order(100, "INR", "r")
        assert len(fake_razorpay.requests) == 1


def test_refund_payment(gateway, fake_razorpay):
    refund_id = gateway.refund_payment("pay_9", 1_200_000)
    assert refund_id == "rfnd_0001"
    assert fake_razorpay.refunds == [{"id": "rfnd_0001", "payment_id": "pay_9", "amount": 1_200_000}]
