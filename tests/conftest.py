import json
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient

from hostel_app.config.settings import Settings
from hostel_app.core.security import Actor, create_access_token
from hostel_app.main import create_app
from hostel_app.models.base.enums import PlanUnit, RoomType, UserRole
from hostel_app.models.room import Room, RoomPricingPlan
from hostel_app.models.user import User
from hostel_app.schemas.booking.booking_request import ResidentDetails, VerifyPaymentRequest
from hostel_app.services.booking.booking_lifecycle_service import BookingLifecycleService
from hostel_app.services.payment.payment_gateway import RazorpayGateway, compute_signature

GATEWAY_SECRET = "rzp_test_secret"

RESIDENT = {
    "full_name": "Asha Verma",
    "date_of_birth": "2004-05-17",
    "gender": "Female",
    "phone_number": "9876543210",
    "student_id": "CS21B042",
    "address": {"street": "12 MG Road", "city": "Pune", "state": "MH", "zip_code": "411001"},
    "emergency_contact": {"name": "R. Verma", "phone": "9876500000", "relationship": "Father"},
    "check_in_date": "2026-11-01",
}


class FakeRazorpay:
    """In-memory stand-in for the Razorpay Orders/Refunds API, mounted via httpx.MockTransport."""

    def __init__(self):
        self.orders: Dict[str, Dict[str, Any]] = {}
        self.refunds: List[Dict[str, Any]] = []
        self.requests: List[httpx.Request] = []
        # "timeout", "network" or an HTTP status code
        self.fail_with: Optional[Any] = None

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_with == "timeout":
            raise httpx.ReadTimeout("timed out", request=request)
        if self.fail_with == "network":
            raise httpx.ConnectError("connection refused", request=request)
        if isinstance(self.fail_with, int):
            return httpx.Response(self.fail_with, json={"error": {"code": "ERROR", "description": "boom"}})

        path = request.url.path
        if request.method == "POST" and path.endswith("/orders"):
            body = json.loads(request.content)
            order_id = f"order_{len(self.orders) + 1:04d}"
            order = {
                "id": order_id,
                "entity": "order",
                "amount": body["amount"],
                "currency": body["currency"],
                "receipt": body.get("receipt"),
                "status": "created",
                "notes": body.get("notes") or [],
            }
            self.orders[order_id] = order
            return httpx.Response(200, json=order)

        if request.method == "GET" and "/orders/" in path:
            order = self.orders.get(path.rsplit("/", 1)[-1])
            if order is None:
                return httpx.Response(
                    400,
                    json={"error": {"code": "BAD_REQUEST_ERROR", "description": "The id provided does not exist"}},
                )
            return httpx.Response(200, json={**order, "status": "paid"})

        if request.method == "POST" and path.endswith("/refund"):
            payment_id = path.split("/")[-2]
            body = json.loads(request.content or b"{}")
            refund = {"id": f"rfnd_{len(self.refunds) + 1:04d}", "payment_id": payment_id, **body}
            self.refunds.append(refund)
            return httpx.Response(200, json=refund)

        return httpx.Response(404, json={"error": {"description": "not found"}})


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        ENVIRONMENT="test",
        DATABASE_URL=f"sqlite:///{tmp_path / 'hostel_test.db'}",
        JWT_SECRET_KEY="test-jwt-secret",
        RAZORPAY_KEY_ID="rzp_test_key",
        RAZORPAY_KEY_SECRET=GATEWAY_SECRET,
        RAZORPAY_BASE_URL="https://api.razorpay.test/v1",
        LOG_FORMAT="console",
        LOG_LEVEL="WARNING",
    )


@pytest.fixture
def fake_razorpay() -> FakeRazorpay:
    return FakeRazorpay()


@pytest.fixture
def gateway(settings, fake_razorpay):
    gw = RazorpayGateway.from_settings(settings, transport=fake_razorpay.transport())
    yield gw
    gw.close()


@pytest.fixture
def app(settings, gateway):
    return create_app(settings, gateway=gateway)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def db(app):
    session = app.state.session_factory()
    yield session
    session.close()


@pytest.fixture
def make_user(db):
    def _make(username: str, role: UserRole = UserRole.STUDENT) -> User:
        user = User(username=username, email=f"{username}@example.com", role=role)
        db.add(user)
        db.commit()
        return user
    return _make


@pytest.fixture
def admin(make_user) -> User:
    return make_user("admin", UserRole.ADMIN)


@pytest.fixture
def student(make_user) -> User:
    return make_user("asha")


@pytest.fixture
def other_student(make_user) -> User:
    return make_user("bilal")


def actor_for(user: User) -> Actor:
    return Actor(user_id=user.id, role=user.role, username=user.username)


@pytest.fixture
def auth_headers(settings):
    def _headers(user: User) -> Dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(actor_for(user), settings)}"}
    return _headers


@pytest.fixture
def make_room(db):
    counter = {"n": 0}

    def _make(
        capacity: int = 2,
        price: str = "12000",
        room_type: RoomType = RoomType.NON_AC,
        discount=None,
    ) -> Room:
        counter["n"] += 1
        room = Room(
            room_number=f"{100 + counter['n']}",
            floor_id="floor-1",
            room_type=room_type,
            bathroom_type=Room.bathroom_for(room_type),
            capacity=capacity,
            occupant_count=0,
            is_occupied=False,
            plans=[RoomPricingPlan(duration=6, unit=PlanUnit.MONTHS, price=Decimal(price))],
        )
        if discount is not None:
            room.active_discount_id = discount.id
        db.add(room)
        db.commit()
        return room
    return _make


@pytest.fixture
def sign():
    def _sign(order_id: str, payment_id: str) -> str:
        return compute_signature(GATEWAY_SECRET, order_id, payment_id)
    return _sign


@pytest.fixture
def booking_service(db, settings, gateway) -> BookingLifecycleService:
    return BookingLifecycleService(db, settings, gateway)


@pytest.fixture
def book(booking_service, sign):
    """Checkout and pay for the room's first plan; returns (checkout, commit result)."""
    def _book(user: User, room: Room, payment_id: str, **resident_overrides):
        actor = actor_for(user)
        plan_id = room.plans[0].id
        checkout = booking_service.initiate_checkout(actor, room.id, plan_id)
        result = booking_service.verify_and_commit(
            actor,
            verify_request(checkout["order_id"], payment_id, sign(checkout["order_id"], payment_id),
                           room.id, plan_id, **resident_overrides),
        )
        return checkout, result
    return _book


def verify_request(order_id: str, payment_id: str, signature: str, room_id: str, plan_id: str,
                   **resident_overrides) -> VerifyPaymentRequest:
    return VerifyPaymentRequest(
        order_id=order_id,
        payment_id=payment_id,
        signature=signature,
        room_id=room_id,
        plan_id=plan_id,
        resident_details=ResidentDetails(**{**RESIDENT, **resident_overrides}),
    )


def years_since(dob: date) -> int:
    today = date.today()
    return today.year - dob.year - ((today.month, today.day) < (dob.month, dob.day))
