from datetime import datetime, timedelta, timezone

import jwt
import pytest

from hostel_app.core.exceptions import AuthenticationError, AuthorizationError, ErrorCode
from hostel_app.core.security import (
    Actor,
    can_check_in,
    can_initiate_checkout,
    can_verify_own_booking,
    can_view_residents,
    create_access_token,
    decode_access_token,
    require,
)
from hostel_app.models.base.enums import UserRole

STUDENT = Actor(user_id="u-1", role=UserRole.STUDENT, username="asha")
WARDEN = Actor(user_id="u-2", role=UserRole.WARDEN)
ADMIN = Actor(user_id="u-3", role=UserRole.ADMIN)


def _raw_token(settings, **claims):
    return jwt.encode(claims, settings.JWT_SECRET_KEY.get_secret_value(), algorithm=settings.JWT_ALGORITHM)


class TestTokens:

    def test_round_trip(self, settings):
        assert decode_access_token(create_access_token(STUDENT, settings), settings) == STUDENT

    def test_expired(self, settings):
        token = create_access_token(STUDENT, settings, expires_minutes=-1)
        with pytest.raises(AuthenticationError) as exc:
            decode_access_token(token, settings)
        assert exc.value.error_code == ErrorCode.TOKEN_EXPIRED

    def test_wrong_secret(self, settings):
        token = jwt.encode({"sub": "u-1", "role": "student"}, "not-the-secret", algorithm="HS256")
        with pytest.raises(AuthenticationError):
            decode_access_token(token, settings)

    def test_garbage(self, settings):
        with pytest.raises(AuthenticationError):
            decode_access_token("not.a.token", settings)

    def test_missing_subject(self, settings):
        with pytest.raises(AuthenticationError):
            decode_access_token(_raw_token(settings, role="student"), settings)

    def test_unknown_role(self, settings):
        with pytest.raises(AuthenticationError):
            decode_access_token(_raw_token(settings, sub="u-1", role="superuser"), settings)

    def test_legacy_user_id_claim(self, settings):
        exp = datetime.now(timezone.utc) + timedelta(minutes=5)
        actor = decode_access_token(_raw_token(settings, userId="u-9", role="admin", exp=exp), settings)
        assert actor.user_id == "u-9"
        assert actor.is_admin


class TestCapabilities:

    def test_students_book_only_for_themselves(self):
        assert can_verify_own_booking(STUDENT, "u-1")
        assert not can_verify_own_booking(STUDENT, "u-2")
        assert not can_verify_own_booking(ADMIN, "u-3")

    def test_checkout_is_for_students(self):
        assert can_initiate_checkout(STUDENT)
        assert not can_initiate_checkout(ADMIN)

    def test_check_in_is_admin_only(self):
        assert can_check_in(ADMIN)
        assert not can_check_in(WARDEN)
        assert not can_check_in(STUDENT)

    def test_wardens_can_view_residents(self):
        assert can_view_residents(WARDEN)
        assert can_view_residents(ADMIN)
        assert not can_view_residents(STUDENT)

    def test_require_raises_with_capability(self):
        require(True, "anything")
        with pytest.raises(AuthorizationError) as exc:
            require(False, "check_in")
        assert exc.value.status_code == 403
        assert exc.value.details == {"capability": "check_in"}
