"""
Token verification and capability checks.

Tokens are issued by the identity service; this module only decodes them
(PyJWT) into an ``Actor``. Services call the ``can_*`` predicates before any
state change instead of relying on route-level role middleware.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt

from hostel_app.config.settings import Settings
from hostel_app.core.exceptions import AuthenticationError, AuthorizationError, ErrorCode
from hostel_app.core.logging import get_logger
from hostel_app.models.base.enums import UserRole

logger = get_logger(__name__)


@dataclass(frozen=True)
class Actor:
    """The authenticated caller of an operation."""
    user_id: str
    role: UserRole
    username: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_manager(self) -> bool:
        return self.role in (UserRole.ADMIN, UserRole.WARDEN)

    @property
    def is_student(self) -> bool:
        return self.role == UserRole.STUDENT


def create_access_token(
    actor: Actor,
    settings: Settings,
    expires_minutes: int = 60,
    extra_claims: Optional[Dict[str, Any]] = None,
) -> str:
    """Mint a token in the identity service's format (used by tooling and tests)."""
    now = datetime.now(timezone.utc)
    payload: Dict[str, Any] = {
        "sub": actor.user_id,
        "role": actor.role.value,
        "iat": now,
        "exp": now + timedelta(minutes=expires_minutes),
    }
    if actor.username:
        payload["username"] = actor.username
    if extra_claims:
        payload.update(extra_claims)

    return jwt.encode(
        payload,
        settings.JWT_SECRET_KEY.get_secret_value(),
        algorithm=settings.JWT_ALGORITHM,
    )


def decode_access_token(token: str, settings: Settings) -> Actor:
    """
    Verify a bearer token and build the Actor it names.

    Raises:
        AuthenticationError: expired, malformed or unsigned token, or
            missing/unknown claims.
    """
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY.get_secret_value(),
            algorithms=[settings.JWT_ALGORITHM],
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token has expired", ErrorCode.TOKEN_EXPIRED)
    except jwt.InvalidTokenError as e:
        logger.warning(f"Token verification failed: {e}")
        raise AuthenticationError("Invalid token")

    subject = payload.get("sub") or payload.get("userId")
    if not subject:
        raise AuthenticationError("Token has no subject")

    try:
        role = UserRole(payload.get("role"))
    except ValueError:
        raise AuthenticationError("Token carries an unknown role")

    return Actor(user_id=str(subject), role=role, username=payload.get("username"))


# ---------------------------------------------------------------------------
# Capability predicates
# ---------------------------------------------------------------------------

def can_verify_own_booking(actor: Actor, student_id: str) -> bool:
    return actor.is_student and actor.user_id == student_id


def can_initiate_checkout(actor: Actor) -> bool:
    return actor.is_student


def can_check_in(actor: Actor) -> bool:
    return actor.is_admin


def can_check_out(actor: Actor) -> bool:
    return actor.is_admin


def can_cancel_booking(actor: Actor) -> bool:
    return actor.is_admin


def can_manage_rooms(actor: Actor) -> bool:
    return actor.is_admin


def can_manage_billing(actor: Actor) -> bool:
    return actor.is_admin


def can_reconcile_payments(actor: Actor) -> bool:
    return actor.is_admin


def can_view_residents(actor: Actor) -> bool:
    return actor.is_manager


def require(allowed: bool, capability: str) -> None:
    """Raise AuthorizationError unless ``allowed``."""
    if not allowed:
        logger.warning("Permission denied", extra={"capability": capability})
        raise AuthorizationError(capability=capability)
