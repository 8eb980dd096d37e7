import pytest

from hostel_app.core.exceptions import NotificationNotFoundError
from hostel_app.models.base.enums import NotificationType
from hostel_app.services.notification.notification_service import RECENT_LIMIT, NotificationService

from tests.conftest import actor_for


@pytest.fixture
def notifications(db):
    return NotificationService(db)


def test_notify_and_list(notifications, student):
    assert notifications.notify(student.id, NotificationType.GENERAL, "Water supply off at 3pm") is True

    mine = notifications.list_mine(actor_for(student))
    assert mine["unread_count"] == 1
    assert [n.message for n in mine["notifications"]] == ["Water supply off at 3pm"]


def test_list_is_capped_but_unread_count_is_not(notifications, student):
    for i in range(RECENT_LIMIT + 5):
        notifications.notify(student.id, NotificationType.GENERAL, f"notice {i}")

    mine = notifications.list_mine(actor_for(student))
    assert len(mine["notifications"]) == RECENT_LIMIT
    assert mine["unread_count"] == RECENT_LIMIT + 5


def test_mark_read(notifications, student):
    notifications.notify(student.id, NotificationType.PAYMENT, "Invoice paid")
    note = notifications.list_mine(actor_for(student))["notifications"][0]

    assert notifications.mark_read(actor_for(student), note.id).read is True
    assert notifications.list_mine(actor_for(student))["unread_count"] == 0


def test_cannot_mark_someone_elses_notification(notifications, student, other_student):
    notifications.notify(student.id, NotificationType.GENERAL, "private")
    note = notifications.list_mine(actor_for(student))["notifications"][0]

    with pytest.raises(NotificationNotFoundError):
        notifications.mark_read(actor_for(other_student), note.id)


def test_notify_for_unknown_user_returns_false(notifications, student):
    # Foreign key violation is logged, not raised
    assert notifications.notify("no-such-user", NotificationType.GENERAL, "lost") is False
    assert notifications.notify(student.id, NotificationType.GENERAL, "still works") is True
