import pytest

from exceptions import NotFoundError
from services.notifications.schemas import NotificationCreate
from services.notifications.service import NotificationService


@pytest.fixture
def notifications(mongo_db) -> NotificationService:
    return NotificationService(mongo_db)


def notify(service, user_id, title):
    return service.create(
        NotificationCreate(user_id=user_id, title=title, message=f"{title} - detalhes")
    )


def test_list_newest_first_with_limit(notifications):
    for title in ("primeira", "segunda", "terceira"):
        notify(notifications, "operador-1", title)
    notify(notifications, "operador-2", "de outro")

    listed = notifications.list_by_user("operador-1")

    assert len(listed) == 3
    assert {n.title for n in listed} == {"primeira", "segunda", "terceira"}
    assert len(notifications.list_by_user("operador-1", limit=2)) == 2


def test_mark_as_read_updates_unread_count(notifications):
    first = notify(notifications, "operador-1", "primeira")
    notify(notifications, "operador-1", "segunda")
    assert notifications.unread_count("operador-1") == 2

    read = notifications.mark_as_read(first.id, "operador-1")

    assert read.is_read
    assert read.read_at is not None
    assert notifications.unread_count("operador-1") == 1


def test_cannot_read_notification_of_another_user(notifications):
    notice = notify(notifications, "operador-1", "privada")

    with pytest.raises(NotFoundError):
        notifications.mark_as_read(notice.id, "operador-2")
    with pytest.raises(NotFoundError):
        notifications.mark_as_read("id-invalido", "operador-1")

    assert notifications.unread_count("operador-1") == 1


def test_mark_all_as_read(notifications):
    notify(notifications, "operador-1", "a")
    notify(notifications, "operador-1", "b")
    notify(notifications, "operador-2", "c")

    assert notifications.mark_all_as_read("operador-1") == 2
    assert notifications.unread_count("operador-1") == 0
    assert notifications.unread_count("operador-2") == 1
