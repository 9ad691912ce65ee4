"""Integration tests for the notification inbox."""

from uuid import uuid4

import pytest

from kapkurtar.errors import NotFound
from kapkurtar.services.notifications import INBOX_LIMIT, NotificationDispatcher, NotificationEvent


@pytest.fixture
def dispatcher(database):
    return NotificationDispatcher(database, None)


@pytest.mark.asyncio
async def test_recorded_without_push_token(dispatcher):
    principal_id = uuid4()

    sent = await dispatcher.notify(
        principal_id, NotificationEvent.OFFER_EXPIRING, {"offer_title": "Bread Box"}
    )

    assert sent is False
    [notification] = await dispatcher.inbox(principal_id)
    assert notification.type == "offer_expiring"
    assert notification.title == "Offer ending soon!"
    assert "Bread Box" in notification.message
    assert notification.is_read is False


@pytest.mark.asyncio
async def test_inbox_newest_first_and_capped(dispatcher):
    principal_id = uuid4()
    for i in range(INBOX_LIMIT + 5):
        await dispatcher.notify(
            principal_id, NotificationEvent.FAVORITE_OFFER_AVAILABLE, {"offer_title": f"Offer {i}"}
        )

    inbox = await dispatcher.inbox(principal_id)

    assert len(inbox) == INBOX_LIMIT
    assert "Offer 54" in inbox[0].message
    assert [n.created_at for n in inbox] == sorted((n.created_at for n in inbox), reverse=True)


@pytest.mark.asyncio
async def test_inbox_is_per_principal(dispatcher):
    first, second = uuid4(), uuid4()
    await dispatcher.notify(first, NotificationEvent.RESERVATION_COMPLETED, {})

    assert await dispatcher.inbox(second) == []


@pytest.mark.asyncio
async def test_mark_read(dispatcher):
    principal_id = uuid4()
    await dispatcher.notify(principal_id, NotificationEvent.RESERVATION_ACCEPTED, {})
    [notification] = await dispatcher.inbox(principal_id)

    await dispatcher.mark_read(principal_id, notification.id)

    [after] = await dispatcher.inbox(principal_id)
    assert after.is_read is True


@pytest.mark.asyncio
async def test_mark_read_of_someone_elses_notification(dispatcher):
    owner = uuid4()
    await dispatcher.notify(owner, NotificationEvent.RESERVATION_ACCEPTED, {})
    [notification] = await dispatcher.inbox(owner)

    with pytest.raises(NotFound):
        await dispatcher.mark_read(uuid4(), notification.id)

    [unchanged] = await dispatcher.inbox(owner)
    assert unchanged.is_read is False


@pytest.mark.asyncio
async def test_mark_read_unknown_id(dispatcher):
    with pytest.raises(NotFound):
        await dispatcher.mark_read(uuid4(), uuid4())
