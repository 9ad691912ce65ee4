"""Integration tests for offer publishing and management."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from kapkurtar.errors import Conflict, Forbidden, NotFound, ValidationError
from kapkurtar.models.offer import OfferDraft, OfferPatch
from kapkurtar.services.notifications import NotificationEvent
from kapkurtar.services.offer_catalog import end_of_day_utc
from tests.helpers import make_client, make_draft, make_merchant


@pytest.mark.asyncio
async def test_create_then_list_by_merchant(identity, catalog, offer_index):
    merchant = await make_merchant(identity)

    offer = await catalog.create(merchant.id, make_draft(quantity=5))
    listed = await offer_index.by_merchant(merchant.id)

    assert offer.quantity_total == 5
    assert offer.quantity_available == 5
    assert offer.is_active
    assert offer.discount_percent == 63
    assert [o.id for o in listed] == [offer.id]
    assert listed[0].original_price == Decimal("80.00")


@pytest.mark.asyncio
async def test_default_expiry_is_end_of_local_day(identity, catalog):
    merchant = await make_merchant(identity)

    offer = await catalog.create(merchant.id, make_draft(expires_in=None))

    expected = end_of_day_utc(merchant.timezone)
    assert abs(offer.expires_at - expected) < timedelta(seconds=1)


@pytest.mark.asyncio
async def test_invalid_draft_rejected_before_write(identity, catalog, offer_index):
    merchant = await make_merchant(identity)

    with pytest.raises(ValidationError) as exc_info:
        await catalog.create(merchant.id, make_draft(discounted_price="90.00"))

    assert "lower than the original" in exc_info.value.message
    assert await offer_index.by_merchant(merchant.id) == []


@pytest.mark.asyncio
async def test_unknown_merchant(catalog):
    with pytest.raises(NotFound):
        await catalog.create(uuid4(), make_draft())


@pytest.mark.asyncio
async def test_followers_notified_of_new_offer(identity, catalog, mock_notifier):
    merchant = await make_merchant(identity)
    client = await make_client(identity)
    await identity.add_favorite(client.auth_id, merchant.id)

    offer = await catalog.create(merchant.id, make_draft(title="Bread Box"))

    mock_notifier.notify_many.assert_awaited_once()
    followers, event, payload = mock_notifier.notify_many.await_args.args
    assert list(followers) == [client.auth_id]
    assert event == NotificationEvent.FAVORITE_OFFER_AVAILABLE
    assert payload == {
        "offer_id": offer.id,
        "offer_title": "Bread Box",
        "store_name": "Galata Bakery",
    }


@pytest.mark.asyncio
async def test_no_followers_no_notification(identity, catalog, mock_notifier):
    merchant = await make_merchant(identity)

    await catalog.create(merchant.id, make_draft())

    mock_notifier.notify_many.assert_not_awaited()


class TestUpdate:
    @pytest.mark.asyncio
    async def test_update_fields(self, identity, catalog):
        merchant = await make_merchant(identity)
        offer = await catalog.create(merchant.id, make_draft())

        updated = await catalog.update(
            offer.id,
            merchant.id,
            OfferPatch(title="Evening Bag", discounted_price=Decimal("25.00")),
        )

        assert updated.title == "Evening Bag"
        assert updated.discounted_price == Decimal("25.00")
        assert updated.original_price == Decimal("80.00")

    @pytest.mark.asyncio
    async def test_cross_merchant_update_forbidden(self, identity, catalog, offer_index):
        owner = await make_merchant(identity)
        intruder = await make_merchant(identity, company_name="Karakoy Deli")
        offer = await catalog.create(owner.id, make_draft(title="Original"))

        with pytest.raises(Forbidden):
            await catalog.update(offer.id, intruder.id, OfferPatch(title="Hijacked"))

        [stored] = await offer_index.by_merchant(owner.id)
        assert stored.title == "Original"

    @pytest.mark.asyncio
    async def test_quantity_change_shifts_available(self, identity, catalog, ledger):
        merchant = await make_merchant(identity)
        client = await make_client(identity)
        offer = await catalog.create(merchant.id, make_draft(quantity=5))
        await ledger.create(client.id, offer.id, 2)

        grown = await catalog.update(offer.id, merchant.id, OfferPatch(quantity_total=8))
        shrunk = await catalog.update(offer.id, merchant.id, OfferPatch(quantity_total=2))

        assert (grown.quantity_total, grown.quantity_available) == (8, 6)
        assert (shrunk.quantity_total, shrunk.quantity_available) == (2, 0)

    @pytest.mark.asyncio
    async def test_quantity_below_reserved_conflicts(self, identity, catalog, ledger, offer_index):
        merchant = await make_merchant(identity)
        client = await make_client(identity)
        offer = await catalog.create(merchant.id, make_draft(quantity=5))
        await ledger.create(client.id, offer.id, 3)

        with pytest.raises(Conflict) as exc_info:
            await catalog.update(offer.id, merchant.id, OfferPatch(quantity_total=2))

        assert exc_info.value.code == "quantity_below_reserved"
        [stored] = await offer_index.by_merchant(merchant.id)
        assert (stored.quantity_total, stored.quantity_available) == (5, 2)

    @pytest.mark.asyncio
    async def test_patch_validated_against_stored_values(self, identity, catalog):
        merchant = await make_merchant(identity)
        offer = await catalog.create(merchant.id, make_draft())

        with pytest.raises(ValidationError):
            await catalog.update(offer.id, merchant.id, OfferPatch(original_price=Decimal("20.00")))

    @pytest.mark.asyncio
    async def test_unknown_offer(self, identity, catalog):
        merchant = await make_merchant(identity)

        with pytest.raises(NotFound):
            await catalog.update(uuid4(), merchant.id, OfferPatch(title="Nothing"))


@pytest.mark.asyncio
async def test_set_active_toggles(identity, catalog):
    merchant = await make_merchant(identity)
    offer = await catalog.create(merchant.id, make_draft())

    paused = await catalog.set_active(offer.id, merchant.id, False)
    resumed = await catalog.set_active(offer.id, merchant.id, True)

    assert paused.is_active is False
    assert resumed.is_active is True


@pytest.mark.asyncio
async def test_set_active_requires_ownership(identity, catalog):
    owner = await make_merchant(identity)
    intruder = await make_merchant(identity, company_name="Karakoy Deli")
    offer = await catalog.create(owner.id, make_draft())

    with pytest.raises(Forbidden):
        await catalog.set_active(offer.id, intruder.id, False)


class TestDelete:
    @pytest.mark.asyncio
    async def test_delete_unreserved_offer(self, identity, catalog, offer_index):
        merchant = await make_merchant(identity)
        offer = await catalog.create(merchant.id, make_draft())

        await catalog.delete(offer.id, merchant.id)

        assert await offer_index.by_merchant(merchant.id) == []

    @pytest.mark.asyncio
    async def test_delete_with_reservations_conflicts(self, identity, catalog, ledger, offer_index):
        merchant = await make_merchant(identity)
        client = await make_client(identity)
        offer = await catalog.create(merchant.id, make_draft())
        await ledger.create(client.id, offer.id, 1)

        with pytest.raises(Conflict) as exc_info:
            await catalog.delete(offer.id, merchant.id)

        assert exc_info.value.code == "offer_has_reservations"
        assert len(await offer_index.by_merchant(merchant.id)) == 1

    @pytest.mark.asyncio
    async def test_delete_requires_ownership(self, identity, catalog):
        owner = await make_merchant(identity)
        intruder = await make_merchant(identity, company_name="Karakoy Deli")
        offer = await catalog.create(owner.id, make_draft())

        with pytest.raises(Forbidden):
            await catalog.delete(offer.id, intruder.id)


class TestOffsetAwareTimes:
    @pytest.mark.asyncio
    async def test_create_with_utc_offsets(self, identity, catalog):
        merchant = await make_merchant(identity)
        now = datetime.now(timezone.utc)

        offer = await catalog.create(
            merchant.id,
            OfferDraft(
                title="Bread Box",
                original_price=Decimal("80.00"),
                discounted_price=Decimal("30.00"),
                quantity=2,
                pickup_start=now + timedelta(hours=1),
                pickup_end=now + timedelta(hours=3),
                expires_at=now + timedelta(hours=5),
            ),
        )

        assert offer.expires_at.tzinfo is None
        expected = now.replace(tzinfo=None) + timedelta(hours=5)
        assert abs(offer.expires_at - expected) < timedelta(seconds=1)

    @pytest.mark.asyncio
    async def test_aware_patch_against_naive_stored_window(self, identity, catalog):
        merchant = await make_merchant(identity)
        offer = await catalog.create(merchant.id, make_draft())
        later = datetime.now(timezone.utc) + timedelta(hours=4)

        updated = await catalog.update(offer.id, merchant.id, OfferPatch(pickup_end=later))

        assert updated.pickup_end == later.replace(tzinfo=None)
