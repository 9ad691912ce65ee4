"""HTTP API tests against the application wired to a SQLite database."""

from datetime import datetime, timedelta, timezone
from unittest.mock import patch
from uuid import uuid4

import httpx
import pytest
import pytest_asyncio

from kapkurtar.api import create_app
from kapkurtar.api.deps import PRINCIPAL_HEADER
from kapkurtar.errors import Unavailable
from tests.helpers import CLIENT_LAT, CLIENT_LON


@pytest_asyncio.fixture
async def client(settings, database):
    app = create_app(settings, db=database)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
        yield http


def as_principal(principal_id) -> dict[str, str]:
    return {PRINCIPAL_HEADER: str(principal_id)}


def offer_body(quantity: int = 2) -> dict:
    now = datetime.utcnow()
    return {
        "title": "Surprise Bag",
        "description": "Assorted pastries",
        "original_price": "80.00",
        "discounted_price": "30.00",
        "quantity": quantity,
        "pickup_start": (now + timedelta(hours=1)).isoformat(),
        "pickup_end": (now + timedelta(hours=3)).isoformat(),
    }


async def signup_merchant(client, principal_id) -> dict:
    response = await client.post(
        "/merchants",
        json={
            "company_name": "Galata Bakery",
            "street": "Divan Yolu Cd. 1",
            "city": "Istanbul",
            "latitude": CLIENT_LAT,
            "longitude": CLIENT_LON,
        },
        headers=as_principal(principal_id),
    )
    assert response.status_code == 201
    return response.json()


async def signup_client(client, principal_id) -> dict:
    response = await client.post(
        "/identity/profile",
        json={"first_name": "Ayse", "last_name": "Yilmaz"},
        headers=as_principal(principal_id),
    )
    assert response.status_code == 200
    return response.json()


@pytest.mark.asyncio
async def test_missing_principal_is_unauthenticated(client):
    response = await client.get("/identity/role")

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "unauthenticated"


@pytest.mark.asyncio
async def test_malformed_principal_is_unauthenticated(client):
    response = await client.get("/identity/role", headers={PRINCIPAL_HEADER: "not-a-uuid"})

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_role_resolution(client):
    merchant_principal, client_principal = uuid4(), uuid4()
    await signup_merchant(client, merchant_principal)
    await signup_client(client, client_principal)

    for principal_id, role in [
        (merchant_principal, "merchant"),
        (client_principal, "client"),
        (uuid4(), "none"),
    ]:
        response = await client.get("/identity/role", headers=as_principal(principal_id))
        assert response.json() == {"role": role}


@pytest.mark.asyncio
async def test_reservation_flow(client):
    merchant_principal, client_principal = uuid4(), uuid4()
    await signup_merchant(client, merchant_principal)
    await signup_client(client, client_principal)

    created = await client.post(
        "/offers", json=offer_body(quantity=2), headers=as_principal(merchant_principal)
    )
    assert created.status_code == 201
    offer = created.json()
    assert offer["quantity_available"] == 2
    assert offer["discount_percent"] == 63

    reserved = await client.post(
        "/reservations",
        json={"offer_id": offer["id"], "quantity": 2},
        headers=as_principal(client_principal),
    )
    assert reserved.status_code == 201
    reservation = reserved.json()
    assert reservation["status"] == "pending"

    sold_out = await client.post(
        "/reservations",
        json={"offer_id": offer["id"], "quantity": 1},
        headers=as_principal(client_principal),
    )
    assert sold_out.status_code == 409
    error = sold_out.json()["error"]
    assert error["code"] == "insufficient_quantity"
    assert error["user_action"] == "refresh_and_retry"
    assert error["retryable"] is False

    confirmed = await client.post(
        f"/reservations/{reservation['id']}/transition",
        json={"status": "confirmed"},
        headers=as_principal(merchant_principal),
    )
    assert confirmed.status_code == 200
    assert confirmed.json()["status"] == "confirmed"

    mine = await client.get("/reservations/mine", headers=as_principal(client_principal))
    assert [r["id"] for r in mine.json()] == [reservation["id"]]
    assert mine.json()[0]["merchant"]["company_name"] == "Galata Bakery"

    incoming = await client.get(
        "/merchants/me/reservations", headers=as_principal(merchant_principal)
    )
    assert incoming.json()[0]["client"]["first_name"] == "Ayse"


@pytest.mark.asyncio
async def test_client_cannot_confirm(client):
    merchant_principal, client_principal = uuid4(), uuid4()
    await signup_merchant(client, merchant_principal)
    await signup_client(client, client_principal)
    offer = (
        await client.post("/offers", json=offer_body(), headers=as_principal(merchant_principal))
    ).json()
    reservation = (
        await client.post(
            "/reservations",
            json={"offer_id": offer["id"]},
            headers=as_principal(client_principal),
        )
    ).json()

    response = await client.post(
        f"/reservations/{reservation['id']}/transition",
        json={"status": "confirmed"},
        headers=as_principal(client_principal),
    )

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "forbidden"


@pytest.mark.asyncio
async def test_client_cannot_publish_offers(client):
    client_principal = uuid4()
    await signup_client(client, client_principal)

    response = await client.post(
        "/offers", json=offer_body(), headers=as_principal(client_principal)
    )

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_invalid_offer_is_validation_error(client):
    merchant_principal = uuid4()
    await signup_merchant(client, merchant_principal)
    body = offer_body()
    body["discounted_price"] = "95.00"

    response = await client.post("/offers", json=body, headers=as_principal(merchant_principal))

    assert response.status_code == 422
    error = response.json()["error"]
    assert error["code"] == "validation_error"
    assert error["user_action"] == "fix_input"


@pytest.mark.asyncio
async def test_malformed_body_is_validation_error(client):
    client_principal = uuid4()
    await signup_client(client, client_principal)

    response = await client.post(
        "/reservations", json={"quantity": 1}, headers=as_principal(client_principal)
    )

    assert response.status_code == 422
    assert response.json()["error"]["details"]["errors"]


@pytest.mark.asyncio
async def test_nearby_offers(client):
    merchant_principal, client_principal = uuid4(), uuid4()
    await signup_merchant(client, merchant_principal)
    await signup_client(client, client_principal)
    await client.post("/offers", json=offer_body(), headers=as_principal(merchant_principal))

    unknown = await client.get("/offers/nearby", headers=as_principal(client_principal))
    assert unknown.status_code == 409
    assert unknown.json()["error"]["code"] == "location_unknown"

    located = await client.put(
        "/identity/location",
        json={"latitude": CLIENT_LAT, "longitude": CLIENT_LON},
        headers=as_principal(client_principal),
    )
    assert located.json()["has_location"] is True

    nearby = await client.get(
        "/offers/nearby",
        params={"radius_meters": 5000},
        headers=as_principal(client_principal),
    )
    assert nearby.status_code == 200
    [offer] = nearby.json()
    assert offer["merchant_name"] == "Galata Bakery"
    assert offer["distance_meters"] == 0


@pytest.mark.asyncio
async def test_delete_and_deactivate_offer(client):
    merchant_principal = uuid4()
    merchant = await signup_merchant(client, merchant_principal)
    first = (
        await client.post("/offers", json=offer_body(), headers=as_principal(merchant_principal))
    ).json()
    second = (
        await client.post("/offers", json=offer_body(), headers=as_principal(merchant_principal))
    ).json()

    deleted = await client.delete(f"/offers/{first['id']}", headers=as_principal(merchant_principal))
    paused = await client.put(
        f"/offers/{second['id']}/active",
        json={"active": False},
        headers=as_principal(merchant_principal),
    )

    assert deleted.status_code == 204
    assert paused.json()["is_active"] is False
    listed = await client.get(f"/merchants/{merchant['id']}/offers")
    assert [o["id"] for o in listed.json()] == [second["id"]]
    assert (await client.get("/offers/active")).json() == []


@pytest.mark.asyncio
async def test_favorites(client):
    merchant_principal, client_principal = uuid4(), uuid4()
    merchant = await signup_merchant(client, merchant_principal)
    await signup_client(client, client_principal)

    added = await client.post(
        f"/favorites/{merchant['id']}", headers=as_principal(client_principal)
    )
    listed = await client.get("/favorites", headers=as_principal(client_principal))

    assert added.json() == {"merchant_id": merchant["id"], "changed": True}
    assert [m["id"] for m in listed.json()] == [merchant["id"]]


@pytest.mark.asyncio
async def test_notifications_require_a_role(client):
    response = await client.post(
        "/notifications",
        json={"principal_id": str(uuid4()), "event_type": "offer_expiring"},
        headers=as_principal(uuid4()),
    )

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_notifications_accepted_without_token(client):
    client_principal = uuid4()
    await signup_client(client, client_principal)

    response = await client.post(
        "/notifications",
        json={"principal_id": str(uuid4()), "event_type": "offer_expiring", "payload": {}},
        headers=as_principal(client_principal),
    )

    assert response.status_code == 202
    assert response.json() == {"accepted": True}


@pytest.mark.asyncio
async def test_health_without_redis(client):
    response = await client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["dependencies"]["database"]["status"] == "healthy"
    assert body["dependencies"]["redis"]["status"] == "disabled"
    assert response.headers["Cache-Control"] == "no-cache"


@pytest.mark.asyncio
async def test_storage_outage_is_retryable(client):
    with patch(
        "kapkurtar.services.offer_index.OfferIndex.active",
        side_effect=Unavailable("Storage is temporarily unavailable"),
    ):
        response = await client.get("/offers/active")

    assert response.status_code == 503
    error = response.json()["error"]
    assert error["retryable"] is True
    assert error["user_action"] == "retry_later"


@pytest.mark.asyncio
async def test_offer_times_with_utc_suffix(client):
    merchant_principal = uuid4()
    await signup_merchant(client, merchant_principal)
    now = datetime.now(timezone.utc)
    body = offer_body()
    body["pickup_start"] = (now + timedelta(hours=1)).isoformat().replace("+00:00", "Z")
    body["pickup_end"] = (now + timedelta(hours=3)).isoformat().replace("+00:00", "Z")
    body["expires_at"] = (now + timedelta(hours=5)).isoformat().replace("+00:00", "Z")

    response = await client.post("/offers", json=body, headers=as_principal(merchant_principal))

    assert response.status_code == 201


@pytest.mark.asyncio
async def test_reservation_events_land_in_inbox_once(client):
    merchant_principal, client_principal = uuid4(), uuid4()
    await signup_merchant(client, merchant_principal)
    await signup_client(client, client_principal)
    offer = (
        await client.post("/offers", json=offer_body(), headers=as_principal(merchant_principal))
    ).json()
    reservation = (
        await client.post(
            "/reservations",
            json={"offer_id": offer["id"]},
            headers=as_principal(client_principal),
        )
    ).json()

    for _ in range(2):
        await client.post(
            f"/reservations/{reservation['id']}/transition",
            json={"status": "cancelled"},
            headers=as_principal(merchant_principal),
        )

    merchant_inbox = await client.get("/notifications", headers=as_principal(merchant_principal))
    client_inbox = await client.get("/notifications", headers=as_principal(client_principal))

    assert [n["type"] for n in merchant_inbox.json()] == ["new_reservation"]
    assert [n["type"] for n in client_inbox.json()] == ["reservation_rejected"]
    assert client_inbox.json()[0]["is_read"] is False


@pytest.mark.asyncio
async def test_mark_notification_read_is_owner_only(client):
    owner, stranger = uuid4(), uuid4()
    await signup_client(client, owner)
    await signup_client(client, stranger)
    await client.post(
        "/notifications",
        json={"principal_id": str(owner), "event_type": "offer_expiring"},
        headers=as_principal(stranger),
    )
    [notification] = (await client.get("/notifications", headers=as_principal(owner))).json()

    denied = await client.post(
        f"/notifications/{notification['id']}/read", headers=as_principal(stranger)
    )
    marked = await client.post(
        f"/notifications/{notification['id']}/read", headers=as_principal(owner)
    )

    assert denied.status_code == 404
    assert marked.status_code == 204
    [after] = (await client.get("/notifications", headers=as_principal(owner))).json()
    assert after["is_read"] is True
    assert (await client.get("/notifications", headers=as_principal(stranger))).json() == []
