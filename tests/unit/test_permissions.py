"""Unit tests for the reservation state machine and ownership checks."""

from datetime import datetime, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from kapkurtar.models.offer import Offer
from kapkurtar.models.profile import Role
from kapkurtar.models.reservation import Actor, Reservation, ReservationStatus
from kapkurtar.security.permissions import PermissionChecker, is_valid_transition

P = ReservationStatus.PENDING
CF = ReservationStatus.CONFIRMED
CX = ReservationStatus.CANCELLED
CM = ReservationStatus.COMPLETED


@pytest.fixture
def checker():
    return PermissionChecker()


@pytest.fixture
def reservation():
    return Reservation(client_id=uuid4(), merchant_id=uuid4(), offer_id=uuid4(), quantity=1)


@pytest.mark.parametrize(
    "current,target,valid",
    [
        (P, CF, True),
        (P, CX, True),
        (P, CM, False),
        (CF, CM, True),
        (CF, CX, True),
        (CF, P, False),
        (CX, P, False),
        (CX, CF, False),
        (CM, CX, False),
    ],
)
def test_state_machine_edges(current, target, valid):
    assert is_valid_transition(current, target) is valid


@pytest.mark.parametrize(
    "role,current,target,allowed",
    [
        (Role.MERCHANT, P, CF, True),
        (Role.MERCHANT, P, CX, True),
        (Role.MERCHANT, CF, CM, True),
        (Role.MERCHANT, CF, CX, True),
        (Role.CLIENT, P, CX, True),
        (Role.CLIENT, P, CF, False),
        (Role.CLIENT, CF, CX, False),
        (Role.CLIENT, CF, CM, False),
        (Role.NONE, P, CX, False),
    ],
)
def test_role_edges(checker, role, current, target, allowed):
    actor = Actor(role=role, subject_id=uuid4())

    assert checker.can_drive_edge(actor, current, target) is allowed


def test_party_to_reservation(checker, reservation):
    assert checker.is_party_to(Actor(role=Role.MERCHANT, subject_id=reservation.merchant_id), reservation)
    assert checker.is_party_to(Actor(role=Role.CLIENT, subject_id=reservation.client_id), reservation)


def test_not_party_to_reservation(checker, reservation):
    # A client ID presented with the merchant role does not grant access
    assert not checker.is_party_to(Actor(role=Role.MERCHANT, subject_id=reservation.client_id), reservation)
    assert not checker.is_party_to(Actor(role=Role.CLIENT, subject_id=uuid4()), reservation)
    assert not checker.is_party_to(Actor(role=Role.NONE, subject_id=reservation.client_id), reservation)


def test_owns_offer(checker):
    merchant_id = uuid4()
    now = datetime.utcnow()
    offer = Offer(
        merchant_id=merchant_id,
        title="Bag",
        original_price=Decimal("10.00"),
        discounted_price=Decimal("4.00"),
        quantity_total=1,
        quantity_available=1,
        pickup_start=now,
        pickup_end=now + timedelta(hours=1),
        expires_at=now + timedelta(hours=2),
    )

    assert checker.owns_offer(merchant_id, offer)
    assert not checker.owns_offer(uuid4(), offer)
