"""Authorization rules for offers and reservation transitions."""

from uuid import UUID

from kapkurtar.models.offer import Offer
from kapkurtar.models.profile import Role
from kapkurtar.models.reservation import Actor, Reservation, ReservationStatus

# Reservation state machine: status -> reachable statuses
TRANSITIONS: dict[ReservationStatus, frozenset[ReservationStatus]] = {
    ReservationStatus.PENDING: frozenset(
        {ReservationStatus.CONFIRMED, ReservationStatus.CANCELLED}
    ),
    ReservationStatus.CONFIRMED: frozenset(
        {ReservationStatus.COMPLETED, ReservationStatus.CANCELLED}
    ),
    ReservationStatus.CANCELLED: frozenset(),
    ReservationStatus.COMPLETED: frozenset(),
}

# Edges each role may drive, given it owns the reservation
ROLE_EDGES: dict[Role, frozenset[tuple[ReservationStatus, ReservationStatus]]] = {
    Role.MERCHANT: frozenset(
        {
            (ReservationStatus.PENDING, ReservationStatus.CONFIRMED),
            (ReservationStatus.PENDING, ReservationStatus.CANCELLED),
            (ReservationStatus.CONFIRMED, ReservationStatus.COMPLETED),
            (ReservationStatus.CONFIRMED, ReservationStatus.CANCELLED),
        }
    ),
    Role.CLIENT: frozenset(
        {(ReservationStatus.PENDING, ReservationStatus.CANCELLED)}
    ),
    Role.NONE: frozenset(),
}


def is_valid_transition(current: ReservationStatus, target: ReservationStatus) -> bool:
    """Whether target is reachable from current in one step."""
    return target in TRANSITIONS[current]


class PermissionChecker:
    """Ownership and role checks for privileged writes."""

    def owns_offer(self, merchant_id: UUID, offer: Offer) -> bool:
        """Check if the merchant owns the offer."""
        return offer.merchant_id == merchant_id

    def is_party_to(self, actor: Actor, reservation: Reservation) -> bool:
        """Check if the actor is the reservation's client or merchant."""
        if actor.role == Role.MERCHANT:
            return reservation.merchant_id == actor.subject_id
        if actor.role == Role.CLIENT:
            return reservation.client_id == actor.subject_id
        return False

    def can_drive_edge(
        self,
        actor: Actor,
        current: ReservationStatus,
        target: ReservationStatus,
    ) -> bool:
        """Check if the actor's role may perform current -> target."""
        return (current, target) in ROLE_EDGES[actor.role]
