"""Structured audit logging for offer and reservation lifecycle actions."""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID

from kapkurtar.logging import get_logger

logger = get_logger(__name__)


class AuditEventType(str, Enum):
    """Types of auditable events."""

    # Identity
    PROFILE_CREATED = "profile_created"
    MERCHANT_REGISTERED = "merchant_registered"

    # Offer lifecycle
    OFFER_CREATED = "offer_created"
    OFFER_EDITED = "offer_edited"
    OFFER_ACTIVATED = "offer_activated"
    OFFER_DEACTIVATED = "offer_deactivated"
    OFFER_DELETED = "offer_deleted"

    # Reservation lifecycle
    RESERVATION_CREATED = "reservation_created"
    RESERVATION_TRANSITIONED = "reservation_transitioned"
    RESERVATION_REJECTED = "reservation_rejected"

    # Security
    PERMISSION_DENIED = "permission_denied"
    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"


class AuditLogger:
    """Centralized audit logging service."""

    @staticmethod
    def log_event(
        event_type: AuditEventType,
        actor_id: UUID | str,
        resource_type: str,
        resource_id: UUID | str,
        action: str,
        success: bool = True,
        metadata: Optional[dict[str, Any]] = None,
        error: Optional[str] = None,
    ) -> None:
        """
        Log an auditable event with structured context.

        Args:
            event_type: Type of audit event
            actor_id: Profile, merchant or principal ID performing the action
            resource_type: Type of resource (profile, merchant, offer, reservation)
            resource_id: ID of the affected resource
            action: Human-readable action description
            success: Whether the action succeeded
            metadata: Additional context (quantities, status changes, etc.)
            error: Error code if the action failed
        """
        audit_entry = {
            "event_type": event_type.value,
            "actor_id": str(actor_id),
            "resource_type": resource_type,
            "resource_id": str(resource_id),
            "action": action,
            "success": success,
            "timestamp": datetime.utcnow().isoformat(),
            "metadata": metadata or {},
        }

        if error:
            audit_entry["error"] = error

        logger.info("audit_event", **audit_entry)

    @staticmethod
    def log_profile_created(actor_id: UUID, profile_id: UUID) -> None:
        """Log first-login profile creation."""
        AuditLogger.log_event(
            event_type=AuditEventType.PROFILE_CREATED,
            actor_id=actor_id,
            resource_type="profile",
            resource_id=profile_id,
            action="Created client profile",
        )

    @staticmethod
    def log_merchant_registered(actor_id: UUID, merchant_id: UUID, company_name: str) -> None:
        """Log merchant sign-up."""
        AuditLogger.log_event(
            event_type=AuditEventType.MERCHANT_REGISTERED,
            actor_id=actor_id,
            resource_type="merchant",
            resource_id=merchant_id,
            action=f"Registered merchant: {company_name}",
            metadata={"company_name": company_name},
        )

    @staticmethod
    def log_offer_created(
        actor_id: UUID, offer_id: UUID, offer_title: str, quantity_total: int
    ) -> None:
        """Log offer creation."""
        AuditLogger.log_event(
            event_type=AuditEventType.OFFER_CREATED,
            actor_id=actor_id,
            resource_type="offer",
            resource_id=offer_id,
            action=f"Created offer: {offer_title}",
            metadata={"offer_title": offer_title, "quantity_total": quantity_total},
        )

    @staticmethod
    def log_offer_edited(
        actor_id: UUID,
        offer_id: UUID,
        changes: dict[str, Any],
    ) -> None:
        """Log offer edits."""
        AuditLogger.log_event(
            event_type=AuditEventType.OFFER_EDITED,
            actor_id=actor_id,
            resource_type="offer",
            resource_id=offer_id,
            action="Edited offer",
            metadata={"changes": changes},
        )

    @staticmethod
    def log_offer_active_changed(actor_id: UUID, offer_id: UUID, active: bool) -> None:
        """Log offer activation toggles."""
        AuditLogger.log_event(
            event_type=(
                AuditEventType.OFFER_ACTIVATED
                if active
                else AuditEventType.OFFER_DEACTIVATED
            ),
            actor_id=actor_id,
            resource_type="offer",
            resource_id=offer_id,
            action=f"{'Activated' if active else 'Deactivated'} offer",
        )

    @staticmethod
    def log_offer_deleted(actor_id: UUID, offer_id: UUID) -> None:
        """Log offer deletion."""
        AuditLogger.log_event(
            event_type=AuditEventType.OFFER_DELETED,
            actor_id=actor_id,
            resource_type="offer",
            resource_id=offer_id,
            action="Deleted offer",
        )

    @staticmethod
    def log_reservation_created(
        actor_id: UUID,
        reservation_id: UUID,
        offer_id: UUID,
        quantity: int,
    ) -> None:
        """Log a successful reservation."""
        AuditLogger.log_event(
            event_type=AuditEventType.RESERVATION_CREATED,
            actor_id=actor_id,
            resource_type="reservation",
            resource_id=reservation_id,
            action="Reservation created",
            metadata={"offer_id": str(offer_id), "quantity": quantity},
        )

    @staticmethod
    def log_reservation_rejected(
        actor_id: UUID, offer_id: UUID, quantity: int, reason: str
    ) -> None:
        """Log a reservation attempt refused for availability reasons."""
        AuditLogger.log_event(
            event_type=AuditEventType.RESERVATION_REJECTED,
            actor_id=actor_id,
            resource_type="offer",
            resource_id=offer_id,
            action="Reservation refused",
            success=False,
            metadata={"quantity": quantity},
            error=reason,
        )

    @staticmethod
    def log_reservation_transitioned(
        actor_id: UUID,
        reservation_id: UUID,
        from_status: str,
        to_status: str,
    ) -> None:
        """Log a reservation status change."""
        AuditLogger.log_event(
            event_type=AuditEventType.RESERVATION_TRANSITIONED,
            actor_id=actor_id,
            resource_type="reservation",
            resource_id=reservation_id,
            action=f"Reservation {from_status} -> {to_status}",
            metadata={"from_status": from_status, "to_status": to_status},
        )

    @staticmethod
    def log_permission_denied(
        actor_id: UUID | str,
        resource_type: str,
        resource_id: UUID | str,
        attempted_action: str,
    ) -> None:
        """Log unauthorized access attempts."""
        AuditLogger.log_event(
            event_type=AuditEventType.PERMISSION_DENIED,
            actor_id=actor_id,
            resource_type=resource_type,
            resource_id=resource_id,
            action=f"Permission denied: {attempted_action}",
            success=False,
            metadata={"attempted_action": attempted_action},
        )

    @staticmethod
    def log_rate_limit_exceeded(
        actor_id: UUID | str,
        action: str,
        limit: int,
        window_seconds: int,
    ) -> None:
        """Log rate limit violations."""
        AuditLogger.log_event(
            event_type=AuditEventType.RATE_LIMIT_EXCEEDED,
            actor_id=actor_id,
            resource_type="system",
            resource_id="rate_limiter",
            action=f"Rate limit exceeded: {action}",
            success=False,
            metadata={
                "action": action,
                "limit": limit,
                "window_seconds": window_seconds,
            },
        )
