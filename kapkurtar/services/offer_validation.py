"""Offer validation service.

Validates offers against business rules before they are written:
- Price ordering
- Quantity bounds
- Pickup window ordering
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from kapkurtar.errors import ValidationError
from kapkurtar.logging import get_logger
from kapkurtar.models.offer import Offer, OfferDraft, OfferPatch

logger = get_logger(__name__)

# Business rules
MAX_QUANTITY_PER_OFFER = 1000


class ValidationResult:
    """Result of offer validation."""

    def __init__(self):
        self.errors: list[str] = []

    @property
    def is_valid(self) -> bool:
        """Check if validation passed."""
        return len(self.errors) == 0

    def add_error(self, error: str) -> None:
        """Add validation error."""
        self.errors.append(error)

    def raise_for_errors(self) -> None:
        """Raise ValidationError carrying every collected error."""
        if not self.is_valid:
            raise ValidationError("; ".join(self.errors), details={"errors": self.errors})


class OfferValidator:
    """Validates offers against business rules."""

    def validate_draft(self, draft: OfferDraft, now: Optional[datetime] = None) -> ValidationResult:
        """
        Validate a new offer.

        Args:
            draft: Offer fields supplied by the merchant
            now: Reference time for the expiry check (defaults to utcnow)

        Returns:
            ValidationResult with errors if any
        """
        result = ValidationResult()

        self._check_prices(result, draft.original_price, draft.discounted_price)
        self._check_quantity(result, draft.quantity)
        self._check_pickup_window(result, draft.pickup_start, draft.pickup_end)

        if draft.expires_at is not None and draft.expires_at <= (now or datetime.utcnow()):
            result.add_error("Expiry must be in the future")

        if result.is_valid:
            logger.debug("offer_validation_passed", title=draft.title)
        else:
            logger.warning("offer_validation_failed", title=draft.title, errors=result.errors)

        return result

    def validate_patch(self, offer: Offer, patch: OfferPatch) -> ValidationResult:
        """
        Validate an edit against the offer it will be merged into.

        Args:
            offer: Current offer state
            patch: Fields to change

        Returns:
            ValidationResult with errors if any
        """
        result = ValidationResult()

        original = patch.original_price if patch.original_price is not None else offer.original_price
        discounted = (
            patch.discounted_price if patch.discounted_price is not None else offer.discounted_price
        )
        self._check_prices(result, original, discounted)

        if patch.quantity_total is not None:
            self._check_quantity(result, patch.quantity_total)

        self._check_pickup_window(
            result,
            patch.pickup_start or offer.pickup_start,
            patch.pickup_end or offer.pickup_end,
        )

        if not result.is_valid:
            logger.warning("offer_edit_validation_failed", offer_id=str(offer.id), errors=result.errors)

        return result

    def _check_prices(self, result: ValidationResult, original: Decimal, discounted: Decimal) -> None:
        if original <= 0:
            result.add_error("Original price must be positive")
        if discounted < 0:
            result.add_error("Discounted price cannot be negative")
        if discounted >= original:
            result.add_error("Discounted price must be lower than the original price")

    def _check_quantity(self, result: ValidationResult, quantity: int) -> None:
        if quantity < 1:
            result.add_error("Quantity must be at least 1")
        elif quantity > MAX_QUANTITY_PER_OFFER:
            result.add_error(f"Quantity cannot exceed {MAX_QUANTITY_PER_OFFER}")

    def _check_pickup_window(
        self, result: ValidationResult, start: datetime, end: datetime
    ) -> None:
        if end <= start:
            result.add_error("Pickup end must be after pickup start")
