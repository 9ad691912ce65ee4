"""API routers."""

from . import identity, notifications, offers, reservations

__all__ = ["identity", "notifications", "offers", "reservations"]
