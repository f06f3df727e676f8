"""
Ride offer lifecycle service.

This module handles:
    - Accepting/declining offers on behalf of drivers
    - Expiring offers (per-offer task and periodic pass)
    - The countdown shown in the driver's offer dialog
"""

from .offer_lifecycle import (
    OfferCountdown,
    offer_countdown,
    accept_offer,
    decline_offer,
    expire_offer,
    expire_stale_offers,
    release_pending_offers_for_driver,
)

__all__ = [
    "OfferCountdown",
    "offer_countdown",
    "accept_offer",
    "decline_offer",
    "expire_offer",
    "expire_stale_offers",
    "release_pending_offers_for_driver",
]
