"""Database models."""

from bookify.models.booking import Booking, NightLock, SlotLock
from bookify.models.ledger import (
    PointsAccount,
    PointsTransaction,
    WalletAccount,
    WalletTransaction,
)
from bookify.models.listing import Listing
from bookify.models.offer import CouponRedemption, Offer
from bookify.models.reward import RedeemedReward, Reward

__all__ = [
    # Listing
    "Listing",
    # Offers
    "Offer",
    "CouponRedemption",
    "Reward",
    "RedeemedReward",
    # Booking
    "Booking",
    "NightLock",
    "SlotLock",
    # Ledger
    "WalletAccount",
    "WalletTransaction",
    "PointsAccount",
    "PointsTransaction",
]
