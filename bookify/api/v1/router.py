"""Main API router that includes all endpoint routers."""

from fastapi import APIRouter

from bookify.api.v1 import bookings, offers, wallets

api_router = APIRouter()

# Bookings
api_router.include_router(bookings.router, prefix="/bookings", tags=["Bookings"])

# Offers
api_router.include_router(offers.router, prefix="/offers", tags=["Offers"])

# Wallets
api_router.include_router(wallets.router, prefix="/wallets", tags=["Wallets"])
