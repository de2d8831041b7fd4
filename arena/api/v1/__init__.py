"""
API v1 routes aggregation
"""
from fastapi import APIRouter
from arena.api.v1 import maintenance, payments, tournaments, wallet, withdrawals

api_router = APIRouter()

# Tournaments
api_router.include_router(tournaments.router)

# Wallet
api_router.include_router(wallet.router)

# Withdrawals
api_router.include_router(withdrawals.router)

# Payment gateway
api_router.include_router(payments.router)

# Maintenance
api_router.include_router(maintenance.router)
