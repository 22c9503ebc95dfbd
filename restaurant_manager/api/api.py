"""
API router aggregator — wires all endpoint modules together.
"""

from fastapi import APIRouter

from restaurant_manager.api.endpoints import auth, health

api_router = APIRouter()

# Register, login, me, logout
api_router.include_router(auth.router)

# Health
api_router.include_router(health.router)
