"""
V1 API router aggregator — wires all endpoint modules together.
"""

from fastapi import APIRouter

from civicconnect.api.v1.endpoints import (admin, health, issues, payments,
                                          staff, users)

api_router = APIRouter()

# Registration and profile
api_router.include_router(users.router)

# Issues: reporting, lifecycle, upvotes
api_router.include_router(issues.router)

# Staff worklist and applications
api_router.include_router(staff.router)

# Boost / subscription checkout and reconciliation
api_router.include_router(payments.router)

# User management and counts
api_router.include_router(admin.router)

# Liveness
api_router.include_router(health.router)
