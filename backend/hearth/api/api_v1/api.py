"""
Main API router that includes all endpoint routers
"""

from fastapi import APIRouter

from hearth.api.api_v1.endpoints import database, entities, households

# Create main API router
api_router = APIRouter()

# Include all endpoint routers
api_router.include_router(households.router, prefix="/households/{household_id}", tags=["households"])
api_router.include_router(entities.router, prefix="/households/{household_id}", tags=["records"])
api_router.include_router(database.router, prefix="/database", tags=["database"])
