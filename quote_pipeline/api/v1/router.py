from fastapi import APIRouter

from quote_pipeline.api.v1.endpoints import events, quotes, system

# Create API router
api_router = APIRouter()

# Include routers
api_router.include_router(quotes.router, prefix="/quotes", tags=["Quotes"])
api_router.include_router(events.router, prefix="/events", tags=["Events"])
api_router.include_router(system.router, tags=["System"])

__all__ = ["api_router"]
