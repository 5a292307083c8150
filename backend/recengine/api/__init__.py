"""API routes"""

from fastapi import APIRouter
from .recommendations import router as recommendations_router
from .users import router as users_router
from .items import router as items_router

api_router = APIRouter()

# Recommendation routes first: their fixed segments would otherwise be
# captured by the generic relation routes
api_router.include_router(recommendations_router, prefix="/users", tags=["recommendations"])
api_router.include_router(users_router, prefix="/users", tags=["users"])
api_router.include_router(items_router, prefix="/items", tags=["items"])
