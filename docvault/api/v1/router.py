from fastapi import APIRouter
from docvault.api.v1.endpoints import processing

# ============================================================
# Main API v1 Router
# ============================================================

api_router = APIRouter()

# Include processing routes at /processing
api_router.include_router(
    processing.router,
    prefix="/processing"
)
