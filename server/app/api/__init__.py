from fastapi import APIRouter

from app.api import admin, auth, games, rereleases
from app.schemas.common import HealthResponse

api_router = APIRouter()


@api_router.get("/health", tags=["health"], response_model=HealthResponse)
def api_health_check() -> HealthResponse:
    """Health check endpoint for monitoring and load balancers."""
    return HealthResponse(status="ok", service="api")


api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(games.router, prefix="/games", tags=["games"])
# Admin routes first so /rereleases/admin/... never reaches the public path parameters
api_router.include_router(admin.router, prefix="/rereleases/admin", tags=["admin"])
api_router.include_router(rereleases.router, prefix="/rereleases", tags=["rereleases"])
