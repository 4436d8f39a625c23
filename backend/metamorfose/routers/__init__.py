from metamorfose.routers.dashboard import router as dashboard_router
from metamorfose.routers.monitoring import router as monitoring_router

__all__ = ["dashboard_router", "monitoring_router"]
