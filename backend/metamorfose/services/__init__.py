from metamorfose.services.dashboard_service import DashboardService
from metamorfose.services.jobs import BatchJobRunner

__all__ = ["DashboardService", "BatchJobRunner"]
