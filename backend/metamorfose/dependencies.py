"""Wiring of the service graph used by the routers."""
from functools import lru_cache

from metamorfose.cache import DashboardCache
from metamorfose.config import get_settings
from metamorfose.database import get_engine
from metamorfose.gateway import OracleProcedureGateway
from metamorfose.services import BatchJobRunner, DashboardService


@lru_cache(maxsize=1)
def get_dashboard_service() -> DashboardService:
    settings = get_settings()
    cache = DashboardCache(
        enabled=settings.dashboard_cache_enabled,
        maxsize=settings.dashboard_cache_size,
        ttl_seconds=settings.dashboard_cache_ttl_seconds,
    )
    jobs = BatchJobRunner(max_workers=settings.batch_workers, history=settings.batch_job_history)
    return DashboardService(OracleProcedureGateway(get_engine()), cache, jobs)


def shutdown_dashboard_service() -> None:
    """Stop the worker pool if the service was ever built."""
    if get_dashboard_service.cache_info().currsize:
        get_dashboard_service().shutdown()
        get_dashboard_service.cache_clear()
