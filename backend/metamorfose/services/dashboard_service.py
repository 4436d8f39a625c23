"""Dashboard and monitoring operations on top of the procedure gateway."""
import logging
from typing import List, Optional

from metamorfose.cache import DashboardCache
from metamorfose.config import BATCH_JOB_TYPES
from metamorfose.exceptions import ValidationError
from metamorfose.gateway import ProcedureGateway
from metamorfose.schemas import BatchJob, PlantDashboardRecord
from metamorfose.services.jobs import BatchJobRunner

logger = logging.getLogger(__name__)


def normalize_job_type(job_type: Optional[str]) -> str:
    """Uppercase a batch job type and reject anything outside the known set."""
    if job_type is None or not job_type.strip():
        raise ValidationError("Job type must not be empty")
    normalized = job_type.strip().upper()
    if normalized not in BATCH_JOB_TYPES:
        raise ValidationError(f"Invalid processing type: {job_type}")
    return normalized


def require_plant_id(plant_id: Optional[str]) -> str:
    if plant_id is None or not plant_id.strip():
        raise ValidationError("Plant ID must not be null or empty")
    return plant_id.strip()


class DashboardService:
    def __init__(self, gateway: ProcedureGateway, cache: DashboardCache, jobs: BatchJobRunner):
        self.gateway = gateway
        self.cache = cache
        self.jobs = jobs

    # ── Dashboard ─────────────────────────────────────────────
    def get_dashboard(self, user_id: Optional[str] = None) -> List[PlantDashboardRecord]:
        """Dashboard rows for ``user_id`` (all users when None).

        Non-empty results are cached per user id; an empty result is
        never cached, so the next call goes back to the database.
        """
        if user_id is not None:
            user_id = user_id.strip()
            if not user_id:
                raise ValidationError("User ID must not be empty")

        hit, cached = self.cache.get(user_id)
        if hit:
            logger.debug("Dashboard cache hit for user: %s", user_id)
            return list(cached)

        logger.info("Loading dashboard for user: %s", user_id)
        plants = self.gateway.fetch_dashboard(user_id)
        if not plants:
            logger.warning("No plants found for user: %s", user_id)
            return plants

        logger.info("Found %d plants for user: %s", len(plants), user_id)
        self.cache.set(user_id, tuple(plants))
        return plants

    def get_all_dashboard(self) -> List[PlantDashboardRecord]:
        return self.get_dashboard(None)

    # ── Batch processing ──────────────────────────────────────
    def run_job(self, job_type: str) -> str:
        job_type = normalize_job_type(job_type)
        logger.info("Starting automatic processing: %s", job_type)
        result = self.gateway.run_batch_job(job_type)
        logger.info("Automatic processing %s finished", job_type)
        return result

    def run_job_async(self, job_type: str) -> BatchJob:
        """Validate ``job_type`` now and run the job on the worker pool."""
        job_type = normalize_job_type(job_type)
        logger.info("Scheduling asynchronous processing: %s", job_type)
        return self.jobs.submit(job_type, lambda: self.run_job(job_type))

    def get_job(self, job_id: str) -> Optional[BatchJob]:
        return self.jobs.get(job_id)

    # ── Alerts and per-plant functions ────────────────────────
    def register_alerts(self, plant_id: Optional[str]) -> str:
        """Register critical alerts for one plant, or for all plants when None."""
        if plant_id is not None:
            plant_id = require_plant_id(plant_id)
        logger.info("Registering critical alerts for plant: %s", plant_id or "ALL")
        result = self.gateway.register_alerts(plant_id)
        logger.info("Critical alerts registered for plant: %s", plant_id or "ALL")
        return result

    def register_all_alerts(self) -> str:
        return self.register_alerts(None)

    def get_health_index(self, plant_id: str) -> Optional[float]:
        plant_id = require_plant_id(plant_id)
        logger.info("Calculating health index for plant: %s", plant_id)
        health_index = self.gateway.compute_health_index(plant_id)
        logger.info("Health index %s for plant: %s", health_index, plant_id)
        return health_index

    def get_formatted_status(self, plant_id: str) -> Optional[str]:
        plant_id = require_plant_id(plant_id)
        logger.info("Formatting status for plant: %s", plant_id)
        return self.gateway.format_status(plant_id)

    def shutdown(self) -> None:
        self.jobs.shutdown(wait=False)
