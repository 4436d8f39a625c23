"""Monitoring endpoints: critical alerts and backend batch processing."""
import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from metamorfose.dependencies import get_dashboard_service
from metamorfose.schemas import OperationResult
from metamorfose.services import DashboardService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/monitoring", tags=["monitoring"])


# --- Alerts ---

@router.post("/alerts", response_model=OperationResult)
def register_all_alerts(service: DashboardService = Depends(get_dashboard_service)):
    """Check and register critical alerts for every plant."""
    result = service.register_all_alerts()
    return OperationResult.ok("Alerts processed successfully", data=result, operation_type="CRITICAL_ALERTS")


@router.post("/alerts/{plant_id}", response_model=OperationResult)
def register_plant_alerts(plant_id: str, service: DashboardService = Depends(get_dashboard_service)):
    """Check and register critical alerts for one plant."""
    result = service.register_alerts(plant_id)
    return OperationResult.ok("Plant alerts processed successfully", data=result, operation_type="PLANT_ALERTS")


# --- Batch processing ---

@router.get("/process/jobs/{job_id}", response_model=OperationResult)
def get_processing_job(job_id: str, service: DashboardService = Depends(get_dashboard_service)):
    """Look up an asynchronous processing job by id."""
    job = service.get_job(job_id)
    if job is None:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content=OperationResult.error(f"Job not found: {job_id}", operation_type="JOB_STATUS").model_dump(mode="json"),
        )
    return OperationResult.ok(
        f"Job {job.status.value.lower()}",
        data=job.model_dump(mode="json"),
        operation_type="JOB_STATUS",
    )


@router.post("/process/{job_type}", response_model=OperationResult)
def run_processing(job_type: str, service: DashboardService = Depends(get_dashboard_service)):
    """
    Run an automatic backend routine synchronously.

    Accepted types (any case): COMPLETO, ALERTAS, LIMPEZA, STATS.
    """
    result = service.run_job(job_type)
    return OperationResult.ok("Processing executed successfully", data=result, operation_type="AUTOMATIC_PROCESSING")


@router.post("/process/{job_type}/async", response_model=OperationResult, status_code=status.HTTP_202_ACCEPTED)
def run_processing_async(job_type: str, service: DashboardService = Depends(get_dashboard_service)):
    """Queue an automatic backend routine and return its job handle immediately."""
    job = service.run_job_async(job_type)
    return OperationResult.ok(
        "Asynchronous processing started successfully",
        data={"job_id": job.job_id, "job_type": job.job_type},
        operation_type="ASYNC_PROCESSING",
    )
