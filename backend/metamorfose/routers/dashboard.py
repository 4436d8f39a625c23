"""Dashboard endpoints: plant listings, health index and formatted status."""
import logging
from typing import List

from fastapi import APIRouter, Depends

from metamorfose.dependencies import get_dashboard_service
from metamorfose.schemas import OperationResult, PlantDashboardRecord
from metamorfose.services import DashboardService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/plants", response_model=List[PlantDashboardRecord])
def get_all_plants(service: DashboardService = Depends(get_dashboard_service)):
    """Dashboard data for every active plant."""
    plants = service.get_all_dashboard()
    logger.info("Returning %d plants", len(plants))
    return plants


@router.get("/plants/user/{user_id}", response_model=List[PlantDashboardRecord])
def get_plants_by_user(user_id: str, service: DashboardService = Depends(get_dashboard_service)):
    """Dashboard data for the plants of one user."""
    plants = service.get_dashboard(user_id)
    logger.info("Returning %d plants for user %s", len(plants), user_id)
    return plants


@router.get("/plants/{plant_id}/health", response_model=OperationResult)
def get_plant_health(plant_id: str, service: DashboardService = Depends(get_dashboard_service)):
    health_index = service.get_health_index(plant_id)
    return OperationResult.ok(
        "Health index calculated successfully",
        data=health_index,
        operation_type="HEALTH_CALCULATION",
    )


@router.get("/plants/{plant_id}/status", response_model=OperationResult)
def get_plant_status(plant_id: str, service: DashboardService = Depends(get_dashboard_service)):
    plant_status = service.get_formatted_status(plant_id)
    return OperationResult.ok(
        "Status retrieved successfully",
        data=plant_status,
        operation_type="STATUS_FORMATTING",
    )
