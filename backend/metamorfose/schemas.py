"""Pydantic response schemas for all API endpoints."""
from __future__ import annotations

import enum
from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


# ═══════════════════════════════════════════════════════════════
# Dashboard
# ═══════════════════════════════════════════════════════════════

class StatusCategory(str, enum.Enum):
    EXCELLENT = "EXCELLENT"
    GOOD = "GOOD"
    WARNING = "WARNING"
    CAUTION = "CAUTION"
    CRITICAL = "CRITICAL"
    ERROR = "ERROR"

    @classmethod
    def decode(cls, label: Optional[str]) -> Optional["StatusCategory"]:
        """Map a label from the database, falling back to ERROR for unknown values."""
        if label is None:
            return None
        try:
            return cls(label)
        except ValueError:
            return cls.ERROR


class PlantDashboardRecord(BaseModel):
    """One row of the dashboard procedure's cursor."""

    model_config = ConfigDict(frozen=True)

    plant_id: str
    plant_name: Optional[str] = None
    species: Optional[str] = None
    pot_color: Optional[str] = None
    start_date: Optional[date] = None

    user_id: Optional[str] = None
    user_name: Optional[str] = None
    email: Optional[str] = None

    health_index: float = 0.0
    status_category: Optional[StatusCategory] = None
    days_monitored: int = 0
    active_sensors: int = 0
    readings_last_24h: int = 0

    main_photo_url: Optional[str] = None
    created_at: Optional[datetime] = None
    query_timestamp: Optional[datetime] = None

    @field_serializer("start_date")
    def serialize_date(self, value: Optional[date]) -> Optional[str]:
        return value.isoformat() if value else None

    @field_serializer("created_at", "query_timestamp")
    def serialize_timestamp(self, value: Optional[datetime]) -> Optional[str]:
        return value.strftime(TIMESTAMP_FORMAT) if value else None


# ═══════════════════════════════════════════════════════════════
# Envelope
# ═══════════════════════════════════════════════════════════════

class OperationResult(BaseModel):
    """Uniform success/error envelope returned by the operation endpoints."""

    success: bool
    message: str
    timestamp: datetime = Field(default_factory=datetime.now)
    operation_type: Optional[str] = None
    data: Any = None

    @field_serializer("timestamp")
    def serialize_timestamp(self, value: datetime) -> str:
        return value.strftime(TIMESTAMP_FORMAT)

    @classmethod
    def ok(cls, message: str, data: Any = None, operation_type: Optional[str] = None) -> "OperationResult":
        return cls(success=True, message=message, data=data, operation_type=operation_type)

    @classmethod
    def error(cls, message: str, operation_type: Optional[str] = None) -> "OperationResult":
        return cls(success=False, message=message, operation_type=operation_type)


# ═══════════════════════════════════════════════════════════════
# Batch jobs
# ═══════════════════════════════════════════════════════════════

class JobStatus(str, enum.Enum):
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


class BatchJob(BaseModel):
    """Handle for a batch job submitted to the background worker pool."""

    job_id: str
    job_type: str
    status: JobStatus = JobStatus.PENDING
    submitted_at: datetime = Field(default_factory=datetime.now)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    result: Optional[str] = None
    error: Optional[str] = None

    @property
    def done(self) -> bool:
        return self.status in (JobStatus.SUCCEEDED, JobStatus.FAILED)

    @field_serializer("submitted_at", "started_at", "finished_at")
    def serialize_timestamp(self, value: Optional[datetime]) -> Optional[str]:
        return value.strftime(TIMESTAMP_FORMAT) if value else None


class HealthResponse(BaseModel):
    status: str
    database: str
