"""Test fixtures for Metamorfose API tests."""
from __future__ import annotations

import os
from datetime import datetime
from typing import Dict, List, Optional

import pytest

os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("SCHEDULED_JOB_ENABLED", "false")

from fastapi.testclient import TestClient  # noqa: E402

from metamorfose.cache import DashboardCache  # noqa: E402
from metamorfose.dependencies import get_dashboard_service  # noqa: E402
from metamorfose.exceptions import GatewayError  # noqa: E402
from metamorfose.gateway import ProcedureGateway  # noqa: E402
from metamorfose.main import app  # noqa: E402
from metamorfose.schemas import PlantDashboardRecord, StatusCategory  # noqa: E402
from metamorfose.services import BatchJobRunner, DashboardService  # noqa: E402


def make_record(plant_id: str, user_id: str, **overrides) -> PlantDashboardRecord:
    fields = dict(
        plant_id=plant_id,
        plant_name=f"Plant {plant_id}",
        species="Monstera deliciosa",
        pot_color="terracotta",
        user_id=user_id,
        user_name=f"User {user_id}",
        email=f"{user_id}@example.com",
        health_index=87.5,
        status_category=StatusCategory.GOOD,
        days_monitored=12,
        active_sensors=3,
        readings_last_24h=288,
        created_at=datetime(2024, 3, 1, 9, 30, 0),
        query_timestamp=datetime(2024, 3, 13, 18, 0, 0),
    )
    fields.update(overrides)
    return PlantDashboardRecord(**fields)


class FakeGateway(ProcedureGateway):
    """In-memory stand-in for the PL/SQL procedures that records every call."""

    def __init__(self, plants: Optional[List[PlantDashboardRecord]] = None):
        self.plants = list(plants or [])
        self.calls: Dict[str, list] = {}
        self.fail_with: Optional[Exception] = None
        self.health_index = 91.25
        self.status_text = "Plant p1: GOOD (91.25)"

    def _record(self, name: str, arg) -> None:
        self.calls.setdefault(name, []).append(arg)
        if self.fail_with is not None:
            raise self.fail_with

    def call_count(self, name: str) -> int:
        return len(self.calls.get(name, []))

    def fetch_dashboard(self, user_id):
        self._record("fetch_dashboard", user_id)
        if user_id is None:
            return list(self.plants)
        return [p for p in self.plants if p.user_id == user_id]

    def run_batch_job(self, job_type):
        self._record("run_batch_job", job_type)
        return f"{job_type} processing finished: 2 plants updated"

    def register_alerts(self, plant_id):
        self._record("register_alerts", plant_id)
        return f"Alerts registered for {plant_id or 'ALL'}: 1"

    def compute_health_index(self, plant_id):
        self._record("compute_health_index", plant_id)
        return self.health_index

    def format_status(self, plant_id):
        self._record("format_status", plant_id)
        return self.status_text

    def ping(self):
        self._record("ping", None)


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway([
        make_record("p1", "u1"),
        make_record("p2", "u1", status_category=StatusCategory.WARNING, health_index=55.0),
        make_record("p3", "u2"),
    ])


@pytest.fixture
def service(gateway: FakeGateway):
    svc = DashboardService(gateway, DashboardCache(maxsize=16, ttl_seconds=60), BatchJobRunner(max_workers=1))
    yield svc
    svc.jobs.shutdown(wait=True)


@pytest.fixture
def client(service: DashboardService):
    app.dependency_overrides[get_dashboard_service] = lambda: service
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def failing_gateway(gateway: FakeGateway) -> FakeGateway:
    gateway.fail_with = GatewayError("Failed to load dashboard data")
    return gateway
