"""End-to-end HTTP tests with the service wired to the in-memory gateway."""
import pytest
from slowapi import Limiter
from slowapi.util import get_remote_address

from metamorfose.exceptions import GatewayError
from metamorfose.main import app

API = "/api/v1"


class TestDashboardEndpoints:
    def test_plants_for_user(self, client):
        resp = client.get(f"{API}/dashboard/plants/user/u1")
        assert resp.status_code == 200
        body = resp.json()
        assert isinstance(body, list)
        assert len(body) == 2
        assert {item["user_id"] for item in body} == {"u1"}
        assert body[0]["plant_id"] == "p1"
        assert body[0]["status_category"] == "GOOD"
        assert body[0]["created_at"] == "2024-03-01 09:30:00"

    def test_all_plants(self, client, gateway):
        resp = client.get(f"{API}/dashboard/plants")
        assert resp.status_code == 200
        assert len(resp.json()) == 3
        assert gateway.calls["fetch_dashboard"] == [None]

    def test_unknown_user_returns_empty_list(self, client):
        resp = client.get(f"{API}/dashboard/plants/user/ghost")
        assert resp.status_code == 200
        assert resp.json() == []

    def test_second_request_served_from_cache(self, client, gateway):
        client.get(f"{API}/dashboard/plants/user/u1")
        client.get(f"{API}/dashboard/plants/user/u1")
        assert gateway.call_count("fetch_dashboard") == 1

    def test_gateway_failure_returns_sanitized_500(self, client, failing_gateway):
        resp = client.get(f"{API}/dashboard/plants/user/u1")
        assert resp.status_code == 500
        body = resp.json()
        assert body["success"] is False
        assert body["operation_type"] == "DATABASE_ERROR"
        assert body["message"] == "Database error: Failed to load dashboard data"

    def test_health_index(self, client, gateway):
        resp = client.get(f"{API}/dashboard/plants/p1/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["operation_type"] == "HEALTH_CALCULATION"
        assert body["data"] == pytest.approx(91.25)
        assert gateway.calls["compute_health_index"] == ["p1"]

    def test_formatted_status(self, client):
        resp = client.get(f"{API}/dashboard/plants/p1/status")
        assert resp.status_code == 200
        body = resp.json()
        assert body["operation_type"] == "STATUS_FORMATTING"
        assert body["data"] == "Plant p1: GOOD (91.25)"

    def test_blank_plant_id_is_400(self, client, gateway):
        resp = client.get(f"{API}/dashboard/plants/%20/health")
        assert resp.status_code == 400
        body = resp.json()
        assert body["success"] is False
        assert body["operation_type"] == "VALIDATION_ERROR"
        assert gateway.call_count("compute_health_index") == 0

    def test_envelope_shape(self, client):
        body = client.get(f"{API}/dashboard/plants/p1/status").json()
        assert set(body) == {"success", "message", "timestamp", "operation_type", "data"}
        assert len(body["timestamp"]) == len("2024-01-01 00:00:00")


class TestMonitoringEndpoints:
    def test_register_all_alerts(self, client, gateway):
        resp = client.post(f"{API}/monitoring/alerts")
        assert resp.status_code == 200
        body = resp.json()
        assert body["operation_type"] == "CRITICAL_ALERTS"
        assert body["data"] == "Alerts registered for ALL: 1"
        assert gateway.calls["register_alerts"] == [None]

    def test_register_plant_alerts(self, client, gateway):
        resp = client.post(f"{API}/monitoring/alerts/p2")
        assert resp.status_code == 200
        assert resp.json()["operation_type"] == "PLANT_ALERTS"
        assert gateway.calls["register_alerts"] == ["p2"]

    def test_blank_plant_alerts_is_400(self, client, gateway):
        resp = client.post(f"{API}/monitoring/alerts/%20%20")
        assert resp.status_code == 400
        assert gateway.call_count("register_alerts") == 0

    @pytest.mark.parametrize("job_type", ["stats", "STATS", "Stats"])
    def test_process_any_case(self, client, gateway, job_type):
        resp = client.post(f"{API}/monitoring/process/{job_type}")
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["operation_type"] == "AUTOMATIC_PROCESSING"
        assert gateway.calls["run_batch_job"] == ["STATS"]

    def test_process_bogus_is_400(self, client, gateway):
        resp = client.post(f"{API}/monitoring/process/bogus")
        assert resp.status_code == 400
        body = resp.json()
        assert body["success"] is False
        assert body["message"].startswith("Invalid parameter:")
        assert gateway.call_count("run_batch_job") == 0

    def test_process_gateway_failure_is_500(self, client, gateway):
        gateway.fail_with = GatewayError("Automatic processing failed")
        resp = client.post(f"{API}/monitoring/process/completo")
        assert resp.status_code == 500
        assert resp.json()["message"] == "Database error: Automatic processing failed"

    def test_unexpected_failure_is_generic_500(self, client, gateway):
        gateway.fail_with = RuntimeError("ORA-00600: internal error code")
        resp = client.post(f"{API}/monitoring/process/stats")
        assert resp.status_code == 500
        body = resp.json()
        assert body["operation_type"] == "INTERNAL_ERROR"
        assert body["message"] == "Internal server error"
        assert "ORA-00600" not in resp.text

    def test_async_process_returns_202_and_job_is_retrievable(self, client, service, gateway):
        resp = client.post(f"{API}/monitoring/process/alertas/async")
        assert resp.status_code == 202
        body = resp.json()
        assert body["success"] is True
        assert body["operation_type"] == "ASYNC_PROCESSING"
        job_id = body["data"]["job_id"]
        assert body["data"]["job_type"] == "ALERTAS"

        service.jobs.shutdown(wait=True)
        status_resp = client.get(f"{API}/monitoring/process/jobs/{job_id}")
        assert status_resp.status_code == 200
        job = status_resp.json()["data"]
        assert job["status"] == "SUCCEEDED"
        assert job["result"] == "ALERTAS processing finished: 2 plants updated"
        assert gateway.calls["run_batch_job"] == ["ALERTAS"]

    def test_async_process_bogus_is_400(self, client, gateway):
        resp = client.post(f"{API}/monitoring/process/bogus/async")
        assert resp.status_code == 400
        assert resp.json()["success"] is False

    def test_unknown_job_is_404(self, client):
        resp = client.get(f"{API}/monitoring/process/jobs/does-not-exist")
        assert resp.status_code == 404
        body = resp.json()
        assert body["success"] is False
        assert body["operation_type"] == "JOB_STATUS"


class TestAppEndpoints:
    def test_health(self, client, gateway):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "healthy", "database": "ok"}

    def test_health_degraded(self, client, gateway):
        gateway.fail_with = GatewayError("Database unreachable")
        resp = client.get("/health")
        assert resp.status_code == 503
        assert resp.json()["status"] == "degraded"

    def test_root(self, client):
        body = client.get("/").json()
        assert body["name"] == "Metamorfose API"
        assert body["api_base"] == "/api/v1"

    def test_request_id_and_security_headers(self, client):
        resp = client.get("/", headers={"X-Request-ID": "req-123"})
        assert resp.headers["X-Request-ID"] == "req-123"
        assert resp.headers["X-Content-Type-Options"] == "nosniff"
        assert resp.headers["X-Frame-Options"] == "DENY"


@pytest.fixture
def strict_limiter(client):
    """Swap in a limiter that allows one request per minute."""
    original = app.state.limiter
    app.state.limiter = Limiter(key_func=get_remote_address, default_limits=["1/minute"])
    yield app.state.limiter
    app.state.limiter = original


class TestRateLimiting:
    def test_limit_exceeded_returns_envelope(self, client, strict_limiter):
        first = client.get(f"{API}/dashboard/plants")
        assert first.status_code == 200

        second = client.get(f"{API}/dashboard/plants")
        assert second.status_code == 429
        body = second.json()
        assert body["success"] is False
        assert body["operation_type"] == "RATE_LIMITED"
        assert body["message"].startswith("Rate limit exceeded:")

