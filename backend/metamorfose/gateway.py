"""
Procedure gateway: adapter over the PL/SQL procedures and functions.

The database owns every business rule (health index, status labels,
alert thresholds, batch processing). This module only marshals
parameters in and results out:

- PRC_API_DASHBOARD_PLANTAS(p_user_id IN VARCHAR2, p_cursor OUT SYS_REFCURSOR)
- PRC_BACKEND_PROCESSAMENTO_AUTO(p_tipo IN VARCHAR2, p_resultado OUT CLOB)
- PRC_REGISTRAR_ALERTAS_CRITICOS(p_plant_id IN VARCHAR2, p_resultado OUT VARCHAR2)
- FN_CALCULAR_INDICE_SAUDE_PLANTA(p_plant_id) RETURN NUMBER
- FN_FORMATAR_STATUS_PLANTA(p_plant_id) RETURN VARCHAR2
"""
import abc
import logging
from contextlib import closing
from typing import Any, Dict, List, Optional, Sequence

import oracledb
from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from metamorfose.exceptions import GatewayError
from metamorfose.schemas import PlantDashboardRecord, StatusCategory

logger = logging.getLogger(__name__)

DASHBOARD_PROCEDURE = "PRC_API_DASHBOARD_PLANTAS"
BATCH_PROCEDURE = "PRC_BACKEND_PROCESSAMENTO_AUTO"
ALERTS_PROCEDURE = "PRC_REGISTRAR_ALERTAS_CRITICOS"
HEALTH_INDEX_FUNCTION = "FN_CALCULAR_INDICE_SAUDE_PLANTA"
STATUS_FUNCTION = "FN_FORMATAR_STATUS_PLANTA"

ALERTS_RESULT_SIZE = 4000

DB_ERRORS = (SQLAlchemyError, oracledb.Error)


class ProcedureGateway(abc.ABC):
    """Capability to call the stored procedure layer."""

    @abc.abstractmethod
    def fetch_dashboard(self, user_id: Optional[str]) -> List[PlantDashboardRecord]:
        """Return dashboard rows for one user, or for everyone when ``user_id`` is None."""

    @abc.abstractmethod
    def run_batch_job(self, job_type: str) -> str:
        """Run a backend processing routine and return its report."""

    @abc.abstractmethod
    def register_alerts(self, plant_id: Optional[str]) -> str:
        """Register critical alerts for one plant, or all plants when ``plant_id`` is None."""

    @abc.abstractmethod
    def compute_health_index(self, plant_id: str) -> Optional[float]:
        ...

    @abc.abstractmethod
    def format_status(self, plant_id: str) -> Optional[str]:
        ...

    @abc.abstractmethod
    def ping(self) -> None:
        """Raise GatewayError if the database cannot be reached."""


def _to_float(value: Any) -> float:
    return float(value) if value is not None else 0.0


def _to_int(value: Any) -> int:
    return int(value) if value is not None else 0


def _to_str(value: Any) -> Optional[str]:
    return str(value) if value is not None else None


def map_dashboard_row(columns: Sequence[str], row: Sequence[Any]) -> PlantDashboardRecord:
    """Build a record from a cursor row, matching columns by name."""
    data: Dict[str, Any] = {name.lower(): value for name, value in zip(columns, row)}

    start_date = data.get("start_date")
    if start_date is not None and hasattr(start_date, "date"):
        start_date = start_date.date()

    return PlantDashboardRecord(
        plant_id=_to_str(data.get("plant_id")),
        plant_name=_to_str(data.get("plant_name")),
        species=_to_str(data.get("species")),
        pot_color=_to_str(data.get("pot_color")),
        start_date=start_date,
        user_id=_to_str(data.get("user_id")),
        user_name=_to_str(data.get("user_name")),
        email=_to_str(data.get("email")),
        health_index=_to_float(data.get("health_index")),
        status_category=StatusCategory.decode(data.get("status_category")),
        days_monitored=_to_int(data.get("days_monitored")),
        active_sensors=_to_int(data.get("active_sensors")),
        readings_last_24h=_to_int(data.get("readings_last_24h")),
        main_photo_url=_to_str(data.get("main_photo_url")),
        created_at=data.get("created_at"),
        query_timestamp=data.get("query_timestamp"),
    )


class OracleProcedureGateway(ProcedureGateway):
    """Gateway implementation on a SQLAlchemy engine using the oracledb driver."""

    def __init__(self, engine: Engine):
        self.engine = engine

    # ── Procedures ────────────────────────────────────────────
    def fetch_dashboard(self, user_id: Optional[str]) -> List[PlantDashboardRecord]:
        logger.debug("Calling %s for user_id=%s", DASHBOARD_PROCEDURE, user_id)
        try:
            with closing(self.engine.raw_connection()) as conn:
                with closing(conn.cursor()) as cur:
                    out_cursor = cur.var(oracledb.DB_TYPE_CURSOR)
                    cur.callproc(DASHBOARD_PROCEDURE, [user_id, out_cursor])
                    ref_cursor = out_cursor.getvalue()
                    if ref_cursor is None:
                        raise ValueError(f"{DASHBOARD_PROCEDURE} returned no cursor")
                    with closing(ref_cursor):
                        columns = [d[0] for d in ref_cursor.description]
                        plants = [map_dashboard_row(columns, row) for row in ref_cursor]
        except (*DB_ERRORS, ValueError) as exc:
            # ValueError covers a missing cursor and rows the record schema rejects
            logger.error("%s failed", DASHBOARD_PROCEDURE, exc_info=True)
            raise GatewayError("Failed to load dashboard data") from exc

        logger.debug("%s returned %d plants", DASHBOARD_PROCEDURE, len(plants))
        return plants

    def run_batch_job(self, job_type: str) -> str:
        logger.debug("Calling %s with job_type=%s", BATCH_PROCEDURE, job_type)
        try:
            with closing(self.engine.raw_connection()) as conn:
                with closing(conn.cursor()) as cur:
                    out_clob = cur.var(oracledb.DB_TYPE_CLOB)
                    cur.callproc(BATCH_PROCEDURE, [job_type, out_clob])
                    lob = out_clob.getvalue()
                    result = lob.read() if lob is not None else ""
                conn.commit()
        except DB_ERRORS as exc:
            logger.error("%s failed for job_type=%s", BATCH_PROCEDURE, job_type, exc_info=True)
            raise GatewayError("Automatic processing failed") from exc

        logger.debug("%s finished (%d chars)", BATCH_PROCEDURE, len(result))
        return result

    def register_alerts(self, plant_id: Optional[str]) -> str:
        logger.debug("Calling %s for plant_id=%s", ALERTS_PROCEDURE, plant_id)
        try:
            with closing(self.engine.raw_connection()) as conn:
                with closing(conn.cursor()) as cur:
                    out_text = cur.var(oracledb.DB_TYPE_VARCHAR, ALERTS_RESULT_SIZE)
                    cur.callproc(ALERTS_PROCEDURE, [plant_id, out_text])
                    result = out_text.getvalue()
                conn.commit()
        except DB_ERRORS as exc:
            logger.error("%s failed for plant_id=%s", ALERTS_PROCEDURE, plant_id, exc_info=True)
            raise GatewayError("Failed to register alerts") from exc

        logger.debug("Alerts registered: %s", result)
        return result

    # ── Functions ─────────────────────────────────────────────
    def _call_function(self, function: str, plant_id: str) -> Any:
        query = text(f"SELECT {function}(:plant_id) FROM DUAL")
        with self.engine.connect() as conn:
            return conn.execute(query, {"plant_id": plant_id}).scalar_one()

    def compute_health_index(self, plant_id: str) -> Optional[float]:
        logger.debug("Calling %s for plant_id=%s", HEALTH_INDEX_FUNCTION, plant_id)
        try:
            value = self._call_function(HEALTH_INDEX_FUNCTION, plant_id)
        except DB_ERRORS as exc:
            logger.error("%s failed for plant_id=%s", HEALTH_INDEX_FUNCTION, plant_id, exc_info=True)
            raise GatewayError("Failed to calculate health index") from exc

        logger.debug("Health index for %s: %s", plant_id, value)
        return float(value) if value is not None else None

    def format_status(self, plant_id: str) -> Optional[str]:
        logger.debug("Calling %s for plant_id=%s", STATUS_FUNCTION, plant_id)
        try:
            value = self._call_function(STATUS_FUNCTION, plant_id)
        except DB_ERRORS as exc:
            logger.error("%s failed for plant_id=%s", STATUS_FUNCTION, plant_id, exc_info=True)
            raise GatewayError("Failed to format plant status") from exc
        return value

    def ping(self) -> None:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1 FROM DUAL"))
        except DB_ERRORS as exc:
            raise GatewayError("Database unreachable") from exc
