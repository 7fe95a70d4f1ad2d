"""Health report for liveness/readiness probes.

Builds the payload a ``/health`` endpoint returns to its orchestrator: overall
status ``OK`` (HTTP 200) when the database probe is healthy, ``DEGRADED``
(HTTP 503) otherwise, plus uptime, version, environment and the database
probe itself. Building the report never raises.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .database import Database

STATUS_OK = "OK"
STATUS_DEGRADED = "DEGRADED"
HTTP_OK = 200
HTTP_SERVICE_UNAVAILABLE = 503


@dataclass(frozen=True)
class HealthReport:
    """A rendered health report and the HTTP status it maps to."""

    status_code: int
    payload: dict[str, Any] = field(default_factory=dict)

    @property
    def healthy(self) -> bool:
        """True when the report maps to HTTP 200."""
        return self.status_code == HTTP_OK


async def health_report(
    database: Database,
    *,
    version: str,
    environment: str,
    started_at: float,
) -> HealthReport:
    """Probe the database and build the health report.

    Args:
        database: The process's database service.
        version: Application version to report.
        environment: Deployment mode to report.
        started_at: ``time.monotonic()`` value captured at process start.

    Returns:
        HealthReport: Status code and JSON-friendly payload.
    """
    db_health = await database.health_check()
    healthy = db_health.healthy
    return HealthReport(
        status_code=HTTP_OK if healthy else HTTP_SERVICE_UNAVAILABLE,
        payload={
            "status": STATUS_OK if healthy else STATUS_DEGRADED,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime": round(time.monotonic() - started_at, 3),
            "ready": database.is_ready,
            "database": db_health.to_dict(),
            "version": version,
            "environment": environment,
        },
    )
