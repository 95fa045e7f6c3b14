"""
Health Check Service

Reports MongoDB connectivity and basic system metrics for the health endpoint.
"""

import os
import time
import psutil
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from opentelemetry import trace

from .mongodb import MongoDBService

tracer = trace.get_tracer(__name__)


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class HealthCheckService:
    """Service for system health monitoring."""

    def __init__(self, mongodb_service: Optional[MongoDBService], service_version: str = "1.0.0"):
        self.mongodb_service = mongodb_service
        self.service_version = service_version

    def get_health(self) -> Dict[str, Any]:
        """Get health status including the database and system metrics."""
        with tracer.start_as_current_span("health.check") as span:
            start_time = time.time()

            mongodb_health = self._check_mongodb_health()
            overall_status = "healthy" if mongodb_health["status"] in ("healthy", "skipped") else "unhealthy"

            response_time_ms = round((time.time() - start_time) * 1000, 2)

            health_data = {
                "status": overall_status,
                "service": "bloodconnect-api",
                "version": self.service_version,
                "environment": os.getenv('ENVIRONMENT', 'development'),
                "timestamp": _timestamp(),
                "response_time_ms": response_time_ms,
                "dependencies": {
                    "mongodb": mongodb_health
                },
                "system_metrics": self._get_system_metrics()
            }

            span.set_attributes({
                "health.overall_status": overall_status,
                "health.response_time_ms": response_time_ms,
                "health.mongodb_status": mongodb_health["status"]
            })

            return health_data

    def _check_mongodb_health(self) -> Dict[str, Any]:
        """Check MongoDB connectivity."""
        if self.mongodb_service is None:
            # Injected repository without a database behind it
            return {"status": "skipped", "last_check": _timestamp()}

        with tracer.start_as_current_span("health.mongodb_check") as span:
            start_time = time.time()
            health_info = self.mongodb_service.health_check()
            health_info["response_time_ms"] = round((time.time() - start_time) * 1000, 2)
            health_info["last_check"] = _timestamp()

            span.set_attributes({
                "mongodb.status": health_info["status"],
                "mongodb.response_time_ms": health_info["response_time_ms"]
            })
            return health_info

    def _get_system_metrics(self) -> Dict[str, Any]:
        """Get basic system performance metrics."""
        try:
            memory = psutil.virtual_memory()
            disk = psutil.disk_usage('/')

            return {
                "cpu_percent": psutil.cpu_percent(interval=None),
                "memory": {
                    "used_mb": round(memory.used / 1024 / 1024, 2),
                    "total_mb": round(memory.total / 1024 / 1024, 2),
                    "percent": memory.percent
                },
                "disk": {
                    "used_gb": round(disk.used / 1024 / 1024 / 1024, 2),
                    "total_gb": round(disk.total / 1024 / 1024 / 1024, 2),
                    "percent": round((disk.used / disk.total) * 100, 2)
                },
                "load_average": list(os.getloadavg()) if hasattr(os, 'getloadavg') else None
            }
        except (OSError, psutil.Error) as e:
            return {
                "error": f"Failed to collect system metrics: {str(e)}"
            }
