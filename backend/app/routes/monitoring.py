"""
FastAPI routes for service monitoring.

Exposes the performance collector, health score, alerts and the performance
optimizer under /monitoring. Every response is an envelope:
{success, data | error, timestamp, requestId}.
"""

import logging
import time
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from app.api.dependencies import get_monitoring_api, get_optimizer
from app.models.schemas import MetricType, MonitoringResponse
from app.services.monitoring_api import MonitoringAPI
from app.services.performance_collector import DEFAULT_WINDOW_MS
from app.services.performance_optimizer import PerformanceOptimizer

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/monitoring",
    tags=["monitoring"],
    responses={
        400: {"description": "Invalid request body"},
        500: {"description": "Monitoring failure"},
        503: {"description": "Service degraded or not initialized"}
    }
)

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}

SUPPORTED_ALERT_ACTIONS = ("resolve",)


# ============================================================================
# Request Models
# ============================================================================

class AlertActionRequest(BaseModel):
    """
    Body for PATCH /monitoring/alerts.

    Fields are optional here so missing values produce the monitoring
    envelope with a 400 instead of a validation error.
    """
    alertId: Optional[str] = None
    action: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {"alertId": "alert_1718000000000_k3j2h1g0f9", "action": "resolve"}
        }


class MetricRequest(BaseModel):
    """Body for POST /monitoring/metrics."""
    name: Optional[str] = None
    type: Optional[str] = None
    value: Optional[Any] = None
    unit: Optional[str] = None
    tags: Optional[Dict[str, str]] = None
    metadata: Optional[Dict[str, Any]] = None

    class Config:
        json_schema_extra = {
            "example": {
                "name": "quiz_generation_time",
                "type": "timer",
                "value": 2350,
                "unit": "ms",
                "tags": {"service": "quiz"}
            }
        }


class OptimizationRequest(BaseModel):
    """Body for POST /monitoring/optimization/apply."""
    strategyId: Optional[str] = None


# ============================================================================
# Helpers
# ============================================================================

def _now_ms() -> int:
    return int(time.time() * 1000)


def _envelope_response(
    response: MonitoringResponse,
    status_code: int,
    no_cache: bool = False
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=response.dict(exclude_none=True),
        headers=NO_CACHE_HEADERS if no_cache else None
    )


def _error(message: str, status_code: int) -> JSONResponse:
    """Route-level error envelope (validation failures, unexpected errors)"""
    now = _now_ms()
    return _envelope_response(
        MonitoringResponse(success=False, error=message, timestamp=now, requestId=f"req_{now}_error"),
        status_code
    )


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


# ============================================================================
# Endpoints
# ============================================================================

@router.get("/dashboard")
async def get_dashboard(monitoring: MonitoringAPI = Depends(get_monitoring_api)):
    """Complete dashboard data: health score, real-time metrics, alerts, charts."""
    try:
        response = monitoring.get_dashboard_data()
    except Exception as e:
        logger.error(f"Dashboard API error: {str(e)}", exc_info=True)
        return _error("Internal server error", 500)
    return _envelope_response(response, 200 if response.success else 500, no_cache=True)


@router.get("/health")
async def get_health(monitoring: MonitoringAPI = Depends(get_monitoring_api)):
    """
    Health status of the service.

    Returns:
        200 when healthy, 503 when degraded or unhealthy, 500 when the health
        check itself failed
    """
    try:
        response = monitoring.get_health_status()
    except Exception as e:
        logger.error(f"Health API error: {str(e)}", exc_info=True)
        return _error("Health check failed", 500)

    if not response.success:
        status_code = 500
    elif response.data["overall"]["status"] in ("degraded", "unhealthy"):
        status_code = 503
    else:
        status_code = 200
    return _envelope_response(response, status_code, no_cache=True)


@router.get("/alerts")
async def get_alerts(
    resolved: Optional[str] = Query(None, description="'true' to include resolved alerts"),
    monitoring: MonitoringAPI = Depends(get_monitoring_api)
):
    """Active alerts, or the last 24 hours of alerts with ?resolved=true."""
    try:
        response = monitoring.get_alerts(include_resolved=resolved == "true")
    except Exception as e:
        logger.error(f"Alerts GET API error: {str(e)}", exc_info=True)
        return _error("Failed to retrieve alerts", 500)
    return _envelope_response(response, 200 if response.success else 500, no_cache=True)


@router.patch("/alerts")
async def update_alert(
    request: Optional[AlertActionRequest] = None,
    monitoring: MonitoringAPI = Depends(get_monitoring_api)
):
    """Apply an action to an alert. Only 'resolve' is supported."""
    request = request or AlertActionRequest()
    if not request.alertId or not request.action:
        return _error("Missing required fields: alertId, action", 400)

    if request.action not in SUPPORTED_ALERT_ACTIONS:
        return _error(
            f"Unknown action: {request.action}. Supported actions: {', '.join(SUPPORTED_ALERT_ACTIONS)}",
            400
        )

    try:
        response = monitoring.resolve_alert(request.alertId)
    except Exception as e:
        logger.error(f"Alerts PATCH API error: {str(e)}", exc_info=True)
        return _error("Failed to update alert", 500)
    return _envelope_response(response, 200 if response.success else 500)


@router.get("/metrics")
async def get_metrics(
    view: str = Query("analytics", alias="type", description="analytics, history or system"),
    duration: int = Query(DEFAULT_WINDOW_MS, description="Window in milliseconds", ge=0),
    monitoring: MonitoringAPI = Depends(get_monitoring_api)
):
    """Analytics (default), history or current system metrics."""
    try:
        if view == "history":
            response = monitoring.get_performance_history(duration)
        elif view == "system":
            response = monitoring.get_system_metrics()
        else:
            response = monitoring.get_analytics(duration)
    except Exception as e:
        logger.error(f"Metrics GET API error: {str(e)}", exc_info=True)
        return _error("Failed to retrieve metrics", 500)
    return _envelope_response(response, 200 if response.success else 500, no_cache=True)


@router.post("/metrics")
async def record_metric(
    request: Optional[MetricRequest] = None,
    monitoring: MonitoringAPI = Depends(get_monitoring_api)
):
    """Record a custom metric. Returns 201 on success."""
    request = request or MetricRequest()
    if not request.name or not request.type or not _is_number(request.value) or not request.unit:
        return _error("Missing required fields: name, type, value, unit", 400)

    valid_types = [metric_type.value for metric_type in MetricType]
    if request.type not in valid_types:
        return _error(f"Invalid metric type. Must be one of: {', '.join(valid_types)}", 400)

    try:
        response = monitoring.record_metric(
            name=request.name,
            metric_type=MetricType(request.type),
            value=request.value,
            unit=request.unit,
            tags=request.tags or {},
            metadata=request.metadata or {}
        )
    except Exception as e:
        logger.error(f"Metrics POST API error: {str(e)}", exc_info=True)
        return _error("Failed to record metric", 500)
    return _envelope_response(response, 201 if response.success else 500)


@router.get("/optimization/analyze")
async def analyze_performance(optimizer: PerformanceOptimizer = Depends(get_optimizer)):
    """Bottlenecks, proposed strategies and their priority order."""
    try:
        analysis = optimizer.analyze_performance()
    except Exception as e:
        logger.error(f"Performance optimization analysis error: {str(e)}", exc_info=True)
        return _envelope_response(
            MonitoringResponse(success=False, error="Failed to analyze performance", timestamp=_now_ms()),
            500
        )
    return _envelope_response(
        MonitoringResponse(success=True, data=analysis, timestamp=_now_ms()),
        200,
        no_cache=True
    )


@router.post("/optimization/apply")
async def apply_optimization(
    request: Optional[OptimizationRequest] = None,
    optimizer: PerformanceOptimizer = Depends(get_optimizer)
):
    """Apply one of the currently proposed optimization strategies."""
    request = request or OptimizationRequest()
    if not request.strategyId:
        return _envelope_response(
            MonitoringResponse(success=False, error="Strategy ID is required", timestamp=_now_ms()),
            400
        )

    try:
        result = optimizer.apply_optimization(request.strategyId)
    except Exception as e:
        logger.error(f"Performance optimization application error: {str(e)}", exc_info=True)
        return _envelope_response(
            MonitoringResponse(success=False, error="Failed to apply optimization", timestamp=_now_ms()),
            500
        )

    return _envelope_response(
        MonitoringResponse(
            success=result["success"],
            data={
                "strategyId": request.strategyId,
                "improvement": result["improvement"],
                "message": result["message"],
            },
            timestamp=_now_ms()
        ),
        200 if result["success"] else 500
    )
