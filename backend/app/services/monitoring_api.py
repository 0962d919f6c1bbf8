"""
Monitoring API Service

Wraps the PerformanceCollector in response envelopes for the monitoring
routes: {success, data | error, timestamp, requestId}.

Responsibilities:
- Dashboard aggregation (health score, real-time metrics, alerts, charts)
- Health status with healthy / degraded / unhealthy classification
- Alert listing and resolution
- Analytics, history and system metric queries
- Custom metric recording
"""

from typing import Any, Callable, Dict, List, Optional
import logging
import uuid

from app.models.schemas import MetricType, MonitoringResponse
from app.services.performance_collector import DEFAULT_WINDOW_MS, PerformanceCollector

logger = logging.getLogger(__name__)


CHART_FIELDS = {
    "responseTime": "averageResponseTime",
    "errorRate": "errorRate",
    "throughput": "requestsPerSecond",
}


def health_status(score: int) -> str:
    """Map a 0-100 health score onto a status label"""
    if score > 80:
        return "healthy"
    if score > 60:
        return "degraded"
    return "unhealthy"


def time_series(snapshots: List[Dict[str, Any]], chart: str) -> List[Dict[str, Any]]:
    """Chart points for one application metric, oldest first"""
    field_name = CHART_FIELDS[chart]
    points = [
        {
            "timestamp": snapshot["timestamp"],
            "value": snapshot.get("application", {}).get(field_name, 0),
        }
        for snapshot in snapshots
    ]
    return sorted(points, key=lambda point: point["timestamp"])


class MonitoringAPI:
    """
    Envelope-producing facade over a PerformanceCollector

    Every method returns a MonitoringResponse; collector failures become
    `success=False` envelopes instead of exceptions.

    Example:
        >>> api = MonitoringAPI(PerformanceCollector())
        >>> api.get_health_status().data["overall"]["status"]
        'healthy'
    """

    def __init__(self, collector: PerformanceCollector):
        self.collector = collector

    def _request_id(self) -> str:
        return f"req_{self.collector.clock()}_{uuid.uuid4().hex[:10]}"

    def _envelope(self, operation: str, build: Callable[[], Any]) -> MonitoringResponse:
        request_id = self._request_id()
        try:
            data = build()
        except Exception as e:
            logger.error(f"Monitoring {operation} failed: {str(e)}", exc_info=True)
            return MonitoringResponse(
                success=False,
                error=str(e) or "Unknown error",
                timestamp=self.collector.clock(),
                requestId=request_id
            )
        return MonitoringResponse(
            success=True,
            data=data,
            timestamp=self.collector.clock(),
            requestId=request_id
        )

    def get_dashboard_data(self) -> MonitoringResponse:
        def build() -> Dict[str, Any]:
            health = self.collector.get_health_score()
            snapshot = self.collector.get_current_snapshot()
            alerts = self.collector.get_active_alerts()
            snapshots = self.collector.get_history(DEFAULT_WINDOW_MS)["snapshots"]

            return {
                "healthScore": health,
                "realTimeMetrics": {
                    "requestsPerSecond": snapshot["application"]["requestsPerSecond"],
                    "averageResponseTime": snapshot["application"]["averageResponseTime"],
                    "errorRate": snapshot["application"]["errorRate"],
                    "activeOperations": snapshot["system"]["activeOperations"],
                },
                "services": snapshot["services"],
                "alerts": [
                    {
                        "id": alert.id,
                        "severity": alert.severity.value,
                        "title": alert.title,
                        "message": alert.message,
                        "timestamp": alert.timestamp,
                        "resolved": alert.resolved,
                    }
                    for alert in alerts
                ],
                "performance": {
                    "responseTimeChart": time_series(snapshots, "responseTime"),
                    "errorRateChart": time_series(snapshots, "errorRate"),
                    "throughputChart": time_series(snapshots, "throughput"),
                },
            }

        return self._envelope("dashboard", build)

    def get_health_status(self) -> MonitoringResponse:
        def build() -> Dict[str, Any]:
            health = self.collector.get_health_score()
            return {
                "application": health,
                "overall": {
                    "status": health_status(health["overall"]),
                    "score": health["overall"],
                },
            }

        return self._envelope("health", build)

    def get_analytics(self, duration_ms: int = DEFAULT_WINDOW_MS) -> MonitoringResponse:
        return self._envelope("analytics", lambda: self.collector.get_analytics(duration_ms))

    def get_alerts(self, include_resolved: bool = False) -> MonitoringResponse:
        def build() -> Dict[str, Any]:
            if include_resolved:
                alerts = self.collector.get_alert_history()
            else:
                alerts = self.collector.get_active_alerts()
            return {"alerts": [alert.to_dict() for alert in alerts]}

        return self._envelope("alerts", build)

    def resolve_alert(self, alert_id: str) -> MonitoringResponse:
        return self._envelope("resolve alert", lambda: self.collector.resolve_alert(alert_id))

    def get_system_metrics(self) -> MonitoringResponse:
        def build() -> Dict[str, Any]:
            snapshot = self.collector.get_current_snapshot()
            return {
                "system": snapshot["system"],
                "application": snapshot["application"],
                "services": snapshot["services"],
            }

        return self._envelope("system metrics", build)

    def get_performance_history(self, duration_ms: int = DEFAULT_WINDOW_MS) -> MonitoringResponse:
        def build() -> Dict[str, Any]:
            history = self.collector.get_history(duration_ms)
            end = self.collector.clock()
            return {
                "samples": len(history["samples"]),
                "snapshots": len(history["snapshots"]),
                "metrics": len(history["metrics"]),
                "timeRange": {"start": end - duration_ms, "end": end},
                "data": {
                    "responseTimeChart": time_series(history["snapshots"], "responseTime"),
                    "errorRateChart": time_series(history["snapshots"], "errorRate"),
                    "throughputChart": time_series(history["snapshots"], "throughput"),
                    "samples": [s.to_dict() for s in history["samples"][-100:]],
                },
            }

        return self._envelope("history", build)

    def record_metric(
        self,
        name: str,
        metric_type: MetricType,
        value: float,
        unit: str,
        tags: Optional[Dict[str, str]] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> MonitoringResponse:
        def build() -> bool:
            self.collector.record_metric(name, metric_type, value, unit, tags, metadata)
            return True

        return self._envelope("record metric", build)
