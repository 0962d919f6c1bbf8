"""
Performance Collector

In-memory collection of operation timings, custom metrics, snapshots and
alerts for this service, plus the analytics built on top of them.

Responsibilities:
- Record custom metrics and timed operation samples
- Evaluate alert rules (with per-rule cooldowns) after every sample
- Compute analytics: rates, percentiles, trends, top errors, recommendations
- Compute a 0-100 health score with breakdown and contributing factors
- Build point-in-time snapshots for the dashboard charts

Retention is bounded: samples, snapshots and alerts are trimmed to 90% of
their ceiling once exceeded. All public methods are thread-safe.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional
import logging
import operator
import threading
import time
import uuid

import psutil

from app.models.schemas import AlertSeverity, MetricType

logger = logging.getLogger(__name__)


DEFAULT_WINDOW_MS = 3600000  # 1 hour
ALERT_WINDOW_MS = 300000  # 5 minutes
SNAPSHOT_WINDOW_MS = 60000  # 1 minute
ACTIVE_OPERATION_WINDOW_MS = 30000
ALERT_HISTORY_MS = 86400000  # 24 hours

COMPARISONS = {">": operator.gt, "<": operator.lt, ">=": operator.ge, "<=": operator.le}


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class PerformanceMetric:
    """A custom metric data point"""
    id: str
    name: str
    type: MetricType
    value: float
    unit: str
    timestamp: int
    tags: Dict[str, str] = field(default_factory=dict)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type.value,
            "value": self.value,
            "unit": self.unit,
            "timestamp": self.timestamp,
            "tags": self.tags,
            "metadata": self.metadata,
        }


@dataclass
class PerformanceSample:
    """One timed operation"""
    operation_name: str
    start_time: int
    end_time: int
    success: bool
    error_type: Optional[str] = None
    tags: Dict[str, str] = field(default_factory=dict)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def duration(self) -> int:
        return self.end_time - self.start_time

    def to_dict(self) -> Dict[str, Any]:
        return {
            "operationName": self.operation_name,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "duration": self.duration,
            "success": self.success,
            "errorType": self.error_type,
            "tags": self.tags,
            "metadata": self.metadata,
        }


@dataclass
class AlertRule:
    """
    Threshold rule over the recent-sample statistics

    `metric` is one of errorRate, averageResponseTime, successRate.
    """
    id: str
    name: str
    metric: str
    comparison: str
    threshold: float
    severity: AlertSeverity
    cooldown_ms: int
    enabled: bool = True
    last_triggered: Optional[int] = None

    @property
    def condition(self) -> str:
        return f"{self.metric} {self.comparison} {self.threshold:g}"

    def matches(self, stats: Dict[str, float]) -> bool:
        return COMPARISONS[self.comparison](stats[self.metric], self.threshold)


@dataclass
class Alert:
    id: str
    rule_id: str
    severity: AlertSeverity
    title: str
    message: str
    timestamp: int
    resolved: bool = False
    resolved_at: Optional[int] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "ruleId": self.rule_id,
            "severity": self.severity.value,
            "title": self.title,
            "message": self.message,
            "timestamp": self.timestamp,
            "resolved": self.resolved,
            "resolvedAt": self.resolved_at,
            "metadata": self.metadata,
        }


def _mean(values: List[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def _rule_message(metric: str, value: float) -> str:
    if metric == "averageResponseTime":
        return f"Average response time is {value:.0f}ms"
    label = "Error rate" if metric == "errorRate" else "Success rate"
    return f"{label} is {value * 100:.2f}%"


def empty_analytics() -> Dict[str, Any]:
    return {
        "overview": {
            "totalOperations": 0,
            "successRate": 1,
            "averageResponseTime": 0,
            "p95ResponseTime": 0,
            "p99ResponseTime": 0,
            "errorRate": 0,
        },
        "trends": {
            "responseTimeTrend": "stable",
            "errorRateTrend": "stable",
            "throughputTrend": "stable",
        },
        "topErrors": [],
        "slowestOperations": [],
        "recommendations": ["No data available - start generating metrics"],
    }


class PerformanceCollector:
    """
    Collects samples and metrics and derives health and analytics from them

    Example:
        >>> collector = PerformanceCollector()
        >>> finish = collector.start_timer("extract_pdf", {"service": "pdf"})
        >>> finish(success=True)
        >>> collector.get_health_score()["overall"]
        100
    """

    def __init__(
        self,
        max_samples: int = 10000,
        max_snapshots: int = 1000,
        max_alerts: int = 500,
        clock: Optional[Callable[[], int]] = None
    ):
        """
        Initialize collector with the default alert rules

        Args:
            max_samples: Retention ceiling for samples and custom metrics
            max_snapshots: Retention ceiling for snapshots
            max_alerts: Retention ceiling for alerts
            clock: Millisecond clock, injectable for tests
        """
        self.max_samples = max_samples
        self.max_snapshots = max_snapshots
        self.max_alerts = max_alerts
        self.clock = clock or now_ms

        self._lock = threading.RLock()
        self._metrics: Dict[str, PerformanceMetric] = {}
        self._samples: List[PerformanceSample] = []
        self._snapshots: List[Dict[str, Any]] = []
        self._alerts: List[Alert] = []
        self._rules: List[AlertRule] = []

        self._initialize_default_rules()
        logger.info(
            f"PerformanceCollector initialized (samples={max_samples}, "
            f"snapshots={max_snapshots}, alerts={max_alerts})"
        )

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def record_metric(
        self,
        name: str,
        metric_type: MetricType,
        value: float,
        unit: str,
        tags: Optional[Dict[str, str]] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> PerformanceMetric:
        """Store a custom metric, dropping the oldest 10% when over the ceiling"""
        tags = tags or {}
        timestamp = self.clock()
        tag_string = ",".join(f"{key}={tags[key]}" for key in sorted(tags))
        metric_id = f"{name}[{tag_string}]_{timestamp}" if tag_string else f"{name}_{timestamp}"

        metric = PerformanceMetric(
            id=f"{metric_id}_{uuid.uuid4().hex[:8]}",
            name=name,
            type=MetricType(metric_type),
            value=value,
            unit=unit,
            timestamp=timestamp,
            tags=tags,
            metadata=metadata or {}
        )

        with self._lock:
            self._metrics[metric.id] = metric
            if len(self._metrics) > self.max_samples:
                oldest = sorted(self._metrics.values(), key=lambda m: m.timestamp)
                for stale in oldest[:int(self.max_samples * 0.1)]:
                    del self._metrics[stale.id]

        logger.debug(f"Recorded metric {name}={value}{unit}")
        return metric

    def record_sample(self, sample: PerformanceSample) -> None:
        """Store a sample and evaluate the alert rules"""
        with self._lock:
            self._samples.append(sample)
            if len(self._samples) > self.max_samples:
                self._samples = self._samples[-int(self.max_samples * 0.9):]
            self._check_alert_rules()

    def start_timer(
        self,
        operation_name: str,
        tags: Optional[Dict[str, str]] = None
    ) -> Callable[..., None]:
        """
        Start timing an operation

        Returns:
            finish(success=True, error_type=None, metadata=None) which records
            the sample when called
        """
        start_time = self.clock()
        tags = dict(tags or {})

        def finish(
            success: bool = True,
            error_type: Optional[str] = None,
            metadata: Optional[Dict[str, Any]] = None
        ) -> None:
            self.record_sample(PerformanceSample(
                operation_name=operation_name,
                start_time=start_time,
                end_time=self.clock(),
                success=success,
                error_type=error_type,
                tags=tags,
                metadata=metadata or {}
            ))

        return finish

    # ------------------------------------------------------------------
    # Alerts
    # ------------------------------------------------------------------

    def add_alert_rule(
        self,
        name: str,
        metric: str,
        comparison: str,
        threshold: float,
        severity: AlertSeverity,
        cooldown_ms: int,
        enabled: bool = True
    ) -> str:
        if comparison not in COMPARISONS:
            raise ValueError(f"Unsupported comparison: {comparison}")

        rule_id = f"rule_{'_'.join(name.lower().split())}_{self.clock()}"
        with self._lock:
            self._rules.append(AlertRule(
                id=rule_id,
                name=name,
                metric=metric,
                comparison=comparison,
                threshold=threshold,
                severity=AlertSeverity(severity),
                cooldown_ms=cooldown_ms,
                enabled=enabled
            ))
        return rule_id

    def get_alert_rules(self) -> List[AlertRule]:
        with self._lock:
            return list(self._rules)

    def get_active_alerts(self) -> List[Alert]:
        with self._lock:
            return [alert for alert in self._alerts if not alert.resolved]

    def get_alert_history(self, duration_ms: int = ALERT_HISTORY_MS) -> List[Alert]:
        cutoff = self.clock() - duration_ms
        with self._lock:
            return [alert for alert in self._alerts if alert.timestamp > cutoff]

    def resolve_alert(self, alert_id: str) -> bool:
        """Mark an active alert resolved; False when unknown or already resolved"""
        with self._lock:
            for alert in self._alerts:
                if alert.id == alert_id and not alert.resolved:
                    alert.resolved = True
                    alert.resolved_at = self.clock()
                    logger.info(f"Alert resolved: {alert.title} ({alert_id})")
                    return True
        return False

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_history(self, duration_ms: int = DEFAULT_WINDOW_MS) -> Dict[str, List[Any]]:
        cutoff = self.clock() - duration_ms
        with self._lock:
            return {
                "samples": [s for s in self._samples if s.end_time > cutoff],
                "snapshots": [s for s in self._snapshots if s["timestamp"] > cutoff],
                "metrics": [m for m in self._metrics.values() if m.timestamp > cutoff],
            }

    def get_analytics(self, duration_ms: int = DEFAULT_WINDOW_MS) -> Dict[str, Any]:
        """
        Analytics over samples that ended within the window

        Returns:
            Dictionary with overview, trends, topErrors, slowestOperations
            and recommendations
        """
        cutoff = self.clock() - duration_ms
        with self._lock:
            samples = [s for s in self._samples if s.end_time > cutoff]

        if not samples:
            return empty_analytics()

        durations = sorted(s.duration for s in samples)
        failures = [s for s in samples if not s.success]
        total = len(samples)

        overview = {
            "totalOperations": total,
            "successRate": (total - len(failures)) / total,
            "averageResponseTime": _mean(durations),
            "p95ResponseTime": durations[min(int(total * 0.95), total - 1)],
            "p99ResponseTime": durations[min(int(total * 0.99), total - 1)],
            "errorRate": len(failures) / total,
        }
        trends = self._calculate_trends(samples)

        return {
            "overview": overview,
            "trends": trends,
            "topErrors": self._top_errors(failures),
            "slowestOperations": self._slowest_operations(samples),
            "recommendations": self._recommendations(overview, trends),
        }

    def get_health_score(self) -> Dict[str, Any]:
        """
        Health score from the last hour of analytics and the active alerts

        Four components start at 100 and lose points:
        - performance: average response time over 5s
        - reliability: success rate under 99%
        - errors: error rate over 1%
        - availability: 15 per critical and 8 per high active alert

        Returns:
            Dictionary with overall (0-100), breakdown and factors
        """
        overview = self.get_analytics()["overview"]
        active_alerts = self.get_active_alerts()

        performance = reliability = availability = errors = 100.0
        factors = []

        average = overview["averageResponseTime"]
        if average > 5000:
            impact = min(30.0, (average - 5000) / 1000 * 5)
            performance -= impact
            factors.append({
                "name": "Slow Response Time",
                "impact": impact,
                "description": f"Average response time is {average:.0f}ms",
            })

        success_rate = overview["successRate"]
        if success_rate < 0.99:
            impact = (0.99 - success_rate) * 100
            reliability -= impact
            factors.append({
                "name": "Low Success Rate",
                "impact": impact,
                "description": f"Success rate is {success_rate * 100:.2f}%",
            })

        error_rate = overview["errorRate"]
        if error_rate > 0.01:
            impact = min(40.0, error_rate * 1000)
            errors -= impact
            factors.append({
                "name": "High Error Rate",
                "impact": impact,
                "description": f"Error rate is {error_rate * 100:.2f}%",
            })

        critical = sum(1 for a in active_alerts if a.severity == AlertSeverity.CRITICAL)
        high = sum(1 for a in active_alerts if a.severity == AlertSeverity.HIGH)
        if critical:
            availability -= critical * 15
            factors.append({
                "name": "Critical Alerts",
                "impact": critical * 15,
                "description": f"{critical} critical alerts active",
            })
        if high:
            availability -= high * 8
            factors.append({
                "name": "High Priority Alerts",
                "impact": high * 8,
                "description": f"{high} high priority alerts active",
            })

        overall = max(0.0, min(100.0, (performance + reliability + availability + errors) / 4))

        return {
            "overall": round(overall),
            "breakdown": {
                "performance": max(0, round(performance)),
                "reliability": max(0, round(reliability)),
                "availability": max(0, round(availability)),
                "errors": max(0, round(errors)),
            },
            "factors": factors,
        }

    def get_current_snapshot(self) -> Dict[str, Any]:
        """Build a snapshot of the last minute, store it and return it"""
        now = self.clock()
        with self._lock:
            recent = [s for s in self._samples if now - s.end_time < SNAPSHOT_WINDOW_MS]
            active = sum(1 for s in self._samples if now - s.start_time < ACTIVE_OPERATION_WINDOW_MS)

        snapshot = {
            "timestamp": now,
            "system": self._system_metrics(active),
            "application": self._application_metrics(recent),
            "services": self._service_metrics(recent),
        }

        with self._lock:
            self._snapshots.append(snapshot)
            if len(self._snapshots) > self.max_snapshots:
                self._snapshots = self._snapshots[-int(self.max_snapshots * 0.9):]

        return snapshot

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _initialize_default_rules(self) -> None:
        self.add_alert_rule("High Error Rate", "errorRate", ">", 0.05, AlertSeverity.HIGH, 300000)
        self.add_alert_rule("Slow Response Time", "averageResponseTime", ">", 10000, AlertSeverity.MEDIUM, 300000)
        self.add_alert_rule("Critical System Failure", "successRate", "<", 0.5, AlertSeverity.CRITICAL, 60000)

    def _check_alert_rules(self) -> None:
        # Caller holds the lock
        now = self.clock()
        recent = [s for s in self._samples if now - s.end_time < ALERT_WINDOW_MS]
        if not recent:
            return

        successes = sum(1 for s in recent if s.success)
        stats = {
            "errorRate": (len(recent) - successes) / len(recent),
            "averageResponseTime": _mean([s.duration for s in recent]),
            "successRate": successes / len(recent),
        }

        for rule in self._rules:
            if not rule.enabled:
                continue
            if rule.last_triggered is not None and now - rule.last_triggered < rule.cooldown_ms:
                continue
            if rule.matches(stats):
                self._trigger_alert(rule, _rule_message(rule.metric, stats[rule.metric]), now)

    def _trigger_alert(self, rule: AlertRule, message: str, now: int) -> None:
        alert = Alert(
            id=f"alert_{now}_{uuid.uuid4().hex[:10]}",
            rule_id=rule.id,
            severity=rule.severity,
            title=rule.name,
            message=message,
            timestamp=now,
            metadata={"rule": rule.name, "condition": rule.condition}
        )
        self._alerts.append(alert)
        rule.last_triggered = now

        logger.warning(f"ALERT [{rule.severity.value.upper()}]: {rule.name} - {message}")

        if len(self._alerts) > self.max_alerts:
            self._alerts = self._alerts[-int(self.max_alerts * 0.9):]

    @staticmethod
    def _calculate_trends(samples: List[PerformanceSample]) -> Dict[str, str]:
        midpoint = len(samples) // 2
        first, second = samples[:midpoint], samples[midpoint:]
        if not first:
            return dict(empty_analytics()["trends"])

        first_time = _mean([s.duration for s in first])
        second_time = _mean([s.duration for s in second])
        first_errors = sum(1 for s in first if not s.success) / len(first)
        second_errors = sum(1 for s in second if not s.success) / len(second)

        if second_time < first_time * 0.95:
            response_trend = "improving"
        elif second_time > first_time * 1.05:
            response_trend = "degrading"
        else:
            response_trend = "stable"

        if second_errors < first_errors * 0.9:
            error_trend = "improving"
        elif second_errors > first_errors * 1.1:
            error_trend = "degrading"
        else:
            error_trend = "stable"

        if len(second) > len(first) * 1.1:
            throughput_trend = "increasing"
        elif len(second) < len(first) * 0.9:
            throughput_trend = "decreasing"
        else:
            throughput_trend = "stable"

        return {
            "responseTimeTrend": response_trend,
            "errorRateTrend": error_trend,
            "throughputTrend": throughput_trend,
        }

    @staticmethod
    def _top_errors(failures: List[PerformanceSample]) -> List[Dict[str, Any]]:
        counts: Dict[str, int] = {}
        for sample in failures:
            error_type = sample.error_type or "unknown"
            counts[error_type] = counts.get(error_type, 0) + 1

        ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)[:10]
        return [
            {"type": error_type, "count": count, "percentage": count / len(failures)}
            for error_type, count in ranked
        ]

    @staticmethod
    def _slowest_operations(samples: List[PerformanceSample]) -> List[Dict[str, Any]]:
        stats: Dict[str, List[int]] = {}
        for sample in samples:
            stats.setdefault(sample.operation_name, []).append(sample.duration)

        operations = [
            {"name": name, "averageTime": _mean(durations), "count": len(durations)}
            for name, durations in stats.items()
        ]
        operations.sort(key=lambda op: op["averageTime"], reverse=True)
        return operations[:10]

    @staticmethod
    def _recommendations(overview: Dict[str, Any], trends: Dict[str, str]) -> List[str]:
        recommendations = []

        if overview["errorRate"] > 0.02:
            recommendations.append("Consider implementing additional error handling and retry logic")
        if overview["averageResponseTime"] > 5000:
            recommendations.append("Optimize slow operations and consider caching frequently accessed data")
        if trends["responseTimeTrend"] == "degrading":
            recommendations.append("Response times are trending worse - investigate recent changes")
        if trends["errorRateTrend"] == "degrading":
            recommendations.append("Error rates are increasing - check for system issues or recent deployments")
        if overview["p99ResponseTime"] > overview["averageResponseTime"] * 3:
            recommendations.append("High P99 response times indicate outliers - investigate worst-case scenarios")

        if not recommendations:
            recommendations.append("System is performing well - continue monitoring")
        return recommendations

    @staticmethod
    def _system_metrics(active_operations: int) -> Dict[str, Any]:
        metrics: Dict[str, Any] = {"activeOperations": active_operations}
        try:
            metrics["cpu"] = psutil.cpu_percent(interval=None)
            metrics["memory"] = psutil.virtual_memory().percent
            metrics["threads"] = psutil.Process().num_threads()
        except (OSError, psutil.Error) as e:
            logger.debug(f"Failed to read system metrics: {e}")
        return metrics

    @staticmethod
    def _application_metrics(samples: List[PerformanceSample]) -> Dict[str, float]:
        if not samples:
            return {"requestsPerSecond": 0, "averageResponseTime": 0, "errorRate": 0, "successRate": 1}

        successes = sum(1 for s in samples if s.success)
        return {
            "requestsPerSecond": len(samples) / (SNAPSHOT_WINDOW_MS / 1000),
            "averageResponseTime": _mean([s.duration for s in samples]),
            "errorRate": (len(samples) - successes) / len(samples),
            "successRate": successes / len(samples),
        }

    @staticmethod
    def _service_metrics(samples: List[PerformanceSample]) -> Dict[str, Dict[str, float]]:
        grouped: Dict[str, List[PerformanceSample]] = {}
        for sample in samples:
            grouped.setdefault(sample.tags.get("service", "unknown"), []).append(sample)

        services = {}
        for name, service_samples in grouped.items():
            successes = sum(1 for s in service_samples if s.success)
            services[name] = {
                "availability": successes / len(service_samples),
                "responseTime": _mean([s.duration for s in service_samples]),
                "errorCount": len(service_samples) - successes,
                "throughput": len(service_samples) / 60,
            }
        return services
