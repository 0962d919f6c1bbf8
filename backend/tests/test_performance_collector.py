"""
Unit Tests for the Performance Collector

Tests cover:
- Timed samples and custom metrics
- Analytics (rates, percentiles, trends, top errors)
- Health score components
- Alert rules, cooldowns and resolution
- Bounded retention
"""

import pytest

from app.models.schemas import AlertSeverity, MetricType
from app.services.performance_collector import PerformanceCollector, PerformanceSample


@pytest.fixture
def collector(clock):
    return PerformanceCollector(clock=clock)


def _record(collector, clock, duration, success=True, error_type=None, operation="extract_pdf", service="pdf"):
    finish = collector.start_timer(operation, {"service": service})
    clock.advance(duration)
    finish(success=success, error_type=error_type)


class TestRecording:

    def test_timer_records_duration(self, collector, clock):
        _record(collector, clock, 250)

        samples = collector.get_history()["samples"]
        assert len(samples) == 1
        assert samples[0].duration == 250
        assert samples[0].operation_name == "extract_pdf"
        assert samples[0].tags == {"service": "pdf"}

    def test_record_metric(self, collector):
        metric = collector.record_metric("quiz_time", MetricType.TIMER, 120, "ms", {"service": "quiz"})

        assert metric.id.startswith("quiz_time[service=quiz]_")
        assert collector.get_history()["metrics"] == [metric]

    def test_sample_retention(self, clock):
        collector = PerformanceCollector(max_samples=10, clock=clock)
        for _ in range(11):
            _record(collector, clock, 1)

        assert len(collector.get_history()["samples"]) == 9

    def test_metric_retention_drops_oldest(self, clock):
        collector = PerformanceCollector(max_samples=10, clock=clock)
        for value in range(11):
            clock.advance(1)
            collector.record_metric("m", MetricType.GAUGE, value, "count")

        values = sorted(m.value for m in collector.get_history()["metrics"])
        assert values == list(range(1, 11))


class TestAnalytics:

    def test_empty(self, collector):
        analytics = collector.get_analytics()

        assert analytics["overview"]["totalOperations"] == 0
        assert analytics["overview"]["successRate"] == 1
        assert analytics["recommendations"] == ["No data available - start generating metrics"]

    def test_overview(self, collector, clock):
        for duration in range(1, 101):
            _record(collector, clock, duration, success=duration > 10, error_type="Unknown")

        overview = collector.get_analytics()["overview"]
        assert overview["totalOperations"] == 100
        assert overview["successRate"] == pytest.approx(0.9)
        assert overview["errorRate"] == pytest.approx(0.1)
        assert overview["averageResponseTime"] == pytest.approx(50.5)
        assert overview["p95ResponseTime"] == 96
        assert overview["p99ResponseTime"] == 100

    def test_window_excludes_old_samples(self, collector, clock):
        _record(collector, clock, 10)
        clock.advance(2 * 3600000)
        _record(collector, clock, 20)

        assert collector.get_analytics()["overview"]["totalOperations"] == 1

    def test_top_errors_ranked(self, collector, clock):
        for error_type in ["Corrupted", "Unknown", "Unknown", "UpstreamUnavailable", "Unknown"]:
            _record(collector, clock, 5, success=False, error_type=error_type)

        top = collector.get_analytics()["topErrors"]
        assert top[0] == {"type": "Unknown", "count": 3, "percentage": pytest.approx(0.6)}
        assert {entry["type"] for entry in top} == {"Unknown", "Corrupted", "UpstreamUnavailable"}

    def test_slowest_operations(self, collector, clock):
        _record(collector, clock, 100, operation="extract_pdf")
        _record(collector, clock, 900, operation="extract_image")

        slowest = collector.get_analytics()["slowestOperations"]
        assert [op["name"] for op in slowest] == ["extract_image", "extract_pdf"]

    def test_degrading_response_trend(self, collector, clock):
        for duration in [100, 100, 100, 400, 400, 400]:
            _record(collector, clock, duration)

        analytics = collector.get_analytics()
        assert analytics["trends"]["responseTimeTrend"] == "degrading"
        assert "Response times are trending worse - investigate recent changes" in analytics["recommendations"]

    def test_healthy_recommendation(self, collector, clock):
        for _ in range(4):
            _record(collector, clock, 100)

        assert collector.get_analytics()["recommendations"] == [
            "System is performing well - continue monitoring"
        ]


class TestHealthScore:

    def test_perfect_without_data(self, collector):
        health = collector.get_health_score()

        assert health["overall"] == 100
        assert health["factors"] == []

    def test_slow_responses_reduce_performance(self, collector, clock):
        _record(collector, clock, 9000)

        health = collector.get_health_score()
        assert health["breakdown"]["performance"] == 80
        assert health["overall"] == 95
        assert health["factors"][0]["name"] == "Slow Response Time"

    def test_failures_reduce_score(self, collector, clock):
        _record(collector, clock, 10, success=False)

        health = collector.get_health_score()
        names = {factor["name"] for factor in health["factors"]}
        assert {"Low Success Rate", "High Error Rate", "Critical Alerts", "High Priority Alerts"} <= names
        assert health["breakdown"]["availability"] == 77
        assert health["overall"] < 80


class TestAlerts:

    def test_default_rules(self, collector):
        conditions = [rule.condition for rule in collector.get_alert_rules()]
        assert conditions == ["errorRate > 0.05", "averageResponseTime > 10000", "successRate < 0.5"]

    def test_failure_triggers_alerts(self, collector, clock):
        _record(collector, clock, 10, success=False)

        severities = sorted(alert.severity.value for alert in collector.get_active_alerts())
        assert severities == ["critical", "high"]

    def test_cooldown_suppresses_repeats(self, collector, clock):
        _record(collector, clock, 10, success=False)
        _record(collector, clock, 10, success=False)
        assert len(collector.get_active_alerts()) == 2

        clock.advance(60001)
        _record(collector, clock, 10, success=False)

        alerts = collector.get_active_alerts()
        assert len(alerts) == 3
        assert alerts[-1].severity == AlertSeverity.CRITICAL

    def test_resolve_alert(self, collector, clock):
        _record(collector, clock, 10, success=False)
        alert = collector.get_active_alerts()[0]

        assert collector.resolve_alert(alert.id) is True
        assert collector.resolve_alert(alert.id) is False
        assert alert.id not in [a.id for a in collector.get_active_alerts()]
        assert alert.id in [a.id for a in collector.get_alert_history()]

    def test_resolve_unknown_alert(self, collector):
        assert collector.resolve_alert("alert_missing") is False

    def test_custom_rule(self, collector, clock):
        collector.add_alert_rule("Slowish", "averageResponseTime", ">=", 500, AlertSeverity.LOW, 1000)
        _record(collector, clock, 500)

        assert [alert.title for alert in collector.get_active_alerts()] == ["Slowish"]

    def test_invalid_comparison(self, collector):
        with pytest.raises(ValueError):
            collector.add_alert_rule("Bad", "errorRate", "!=", 1, AlertSeverity.LOW, 1000)


class TestSnapshot:

    def test_snapshot_groups_services(self, collector, clock):
        _record(collector, clock, 100, service="pdf")
        _record(collector, clock, 300, service="ocr", success=False)

        snapshot = collector.get_current_snapshot()

        assert snapshot["timestamp"] == clock.now
        assert snapshot["system"]["activeOperations"] == 2
        assert snapshot["services"]["pdf"]["availability"] == 1
        assert snapshot["services"]["ocr"]["errorCount"] == 1
        assert snapshot["application"]["successRate"] == pytest.approx(0.5)
        assert collector.get_history()["snapshots"] == [snapshot]

    def test_snapshot_without_samples(self, collector):
        snapshot = collector.get_current_snapshot()
        assert snapshot["application"]["requestsPerSecond"] == 0


def test_sample_to_dict_uses_camel_case():
    sample = PerformanceSample("extract_pdf", 1000, 1250, False, "Corrupted")

    assert sample.to_dict()["duration"] == 250
    assert sample.to_dict()["errorType"] == "Corrupted"
    assert "operationName" in sample.to_dict()
