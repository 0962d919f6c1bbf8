"""
Performance Optimizer

Reads the collector's analytics, identifies bottlenecks in the extraction
service and proposes optimisation strategies ranked by impact and effort.

Bottleneck thresholds:
- slow_operations: average response time > 1000ms (high above 2000ms)
- low_success_rate: success rate < 0.9 (high below 0.7)
- expensive_operations: samples slower than 5000ms (high above 5 of them)
- high_error_rate: error rate > 2% (high above 5%)
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional
import logging

from app.services.performance_collector import DEFAULT_WINDOW_MS, PerformanceCollector

logger = logging.getLogger(__name__)


SLOW_OPERATION_MS = 5000
IMPACT_ORDER = {"high": 3, "medium": 2, "low": 1}
EFFORT_ORDER = {"low": 3, "medium": 2, "high": 1}
IMPACT_WEIGHTS = {"high": 1.0, "medium": 0.7, "low": 0.4}
MAX_OVERALL_IMPROVEMENT = 80


@dataclass
class OptimizationAction:
    type: str
    description: str
    implementation: str
    rollback: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "description": self.description,
            "implementation": self.implementation,
            "rollback": self.rollback,
        }


@dataclass
class OptimizationStrategy:
    id: str
    name: str
    description: str
    impact: str
    effort: str
    category: str
    estimated_improvement: float
    actions: List[OptimizationAction] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "impact": self.impact,
            "effort": self.effort,
            "category": self.category,
            "estimatedImprovement": self.estimated_improvement,
            "actions": [action.to_dict() for action in self.actions],
        }


def extraction_performance_strategy() -> OptimizationStrategy:
    return OptimizationStrategy(
        id="extraction_performance_optimization",
        name="Extraction Performance Optimization",
        description="Reduce average extraction time across file types",
        impact="high",
        effort="medium",
        category="extraction",
        estimated_improvement=40,
        actions=[
            OptimizationAction(
                type="configuration",
                description="Lower OCR max_tokens for small images",
                implementation="Reduce OCR_MAX_TOKENS for images under 1MB",
                rollback="Restore OCR_MAX_TOKENS to 4000"
            ),
            OptimizationAction(
                type="code_refactor",
                description="Profile the slowest operations",
                implementation="Review slowestOperations in analytics and profile the top entries",
            ),
        ]
    )


def validation_strategy() -> OptimizationStrategy:
    return OptimizationStrategy(
        id="input_validation_optimization",
        name="Upload Validation Optimization",
        description="Reject unusable uploads earlier to raise the success rate",
        impact="medium",
        effort="low",
        category="validation",
        estimated_improvement=25,
        actions=[
            OptimizationAction(
                type="code_refactor",
                description="Surface accepted file types in the upload form",
                implementation="Show accepted extensions and size limits before upload",
                rollback="Remove upload hints"
            ),
            OptimizationAction(
                type="configuration",
                description="Review per-category size ceilings",
                implementation="Tune MAX_*_SIZE_MB against observed TooLarge rejections",
                rollback="Restore default size ceilings"
            ),
        ]
    )


def expensive_operation_strategy() -> OptimizationStrategy:
    return OptimizationStrategy(
        id="expensive_operation_optimization",
        name="Expensive Operation Optimization",
        description="Identify and optimize operations exceeding the slow threshold",
        impact="high",
        effort="high",
        category="extraction",
        estimated_improvement=50,
        actions=[
            OptimizationAction(
                type="code_refactor",
                description="Route scanned PDFs straight to OCR",
                implementation="Detect image-only PDFs and skip the text-layer strategies",
                rollback="Restore the full PDF strategy chain"
            ),
            OptimizationAction(
                type="configuration",
                description="Tighten the OCR transport timeout",
                implementation="Lower OCR_TIMEOUT so stalled upstream calls fail fast",
                rollback="Restore OCR_TIMEOUT to 120"
            ),
        ]
    )


def error_handling_strategy() -> OptimizationStrategy:
    return OptimizationStrategy(
        id="error_handling_optimization",
        name="Error Handling Optimization",
        description="Improve error handling and reduce error rates",
        impact="medium",
        effort="medium",
        category="general",
        estimated_improvement=30,
        actions=[
            OptimizationAction(
                type="code_refactor",
                description="Review the most frequent error kinds",
                implementation="Inspect topErrors in analytics and address the leading kind",
            ),
            OptimizationAction(
                type="configuration",
                description="Verify OCR credentials and upstream availability",
                implementation="Check OPENROUTER_API_KEY and the OpenRouter status page",
            ),
        ]
    )


def generate_priority_order(strategies: List[OptimizationStrategy]) -> List[str]:
    """Strategy ids by impact (high first), then effort (low first)"""
    ranked = sorted(
        strategies,
        key=lambda s: (-IMPACT_ORDER[s.impact], -EFFORT_ORDER[s.effort])
    )
    return [strategy.id for strategy in ranked]


def calculate_overall_improvement(strategies: List[OptimizationStrategy]) -> float:
    """Impact-weighted mean of estimated improvements, capped at 80"""
    if not strategies:
        return 0
    total_weight = sum(IMPACT_WEIGHTS[s.impact] for s in strategies)
    weighted = sum(s.estimated_improvement * IMPACT_WEIGHTS[s.impact] for s in strategies)
    return min(weighted / total_weight, MAX_OVERALL_IMPROVEMENT)


class PerformanceOptimizer:
    """
    Bottleneck analysis and strategy application

    Action execution is delegated to handlers keyed by action type. The
    default handler logs the action so operators can follow it up.

    Example:
        >>> optimizer = PerformanceOptimizer(collector)
        >>> analysis = optimizer.analyze_performance()
        >>> optimizer.apply_optimization(analysis["priorityOrder"][0])
    """

    def __init__(
        self,
        collector: PerformanceCollector,
        action_handlers: Optional[Dict[str, Callable[[OptimizationAction], None]]] = None,
        max_history: int = 100
    ):
        self.collector = collector
        self.action_handlers = action_handlers or {}
        self.max_history = max_history
        self.optimization_history: List[Dict[str, Any]] = []

    def _current_metrics(self) -> Dict[str, float]:
        analytics = self.collector.get_analytics(DEFAULT_WINDOW_MS)
        samples = self.collector.get_history(DEFAULT_WINDOW_MS)["samples"]
        overview = analytics["overview"]
        return {
            "averageResponseTime": overview["averageResponseTime"],
            "successRate": overview["successRate"],
            "errorRate": overview["errorRate"],
            "slowOperationCount": sum(1 for s in samples if s.duration > SLOW_OPERATION_MS),
        }

    def _strategies_and_bottlenecks(self) -> tuple:
        metrics = self._current_metrics()
        bottlenecks = []
        strategies = []

        average = metrics["averageResponseTime"]
        if average > 1000:
            bottlenecks.append({
                "type": "slow_operations",
                "severity": "high" if average > 2000 else "medium",
                "description": f"Average operation response time is {average:.0f}ms",
                "impact": "Slower uploads, longer waits before quiz generation",
                "recommendations": [
                    "Profile the slowest extraction operations",
                    "Reduce OCR payload sizes",
                ],
            })
            strategies.append(extraction_performance_strategy())

        success_rate = metrics["successRate"]
        if success_rate < 0.9:
            bottlenecks.append({
                "type": "low_success_rate",
                "severity": "high" if success_rate < 0.7 else "medium",
                "description": f"Success rate is {success_rate * 100:.1f}%",
                "impact": "Users retry uploads or abandon them",
                "recommendations": [
                    "Validate uploads earlier and explain accepted formats",
                    "Review size ceilings",
                ],
            })
            strategies.append(validation_strategy())

        slow_count = metrics["slowOperationCount"]
        if slow_count > 0:
            bottlenecks.append({
                "type": "expensive_operations",
                "severity": "high" if slow_count > 5 else "medium",
                "description": f"{slow_count} operations exceeding {SLOW_OPERATION_MS}ms",
                "impact": "Response time spikes, potential client timeouts",
                "recommendations": [
                    "Identify and optimize the most expensive operations",
                    "Fail fast on stalled upstream calls",
                ],
            })
            strategies.append(expensive_operation_strategy())

        error_rate = metrics["errorRate"]
        if error_rate > 0.02:
            bottlenecks.append({
                "type": "high_error_rate",
                "severity": "high" if error_rate > 0.05 else "medium",
                "description": f"Error rate is {error_rate * 100:.2f}%",
                "impact": "Failed extractions and frustrated users",
                "recommendations": [
                    "Improve error handling",
                    "Check upstream OCR availability",
                ],
            })
            strategies.append(error_handling_strategy())

        return bottlenecks, strategies

    def analyze_performance(self) -> Dict[str, Any]:
        """
        Analyze current performance

        Returns:
            Dictionary with bottlenecks, optimizationStrategies, priorityOrder
            and estimatedOverallImprovement
        """
        bottlenecks, strategies = self._strategies_and_bottlenecks()
        logger.info(
            f"Performance analysis: {len(bottlenecks)} bottlenecks, "
            f"{len(strategies)} strategies"
        )
        return {
            "bottlenecks": bottlenecks,
            "optimizationStrategies": [s.to_dict() for s in strategies],
            "priorityOrder": generate_priority_order(strategies),
            "estimatedOverallImprovement": calculate_overall_improvement(strategies),
        }

    def apply_optimization(self, strategy_id: str) -> Dict[str, Any]:
        """
        Apply one of the currently proposed strategies

        Args:
            strategy_id: Id from the latest analysis

        Returns:
            {success, improvement, message}. Unknown or no-longer-proposed ids
            return success False with "Strategy not found".
        """
        _, strategies = self._strategies_and_bottlenecks()
        strategy = next((s for s in strategies if s.id == strategy_id), None)
        if strategy is None:
            logger.warning(f"Optimization strategy not found: {strategy_id}")
            return {"success": False, "improvement": 0, "message": "Strategy not found"}

        before = self._current_metrics()["averageResponseTime"]
        try:
            for action in strategy.actions:
                self._execute_action(action)
        except Exception as e:
            logger.error(f"Optimization application failed: {str(e)}", exc_info=True)
            self._record(strategy_id, 0, False)
            return {
                "success": False,
                "improvement": 0,
                "message": f"Failed to apply optimization: {str(e)}",
            }

        after = self._current_metrics()["averageResponseTime"]
        improvement = max(0.0, (before - after) / before * 100) if before > 0 else 0.0
        self._record(strategy_id, improvement, True)

        logger.info(f"✓ Applied {strategy.name} ({improvement:.1f}% improvement)")
        return {
            "success": True,
            "improvement": improvement,
            "message": f"Applied {strategy.name} with {improvement:.1f}% improvement",
        }

    def get_optimization_history(self) -> List[Dict[str, Any]]:
        return list(self.optimization_history)

    def _execute_action(self, action: OptimizationAction) -> None:
        handler = self.action_handlers.get(action.type)
        if handler is None:
            logger.info(f"Optimization action ({action.type}): {action.description}")
            return
        handler(action)

    def _record(self, strategy_id: str, improvement: float, success: bool) -> None:
        self.optimization_history.append({
            "strategyId": strategy_id,
            "appliedAt": self.collector.clock(),
            "improvement": improvement,
            "success": success,
        })
        if len(self.optimization_history) > self.max_history:
            self.optimization_history = self.optimization_history[-self.max_history:]
