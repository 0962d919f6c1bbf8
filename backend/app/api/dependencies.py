"""
FastAPI dependency helpers

Services are built once in the application lifespan and stored on
`app.state`. These helpers hand them to route handlers.
"""

from fastapi import HTTPException, Request

from app.services.monitoring_api import MonitoringAPI
from app.services.performance_collector import PerformanceCollector
from app.services.performance_optimizer import PerformanceOptimizer
from app.services.text_extractor import TextExtractor


def _service(request: Request, attribute: str, label: str):
    service = getattr(request.app.state, attribute, None)
    if service is None:
        raise HTTPException(
            status_code=503,
            detail=f"{label} not initialized. Application startup may have failed."
        )
    return service


def get_text_extractor(request: Request) -> TextExtractor:
    """
    Get the text extraction facade.

    Raises:
        HTTPException: If service is not initialized
    """
    return _service(request, "text_extractor", "Text extraction service")


def get_collector(request: Request) -> PerformanceCollector:
    return _service(request, "collector", "Performance collector")


def get_monitoring_api(request: Request) -> MonitoringAPI:
    return _service(request, "monitoring_api", "Monitoring service")


def get_optimizer(request: Request) -> PerformanceOptimizer:
    return _service(request, "optimizer", "Performance optimizer")
