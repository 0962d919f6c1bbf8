"""
FastAPI Application Entry Point

This module initializes and configures the FastAPI application for the study
assistant backend. It sets up middleware, CORS, and registers all API routes.

Responsibilities:
- Initialize FastAPI app with metadata
- Configure logging and CORS
- Build the extraction and monitoring services at startup
- Register API routers under /api
- Liveness endpoints

Lifecycle Management:
    STARTUP:
    1. Configure logging from settings
    2. Build the OCR client and the extraction strategies
    3. Build the text extraction facade
    4. Build the performance collector, monitoring API and optimizer
    5. Store every service on app.state for the route dependencies

    SHUTDOWN:
    - Nothing to persist; monitoring data is in memory only
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from app.api.routes import extraction
from app.routes import monitoring
from app.config.logging_config import configure_logging
from app.config.settings import Settings, settings
from app.services.document_router import FormatRouter
from app.services.monitoring_api import MonitoringAPI
from app.services.ocr_service import ImageOCRStrategy
from app.services.openrouter_client import OpenRouterClient, OpenRouterConfig
from app.services.pdf_processor import PDFExtractionChain
from app.services.performance_collector import PerformanceCollector
from app.services.performance_optimizer import PerformanceOptimizer
from app.services.text_extractor import TextExtractor

logger = logging.getLogger(__name__)


def build_services(app: FastAPI, config: Settings) -> None:
    """
    Construct every service and attach it to app.state.

    Args:
        app: Application whose state receives the services
        config: Settings to build from
    """
    logger.info("1/3 Initializing extraction strategies...")
    ocr_client = OpenRouterClient(OpenRouterConfig(
        api_key=config.OPENROUTER_API_KEY,
        base_url=config.OPENROUTER_BASE_URL,
        model_name=config.OCR_MODEL,
        timeout=config.OCR_TIMEOUT,
        referer=config.APP_URL,
        title=config.APP_TITLE
    ))
    if not ocr_client.is_configured:
        logger.warning("  ⚠ OPENROUTER_API_KEY not set - image OCR will return 500")

    router = FormatRouter(
        pdf_chain=PDFExtractionChain(),
        ocr_strategy=ImageOCRStrategy(
            ocr_client,
            max_tokens=config.OCR_MAX_TOKENS,
            temperature=config.OCR_TEMPERATURE
        )
    )
    logger.info("  ✓ PDF, OCR, office, spreadsheet and text strategies ready")

    logger.info("2/3 Initializing text extraction service...")
    app.state.text_extractor = TextExtractor(router, config.size_limits())
    logger.info(f"  ✓ Size limits: {config.size_limits()}")

    logger.info("3/3 Initializing monitoring...")
    collector = PerformanceCollector(
        max_samples=config.MONITORING_MAX_SAMPLES,
        max_snapshots=config.MONITORING_MAX_SNAPSHOTS,
        max_alerts=config.MONITORING_MAX_ALERTS
    )
    app.state.collector = collector
    app.state.monitoring_api = MonitoringAPI(collector)
    app.state.optimizer = PerformanceOptimizer(collector)
    logger.info(f"  ✓ Monitoring ready with {len(collector.get_alert_rules())} alert rules")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup/shutdown logic.

    Services are built once here and shared by all requests through
    app.state. Startup fails fast if any service cannot be built.
    """
    # STARTUP
    configure_logging(settings.LOG_LEVEL, settings.LOG_FILE or None)

    logger.info("=" * 60)
    logger.info("Test Buddy Backend - Starting up...")
    logger.info("=" * 60)

    try:
        build_services(app, settings)
    except Exception as e:
        logger.error("=" * 60)
        logger.error(f"✗ STARTUP FAILED: {str(e)}")
        logger.error("=" * 60)
        raise

    logger.info("=" * 60)
    logger.info("✓ Test Buddy Backend - Startup complete!")
    logger.info("=" * 60)

    yield

    # SHUTDOWN
    logger.info("Test Buddy Backend - Shutting down...")
    logger.info("✓ Shutdown complete")


# Initialize FastAPI app with lifespan handler
app = FastAPI(
    title="Test Buddy Backend",
    description="Document text extraction and service monitoring for the Test Buddy study assistant",
    version="1.0.0",
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def root():
    """Root endpoint - API health check"""
    return {
        "status": "healthy",
        "service": "Test Buddy Backend",
        "version": "1.0.0"
    }


@app.get("/health")
async def health_check(request: Request):
    """
    Liveness check endpoint.

    Reports whether the services were built. Detailed health scoring lives
    at /api/monitoring/health.
    """
    state = request.app.state
    services = {
        "api": "up",
        "text_extractor": "up" if getattr(state, "text_extractor", None) else "down",
        "monitoring": "up" if getattr(state, "monitoring_api", None) else "down",
    }
    return {
        "status": "healthy" if all(v == "up" for v in services.values()) else "degraded",
        "services": services
    }


# Register API routes (using /api prefix to match frontend expectations)
app.include_router(extraction.router, prefix="/api", tags=["extraction"])
app.include_router(monitoring.router, prefix="/api", tags=["monitoring"])
