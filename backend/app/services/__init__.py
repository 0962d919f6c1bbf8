"""Services package - Business logic layer"""
from app.services.pdf_processor import PDFExtractionChain, TextLayerStrategy, PageByPageStrategy
from app.services.ocr_service import ImageOCRStrategy
from app.services.office_extractor import WordDocumentExtractor, SpreadsheetExtractor, PlainTextExtractor
from app.services.document_router import FormatRouter
from app.services.text_extractor import TextExtractor
from app.services.openrouter_client import OpenRouterClient, OpenRouterConfig
from app.services.performance_collector import PerformanceCollector
from app.services.monitoring_api import MonitoringAPI
from app.services.performance_optimizer import PerformanceOptimizer

__all__ = [
    "PDFExtractionChain",
    "TextLayerStrategy",
    "PageByPageStrategy",
    "ImageOCRStrategy",
    "WordDocumentExtractor",
    "SpreadsheetExtractor",
    "PlainTextExtractor",
    "FormatRouter",
    "TextExtractor",
    "OpenRouterClient",
    "OpenRouterConfig",
    "PerformanceCollector",
    "MonitoringAPI",
    "PerformanceOptimizer"
]
