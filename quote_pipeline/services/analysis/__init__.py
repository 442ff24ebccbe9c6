from quote_pipeline.services.analysis.analysis_service import AnalysisService
from quote_pipeline.services.analysis.gemini_client import GeminiClient
from quote_pipeline.services.analysis.schemas import AnalysisResult

__all__ = ["AnalysisResult", "AnalysisService", "GeminiClient"]
