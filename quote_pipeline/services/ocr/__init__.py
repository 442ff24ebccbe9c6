from quote_pipeline.services.ocr.cache import OCRClientCache
from quote_pipeline.services.ocr.mistral_client import MistralOCRClient
from quote_pipeline.services.ocr.ocr_service import OCRDocumentResult, OCRPage, OCRService

__all__ = [
    "MistralOCRClient",
    "OCRClientCache",
    "OCRDocumentResult",
    "OCRPage",
    "OCRService",
]
