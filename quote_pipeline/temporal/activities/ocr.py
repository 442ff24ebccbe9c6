"""OCR activities for one uploaded file."""

import time
from typing import Dict

from temporalio import activity

from quote_pipeline.core.exceptions import FileTooLargeError, OCRConfigurationError
from quote_pipeline.schemas.events import FilesUploaded
from quote_pipeline.services.steps import OcrStep, StepDependencies
from quote_pipeline.temporal.core.errors import step_failure


class OcrActivities:
    def __init__(self, deps: StepDependencies):
        self.step = OcrStep(deps)

    @activity.defn
    async def ocr_check_file(self, payload: Dict) -> Dict:
        """Hard input checks; permanent violations are non-retryable."""
        try:
            return await self.step.check(FilesUploaded.model_validate(payload))
        except (FileTooLargeError, OCRConfigurationError) as e:
            activity.logger.error(
                f"OCR rejected file {payload.get('file_id')}: {e}",
                extra={"quote_id": payload.get("quote_id"), "file_id": payload.get("file_id")},
            )
            raise step_failure(e, non_retryable=True) from e

    @activity.defn
    async def ocr_extract_file(self, payload: Dict) -> Dict:
        """Download, OCR and persist a file. Transient failures are retried by Temporal."""
        start = time.time()
        attempt = activity.info().attempt
        file_id = payload.get("file_id")

        try:
            activity.logger.info(
                f"Starting OCR for file {file_id} (attempt {attempt})",
                extra={"quote_id": payload.get("quote_id"), "file_id": file_id},
            )
            return await self.step.extract(FilesUploaded.model_validate(payload), attempt=attempt)
        except (FileTooLargeError, OCRConfigurationError) as e:
            raise step_failure(e, non_retryable=True) from e
        except Exception as e:
            activity.logger.error(
                f"OCR extraction failed for {file_id}: {e}",
                extra={"file_id": file_id, "error_type": type(e).__name__, "attempt": attempt},
            )
            raise
        finally:
            duration = time.time() - start
            activity.logger.info(
                f"OCR extraction duration: {duration:.2f}s",
                extra={"file_id": file_id, "duration_seconds": duration},
            )

    @activity.defn
    async def ocr_mark_failed(self, payload: Dict, error: str) -> None:
        await self.step.mark_failed(FilesUploaded.model_validate(payload), error)

    @activity.defn
    async def ocr_emit_complete(self, payload: Dict, summary: Dict) -> bool:
        return await self.step.emit_complete(FilesUploaded.model_validate(payload), summary)
