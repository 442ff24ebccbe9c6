"""OCR step: one uploaded file to persisted page facts."""

from typing import Any, Dict, Optional

from quote_pipeline.core.exceptions import FileTooLargeError, OCRConfigurationError
from quote_pipeline.database.models import JobStatus, QuoteFile, QuoteFileStatus
from quote_pipeline.repositories import OcrJobRepository, QuoteFileRepository
from quote_pipeline.schemas.events import EventName, FilesUploaded, OcrComplete, make_event
from quote_pipeline.services.steps.dependencies import StepDependencies
from quote_pipeline.utils.logging import get_logger

LOGGER = get_logger(__name__)


def _file_summary(file: QuoteFile, avg_confidence: float, languages: Dict[str, float]) -> Dict[str, Any]:
    return {
        "page_count": file.ocr_pages or 0,
        "words": file.words or 0,
        "avg_confidence": avg_confidence,
        "languages": languages,
    }


class OcrStep:
    """OCR for a single file.

    ``check`` runs the hard input checks and the already-done shortcut,
    ``extract`` does the vendor call and persistence, ``mark_failed`` records
    an exhausted or permanent failure, and ``emit_complete`` announces the
    result. Each is safe to repeat.
    """

    def __init__(self, deps: StepDependencies):
        self.deps = deps
        self.max_bytes = deps.settings.ocr.max_bytes
        self.excerpt_chars = deps.settings.ocr.excerpt_chars

    def _size_reason(self, size: int) -> str:
        return f"File exceeds {self.max_bytes} byte sync processing limit ({size} bytes)"

    async def check(self, payload: FilesUploaded) -> Dict[str, Any]:
        """Validate the upload and decide whether OCR is needed.

        Returns:
            ``{"skip": True, "summary": {...}}`` when the file was already
            OCR'd, otherwise ``{"skip": False}`` with the job marked started

        Raises:
            FileTooLargeError: If the file exceeds the sync size limit
            OCRConfigurationError: If the OCR vendor is not configured
        """
        quote_id, file_id = payload.quote_id, payload.file_id
        try:
            if payload.bytes > self.max_bytes:
                raise FileTooLargeError(self._size_reason(payload.bytes))
            self.deps.ocr_clients.validate()
        except (FileTooLargeError, OCRConfigurationError) as e:
            await self.mark_failed(payload, str(e))
            raise

        async with self.deps.session_maker() as session:
            files = QuoteFileRepository(session)
            existing = await files.get_file(quote_id, file_id)
            if existing is not None and existing.status == QuoteFileStatus.OCR_COMPLETE.value:
                summary = await self._stored_summary(session, existing)
                LOGGER.info(
                    f"File {file_id} already OCR complete, skipping",
                    extra={"quote_id": quote_id, "file_id": file_id},
                )
                return {"skip": True, "summary": summary}

            await files.upsert_file(
                quote_id,
                file_id,
                storage_uri=payload.gcs_uri,
                filename=payload.filename,
                bytes=payload.bytes,
                mime=payload.mime,
                status=None if existing is not None else QuoteFileStatus.UPLOADED.value,
            )
            await OcrJobRepository(session).upsert_status(quote_id, file_id, JobStatus.STARTED)
            await session.commit()
        return {"skip": False}

    async def _stored_summary(self, session, file: QuoteFile) -> Dict[str, Any]:
        pages = [
            p for p in await QuoteFileRepository(session).list_pages(file.quote_id)
            if p.file_id == file.file_id
        ]
        confidences = [p.ocr_confidence for p in pages if p.ocr_confidence is not None]
        avg = round(sum(confidences) / len(confidences), 4) if confidences else 0.0
        languages = dict(file.languages or {})
        return _file_summary(file, avg, languages)

    async def extract(self, payload: FilesUploaded, attempt: int = 1) -> Dict[str, Any]:
        """Download, OCR and persist the file's pages.

        Raises:
            FileTooLargeError: If the downloaded content exceeds the limit
            APIClientError: On transient download or vendor failures
        """
        quote_id, file_id = payload.quote_id, payload.file_id

        async with self.deps.session_maker() as session:
            files = QuoteFileRepository(session)
            existing = await files.get_file(quote_id, file_id)
            if existing is not None and existing.status == QuoteFileStatus.OCR_COMPLETE.value:
                return await self._stored_summary(session, existing)
            await OcrJobRepository(session).upsert_status(
                quote_id, file_id, JobStatus.STARTED, attempt=attempt
            )
            await session.commit()

        content = await self.deps.ocr_service.download(payload.gcs_uri)
        if len(content) > self.max_bytes:
            raise FileTooLargeError(self._size_reason(len(content)))

        result = await self.deps.ocr_service.extract(content, payload.mime)

        page_rows = [
            {
                "page_number": page.page_number,
                "word_count": page.word_count,
                "ocr_confidence": page.confidence,
                "text_excerpt": page.excerpt(self.excerpt_chars) or None,
                "status": QuoteFileStatus.OCR_COMPLETE.value,
            }
            for page in result.pages
        ]

        async with self.deps.session_maker() as session:
            files = QuoteFileRepository(session)
            await files.upsert_pages(quote_id, file_id, page_rows)
            file = await files.upsert_file(
                quote_id,
                file_id,
                storage_uri=payload.gcs_uri,
                filename=payload.filename,
                bytes=len(content),
                mime=payload.mime,
                ocr_pages=result.page_count,
                words=result.total_words,
                language=result.primary_language,
                languages=result.languages,
                status=QuoteFileStatus.OCR_COMPLETE.value,
            )
            await OcrJobRepository(session).upsert_status(quote_id, file_id, JobStatus.SUCCEEDED)
            await session.commit()

        LOGGER.info(
            f"OCR complete for file {file_id}",
            extra={
                "quote_id": quote_id,
                "file_id": file_id,
                "page_count": result.page_count,
                "words": result.total_words,
            },
        )
        return _file_summary(file, result.avg_confidence, result.languages)

    async def mark_failed(self, payload: FilesUploaded, error: str) -> None:
        async with self.deps.session_maker() as session:
            await OcrJobRepository(session).upsert_status(
                payload.quote_id, payload.file_id, JobStatus.FAILED, error=error
            )
            await session.commit()
        LOGGER.error(
            f"OCR failed for file {payload.file_id}: {error}",
            extra={"quote_id": payload.quote_id, "file_id": payload.file_id},
        )

    async def emit_complete(self, payload: FilesUploaded, summary: Dict[str, Any]) -> bool:
        event = make_event(
            EventName.OCR_COMPLETE,
            f"ocr-complete-{payload.quote_id}-{payload.file_id}",
            OcrComplete(
                quote_id=payload.quote_id,
                file_id=payload.file_id,
                page_count=summary.get("page_count", 0),
                avg_confidence=summary.get("avg_confidence", 0.0),
                languages=summary.get("languages") or {},
            ),
        )
        return await self.deps.event_bus.publish(event)

    async def run(self, payload: FilesUploaded, attempt: int = 1) -> Dict[str, Any]:
        """Run the whole step in-process (no workflow engine)."""
        checked = await self.check(payload)
        summary: Optional[Dict[str, Any]] = checked.get("summary")
        if not checked["skip"]:
            summary = await self.extract(payload, attempt=attempt)
        await self.emit_complete(payload, summary)
        return {"ok": True, "skipped": checked["skip"], **summary}
