"""SQLAlchemy models for the quote state store."""

from datetime import datetime
from enum import Enum

from sqlalchemy import (
    JSON,
    TIMESTAMP,
    BigInteger,
    Float,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from quote_pipeline.core.database import Base

Money = Numeric(12, 2, asdecimal=False)


class QuoteStatus(str, Enum):
    UPLOADING = "uploading"
    ANALYSIS_OK = "analysis_ok"
    HITL = "hitl"
    READY = "ready"


class QuoteFileStatus(str, Enum):
    UPLOADED = "uploaded"
    OCR_COMPLETE = "ocr_complete"


class JobStatus(str, Enum):
    QUEUED = "queued"
    STARTED = "started"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class Quote(Base):
    """A customer quote moving through OCR, analysis and pricing."""

    __tablename__ = "quotes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=QuoteStatus.UPLOADING.value
    )  # uploading | analysis_ok | hitl | ready

    # Submission facts
    intended_use: Mapped[str] = mapped_column(String, nullable=False, default="general")
    languages: Mapped[list | None] = mapped_column(JSON, nullable=True)
    billing_country: Mapped[str | None] = mapped_column(String, nullable=True)
    billing_region: Mapped[str | None] = mapped_column(String, nullable=True)
    currency: Mapped[str] = mapped_column(String, nullable=False, default="CAD")
    rush_tier: Mapped[str | None] = mapped_column(String, nullable=True)
    certification_type: Mapped[str | None] = mapped_column(String, nullable=True)
    shipping_method: Mapped[str | None] = mapped_column(String, nullable=True)

    # Computed by the pricing step
    billable_pages: Mapped[float | None] = mapped_column(Float, nullable=True)
    per_page_rate: Mapped[float | None] = mapped_column(Money, nullable=True)
    certification_fee: Mapped[float | None] = mapped_column(Money, nullable=True)
    shipping_fee: Mapped[float | None] = mapped_column(Money, nullable=True)
    rush_percent: Mapped[float | None] = mapped_column(Float, nullable=True)
    subtotal: Mapped[float | None] = mapped_column(Money, nullable=True)
    tax_rate: Mapped[float | None] = mapped_column(Float, nullable=True)
    tax_amount: Mapped[float | None] = mapped_column(Money, nullable=True)
    total: Mapped[float | None] = mapped_column(Money, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    files: Mapped[list["QuoteFile"]] = relationship(
        "QuoteFile", back_populates="quote", cascade="all, delete-orphan"
    )


class QuoteFile(Base):
    """An uploaded source document belonging to a quote."""

    __tablename__ = "quote_files"
    __table_args__ = (UniqueConstraint("quote_id", "file_id", name="uq_quote_files_quote_file"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    quote_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("quotes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    file_id: Mapped[str] = mapped_column(String, nullable=False)
    storage_uri: Mapped[str | None] = mapped_column(Text, nullable=True)
    filename: Mapped[str | None] = mapped_column(String, nullable=True)
    bytes: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    mime: Mapped[str | None] = mapped_column(String, nullable=True)
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=QuoteFileStatus.UPLOADED.value
    )  # uploaded | ocr_complete

    # OCR roll-ups
    ocr_pages: Mapped[int | None] = mapped_column(Integer, nullable=True)
    words: Mapped[int | None] = mapped_column(Integer, nullable=True)
    language: Mapped[str | None] = mapped_column(String, nullable=True)
    languages: Mapped[dict | None] = mapped_column(JSON, nullable=True)  # code -> confidence

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    quote: Mapped["Quote"] = relationship("Quote", back_populates="files")


class QuotePage(Base):
    """One physical page of an uploaded file, as seen by OCR."""

    __tablename__ = "quote_pages"
    __table_args__ = (
        UniqueConstraint("quote_id", "file_id", "page_number", name="uq_quote_pages_identity"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    quote_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("quotes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    file_id: Mapped[str] = mapped_column(String, nullable=False)
    page_number: Mapped[int] = mapped_column(Integer, nullable=False)
    word_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    ocr_confidence: Mapped[float | None] = mapped_column(Float, nullable=True)
    text_excerpt: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="ocr_complete")
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now()
    )


class OcrJob(Base):
    """OCR tracking record, one per file."""

    __tablename__ = "ocr_jobs"
    __table_args__ = (UniqueConstraint("quote_id", "file_id", name="uq_ocr_jobs_quote_file"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    quote_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("quotes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    file_id: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=JobStatus.QUEUED.value
    )  # queued | started | succeeded | failed
    retry_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class GlmJob(Base):
    """Analysis tracking record plus the document-level analysis summary.

    Exactly one row per quote; re-running analysis updates it in place.
    """

    __tablename__ = "glm_jobs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    quote_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("quotes.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=JobStatus.QUEUED.value
    )  # queued | started | succeeded | failed
    retry_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)

    doc_type: Mapped[str | None] = mapped_column(String, nullable=True)
    country_of_issue: Mapped[str | None] = mapped_column(String, nullable=True)
    complexity: Mapped[str | None] = mapped_column(String, nullable=True)
    names: Mapped[list | None] = mapped_column(JSON, nullable=True)
    billable_words: Mapped[int | None] = mapped_column(Integer, nullable=True)
    billing: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class GlmPage(Base):
    """Per-page classification output of the analysis step."""

    __tablename__ = "glm_pages"
    __table_args__ = (UniqueConstraint("quote_id", "page_index", name="uq_glm_pages_quote_page"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    quote_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("quotes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    page_index: Mapped[int] = mapped_column(Integer, nullable=False)
    doc_type: Mapped[str | None] = mapped_column(String, nullable=True)
    complexity: Mapped[str] = mapped_column(String, nullable=False, default="Easy")
    languages: Mapped[list | None] = mapped_column(JSON, nullable=True)
    confidence: Mapped[float | None] = mapped_column(Float, nullable=True)
    words: Mapped[int | None] = mapped_column(Integer, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class AppSetting(Base):
    """Keyed JSON configuration documents (pricing policy lives here)."""

    __tablename__ = "app_settings"

    key: Mapped[str] = mapped_column(String, primary_key=True)
    settings: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class QuoteEvent(Base):
    """Outbox record of every published pipeline event."""

    __tablename__ = "quote_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_id: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String, nullable=False, index=True)
    quote_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    payload: Mapped[dict] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now()
    )
    dispatched_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
