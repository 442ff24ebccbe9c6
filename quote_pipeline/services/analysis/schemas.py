"""Structured output expected from the analysis model."""

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

Complexity = Literal["Easy", "Medium", "Hard"]


class _Strict(BaseModel):
    model_config = ConfigDict(extra="forbid")


class BillingExclusion(_Strict):
    page: int
    reason: Literal["blank", "duplicate", "irrelevant"]


class PerPageBilling(_Strict):
    index: int
    words: int = Field(ge=0)
    complexity: Complexity


class AnalysisBilling(_Strict):
    billable_words: Optional[int] = Field(default=None, ge=0)
    relevant_pages: List[int] = Field(default_factory=list)
    exclusions: List[BillingExclusion] = Field(default_factory=list)
    per_page: List[PerPageBilling] = Field(default_factory=list)


class PageLanguage(_Strict):
    language: str
    confidence: float = Field(ge=0.0, le=1.0)


class AnalysisPage(_Strict):
    index: int
    doc_type: Optional[str] = None
    complexity: Complexity
    languages: List[PageLanguage] = Field(default_factory=list)
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)


class AnalysisResult(_Strict):
    complexity: Complexity
    names: List[str] = Field(default_factory=list)
    doc_type: Optional[str] = None
    country_of_issue: Optional[str] = None
    billing: AnalysisBilling
    pages: List[AnalysisPage] = Field(default_factory=list)

    def page_rows(self) -> List[dict]:
        """Rows for glm_pages, with per-page word counts from the billing breakdown."""
        words = {p.index: p.words for p in self.billing.per_page}
        return [
            {
                "page_index": page.index,
                "doc_type": page.doc_type or self.doc_type,
                "complexity": page.complexity,
                "languages": [lang.model_dump() for lang in page.languages],
                "confidence": page.confidence,
                "words": words.get(page.index),
            }
            for page in self.pages
        ]
