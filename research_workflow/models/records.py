"""Enums and artifact records carried in the workflow state."""

from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class WorkflowStatus(str, Enum):
    IDLE = "idle"
    CONVERTING = "converting"
    ANALYZING = "analyzing"
    WRITING = "writing"
    QUALITY_CHECK = "quality_check"
    COMPLETED = "completed"
    ERROR = "error"
    RETRY = "retry"


class GateDecision(str, Enum):
    """Labels a quality gate can route to."""

    PROCEED = "proceed"
    RETRY_ANALYZE = "retry_analyze"
    RETRY_WRITE = "retry_write"
    TERMINAL_ACCEPT = "terminal_accept"


Level = Literal["low", "medium", "high"]


class ResearchGap(BaseModel):
    category: str = "general"
    description: str
    significance: Level = "medium"


class RelatedPaper(BaseModel):
    title: str
    authors: List[str] = Field(default_factory=list)
    year: Optional[int] = None
    url: Optional[str] = None
    relevance_score: float = Field(default=0.5, ge=0.0, le=1.0)
    relationship: Literal["builds_on", "contradicts", "extends", "similar"] = "similar"


class KeyFinding(BaseModel):
    finding: str
    evidence: str = ""
    confidence: Level = "medium"


class AnalysisRecord(BaseModel):
    """Structured analysis of one paper. Every field defaults to empty."""

    research_gap: List[ResearchGap] = Field(default_factory=list)
    related_papers: List[RelatedPaper] = Field(default_factory=list)
    key_findings: List[KeyFinding] = Field(default_factory=list)
    methodology: str = ""
    conclusions: str = ""
    strengths: List[str] = Field(default_factory=list)
    limitations: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)


class QualityCheck(BaseModel):
    passed: bool
    score: int = Field(ge=0, le=100)
    issues: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)


class RetryInfo(BaseModel):
    attempt: int = Field(default=0, ge=0)
    max_attempts: int = Field(default=3, ge=0)
    reason: Optional[str] = None
    last_error: Optional[str] = None


class PaperMetadata(BaseModel):
    filename: str
    filepath: str
    filesize: int = 0
    title: Optional[str] = None
    authors: Optional[List[str]] = None
    page_count: Optional[int] = None
    word_count: int = 0
    processing_time_ms: int = 0


class PaperResult(BaseModel):
    """Per-input record collected by the batch coordinator.

    Artifact fields are left unset when ``error`` is set.
    """

    index: int
    input_ref: str
    markdown: Optional[str] = None
    summary: Optional[str] = None
    analysis: Optional[AnalysisRecord] = None
    metadata: Optional[PaperMetadata] = None
    draft: Optional[str] = None
    quality_check: Optional[QualityCheck] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None
