"""
Collaborator contracts used by the pipeline stages.

Implementations signal failure by raising a StageError subclass
(ConversionError, AnalysisError, DraftError, SearchError). Anything else they
raise is treated as a defect and propagates out of the run.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Protocol, runtime_checkable


# ============================================================
# 📌 DATA MODELS
# ============================================================


@dataclass
class ConversionResult:
    text: str
    title: Optional[str] = None
    authors: Optional[List[str]] = None
    page_count: Optional[int] = None
    word_count: int = 0
    processing_time_ms: int = 0


@dataclass
class PromptContext:
    """What a model collaborator receives: a task tag plus system/user prompts."""

    task: str
    system_prompt: str
    user_prompt: str


@dataclass
class SearchHit:
    title: str
    url: Optional[str] = None
    snippet: Optional[str] = None
    authors: List[str] = field(default_factory=list)
    year: Optional[int] = None
    relevance_score: float = 0.5


# ============================================================
# 📌 PROTOCOLS
# ============================================================


@runtime_checkable
class Converter(Protocol):
    async def convert(self, input_ref: str) -> ConversionResult: ...


@runtime_checkable
class Analyzer(Protocol):
    async def analyze(self, prompt: PromptContext) -> str: ...


@runtime_checkable
class Drafter(Protocol):
    async def generate(self, prompt: PromptContext) -> str: ...


@runtime_checkable
class Search(Protocol):
    async def search(self, query: str, max_results: int) -> List[SearchHit]: ...
