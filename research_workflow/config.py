"""Configuration for the research workflow."""

import logging
import os
from dataclasses import dataclass
from typing import Literal, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"⚠️  Invalid integer for {name}={raw!r}, using default {default}")
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"⚠️  Invalid number for {name}={raw!r}, using default {default}")
        return default


@dataclass
class QualityThresholds:
    """Thresholds used by the quality gate."""

    min_summary_length: int = 100
    min_analysis_items: int = 3
    min_draft_length: int = 500
    pass_threshold: int = 60


@dataclass
class Config:
    """Configuration parameters for the research workflow."""

    # LLM
    inference_engine: Literal["ollama", "openai"] = "ollama"
    openai_model: str = "gpt-4o-mini"
    openai_api_key: Optional[str] = None
    local_llm: str = "gemma3:4b"
    temperature: float = 0.3
    max_tokens: int = 4096

    # Quality gate
    quality: QualityThresholds = None
    max_retries: int = 3

    # Analysis
    max_markdown_chars: int = 100_000
    search_results_per_term: int = 3
    web_search_max_results: int = 10
    semantic_scholar_api_key: Optional[str] = None

    # Batch / executor
    batch_concurrency: int = 3
    graph_recursion_limit: int = 100

    # Output
    output_dir: str = "./output"
    log_level: str = "INFO"

    def __post_init__(self):
        if self.quality is None:
            self.quality = QualityThresholds()

    @classmethod
    def from_env(cls) -> "Config":
        """Build a Config from environment variables (after loading .env)."""
        load_dotenv()
        engine = os.getenv("INFERENCE_ENGINE", "ollama").lower()
        if engine not in {"ollama", "openai"}:
            logger.warning(f"⚠️  Unknown INFERENCE_ENGINE={engine!r}, falling back to ollama")
            engine = "ollama"

        return cls(
            inference_engine=engine,
            openai_model=os.getenv("OPENAI_MODEL", cls.openai_model),
            openai_api_key=os.getenv("OPENAI_API_KEY"),
            local_llm=os.getenv("LOCAL_LLM", cls.local_llm),
            temperature=_env_float("LLM_TEMPERATURE", cls.temperature),
            max_tokens=_env_int("LLM_MAX_TOKENS", cls.max_tokens),
            quality=QualityThresholds(
                min_summary_length=_env_int("QUALITY_MIN_SUMMARY_LENGTH", 100),
                min_analysis_items=_env_int("QUALITY_MIN_ANALYSIS_ITEMS", 3),
                min_draft_length=_env_int("QUALITY_MIN_DRAFT_LENGTH", 500),
                pass_threshold=_env_int("QUALITY_PASS_THRESHOLD", 60),
            ),
            max_retries=_env_int("MAX_RETRIES", cls.max_retries),
            max_markdown_chars=_env_int("MAX_MARKDOWN_CHARS", cls.max_markdown_chars),
            search_results_per_term=_env_int("SEARCH_RESULTS_PER_TERM", cls.search_results_per_term),
            web_search_max_results=_env_int("WEB_SEARCH_MAX_RESULTS", cls.web_search_max_results),
            semantic_scholar_api_key=os.getenv("SEMANTIC_SCHOLAR_API_KEY"),
            batch_concurrency=_env_int("BATCH_CONCURRENCY", cls.batch_concurrency),
            graph_recursion_limit=_env_int("GRAPH_RECURSION_LIMIT", cls.graph_recursion_limit),
            output_dir=os.getenv("OUTPUT_DIR", cls.output_dir),
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
        )


def load_config() -> Config:
    return Config.from_env()
