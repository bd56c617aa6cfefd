"""
Semantic Scholar search collaborator.

Only uses the public ``/paper/search`` endpoint. Requests run in a worker
thread so the event loop stays free during batch runs.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import requests

from research_workflow.errors import SearchError
from research_workflow.services.interfaces import SearchHit

logger = logging.getLogger(__name__)


class SemanticScholarSearch:
    BASE_URL = "https://api.semanticscholar.org/graph/v1/paper/search"
    FIELDS = "title,abstract,year,authors,url"

    def __init__(self, api_key: Optional[str] = None, timeout: int = 10, max_results: int = 10):
        self.api_key = api_key
        self.timeout = timeout
        self.max_results = max_results

    async def search(self, query: str, max_results: int) -> List[SearchHit]:
        limit = max(1, min(max_results, self.max_results))
        return await asyncio.to_thread(self._search, query, limit)

    def _search(self, query: str, limit: int) -> List[SearchHit]:
        params = {"query": query, "fields": self.FIELDS, "limit": limit}
        headers = {"x-api-key": self.api_key} if self.api_key else {}

        try:
            response = requests.get(self.BASE_URL, params=params, headers=headers, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as e:
            raise SearchError(f"Semantic Scholar request failed: {e}") from e

        items = payload.get("data", []) or []
        logger.debug(f"Semantic Scholar returned {len(items)} results for '{query}'")
        return [self._to_hit(item, rank, len(items)) for rank, item in enumerate(items)]

    @staticmethod
    def _to_hit(item: Dict[str, Any], rank: int, total: int) -> SearchHit:
        # API results are ordered by relevance; map rank to (0, 1]
        score = 1.0 - rank / max(total, 1)
        abstract = item.get("abstract") or ""
        return SearchHit(
            title=item.get("title", ""),
            url=item.get("url"),
            snippet=abstract[:300] or None,
            authors=[a.get("name", "") for a in item.get("authors", []) or []],
            year=item.get("year"),
            relevance_score=round(score, 3),
        )
