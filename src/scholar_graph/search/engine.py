from __future__ import annotations

import logging
from dataclasses import dataclass

from scholar_graph.graph.store import KnowledgeStore
from scholar_graph.models import KnowledgeRecord, Recommendation

from .query import build_fulltext_query

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SearchEngine:
    """Ranked full-text search and co-authorship recommendations.

    Recommendations score other records by the number of distinct authors
    they share with the source record; ties are broken by identifier.
    """

    store: KnowledgeStore

    def search(self, text: str | None, *, page: int = 0, size: int = 10) -> list[KnowledgeRecord]:
        expression = build_fulltext_query(text or "")
        if expression is None:
            return self.store.list_knowledge(page=page, size=size)
        logger.info("Executing full-text search with query: %s", expression)
        return self.store.search(expression, page=page, size=size)

    def recommend(self, knowledge_id: str, *, limit: int = 5) -> list[Recommendation]:
        return self.store.recommend(knowledge_id, limit=limit)
