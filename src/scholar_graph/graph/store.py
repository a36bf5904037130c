from __future__ import annotations

from typing import Protocol

from scholar_graph.models import AuthorRecord, KnowledgeRecord, Recommendation


class KnowledgeStore(Protocol):
    """Abstraction for the backing graph database."""

    def ensure_schema(self) -> None: ...

    def upsert(self, record: KnowledgeRecord) -> None: ...

    def get(self, knowledge_id: str) -> KnowledgeRecord | None: ...

    def get_file(self, knowledge_id: str) -> bytes | None: ...

    def list_knowledge(self, *, page: int = 0, size: int = 10) -> list[KnowledgeRecord]: ...

    def list_by_author(self, author_id: str, *, page: int = 0, size: int = 10) -> list[KnowledgeRecord]: ...

    def search(self, expression: str, *, page: int = 0, size: int = 10) -> list[KnowledgeRecord]: ...

    def recommend(self, knowledge_id: str, *, limit: int = 5) -> list[Recommendation]: ...

    def find_authors(self, name: str | None = None, *, page: int = 0, size: int = 10) -> list[AuthorRecord]: ...
