from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator

from neo4j import GraphDatabase
from neo4j.exceptions import DriverError, Neo4jError

from scholar_graph.errors import StoreError, ValidationError
from scholar_graph.models import AuthorRecord, KnowledgeRecord, Recommendation
from scholar_graph.settings import settings

from .schema import apply_schema

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100
MAX_RECOMMENDATIONS = 50

# Scalar projection; the file blob never leaves the store through these.
_KNOWLEDGE_FIELDS = "{.id, .creationDate, .issuerId, .summary, .title, .type}"

UPSERT_KNOWLEDGE = """
MERGE (k:Knowledge {id: $id})
  ON CREATE SET k.file = $file
SET k.creationDate = $creationDate,
    k.issuerId = $issuerId,
    k.summary = $summary,
    k.title = $title,
    k.type = $type,
    k.authorNames = $authorNames
WITH k
UNWIND $authors AS authorName
MERGE (a:Author {name: authorName})
  ON CREATE SET a.id = randomUUID()
MERGE (k)-[:AUTHORED_BY]->(a)
RETURN count(a) AS linked
"""

GET_KNOWLEDGE = f"""
MATCH (k:Knowledge {{id: $id}})
OPTIONAL MATCH (k)-[:AUTHORED_BY]->(a:Author)
RETURN k {_KNOWLEDGE_FIELDS} AS knowledge, collect(a.name) AS authors
"""

GET_FILE = """
MATCH (k:Knowledge {id: $id})
RETURN k.file AS file
"""

LIST_KNOWLEDGE = f"""
MATCH (k:Knowledge)
WITH k ORDER BY k.creationDate DESC, k.id ASC SKIP $skip LIMIT $limit
OPTIONAL MATCH (k)-[:AUTHORED_BY]->(a:Author)
WITH k, collect(a.name) AS authors
RETURN k {_KNOWLEDGE_FIELDS} AS knowledge, authors
ORDER BY knowledge.creationDate DESC, knowledge.id ASC
"""

LIST_BY_AUTHOR = f"""
MATCH (:Author {{id: $authorId}})<-[:AUTHORED_BY]-(k:Knowledge)
WITH DISTINCT k ORDER BY k.creationDate DESC, k.id ASC SKIP $skip LIMIT $limit
OPTIONAL MATCH (k)-[:AUTHORED_BY]->(other:Author)
WITH k, collect(other.name) AS authors
RETURN k {_KNOWLEDGE_FIELDS} AS knowledge, authors
ORDER BY knowledge.creationDate DESC, knowledge.id ASC
"""

SEARCH_KNOWLEDGE = f"""
CALL db.index.fulltext.queryNodes($index, $query) YIELD node, score
WITH node AS k, score ORDER BY score DESC, k.id ASC SKIP $skip LIMIT $limit
OPTIONAL MATCH (k)-[:AUTHORED_BY]->(a:Author)
WITH k, score, collect(a.name) AS authors
RETURN k {_KNOWLEDGE_FIELDS} AS knowledge, authors, score
ORDER BY score DESC, knowledge.id ASC
"""

RECOMMEND_BY_AUTHORS = f"""
MATCH (source:Knowledge {{id: $id}})-[:AUTHORED_BY]->(a:Author)<-[:AUTHORED_BY]-(rec:Knowledge)
WHERE rec <> source
WITH rec, count(DISTINCT a) AS sharedAuthors
ORDER BY sharedAuthors DESC, rec.id ASC
LIMIT $limit
OPTIONAL MATCH (rec)-[:AUTHORED_BY]->(other:Author)
WITH rec, sharedAuthors, collect(other.name) AS authors
RETURN rec {_KNOWLEDGE_FIELDS} AS knowledge, authors, sharedAuthors
ORDER BY sharedAuthors DESC, knowledge.id ASC
"""

FIND_AUTHORS = """
MATCH (a:Author)
WHERE $name IS NULL OR toLower(a.name) CONTAINS toLower($name)
RETURN a.id AS id, a.name AS name
ORDER BY name ASC, id ASC
SKIP $skip LIMIT $limit
"""


def paging(page: int, size: int) -> tuple[int, int]:
    """Validate offset pagination and return (skip, limit)."""
    if page < 0:
        raise ValidationError(f"page must be >= 0, got {page}")
    if not 1 <= size <= MAX_PAGE_SIZE:
        raise ValidationError(f"size must be in [1, {MAX_PAGE_SIZE}], got {size}")
    return page * size, size


def _to_record(row: dict[str, Any]) -> KnowledgeRecord:
    k = row["knowledge"]
    return KnowledgeRecord(
        id=k["id"],
        authors=list(row.get("authors") or []),
        creation_date=k.get("creationDate") or 0,
        issuer_id=k.get("issuerId") or "",
        summary=k.get("summary") or "",
        title=k.get("title") or "",
        type=k.get("type") or "",
    )


@dataclass(slots=True)
class Neo4jConfig:
    uri: str
    user: str
    password: str
    database: str = "neo4j"
    fulltext_index: str = "knowledge_search_index"

    @classmethod
    def from_settings(cls) -> "Neo4jConfig":
        return cls(
            uri=settings.neo4j_uri,
            user=settings.neo4j_user,
            password=settings.neo4j_password,
            database=settings.neo4j_database,
            fulltext_index=settings.fulltext_index,
        )


class Neo4jKnowledgeStore:
    """Neo4j-backed store for Knowledge and Author nodes.

    The driver is thread-safe and lives for the whole process; every operation
    opens its own short-lived session which is closed on every exit path.
    Driver and database errors surface as `StoreError`.
    """

    def __init__(self, cfg: Neo4jConfig, driver=None):
        self.cfg = cfg
        self._driver = driver or GraphDatabase.driver(cfg.uri, auth=(cfg.user, cfg.password))

    def close(self) -> None:
        self._driver.close()

    @contextmanager
    def _session(self, op: str) -> Iterator[Any]:
        try:
            with self._driver.session(database=self.cfg.database) as s:
                yield s
        except (Neo4jError, DriverError) as e:
            raise StoreError(f"{op} failed: {e}") from e

    @staticmethod
    def _read_tx(tx, cypher: str, params: dict[str, Any]) -> list[dict[str, Any]]:
        return tx.run(cypher, **params).data()

    @staticmethod
    def _upsert_tx(tx, params: dict[str, Any]) -> int:
        row = tx.run(UPSERT_KNOWLEDGE, **params).single()
        return row["linked"] if row else 0

    def _read(self, op: str, cypher: str, params: dict[str, Any]) -> list[dict[str, Any]]:
        with self._session(op) as s:
            return s.execute_read(self._read_tx, cypher, params)

    def ensure_schema(self) -> None:
        logger.info("Checking and creating Neo4j constraints and indexes if they don't exist...")
        with self._session("ensure_schema") as s:
            n = apply_schema(s, self.cfg.fulltext_index)
        logger.info("Neo4j schema ready (%d statements, full-text index %s)", n, self.cfg.fulltext_index)

    def upsert(self, record: KnowledgeRecord) -> None:
        """Persist a record, its authors and AUTHORED_BY links in one transaction."""
        params = {
            "id": record.id,
            "creationDate": record.creation_date,
            "issuerId": record.issuer_id,
            "summary": record.summary,
            "title": record.title,
            "type": record.type,
            "file": record.file,
            "authorNames": record.author_names,
            "authors": record.authors,
        }
        with self._session("upsert") as s:
            linked = s.execute_write(self._upsert_tx, params)
        logger.debug("Upserted knowledge %s with %d author links", record.id, linked)

    def get(self, knowledge_id: str) -> KnowledgeRecord | None:
        rows = self._read("get", GET_KNOWLEDGE, {"id": knowledge_id})
        # An aggregate over an empty MATCH yields no row at all.
        if not rows or rows[0].get("knowledge") is None:
            return None
        return _to_record(rows[0])

    def get_file(self, knowledge_id: str) -> bytes | None:
        rows = self._read("get_file", GET_FILE, {"id": knowledge_id})
        if not rows or rows[0].get("file") is None:
            return None
        return bytes(rows[0]["file"])

    def list_knowledge(self, *, page: int = 0, size: int = 10) -> list[KnowledgeRecord]:
        skip, limit = paging(page, size)
        rows = self._read("list_knowledge", LIST_KNOWLEDGE, {"skip": skip, "limit": limit})
        return [_to_record(r) for r in rows]

    def list_by_author(self, author_id: str, *, page: int = 0, size: int = 10) -> list[KnowledgeRecord]:
        skip, limit = paging(page, size)
        rows = self._read(
            "list_by_author", LIST_BY_AUTHOR, {"authorId": author_id, "skip": skip, "limit": limit}
        )
        return [_to_record(r) for r in rows]

    def search(self, expression: str, *, page: int = 0, size: int = 10) -> list[KnowledgeRecord]:
        """Run a Lucene expression against the full-text index, best score first."""
        skip, limit = paging(page, size)
        params = {"index": self.cfg.fulltext_index, "query": expression, "skip": skip, "limit": limit}
        rows = self._read("search", SEARCH_KNOWLEDGE, params)
        return [_to_record(r) for r in rows]

    def recommend(self, knowledge_id: str, *, limit: int = 5) -> list[Recommendation]:
        if not 1 <= limit <= MAX_RECOMMENDATIONS:
            raise ValidationError(f"limit must be in [1, {MAX_RECOMMENDATIONS}], got {limit}")
        rows = self._read("recommend", RECOMMEND_BY_AUTHORS, {"id": knowledge_id, "limit": limit})
        return [
            Recommendation(**_to_record(r).model_dump(exclude={"file"}), shared_authors=r["sharedAuthors"])
            for r in rows
        ]

    def find_authors(self, name: str | None = None, *, page: int = 0, size: int = 10) -> list[AuthorRecord]:
        skip, limit = paging(page, size)
        name = (name or "").strip() or None
        rows = self._read("find_authors", FIND_AUTHORS, {"name": name, "skip": skip, "limit": limit})
        return [AuthorRecord(id=r["id"], name=r["name"]) for r in rows]
