"""Knowledge graph subsystem.

- `schema`: idempotent constraint and full-text index migration
- `neo4j_store`: Neo4j-backed store for Knowledge/Author nodes
"""

from .neo4j_store import Neo4jConfig, Neo4jKnowledgeStore
from .store import KnowledgeStore

__all__ = ["KnowledgeStore", "Neo4jConfig", "Neo4jKnowledgeStore"]
