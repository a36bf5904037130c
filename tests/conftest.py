from __future__ import annotations

import pytest

from scholar_graph.graph.neo4j_store import Neo4jConfig, Neo4jKnowledgeStore

from .fakes import FakeGraph


@pytest.fixture
def graph() -> FakeGraph:
    return FakeGraph()


@pytest.fixture
def store(graph: FakeGraph) -> Neo4jKnowledgeStore:
    cfg = Neo4jConfig(uri="bolt://fake:7687", user="neo4j", password="x")
    return Neo4jKnowledgeStore(cfg, driver=graph)
