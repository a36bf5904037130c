"""scholar-graph: academic repository ingestion into a Neo4j knowledge graph."""

__version__ = "0.1.0"
