from .ingest import KnowledgeIngestor

__all__ = ["KnowledgeIngestor"]
