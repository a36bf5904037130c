from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ScholarGraphSettings(BaseSettings):
    """Unified configuration for scholar-graph.

    Environment variables are prefixed with SCHOLAR_GRAPH_.
    """

    model_config = SettingsConfigDict(env_prefix="SCHOLAR_GRAPH_", extra="ignore")

    # --- Core ---
    log_level: str = Field(default="INFO", description="Python logging level")

    # --- HTTP ---
    bind_host: str = "0.0.0.0"
    bind_port: int = 8080

    # --- Graph DB (Neo4j) ---
    neo4j_uri: str = "bolt://localhost:7687"
    neo4j_user: str = "neo4j"
    neo4j_password: str = "neo4j"
    neo4j_database: str = "neo4j"
    fulltext_index: str = "knowledge_search_index"

    # --- Source repository (DSpace) ---
    repository_base_url: str = Field(
        default="https://dspace.kpfu.ru",
        description="Prefix for rewritten attachment links",
    )
    viewer_placeholder: str = Field(
        default="viewer?file=27232;",
        description="Path fragment of the inline viewer link replaced by the bitstream handle",
    )

    # --- Outbound fetches ---
    http_connect_timeout: float = 10.0
    http_read_timeout: float = 60.0
    http_retry_attempts: int = 3
    user_agent: str = "scholar-graph/0.1"


settings = ScholarGraphSettings()
