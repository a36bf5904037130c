from __future__ import annotations

import asyncio
import logging

import uvicorn

from scholar_graph.graph.neo4j_store import Neo4jConfig, Neo4jKnowledgeStore
from scholar_graph.settings import settings

from .app import create_app


def configure_logging() -> None:
    level = (settings.log_level or "INFO").upper()
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


async def _main() -> None:
    store = Neo4jKnowledgeStore(Neo4jConfig.from_settings())
    # Migration runs once, before any request is accepted.
    store.ensure_schema()
    app = create_app(store)

    config = uvicorn.Config(
        app,
        host=settings.bind_host,
        port=settings.bind_port,
        log_level=(settings.log_level or "info").lower(),
        loop="uvloop",
        http="httptools",
    )
    server = uvicorn.Server(config)

    try:
        await server.serve()
    finally:
        store.close()


def main() -> None:
    configure_logging()
    asyncio.run(_main())


if __name__ == "__main__":
    main()
