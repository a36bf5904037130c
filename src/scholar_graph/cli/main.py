from __future__ import annotations

import argparse
import asyncio
import json

from scholar_graph.errors import ScholarGraphError
from scholar_graph.server.main import configure_logging


def _store():
    from scholar_graph.graph.neo4j_store import Neo4jConfig, Neo4jKnowledgeStore

    return Neo4jKnowledgeStore(Neo4jConfig.from_settings())


def cmd_version() -> int:
    from scholar_graph import __version__

    print(__version__)
    return 0


def cmd_migrate(_args: argparse.Namespace) -> int:
    configure_logging()
    store = _store()
    try:
        store.ensure_schema()
    finally:
        store.close()
    return 0


def cmd_ingest(args: argparse.Namespace) -> int:
    configure_logging()
    import pydantic

    from scholar_graph.clients.repository import RepositoryClient
    from scholar_graph.errors import ValidationError
    from scholar_graph.models import KnowledgeRequest
    from scholar_graph.pipeline.ingest import KnowledgeIngestor

    try:
        url = KnowledgeRequest(url=args.url).url
    except pydantic.ValidationError as e:
        raise ValidationError(str(e)) from e

    store = _store()

    async def _run():
        client = RepositoryClient()
        try:
            return await KnowledgeIngestor(store, client).ingest(url)
        finally:
            await client.aclose()

    try:
        record = asyncio.run(_run())
    finally:
        store.close()
    print(record.model_dump_json(by_alias=True, indent=2))
    return 0


def cmd_search(args: argparse.Namespace) -> int:
    configure_logging()
    from scholar_graph.search.engine import SearchEngine

    store = _store()
    try:
        results = SearchEngine(store).search(args.query, page=args.page, size=args.size)
    finally:
        store.close()
    print(json.dumps([r.model_dump(by_alias=True) for r in results], ensure_ascii=False, indent=2))
    return 0


def cmd_serve(_args: argparse.Namespace) -> int:
    from scholar_graph.server.main import main as serve

    serve()
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="scholar-graph")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("version").set_defaults(func=lambda _a: cmd_version())

    sub.add_parser("migrate", help="Create Neo4j constraints and the full-text index").set_defaults(
        func=cmd_migrate
    )

    ingest = sub.add_parser("ingest", help="Ingest one repository landing page")
    ingest.add_argument("url")
    ingest.set_defaults(func=cmd_ingest)

    search = sub.add_parser("search", help="Full-text search (empty query lists everything)")
    search.add_argument("query", nargs="?", default="")
    search.add_argument("--page", type=int, default=0)
    search.add_argument("--size", type=int, default=10)
    search.set_defaults(func=cmd_search)

    sub.add_parser("serve", help="Run the HTTP service").set_defaults(func=cmd_serve)

    return p


def app() -> None:
    parser = build_parser()
    args = parser.parse_args()
    try:
        rc = args.func(args)
    except ScholarGraphError as e:
        print(f"error: {e.code}: {e}")
        rc = 1
    raise SystemExit(rc)


if __name__ == "__main__":
    app()
