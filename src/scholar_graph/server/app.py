from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from scholar_graph import __version__
from scholar_graph.clients.repository import RepositoryClient
from scholar_graph.errors import NotFoundError, ScholarGraphError, ValidationError
from scholar_graph.graph.store import KnowledgeStore
from scholar_graph.models import AuthorRecord, KnowledgeRecord, KnowledgeRequest, Recommendation
from scholar_graph.pipeline.ingest import KnowledgeIngestor
from scholar_graph.search.engine import SearchEngine

logger = logging.getLogger(__name__)


def create_app(store: KnowledgeStore, client: RepositoryClient | None = None) -> FastAPI:
    """Build the HTTP service.

    Schema migration is not run here; the entrypoint applies it once before
    the app starts serving.
    """
    client = client or RepositoryClient()
    ingestor = KnowledgeIngestor(store, client)
    engine = SearchEngine(store)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        try:
            yield
        finally:
            await client.aclose()

    app = FastAPI(title="Scholar Graph - Knowledge Service", version=__version__, lifespan=lifespan)

    @app.exception_handler(ScholarGraphError)
    async def _scholar_graph_error(request: Request, exc: ScholarGraphError):
        op = f"{request.method} {request.url.path}"
        if isinstance(exc, NotFoundError):
            logger.info("%s: %s", op, exc)
            return Response(status_code=exc.status_code)
        if isinstance(exc, ValidationError):
            logger.warning("%s: %s", op, exc)
        else:
            logger.error("%s failed: %s", op, exc, exc_info=exc)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.code})

    @app.exception_handler(RequestValidationError)
    async def _request_validation_error(request: Request, exc: RequestValidationError):
        logger.warning("%s %s: invalid request: %s", request.method, request.url.path, exc.errors())
        return JSONResponse(status_code=400, content={"error": ValidationError.code})

    @app.exception_handler(Exception)
    async def _unexpected_error(request: Request, exc: Exception):
        logger.error("%s %s failed", request.method, request.url.path, exc_info=exc)
        return JSONResponse(status_code=500, content={"error": ScholarGraphError.code})

    @app.get("/health")
    async def health():
        return {"ok": True}

    @app.post("/api/v1/knowledge", status_code=201, response_model=KnowledgeRecord)
    async def create_knowledge(payload: KnowledgeRequest):
        logger.info("Received request to create knowledge for URL: %s", payload.url)
        return await ingestor.ingest(payload.url)

    # Declared before /{knowledge_id} routes so "author" is never read as an id.
    @app.get("/api/v1/knowledge/author/{author_id}", response_model=list[KnowledgeRecord])
    def knowledge_by_author(author_id: str, page: int = 0, size: int = 10):
        return store.list_by_author(author_id, page=page, size=size)

    @app.get("/api/v1/knowledge", response_model=list[KnowledgeRecord])
    def list_knowledge(search: str | None = None, page: int = 0, size: int = 10):
        return engine.search(search, page=page, size=size)

    @app.get("/api/v1/knowledge/{knowledge_id}", response_model=KnowledgeRecord)
    def get_knowledge(knowledge_id: str):
        record = store.get(knowledge_id)
        if record is None:
            raise NotFoundError(f"knowledge {knowledge_id} not found")
        return record

    @app.get("/api/v1/knowledge/{knowledge_id}/download")
    def download_knowledge_file(knowledge_id: str):
        data = store.get_file(knowledge_id)
        if data is None:
            raise NotFoundError(f"no file stored for knowledge {knowledge_id}")
        return Response(
            content=data,
            media_type="application/octet-stream",
            headers={"Content-Disposition": f'attachment; filename="{uuid.uuid4()}.pdf"'},
        )

    @app.get("/api/v1/knowledge/{knowledge_id}/recommendations", response_model=list[Recommendation])
    def recommendations(knowledge_id: str, limit: int = 5):
        return engine.recommend(knowledge_id, limit=limit)

    @app.get("/api/v1/authors", response_model=list[AuthorRecord])
    def find_authors(name: str | None = None, page: int = 0, size: int = 10):
        return store.find_authors(name, page=page, size=size)

    return app
