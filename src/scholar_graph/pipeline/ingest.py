from __future__ import annotations

import asyncio
import logging
import time
import uuid

from scholar_graph.clients.repository import RepositoryClient
from scholar_graph.errors import UpstreamFetchError
from scholar_graph.extract.metadata import DSpaceMetadataExtractor
from scholar_graph.graph.store import KnowledgeStore
from scholar_graph.models import KnowledgeRecord

logger = logging.getLogger(__name__)


class KnowledgeIngestor:
    """Landing page -> metadata -> attachment -> graph.

    Every call creates a new Knowledge node with a fresh identifier, even for
    a source URL that was ingested before.
    """

    def __init__(
        self,
        store: KnowledgeStore,
        client: RepositoryClient,
        extractor: DSpaceMetadataExtractor | None = None,
    ):
        self.store = store
        self.client = client
        self.extractor = extractor or DSpaceMetadataExtractor()

    async def ingest(self, source_url: str) -> KnowledgeRecord:
        logger.info("Starting to create knowledge from URL: %s", source_url)
        t0 = time.perf_counter()

        html = await self.client.fetch_landing_page(source_url)
        try:
            meta = self.extractor.extract(html, source_url=source_url)
        except Exception as e:
            raise UpstreamFetchError(f"malformed metadata on {source_url}: {e}") from e

        # A discovered attachment must resolve; a missing one is fine.
        file_bytes = await self.client.resolve_attachment(meta.attachment_url)
        t1 = time.perf_counter()

        record = KnowledgeRecord(
            id=str(uuid.uuid4()),
            authors=meta.authors,
            creation_date=meta.creation_date,
            issuer_id=meta.issuer_id,
            summary=meta.summary,
            title=meta.title,
            type=meta.type,
            file=file_bytes,
        )
        await asyncio.to_thread(self.store.upsert, record)
        t2 = time.perf_counter()

        logger.info(
            "Created knowledge %s (%d authors, file=%s) fetch=%.0fms upsert=%.0fms",
            record.id,
            len(record.authors),
            file_bytes is not None,
            (t1 - t0) * 1000.0,
            (t2 - t1) * 1000.0,
        )
        return record.model_copy(update={"file": None})
