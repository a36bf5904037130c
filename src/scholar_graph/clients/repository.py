from __future__ import annotations

import logging

import httpx

from scholar_graph.errors import UpstreamFetchError
from scholar_graph.http import HttpClientFactory, transient_retry

logger = logging.getLogger(__name__)

FULL_QUERY = {"show": "full"}


class RepositoryClient:
    """Client for DSpace item landing pages and their bitstreams.

    Landing pages are fetched with `?show=full` so the full Dublin Core record
    is rendered into `<meta>` tags. Transient network failures are retried;
    HTTP error statuses are not.
    """

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None):
        self._client = HttpClientFactory.client(transport=transport)

    async def aclose(self):
        await self._client.aclose()

    @transient_retry()
    async def _get(self, url: str, *, params: dict | None = None, accept: str) -> httpx.Response:
        r = await self._client.get(url, params=params, headers={"Accept": accept})
        r.raise_for_status()
        return r

    async def fetch_landing_page(self, source_url: str) -> str:
        try:
            r = await self._get(source_url, params=FULL_QUERY, accept="text/html")
        except httpx.HTTPError as e:
            raise UpstreamFetchError(f"failed to fetch landing page {source_url}: {e}") from e
        return r.text

    async def download_file(self, url: str) -> bytes:
        try:
            r = await self._get(url, accept="application/octet-stream")
        except httpx.HTTPError as e:
            raise UpstreamFetchError(f"failed to download attachment {url}: {e}") from e
        return r.content

    async def resolve_attachment(self, url: str | None) -> bytes | None:
        """Fetch the attachment if one was discovered; skip otherwise."""
        if url is None:
            return None
        logger.info("Downloading file from: %s", url)
        return await self.download_file(url)
