from __future__ import annotations

import logging
from dataclasses import dataclass, field
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from scholar_graph.settings import settings

logger = logging.getLogger(__name__)

# <meta name="..."> -> field. DC.creator is the only repeated tag we keep.
CREATOR_TAG = "DC.creator"
DATE_TAG = "citation_date"
SINGLE_VALUED_TAGS = {
    "citation_issn": "issuer_id",
    "DCTERMS.abstract": "summary",
    "DC.title": "title",
    "DC.type": "type",
}

ATTACHMENT_MARKER = "file"


@dataclass(slots=True)
class ExtractedMetadata:
    """Candidate record as read off a landing page, before persistence."""

    authors: list[str] = field(default_factory=list)
    creation_date: int = 0
    issuer_id: str = ""
    summary: str = ""
    title: str = ""
    type: str = ""
    attachment_url: str | None = None


def handle_from_url(source_url: str) -> str:
    """Trailing path segment of a landing page URL.

    examples: https://dspace.kpfu.ru/xmlui/handle/net/180123 -> 180123
    """
    path = urlparse(source_url).path.rstrip("/")
    return path.rsplit("/", 1)[-1]


def _parse_year(content: str) -> int | None:
    try:
        return int(content.strip())
    except ValueError:
        return None


@dataclass(slots=True)
class DSpaceMetadataExtractor:
    """Reads Dublin Core / Highwire `<meta>` tags from a DSpace item page.

    The page must be requested with `?show=full` so every metadata field is
    rendered. Attachment links on DSpace point at an inline viewer; they are
    rewritten into direct bitstream downloads.
    """

    base_url: str = field(default_factory=lambda: settings.repository_base_url)
    viewer_placeholder: str = field(default_factory=lambda: settings.viewer_placeholder)

    def extract(self, html: str, *, source_url: str) -> ExtractedMetadata:
        soup = BeautifulSoup(html, "html.parser")
        out = ExtractedMetadata()

        for meta in soup.find_all("meta"):
            name = meta.get("name")
            content = meta.get("content") or ""
            if name == CREATOR_TAG:
                out.authors.append(content)
            elif name == DATE_TAG:
                year = _parse_year(content)
                if year is None:
                    logger.warning("Unparseable %s %r on %s; using 0", DATE_TAG, content, source_url)
                    year = 0
                out.creation_date = year
            elif name in SINGLE_VALUED_TAGS:
                setattr(out, SINGLE_VALUED_TAGS[name], content)

        out.attachment_url = self.find_attachment(soup, source_url=source_url)
        return out

    def find_attachment(self, soup: BeautifulSoup, *, source_url: str) -> str | None:
        for a in soup.find_all("a", href=True):
            href = a["href"]
            if ATTACHMENT_MARKER in href:
                return self.rewrite_attachment_href(href, handle_from_url(source_url))
        logger.warning("No downloadable file link on page: %s", source_url)
        return None

    def rewrite_attachment_href(self, href: str, handle: str) -> str:
        path = href.replace(self.viewer_placeholder, f"bitstream/handle/net/{handle}/")
        path = path.replace("&", "?", 1)
        if urlparse(path).scheme:
            return path
        return f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"
