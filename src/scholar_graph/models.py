from __future__ import annotations

from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class _ApiModel(BaseModel):
    """Python-side snake_case, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class KnowledgeRequest(_ApiModel):
    url: str

    @field_validator("url")
    @classmethod
    def _check_url(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("URL must not be blank")
        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError("String must be URL")
        return v


class AuthorRecord(_ApiModel):
    id: str
    name: str


class KnowledgeRecord(_ApiModel):
    """A persisted publication.

    `file` only travels from ingestion into the store; it is excluded from
    every serialized response and read back through the download operation.
    """

    id: str
    authors: list[str] = Field(default_factory=list)
    creation_date: int = 0
    issuer_id: str = ""
    summary: str = ""
    title: str = ""
    type: str = ""
    file: bytes | None = Field(default=None, exclude=True, repr=False)

    @property
    def author_names(self) -> str:
        # Feeds the full-text index alongside title and summary.
        return " ".join(self.authors)


class Recommendation(KnowledgeRecord):
    shared_authors: int = 0
