"""Error kinds raised by the core and translated by the HTTP layer.

Each kind carries a stable ``code`` that is safe to show to clients; the
message is for logs only.
"""

from __future__ import annotations


class ScholarGraphError(Exception):
    code = "internal_error"
    status_code = 500


class ValidationError(ScholarGraphError):
    """Malformed request input (blank/invalid URL, bad paging)."""

    code = "invalid_request"
    status_code = 400


class NotFoundError(ScholarGraphError):
    """Unknown identifier, or a record without a stored attachment."""

    code = "not_found"
    status_code = 404


class UpstreamFetchError(ScholarGraphError):
    """Source page or attachment could not be fetched or parsed."""

    code = "upstream_failure"
    status_code = 500


class StoreError(ScholarGraphError):
    """A graph store operation failed."""

    code = "store_failure"
    status_code = 500
