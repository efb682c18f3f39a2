"""Typed exception hierarchy for Halo sync errors.

Every failure the sync protocol can report derives from ``HaloSyncError``
so callers can catch the whole family at one boundary.  Each subclass maps
to one user-visible outcome:

- ``PostNotFoundError``: the requested remote post does not exist.
- ``SiteMismatchError``: the document is linked to a different site.
- ``ReferenceResolutionError``: creating a category or tag failed.
- ``TransportError``: a network call failed or returned an error status.
- ``NotPublishedError``: the document has no remote identifier yet.
- ``InvalidDocumentError``: the local front matter is not valid YAML.
"""

from __future__ import annotations


class HaloSyncError(Exception):
    """Base exception for all halo-sync errors."""

    error_type = "sync_error"


class PostNotFoundError(HaloSyncError):
    """Raised when a requested post does not exist on the remote site."""

    error_type = "not_found"

    def __init__(self, name: str):
        super().__init__(f"Post '{name}' not found")
        self.name = name


class SiteMismatchError(HaloSyncError):
    """Raised when a document is linked to a different site than configured."""

    error_type = "site_mismatch"

    def __init__(self, linked_site: str, configured_site: str):
        super().__init__(
            f"Document is linked to {linked_site}, "
            f"but the configured site is {configured_site}"
        )
        self.linked_site = linked_site
        self.configured_site = configured_site


class ReferenceResolutionError(HaloSyncError):
    """Raised when a missing category or tag could not be created."""

    error_type = "resolution_failure"

    def __init__(self, kind: str, names: list[str], reason: str):
        super().__init__(
            f"Failed to create {kind} {', '.join(repr(n) for n in names)}: {reason}"
        )
        self.kind = kind
        self.names = names
        self.reason = reason


class TransportError(HaloSyncError):
    """Raised when an HTTP call fails or returns a non-success status."""

    error_type = "transport_failure"

    def __init__(
        self,
        operation: str,
        message: str,
        status_code: int | None = None,
    ):
        detail = f" (HTTP {status_code})" if status_code is not None else ""
        super().__init__(f"{operation} failed{detail}: {message}")
        self.operation = operation
        self.status_code = status_code


class NotPublishedError(HaloSyncError):
    """Raised when an operation needs a remote identifier the document lacks."""

    error_type = "not_published"

    def __init__(self, document: str):
        super().__init__(
            f"Document '{document}' has not been published to Halo yet"
        )
        self.document = document


class InvalidDocumentError(HaloSyncError):
    """Raised when a local document's front matter cannot be parsed."""

    error_type = "invalid_document"

    def __init__(self, document: str, reason: str):
        super().__init__(f"Cannot read front matter of '{document}': {reason}")
        self.document = document
        self.reason = reason
