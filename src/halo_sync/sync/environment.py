"""Editing environment: where local documents live.

The orchestrator never touches files directly.  It is handed an object
satisfying ``EditingEnvironment`` and goes through it for every local read
and write.  ``FileEditingEnvironment`` is the implementation backed by
Markdown files with YAML front matter.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Protocol

import frontmatter
import yaml

from halo_sync.errors import InvalidDocumentError
from halo_sync.file_handler import (
    read_file_with_encoding,
    safe_filename,
    unique_path,
    write_file,
)
from halo_sync.sync.models import DocumentMetadata, LocalDocument

logger = logging.getLogger(__name__)

MetadataMutator = Callable[[DocumentMetadata], DocumentMetadata]


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


class EditingEnvironment(Protocol):
    """Operations the orchestrator needs from the host editor."""

    def read_active_document(self) -> LocalDocument | None:
        """Return the active document, or ``None`` if nothing is open."""
        ...  # pragma: no cover

    def write_metadata(self, mutator: MetadataMutator) -> None:
        """Replace the active document's metadata with ``mutator(old)``."""
        ...  # pragma: no cover

    def replace_document(self, raw_body: str) -> None:
        """Replace the active document's body, keeping its metadata."""
        ...  # pragma: no cover

    def create_document(self, name: str, raw_body: str) -> object:
        """Create a new document and return a handle to it."""
        ...  # pragma: no cover

    def open_document(self, handle: object) -> None:
        """Make the document behind *handle* the active one."""
        ...  # pragma: no cover


# ---------------------------------------------------------------------------
# File-backed implementation
# ---------------------------------------------------------------------------


class FileEditingEnvironment:
    """Editing environment over Markdown files on disk.

    The "active document" is a single file path.  New documents are
    created in *root*, which defaults to the active file's directory.

    Args:
        active_path: File to treat as the active document, if any.
        root: Directory for newly created documents.
    """

    def __init__(
        self,
        active_path: Path | str | None = None,
        root: Path | str | None = None,
    ) -> None:
        self.active_path = Path(active_path) if active_path else None
        if root is not None:
            self.root = Path(root)
        elif self.active_path is not None:
            self.root = self.active_path.parent
        else:
            self.root = Path.cwd()

    def _load(self, path: Path) -> tuple[frontmatter.Post, str]:
        text, encoding = read_file_with_encoding(path)
        try:
            post = frontmatter.loads(text)
        except (yaml.YAMLError, ValueError) as exc:
            raise InvalidDocumentError(path.name, str(exc)) from exc
        return post, encoding

    def _save(self, path: Path, post: frontmatter.Post, encoding: str) -> None:
        if post.metadata:
            text = frontmatter.dumps(post, sort_keys=False) + "\n"
        else:
            text = post.content
        write_file(path, text, encoding)

    def _require_active(self) -> Path:
        if self.active_path is None:
            raise FileNotFoundError("No active document")
        return self.active_path

    def read_active_document(self) -> LocalDocument | None:
        path = self.active_path
        if path is None or not path.is_file():
            return None
        post, _ = self._load(path)
        return LocalDocument(
            name=path.stem,
            raw_body=post.content,
            metadata=DocumentMetadata.model_validate(post.metadata),
        )

    def write_metadata(self, mutator: MetadataMutator) -> None:
        path = self._require_active()
        post, encoding = self._load(path)
        updated = mutator(DocumentMetadata.model_validate(post.metadata))
        post.metadata = updated.to_frontmatter()
        self._save(path, post, encoding)
        logger.debug("Wrote front matter of %s", path)

    def replace_document(self, raw_body: str) -> None:
        path = self._require_active()
        post, encoding = self._load(path)
        post.content = raw_body
        self._save(path, post, encoding)
        logger.debug("Replaced body of %s", path)

    def create_document(self, name: str, raw_body: str) -> Path:
        path = unique_path(self.root, safe_filename(name))
        write_file(path, raw_body)
        logger.info("Created %s", path)
        return path

    def open_document(self, handle: object) -> None:
        self.active_path = Path(str(handle))
